# vitrine/modules/webhooks/services.py

from typing import Any, Dict, Iterator, Optional, Tuple

META_SUBSCRIBE_MODE = "subscribe"
EVOLUTION_MESSAGE_EVENT = "messages.upsert"


def verify_meta_subscription(mode: Optional[str], token: Optional[str], expected_token: Optional[str]) -> bool:
    """Handshake do Meta: modo 'subscribe' e token igual ao configurado."""
    if not expected_token:
        return False
    return mode == META_SUBSCRIBE_MODE and token == expected_token


def iter_meta_events(body: Dict[str, Any]) -> Iterator[Tuple[str, Dict[str, Any]]]:
    """Gera (event_type, evento) para cada change/messaging de cada entry."""
    for entry in body.get("entry") or []:
        entry_id = entry.get("id")
        for change in entry.get("changes") or []:
            yield f"change.{change.get('field', 'unknown')}", {"entry_id": entry_id, **change}
        for messaging in entry.get("messaging") or []:
            yield "messaging", {"entry_id": entry_id, **messaging}


def extract_evolution_text(body: Dict[str, Any]) -> Optional[str]:
    """Texto de uma mensagem recebida (conversation ou extendedTextMessage)."""
    if body.get("event") != EVOLUTION_MESSAGE_EVENT:
        return None
    message = (body.get("data") or {}).get("message") or {}
    text = message.get("conversation")
    if text:
        return text
    return (message.get("extendedTextMessage") or {}).get("text")
