# vitrine/services/evolution_client.py

import re
from typing import Any, Dict, Literal, Optional

import httpx
from loguru import logger

from vitrine.core.config import settings
from vitrine.core.errors import ServiceUnavailableError
from vitrine.core.logging_config import trace_id_var

MediaType = Literal["image", "video", "document"]

SEND_OPTIONS = {"delay": 1200, "presence": "composing"}


def format_phone_number(phone: str) -> str:
    """Mantém apenas dígitos e garante o DDI 55 (Brasil)."""
    digits = re.sub(r"\D", "", phone or "")
    if digits and not digits.startswith("55"):
        digits = f"55{digits}"
    return digits


class EvolutionClient:
    """
    Cliente da Evolution API (gateway WhatsApp).

    Erros HTTP propagam como `httpx.HTTPStatusError` e falhas de rede como
    `httpx.TransportError`, para que quem chama decida sobre retry.
    """

    def __init__(
        self,
        base_url: Optional[str],
        api_key: Optional[str],
        instance: str = "default",
        timeout: float = 25.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.api_key = api_key
        self.instance = instance
        self.timeout = timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"apikey": self.api_key or "", "Content-Type": "application/json"},
            timeout=self.timeout,
            transport=self._transport,
        )

    def _require_configured(self):
        if not self.is_configured:
            raise ServiceUnavailableError("Evolution API not configured. Please set EVOLUTION_API_URL and EVOLUTION_API_KEY.")

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        log = logger.bind(trace_id=trace_id_var.get(), service="EvolutionClient", path=path)
        async with self._client() as client:
            response = await client.post(path, json=payload)
        if response.is_error:
            log.error(f"Evolution API error {response.status_code}: {response.text[:300]}")
        response.raise_for_status()
        return response.json() if response.content else {}

    async def send_message(self, number: str, text: str) -> Dict[str, Any]:
        """Envia texto. Retorna o corpo da resposta (com `key.id` da mensagem)."""
        self._require_configured()
        payload = {
            "number": number,
            "options": {**SEND_OPTIONS, "linkPreview": False},
            "textMessage": {"text": text},
        }
        return await self._post(f"/message/sendText/{self.instance}", payload)

    async def send_media(self, number: str, media_url: str, caption: str, media_type: MediaType = "image") -> Dict[str, Any]:
        self._require_configured()
        payload = {
            "number": number,
            "options": dict(SEND_OPTIONS),
            "mediaMessage": {"mediatype": media_type, "caption": caption, "media": media_url},
        }
        return await self._post(f"/message/sendMedia/{self.instance}", payload)

    async def check_connection(self) -> Dict[str, Any]:
        """Estado da instância. Nunca levanta: devolve `not_configured` ou `disconnected`."""
        if not self.is_configured:
            return {"state": "not_configured", "error": "Evolution API not configured"}
        try:
            async with self._client() as client:
                response = await client.get(f"/instance/connectionState/{self.instance}")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Evolution connection check failed: {e}")
            return {"state": "disconnected", "error": str(e)}
        # A API responde {"instance": {"state": ...}} ou {"state": ...}
        if isinstance(data, dict) and "state" not in data and isinstance(data.get("instance"), dict):
            return {"state": data["instance"].get("state", "unknown"), **data}
        return data

    async def check_number(self, number: str) -> bool:
        """True se o número tem WhatsApp."""
        self._require_configured()
        try:
            data = await self._post(f"/chat/checkNumber/{self.instance}", {"number": number})
        except httpx.HTTPError as e:
            logger.warning(f"Evolution checkNumber failed for {number}: {e}")
            return False
        return data.get("exists") is True

    @staticmethod
    def extract_message_id(response: Dict[str, Any]) -> Optional[str]:
        key = response.get("key") if isinstance(response, dict) else None
        return key.get("id") if isinstance(key, dict) else None


_evolution_client: Optional[EvolutionClient] = None


def get_evolution_client() -> EvolutionClient:
    """FastAPI dependency / singleton built from settings."""
    global _evolution_client
    if _evolution_client is None:
        _evolution_client = EvolutionClient(
            base_url=settings.EVOLUTION_API_URL,
            api_key=settings.EVOLUTION_API_KEY,
            instance=settings.EVOLUTION_INSTANCE,
            timeout=settings.EVOLUTION_TIMEOUT_SECONDS,
        )
    return _evolution_client
