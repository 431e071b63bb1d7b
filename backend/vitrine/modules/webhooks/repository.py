# vitrine/modules/webhooks/repository.py

from datetime import datetime
from typing import Any, Dict, Optional

from vitrine.core.repository import BaseRepository
from .models import WebhookLogInDB


class WebhookLogRepository(BaseRepository[WebhookLogInDB]):
    model = WebhookLogInDB
    collection_name = "webhook_logs"

    async def log_event(self, source: str, event_type: str, payload: Dict[str, Any],
                        message_text: Optional[str] = None) -> WebhookLogInDB:
        return await self.create({
            "source": source,
            "event_type": event_type or "unknown",
            "payload": payload,
            "message_text": message_text,
            "received_at": datetime.utcnow(),
        })
