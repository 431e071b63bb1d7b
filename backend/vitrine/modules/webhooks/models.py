# vitrine/modules/webhooks/models.py

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

from vitrine.models.api_common import MONGO_ID, PyObjectId

WEBHOOK_SOURCES = Literal["meta", "evolution_api"]


class WebhookLogInDB(BaseModel):
    id: PyObjectId = Field(..., validation_alias=MONGO_ID)
    source: WEBHOOK_SOURCES
    event_type: str = "unknown"
    payload: Dict[str, Any] = Field(default_factory=dict)
    message_text: Optional[str] = None
    received_at: datetime
    created_at: Optional[datetime] = None
