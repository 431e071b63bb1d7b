# vitrine/modules/campaigns/models.py

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from vitrine.models.api_common import MONGO_ID, PyObjectId, to_naive_utc

CAMPAIGN_STATUSES = Literal["draft", "scheduled", "processing", "completed", "failed"]
DELIVERY_STATUSES = Literal["sent", "failed"]

NAME_PLACEHOLDER = "{{name}}"


class CampaignBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    message_template: str = Field(..., min_length=1, description="Texto da mensagem; `{{name}}` vira o nome do cliente")
    media_url: Optional[str] = Field(None, description="Se presente, envia mídia com o texto como legenda")
    segment: Dict[str, Any] = Field(default_factory=dict, description="Filtro de público, ex: {'tag': 'atacado'}")

    def render_message(self, full_name: str) -> str:
        return self.message_template.replace(NAME_PLACEHOLDER, full_name or "")


class CampaignCreate(CampaignBase):
    scheduled_at: Optional[datetime] = Field(None, description="Se informado, a campanha já nasce agendada")

    @field_validator("scheduled_at")
    @classmethod
    def normalize_scheduled_at(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)


class CampaignSchedulePayload(BaseModel):
    scheduled_at: Optional[datetime] = Field(None, description="Default: agora")

    @field_validator("scheduled_at")
    @classmethod
    def normalize_scheduled_at(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)


class CampaignInDB(CampaignBase):
    id: PyObjectId = Field(..., validation_alias=MONGO_ID)
    status: CAMPAIGN_STATUSES = "draft"
    scheduled_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    sent_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0
    last_error: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CampaignLogInDB(BaseModel):
    id: PyObjectId = Field(..., validation_alias=MONGO_ID)
    campaign_id: str
    customer_id: str
    phone: Optional[str] = None
    status: DELIVERY_STATUSES
    attempts: int = 0
    error_message: Optional[str] = None
    provider_message_id: Optional[str] = None
    sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
