# vitrine/modules/agents/models.py

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from vitrine.models.api_common import MONGO_ID, PyObjectId


class AgentResult(BaseModel):
    """Saída de uma operação de agente, com a origem do resultado."""
    agent: str
    kind: str
    source: str = Field(..., description="Provedor do LLM, `fallback` ou `rules`")
    result: Any


class AgentReportInDB(BaseModel):
    id: PyObjectId = Field(..., validation_alias=MONGO_ID)
    agent: str
    kind: str
    source: str
    input: Dict[str, Any] = Field(default_factory=dict)
    output: Any = None
    created_at: Optional[datetime] = None


# --- Payloads das rotas ---

class CampaignMetrics(BaseModel):
    reach: Optional[int] = Field(None, ge=0)
    impressions: Optional[int] = Field(None, ge=0)
    clicks: int = Field(0, ge=0)
    conversions: int = Field(0, ge=0)


class CreateCampaignPayload(BaseModel):
    name: str = Field(..., min_length=1)
    segment: str = Field(..., description="Tag do segmento de clientes")
    message: str = Field(..., min_length=1)


class AnalyzePerformancePayload(BaseModel):
    campaign_id: str
    metrics: Optional[CampaignMetrics] = None


class AuditPayload(BaseModel):
    actor: str
    action: str
    resource: str


class AnalyzeLogPayload(BaseModel):
    entry: Dict[str, Any]


class BIReportPayload(BaseModel):
    revenue_history: List[float] = Field(default_factory=list, description="Receita dos últimos meses, mais antigo primeiro")
    active_clients: int = Field(0, ge=0)
    churn: float = Field(0, ge=0)


class AnalyzeCreativePayload(BaseModel):
    media_url: str
    platform: str


class AnalyzeAudiencePayload(BaseModel):
    platform: str
    recent_posts: List[Dict[str, Any]] = Field(default_factory=list)


class SalesPatternsPayload(BaseModel):
    products: List[Dict[str, Any]] = Field(default_factory=list)


class MonitorCompetitorPayload(BaseModel):
    name: str
    product_url: str


class SyncStockPayload(BaseModel):
    sku: str
    qty: int = Field(..., ge=0)


class WholesalePricePayload(BaseModel):
    base_price: float = Field(..., gt=0)
    qty: int = Field(..., ge=1)


class SuggestPricingPayload(BaseModel):
    sku: str
    current_price: float = Field(..., gt=0)
    competitor_price: float = Field(..., gt=0)
    type: Literal["retail", "wholesale"] = "retail"


class SendMessagePayload(BaseModel):
    to: str
    message: str = Field(..., min_length=1)


class SocialMetricsPayload(BaseModel):
    campaign_id: str
