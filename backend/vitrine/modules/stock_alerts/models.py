# vitrine/modules/stock_alerts/models.py

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from vitrine.models.api_common import MONGO_ID, PyObjectId

AlertSeverity = Literal["low", "critical", "out"]


class StockCheck(BaseModel):
    product_id: str
    product_name: str
    store_id: str
    store_name: str
    current_stock: int = Field(..., ge=0)
    min_stock: int = Field(..., ge=0)


class StockAlertInDB(StockCheck):
    id: PyObjectId = Field(..., validation_alias=MONGO_ID)
    severity: AlertSeverity
    message: str
    resolved: bool = False
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StockAlertStats(BaseModel):
    total_alerts: int = 0
    critical_alerts: int = 0
    low_alerts: int = 0
    out_of_stock: int = 0
    resolved_today: int = 0
