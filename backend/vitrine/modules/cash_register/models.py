# vitrine/modules/cash_register/models.py

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from vitrine.models.api_common import MONGO_ID, PyObjectId

REGISTER_STATUSES = Literal["open", "closed"]


class CashRegisterInDB(BaseModel):
    id: PyObjectId = Field(..., validation_alias=MONGO_ID)
    store_id: str
    cashier_id: Optional[str] = None
    status: REGISTER_STATUSES
    opened_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    initial_balance: float = 0
    final_balance: Optional[float] = None
    total_sales: float = 0
    commission_rate: Optional[float] = Field(None, ge=0, le=100)
    total_commission: Optional[float] = None
    pix_received: bool = False
    bank_account: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CashRegisterEntryInDB(BaseModel):
    id: PyObjectId = Field(..., validation_alias=MONGO_ID)
    cash_register_id: str
    product_id: Optional[str] = None
    description: Optional[str] = None
    quantity: int = 1
    unit_price: float
    total: float
    created_at: Optional[datetime] = None


class StoreInDB(BaseModel):
    id: PyObjectId = Field(..., validation_alias=MONGO_ID)
    store_id: str
    name: str
    active: bool = True
    activated_at: Optional[datetime] = None


# --- Payloads ---

class OpenRegisterPayload(BaseModel):
    store_id: str
    cashier_id: str
    initial_balance: float = Field(0, ge=0)
    commission_rate: Optional[float] = Field(None, ge=0, le=100, description="% de comissão do caixa sobre as vendas")


class AddEntryPayload(BaseModel):
    register_id: str
    product_id: Optional[str] = None
    description: Optional[str] = None
    quantity: int = Field(1, ge=1)
    unit_price: float = Field(..., ge=0)


class CloseRegisterPayload(BaseModel):
    register_id: str
    final_balance: float
    pix_received: bool = False
    bank_account: Optional[str] = None


class ActivateStorePayload(BaseModel):
    store_id: str
    store_name: str


class RegisterHistory(BaseModel):
    register: CashRegisterInDB
    entries: List[CashRegisterEntryInDB]
    total_entries: int
    total_sales: float
    commission: float
