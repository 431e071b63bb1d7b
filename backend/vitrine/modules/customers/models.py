# vitrine/modules/customers/models.py

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from vitrine.models.api_common import MONGO_ID, PyObjectId


class CustomerBase(BaseModel):
    full_name: str = Field(..., min_length=1)
    phone: Optional[str] = Field(None, description="Telefone com DDD; sem telefone o cliente não recebe campanhas")
    email: Optional[EmailStr] = None
    segment: Optional[str] = Field(None, description="Tag de segmento (ex: 'atacado', 'vip')")
    tags: List[str] = Field(default_factory=list)
    store_id: Optional[str] = None


class CustomerCreate(CustomerBase):
    pass


class CustomerInDB(CustomerBase):
    id: PyObjectId = Field(..., validation_alias=MONGO_ID)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
