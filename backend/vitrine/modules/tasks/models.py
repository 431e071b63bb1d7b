# vitrine/modules/tasks/models.py

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from vitrine.models.api_common import MONGO_ID, PyObjectId, to_naive_utc

TASK_STATUSES = Literal["pending", "in_progress", "completed", "cancelled"]
TASK_PRIORITIES = Literal["low", "medium", "high", "urgent"]


class TaskBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    status: TASK_STATUSES = "pending"
    priority: TASK_PRIORITIES = "medium"
    assigned_to: Optional[str] = None
    deal_id: Optional[str] = None
    customer_id: Optional[str] = None
    due_date: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    custom_fields: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)


class TaskCreate(TaskBase):
    pass


class TaskUpdate(BaseModel):
    # Todos opcionais para PATCH; só os campos enviados são gravados
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[TASK_STATUSES] = None
    priority: Optional[TASK_PRIORITIES] = None
    assigned_to: Optional[str] = None
    deal_id: Optional[str] = None
    customer_id: Optional[str] = None
    due_date: Optional[datetime] = None
    tags: Optional[List[str]] = None
    custom_fields: Optional[Dict[str, Any]] = None

    @field_validator("title", "status", "priority", "tags", "custom_fields")
    @classmethod
    def reject_null(cls, value):
        # Omitir o campo mantém o valor; null não apaga campo obrigatório
        if value is None:
            raise ValueError("may not be null")
        return value

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)


class TaskInDB(TaskBase):
    id: PyObjectId = Field(..., validation_alias=MONGO_ID)
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
