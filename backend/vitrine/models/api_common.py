# vitrine/models/api_common.py

from datetime import datetime, timezone
from typing import Annotated, Any, List, Optional

from bson import ObjectId
from pydantic import AliasChoices, BaseModel, BeforeValidator, Field


def _coerce_object_id(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    return value


# ObjectId do Mongo exposto como string na API
PyObjectId = Annotated[str, BeforeValidator(_coerce_object_id)]

# Lê `_id` do Mongo ou `id` da API; serializa sempre como `id`
MONGO_ID = AliasChoices("_id", "id")


class StatusResponse(BaseModel):
    """Resposta genérica indicando o status de uma operação."""
    status: str = Field(..., description="Status geral (ex: 'ok', 'error', 'success')")
    message: Optional[str] = Field(None, description="Mensagem descritiva opcional.")


class SuccessResponse(BaseModel):
    success: bool = True


class PaginatedResponse(BaseModel):
    """Wrapper genérico para respostas paginadas."""
    total_items: int = Field(..., description="Número total de itens disponíveis.")
    items: List[Any]
    limit: int = Field(..., description="Número máximo de itens por página.")
    skip: int = Field(..., description="Número de itens pulados (offset).")


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Datas no Mongo ficam em UTC sem tzinfo, como `datetime.utcnow()`."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
