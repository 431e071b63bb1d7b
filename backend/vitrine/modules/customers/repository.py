# vitrine/modules/customers/repository.py

from typing import Any, Dict, List, Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING
from loguru import logger

from vitrine.core.database import get_database
from vitrine.core.repository import BaseRepository
from .models import CustomerInDB

COLLECTION_NAME = "customers"


def segment_to_query(segment: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Traduz o filtro de segmento da campanha para query Mongo. Vazio = todos."""
    if not segment:
        return {}
    query: Dict[str, Any] = {}
    if segment.get("tag"):
        query["segment"] = segment["tag"]
    if segment.get("store_id"):
        query["store_id"] = segment["store_id"]
    return query


class CustomerRepository(BaseRepository[CustomerInDB]):
    model = CustomerInDB
    collection_name = COLLECTION_NAME

    async def create_indexes(self):
        try:
            await self.collection.create_index([("segment", ASCENDING)], sparse=True)
            await self.collection.create_index([("phone", ASCENDING)], sparse=True)
            await self.collection.create_index([("store_id", ASCENDING)], sparse=True)
            logger.info(f"Índices criados/verificados para a coleção: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Erro ao criar índices para {self.collection_name}: {e}")

    async def list_by_segment(self, segment: Optional[Dict[str, Any]]) -> List[CustomerInDB]:
        return await self.list_by(query=segment_to_query(segment), limit=0, sort=[("_id", ASCENDING)])


def get_customer_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> CustomerRepository:
    return CustomerRepository(db)
