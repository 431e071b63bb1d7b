# vitrine/modules/campaigns/repository.py

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from loguru import logger

from vitrine.core.database import get_database
from vitrine.core.repository import BaseRepository
from .models import CampaignInDB, CampaignLogInDB


class CampaignRepository(BaseRepository[CampaignInDB]):
    model = CampaignInDB
    collection_name = "campaigns"

    async def create_indexes(self):
        try:
            await self.collection.create_index([("status", ASCENDING), ("scheduled_at", ASCENDING)])
            await self.collection.create_index([("created_at", DESCENDING)])
            logger.info(f"Índices criados/verificados para a coleção: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Erro ao criar índices para {self.collection_name}: {e}")

    async def claim_next_due(self, now: datetime, stale_before: datetime) -> Optional[CampaignInDB]:
        """
        Move atomicamente UMA campanha vencida (ou presa em `processing` desde
        antes de `stale_before`) para `processing`. Dois workers nunca recebem
        a mesma campanha.
        """
        query = {
            "$or": [
                {"status": "scheduled", "scheduled_at": {"$lte": now}},
                {"status": "processing", "started_at": {"$lte": stale_before}},
            ]
        }
        try:
            document = await self.collection.find_one_and_update(
                query,
                {"$set": {"status": "processing", "started_at": now, "updated_at": now}},
                sort=[("scheduled_at", ASCENDING)],
                return_document=ReturnDocument.AFTER,
            )
        except Exception as e:
            self._handle_db_exception(e, "claim_next_due", query=query)
        return self._validate(document)

    async def list_campaigns(self, status: Optional[str] = None, skip: int = 0, limit: int = 50) -> List[CampaignInDB]:
        query: Dict[str, Any] = {"status": status} if status else {}
        return await self.list_by(query=query, skip=skip, limit=limit, sort=[("created_at", DESCENDING)])


class CampaignLogRepository(BaseRepository[CampaignLogInDB]):
    """Um registro por (campanha, cliente): a chave de idempotência dos envios."""

    model = CampaignLogInDB
    collection_name = "campaign_logs"

    async def create_indexes(self):
        try:
            await self.collection.create_index(
                [("campaign_id", ASCENDING), ("customer_id", ASCENDING)],
                unique=True,
                name="campaign_customer_unique",
            )
            await self.collection.create_index([("campaign_id", ASCENDING), ("status", ASCENDING)])
            logger.info(f"Índices criados/verificados para a coleção: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Erro ao criar índices para {self.collection_name}: {e}")

    async def get_for_recipient(self, campaign_id: str, customer_id: str) -> Optional[CampaignLogInDB]:
        return await self.get_by({"campaign_id": campaign_id, "customer_id": customer_id})

    async def record_result(self, campaign_id: str, customer_id: str, fields: Dict[str, Any]) -> None:
        """Upsert no par (campanha, cliente); reprocessar nunca duplica o log."""
        now = datetime.utcnow()
        key = {"campaign_id": campaign_id, "customer_id": customer_id}
        try:
            await self.collection.update_one(
                key,
                {"$set": {**fields, "updated_at": now}, "$setOnInsert": {"created_at": now}},
                upsert=True,
            )
        except Exception as e:
            self._handle_db_exception(e, "record_result", query=key)

    async def count_by_status(self, campaign_id: str, status: str) -> int:
        return await self.count({"campaign_id": campaign_id, "status": status})

    async def list_for_campaign(self, campaign_id: str, skip: int = 0, limit: int = 100) -> List[CampaignLogInDB]:
        return await self.list_by(
            query={"campaign_id": campaign_id}, skip=skip, limit=limit, sort=[("created_at", ASCENDING)]
        )


def get_campaign_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> CampaignRepository:
    return CampaignRepository(db)


def get_campaign_log_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> CampaignLogRepository:
    return CampaignLogRepository(db)
