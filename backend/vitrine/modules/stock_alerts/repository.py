# vitrine/modules/stock_alerts/repository.py

from datetime import datetime
from typing import Dict, List, Optional

from pymongo import ASCENDING, DESCENDING
from loguru import logger

from vitrine.core.repository import BaseRepository
from .models import StockAlertInDB


class StockAlertRepository(BaseRepository[StockAlertInDB]):
    model = StockAlertInDB
    collection_name = "stock_alerts"

    async def create_indexes(self):
        try:
            await self.collection.create_index([("store_id", ASCENDING), ("resolved", ASCENDING), ("created_at", DESCENDING)])
            logger.info(f"Índices criados/verificados para a coleção: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Erro ao criar índices para {self.collection_name}: {e}")

    @staticmethod
    def _filter(store_id: Optional[str], resolved: Optional[bool]) -> Dict:
        query: Dict = {}
        if store_id:
            query["store_id"] = store_id
        if resolved is not None:
            query["resolved"] = resolved
        return query

    async def list_alerts(self, store_id: Optional[str] = None, resolved: Optional[bool] = None) -> List[StockAlertInDB]:
        return await self.list_by(self._filter(store_id, resolved), limit=0, sort=[("created_at", DESCENDING)])

    async def count_active(self, store_id: Optional[str] = None, severity: Optional[str] = None) -> int:
        query = self._filter(store_id, False)
        if severity:
            query["severity"] = severity
        return await self.count(query)

    async def count_resolved_since(self, since: datetime, store_id: Optional[str] = None) -> int:
        query = self._filter(store_id, True)
        query["resolved_at"] = {"$gte": since}
        return await self.count(query)
