# vitrine/modules/tasks/repository.py

from typing import Any, Dict, List, Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from loguru import logger

from vitrine.core.database import get_database
from vitrine.core.repository import BaseRepository
from .models import TaskInDB


class TaskRepository(BaseRepository[TaskInDB]):
    model = TaskInDB
    collection_name = "tasks"

    async def create_indexes(self):
        """Cria índices para os filtros usados na listagem."""
        try:
            await self.collection.create_index([("due_date", ASCENDING)], sparse=True)
            await self.collection.create_index("status")
            await self.collection.create_index("priority")
            await self.collection.create_index("assigned_to", sparse=True)
            await self.collection.create_index("deal_id", sparse=True)
            logger.info(f"Índices criados/verificados para a coleção: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Erro ao criar índices para {self.collection_name}: {e}")

    async def list_tasks(self, filters: Dict[str, Any], skip: int = 0, limit: int = 100) -> List[TaskInDB]:
        query = {key: value for key, value in filters.items() if value is not None}
        return await self.list_by(query, skip=skip, limit=limit, sort=[("created_at", DESCENDING)])


def get_task_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> TaskRepository:
    return TaskRepository(db)
