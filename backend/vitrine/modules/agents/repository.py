# vitrine/modules/agents/repository.py

from typing import Any, Dict, List

from pymongo import ASCENDING, DESCENDING
from loguru import logger

from vitrine.core.repository import BaseRepository
from .models import AgentReportInDB


class AgentReportRepository(BaseRepository[AgentReportInDB]):
    model = AgentReportInDB
    collection_name = "agent_reports"

    async def create_indexes(self):
        try:
            await self.collection.create_index([("agent", ASCENDING), ("created_at", DESCENDING)])
            logger.info(f"Índices criados/verificados para a coleção: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Erro ao criar índices para {self.collection_name}: {e}")

    async def record(self, agent: str, kind: str, input: Dict[str, Any], output: Any, source: str) -> AgentReportInDB:
        return await self.create({"agent": agent, "kind": kind, "input": input, "output": output, "source": source})

    async def list_for_agent(self, agent: str, limit: int = 20) -> List[AgentReportInDB]:
        return await self.list_by({"agent": agent}, limit=limit, sort=[("created_at", DESCENDING)])
