# vitrine/modules/agents/base.py

from typing import Any, Dict, Optional

from loguru import logger

from vitrine.services.llm_client import BaseLLMClient, call_llm_with_fallback
from .bus import EventBus, channel_for
from .models import AgentResult
from .repository import AgentReportRepository


class BaseAgent:
    """Base dos agentes: prompt no LLM com fallback estático, eventos no bus e relatório no Mongo."""

    name: str = "base"

    def __init__(self, llm: Optional[BaseLLMClient], bus: EventBus, reports: Optional[AgentReportRepository] = None):
        self.llm = llm
        self.bus = bus
        self.reports = reports
        self.log = logger.bind(agent=self.name)

    async def publish_event(self, event: str, payload: Any) -> None:
        await self.bus.publish(channel_for(self.name, event), payload)

    async def persist(self, kind: str, input: Dict[str, Any], output: Any, source: str) -> None:
        """Grava o relatório. Falha de banco é logada e não derruba o agente."""
        if self.reports is None:
            return
        try:
            await self.reports.record(self.name, kind, input, output, source)
        except (RuntimeError, ValueError) as e:
            self.log.warning(f"Failed to persist '{kind}' report: {e}")

    async def ask(self, kind: str, prompt: str, fallback: Any, input: Dict[str, Any]) -> AgentResult:
        data, source = await call_llm_with_fallback(self.llm, prompt, fallback)
        if source == "fallback":
            self.log.info(f"'{kind}' answered with fallback result.")
        await self.persist(kind, input, data, source)
        return AgentResult(agent=self.name, kind=kind, source=source, result=data)
