# vitrine/worker/tasks_campaigns.py

import asyncio
from typing import Any, Dict, List, Optional

from loguru import logger

from vitrine.core.database import mongo_manager
from vitrine.core.logging_config import new_trace_id, trace_id_var
from vitrine.modules.campaigns.services import build_campaign_service
from vitrine.services.evolution_client import get_evolution_client
from vitrine.worker.celery_app import celery_app


async def _process_due_campaigns() -> List[Dict[str, Any]]:
    # O client do Motor fica preso ao loop; cada execução abre e fecha o seu
    await mongo_manager.connect()
    try:
        service = build_campaign_service(mongo_manager.get_db(), get_evolution_client())
        return await service.process_due_campaigns()
    finally:
        await mongo_manager.disconnect()


@celery_app.task(bind=True, name="campaigns.process_due", max_retries=2, default_retry_delay=30, acks_late=True)
def process_due_campaigns_task(self, trace_id: Optional[str] = None):
    """Processa as campanhas agendadas vencidas (disparado pelo beat a cada minuto)."""
    current_trace_id = trace_id or new_trace_id("task")
    token = trace_id_var.set(current_trace_id)
    log = logger.bind(trace_id=current_trace_id, task_name=self.name, job_id=self.request.id)
    try:
        with logger.contextualize(trace_id=current_trace_id):
            processed = asyncio.run(_process_due_campaigns())
        log.info(f"Processed {len(processed)} due campaign(s).")
        return {"success": True, "processed": len(processed)}
    except ConnectionError as e:
        log.error(f"MongoDB unavailable, retrying: {e}")
        raise self.retry(exc=e)
    finally:
        trace_id_var.reset(token)
