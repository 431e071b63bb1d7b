# vitrine/modules/campaigns/services.py

import asyncio
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from loguru import logger

from vitrine.core.config import settings
from vitrine.core.database import get_database
from vitrine.core.errors import ConflictError, NotFoundError
from vitrine.core.logging_config import trace_id_var
from vitrine.core.retry import CircuitBreaker, with_retry
from vitrine.modules.customers.models import CustomerInDB
from vitrine.modules.customers.repository import CustomerRepository
from vitrine.services.evolution_client import EvolutionClient, format_phone_number, get_evolution_client
from .models import CampaignCreate, CampaignInDB
from .repository import CampaignLogRepository, CampaignRepository

# Reagendar uma campanha concluída reenvia só para quem não tem log `sent`
SCHEDULABLE_STATUSES = ("draft", "scheduled", "failed", "completed")

# Um breaker por processo, compartilhado entre campanhas
campaign_send_breaker = CircuitBreaker(
    threshold=settings.CAMPAIGN_BREAKER_THRESHOLD,
    timeout=settings.CAMPAIGN_BREAKER_TIMEOUT_SECONDS,
    name="evolution_send",
)


class CampaignService:
    def __init__(
        self,
        campaign_repo: CampaignRepository,
        log_repo: CampaignLogRepository,
        customer_repo: CustomerRepository,
        evolution: EvolutionClient,
        breaker: CircuitBreaker,
        *,
        batch_size: int = 5,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        max_delay: float = 10.0,
        stale_after: timedelta = timedelta(minutes=30),
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.campaign_repo = campaign_repo
        self.log_repo = log_repo
        self.customer_repo = customer_repo
        self.evolution = evolution
        self.breaker = breaker
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.stale_after = stale_after
        self._sleep = sleep

    # --- CRUD ---

    async def create_campaign(self, campaign_in: CampaignCreate) -> CampaignInDB:
        data = campaign_in.model_dump()
        data["status"] = "scheduled" if campaign_in.scheduled_at else "draft"
        created = await self.campaign_repo.create(data)
        logger.info(f"Campaign '{created.name}' created with status '{created.status}' (ID: {created.id})")
        return created

    async def get_campaign(self, campaign_id: str) -> CampaignInDB:
        campaign = await self.campaign_repo.get_by_id(campaign_id)
        if campaign is None:
            raise NotFoundError(f"Campaign '{campaign_id}' not found")
        return campaign

    async def schedule_campaign(self, campaign_id: str, scheduled_at: Optional[datetime] = None) -> CampaignInDB:
        campaign = await self.get_campaign(campaign_id)
        if campaign.status not in SCHEDULABLE_STATUSES:
            raise ConflictError(f"Campaign in status '{campaign.status}' cannot be scheduled")
        updated = await self.campaign_repo.update(
            campaign_id,
            {"status": "scheduled", "scheduled_at": scheduled_at or datetime.utcnow(), "last_error": None},
        )
        return updated

    # --- Processamento ---

    async def process_due_campaigns(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Reivindica até `batch_size` campanhas vencidas e envia cada uma."""
        now = now or datetime.utcnow()
        stale_before = now - self.stale_after
        processed: List[Dict[str, Any]] = []

        for _ in range(self.batch_size):
            campaign = await self.campaign_repo.claim_next_due(now, stale_before)
            if campaign is None:
                break
            try:
                processed.append(await self.process_campaign(campaign))
            except Exception as e:
                logger.exception(f"Campaign {campaign.id} failed during processing: {e}")
                await self.campaign_repo.update(
                    campaign.id, {"status": "failed", "last_error": str(e), "completed_at": datetime.utcnow()}
                )
                processed.append({"campaign": campaign.name, "campaign_id": campaign.id, "error": str(e)})

        if not processed:
            logger.debug("No due campaigns to process.")
        return processed

    async def process_campaign(self, campaign: CampaignInDB) -> Dict[str, Any]:
        log = logger.bind(trace_id=trace_id_var.get(), service="CampaignService", campaign_id=campaign.id)
        log.info(f"Processing campaign '{campaign.name}'...")

        customers = await self.customer_repo.list_by_segment(campaign.segment)
        counters = {"sent": 0, "failed": 0, "skipped": 0, "already_sent": 0}

        for customer in customers:
            if not customer.phone:
                counters["skipped"] += 1
                continue
            previous = await self.log_repo.get_for_recipient(campaign.id, customer.id)
            if previous is not None and previous.status == "sent":
                counters["already_sent"] += 1
                continue
            delivered = await self._deliver(campaign, customer, previous_attempts=previous.attempts if previous else 0)
            counters["sent" if delivered else "failed"] += 1

        sent_total = await self.log_repo.count_by_status(campaign.id, "sent")
        failed_total = await self.log_repo.count_by_status(campaign.id, "failed")
        await self.campaign_repo.update(
            campaign.id,
            {
                "status": "completed",
                "completed_at": datetime.utcnow(),
                "sent_count": sent_total,
                "failed_count": failed_total,
                "skipped_count": counters["skipped"],
            },
        )
        log.info(
            f"Campaign '{campaign.name}' completed. Sent: {counters['sent']}, Failed: {counters['failed']}, "
            f"Skipped: {counters['skipped']}, Already sent: {counters['already_sent']}"
        )
        return {"campaign": campaign.name, "campaign_id": campaign.id, **counters}

    async def _deliver(self, campaign: CampaignInDB, customer: CustomerInDB, previous_attempts: int = 0) -> bool:
        """Envia para um cliente com retry e breaker; grava o resultado no log. True se enviado."""
        number = format_phone_number(customer.phone)
        text = campaign.render_message(customer.full_name)
        attempts = 0

        async def send_once():
            nonlocal attempts
            attempts += 1
            if campaign.media_url:
                return await self.breaker.execute(
                    lambda: self.evolution.send_media(number, campaign.media_url, text)
                )
            return await self.breaker.execute(lambda: self.evolution.send_message(number, text))

        try:
            response = await with_retry(
                send_once,
                max_retries=self.max_retries,
                initial_delay=self.initial_delay,
                max_delay=self.max_delay,
                sleep=self._sleep,
            )
        except Exception as e:
            logger.warning(f"Delivery to customer {customer.id} failed after {attempts} attempt(s): {e}")
            await self.log_repo.record_result(
                campaign.id,
                customer.id,
                {
                    "status": "failed",
                    "phone": number,
                    "attempts": previous_attempts + attempts,
                    "error_message": str(e) or type(e).__name__,
                },
            )
            return False

        await self.log_repo.record_result(
            campaign.id,
            customer.id,
            {
                "status": "sent",
                "phone": number,
                "attempts": previous_attempts + attempts,
                "error_message": None,
                "provider_message_id": EvolutionClient.extract_message_id(response),
                "sent_at": datetime.utcnow(),
            },
        )
        return True


def build_campaign_service(db: AsyncIOMotorDatabase, evolution: EvolutionClient) -> CampaignService:
    return CampaignService(
        CampaignRepository(db),
        CampaignLogRepository(db),
        CustomerRepository(db),
        evolution,
        campaign_send_breaker,
        batch_size=settings.CAMPAIGN_BATCH_SIZE,
        max_retries=settings.CAMPAIGN_SEND_MAX_RETRIES,
        initial_delay=settings.CAMPAIGN_SEND_INITIAL_DELAY,
        max_delay=settings.CAMPAIGN_SEND_MAX_DELAY,
        stale_after=timedelta(minutes=settings.CAMPAIGN_STALE_PROCESSING_MINUTES),
    )


def get_campaign_service(
    db: AsyncIOMotorDatabase = Depends(get_database),
    evolution: EvolutionClient = Depends(get_evolution_client),
) -> CampaignService:
    return build_campaign_service(db, evolution)
