# vitrine/modules/campaigns/routers.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from loguru import logger

from vitrine.core.security import verify_cron_secret
from .models import CAMPAIGN_STATUSES, CampaignCreate, CampaignInDB, CampaignLogInDB, CampaignSchedulePayload
from .repository import CampaignLogRepository, get_campaign_log_repository
from .services import CampaignService, get_campaign_service

campaigns_router = APIRouter()
cron_router = APIRouter()


@campaigns_router.post("", response_model=CampaignInDB, status_code=status.HTTP_201_CREATED, summary="Create a campaign", tags=["Campaigns"])
async def create_campaign_endpoint(
    campaign_in: CampaignCreate,
    service: CampaignService = Depends(get_campaign_service),
):
    return await service.create_campaign(campaign_in)


@campaigns_router.get("", response_model=List[CampaignInDB], summary="List campaigns", tags=["Campaigns"])
async def list_campaigns_endpoint(
    status_filter: Optional[CAMPAIGN_STATUSES] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    service: CampaignService = Depends(get_campaign_service),
):
    return await service.campaign_repo.list_campaigns(status=status_filter, skip=skip, limit=limit)


@campaigns_router.get("/{campaign_id}", response_model=CampaignInDB, summary="Get a campaign", tags=["Campaigns"])
async def get_campaign_endpoint(
    campaign_id: str = Path(...),
    service: CampaignService = Depends(get_campaign_service),
):
    return await service.get_campaign(campaign_id)


@campaigns_router.post("/{campaign_id}/schedule", response_model=CampaignInDB, summary="Schedule a campaign", tags=["Campaigns"])
async def schedule_campaign_endpoint(
    payload: CampaignSchedulePayload,
    campaign_id: str = Path(...),
    service: CampaignService = Depends(get_campaign_service),
):
    return await service.schedule_campaign(campaign_id, payload.scheduled_at)


@campaigns_router.get("/{campaign_id}/logs", response_model=List[CampaignLogInDB], summary="Delivery log of a campaign", tags=["Campaigns"])
async def campaign_logs_endpoint(
    campaign_id: str = Path(...),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    service: CampaignService = Depends(get_campaign_service),
    log_repo: CampaignLogRepository = Depends(get_campaign_log_repository),
):
    await service.get_campaign(campaign_id)
    return await log_repo.list_for_campaign(campaign_id, skip=skip, limit=limit)


@cron_router.get(
    "/process-campaigns",
    dependencies=[Depends(verify_cron_secret)],
    summary="Process due campaigns (cron trigger)",
    tags=["Cron"],
)
async def process_campaigns_cron_endpoint(service: CampaignService = Depends(get_campaign_service)):
    processed = await service.process_due_campaigns()
    if not processed:
        return {"message": "No campaigns to process"}
    logger.info(f"Cron processed {len(processed)} campaign(s).")
    return {"success": True, "processed": processed}
