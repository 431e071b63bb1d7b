# vitrine/modules/webhooks/routers.py

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import JSONResponse, PlainTextResponse
from motor.motor_asyncio import AsyncIOMotorDatabase
from loguru import logger

from vitrine.core.config import settings
from vitrine.core.database import get_database, get_optional_database
from .repository import WebhookLogRepository
from .services import extract_evolution_text, iter_meta_events, verify_meta_subscription

webhooks_router = APIRouter()


@webhooks_router.get("/meta", summary="Meta webhook verification", tags=["Webhooks"])
async def meta_verify_endpoint(
    mode: Optional[str] = Query(None, alias="hub.mode"),
    token: Optional[str] = Query(None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(None, alias="hub.challenge"),
):
    if verify_meta_subscription(mode, token, settings.META_VERIFY_TOKEN):
        logger.info("Meta webhook verified.")
        return PlainTextResponse(challenge or "", status_code=status.HTTP_200_OK)
    logger.warning("Meta webhook verification failed.")
    return JSONResponse({"error": "Verification failed"}, status_code=status.HTTP_403_FORBIDDEN)


@webhooks_router.post("/meta", summary="Receive Meta (Facebook/Instagram) events", tags=["Webhooks"])
async def meta_events_endpoint(
    body: Dict[str, Any] = Body(...),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    repo = WebhookLogRepository(db)
    logged = 0
    for event_type, event in iter_meta_events(body):
        await repo.log_event("meta", event_type, event)
        logged += 1
    logger.info(f"Meta webhook: {logged} event(s) logged.")
    return {"success": True}


@webhooks_router.post("/evolution", summary="Receive Evolution API (WhatsApp) events", tags=["Webhooks"])
async def evolution_events_endpoint(
    body: Dict[str, Any] = Body(...),
    db: Optional[AsyncIOMotorDatabase] = Depends(get_optional_database),
):
    if db is None:
        logger.warning("MongoDB not available, skipping webhook log.")
        return {"success": True, "warning": "DB unavailable"}

    text = extract_evolution_text(body)
    if text:
        logger.info(f"New WhatsApp message received ({len(text)} chars).")
    await WebhookLogRepository(db).log_event("evolution_api", body.get("event") or "unknown", body, message_text=text)
    return {"success": True}
