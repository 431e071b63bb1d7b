# vitrine/api/endpoints/status.py

import time as process_time
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, Response, status as http_status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, Field
from redis.asyncio import Redis
from redis.exceptions import RedisError
from loguru import logger

from vitrine.core.cache import CacheManager, get_cache
from vitrine.core.database import get_optional_database, get_optional_redis
from vitrine.modules.campaigns.services import campaign_send_breaker
from vitrine.services.evolution_client import EvolutionClient, get_evolution_client


class ComponentStatus(BaseModel):
    status: Literal["ok", "error", "unavailable"] = "ok"
    message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class HealthCheckResponse(BaseModel):
    overall_status: Literal["ok", "error"] = "ok"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    uptime_seconds: float = Field(..., description="Process uptime in seconds")
    components: Dict[str, ComponentStatus]


PROCESS_START_TIME = process_time.monotonic()

router = APIRouter()


@router.get(
    "/healthcheck",
    response_model=HealthCheckResponse,
    tags=["Status & Health"],
    summary="Application health and component status",
)
async def get_application_health(
    db: Optional[AsyncIOMotorDatabase] = Depends(get_optional_database),
    redis: Optional[Redis] = Depends(get_optional_redis),
    evolution: EvolutionClient = Depends(get_evolution_client),
    cache: CacheManager = Depends(get_cache),
):
    log = logger.bind(api_endpoint="/healthcheck GET")
    components: Dict[str, ComponentStatus] = {}
    # Só o MongoDB derruba o status geral; Redis e Evolution degradam
    critical_ok = True

    if db is not None:
        try:
            await db.command("ping")
            components["database_mongodb"] = ComponentStatus(status="ok")
        except Exception as e:
            log.error(f"MongoDB ping failed: {e}")
            components["database_mongodb"] = ComponentStatus(status="error", message=str(e))
            critical_ok = False
    else:
        components["database_mongodb"] = ComponentStatus(status="error", message="DB client not available")
        critical_ok = False

    if redis is not None:
        try:
            await redis.ping()
            components["event_bus_redis"] = ComponentStatus(status="ok")
        except RedisError as e:
            log.warning(f"Redis ping failed: {e}")
            components["event_bus_redis"] = ComponentStatus(status="error", message=str(e))
    else:
        components["event_bus_redis"] = ComponentStatus(status="unavailable", message="Redis client not available")

    connection = await evolution.check_connection()
    evolution_state = connection.get("state")
    components["whatsapp_evolution"] = ComponentStatus(
        status="ok" if evolution_state == "open" else "unavailable",
        message=evolution_state,
    )

    breaker = campaign_send_breaker.snapshot()
    components["campaign_circuit_breaker"] = ComponentStatus(
        status="ok" if breaker["state"] == "closed" else "error",
        details=breaker,
    )
    cache_stats = cache.stats()
    components["cache"] = ComponentStatus(status="ok", details={"size": cache_stats["size"]})

    payload = HealthCheckResponse(
        overall_status="ok" if critical_ok else "error",
        uptime_seconds=process_time.monotonic() - PROCESS_START_TIME,
        components=components,
    )
    log.info(f"Health check finished: {payload.overall_status}")
    return Response(
        content=payload.model_dump_json(exclude_none=True),
        status_code=http_status.HTTP_200_OK if critical_ok else http_status.HTTP_503_SERVICE_UNAVAILABLE,
        media_type="application/json",
    )
