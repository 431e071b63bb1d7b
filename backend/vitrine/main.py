# vitrine/main.py

import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from loguru import logger

from vitrine.api.v1 import api_router
from vitrine.core.cache import global_cache, run_periodic_cleanup
from vitrine.core.config import settings
from vitrine.core.database import mongo_manager, redis_manager
from vitrine.core.errors import AppError, app_error_handler, generic_exception_handler
from vitrine.core.logging_config import add_trace_id_middleware, setup_logging
from vitrine.modules.agents.repository import AgentReportRepository
from vitrine.modules.campaigns.repository import CampaignLogRepository, CampaignRepository
from vitrine.modules.cash_register.repository import CashRegisterRepository
from vitrine.modules.customers.repository import CustomerRepository
from vitrine.modules.stock_alerts.repository import StockAlertRepository
from vitrine.modules.tasks.repository import TaskRepository

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}

INDEXED_REPOSITORIES = (
    CustomerRepository,
    CampaignRepository,
    CampaignLogRepository,
    CashRegisterRepository,
    StockAlertRepository,
    TaskRepository,
    AgentReportRepository,
)


def client_ip_key(request: Request) -> str:
    """Chave do rate limit: primeiro IP do X-Forwarded-For, depois o host do cliente."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(f"Rate limit exceeded for {client_ip_key(request)} on {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": "Too many requests. Please try again later."},
    )


async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers[header] = value
    return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(f"Starting {settings.PROJECT_NAME}...")
    try:
        await mongo_manager.connect()
    except ConnectionError as e:
        # Sobe degradado; /healthcheck reporta o MongoDB como erro
        logger.critical(f"Starting without MongoDB: {e}")
    await redis_manager.connect()
    if mongo_manager.db is not None:
        for repository_cls in INDEXED_REPOSITORIES:
            await repository_cls(mongo_manager.db).create_indexes()
    cleanup_task = asyncio.create_task(run_periodic_cleanup(global_cache, settings.CACHE_CLEANUP_INTERVAL_SECONDS))
    yield
    logger.info("Shutting down...")
    cleanup_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await cleanup_task
    await asyncio.gather(mongo_manager.disconnect(), redis_manager.disconnect())


def create_app(rate_limit: Optional[str] = None) -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.limiter = Limiter(key_func=client_ip_key, default_limits=[rate_limit or settings.RATE_LIMIT_DEFAULT])
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(add_security_headers)
    app.middleware("http")(add_trace_id_middleware)

    app.include_router(api_router, prefix=settings.API_V1_STR)
    return app


app = create_app()
