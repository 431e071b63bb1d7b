# tests/api/test_app.py
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import status
from httpx import ASGITransport, AsyncClient

from vitrine.core.config import settings
from vitrine.core.database import get_database, get_optional_database, get_optional_redis
from vitrine import main as main_module
from vitrine.main import client_ip_key, create_app
from vitrine.modules.campaigns.services import campaign_send_breaker
from vitrine.services.evolution_client import get_evolution_client

pytestmark = pytest.mark.asyncio


def healthy_db() -> MagicMock:
    db = MagicMock()
    db.command = AsyncMock(return_value={"ok": 1})
    return db


async def test_security_headers_and_trace_id(test_client):
    response = await test_client.get("/api/v1/payment-fees/config", headers={"X-Request-ID": "req-abc"})
    assert response.status_code == 200
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Trace-ID"] == "req-abc"


async def test_trace_id_generated_when_missing(test_client):
    response = await test_client.get("/api/v1/market/marketplaces")
    assert response.headers["X-Trace-ID"].startswith("req_")


async def test_healthcheck_ok_with_degraded_redis(app, test_client):
    app.dependency_overrides[get_optional_database] = healthy_db
    app.dependency_overrides[get_optional_redis] = lambda: None

    response = await test_client.get("/api/v1/healthcheck")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["overall_status"] == "ok"
    assert body["components"]["database_mongodb"]["status"] == "ok"
    assert body["components"]["event_bus_redis"]["status"] == "unavailable"
    assert body["components"]["whatsapp_evolution"]["status"] == "ok"
    assert body["components"]["campaign_circuit_breaker"]["details"]["state"] == "closed"


async def test_healthcheck_503_without_database(app, test_client, fake_evolution):
    app.dependency_overrides[get_optional_database] = lambda: None
    fake_evolution.state = "close"

    response = await test_client.get("/api/v1/healthcheck")

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    body = response.json()
    assert body["overall_status"] == "error"
    assert body["components"]["whatsapp_evolution"] == {"status": "unavailable", "message": "close"}


async def test_open_breaker_is_reported_but_not_critical(app, test_client):
    app.dependency_overrides[get_optional_database] = healthy_db
    async def boom():
        raise RuntimeError("evolution down")

    for _ in range(campaign_send_breaker.threshold):
        with pytest.raises(RuntimeError):
            await campaign_send_breaker.execute(boom)

    response = await test_client.get("/api/v1/healthcheck")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["components"]["campaign_circuit_breaker"]["status"] == "error"


async def test_api_key_required_when_configured(test_client, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "segredo")

    denied = await test_client.get("/api/v1/tasks")
    assert denied.status_code == status.HTTP_401_UNAUTHORIZED
    assert denied.json() == {"error": "Invalid or missing API key", "code": "unauthorized"}

    allowed = await test_client.get("/api/v1/tasks", headers={"X-API-Key": "segredo"})
    assert allowed.status_code == status.HTTP_200_OK

    # webhooks e cron não usam a API key
    webhook = await test_client.get("/api/v1/webhooks/meta")
    assert webhook.status_code == status.HTTP_403_FORBIDDEN


async def test_rate_limit_returns_429(db_client, fake_evolution):
    app = create_app(rate_limit="2/minute")
    app.dependency_overrides[get_database] = lambda: db_client
    app.dependency_overrides[get_evolution_client] = lambda: fake_evolution

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        codes = [(await client.get("/api/v1/market/marketplaces")).status_code for _ in range(3)]
        other_ip = await client.get("/api/v1/market/marketplaces", headers={"X-Forwarded-For": "10.0.0.9"})
        limited = await client.get("/api/v1/market/marketplaces")

    assert codes == [200, 200, 429]
    assert other_ip.status_code == 200
    assert limited.json() == {"error": "Too many requests. Please try again later."}


async def test_unknown_route_is_404(test_client):
    response = await test_client.get("/api/v1/nao-existe")
    assert response.status_code == 404


def test_client_ip_key_prefers_forwarded_for():
    request = MagicMock()
    request.headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1"}
    assert client_ip_key(request) == "203.0.113.7"

    request.headers = {}
    request.client.host = "127.0.0.1"
    assert client_ip_key(request) == "127.0.0.1"

    request.client = None
    assert client_ip_key(request) == "unknown"


async def test_shutdown_waits_for_cache_cleanup_task(monkeypatch):
    cleanup_state = {"started": False, "finished": False}

    async def fake_cleanup(cache, interval):
        cleanup_state["started"] = True
        try:
            await asyncio.sleep(3600)
        finally:
            cleanup_state["finished"] = True

    monkeypatch.setattr(main_module, "setup_logging", lambda: None)
    monkeypatch.setattr(main_module, "run_periodic_cleanup", fake_cleanup)
    monkeypatch.setattr(main_module.mongo_manager, "connect", AsyncMock(side_effect=ConnectionError("mongo down")))
    monkeypatch.setattr(main_module.mongo_manager, "disconnect", AsyncMock())
    monkeypatch.setattr(main_module.mongo_manager, "db", None)
    monkeypatch.setattr(main_module.redis_manager, "connect", AsyncMock())
    monkeypatch.setattr(main_module.redis_manager, "disconnect", AsyncMock())

    async with main_module.lifespan(create_app()):
        await asyncio.sleep(0)
        assert cleanup_state["started"] is True

    assert cleanup_state["finished"] is True
    main_module.mongo_manager.disconnect.assert_awaited_once()
    main_module.redis_manager.disconnect.assert_awaited_once()
