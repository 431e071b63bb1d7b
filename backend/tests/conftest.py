# tests/conftest.py
import json
import os

# Settings é carregado no import do vitrine: o ambiente de teste vem antes
os.environ.update({
    "PROJECT_NAME": "Vitrine CRM Test",
    "API_V1_STR": "/api/v1",
    "LOG_LEVEL": "DEBUG",
    "MONGODB_URI": "mongodb://localhost:27017/vitrine_test",
    "REDIS_URL": "redis://localhost:6379/1",
    "CELERY_BROKER_URL": "redis://localhost:6379/2",
    "CELERY_RESULT_BACKEND": "redis://localhost:6379/3",
    "API_KEY": "",
    "CRON_SECRET": "test-cron-secret",
    "META_VERIFY_TOKEN": "test-verify-token",
    "GEMINI_API_KEY": "",
    "EVOLUTION_API_URL": "",
    "EVOLUTION_API_KEY": "",
    "EVOLUTION_ADMIN_PHONE": "11999990000",
    "RATE_LIMIT_DEFAULT": "1000/minute",
})

from typing import AsyncGenerator, Dict, List, Optional, Set

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from vitrine.core.cache import global_cache
from vitrine.core.database import get_database, get_optional_database, get_optional_redis
from vitrine.main import create_app
from vitrine.modules.campaigns.services import campaign_send_breaker
from vitrine.modules.payment_fees.services import DEFAULT_FEE_CONFIGS, PaymentFeeManager, get_payment_fee_manager
from vitrine.services.evolution_client import get_evolution_client
from vitrine.services.llm_client import BaseLLMClient, get_llm_client


class FakeEvolutionClient:
    """Evolution em memória. Números em `failing_numbers` falham com erro de rede."""

    is_configured = True

    def __init__(self):
        self.sent: List[Dict] = []
        self.failing_numbers: Set[str] = set()
        self.calls = 0
        self.state = "open"

    async def send_message(self, number: str, text: str) -> Dict:
        self.calls += 1
        if number in self.failing_numbers:
            raise httpx.ConnectError("connection refused")
        self.sent.append({"number": number, "text": text})
        return {"key": {"id": f"msg_{len(self.sent)}"}}

    async def send_media(self, number: str, media_url: str, caption: str, media_type: str = "image") -> Dict:
        self.calls += 1
        if number in self.failing_numbers:
            raise httpx.ConnectError("connection refused")
        self.sent.append({"number": number, "text": caption, "media_url": media_url})
        return {"key": {"id": f"msg_{len(self.sent)}"}}

    async def check_connection(self) -> Dict:
        return {"state": self.state}


class FakeLLM(BaseLLMClient):
    provider_name = "fake"

    def __init__(self, reply: Optional[str] = None, error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    async def generate_content(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply or ""


class FakeRedis:
    def __init__(self):
        self.published: List[tuple] = []

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, json.loads(message)))
        return 1

    async def ping(self) -> bool:
        return True


@pytest.fixture(autouse=True)
def reset_process_state():
    campaign_send_breaker.reset()
    global_cache.clear()
    yield
    campaign_send_breaker.reset()
    global_cache.clear()


@pytest_asyncio.fixture(scope="function")
async def db_client():
    client = AsyncMongoMockClient()
    yield client["vitrine_test"]


@pytest.fixture
def fake_evolution() -> FakeEvolutionClient:
    return FakeEvolutionClient()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM(reply='{"ok": true}')


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def fee_manager() -> PaymentFeeManager:
    manager = PaymentFeeManager()
    for config in DEFAULT_FEE_CONFIGS:
        manager.add_config(config)
    return manager


@pytest.fixture
def app(db_client, fake_evolution, fake_llm, fake_redis, fee_manager):
    application = create_app()
    application.dependency_overrides[get_database] = lambda: db_client
    application.dependency_overrides[get_optional_database] = lambda: db_client
    application.dependency_overrides[get_optional_redis] = lambda: fake_redis
    application.dependency_overrides[get_evolution_client] = lambda: fake_evolution
    application.dependency_overrides[get_llm_client] = lambda: fake_llm
    application.dependency_overrides[get_payment_fee_manager] = lambda: fee_manager
    return application


@pytest_asyncio.fixture(scope="function")
async def test_client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client
