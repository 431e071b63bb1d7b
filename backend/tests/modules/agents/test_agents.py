# tests/modules/agents/test_agents.py
import pytest

from vitrine.core.errors import ServiceUnavailableError, UpstreamServiceError
from vitrine.modules.agents.bus import EventBus
from vitrine.modules.agents.repository import AgentReportRepository
from vitrine.modules.agents.services import BIAgent, MarketplacesAgent, SecurityAgent, build_agent_registry, engagement_rate

pytestmark = pytest.mark.asyncio


def test_engagement_rate_prefers_impressions():
    assert engagement_rate({"impressions": 2000, "reach": 1000, "clicks": 50}) == 2.5
    assert engagement_rate({"reach": 1000, "clicks": 50}) == 5.0
    assert engagement_rate({"clicks": 3}) == 300.0


async def test_event_bus_without_redis_drops_events():
    assert await EventBus(None).publish("agent:x:y", {"a": 1}) is False


async def test_llm_answer_is_persisted_as_report(db_client, fake_llm):
    fake_llm.reply = '```json\n{"revenue_prediction": 5000, "churn_risk": "Low", "insight": "ok"}\n```'
    agent = BIAgent(fake_llm, EventBus(None), AgentReportRepository(db_client))

    result = await agent.generate_report([1000, 2000], active_clients=40, churn=5)

    assert result.source == "fake"
    assert result.result["revenue_prediction"] == 5000
    reports = await AgentReportRepository(db_client).list_for_agent("bi")
    assert len(reports) == 1
    assert (reports[0].kind, reports[0].source) == ("bi_report", "fake")
    assert reports[0].input["active_clients"] == 40


async def test_fallback_when_llm_unavailable(fake_llm):
    fake_llm.error = ServiceUnavailableError("GEMINI_API_KEY not configured")
    agent = BIAgent(fake_llm, EventBus(None))

    result = await agent.generate_report([1000, 2000], active_clients=40, churn=60)

    assert result.source == "fallback"
    assert result.result["revenue_prediction"] == 2200
    assert result.result["churn_risk"] == "High"


async def test_unparseable_llm_answer_falls_back(fake_llm):
    fake_llm.reply = "desculpe, não consigo"
    result = await MarketplacesAgent(fake_llm, EventBus(None)).suggest_pricing("SKU1", 120, 101, "wholesale")
    assert result.source == "fallback"
    assert result.result["suggested_price"] == 70


async def test_suspicious_log_raises_security_alert(fake_llm, fake_redis):
    fake_llm.error = ServiceUnavailableError("down")
    agent = SecurityAgent(fake_llm, EventBus(fake_redis))

    result = await agent.analyze_log({"actor": "x", "action": "login unauthorized"})

    assert result.result["suspicious"] is True
    assert result.result["risk_level"] == "high"
    assert fake_redis.published[0][0] == "agent:security:security_alert"


async def test_create_campaign_stores_draft_and_publishes(db_client, fake_llm, fake_redis, fake_evolution):
    agents = build_agent_registry(db_client, fake_llm, fake_redis, fake_evolution)

    created = await agents.marketing.create_campaign("Verão", "vip", "Oi {{name}}")

    assert created["status"] == "success"
    stored = await agents.marketing.campaigns.get_by_id(created["id"])
    assert (stored.status, stored.segment) == ("draft", {"tag": "vip"})
    channel, payload = fake_redis.published[0]
    assert channel == "agent:marketing:campaign_created"
    assert payload["name"] == "Verão"


async def test_send_message_failure_publishes_event(db_client, fake_llm, fake_redis, fake_evolution):
    fake_evolution.failing_numbers.add("5511988887777")
    agents = build_agent_registry(db_client, fake_llm, fake_redis, fake_evolution)

    with pytest.raises(UpstreamServiceError):
        await agents.integrations.send_message("11988887777", "oi")
    assert fake_redis.published[-1][0] == "agent:integrations:message_failed"


async def test_analyze_performance_endpoint_adds_engagement_rate(test_client, fake_llm):
    fake_llm.reply = '{"type": "scaling", "suggestion": "Aumente o orçamento", "priority": "medium"}'
    response = await test_client.post(
        "/api/v1/agents/marketing/analyze-performance",
        json={"campaign_id": "64b7f0000000000000000000", "metrics": {"impressions": 1000, "clicks": 25}},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "fake"
    assert body["result"]["engagement_rate"] == 2.5


async def test_wholesale_price_endpoint(test_client):
    response = await test_client.post("/api/v1/agents/marketplaces/wholesale-price", json={"base_price": 100, "qty": 12})
    assert response.json() == {"base_price": 100.0, "qty": 12, "wholesale_price": 75}


async def test_sync_stock_endpoint_publishes(test_client, fake_redis):
    response = await test_client.post("/api/v1/agents/marketplaces/sync-stock", json={"sku": "VESTIDO-01", "qty": 8})
    assert response.json()["marketplaces"] == ["mercadolivre", "shopee", "shein"]
    assert fake_redis.published == [
        ("agent:marketplaces:stock_synced", {"sku": "VESTIDO-01", "qty": 8, "marketplaces": ["mercadolivre", "shopee", "shein"]})
    ]


async def test_send_message_endpoint_reports_upstream_failure(test_client, fake_evolution, fake_redis):
    fake_evolution.failing_numbers.add("5511988887777")

    response = await test_client.post("/api/v1/agents/integrations/send-message", json={"to": "11988887777", "message": "oi"})

    assert response.status_code == 502
    assert response.json()["code"] == "upstream_error"
    assert fake_redis.published[-1] == ("agent:integrations:message_failed", {"to": "5511988887777", "error": "connection refused"})


async def test_send_message_endpoint_success(test_client, fake_evolution):
    response = await test_client.post("/api/v1/agents/integrations/send-message", json={"to": "11988887777", "message": "oi"})
    assert response.json() == {"success": True, "result": {"key": {"id": "msg_1"}}}
    assert fake_evolution.sent == [{"number": "5511988887777", "text": "oi"}]
