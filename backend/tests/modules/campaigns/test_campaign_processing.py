# tests/modules/campaigns/test_campaign_processing.py
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from vitrine.core.errors import ConflictError
from vitrine.core.retry import CircuitBreaker
from vitrine.modules.campaigns.models import CampaignCreate
from vitrine.modules.campaigns.repository import CampaignLogRepository, CampaignRepository
from vitrine.modules.campaigns.services import CampaignService
from vitrine.modules.customers.repository import CustomerRepository

pytestmark = pytest.mark.asyncio


async def no_sleep(_):
    return None


def build_service(db, evolution, breaker=None, **kwargs) -> CampaignService:
    options = {"max_retries": 3, "batch_size": 5, "sleep": no_sleep, **kwargs}
    return CampaignService(
        CampaignRepository(db),
        CampaignLogRepository(db),
        CustomerRepository(db),
        evolution,
        breaker or CircuitBreaker(threshold=5, timeout=60),
        **options,
    )


async def add_customers(db, *customers):
    repo = CustomerRepository(db)
    return [await repo.create(c) for c in customers]


async def due_campaign(service, **overrides):
    data = {
        "name": "Coleção de Inverno",
        "message_template": "Oi {{name}}, chegou a coleção nova!",
        "segment": {"tag": "vip"},
        "scheduled_at": datetime.utcnow() - timedelta(minutes=1),
        **overrides,
    }
    return await service.create_campaign(CampaignCreate(**data))


async def test_due_campaign_is_sent_to_segment_and_completed(db_client, fake_evolution):
    await add_customers(
        db_client,
        {"full_name": "Ana", "phone": "(11) 91111-0000", "segment": "vip"},
        {"full_name": "Bia", "phone": "11922220000", "segment": "vip"},
        {"full_name": "Caio", "phone": None, "segment": "vip"},
        {"full_name": "Duda", "phone": "11933330000", "segment": "atacado"},
    )
    service = build_service(db_client, fake_evolution)
    campaign = await due_campaign(service)

    processed = await service.process_due_campaigns()

    assert processed == [
        {"campaign": "Coleção de Inverno", "campaign_id": campaign.id, "sent": 2, "failed": 0, "skipped": 1, "already_sent": 0}
    ]
    assert [m["number"] for m in fake_evolution.sent] == ["5511911110000", "5511922220000"]
    assert fake_evolution.sent[0]["text"] == "Oi Ana, chegou a coleção nova!"

    stored = await service.get_campaign(campaign.id)
    assert stored.status == "completed"
    assert (stored.sent_count, stored.failed_count, stored.skipped_count) == (2, 0, 1)
    logs = await service.log_repo.list_for_campaign(campaign.id)
    assert {log.provider_message_id for log in logs} == {"msg_1", "msg_2"}


async def test_rerun_never_messages_a_recipient_twice(db_client, fake_evolution):
    await add_customers(
        db_client,
        {"full_name": "Ana", "phone": "11911110000", "segment": "vip"},
        {"full_name": "Bia", "phone": "11922220000", "segment": "vip"},
    )
    fake_evolution.failing_numbers.add("5511922220000")
    service = build_service(db_client, fake_evolution)
    campaign = await due_campaign(service)

    first = await service.process_due_campaigns()
    assert (first[0]["sent"], first[0]["failed"]) == (1, 1)
    assert fake_evolution.calls == 1 + 3  # Bia: 3 tentativas

    fake_evolution.failing_numbers.clear()
    await service.schedule_campaign(campaign.id, datetime.utcnow() - timedelta(seconds=1))
    second = await service.process_due_campaigns()

    assert (second[0]["sent"], second[0]["already_sent"], second[0]["failed"]) == (1, 1, 0)
    assert [m["number"] for m in fake_evolution.sent] == ["5511911110000", "5511922220000"]

    bia_log = await service.log_repo.get_by({"campaign_id": campaign.id, "phone": "5511922220000"})
    assert bia_log.status == "sent"
    assert bia_log.attempts == 4
    assert await service.log_repo.count({"campaign_id": campaign.id}) == 2
    stored = await service.get_campaign(campaign.id)
    assert (stored.sent_count, stored.failed_count) == (2, 0)


async def test_open_circuit_fails_remaining_recipients_and_completes(db_client, fake_evolution):
    customers = await add_customers(
        db_client,
        *({"full_name": f"Cliente {i}", "phone": f"1190000000{i}", "segment": "vip"} for i in range(4)),
    )
    fake_evolution.failing_numbers.update(f"55{c.phone}" for c in customers)
    breaker = CircuitBreaker(threshold=2, timeout=60)
    service = build_service(db_client, fake_evolution, breaker=breaker, max_retries=1)
    campaign = await due_campaign(service)

    processed = await service.process_due_campaigns()

    assert processed[0]["failed"] == 4
    assert fake_evolution.calls == 2  # breaker abriu após 2 falhas
    assert breaker.state == "open"
    logs = await service.log_repo.list_for_campaign(campaign.id)
    assert [log.error_message for log in logs[2:]] == ["Circuit breaker is OPEN"] * 2
    assert (await service.get_campaign(campaign.id)).status == "completed"


async def test_only_due_scheduled_campaigns_are_claimed(db_client, fake_evolution):
    service = build_service(db_client, fake_evolution)
    await service.create_campaign(CampaignCreate(name="Rascunho", message_template="x"))
    future = await due_campaign(service, name="Futuro", scheduled_at=datetime.utcnow() + timedelta(hours=1))
    due = await due_campaign(service, name="Agora")

    processed = await service.process_due_campaigns()

    assert [p["campaign_id"] for p in processed] == [due.id]
    assert (await service.get_campaign(future.id)).status == "scheduled"


async def test_stale_processing_campaign_is_reclaimed(db_client, fake_evolution):
    service = build_service(db_client, fake_evolution, stale_after=timedelta(minutes=30))
    campaign = await due_campaign(service)
    await service.campaign_repo.update(
        campaign.id, {"status": "processing", "started_at": datetime.utcnow() - timedelta(hours=2)}
    )
    fresh = await due_campaign(service, name="Em andamento")
    await service.campaign_repo.update(fresh.id, {"status": "processing", "started_at": datetime.utcnow()})

    processed = await service.process_due_campaigns()

    assert [p["campaign_id"] for p in processed] == [campaign.id]
    assert (await service.get_campaign(fresh.id)).status == "processing"


async def test_batch_size_limits_campaigns_per_run(db_client, fake_evolution):
    service = build_service(db_client, fake_evolution, batch_size=2)
    for i in range(3):
        await due_campaign(service, name=f"C{i}")
    assert len(await service.process_due_campaigns()) == 2
    assert len(await service.process_due_campaigns()) == 1
    assert await service.process_due_campaigns() == []


async def test_schedule_rejects_processing_campaign(db_client, fake_evolution):
    service = build_service(db_client, fake_evolution)
    campaign = await due_campaign(service)
    await service.campaign_repo.update(campaign.id, {"status": "processing"})
    with pytest.raises(ConflictError):
        await service.schedule_campaign(campaign.id)


async def test_campaign_error_marks_it_failed_and_batch_continues(db_client, fake_evolution, monkeypatch):
    service = build_service(db_client, fake_evolution)
    broken = await due_campaign(service, name="Quebrada", scheduled_at=datetime.utcnow() - timedelta(minutes=5))
    healthy = await due_campaign(service, name="Saudável", segment={"tag": "atacado"})
    original = service.customer_repo.list_by_segment

    async def list_by_segment(segment):
        if segment == broken.segment:
            raise RuntimeError("db down")
        return await original(segment)

    monkeypatch.setattr(service.customer_repo, "list_by_segment", AsyncMock(side_effect=list_by_segment))

    processed = await service.process_due_campaigns()

    assert processed[0] == {"campaign": "Quebrada", "campaign_id": broken.id, "error": "db down"}
    assert processed[1]["campaign_id"] == healthy.id
    stored = await service.get_campaign(broken.id)
    assert stored.status == "failed"
    assert stored.last_error == "db down"
    assert stored.completed_at is not None
    assert (await service.get_campaign(healthy.id)).status == "completed"
    # failed não é reclamada de novo
    assert await service.process_due_campaigns() == []
