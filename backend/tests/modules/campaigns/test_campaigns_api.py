# tests/modules/campaigns/test_campaigns_api.py
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import status

pytestmark = pytest.mark.asyncio

CRON_HEADERS = {"Authorization": "Bearer test-cron-secret"}


async def test_create_and_schedule_campaign(test_client):
    created = await test_client.post(
        "/api/v1/campaigns",
        json={"name": "Black Friday", "message_template": "Oi {{name}}!", "segment": {"tag": "vip"}},
    )
    assert created.status_code == status.HTTP_201_CREATED
    campaign = created.json()
    assert campaign["status"] == "draft"
    assert "id" in campaign and "_id" not in campaign

    when = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
    scheduled = await test_client.post(f"/api/v1/campaigns/{campaign['id']}/schedule", json={"scheduled_at": when})
    assert scheduled.status_code == 200
    assert scheduled.json()["status"] == "scheduled"

    listed = await test_client.get("/api/v1/campaigns", params={"status": "scheduled"})
    assert [c["id"] for c in listed.json()] == [campaign["id"]]


async def test_unknown_campaign_is_404(test_client):
    response = await test_client.get("/api/v1/campaigns/64b7f0000000000000000000")
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


async def test_cron_requires_bearer_secret(test_client):
    missing = await test_client.get("/api/v1/cron/process-campaigns")
    assert missing.status_code == status.HTTP_401_UNAUTHORIZED
    assert missing.json()["error"] == "Unauthorized"

    wrong = await test_client.get("/api/v1/cron/process-campaigns", headers={"Authorization": "Bearer nope"})
    assert wrong.status_code == status.HTTP_401_UNAUTHORIZED


async def test_cron_with_nothing_due(test_client):
    response = await test_client.get("/api/v1/cron/process-campaigns", headers=CRON_HEADERS)
    assert response.status_code == 200
    assert response.json() == {"message": "No campaigns to process"}


async def test_cron_processes_due_campaign_and_exposes_logs(test_client, fake_evolution):
    await test_client.post("/api/v1/customers", json={"full_name": "Ana", "phone": "11911110000", "segment": "vip"})
    past = (datetime.now(timezone.utc) - timedelta(minutes=5)).isoformat()
    created = await test_client.post(
        "/api/v1/campaigns",
        json={"name": "Liquida", "message_template": "Oi {{name}}", "segment": {"tag": "vip"}, "scheduled_at": past},
    )
    campaign_id = created.json()["id"]
    assert created.json()["status"] == "scheduled"

    response = await test_client.get("/api/v1/cron/process-campaigns", headers=CRON_HEADERS)
    body = response.json()
    assert body["success"] is True
    assert body["processed"][0]["sent"] == 1
    assert fake_evolution.sent == [{"number": "5511911110000", "text": "Oi Ana"}]

    logs = await test_client.get(f"/api/v1/campaigns/{campaign_id}/logs")
    assert [(log["status"], log["attempts"]) for log in logs.json()] == [("sent", 1)]
