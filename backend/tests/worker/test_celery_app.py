# tests/worker/test_celery_app.py
from datetime import timedelta

from vitrine.worker.celery_app import celery_app
from vitrine.worker import tasks_campaigns  # noqa: F401  registra a task


def test_campaign_task_is_registered_and_scheduled():
    assert "campaigns.process_due" in celery_app.tasks
    schedule = celery_app.conf.beat_schedule["process-due-campaigns"]
    assert schedule["task"] == "campaigns.process_due"
    assert schedule["schedule"] == timedelta(minutes=1)


def test_worker_settings():
    assert celery_app.conf.task_serializer == "json"
    assert celery_app.conf.task_acks_late is True
    assert celery_app.conf.worker_prefetch_multiplier == 1
