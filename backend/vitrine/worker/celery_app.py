# vitrine/worker/celery_app.py

from datetime import timedelta

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

from vitrine.core.config import settings
from vitrine.core.logging_config import setup_logging

celery_app = Celery(
    "vitrine_tasks",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "vitrine.worker.tasks_campaigns",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    beat_schedule={
        "process-due-campaigns": {
            "task": "campaigns.process_due",
            "schedule": timedelta(minutes=1),
        },
    },
)


@celery_setup_logging.connect
def configure_worker_logging(**kwargs):
    # Worker loga pelo Loguru, com o mesmo formato da API
    setup_logging()
