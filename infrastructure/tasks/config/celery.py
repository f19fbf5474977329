"""Celery application configuration"""
from __future__ import annotations

import os

from celery import Celery
from kombu import Queue

from core.config import settings
from core.logging_config import get_logger
from core.settings import load_payment_settings


CELERY_IMPORTS = (
    "infrastructure.tasks.payment_tasks",
)


def _task_time_limit() -> float:
    # Worst case: every retry attempt waits out the gateway and store timeouts
    cfg = load_payment_settings()
    return 3 * (cfg.timeouts.total + cfg.store_timeout_seconds) + 30


celery_app = Celery("listing_promotions")

celery_app.conf.update(
    broker_url=settings.redis.url or os.getenv("CELERY_BROKER_URL"),
    result_backend=settings.redis.url or os.getenv("CELERY_RESULT_BACKEND"),
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # Acknowledge after the work is done so a lost worker re-delivers the task
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=_task_time_limit(),
    result_expires=3600,
    worker_prefetch_multiplier=1,
    # structlog owns the root logger
    worker_hijack_root_logger=False,
    task_default_queue="default",
    task_queues=(
        Queue("payments"),
        Queue("default"),
    ),
    task_routes={
        "payments.*": {"queue": "payments"},
    },
    imports=CELERY_IMPORTS,
)

if (settings.ENVIRONMENT or "production").lower() in {"development", "dev", "test", "testing"}:
    celery_app.conf.task_always_eager = True


logger = get_logger(__name__)


@celery_app.on_after_configure.connect
def _log_configuration(sender, **kwargs):
    logger.info("celery_configured", broker=sender.conf.broker_url, queues=[q.name for q in sender.conf.task_queues])
