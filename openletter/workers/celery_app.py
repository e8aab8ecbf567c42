"""Celery application configuration."""

from celery import Celery

from openletter.core.config import settings

celery_app = Celery(
    "openletter",
    broker=str(settings.redis_url),
    backend=str(settings.redis_url),
    include=[
        "openletter.workers.tasks.signatures",
    ],
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Task safety limits
    task_time_limit=120,
    task_soft_time_limit=90,
    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Result backend settings
    result_expires=3600,
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,
    # Default queue name (must match worker -Q flag)
    task_default_queue="default",
    task_routes={
        "tasks.signatures.*": {"queue": "email"},
    },
)


class BaseTask(celery_app.Task):  # type: ignore[misc, name-defined]
    """Base task class retrying with exponential backoff."""

    abstract = True
    autoretry_for = (Exception,)
    retry_backoff = True
    retry_backoff_max = 600
    retry_jitter = True
    max_retries = 3
