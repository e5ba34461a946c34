"""
Celery application configuration for background tasks.
"""

from celery import Celery
from ..config import get_settings

settings = get_settings()

# Create Celery app
celery_app = Celery(
    "ticket_sales_platform",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "ticket_sales_platform.tasks.warmup_tasks",
    ]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    # A full 50x50 probe of every event against a slow service takes a while
    task_time_limit=60 * 60,
    task_soft_time_limit=55 * 60,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)
