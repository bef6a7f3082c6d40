"""
Celery application for background widget jobs.

Broker/backend: Redis (REDIS_URL env).
Default queue: widgets.
"""
from celery import Celery

from reviewhub.settings import get_settings

settings = get_settings()

celery_app = Celery(
    "reviewhub",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_time_limit=10 * 60,
    task_soft_time_limit=5 * 60,
    task_default_queue="widgets",
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
)

# Auto-discover tasks in reviewhub.worker.tasks
celery_app.autodiscover_tasks(["reviewhub.worker"])
