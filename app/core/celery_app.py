from celery import Celery
from app.core.config import settings
import sys

# Create Celery app
celery_app = Celery(
    "stocktake_backend",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "app.workers.celery_tasks.aggregation_tasks",
    ]
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.TIMEZONE,
    enable_utc=True,
    result_expires=3600,
)

# Windows-specific configuration
if sys.platform == 'win32':
    celery_app.conf.update(
        worker_pool='threads',
        worker_concurrency=4
    )

celery_app.conf.beat_schedule = {
    'refresh-count-totals': {
        'task': 'app.workers.celery_tasks.aggregation_tasks.refresh_open_event_totals',
        'schedule': settings.AGGREGATION_REFRESH_SECONDS,
    },
}

