"""Celery worker configuration."""

from celery import Celery
from celery.schedules import crontab

from taskhub.config import get_settings

settings = get_settings()

# Create Celery app
celery_app = Celery(
    "taskhub",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=600,  # 10 minutes
    task_soft_time_limit=540,  # 9 minutes
)

# Daily recurring task sweep
celery_app.conf.beat_schedule = {
    "process-recurring-tasks-daily": {
        "task": "taskhub.tasks.process_recurring_tasks",
        "schedule": crontab(
            hour=settings.recurring_sweep_hour,
            minute=settings.recurring_sweep_minute,
        ),
    },
}

# Auto-discover tasks from taskhub.tasks module
celery_app.autodiscover_tasks(["taskhub"])
