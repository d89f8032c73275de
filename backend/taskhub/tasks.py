"""Celery background tasks."""

import asyncio
from datetime import date

import structlog

from taskhub.worker import celery_app

logger = structlog.get_logger()


async def run_recurring_sweep(today: date | None = None) -> int:
    """Run one sweep in its own session and return the number of instances created."""
    from taskhub.db.session import worker_session
    from taskhub.services.recurring_task import RecurringTaskService

    async with worker_session() as db:
        service = RecurringTaskService(db)
        created_tasks = await service.process_due_tasks(today)
        return len(created_tasks)


@celery_app.task(bind=True, name="taskhub.tasks.process_recurring_tasks")
def process_recurring_tasks(self, today: str | None = None) -> dict:
    """
    Create the next instance of every due recurring task.

    Scheduled daily by Celery Beat (see ``taskhub.worker``). ``today`` is an
    optional ISO date used to re-run the sweep for a specific day.
    """
    try:
        instances_created = asyncio.run(
            run_recurring_sweep(date.fromisoformat(today) if today else None)
        )
        logger.info(
            "recurring_sweep_completed",
            instances_created=instances_created,
        )
        return {
            "status": "success",
            "instances_created": instances_created,
        }
    except Exception as e:
        logger.error(
            "recurring_sweep_failed",
            error=str(e),
        )
        return {
            "status": "error",
            "error": str(e),
        }
