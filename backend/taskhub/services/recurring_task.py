"""Recurring task service for generating task instances from recurring tasks."""

from datetime import date, timedelta
from typing import Sequence
from uuid import UUID

import structlog
from dateutil.relativedelta import relativedelta
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.exceptions import NotRecurringError, ValidationError
from taskhub.models.task import RecurrencePattern, Task

logger = structlog.get_logger()


def compute_next_due_date(
    current_due_date: date,
    pattern: RecurrencePattern | str | None,
    interval: int | None = None,
) -> date:
    """Calculate the due date of the occurrence after current_due_date.

    Month and year steps clamp to the last day of the target month, so
    2024-01-31 + 1 month is 2024-02-29 and 2024-02-29 + 1 year is 2025-02-28.
    CUSTOM is stepped like DAILY.
    """
    step = interval if interval and interval >= 1 else 1

    if pattern is None:
        pattern = RecurrencePattern.DAILY
    try:
        pattern = RecurrencePattern(pattern)
    except ValueError:
        raise ValidationError(f"Unknown recurrence pattern: {pattern}")

    if pattern == RecurrencePattern.WEEKLY:
        delta = relativedelta(weeks=step)
    elif pattern == RecurrencePattern.BIWEEKLY:
        delta = relativedelta(weeks=2 * step)
    elif pattern == RecurrencePattern.MONTHLY:
        delta = relativedelta(months=step)
    elif pattern == RecurrencePattern.YEARLY:
        delta = relativedelta(years=step)
    else:
        # DAILY and CUSTOM
        delta = relativedelta(days=step)

    return current_due_date + delta


class RecurringTaskService:
    """Service for materializing instances of recurring tasks."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # Instance Generation
    # =========================================================================

    async def create_instance(self, task: Task) -> Task:
        """Create the next instance of a recurring task."""
        instance, _ = await self._materialize_instance(task)
        await self.db.commit()
        await self.db.refresh(instance)
        return instance

    async def get_instances(self, task_id: UUID) -> Sequence[Task]:
        """Get all instances generated from a recurring task."""
        result = await self.db.execute(
            select(Task)
            .where(Task.parent_task_id == task_id)
            .order_by(Task.due_date.asc())
        )
        return result.unique().scalars().all()

    async def process_due_tasks(self, today: date | None = None) -> list[Task]:
        """Generate instances for all due recurring tasks. Called by Celery.

        Returns only the instances created by this run, reloaded after the
        loop so none of them is left expired by a later task's rollback.
        Instances that already existed (e.g. created manually) are counted
        as reused.
        """
        today = today or date.today()

        result = await self.db.execute(
            select(Task.id).where(
                and_(
                    Task.is_recurring.is_(True),
                    Task.completed.is_(False),
                    Task.due_date <= today,
                )
            )
            .order_by(Task.due_date.asc(), Task.created_at.asc())
        )
        task_ids = list(result.scalars().all())

        created_ids: list[UUID] = []
        reused = 0
        skipped = 0
        for task_id in task_ids:
            try:
                task = await self.db.get(Task, task_id, populate_existing=True)
                if task is None:
                    continue

                # Recurrence has ended
                if task.recurrence_end_date and task.recurrence_end_date < today:
                    skipped += 1
                    continue

                instance, created = await self._materialize_instance(task)
                instance_id = instance.id
                task.completed = True
                await self.db.commit()
                if created:
                    created_ids.append(instance_id)
                else:
                    reused += 1

            except Exception as e:
                await self.db.rollback()
                logger.error(
                    "recurring_instance_creation_failed",
                    task_id=str(task_id),
                    error=str(e),
                )
                continue

        logger.info(
            "recurring_tasks_processed",
            tasks_due=len(task_ids),
            tasks_skipped=skipped,
            instances_created=len(created_ids),
            instances_reused=reused,
        )

        return await self._load_tasks(created_ids)

    async def _load_tasks(self, task_ids: list[UUID]) -> list[Task]:
        """Load tasks by id, fresh from the database, in the given order."""
        if not task_ids:
            return []
        result = await self.db.execute(
            select(Task)
            .where(Task.id.in_(task_ids))
            .execution_options(populate_existing=True)
        )
        tasks_by_id = {task.id: task for task in result.unique().scalars().all()}
        return [tasks_by_id[task_id] for task_id in task_ids if task_id in tasks_by_id]

    async def _materialize_instance(self, task: Task) -> tuple[Task, bool]:
        """Build and flush the next instance.

        Returns the instance and whether it was created; an instance that
        already exists for the next due date is returned with False.
        """
        if not task.is_recurring:
            raise NotRecurringError()

        next_due_date = compute_next_due_date(
            task.due_date,
            task.recurrence_pattern,
            task.recurrence_interval,
        )

        # Sweep and manual triggers can race; one instance per due date
        existing_result = await self.db.execute(
            select(Task).where(
                and_(
                    Task.parent_task_id == task.id,
                    Task.due_date == next_due_date,
                )
            )
        )
        existing = existing_result.unique().scalars().first()
        if existing is not None:
            logger.info(
                "recurring_instance_exists",
                task_id=str(task.id),
                instance_id=str(existing.id),
                due_date=str(next_due_date),
            )
            return existing, False

        instance = Task(
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            owner_id=task.owner_id,
            categories=list(task.categories),
            parent_task_id=task.id,
            completed=False,
            due_date=next_due_date,
        )

        # Keep the reminder the same number of days ahead of the due date
        if task.reminder_date is not None:
            days_before = (task.due_date - task.reminder_date).days
            instance.reminder_date = next_due_date - timedelta(days=days_before)

        self.db.add(instance)
        await self.db.flush()

        logger.info(
            "recurring_instance_created",
            task_id=str(task.id),
            instance_id=str(instance.id),
            due_date=str(next_due_date),
        )

        return instance, True
