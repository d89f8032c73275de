"""Subtask service for ordered checklists on tasks."""

from datetime import datetime, timezone
from typing import Sequence
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.models.task import Subtask, Task

logger = structlog.get_logger()


class SubtaskService:
    """Service for managing subtasks of a task."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # Subtask CRUD Operations
    # =========================================================================

    async def create_subtask(
        self,
        task_id: UUID,
        title: str,
        description: str | None = None,
        position: int | None = None,
        completed: bool = False,
    ) -> Subtask:
        """Create a subtask, appending it at the end unless a position is given."""
        if position is None:
            count_result = await self.db.execute(
                select(func.count()).select_from(Subtask).where(Subtask.task_id == task_id)
            )
            position = (count_result.scalar() or 0) + 1

        subtask = Subtask(
            task_id=task_id,
            title=title,
            description=description,
            position=position,
            completed=completed,
            completed_at=datetime.now(timezone.utc) if completed else None,
        )
        self.db.add(subtask)
        await self.db.commit()
        await self.db.refresh(subtask)

        logger.info("subtask_created", subtask_id=str(subtask.id), task_id=str(task_id))
        return subtask

    async def get_subtask(self, subtask_id: UUID) -> Subtask | None:
        """Get a subtask by ID."""
        result = await self.db.execute(select(Subtask).where(Subtask.id == subtask_id))
        return result.scalar_one_or_none()

    async def get_task_subtasks(self, task_id: UUID) -> Sequence[Subtask]:
        """Get subtasks of a task in display order."""
        result = await self.db.execute(
            select(Subtask)
            .where(Subtask.task_id == task_id)
            .order_by(Subtask.position.asc(), Subtask.created_at.asc())
        )
        return result.scalars().all()

    async def update_subtask(
        self,
        subtask: Subtask,
        title: str | None = None,
        description: str | None = None,
        completed: bool | None = None,
        position: int | None = None,
    ) -> Subtask:
        """Update a subtask, tracking when it was completed."""
        if title is not None:
            subtask.title = title
        if description is not None:
            subtask.description = description
        if position is not None:
            subtask.position = position
        if completed is not None:
            subtask.completed = completed
            if completed and subtask.completed_at is None:
                subtask.completed_at = datetime.now(timezone.utc)
            elif not completed:
                subtask.completed_at = None

        await self.db.commit()
        await self.db.refresh(subtask)

        logger.info("subtask_updated", subtask_id=str(subtask.id))
        return subtask

    async def delete_subtask(self, subtask: Subtask) -> None:
        """Delete a subtask."""
        await self.db.delete(subtask)
        await self.db.commit()

        logger.info("subtask_deleted", subtask_id=str(subtask.id))

    async def reorder_subtasks(
        self,
        task_id: UUID,
        subtask_ids: list[UUID],
    ) -> Sequence[Subtask]:
        """Assign positions 1..n following the given ID order.

        IDs that do not belong to the task are ignored.
        """
        subtasks = {s.id: s for s in await self.get_task_subtasks(task_id)}

        for index, subtask_id in enumerate(subtask_ids, start=1):
            subtask = subtasks.get(subtask_id)
            if subtask is not None:
                subtask.position = index

        await self.db.commit()

        logger.info("subtasks_reordered", task_id=str(task_id), count=len(subtask_ids))
        return await self.get_task_subtasks(task_id)

    # =========================================================================
    # Task Completion
    # =========================================================================

    async def sync_task_completion(self, task: Task) -> bool:
        """Mark the task completed iff it has subtasks and all are completed.

        Tasks without subtasks are left untouched. Returns whether every
        subtask is completed.
        """
        subtasks = await self.get_task_subtasks(task.id)
        if not subtasks:
            return False

        all_completed = all(s.completed for s in subtasks)
        if task.completed != all_completed:
            task.completed = all_completed
            await self.db.commit()
            logger.info(
                "task_completion_synced",
                task_id=str(task.id),
                completed=all_completed,
            )

        return all_completed
