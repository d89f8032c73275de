"""Task access control service.

Implements owner-plus-collaborator access control for tasks:
- The owner may do anything with their task.
- Collaborators hold exactly one role (viewer < editor < admin) and may perform
  an action when their role is at least the minimum role for that action.

Ownership is not a role. ``has_access`` and ``has_role`` look only at
collaborator rows; ``can_perform`` and ``authorize_task`` combine them with
the ownership check.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Sequence
from uuid import UUID

import structlog
from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.exceptions import (
    DuplicateCollaboratorError,
    ForbiddenError,
    InvalidCollaboratorError,
    NotFoundError,
    ValidationError,
)
from taskhub.models.collaboration import CollaboratorRole, TaskCollaborator
from taskhub.models.task import Task
from taskhub.models.user import User

logger = structlog.get_logger()


# Role hierarchy for permission checking (higher = more permissions)
ROLE_HIERARCHY = {
    CollaboratorRole.VIEWER: 1,
    CollaboratorRole.EDITOR: 2,
    CollaboratorRole.ADMIN: 3,
}


class TaskAction(str, Enum):
    """Operations a non-owner may be authorized for."""

    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"
    SHARE = "share"


# Minimum collaborator role per action
ACTION_REQUIRED_ROLE = {
    TaskAction.VIEW: CollaboratorRole.VIEWER,
    TaskAction.EDIT: CollaboratorRole.EDITOR,
    TaskAction.DELETE: CollaboratorRole.ADMIN,
    TaskAction.SHARE: CollaboratorRole.ADMIN,
}


def role_rank(role: CollaboratorRole | str) -> int:
    """Position of a role in the hierarchy, 0 for unknown values."""
    try:
        return ROLE_HIERARCHY[CollaboratorRole(role)]
    except ValueError:
        return 0


def has_sufficient_role(user_role: CollaboratorRole | str, required_role: CollaboratorRole | str) -> bool:
    """Check if user_role meets or exceeds required_role."""
    user_rank = role_rank(user_role)
    return user_rank > 0 and user_rank >= role_rank(required_role)


def parse_role(
    value: str | None,
    default: CollaboratorRole | None = None,
) -> CollaboratorRole:
    """Parse a role name case-insensitively.

    Raises:
        ValidationError: if the value is missing without a default, or unknown.
    """
    if value is None:
        if default is None:
            raise ValidationError("Role is required")
        return default
    try:
        return CollaboratorRole(value.strip().lower())
    except ValueError:
        raise ValidationError("Invalid role")


class AccessControlService:
    """Authorization checks and collaborator management for tasks."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get_task(self, task_id: UUID) -> Task | None:
        """Get a task by ID."""
        result = await self.db.execute(select(Task).where(Task.id == task_id))
        return result.unique().scalar_one_or_none()

    async def get_collaborator(
        self,
        task_id: UUID,
        user_id: UUID,
    ) -> TaskCollaborator | None:
        """Get the collaborator row for a (task, user) pair."""
        result = await self.db.execute(
            select(TaskCollaborator).where(
                and_(
                    TaskCollaborator.task_id == task_id,
                    TaskCollaborator.user_id == user_id,
                )
            )
        )
        return result.unique().scalar_one_or_none()

    async def get_collaborator_by_id(
        self,
        collaborator_id: UUID,
    ) -> TaskCollaborator | None:
        """Get a collaborator row by its ID."""
        result = await self.db.execute(
            select(TaskCollaborator).where(TaskCollaborator.id == collaborator_id)
        )
        return result.unique().scalar_one_or_none()

    async def get_task_collaborators(self, task_id: UUID) -> Sequence[TaskCollaborator]:
        """Get all collaborators of a task, oldest first."""
        result = await self.db.execute(
            select(TaskCollaborator)
            .where(TaskCollaborator.task_id == task_id)
            .order_by(TaskCollaborator.added_at.asc())
        )
        return result.unique().scalars().all()

    async def get_user_collaborations(self, user_id: UUID) -> Sequence[TaskCollaborator]:
        """Get all collaborator rows held by a user."""
        result = await self.db.execute(
            select(TaskCollaborator).where(TaskCollaborator.user_id == user_id)
        )
        return result.unique().scalars().all()

    async def get_shared_tasks(self, user_id: UUID) -> Sequence[Task]:
        """Get tasks other users have shared with this user."""
        result = await self.db.execute(
            select(Task)
            .join(TaskCollaborator, TaskCollaborator.task_id == Task.id)
            .where(TaskCollaborator.user_id == user_id)
            .order_by(Task.due_date.asc())
        )
        return result.unique().scalars().all()

    # =========================================================================
    # Checks
    # =========================================================================

    async def has_access(self, task_id: UUID, user_id: UUID) -> bool:
        """True iff the user is a collaborator on the task with any role."""
        return await self.get_collaborator(task_id, user_id) is not None

    async def has_role(
        self,
        task_id: UUID,
        user_id: UUID,
        minimum_role: CollaboratorRole,
    ) -> bool:
        """True iff the user's collaborator role is at least minimum_role."""
        collaborator = await self.get_collaborator(task_id, user_id)
        if collaborator is None:
            return False
        return has_sufficient_role(collaborator.role, minimum_role)

    async def can_perform(self, task: Task, actor_id: UUID, action: TaskAction) -> bool:
        """Owner, or a collaborator holding the role the action requires."""
        if task.owner_id == actor_id:
            return True
        return await self.has_role(task.id, actor_id, ACTION_REQUIRED_ROLE[action])

    async def authorize_task(
        self,
        task_id: UUID,
        actor_id: UUID,
        action: TaskAction = TaskAction.VIEW,
    ) -> Task:
        """
        Load a task and verify the actor may perform the action on it.

        Returns:
            The task if access is granted

        Raises:
            NotFoundError if the task does not exist
            ForbiddenError if the actor lacks the required role
        """
        task = await self.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)

        if not await self.can_perform(task, actor_id, action):
            logger.info(
                "task_access_denied",
                task_id=str(task_id),
                actor_id=str(actor_id),
                action=action.value,
            )
            raise ForbiddenError(
                f"You don't have permission to {action.value} this task"
            )

        return task

    # =========================================================================
    # Collaborator CRUD Operations
    # =========================================================================

    async def add_collaborator(
        self,
        task: Task,
        user: User,
        role: CollaboratorRole,
        added_by: User,
    ) -> TaskCollaborator:
        """Grant a user a role on a task."""
        if await self.has_access(task.id, user.id):
            raise DuplicateCollaboratorError()

        if task.owner_id == user.id:
            raise InvalidCollaboratorError()

        collaborator = TaskCollaborator(
            task_id=task.id,
            user_id=user.id,
            role=CollaboratorRole(role).value,
            added_by_id=added_by.id,
            added_at=datetime.now(timezone.utc),
        )
        self.db.add(collaborator)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent insert for the same pair
            await self.db.rollback()
            raise DuplicateCollaboratorError()
        await self.db.refresh(collaborator)

        logger.info(
            "collaborator_added",
            task_id=str(task.id),
            user_id=str(user.id),
            role=collaborator.role,
            added_by=str(added_by.id),
        )

        return collaborator

    async def update_role(
        self,
        collaborator_id: UUID,
        role: CollaboratorRole,
    ) -> TaskCollaborator:
        """Change a collaborator's role."""
        collaborator = await self.get_collaborator_by_id(collaborator_id)
        if collaborator is None:
            raise NotFoundError("Collaborator", collaborator_id)

        collaborator.role = CollaboratorRole(role).value
        await self.db.commit()
        await self.db.refresh(collaborator)

        logger.info(
            "collaborator_role_updated",
            collaborator_id=str(collaborator_id),
            role=collaborator.role,
        )
        return collaborator

    async def remove_collaborator(self, collaborator_id: UUID) -> None:
        """Revoke a collaborator's access."""
        collaborator = await self.get_collaborator_by_id(collaborator_id)
        if collaborator is None:
            raise NotFoundError("Collaborator", collaborator_id)

        await self.db.delete(collaborator)
        await self.db.commit()

        logger.info("collaborator_removed", collaborator_id=str(collaborator_id))
