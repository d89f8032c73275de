"""Task collaborator API endpoints."""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.api.v1.auth import CurrentUser
from taskhub.db.session import get_db_session
from taskhub.exceptions import ValidationError
from taskhub.models.collaboration import CollaboratorRole, TaskCollaborator
from taskhub.models.user import User
from taskhub.services.access_control import AccessControlService, TaskAction, parse_role

router = APIRouter()
logger = structlog.get_logger()


class CollaboratorCreate(BaseModel):
    """Share a task with another user."""

    username: str = Field(..., min_length=1)
    role: str | None = None


class CollaboratorUpdate(BaseModel):
    """Change a collaborator's role."""

    role: str | None = None


class CollaboratorResponse(BaseModel):
    """Collaborator response."""

    id: UUID
    task_id: UUID
    user_id: UUID
    username: str | None = None
    role: str
    added_by_id: UUID | None
    added_at: datetime

    class Config:
        from_attributes = True

    @classmethod
    def from_collaborator(cls, collaborator: TaskCollaborator) -> "CollaboratorResponse":
        response = cls.model_validate(collaborator)
        if collaborator.user is not None:
            response.username = collaborator.user.username
        return response


async def get_task_collaborator(
    access: AccessControlService,
    task_id: UUID,
    collaborator_id: UUID,
) -> TaskCollaborator:
    """Load a collaborator row, requiring that it belongs to the task."""
    collaborator = await access.get_collaborator_by_id(collaborator_id)
    if collaborator is None or collaborator.task_id != task_id:
        raise ValidationError("Collaborator does not belong to the specified task")
    return collaborator


@router.get("/{task_id}/collaborators", response_model=list[CollaboratorResponse])
async def list_collaborators(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[CollaboratorResponse]:
    """List collaborators of a task."""
    access = AccessControlService(db)
    await access.authorize_task(task_id, current_user.id, TaskAction.VIEW)

    collaborators = await access.get_task_collaborators(task_id)
    return [CollaboratorResponse.from_collaborator(c) for c in collaborators]


@router.post(
    "/{task_id}/collaborators",
    response_model=CollaboratorResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_collaborator(
    task_id: UUID,
    collaborator_data: CollaboratorCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> CollaboratorResponse:
    """Share a task with a user. Requires admin role for collaborators."""
    access = AccessControlService(db)
    task = await access.authorize_task(task_id, current_user.id, TaskAction.SHARE)

    result = await db.execute(select(User).where(User.username == collaborator_data.username))
    user = result.scalar_one_or_none()
    if user is None:
        raise ValidationError("User not found")

    role = parse_role(collaborator_data.role, default=CollaboratorRole.VIEWER)
    collaborator = await access.add_collaborator(task, user, role, current_user)
    return CollaboratorResponse.from_collaborator(collaborator)


@router.put("/{task_id}/collaborators/{collaborator_id}", response_model=CollaboratorResponse)
async def update_collaborator(
    task_id: UUID,
    collaborator_id: UUID,
    collaborator_data: CollaboratorUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> CollaboratorResponse:
    """Change a collaborator's role. Requires admin role for collaborators."""
    access = AccessControlService(db)
    await access.authorize_task(task_id, current_user.id, TaskAction.SHARE)
    await get_task_collaborator(access, task_id, collaborator_id)

    role = parse_role(collaborator_data.role)
    collaborator = await access.update_role(collaborator_id, role)
    return CollaboratorResponse.from_collaborator(collaborator)


@router.delete(
    "/{task_id}/collaborators/{collaborator_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_collaborator(
    task_id: UUID,
    collaborator_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    """Revoke a collaborator's access. Requires admin role for collaborators."""
    access = AccessControlService(db)
    await access.authorize_task(task_id, current_user.id, TaskAction.SHARE)
    await get_task_collaborator(access, task_id, collaborator_id)

    await access.remove_collaborator(collaborator_id)
