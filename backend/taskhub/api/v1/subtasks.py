"""Subtask API endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.api.v1.auth import CurrentUser
from taskhub.db.session import get_db_session
from taskhub.exceptions import NotFoundError, ValidationError
from taskhub.models.task import Subtask
from taskhub.services.access_control import AccessControlService, TaskAction
from taskhub.services.subtask import SubtaskService

router = APIRouter()


class SubtaskCreate(BaseModel):
    """Create a subtask."""

    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    position: int | None = Field(None, ge=1)
    completed: bool = False


class SubtaskUpdate(BaseModel):
    """Update a subtask."""

    title: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = None
    position: int | None = Field(None, ge=1)
    completed: bool | None = None


class SubtaskReorder(BaseModel):
    """Subtask IDs in their new order."""

    subtask_ids: list[UUID]


class SubtaskResponse(BaseModel):
    """Subtask response."""

    id: UUID
    task_id: UUID
    title: str
    description: str | None
    completed: bool
    completed_at: datetime | None
    position: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


async def get_task_subtask(service: SubtaskService, task_id: UUID, subtask_id: UUID) -> Subtask:
    """Load a subtask, requiring that it belongs to the task."""
    subtask = await service.get_subtask(subtask_id)
    if subtask is None:
        raise NotFoundError("Subtask", subtask_id)
    if subtask.task_id != task_id:
        raise ValidationError("Subtask does not belong to the specified task")
    return subtask


@router.get("/{task_id}/subtasks", response_model=list[SubtaskResponse])
async def list_subtasks(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[Subtask]:
    """List subtasks of a task in order."""
    await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.VIEW)
    return list(await SubtaskService(db).get_task_subtasks(task_id))


@router.post(
    "/{task_id}/subtasks",
    response_model=SubtaskResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_subtask(
    task_id: UUID,
    subtask_data: SubtaskCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Subtask:
    """Add a subtask to a task."""
    task = await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.EDIT)

    service = SubtaskService(db)
    subtask = await service.create_subtask(
        task_id=task_id,
        title=subtask_data.title,
        description=subtask_data.description,
        position=subtask_data.position,
        completed=subtask_data.completed,
    )
    await service.sync_task_completion(task)
    return subtask


@router.put("/{task_id}/subtasks/reorder", response_model=list[SubtaskResponse])
async def reorder_subtasks(
    task_id: UUID,
    reorder_data: SubtaskReorder,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[Subtask]:
    """Reorder subtasks of a task."""
    await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.EDIT)
    return list(await SubtaskService(db).reorder_subtasks(task_id, reorder_data.subtask_ids))


@router.get("/{task_id}/subtasks/{subtask_id}", response_model=SubtaskResponse)
async def get_subtask(
    task_id: UUID,
    subtask_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Subtask:
    """Get a subtask."""
    await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.VIEW)
    return await get_task_subtask(SubtaskService(db), task_id, subtask_id)


@router.put("/{task_id}/subtasks/{subtask_id}", response_model=SubtaskResponse)
async def update_subtask(
    task_id: UUID,
    subtask_id: UUID,
    subtask_data: SubtaskUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Subtask:
    """Update a subtask and keep the task's completion in sync."""
    task = await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.EDIT)

    service = SubtaskService(db)
    subtask = await get_task_subtask(service, task_id, subtask_id)
    subtask = await service.update_subtask(
        subtask,
        title=subtask_data.title,
        description=subtask_data.description,
        completed=subtask_data.completed,
        position=subtask_data.position,
    )
    await service.sync_task_completion(task)
    return subtask


@router.delete("/{task_id}/subtasks/{subtask_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subtask(
    task_id: UUID,
    subtask_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    """Delete a subtask."""
    task = await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.EDIT)

    service = SubtaskService(db)
    subtask = await get_task_subtask(service, task_id, subtask_id)
    await service.delete_subtask(subtask)
    await service.sync_task_completion(task)
