"""Tasks API endpoints."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.api.v1.auth import CurrentUser
from taskhub.api.v1.categories import resolve_user_categories
from taskhub.db.session import get_db_session
from taskhub.exceptions import ForbiddenError
from taskhub.models.task import (
    Category,
    RecurrencePattern,
    Task,
    TaskPriority,
    TaskStatus,
    task_categories,
)
from taskhub.services.access_control import AccessControlService, TaskAction
from taskhub.services.attachment import AttachmentService
from taskhub.services.file_storage import FileStorageService, get_file_storage
from taskhub.services.recurring_task import RecurringTaskService

router = APIRouter()
logger = structlog.get_logger()

# Columns that are NOT NULL and ignore explicit nulls on update
REQUIRED_TASK_FIELDS = {
    "title", "description", "status", "priority", "due_date", "completed", "is_recurring"
}


# Request/Response Models
class TaskCreate(BaseModel):
    """Create a new task."""

    title: str = Field(..., min_length=1, max_length=500)
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: date
    reminder_date: date | None = None
    completed: bool = False
    is_recurring: bool = False
    recurrence_pattern: RecurrencePattern | None = None
    recurrence_interval: int | None = Field(None, ge=1)
    recurrence_end_date: date | None = None
    category_ids: list[UUID] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Update a task. Omitted fields are left unchanged."""

    title: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: date | None = None
    reminder_date: date | None = None
    completed: bool | None = None
    is_recurring: bool | None = None
    recurrence_pattern: RecurrencePattern | None = None
    recurrence_interval: int | None = Field(None, ge=1)
    recurrence_end_date: date | None = None
    category_ids: list[UUID] | None = None


class TaskCategory(BaseModel):
    """Category summary embedded in a task."""

    id: UUID
    name: str

    class Config:
        from_attributes = True


class TaskResponse(BaseModel):
    """Task response."""

    id: UUID
    title: str
    description: str
    status: str
    priority: str
    due_date: date
    reminder_date: date | None
    completed: bool
    is_recurring: bool
    recurrence_pattern: str | None
    recurrence_interval: int | None
    recurrence_end_date: date | None
    parent_task_id: UUID | None
    owner_id: UUID
    categories: list[TaskCategory] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


def apply_recurrence_defaults(task: Task) -> None:
    """Clear recurrence fields on non-recurring tasks and default them on recurring ones."""
    if task.is_recurring:
        task.recurrence_pattern = task.recurrence_pattern or RecurrencePattern.DAILY.value
        task.recurrence_interval = task.recurrence_interval or 1
    else:
        task.recurrence_pattern = None
        task.recurrence_interval = None
        task.recurrence_end_date = None


@router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Task:
    """Create a new task owned by the current user."""
    categories = await resolve_user_categories(db, current_user.id, task_data.category_ids)

    task = Task(
        title=task_data.title,
        description=task_data.description,
        status=task_data.status.value,
        priority=task_data.priority.value,
        due_date=task_data.due_date,
        reminder_date=task_data.reminder_date,
        completed=task_data.completed,
        is_recurring=task_data.is_recurring,
        recurrence_pattern=task_data.recurrence_pattern.value if task_data.recurrence_pattern else None,
        recurrence_interval=task_data.recurrence_interval,
        recurrence_end_date=task_data.recurrence_end_date,
        owner_id=current_user.id,
        categories=categories,
    )
    apply_recurrence_defaults(task)
    db.add(task)
    await db.commit()
    await db.refresh(task)

    logger.info("task_created", task_id=str(task.id), owner_id=str(current_user.id))
    return task


@router.get("/", response_model=list[TaskResponse])
async def list_tasks(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    status_filter: TaskStatus | None = Query(None, alias="status"),
    priority: TaskPriority | None = None,
    completed: bool | None = None,
    category_id: UUID | None = None,
) -> list[Task]:
    """List the current user's own tasks, soonest due first."""
    query = select(Task).where(Task.owner_id == current_user.id)

    if status_filter:
        query = query.where(Task.status == status_filter.value)
    if priority:
        query = query.where(Task.priority == priority.value)
    if completed is not None:
        query = query.where(Task.completed.is_(completed))
    if category_id:
        query = query.join(task_categories, task_categories.c.task_id == Task.id).where(
            task_categories.c.category_id == category_id
        )

    query = query.order_by(Task.due_date.asc(), Task.created_at.asc())
    result = await db.execute(query)
    return list(result.unique().scalars().all())


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Task:
    """Get a task the current user owns or collaborates on."""
    return await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.VIEW)


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    task_data: TaskUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Task:
    """Update a task. Requires editor role for collaborators."""
    task = await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.EDIT)

    update_data = task_data.model_dump(exclude_unset=True)
    category_ids = update_data.pop("category_ids", None)

    for field, value in update_data.items():
        if value is None and field in REQUIRED_TASK_FIELDS:
            continue
        if isinstance(value, Enum):
            value = value.value
        setattr(task, field, value)

    apply_recurrence_defaults(task)

    if category_ids is not None:
        categories: list[Category] = await resolve_user_categories(db, current_user.id, category_ids)
        task.categories = categories

    await db.commit()
    await db.refresh(task)

    logger.info("task_updated", task_id=str(task.id), actor_id=str(current_user.id))
    return task


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    storage: FileStorageService = Depends(get_file_storage),
) -> None:
    """Delete a task and its attachment files. Requires admin role for collaborators.

    Files are removed only after the delete commits.
    """
    task = await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.DELETE)

    attachments = AttachmentService(db, storage)
    stored_names = await attachments.get_task_stored_names(task.id)
    await db.delete(task)
    await db.commit()
    files_removed = attachments.remove_files(stored_names)

    logger.info(
        "task_deleted",
        task_id=str(task_id),
        actor_id=str(current_user.id),
        files_removed=files_removed,
    )


# =========================================================================
# Recurrence
# =========================================================================


@router.post(
    "/{task_id}/create-instance",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_task_instance(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Task:
    """Create the next instance of a recurring task. Owner only."""
    task = await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.VIEW)
    if task.owner_id != current_user.id:
        raise ForbiddenError("You don't have permission to access this task")

    return await RecurringTaskService(db).create_instance(task)


@router.get("/{task_id}/instances", response_model=list[TaskResponse])
async def list_task_instances(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[Task]:
    """List instances generated from a recurring task."""
    await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.VIEW)
    return list(await RecurringTaskService(db).get_instances(task_id))
