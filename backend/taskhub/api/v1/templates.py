"""Task template API endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.api.v1.auth import CurrentUser
from taskhub.api.v1.categories import resolve_user_categories
from taskhub.api.v1.tasks import TaskCategory, TaskResponse
from taskhub.db.session import get_db_session
from taskhub.exceptions import ForbiddenError, NotFoundError, ValidationError
from taskhub.models.task import Task, TaskPriority
from taskhub.models.template import TaskTemplate, TemplateSubtask
from taskhub.services.template import TemplateService

router = APIRouter()


# Request/Response Models
class TemplateCreate(BaseModel):
    """Create a task template."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    task_title_template: str | None = Field(None, max_length=500)
    task_description_template: str | None = None
    default_priority: TaskPriority | None = None
    default_due_date_days: int | None = Field(None, ge=0)
    category_ids: list[UUID] = Field(default_factory=list)


class TemplateUpdate(BaseModel):
    """Update a task template."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    task_title_template: str | None = Field(None, max_length=500)
    task_description_template: str | None = None
    default_priority: TaskPriority | None = None
    default_due_date_days: int | None = Field(None, ge=0)
    category_ids: list[UUID] | None = None


class TemplateSubtaskCreate(BaseModel):
    """Add a subtask to a template."""

    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    position: int | None = Field(None, ge=1)


class TemplateSubtaskUpdate(BaseModel):
    """Update a template subtask."""

    title: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = None
    position: int | None = Field(None, ge=1)


class TemplateSubtaskReorder(BaseModel):
    """Template subtask IDs in their new order."""

    subtask_ids: list[UUID]


class TemplateSubtaskResponse(BaseModel):
    """Template subtask response."""

    id: UUID
    template_id: UUID
    title: str
    description: str | None
    position: int

    class Config:
        from_attributes = True


class TemplateResponse(BaseModel):
    """Task template response."""

    id: UUID
    name: str
    description: str
    task_title_template: str | None
    task_description_template: str | None
    default_priority: str | None
    default_due_date_days: int | None
    user_id: UUID
    categories: list[TaskCategory] = Field(default_factory=list)
    subtasks: list[TemplateSubtaskResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


async def get_owned_template(
    service: TemplateService,
    template_id: UUID,
    user_id: UUID,
    action: str = "access",
) -> TaskTemplate:
    """Load a template, requiring that the user owns it."""
    template = await service.get_template(template_id)
    if template is None:
        raise NotFoundError("Template", template_id)
    if template.user_id != user_id:
        raise ForbiddenError(f"You don't have permission to {action} this template")
    return template


async def get_template_subtask(
    service: TemplateService,
    template_id: UUID,
    subtask_id: UUID,
) -> TemplateSubtask:
    """Load a template subtask, requiring that it belongs to the template."""
    subtask = await service.get_template_subtask(subtask_id)
    if subtask is None:
        raise NotFoundError("Template subtask", subtask_id)
    if subtask.template_id != template_id:
        raise ValidationError("Subtask does not belong to the specified template")
    return subtask


# =========================================================================
# Templates
# =========================================================================


@router.get("/", response_model=list[TemplateResponse])
async def list_templates(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[TaskTemplate]:
    """List the current user's templates."""
    return list(await TemplateService(db).get_user_templates(current_user.id))


@router.post("/", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    template_data: TemplateCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> TaskTemplate:
    """Create a template."""
    categories = await resolve_user_categories(db, current_user.id, template_data.category_ids)

    return await TemplateService(db).create_template(
        user_id=current_user.id,
        name=template_data.name,
        description=template_data.description,
        task_title_template=template_data.task_title_template,
        task_description_template=template_data.task_description_template,
        default_priority=(
            template_data.default_priority.value if template_data.default_priority else None
        ),
        default_due_date_days=template_data.default_due_date_days,
        categories=categories,
    )


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> TaskTemplate:
    """Get a template with its subtasks."""
    return await get_owned_template(TemplateService(db), template_id, current_user.id)


@router.put("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: UUID,
    template_data: TemplateUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> TaskTemplate:
    """Update a template."""
    service = TemplateService(db)
    template = await get_owned_template(service, template_id, current_user.id, "update")

    fields = template_data.model_dump(exclude_unset=True)
    if "name" in fields and fields["name"] is None:
        del fields["name"]
    if "description" in fields and fields["description"] is None:
        fields["description"] = ""
    if fields.get("default_priority") is not None:
        fields["default_priority"] = fields["default_priority"].value
    if "category_ids" in fields:
        fields["categories"] = await resolve_user_categories(
            db, current_user.id, fields.pop("category_ids")
        )

    return await service.update_template(template, **fields)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    """Delete a template."""
    service = TemplateService(db)
    template = await get_owned_template(service, template_id, current_user.id, "delete")
    await service.delete_template(template)


@router.post(
    "/{template_id}/create-task",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_task_from_template(
    template_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Task:
    """Create a task, with subtasks, from a template."""
    service = TemplateService(db)
    await get_owned_template(service, template_id, current_user.id, "use")
    return await service.create_task_from_template(template_id, current_user.id)


# =========================================================================
# Template Subtasks
# =========================================================================


@router.get("/{template_id}/subtasks", response_model=list[TemplateSubtaskResponse])
async def list_template_subtasks(
    template_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[TemplateSubtask]:
    """List subtasks of a template in order."""
    service = TemplateService(db)
    await get_owned_template(service, template_id, current_user.id)
    return list(await service.get_template_subtasks(template_id))


@router.post(
    "/{template_id}/subtasks",
    response_model=TemplateSubtaskResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_template_subtask(
    template_id: UUID,
    subtask_data: TemplateSubtaskCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> TemplateSubtask:
    """Add a subtask to a template."""
    service = TemplateService(db)
    await get_owned_template(service, template_id, current_user.id, "modify")
    return await service.add_template_subtask(
        template_id=template_id,
        title=subtask_data.title,
        description=subtask_data.description,
        position=subtask_data.position,
    )


@router.put("/{template_id}/subtasks/reorder", response_model=list[TemplateSubtaskResponse])
async def reorder_template_subtasks(
    template_id: UUID,
    reorder_data: TemplateSubtaskReorder,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[TemplateSubtask]:
    """Reorder subtasks of a template."""
    service = TemplateService(db)
    await get_owned_template(service, template_id, current_user.id, "modify")
    return list(await service.reorder_template_subtasks(template_id, reorder_data.subtask_ids))


@router.put("/{template_id}/subtasks/{subtask_id}", response_model=TemplateSubtaskResponse)
async def update_template_subtask(
    template_id: UUID,
    subtask_id: UUID,
    subtask_data: TemplateSubtaskUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> TemplateSubtask:
    """Update a template subtask."""
    service = TemplateService(db)
    await get_owned_template(service, template_id, current_user.id, "modify")
    subtask = await get_template_subtask(service, template_id, subtask_id)
    return await service.update_template_subtask(
        subtask,
        title=subtask_data.title,
        description=subtask_data.description,
        position=subtask_data.position,
    )


@router.delete(
    "/{template_id}/subtasks/{subtask_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_template_subtask(
    template_id: UUID,
    subtask_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    """Delete a template subtask."""
    service = TemplateService(db)
    await get_owned_template(service, template_id, current_user.id, "modify")
    subtask = await get_template_subtask(service, template_id, subtask_id)
    await service.delete_template_subtask(subtask)
