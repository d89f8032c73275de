"""Task template service for reusable task blueprints."""

from datetime import date, timedelta
from typing import Sequence
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.exceptions import NotFoundError
from taskhub.models.task import Category, Subtask, Task, TaskPriority, TaskStatus
from taskhub.models.template import TaskTemplate, TemplateSubtask

logger = structlog.get_logger()

DEFAULT_DUE_DATE_DAYS = 7


class TemplateService:
    """Service for managing templates and creating tasks from them."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # Template CRUD Operations
    # =========================================================================

    async def create_template(
        self,
        user_id: UUID,
        name: str,
        description: str = "",
        task_title_template: str | None = None,
        task_description_template: str | None = None,
        default_priority: str | None = None,
        default_due_date_days: int | None = None,
        categories: list[Category] | None = None,
    ) -> TaskTemplate:
        """Create a new template."""
        template = TaskTemplate(
            user_id=user_id,
            name=name,
            description=description,
            task_title_template=task_title_template,
            task_description_template=task_description_template,
            default_priority=default_priority,
            default_due_date_days=default_due_date_days,
            categories=list(categories or []),
        )
        self.db.add(template)
        await self.db.commit()
        await self.db.refresh(template)

        logger.info("template_created", template_id=str(template.id), user_id=str(user_id))
        return template

    async def get_template(self, template_id: UUID) -> TaskTemplate | None:
        """Get a template by ID."""
        result = await self.db.execute(
            select(TaskTemplate).where(TaskTemplate.id == template_id)
        )
        return result.scalar_one_or_none()

    async def get_user_templates(self, user_id: UUID) -> Sequence[TaskTemplate]:
        """Get all templates of a user ordered by name."""
        result = await self.db.execute(
            select(TaskTemplate)
            .where(TaskTemplate.user_id == user_id)
            .order_by(TaskTemplate.name.asc())
        )
        return result.scalars().all()

    async def update_template(self, template: TaskTemplate, **fields) -> TaskTemplate:
        """Update template fields. ``categories`` replaces the category list."""
        for name, value in fields.items():
            if name == "categories":
                template.categories = list(value or [])
            else:
                setattr(template, name, value)

        await self.db.commit()
        await self.db.refresh(template)

        logger.info("template_updated", template_id=str(template.id))
        return template

    async def delete_template(self, template: TaskTemplate) -> None:
        """Delete a template and its subtasks."""
        template_id = template.id
        await self.db.delete(template)
        await self.db.commit()

        logger.info("template_deleted", template_id=str(template_id))

    # =========================================================================
    # Template Subtasks
    # =========================================================================

    async def get_template_subtasks(self, template_id: UUID) -> Sequence[TemplateSubtask]:
        """Get subtasks of a template in order."""
        result = await self.db.execute(
            select(TemplateSubtask)
            .where(TemplateSubtask.template_id == template_id)
            .order_by(TemplateSubtask.position.asc(), TemplateSubtask.created_at.asc())
        )
        return result.scalars().all()

    async def get_template_subtask(self, subtask_id: UUID) -> TemplateSubtask | None:
        """Get a template subtask by ID."""
        result = await self.db.execute(
            select(TemplateSubtask).where(TemplateSubtask.id == subtask_id)
        )
        return result.scalar_one_or_none()

    async def add_template_subtask(
        self,
        template_id: UUID,
        title: str,
        description: str | None = None,
        position: int | None = None,
    ) -> TemplateSubtask:
        """Add a subtask to a template, appending it unless a position is given."""
        if position is None:
            count_result = await self.db.execute(
                select(func.count())
                .select_from(TemplateSubtask)
                .where(TemplateSubtask.template_id == template_id)
            )
            position = (count_result.scalar() or 0) + 1

        subtask = TemplateSubtask(
            template_id=template_id,
            title=title,
            description=description,
            position=position,
        )
        self.db.add(subtask)
        await self.db.commit()
        await self.db.refresh(subtask)

        logger.info(
            "template_subtask_created",
            subtask_id=str(subtask.id),
            template_id=str(template_id),
        )
        return subtask

    async def update_template_subtask(
        self,
        subtask: TemplateSubtask,
        title: str | None = None,
        description: str | None = None,
        position: int | None = None,
    ) -> TemplateSubtask:
        """Update a template subtask."""
        if title is not None:
            subtask.title = title
        if description is not None:
            subtask.description = description
        if position is not None:
            subtask.position = position

        await self.db.commit()
        await self.db.refresh(subtask)
        return subtask

    async def delete_template_subtask(self, subtask: TemplateSubtask) -> None:
        """Delete a template subtask."""
        await self.db.delete(subtask)
        await self.db.commit()

    async def reorder_template_subtasks(
        self,
        template_id: UUID,
        subtask_ids: list[UUID],
    ) -> Sequence[TemplateSubtask]:
        """Assign positions 1..n following the given ID order."""
        subtasks = {s.id: s for s in await self.get_template_subtasks(template_id)}

        for index, subtask_id in enumerate(subtask_ids, start=1):
            subtask = subtasks.get(subtask_id)
            if subtask is not None:
                subtask.position = index

        await self.db.commit()
        return await self.get_template_subtasks(template_id)

    # =========================================================================
    # Task Creation
    # =========================================================================

    async def create_task_from_template(
        self,
        template_id: UUID,
        owner_id: UUID,
        today: date | None = None,
    ) -> Task:
        """Create a task, with subtasks, from a template."""
        template = await self.get_template(template_id)
        if template is None:
            raise NotFoundError("Template", template_id)

        today = today or date.today()
        due_in_days = (
            template.default_due_date_days
            if template.default_due_date_days is not None
            else DEFAULT_DUE_DATE_DAYS
        )

        task = Task(
            title=template.task_title_template or template.name,
            description=template.task_description_template or template.description or "",
            status=TaskStatus.TODO.value,
            priority=template.default_priority or TaskPriority.MEDIUM.value,
            due_date=today + timedelta(days=due_in_days),
            completed=False,
            owner_id=owner_id,
            categories=list(template.categories),
        )
        self.db.add(task)
        await self.db.flush()

        template_subtasks = await self.get_template_subtasks(template_id)
        for template_subtask in template_subtasks:
            self.db.add(
                Subtask(
                    task_id=task.id,
                    title=template_subtask.title,
                    description=template_subtask.description,
                    position=template_subtask.position,
                    completed=False,
                )
            )

        await self.db.commit()
        await self.db.refresh(task)

        logger.info(
            "task_created_from_template",
            task_id=str(task.id),
            template_id=str(template_id),
            subtask_count=len(template_subtasks),
        )
        return task
