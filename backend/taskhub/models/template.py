"""Reusable task templates."""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskhub.db.base import Base, BaseModel

if TYPE_CHECKING:
    from taskhub.models.task import Category


template_categories = Table(
    "template_categories",
    Base.metadata,
    Column(
        "template_id",
        Uuid(as_uuid=True),
        ForeignKey("task_templates.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "category_id",
        Uuid(as_uuid=True),
        ForeignKey("categories.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class TaskTemplate(BaseModel):
    """Blueprint for creating tasks with preset fields and subtasks."""

    __tablename__ = "task_templates"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Values copied onto tasks created from the template
    task_title_template: Mapped[str | None] = mapped_column(String(500), nullable=True)
    task_description_template: Mapped[str | None] = mapped_column(Text, nullable=True)
    default_priority: Mapped[str | None] = mapped_column(String(20), nullable=True)
    default_due_date_days: Mapped[int | None] = mapped_column(Integer, nullable=True)

    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Relationships
    categories: Mapped[list["Category"]] = relationship(
        "Category", secondary=template_categories, lazy="selectin"
    )
    subtasks: Mapped[list["TemplateSubtask"]] = relationship(
        "TemplateSubtask", back_populates="template", lazy="selectin",
        order_by="TemplateSubtask.position",
        cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<TaskTemplate {self.name}>"


class TemplateSubtask(BaseModel):
    """Subtask blueprint materialized when a task is created from a template."""

    __tablename__ = "template_subtasks"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    template_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("task_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    template: Mapped["TaskTemplate"] = relationship("TaskTemplate", back_populates="subtasks")

    def __repr__(self) -> str:
        return f"<TemplateSubtask {self.position} on template={self.template_id}>"
