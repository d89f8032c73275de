"""Task collaborator model and role lattice."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskhub.db.base import BaseModel

if TYPE_CHECKING:
    from taskhub.models.task import Task
    from taskhub.models.user import User


class CollaboratorRole(str, Enum):
    """Access level granted to a non-owner on a task."""

    VIEWER = "viewer"  # Can only view the task
    EDITOR = "editor"  # Can edit the task but not delete or share
    ADMIN = "admin"  # Can edit, delete, and share the task


class TaskCollaborator(BaseModel):
    """Grant of a role on a task to a user other than its owner."""

    __tablename__ = "task_collaborators"
    __table_args__ = (
        UniqueConstraint("task_id", "user_id", name="uq_task_collaborator"),
    )

    task_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CollaboratorRole.VIEWER.value
    )  # viewer, editor, admin

    # Who added this collaborator and when
    added_by_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    # Relationships
    task: Mapped["Task"] = relationship("Task", back_populates="collaborators")
    user: Mapped["User"] = relationship("User", foreign_keys=[user_id], lazy="joined")
    added_by: Mapped["User | None"] = relationship(
        "User", foreign_keys=[added_by_id], lazy="joined"
    )

    def __repr__(self) -> str:
        return f"<TaskCollaborator task={self.task_id} user={self.user_id} role={self.role}>"
