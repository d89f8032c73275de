"""SQLAlchemy models package."""

from taskhub.models.user import User
from taskhub.models.task import (
    Attachment,
    Category,
    RecurrencePattern,
    Subtask,
    Task,
    TaskComment,
    TaskPriority,
    TaskStatus,
    task_categories,
)
from taskhub.models.collaboration import CollaboratorRole, TaskCollaborator
from taskhub.models.template import TaskTemplate, TemplateSubtask, template_categories

__all__ = [
    # Users
    "User",
    # Tasks
    "Attachment",
    "Category",
    "RecurrencePattern",
    "Subtask",
    "Task",
    "TaskComment",
    "TaskPriority",
    "TaskStatus",
    "task_categories",
    # Collaboration
    "CollaboratorRole",
    "TaskCollaborator",
    # Templates
    "TaskTemplate",
    "TemplateSubtask",
    "template_categories",
]
