"""Services package."""

from taskhub.services.access_control import AccessControlService, TaskAction
from taskhub.services.attachment import AttachmentService
from taskhub.services.comment import CommentService, CommentThread
from taskhub.services.file_storage import FileStorageService, get_file_storage
from taskhub.services.recurring_task import RecurringTaskService, compute_next_due_date
from taskhub.services.subtask import SubtaskService
from taskhub.services.template import TemplateService

__all__ = [
    "AccessControlService",
    "TaskAction",
    "AttachmentService",
    "CommentService",
    "CommentThread",
    "FileStorageService",
    "get_file_storage",
    "RecurringTaskService",
    "compute_next_due_date",
    "SubtaskService",
    "TemplateService",
]
