"""Task comment API endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.api.v1.auth import CurrentUser
from taskhub.db.session import get_db_session
from taskhub.exceptions import ForbiddenError, NotFoundError, ValidationError
from taskhub.models.task import TaskComment
from taskhub.services.access_control import AccessControlService, TaskAction
from taskhub.services.comment import CommentService

router = APIRouter()


class CommentCreate(BaseModel):
    """Create a task comment."""

    content: str = Field(..., min_length=1, max_length=10000)
    parent_comment_id: UUID | None = None


class CommentUpdate(BaseModel):
    """Update a task comment."""

    content: str = Field(..., min_length=1, max_length=10000)


class CommentResponse(BaseModel):
    """Task comment response, with replies for top-level comments."""

    id: UUID
    task_id: UUID
    user_id: UUID
    username: str | None = None
    content: str
    parent_comment_id: UUID | None
    edited_at: datetime | None
    created_at: datetime
    replies: list["CommentResponse"] = Field(default_factory=list)

    class Config:
        from_attributes = True

    @classmethod
    def from_comment(
        cls,
        comment: TaskComment,
        replies: list[TaskComment] | None = None,
    ) -> "CommentResponse":
        return cls(
            id=comment.id,
            task_id=comment.task_id,
            user_id=comment.user_id,
            username=comment.user.username if comment.user else None,
            content=comment.content,
            parent_comment_id=comment.parent_comment_id,
            edited_at=comment.edited_at,
            created_at=comment.created_at,
            replies=[cls.from_comment(r) for r in replies or []],
        )


async def get_task_comment(service: CommentService, task_id: UUID, comment_id: UUID) -> TaskComment:
    """Load a comment, requiring that it belongs to the task."""
    comment = await service.get_comment(comment_id)
    if comment is None:
        raise NotFoundError("Comment", comment_id)
    if comment.task_id != task_id:
        raise ValidationError("Comment does not belong to the specified task")
    return comment


@router.get("/{task_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[CommentResponse]:
    """List top-level comments newest first, each with its replies."""
    await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.VIEW)

    threads = await CommentService(db).get_comment_threads(task_id)
    return [CommentResponse.from_comment(t.comment, t.replies) for t in threads]


@router.post(
    "/{task_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    task_id: UUID,
    comment_data: CommentCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> CommentResponse:
    """Comment on a task. Anyone who can view the task may comment."""
    await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.VIEW)

    comment = await CommentService(db).create_comment(
        task_id=task_id,
        user_id=current_user.id,
        content=comment_data.content,
        parent_comment_id=comment_data.parent_comment_id,
    )
    return CommentResponse.from_comment(comment)


@router.get("/{task_id}/comments/{comment_id}", response_model=CommentResponse)
async def get_comment(
    task_id: UUID,
    comment_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> CommentResponse:
    """Get a single comment."""
    await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.VIEW)
    comment = await get_task_comment(CommentService(db), task_id, comment_id)
    return CommentResponse.from_comment(comment)


@router.put("/{task_id}/comments/{comment_id}", response_model=CommentResponse)
async def update_comment(
    task_id: UUID,
    comment_id: UUID,
    comment_data: CommentUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> CommentResponse:
    """Edit a comment. Only its author may edit it."""
    await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.VIEW)

    service = CommentService(db)
    comment = await get_task_comment(service, task_id, comment_id)
    if comment.user_id != current_user.id:
        raise ForbiddenError("You don't have permission to update this comment")

    comment = await service.update_comment(comment, comment_data.content)
    return CommentResponse.from_comment(comment)


@router.delete("/{task_id}/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    task_id: UUID,
    comment_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    """Delete a comment. Allowed to its author and the task owner."""
    task = await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.VIEW)

    service = CommentService(db)
    comment = await get_task_comment(service, task_id, comment_id)
    if comment.user_id != current_user.id and task.owner_id != current_user.id:
        raise ForbiddenError("You don't have permission to delete this comment")

    await service.delete_comment(comment)
