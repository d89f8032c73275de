"""Comment service for threaded task discussions."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.exceptions import NotFoundError, ValidationError
from taskhub.models.task import TaskComment

logger = structlog.get_logger()


@dataclass
class CommentThread:
    """A top-level comment with its direct replies."""

    comment: TaskComment
    replies: list[TaskComment] = field(default_factory=list)


class CommentService:
    """Service for creating and reading task comments."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_comment(
        self,
        task_id: UUID,
        user_id: UUID,
        content: str,
        parent_comment_id: UUID | None = None,
    ) -> TaskComment:
        """Create a comment, optionally as a reply to another comment on the same task."""
        if parent_comment_id is not None:
            parent = await self.get_comment(parent_comment_id)
            if parent is None:
                raise NotFoundError("Parent comment", parent_comment_id)
            if parent.task_id != task_id:
                raise ValidationError("Parent comment belongs to a different task")

        comment = TaskComment(
            task_id=task_id,
            user_id=user_id,
            content=content,
            parent_comment_id=parent_comment_id,
        )
        self.db.add(comment)
        await self.db.commit()
        await self.db.refresh(comment)

        logger.info(
            "comment_created",
            comment_id=str(comment.id),
            task_id=str(task_id),
            is_reply=parent_comment_id is not None,
        )
        return comment

    async def get_comment(self, comment_id: UUID) -> TaskComment | None:
        """Get a comment by ID."""
        result = await self.db.execute(select(TaskComment).where(TaskComment.id == comment_id))
        return result.unique().scalar_one_or_none()

    async def get_task_comments(self, task_id: UUID) -> Sequence[TaskComment]:
        """Get every comment on a task, newest first."""
        result = await self.db.execute(
            select(TaskComment)
            .where(TaskComment.task_id == task_id)
            .order_by(TaskComment.created_at.desc())
        )
        return result.unique().scalars().all()

    async def get_comment_threads(self, task_id: UUID) -> list[CommentThread]:
        """Top-level comments newest first, each with direct replies oldest first.

        Replies to replies are attached to the top-level comment that starts
        their chain.
        """
        comments = await self.get_task_comments(task_id)
        by_id = {c.id: c for c in comments}

        threads: dict[UUID, CommentThread] = {}
        for comment in comments:
            if comment.parent_comment_id is None:
                threads[comment.id] = CommentThread(comment=comment)

        for comment in reversed(comments):
            if comment.parent_comment_id is None:
                continue
            root = comment
            seen = {root.id}
            while root.parent_comment_id is not None and root.parent_comment_id in by_id:
                root = by_id[root.parent_comment_id]
                if root.id in seen:
                    break
                seen.add(root.id)
            thread = threads.get(root.id)
            if thread is not None:
                thread.replies.append(comment)

        return list(threads.values())

    async def update_comment(self, comment: TaskComment, content: str) -> TaskComment:
        """Update comment content and record the edit time."""
        comment.content = content
        comment.edited_at = datetime.now(timezone.utc)
        await self.db.commit()
        await self.db.refresh(comment)

        logger.info("comment_updated", comment_id=str(comment.id))
        return comment

    async def delete_comment(self, comment: TaskComment) -> None:
        """Delete a comment and its replies."""
        comment_id = comment.id
        await self.db.delete(comment)
        await self.db.commit()

        logger.info("comment_deleted", comment_id=str(comment_id))
