"""Attachment service linking stored files to tasks."""

from typing import BinaryIO, Sequence
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.models.task import Attachment
from taskhub.services.file_storage import FileStorageService

logger = structlog.get_logger()


class AttachmentService:
    """Service for task attachments backed by FileStorageService."""

    def __init__(self, db: AsyncSession, storage: FileStorageService):
        self.db = db
        self.storage = storage

    async def save_attachment(
        self,
        task_id: UUID,
        uploaded_by_id: UUID,
        source: BinaryIO,
        file_name: str | None,
        content_type: str | None,
        file_size: int,
    ) -> Attachment:
        """Store a file and record it as an attachment of the task."""
        stored_name = self.storage.store(source, file_name)

        attachment = Attachment(
            task_id=task_id,
            uploaded_by_id=uploaded_by_id,
            file_name=file_name or stored_name,
            content_type=content_type,
            stored_name=stored_name,
            file_size=file_size,
        )
        self.db.add(attachment)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            self.storage.delete(stored_name)
            raise
        await self.db.refresh(attachment)

        logger.info(
            "attachment_saved",
            attachment_id=str(attachment.id),
            task_id=str(task_id),
            file_size=file_size,
        )
        return attachment

    async def get_attachment(self, attachment_id: UUID) -> Attachment | None:
        """Get an attachment by ID."""
        result = await self.db.execute(
            select(Attachment).where(Attachment.id == attachment_id)
        )
        return result.scalar_one_or_none()

    async def get_task_attachments(self, task_id: UUID) -> Sequence[Attachment]:
        """Get all attachments of a task, oldest first."""
        result = await self.db.execute(
            select(Attachment)
            .where(Attachment.task_id == task_id)
            .order_by(Attachment.created_at.asc())
        )
        return result.scalars().all()

    async def delete_attachment(self, attachment: Attachment) -> bool:
        """Delete the stored file, then the record.

        The record is kept when the file could not be removed so that it can
        be retried. Returns whether the attachment was deleted.
        """
        if not self.storage.delete(attachment.stored_name):
            logger.warning(
                "attachment_file_delete_failed",
                attachment_id=str(attachment.id),
                stored_name=attachment.stored_name,
            )
            return False

        attachment_id = attachment.id
        await self.db.delete(attachment)
        await self.db.commit()

        logger.info("attachment_deleted", attachment_id=str(attachment_id))
        return True

    async def get_task_stored_names(self, task_id: UUID) -> list[str]:
        """Stored file names of every attachment on a task."""
        result = await self.db.execute(
            select(Attachment.stored_name).where(Attachment.task_id == task_id)
        )
        return list(result.scalars().all())

    def remove_files(self, stored_names: list[str]) -> int:
        """Remove stored files whose records are already gone. Returns the count removed.

        Call only after the deleting transaction has committed.
        """
        removed = 0
        for stored_name in stored_names:
            if self.storage.delete(stored_name):
                removed += 1
            else:
                logger.warning("orphaned_file_not_removed", stored_name=stored_name)
        return removed
