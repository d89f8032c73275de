"""Task attachment API endpoints."""

import os
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import FileResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.api.v1.auth import CurrentUser
from taskhub.config import get_settings
from taskhub.db.session import get_db_session
from taskhub.exceptions import NotFoundError, ValidationError
from taskhub.models.task import Attachment
from taskhub.services.access_control import AccessControlService, TaskAction
from taskhub.services.attachment import AttachmentService
from taskhub.services.file_storage import FileStorageService, get_file_storage

router = APIRouter()
settings = get_settings()


class AttachmentResponse(BaseModel):
    """Attachment metadata response."""

    id: UUID
    task_id: UUID
    file_name: str
    content_type: str | None
    file_size: int
    uploaded_by_id: UUID | None
    created_at: datetime

    class Config:
        from_attributes = True


async def get_task_attachment(
    service: AttachmentService,
    task_id: UUID,
    attachment_id: UUID,
) -> Attachment:
    """Load an attachment, requiring that it belongs to the task."""
    attachment = await service.get_attachment(attachment_id)
    if attachment is None:
        raise NotFoundError("Attachment", attachment_id)
    if attachment.task_id != task_id:
        raise ValidationError("Attachment does not belong to the specified task")
    return attachment


@router.get("/{task_id}/attachments", response_model=list[AttachmentResponse])
async def list_attachments(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    storage: FileStorageService = Depends(get_file_storage),
) -> list[Attachment]:
    """List attachments of a task."""
    await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.VIEW)
    return list(await AttachmentService(db, storage).get_task_attachments(task_id))


@router.post(
    "/{task_id}/attachments",
    response_model=AttachmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_attachment(
    task_id: UUID,
    current_user: CurrentUser,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db_session),
    storage: FileStorageService = Depends(get_file_storage),
) -> Attachment:
    """Upload a file to a task."""
    await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.EDIT)

    file.file.seek(0, os.SEEK_END)
    file_size = file.file.tell()
    file.file.seek(0)

    if file_size == 0:
        raise ValidationError("Please select a file to upload")
    if file_size > settings.max_upload_size_bytes:
        raise ValidationError(
            f"File exceeds the maximum upload size of {settings.max_upload_size_bytes} bytes"
        )

    return await AttachmentService(db, storage).save_attachment(
        task_id=task_id,
        uploaded_by_id=current_user.id,
        source=file.file,
        file_name=file.filename,
        content_type=file.content_type,
        file_size=file_size,
    )


@router.get("/{task_id}/attachments/{attachment_id}")
async def download_attachment(
    task_id: UUID,
    attachment_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    storage: FileStorageService = Depends(get_file_storage),
) -> FileResponse:
    """Download an attachment's file."""
    await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.VIEW)
    attachment = await get_task_attachment(AttachmentService(db, storage), task_id, attachment_id)

    path = storage.resolve(attachment.stored_name)
    if not path.is_file():
        raise NotFoundError("File", attachment.stored_name)

    return FileResponse(
        path,
        media_type=attachment.content_type or "application/octet-stream",
        filename=attachment.file_name,
    )


@router.delete("/{task_id}/attachments/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_attachment(
    task_id: UUID,
    attachment_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    storage: FileStorageService = Depends(get_file_storage),
) -> None:
    """Delete an attachment and its stored file."""
    await AccessControlService(db).authorize_task(task_id, current_user.id, TaskAction.EDIT)

    service = AttachmentService(db, storage)
    attachment = await get_task_attachment(service, task_id, attachment_id)
    if not await service.delete_attachment(attachment):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete attachment",
        )
