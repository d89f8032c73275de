"""Local file storage for task attachments."""

import os
import shutil
import uuid
from pathlib import Path
from typing import BinaryIO

import structlog

from taskhub.config import get_settings
from taskhub.exceptions import ValidationError

logger = structlog.get_logger()


class FileStorageService:
    """Stores uploaded files under a single upload directory.

    Files are saved under a random name that keeps the original extension,
    so two uploads with the same name never collide.
    """

    def __init__(self, upload_dir: Path | str | None = None):
        self.upload_dir = Path(upload_dir or get_settings().upload_dir).resolve()

    def store(self, source: BinaryIO, original_name: str | None) -> str:
        """Copy a file object into storage and return its stored name."""
        self.upload_dir.mkdir(parents=True, exist_ok=True)

        extension = Path(original_name or "").suffix
        stored_name = f"{uuid.uuid4()}{extension}"

        with open(self.upload_dir / stored_name, "wb") as target:
            shutil.copyfileobj(source, target)

        logger.info("file_stored", stored_name=stored_name, original_name=original_name)
        return stored_name

    def delete(self, stored_name: str) -> bool:
        """Delete a stored file. Returns False if nothing was deleted."""
        try:
            path = self.resolve(stored_name)
        except ValidationError:
            return False

        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("file_delete_failed", stored_name=stored_name, error=str(e))
            return False

        logger.info("file_deleted", stored_name=stored_name)
        return True

    def is_writable(self) -> bool:
        """Whether the upload directory exists, or can be created, and accepts writes."""
        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            return False
        return os.access(self.upload_dir, os.W_OK)

    def resolve(self, stored_name: str) -> Path:
        """Absolute path of a stored file.

        Raises:
            ValidationError: if the name points outside the upload directory.
        """
        path = (self.upload_dir / stored_name).resolve()
        if path.parent != self.upload_dir:
            raise ValidationError("Invalid file name")
        return path


def get_file_storage() -> FileStorageService:
    """FileStorageService dependency."""
    return FileStorageService()
