"""Health check endpoints."""

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.config import get_settings
from taskhub.db.session import get_db_session
from taskhub.services.file_storage import FileStorageService, get_file_storage

router = APIRouter()
logger = structlog.get_logger()
settings = get_settings()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Liveness probe; does not touch the database."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/health/ready")
async def readiness_check(
    db: AsyncSession = Depends(get_db_session),
    storage: FileStorageService = Depends(get_file_storage),
) -> dict[str, str | dict[str, str]]:
    """Readiness probe: the database answers and attachments can be written."""
    checks: dict[str, str] = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except SQLAlchemyError as e:
        logger.warning("readiness_database_unhealthy", error=str(e))
        checks["database"] = f"unhealthy: {e}"

    if storage.is_writable():
        checks["upload_dir"] = "healthy"
    else:
        logger.warning("readiness_upload_dir_unwritable", upload_dir=str(storage.upload_dir))
        checks["upload_dir"] = "unhealthy: not writable"

    ready = all(value == "healthy" for value in checks.values())
    return {
        "status": "healthy" if ready else "unhealthy",
        "version": settings.app_version,
        "checks": checks,
    }
