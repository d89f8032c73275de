"""Tasks shared with the current user."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.api.v1.auth import CurrentUser
from taskhub.api.v1.tasks import TaskResponse
from taskhub.db.session import get_db_session
from taskhub.models.task import Task
from taskhub.services.access_control import AccessControlService

router = APIRouter()


@router.get("/", response_model=list[TaskResponse])
async def list_shared_tasks(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[Task]:
    """List tasks other users have shared with the current user."""
    return list(await AccessControlService(db).get_shared_tasks(current_user.id))
