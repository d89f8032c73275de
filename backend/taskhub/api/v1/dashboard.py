"""Dashboard statistics API endpoints."""

from datetime import date, timedelta

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.api.v1.auth import CurrentUser
from taskhub.db.session import get_db_session
from taskhub.models.task import Task, TaskStatus

router = APIRouter()

UPCOMING_WINDOW_DAYS = 7


# --- Schemas ---


class DashboardStats(BaseModel):
    """Task counts for the current user's own tasks."""
    total_tasks: int
    tasks_by_status: dict[str, int] = Field(default_factory=dict)
    overdue_tasks: int
    tasks_due_today: int
    tasks_due_this_week: int  # after today, before today + 7 days


async def count_tasks(db: AsyncSession, *filters) -> int:
    """Count tasks matching all filters."""
    result = await db.execute(select(func.count(Task.id)).where(and_(*filters)))
    return result.scalar() or 0


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> DashboardStats:
    """Get task statistics for the current user.

    Overdue and upcoming counts exclude completed tasks.
    """
    today = date.today()
    week_end = today + timedelta(days=UPCOMING_WINDOW_DAYS)

    owned = Task.owner_id == current_user.id
    open_task = Task.status != TaskStatus.COMPLETED.value

    status_result = await db.execute(
        select(Task.status, func.count(Task.id))
        .where(owned)
        .group_by(Task.status)
    )
    tasks_by_status = {task_status: count for task_status, count in status_result.all()}

    return DashboardStats(
        total_tasks=sum(tasks_by_status.values()),
        tasks_by_status=tasks_by_status,
        overdue_tasks=await count_tasks(db, owned, open_task, Task.due_date < today),
        tasks_due_today=await count_tasks(db, owned, open_task, Task.due_date == today),
        tasks_due_this_week=await count_tasks(
            db, owned, open_task, Task.due_date > today, Task.due_date < week_end
        ),
    )
