"""API router package."""

from fastapi import APIRouter

from taskhub.api.v1 import (
    attachments,
    auth,
    categories,
    collaborators,
    comments,
    dashboard,
    health,
    shared_tasks,
    subtasks,
    tasks,
    templates,
)

router = APIRouter()

# Include all API routers
router.include_router(health.router, tags=["Health"])
router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(collaborators.router, prefix="/tasks", tags=["Collaborators"])
router.include_router(subtasks.router, prefix="/tasks", tags=["Subtasks"])
router.include_router(comments.router, prefix="/tasks", tags=["Comments"])
router.include_router(attachments.router, prefix="/tasks", tags=["Attachments"])
router.include_router(shared_tasks.router, prefix="/shared-tasks", tags=["Shared Tasks"])
router.include_router(categories.router, prefix="/categories", tags=["Categories"])
router.include_router(templates.router, prefix="/templates", tags=["Templates"])
router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
