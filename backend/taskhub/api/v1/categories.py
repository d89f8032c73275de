"""Category API endpoints."""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.api.v1.auth import CurrentUser
from taskhub.db.session import get_db_session
from taskhub.exceptions import ForbiddenError, NotFoundError
from taskhub.models.task import Category

router = APIRouter()
logger = structlog.get_logger()


class CategoryCreate(BaseModel):
    """Create a category."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None


class CategoryUpdate(BaseModel):
    """Update a category."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None


class CategoryResponse(BaseModel):
    """Category response."""

    id: UUID
    name: str
    description: str | None
    user_id: UUID
    created_at: datetime

    class Config:
        from_attributes = True


async def resolve_user_categories(
    db: AsyncSession,
    user_id: UUID,
    category_ids: list[UUID] | None,
) -> list[Category]:
    """Load the given categories, dropping any the user does not own."""
    if not category_ids:
        return []

    result = await db.execute(
        select(Category).where(
            Category.id.in_(category_ids),
            Category.user_id == user_id,
        )
    )
    return list(result.scalars().all())


async def get_owned_category(db: AsyncSession, category_id: UUID, user_id: UUID) -> Category:
    """Load a category, requiring that the user owns it."""
    category = await db.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category", category_id)
    if category.user_id != user_id:
        raise ForbiddenError("You don't have permission to access this category")
    return category


@router.get("/", response_model=list[CategoryResponse])
async def list_categories(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[Category]:
    """List the current user's categories."""
    result = await db.execute(
        select(Category)
        .where(Category.user_id == current_user.id)
        .order_by(Category.name.asc())
    )
    return list(result.scalars().all())


@router.post("/", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    category_data: CategoryCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Category:
    """Create a category."""
    category = Category(
        name=category_data.name,
        description=category_data.description,
        user_id=current_user.id,
    )
    db.add(category)
    await db.commit()
    await db.refresh(category)

    logger.info("category_created", category_id=str(category.id), user_id=str(current_user.id))
    return category


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(
    category_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Category:
    """Get a category."""
    return await get_owned_category(db, category_id, current_user.id)


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: UUID,
    category_data: CategoryUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Category:
    """Update a category."""
    category = await get_owned_category(db, category_id, current_user.id)

    for field, value in category_data.model_dump(exclude_unset=True).items():
        setattr(category, field, value)

    await db.commit()
    await db.refresh(category)
    return category


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    """Delete a category. Tasks keep existing without it."""
    category = await get_owned_category(db, category_id, current_user.id)
    await db.delete(category)
    await db.commit()

    logger.info("category_deleted", category_id=str(category_id))
