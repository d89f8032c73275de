"""Database session management."""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from taskhub.config import get_settings

settings = get_settings()


def build_engine(url: str | None = None) -> AsyncEngine:
    """Create the pooled async engine for the configured database.

    Connections run with ``timezone=UTC`` so ``now()`` server defaults and
    the recurring sweep (scheduled in UTC) agree on the current date.
    """
    return create_async_engine(
        url or str(settings.database_url),
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_timeout=settings.database_pool_timeout,
        pool_pre_ping=True,
        echo=settings.debug,
        connect_args={
            "server_settings": {
                "application_name": settings.app_name,
                "timezone": "UTC",
            }
        },
    )


engine = build_engine()

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def init_db() -> None:
    """Verify database connectivity on startup."""
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))


async def close_db() -> None:
    """Close database connection pool."""
    await engine.dispose()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session: commit on success, roll back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def worker_session() -> AsyncIterator[AsyncSession]:
    """Session for a background job run under ``asyncio.run``.

    Pooled connections belong to the event loop that opened them, and every
    Celery invocation starts a new loop, so the pool is disposed on exit.
    The caller owns commits.
    """
    try:
        async with async_session_factory() as session:
            yield session
    finally:
        await engine.dispose()


# Type alias for dependency injection
DBSession = Annotated[AsyncSession, Depends(get_db_session)]
