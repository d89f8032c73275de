# tests/conftest.py

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import date
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from taskhub.api.v1.auth import create_access_token, hash_password
from taskhub.db.base import Base
from taskhub.db.session import get_db_session
from taskhub.main import app
from taskhub.models import Task, User
from taskhub.services.file_storage import FileStorageService, get_file_storage

TEST_PASSWORD = "correct-horse-battery"


@pytest.fixture()
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """
    File-backed SQLite engine, fresh per test.

    A file (rather than :memory:) gives every session its own connection, so
    the API and the test body see each other's commits the way they would
    against PostgreSQL.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'taskhub.sqlite3'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
def storage(tmp_path: Path) -> FileStorageService:
    return FileStorageService(tmp_path / "uploads")


@pytest.fixture()
def make_user(db: AsyncSession) -> Callable[..., Awaitable[User]]:
    async def _make_user(username: str) -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            # Low work factor keeps the suite fast; verify_password reads it from the hash
            password_hash=hash_password(TEST_PASSWORD, iterations=1_000),
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def make_task(db: AsyncSession) -> Callable[..., Awaitable[Task]]:
    async def _make_task(owner: User, **fields) -> Task:
        fields.setdefault("title", "Write report")
        fields.setdefault("due_date", date(2024, 6, 1))
        task = Task(owner_id=owner.id, **fields)
        db.add(task)
        await db.commit()
        await db.refresh(task)
        return task

    return _make_task


@pytest.fixture()
async def owner(make_user) -> User:
    return await make_user("alice")


@pytest.fixture()
async def other_user(make_user) -> User:
    return await make_user("bob")


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    storage: FileStorageService,
) -> AsyncIterator[AsyncClient]:
    """HTTP client bound to the app with the database and file storage overridden."""

    async def _get_db_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _get_db_session
    app.dependency_overrides[get_file_storage] = lambda: storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
