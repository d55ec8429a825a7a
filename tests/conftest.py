"""
Pytest fixtures for PollHub backend tests.
"""

import os
import uuid
from collections.abc import AsyncGenerator
from typing import Any

# Set test environment variables before importing app
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("LOG_LEVEL", "debug")

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from core.base import Base
from core.settings import settings
from schemas.poll_schema import CreatePollOptionSchema, CreatePollRequestSchema


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite database built from the ORM metadata."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as db_session:
        yield db_session


@pytest.fixture
async def client(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncClient, None]:
    """App client whose requests each get a fresh session on the test database."""
    from core.depends import get_session
    from main import app

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as db_session:
            yield db_session

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def owner_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def other_user_id() -> uuid.UUID:
    return uuid.uuid4()


def make_token(user_id: uuid.UUID) -> str:
    return jwt.encode({"sub": str(user_id)}, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def headers_for():
    """Bearer headers for an arbitrary caller."""

    def build(user_id: uuid.UUID) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user_id)}"}

    return build


@pytest.fixture
def auth_headers(owner_id: uuid.UUID, headers_for) -> dict[str, str]:
    return headers_for(owner_id)


@pytest.fixture
def poll_request():
    """Build a create request from plain option texts and tag names."""

    def build(question: str, options: list[str], tags: list[str] | None = None) -> CreatePollRequestSchema:
        return CreatePollRequestSchema(
            question=question,
            options=[CreatePollOptionSchema(text=text) for text in options],
            tags=tags or [],
        )

    return build


@pytest.fixture
def cats_or_dogs() -> dict[str, Any]:
    return {
        "question": "Cats or dogs?",
        "options": [{"text": "Cats"}, {"text": "Dogs"}],
        "tags": ["pets"],
    }
