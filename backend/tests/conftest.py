"""Shared test fixtures for backend tests."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from govgen.database import Base
from govgen.main import app
from govgen.api.deps import get_db, get_completion_client
from govgen.auth.jwt import create_access_token
from govgen.services.completion_client import Message, OutputSchema, parse_structured
import govgen.models  # noqa: F401

OWNER_ID = "user-1"


class ScriptedCompletionClient:
    """Completion client that replays queued responses and records every call.

    Queued exceptions are raised instead of returned. Text answers to
    schema-constrained calls go through the same parsing as the HTTP
    adapters, so malformed JSON surfaces as ModelResponseInvalid.
    """

    provider = "scripted"

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls: list[tuple[list[Message], OutputSchema | None]] = []

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    async def complete(self, messages, schema=None):
        self.calls.append((list(messages), schema))
        if not self.responses:
            raise AssertionError("Unexpected completion call")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if schema is not None and isinstance(response, str):
            return parse_structured(response, schema)
        return response

    def prompt(self, index: int) -> str:
        """User message content of the index-th call."""
        messages, _ = self.calls[index]
        return next(m.content for m in messages if m.role == "user")


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """A fresh in-memory database per test."""
    TestSession = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with TestSession() as session:
        yield session


@pytest.fixture
def completion() -> ScriptedCompletionClient:
    return ScriptedCompletionClient()


def _make_auth_header(user_id: str, role: str) -> dict:
    """Create an Authorization header with a valid JWT."""
    token = create_access_token(user_id, role)
    return {"Authorization": f"Bearer {token}"}


def _override_db(session: AsyncSession):
    """Create a dependency override for get_db."""
    async def _get_db():
        yield session
    return _get_db


async def _client(session: AsyncSession, completion, headers: dict | None = None):
    app.dependency_overrides[get_db] = _override_db(session)
    app.dependency_overrides[get_completion_client] = lambda: completion
    transport = ASGITransport(app=app)
    return AsyncClient(transport=transport, base_url="http://test", headers=headers or {})


@pytest_asyncio.fixture
async def engineer_client(db_session, completion) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client authenticated as an engineer (can run the pipeline)."""
    async with await _client(db_session, completion, _make_auth_header(OWNER_ID, "engineer")) as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def other_engineer_client(db_session, completion) -> AsyncGenerator[AsyncClient, None]:
    """A second engineer identity sharing the same database."""
    async with await _client(db_session, completion, _make_auth_header("user-2", "engineer")) as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def viewer_client(db_session, completion) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client authenticated as viewer (read-only)."""
    async with await _client(db_session, completion, _make_auth_header(OWNER_ID, "viewer")) as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def anon_client(db_session, completion) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with no authentication."""
    async with await _client(db_session, completion) as client:
        yield client
    app.dependency_overrides.clear()
