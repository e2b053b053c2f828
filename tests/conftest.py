"""
Shared test fixtures for the Forum API test suite.

Each test gets its own in-memory aiosqlite database (``StaticPool`` so all
sessions share the one connection) with tables created and permissions
seeded.
"""

import os
import sys
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["LIMITER_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from forum.api.v1.deps import get_db
from forum.core.permissions import PermissionRegistry, seed_permissions
from forum.core.security import get_password_hash
from forum.core.tokens import TokenService
from forum.db.base import Base
from forum.db.stores import UserStore
from forum.main import app
from forum.models.permission import FORUMS_READ, FORUMS_WRITE
from forum.models.token import SCOPE_AUTHENTICATION
from forum.models.user import User

DEFAULT_PASSWORD = "pa55word123"


class FakeClock:
    """Settable UTC clock for expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class RecordingMailer:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, dict[str, Any]]] = []

    def send(self, recipient: str, template: str, data: dict[str, Any]) -> None:
        self.sent.append((recipient, template, data))


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with async_sessionmaker(test_engine, expire_on_commit=False)() as session:
        await seed_permissions(session)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct store / service calls."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
async def async_client(session_factory, mailer) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app and the test database."""

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    original_mailer = app.state.mailer
    app.state.mailer = mailer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.state.mailer = original_mailer
    app.dependency_overrides.clear()


@pytest.fixture
def create_user(session_factory) -> Callable[..., Awaitable[User]]:
    """Factory: insert a user directly and grant it *permissions*."""
    counter = iter(range(1, 10_000))

    async def _create(
        email: str | None = None,
        password: str = DEFAULT_PASSWORD,
        activated: bool = True,
        permissions: tuple[str, ...] = (FORUMS_READ, FORUMS_WRITE),
        name: str = "Test User",
    ) -> User:
        async with session_factory() as session:
            user = await UserStore(session).insert(
                User(
                    name=name,
                    email=email or f"user{next(counter)}@example.com",
                    password_hash=get_password_hash(password),
                    activated=activated,
                )
            )
            if permissions:
                await PermissionRegistry(session).add_for_user(user.id, *permissions)
        return user

    return _create


@pytest.fixture
def auth_headers(session_factory, create_user) -> Callable[..., Awaitable[dict[str, str]]]:
    """Factory: create a user, log it in, and return its Authorization header."""

    async def _headers(**user_kwargs: Any) -> dict[str, str]:
        user = await create_user(**user_kwargs)
        async with session_factory() as session:
            token = await TokenService(session).issue(user.id, timedelta(hours=24), SCOPE_AUTHENTICATION)
        return {"Authorization": f"Bearer {token.plaintext}"}

    return _headers


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
