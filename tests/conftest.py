"""Pytest configuration and fixtures."""

import os
import sys
from collections.abc import AsyncGenerator, Callable
from datetime import timedelta
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

# Disable rate limiting in tests
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SCHEDULER_TOKEN"] = "test-scheduler-token"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.pool import StaticPool

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from domain.entities.notification import AccessRequestEvent, InvitationEvent
from infrastructure.database.models import Base
from infrastructure.database.repositories.sqlalchemy_invitation_repo import hours_between
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork


# Compile JSONB as JSON for SQLite (used in tests)
@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_: Any, compiler: Any, **kw: Any) -> str:
    return "JSON"


# julianday arithmetic stands in for EXTRACT(EPOCH ...) on SQLite
@compiles(hours_between, "sqlite")
def _compile_hours_between_sqlite(element: Any, compiler: Any, **kw: Any) -> str:
    start, end = list(element.clauses)
    return (
        f"(julianday({compiler.process(end, **kw)}) - "
        f"julianday({compiler.process(start, **kw)})) * 24.0"
    )


# Test database URL (SQLite in memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed test caller for consistency
TEST_USER_ID = uuid4()
TEST_USER_EMAIL = "test@example.com"


class RecordingSink:
    """Notification sink that keeps every delivered event."""

    def __init__(self) -> None:
        self.events: list[InvitationEvent | AccessRequestEvent] = []

    async def deliver(self, event: InvitationEvent | AccessRequestEvent) -> None:
        self.events.append(event)

    def actions(self) -> list[str]:
        return [e.action for e in self.events]


@pytest.fixture(scope="session")
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )
    yield engine
    await engine.dispose()


@pytest.fixture(scope="session")
async def setup_database(engine: AsyncEngine) -> AsyncGenerator[None, None]:
    """Create all tables once per session."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(scope="session")
async def session_factory(
    engine: AsyncEngine, setup_database: None
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create session factory."""
    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    yield factory


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def uow_factory(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[], SQLAlchemyUnitOfWork]:
    """Unit of Work factory bound to the test database."""

    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(session_factory)

    return factory


@pytest.fixture
def sink() -> RecordingSink:
    """Notification sink that records events."""
    return RecordingSink()


@pytest.fixture
def caller_id() -> UUID:
    return TEST_USER_ID


@pytest.fixture
def caller_headers() -> dict[str, str]:
    """Identity headers the gateway would forward for the test caller."""
    return {"X-User-Id": str(TEST_USER_ID), "X-User-Email": TEST_USER_EMAIL}


@pytest.fixture
def scheduler_headers(caller_headers: dict[str, str]) -> dict[str, str]:
    """Caller headers plus the shared scheduler token."""
    return {**caller_headers, "X-Scheduler-Token": "test-scheduler-token"}


def headers_for(user_id: UUID, email: str) -> dict[str, str]:
    """Identity headers for an arbitrary caller."""
    return {"X-User-Id": str(user_id), "X-User-Email": email}


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client against the default app (no overrides)."""
    from main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def api_client(
    uow_factory: Callable[[], SQLAlchemyUnitOfWork],
    sink: RecordingSink,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test client wired to the SQLite test database.

    This client:
    - Uses an in-memory SQLite database shared across the session
    - Overrides every service dependency to use the test Unit of Work
    - Records notifications in the ``sink`` fixture
    """
    from api.v1 import dependencies as deps
    from domain.services.access_request_service import AccessRequestService
    from domain.services.activity_service import ActivityService
    from domain.services.bulk_invitation_service import BulkInvitationService
    from domain.services.invitation_service import InvitationService
    from domain.services.invitation_stats import InvitationStatsService
    from domain.services.link_invitation_service import LinkInvitationService
    from domain.services.notification_service import NotificationService
    from domain.services.reminder_service import ReminderService
    from main import create_app

    app = create_app()

    activity = ActivityService(uow_factory)
    notifications = NotificationService(sink)
    invitations = InvitationService(
        uow_factory,
        activity_service=activity,
        notification_service=notifications,
    )
    access_requests = AccessRequestService(uow_factory, notification_service=notifications)
    links = LinkInvitationService(
        uow_factory,
        invitation_service=invitations,
        access_request_service=access_requests,
        activity_service=activity,
        notification_service=notifications,
    )
    bulk = BulkInvitationService(uow_factory, invitation_service=invitations, max_emails=10)
    reminders = ReminderService(
        uow_factory,
        activity_service=activity,
        notification_service=notifications,
        min_age=timedelta(hours=48),
    )
    stats = InvitationStatsService(uow_factory)

    app.dependency_overrides[deps.get_activity_service] = lambda: activity
    app.dependency_overrides[deps.get_notification_service] = lambda: notifications
    app.dependency_overrides[deps.get_invitation_service] = lambda: invitations
    app.dependency_overrides[deps.get_access_request_service] = lambda: access_requests
    app.dependency_overrides[deps.get_link_invitation_service] = lambda: links
    app.dependency_overrides[deps.get_bulk_invitation_service] = lambda: bulk
    app.dependency_overrides[deps.get_reminder_service] = lambda: reminders
    app.dependency_overrides[deps.get_stats_service] = lambda: stats

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
