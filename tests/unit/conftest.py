"""Shared fixtures for unit tests."""

from datetime import datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest

from domain.entities.activity import ActorContext
from domain.entities.invitation import Invitation, InvitationMethod, hash_token


class FakeUnitOfWork:
    """Fake Unit of Work with all 5 repository mocks for unit testing."""

    def __init__(self) -> None:
        self.invitations = AsyncMock()
        self.activities = AsyncMock()
        self.link_settings = AsyncMock()
        self.access_requests = AsyncMock()
        self.bulk_results = AsyncMock()
        self.committed = False
        self.commit_count = 0
        self.rolled_back = False

    async def commit(self) -> None:
        self.committed = True
        self.commit_count += 1

    async def rollback(self) -> None:
        self.rolled_back = True

    async def __aenter__(self) -> "FakeUnitOfWork":
        return self

    async def __aexit__(self, *args: Any) -> None:
        pass


async def echo(entity: Any) -> Any:
    """Side effect for repository create/update mocks: return the argument."""
    return entity


def make_invitation(**overrides: Any) -> Invitation:
    """Build a pending email invitation with sensible defaults."""
    values: dict[str, Any] = {
        "workspace_id": uuid4(),
        "email": "invitee@example.com",
        "token_hash": hash_token("raw-token"),
        "type": "project",
        "target_id": uuid4(),
        "role": "member",
        "permission": "edit",
        "invited_by_id": uuid4(),
        "method": InvitationMethod.EMAIL,
        "expires_at": datetime.utcnow() + timedelta(days=7),
    }
    values.update(overrides)
    return Invitation(**values)


@pytest.fixture
def uow() -> FakeUnitOfWork:
    """Create a fresh FakeUnitOfWork."""
    return FakeUnitOfWork()


@pytest.fixture
def user_id() -> UUID:
    """A random user ID."""
    return uuid4()


@pytest.fixture
def workspace_id() -> UUID:
    """A random workspace ID."""
    return uuid4()


@pytest.fixture
def actor_id() -> UUID:
    """A random actor ID (distinct from user_id)."""
    return uuid4()


@pytest.fixture
def actor(actor_id: UUID) -> ActorContext:
    """The acting user."""
    return ActorContext.user(actor_id, ip_address="10.0.0.1", user_agent="pytest")
