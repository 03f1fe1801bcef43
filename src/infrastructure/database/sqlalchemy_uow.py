"""SQLAlchemy Unit of Work implementation."""

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from infrastructure.database.repositories.sqlalchemy_access_request_repo import (
    SQLAlchemyAccessRequestRepository,
)
from infrastructure.database.repositories.sqlalchemy_activity_repo import SQLAlchemyActivityRepository
from infrastructure.database.repositories.sqlalchemy_bulk_result_repo import (
    SQLAlchemyBulkResultRepository,
)
from infrastructure.database.repositories.sqlalchemy_invitation_repo import SQLAlchemyInvitationRepository
from infrastructure.database.repositories.sqlalchemy_link_settings_repo import (
    SQLAlchemyLinkSettingsRepository,
)


class SQLAlchemyUnitOfWork:
    """Unit of Work implementation using SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._session: Optional[AsyncSession] = None

    def _require_session(self) -> AsyncSession:
        if not self._session:
            raise RuntimeError("UnitOfWork not initialized. Use as context manager.")
        return self._session

    @property
    def invitations(self) -> SQLAlchemyInvitationRepository:
        """Get invitation repository."""
        return SQLAlchemyInvitationRepository(self._require_session())

    @property
    def activities(self) -> SQLAlchemyActivityRepository:
        """Get invitation activity repository."""
        return SQLAlchemyActivityRepository(self._require_session())

    @property
    def link_settings(self) -> SQLAlchemyLinkSettingsRepository:
        """Get invitation link settings repository."""
        return SQLAlchemyLinkSettingsRepository(self._require_session())

    @property
    def access_requests(self) -> SQLAlchemyAccessRequestRepository:
        """Get access request repository."""
        return SQLAlchemyAccessRequestRepository(self._require_session())

    @property
    def bulk_results(self) -> SQLAlchemyBulkResultRepository:
        """Get bulk invitation result repository."""
        return SQLAlchemyBulkResultRepository(self._require_session())

    async def commit(self) -> None:
        """Commit the current transaction."""
        if self._session:
            await self._session.commit()

    async def rollback(self) -> None:
        """Rollback the current transaction."""
        if self._session:
            await self._session.rollback()

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        """Enter the context manager and create session."""
        self._session = self._session_factory()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[Exception],
        exc_tb: Any,
    ) -> None:
        """Exit the context manager and cleanup."""
        if self._session:
            if exc_type:
                await self.rollback()
            await self._session.close()
            self._session = None
