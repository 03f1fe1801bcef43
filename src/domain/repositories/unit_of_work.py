"""Unit of Work protocol."""

from typing import Protocol

from domain.repositories.access_request_repository import IAccessRequestRepository
from domain.repositories.activity_repository import IInvitationActivityRepository
from domain.repositories.bulk_result_repository import IBulkResultRepository
from domain.repositories.invitation_repository import IInvitationRepository
from domain.repositories.link_settings_repository import ILinkSettingsRepository


class IUnitOfWork(Protocol):
    """Unit of Work interface for managing transactions."""

    invitations: IInvitationRepository
    activities: IInvitationActivityRepository
    link_settings: ILinkSettingsRepository
    access_requests: IAccessRequestRepository
    bulk_results: IBulkResultRepository

    async def commit(self) -> None:
        """Commit the current transaction."""
        ...

    async def rollback(self) -> None:
        """Rollback the current transaction."""
        ...

    async def __aenter__(self) -> "IUnitOfWork":
        """Enter the context manager."""
        ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        """Exit the context manager."""
        ...
