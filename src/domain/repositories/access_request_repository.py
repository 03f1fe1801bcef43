"""Access request repository protocol."""

from typing import Protocol
from uuid import UUID

from domain.entities.access_request import AccessRequest, AccessRequestStatus


class IAccessRequestRepository(Protocol):
    """Repository interface for AccessRequest entities."""

    async def create(self, request: AccessRequest) -> AccessRequest:
        """Create an access request."""
        ...

    async def get_by_id(self, id: UUID) -> AccessRequest | None:
        """Get an access request by primary key."""
        ...

    async def get_pending_for_requester(
        self, requester_id: UUID, type: str, target_id: UUID
    ) -> AccessRequest | None:
        """Get a requester's pending request on a scope."""
        ...

    async def list_for_target(
        self,
        type: str,
        target_id: UUID,
        status: AccessRequestStatus | None = None,
    ) -> list[AccessRequest]:
        """List requests on a scope, newest first."""
        ...

    async def list_for_requester(self, requester_id: UUID) -> list[AccessRequest]:
        """List a requester's requests, newest first."""
        ...

    async def update_status(
        self,
        id: UUID,
        status: AccessRequestStatus,
        processed_by: UUID,
        denial_reason: str | None = None,
    ) -> bool:
        """Resolve a pending request. Returns False if it was no longer pending."""
        ...
