"""Bulk invitation result repository protocol."""

from typing import Protocol
from uuid import UUID

from domain.entities.bulk_result import BulkInvitationResult


class IBulkResultRepository(Protocol):
    """Repository interface for BulkInvitationResult entities."""

    async def create(self, result: BulkInvitationResult) -> BulkInvitationResult:
        """Record the start of a bulk run."""
        ...

    async def get_by_id(self, id: UUID) -> BulkInvitationResult | None:
        """Get a bulk result by primary key."""
        ...

    async def update(self, result: BulkInvitationResult) -> BulkInvitationResult:
        """Persist final counts and status."""
        ...
