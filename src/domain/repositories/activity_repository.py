"""Invitation activity repository protocol."""

from typing import List, Protocol
from uuid import UUID

from domain.entities.activity import InvitationActivity


class IInvitationActivityRepository(Protocol):
    """Repository interface for the append-only invitation audit trail."""

    async def create(self, activity: InvitationActivity) -> InvitationActivity:
        """Append an activity entry."""
        ...

    async def get_for_invitation(
        self,
        invitation_id: UUID,
        limit: int = 50,
    ) -> List[InvitationActivity]:
        """Get activity entries for an invitation, oldest first."""
        ...
