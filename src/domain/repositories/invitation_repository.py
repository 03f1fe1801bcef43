"""Invitation repository protocol."""

from datetime import datetime, timedelta
from typing import Protocol
from uuid import UUID

from domain.entities.invitation import (
    Invitation,
    InvitationFilter,
    InvitationPermissions,
    InvitationTally,
)


class IInvitationRepository(Protocol):
    """Repository interface for Invitation entities.

    The ``mark_*`` transitions are conditional writes: they only touch a row
    whose status is still pending and return False when nothing matched.
    """

    async def create(self, invitation: Invitation) -> Invitation:
        """Create a new invitation."""
        ...

    async def get_by_id(self, id: UUID) -> Invitation | None:
        """Get an invitation by its primary key."""
        ...

    async def get_by_token_hash(self, token_hash: str) -> Invitation | None:
        """Get an invitation by its hashed token."""
        ...

    async def get_by_link_token(self, link_token: str) -> list[Invitation]:
        """Get invitations created through a shared link."""
        ...

    async def get_for_email(self, email: str) -> list[Invitation]:
        """Get all invitations for an email address."""
        ...

    async def get_for_invitee(self, user_id: UUID) -> list[Invitation]:
        """Get all invitations addressed to or accepted by a user."""
        ...

    async def get_pending_for_email(self, email: str) -> list[Invitation]:
        """Get all pending (non-expired) invitations for an email address."""
        ...

    async def find_by_filter(self, filter: InvitationFilter) -> tuple[list[Invitation], int]:
        """List invitations matching a filter. Returns (page, total)."""
        ...

    async def count_by_workspace(self, workspace_id: UUID) -> int:
        """Count all invitations in a workspace."""
        ...

    async def count_pending_by_target(self, type: str, target_id: UUID) -> int:
        """Count pending invitations for a scope."""
        ...

    async def tally_by_status(
        self,
        workspace_id: UUID | None = None,
        type: str | None = None,
        target_id: UUID | None = None,
    ) -> InvitationTally:
        """Aggregate status counts and mean hours to accept for a workspace or scope."""
        ...

    async def exists_pending_for_email(self, email: str, type: str, target_id: UUID) -> bool:
        """Check for a pending invitation to an email on a scope."""
        ...

    async def exists_pending_for_user(self, user_id: UUID, type: str, target_id: UUID) -> bool:
        """Check for a pending invitation to a user on a scope."""
        ...

    async def find_pending_for_reminder(
        self, min_age: timedelta, max_reminders: int, limit: int = 100
    ) -> list[Invitation]:
        """Get pending invitations due a reminder, oldest first."""
        ...

    async def find_expired(self, limit: int = 500) -> list[Invitation]:
        """Get pending invitations whose expiry has passed."""
        ...

    async def mark_accepted(self, id: UUID, user_id: UUID) -> bool:
        """Transition pending -> accepted."""
        ...

    async def mark_declined(self, id: UUID) -> bool:
        """Transition pending -> declined."""
        ...

    async def mark_expired(self, id: UUID) -> bool:
        """Transition pending -> expired."""
        ...

    async def mark_cancelled(self, id: UUID) -> bool:
        """Transition pending -> cancelled."""
        ...

    async def mark_revoked(self, id: UUID) -> bool:
        """Transition pending -> revoked."""
        ...

    async def regenerate_token(self, id: UUID, token_hash: str) -> bool:
        """Replace the token of a pending invitation."""
        ...

    async def extend_expiry(self, id: UUID, expires_at: datetime | None) -> None:
        """Set a new expiry."""
        ...

    async def update_reminder_sent(self, id: UUID) -> None:
        """Increment the reminder count and stamp the send time."""
        ...

    async def reset_reminders(self, id: UUID) -> None:
        """Clear reminder state."""
        ...

    async def delete_expired(self, older_than: datetime) -> int:
        """Delete pending invitations that expired before a cutoff. Returns count.

        Retention purge: permissions and activity entries of each purged
        invitation go with it.
        """
        ...

    async def create_permissions(self, permissions: InvitationPermissions) -> InvitationPermissions:
        """Attach granular permissions to an invitation."""
        ...

    async def get_permissions(self, invitation_id: UUID) -> InvitationPermissions | None:
        """Get the granular permissions of an invitation."""
        ...

    async def update_permissions(self, permissions: InvitationPermissions) -> InvitationPermissions:
        """Replace the granular permissions of an invitation."""
        ...
