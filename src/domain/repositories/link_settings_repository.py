"""Invitation link settings repository protocol."""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from domain.entities.link_settings import InvitationLinkSettings


class ILinkSettingsRepository(Protocol):
    """Repository interface for InvitationLinkSettings entities."""

    async def create(self, settings: InvitationLinkSettings) -> InvitationLinkSettings:
        """Create link settings."""
        ...

    async def get_by_id(self, id: UUID) -> InvitationLinkSettings | None:
        """Get link settings by primary key."""
        ...

    async def get_by_token(self, link_token: str) -> InvitationLinkSettings | None:
        """Get link settings by their public token."""
        ...

    async def list_for_target(self, type: str, target_id: UUID) -> list[InvitationLinkSettings]:
        """List link settings for a scope, newest first."""
        ...

    async def update(self, settings: InvitationLinkSettings) -> InvitationLinkSettings:
        """Persist changes to the mutable policy fields."""
        ...

    async def set_active(self, id: UUID, is_active: bool) -> bool:
        """Activate or deactivate a link."""
        ...

    async def consume_use(self, id: UUID, now: datetime) -> bool:
        """Atomically count one use if the link is still usable at ``now``."""
        ...

    async def delete(self, id: UUID) -> bool:
        """Delete link settings."""
        ...
