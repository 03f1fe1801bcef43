"""Invitation activity entity and action constants."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID, uuid4

# --- Activity Action Constants ---
# Format: {entity_type}.{action}


class InvitationActions:
    """Invitation activity action constants using dot-notation."""

    # Invitation lifecycle
    INVITATION_CREATED = "invitation.created"
    INVITATION_ACCEPTED = "invitation.accepted"
    INVITATION_DECLINED = "invitation.declined"
    INVITATION_EXPIRED = "invitation.expired"
    INVITATION_CANCELLED = "invitation.cancelled"
    INVITATION_REVOKED = "invitation.revoked"
    INVITATION_RESENT = "invitation.resent"
    INVITATION_TOKEN_REGENERATED = "invitation.token_regenerated"
    INVITATION_REMINDER_SENT = "invitation.reminder_sent"
    INVITATION_PERMISSIONS_UPDATED = "invitation.permissions_updated"

    # Link joins
    LINK_JOINED = "link.joined"


class ActorType(StrEnum):
    """Who performed an action."""

    USER = "user"
    SYSTEM = "system"


@dataclass(frozen=True)
class ActorContext:
    """Identity and request origin of whoever triggers an operation."""

    actor_id: UUID | None
    actor_type: ActorType = ActorType.USER
    ip_address: str | None = None
    user_agent: str | None = None

    @classmethod
    def user(
        cls,
        user_id: UUID,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> "ActorContext":
        return cls(actor_id=user_id, ip_address=ip_address, user_agent=user_agent)


SYSTEM_ACTOR = ActorContext(actor_id=None, actor_type=ActorType.SYSTEM)


@dataclass
class InvitationActivity:
    """Append-only audit entry for an invitation."""

    invitation_id: UUID
    action: str
    id: UUID = field(default_factory=uuid4)
    actor_id: UUID | None = None
    actor_type: ActorType = ActorType.USER
    ip_address: str | None = None
    user_agent: str | None = None
    details: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)
