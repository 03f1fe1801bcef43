"""Outbound events handed to the notification collaborator."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

# --- Event Action Constants ---


class EventActions:
    """Action names carried on outgoing events."""

    CREATED = "created"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    REVOKED = "revoked"
    RESENT = "resent"
    TOKEN_REGENERATED = "token_regenerated"
    REMINDER = "reminder"

    ACCESS_REQUESTED = "access_requested"
    ACCESS_APPROVED = "access_approved"
    ACCESS_DENIED = "access_denied"


@dataclass
class InvitationEvent:
    """Invitation state change, rendered into a message by the notifier."""

    invitation_id: UUID
    workspace_id: UUID
    type: str
    target_id: UUID
    status: str
    action: str
    email: str
    raw_token: str | None = None
    actor_id: UUID | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class AccessRequestEvent:
    """Access request state change."""

    access_request_id: UUID
    workspace_id: UUID
    type: str
    target_id: UUID
    status: str
    action: str
    requester_id: UUID
    email: str
    actor_id: UUID | None = None
    occurred_at: datetime = field(default_factory=datetime.utcnow)
