"""Invitation domain entities."""

import hashlib
import secrets
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID, uuid4

from domain.entities.grant import Capability, default_capabilities


class InvitationStatus(StrEnum):
    """Lifecycle status of an invitation. Everything but PENDING is terminal."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    REVOKED = "revoked"


TERMINAL_STATUSES = frozenset(s for s in InvitationStatus if s != InvitationStatus.PENDING)


class InvitationMethod(StrEnum):
    """How the invitation reached the invitee."""

    EMAIL = "email"
    LINK = "link"
    DIRECT = "direct"


def generate_token(nbytes: int = 32) -> str:
    """Generate a URL-safe random token."""
    return secrets.token_urlsafe(nbytes)


def hash_token(token: str) -> str:
    """Hash a raw invitation token using SHA-256."""
    return hashlib.sha256(token.encode()).hexdigest()


def normalize_email(email: str) -> str:
    """Lower-case and strip an email address."""
    return email.lower().strip()


def is_valid_email(email: str) -> bool:
    """Shallow structural check: one '@' with a dotted domain after it."""
    local, sep, domain = email.partition("@")
    if not sep or not local or "@" in domain:
        return False
    if any(ch.isspace() for ch in email):
        return False
    return "." in domain and not domain.startswith(".") and not domain.endswith(".")


@dataclass
class Invitation:
    """Domain entity for a single grant in progress or its outcome."""

    workspace_id: UUID
    email: str
    token_hash: str
    type: str
    target_id: UUID
    role: str
    permission: str
    invited_by_id: UUID
    id: UUID = field(default_factory=uuid4)
    link_token: str | None = None
    invitee_user_id: UUID | None = None
    status: InvitationStatus = InvitationStatus.PENDING
    method: InvitationMethod = InvitationMethod.EMAIL
    message: str | None = None
    expires_at: datetime | None = None
    link_expires_at: datetime | None = None
    accepted_at: datetime | None = None
    declined_at: datetime | None = None
    reminder_sent_at: datetime | None = None
    reminder_count: int = 0
    max_uses: int | None = None
    use_count: int = 0
    metadata: dict[str, Any] | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_expired(self) -> bool:
        """True only when an expiry is set and has passed."""
        return self.expires_at is not None and datetime.utcnow() > self.expires_at

    @property
    def is_pending(self) -> bool:
        return self.status == InvitationStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def can_accept(self) -> bool:
        """Pending and not past its expiry."""
        return self.is_pending and not self.is_expired

    @property
    def can_resend(self) -> bool:
        return self.is_pending

    @property
    def can_cancel(self) -> bool:
        return self.is_pending


@dataclass
class InvitationPermissions:
    """Granular capability flags attached 1:1 to an invitation."""

    invitation_id: UUID
    id: UUID = field(default_factory=uuid4)
    can_edit_tasks: bool = False
    can_create_tasks: bool = False
    can_delete_tasks: bool = False
    can_comment: bool = True
    can_create_subtasks: bool = False
    can_assign: bool = False
    can_see_time_spent: bool = True
    can_track_time: bool = False
    can_add_tags: bool = False
    can_create_views: bool = False
    can_invite_others: bool = False
    can_manage_sprints: bool = False
    can_view_reports: bool = False
    can_export: bool = False
    custom_permissions: dict[str, Any] | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def for_level(cls, invitation_id: UUID, level: str) -> "InvitationPermissions":
        """Build the flag set a permission level implies."""
        granted = default_capabilities(level)
        flags = {cap.value: cap in granted for cap in Capability}
        return cls(invitation_id=invitation_id, **flags)

    def capabilities(self) -> frozenset[Capability]:
        """Return the capabilities whose flag is set."""
        return frozenset(cap for cap in Capability if getattr(self, cap.value))


@dataclass
class EffectivePermissions:
    """Resolved grant for an invitation: level plus concrete capability flags."""

    invitation_id: UUID
    role: str
    permission: str
    capabilities: frozenset[Capability]
    custom_permissions: dict[str, Any] | None = None
    explicit: bool = False


@dataclass
class InvitationFilter:
    """Criteria for listing invitations. None means unconstrained."""

    workspace_id: UUID | None = None
    email: str | None = None
    statuses: list[InvitationStatus] | None = None
    types: list[str] | None = None
    target_id: UUID | None = None
    invited_by_id: UUID | None = None
    invitee_user_id: UUID | None = None
    method: InvitationMethod | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    include_expired: bool = True
    limit: int = 50
    offset: int = 0
    order_by: str = "created_at"
    order_desc: bool = True


@dataclass
class InvitationTally:
    """Per-status counts and mean time-to-accept as aggregated by storage."""

    counts: dict[str, int] = field(default_factory=dict)
    avg_time_to_accept_hrs: float | None = None


@dataclass
class InvitationStats:
    """Aggregate counts and rates over a population of invitations."""

    total_invitations: int = 0
    pending_count: int = 0
    accepted_count: int = 0
    declined_count: int = 0
    expired_count: int = 0
    cancelled_count: int = 0
    revoked_count: int = 0
    acceptance_rate: float = 0.0
    avg_time_to_accept_hrs: float = 0.0
