"""Shareable invitation link settings."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4


class LinkInvalidReason(StrEnum):
    """Why a link cannot currently be used."""

    INACTIVE = "inactive"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"


def _domain_set(domains: list[str]) -> set[str]:
    return {d.strip().lower().lstrip("@") for d in domains if d.strip()}


@dataclass
class InvitationLinkSettings:
    """A standing, reusable grant policy addressed by its link token."""

    workspace_id: UUID
    link_token: str
    type: str
    target_id: UUID
    default_role: str
    default_permission: str
    created_by_id: UUID
    id: UUID = field(default_factory=uuid4)
    is_active: bool = True
    requires_approval: bool = False
    allowed_domains: list[str] = field(default_factory=list)
    blocked_domains: list[str] = field(default_factory=list)
    max_uses: int | None = None
    use_count: int = 0
    expires_at: datetime | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def invalid_reason(self, now: datetime | None = None) -> LinkInvalidReason | None:
        """Return the first reason the link is unusable, or None when it is usable."""
        now = now or datetime.utcnow()
        if not self.is_active:
            return LinkInvalidReason.INACTIVE
        if self.expires_at is not None and now > self.expires_at:
            return LinkInvalidReason.EXPIRED
        if self.max_uses is not None and self.use_count >= self.max_uses:
            return LinkInvalidReason.EXHAUSTED
        return None

    def is_valid(self, now: datetime | None = None) -> bool:
        """Check activity flag, expiry and use-count ceiling."""
        return self.invalid_reason(now) is None

    def check_domain(self, email: str) -> bool:
        """Check an email against the domain policy.

        The block list always wins: a blocked domain is rejected even if it
        also appears on the allow list. A non-empty allow list rejects every
        domain it does not name.
        """
        parts = email.strip().split("@")
        if len(parts) != 2 or not parts[1]:
            return False
        domain = parts[1].lower()

        if domain in _domain_set(self.blocked_domains):
            return False

        allowed = _domain_set(self.allowed_domains)
        if allowed and domain not in allowed:
            return False
        return True
