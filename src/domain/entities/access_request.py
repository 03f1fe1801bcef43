"""Access request domain entity."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4


class AccessRequestStatus(StrEnum):
    """Status of a self-service access request."""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


@dataclass
class AccessRequest:
    """A user asking to be let into a scope, reviewed by an approver."""

    workspace_id: UUID
    requester_id: UUID
    email: str
    type: str
    target_id: UUID
    id: UUID = field(default_factory=uuid4)
    message: str | None = None
    status: AccessRequestStatus = AccessRequestStatus.PENDING
    processed_by: UUID | None = None
    processed_at: datetime | None = None
    denial_reason: str | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_pending(self) -> bool:
        return self.status == AccessRequestStatus.PENDING
