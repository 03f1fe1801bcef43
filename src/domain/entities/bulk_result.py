"""Bulk invitation summary entities."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4


class BulkStatus(StrEnum):
    """Status of a bulk invitation run."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class BulkItemOutcome(StrEnum):
    """What happened to a single email in a bulk run."""

    CREATED = "created"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class BulkItemResult:
    """Per-email result of a bulk run."""

    email: str
    outcome: BulkItemOutcome
    invitation_id: UUID | None = None
    error_code: str | None = None
    error: str | None = None


@dataclass
class BulkInvitationResult:
    """Summary of one bulk run. Immutable once status leaves IN_PROGRESS."""

    workspace_id: UUID
    invited_by_id: UUID
    type: str
    target_id: UUID
    role: str
    id: UUID = field(default_factory=uuid4)
    total_count: int = 0
    success_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0
    status: BulkStatus = BulkStatus.IN_PROGRESS
    failed_emails: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: datetime | None = None

    def finalize(self, items: list[BulkItemResult]) -> None:
        """Fold per-item results into the counts and settle the status."""
        self.success_count = sum(1 for i in items if i.outcome == BulkItemOutcome.CREATED)
        self.failed_count = sum(1 for i in items if i.outcome == BulkItemOutcome.FAILED)
        self.skipped_count = sum(1 for i in items if i.outcome == BulkItemOutcome.SKIPPED)
        self.failed_emails = [i.email for i in items if i.outcome == BulkItemOutcome.FAILED]

        if self.failed_count == 0:
            self.status = BulkStatus.COMPLETED
        elif self.success_count == 0:
            self.status = BulkStatus.FAILED
        else:
            self.status = BulkStatus.PARTIAL
        self.completed_at = datetime.utcnow()
