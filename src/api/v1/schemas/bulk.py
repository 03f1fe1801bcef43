"""Pydantic schemas for Bulk Invitation API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from domain.entities.grant import GrantRole, InvitationType, PermissionLevel


class BulkInvitationRequest(BaseModel):
    """Schema for inviting several emails to the same scope."""

    emails: list[str] = Field(..., min_length=1)
    type: InvitationType = InvitationType.WORKSPACE
    target_id: UUID
    role: GrantRole = GrantRole.MEMBER
    permission: PermissionLevel | None = None
    message: str | None = Field(None, max_length=2000)


class BulkItemResponse(BaseModel):
    """Schema for the outcome of one email in a bulk run."""

    model_config = ConfigDict(from_attributes=True)

    email: str
    outcome: str
    invitation_id: UUID | None = None
    error_code: str | None = None
    error: str | None = None


class BulkResultResponse(BaseModel):
    """Schema for a bulk run summary."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    workspace_id: UUID
    invited_by_id: UUID
    type: str
    target_id: UUID
    role: str
    total_count: int
    success_count: int
    failed_count: int
    skipped_count: int
    status: str
    failed_emails: list[str]
    created_at: datetime
    completed_at: datetime | None = None


class BulkInvitationResponse(BaseModel):
    """Schema for a finished bulk run with per-email outcomes."""

    data: BulkResultResponse
    items: list[BulkItemResponse]


class BulkResultDetailResponse(BaseModel):
    """Schema for a stored bulk run summary."""

    data: BulkResultResponse
