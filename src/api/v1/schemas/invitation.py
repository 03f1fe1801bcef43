"""Pydantic schemas for Invitation API."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from domain.entities.grant import GrantRole, InvitationType, PermissionLevel
from domain.entities.invitation import InvitationMethod


class CreateInvitationRequest(BaseModel):
    """Schema for creating an invitation."""

    email: str = Field(..., min_length=3, max_length=255)
    type: InvitationType = InvitationType.WORKSPACE
    target_id: UUID
    role: GrantRole = GrantRole.MEMBER
    permission: PermissionLevel | None = Field(
        None, description="Defaults to the level implied by the role"
    )
    method: InvitationMethod = Field(
        InvitationMethod.EMAIL,
        description="'email' for token delivery, 'direct' for an existing user",
    )
    invitee_user_id: UUID | None = None
    message: str | None = Field(None, max_length=2000)
    expires_at: datetime | None = None
    metadata: dict[str, Any] | None = None
    permission_flags: dict[str, bool] | None = Field(
        None, description="Capability overrides, e.g. {'can_export': true}"
    )
    custom_permissions: dict[str, Any] | None = None


class TokenRequest(BaseModel):
    """Schema for operations addressed by raw invitation token."""

    token: str = Field(..., min_length=1)


class RevokeInvitationRequest(BaseModel):
    """Schema for revoking an invitation."""

    reason: str | None = Field(None, max_length=500)


class InvitationResponse(BaseModel):
    """Schema for Invitation response."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "workspace_id": "456e4567-e89b-12d3-a456-426614174000",
                "email": "user@example.com",
                "type": "project",
                "target_id": "999e4567-e89b-12d3-a456-426614174000",
                "role": "member",
                "permission": "edit",
                "status": "pending",
                "method": "email",
                "invited_by_id": "789e4567-e89b-12d3-a456-426614174000",
                "created_at": "2026-02-01T10:00:00",
                "expires_at": "2026-02-08T10:00:00",
            }
        },
    )

    id: UUID
    workspace_id: UUID
    email: str
    type: str
    target_id: UUID
    role: str
    permission: str
    status: str
    method: str
    invited_by_id: UUID
    invitee_user_id: UUID | None = None
    message: str | None = None
    reminder_count: int = 0
    metadata: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime
    expires_at: datetime | None = None
    accepted_at: datetime | None = None
    declined_at: datetime | None = None
    reminder_sent_at: datetime | None = None


class InvitationDetailResponse(BaseModel):
    """Schema for a single Invitation response."""

    data: InvitationResponse


class InvitationListResponse(BaseModel):
    """Schema for list of Invitations response."""

    data: list[InvitationResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class InvitationTokenResponse(BaseModel):
    """Schema for responses that carry a freshly minted raw token."""

    data: InvitationResponse
    token: str = Field(
        ...,
        description="Raw invitation token. Share this with the invitee. "
        "This value is only shown once.",
    )


class InvitationCountResponse(BaseModel):
    """Schema for invitation count response."""

    count: int


class PermissionsResponse(BaseModel):
    """Schema for the resolved permissions of an invitation."""

    invitation_id: UUID
    role: str
    permission: str
    capabilities: dict[str, bool]
    custom_permissions: dict[str, Any] | None = None
    explicit: bool = Field(
        False, description="True when stored flags exist, false for level defaults"
    )


class UpdatePermissionsRequest(BaseModel):
    """Schema for overriding capability flags on an invitation."""

    permission_flags: dict[str, bool] = Field(default_factory=dict)
    custom_permissions: dict[str, Any] | None = None


class InvitationStatsResponse(BaseModel):
    """Schema for invitation statistics."""

    model_config = ConfigDict(from_attributes=True)

    total_invitations: int
    pending_count: int
    accepted_count: int
    declined_count: int
    expired_count: int
    cancelled_count: int
    revoked_count: int
    acceptance_rate: float
    avg_time_to_accept_hrs: float
