"""Pydantic schemas for Invitation Link API."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from api.v1.schemas.access_request import AccessRequestResponse
from api.v1.schemas.invitation import InvitationResponse
from domain.entities.grant import GrantRole, InvitationType, PermissionLevel


class CreateLinkRequest(BaseModel):
    """Schema for creating a shareable invitation link."""

    type: InvitationType = InvitationType.WORKSPACE
    target_id: UUID
    default_role: GrantRole = GrantRole.MEMBER
    default_permission: PermissionLevel | None = None
    requires_approval: bool = False
    allowed_domains: list[str] = Field(default_factory=list)
    blocked_domains: list[str] = Field(default_factory=list)
    max_uses: int | None = Field(None, ge=1)
    expires_at: datetime | None = None


class UpdateLinkRequest(BaseModel):
    """Schema for changing a link's policy. Omitted fields stay unchanged."""

    default_role: GrantRole | None = None
    default_permission: PermissionLevel | None = None
    requires_approval: bool | None = None
    allowed_domains: list[str] | None = None
    blocked_domains: list[str] | None = None
    max_uses: int | None = Field(None, ge=1, description="Send null to remove the limit")
    expires_at: datetime | None = Field(None, description="Send null to remove the expiry")


class ValidateLinkRequest(BaseModel):
    """Schema for checking a link before joining."""

    link_token: str = Field(..., min_length=1)
    email: str | None = None


class JoinLinkRequest(BaseModel):
    """Schema for joining through a link."""

    link_token: str = Field(..., min_length=1)
    message: str | None = Field(None, max_length=2000)


class LinkResponse(BaseModel):
    """Schema for Invitation Link response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    workspace_id: UUID
    link_token: str
    type: str
    target_id: UUID
    default_role: str
    default_permission: str
    is_active: bool
    requires_approval: bool
    allowed_domains: list[str]
    blocked_domains: list[str]
    max_uses: int | None = None
    use_count: int
    expires_at: datetime | None = None
    created_by_id: UUID
    created_at: datetime
    updated_at: datetime


class LinkDetailResponse(BaseModel):
    """Schema for a single Invitation Link response."""

    data: LinkResponse


class LinkListResponse(BaseModel):
    """Schema for list of Invitation Links response."""

    data: list[LinkResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class LinkValidationResponse(BaseModel):
    """Schema for a successful link check."""

    valid: bool = True
    type: str
    target_id: UUID
    default_role: str
    requires_approval: bool


class JoinLinkResponse(BaseModel):
    """Schema for a link join.

    Exactly one of ``invitation`` and ``access_request`` is set.
    """

    pending_approval: bool
    invitation: InvitationResponse | None = None
    access_request: AccessRequestResponse | None = None
