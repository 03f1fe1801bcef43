"""Pydantic schemas for Access Request API."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from domain.entities.grant import InvitationType


class CreateAccessRequestRequest(BaseModel):
    """Schema for asking for access to a scope."""

    type: InvitationType = InvitationType.WORKSPACE
    target_id: UUID
    message: str | None = Field(None, max_length=2000)


class DenyAccessRequestRequest(BaseModel):
    """Schema for denying an access request."""

    reason: str | None = Field(None, max_length=500)


class AccessRequestResponse(BaseModel):
    """Schema for Access Request response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    workspace_id: UUID
    requester_id: UUID
    email: str
    type: str
    target_id: UUID
    message: str | None = None
    status: str
    processed_by: UUID | None = None
    processed_at: datetime | None = None
    denial_reason: str | None = None
    created_at: datetime
    updated_at: datetime


class AccessRequestDetailResponse(BaseModel):
    """Schema for a single Access Request response."""

    data: AccessRequestResponse


class AccessRequestListResponse(BaseModel):
    """Schema for list of Access Requests response."""

    data: list[AccessRequestResponse]
    meta: dict[str, Any] = Field(default_factory=dict)
