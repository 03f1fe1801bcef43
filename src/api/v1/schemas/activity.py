"""Pydantic schemas for invitation history."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class InvitationActivityResponse(BaseModel):
    """Schema for an invitation audit entry response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    invitation_id: UUID
    action: str
    actor_id: UUID | None = None
    actor_type: str
    ip_address: str | None = None
    user_agent: str | None = None
    details: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime


class InvitationActivityListResponse(BaseModel):
    """Schema for invitation history response."""

    data: list[InvitationActivityResponse]
    meta: dict[str, Any] = Field(default_factory=dict)
