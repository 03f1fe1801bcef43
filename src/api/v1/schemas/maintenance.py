"""Pydantic schemas for scheduler-facing sweep endpoints."""

from pydantic import BaseModel


class ExpireSweepResponse(BaseModel):
    """Schema for the expiry sweep result."""

    expired: int


class ReminderSweepResponse(BaseModel):
    """Schema for the reminder sweep result."""

    selected: int
    sent: int
    failed: int


class PurgeResponse(BaseModel):
    """Schema for the stale invitation purge result."""

    deleted: int
