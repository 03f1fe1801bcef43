"""SQLAlchemy ORM models."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

_INVITATION_TYPES = "'workspace', 'space', 'folder', 'project', 'team', 'task'"


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class InvitationModel(Base):
    """Invitation model."""

    __tablename__ = "invitations"
    __table_args__ = (
        Index("ix_invitations_target_status", "type", "target_id", "status"),
        Index("ix_invitations_email_status", "email", "status"),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    workspace_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    token_hash: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    link_token: Mapped[str | None] = mapped_column(String(255), index=True)
    type: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(f"type IN ({_INVITATION_TYPES})", name="ck_invitations_type"),
        nullable=False,
    )
    target_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    permission: Mapped[str] = mapped_column(String(20), nullable=False)
    invited_by_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False)
    invitee_user_id: Mapped[UUID | None] = mapped_column(PG_UUID(as_uuid=True), index=True)
    status: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'expired', 'cancelled', 'revoked')",
            name="ck_invitations_status",
        ),
        nullable=False,
        default="pending",
    )
    method: Mapped[str] = mapped_column(
        String(10),
        CheckConstraint("method IN ('email', 'link', 'direct')", name="ck_invitations_method"),
        nullable=False,
        default="email",
    )
    message: Mapped[str | None] = mapped_column(Text)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime)
    link_expires_at: Mapped[datetime | None] = mapped_column(DateTime)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime)
    declined_at: Mapped[datetime | None] = mapped_column(DateTime)
    reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime)
    reminder_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_uses: Mapped[int | None] = mapped_column(Integer)
    use_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    # Relationships
    permissions: Mapped["InvitationPermissionsModel | None"] = relationship(
        "InvitationPermissionsModel",
        back_populates="invitation",
        cascade="all, delete-orphan",
        uselist=False,
    )


class InvitationPermissionsModel(Base):
    """Granular capability flags attached to an invitation."""

    __tablename__ = "invitation_permissions"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    invitation_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("invitations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    can_edit_tasks: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_create_tasks: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_delete_tasks: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_comment: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    can_create_subtasks: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_assign: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_see_time_spent: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    can_track_time: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_add_tags: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_create_views: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_invite_others: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_manage_sprints: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_view_reports: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_export: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    custom_permissions: Mapped[dict[str, Any] | None] = mapped_column(JSONB)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    invitation: Mapped["InvitationModel"] = relationship(
        "InvitationModel",
        back_populates="permissions",
    )


class InvitationActivityModel(Base):
    """Append-only audit trail for invitations."""

    __tablename__ = "invitation_activities"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    invitation_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("invitations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    actor_id: Mapped[UUID | None] = mapped_column(PG_UUID(as_uuid=True))
    actor_type: Mapped[str] = mapped_column(String(10), nullable=False, default="user")
    ip_address: Mapped[str | None] = mapped_column(String(45))
    user_agent: Mapped[str | None] = mapped_column(String(500))
    details: Mapped[str | None] = mapped_column(Text)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class InvitationLinkSettingsModel(Base):
    """Shareable invitation link policy."""

    __tablename__ = "invitation_link_settings"
    __table_args__ = (Index("ix_invitation_links_target", "type", "target_id"),)

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    workspace_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False, index=True)
    link_token: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    type: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(f"type IN ({_INVITATION_TYPES})", name="ck_invitation_links_type"),
        nullable=False,
    )
    target_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False)
    default_role: Mapped[str] = mapped_column(String(20), nullable=False)
    default_permission: Mapped[str] = mapped_column(String(20), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    requires_approval: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    allowed_domains: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)
    blocked_domains: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)
    max_uses: Mapped[int | None] = mapped_column(Integer)
    use_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_by_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )


class AccessRequestModel(Base):
    """Self-service access request."""

    __tablename__ = "access_requests"
    __table_args__ = (Index("ix_access_requests_target_status", "type", "target_id", "status"),)

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    workspace_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False)
    requester_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    target_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False)
    message: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(
            "status IN ('pending', 'approved', 'denied')",
            name="ck_access_requests_status",
        ),
        nullable=False,
        default="pending",
    )
    processed_by: Mapped[UUID | None] = mapped_column(PG_UUID(as_uuid=True))
    processed_at: Mapped[datetime | None] = mapped_column(DateTime)
    denial_reason: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )


class BulkInvitationResultModel(Base):
    """Summary of a bulk invitation run."""

    __tablename__ = "bulk_invitation_results"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    workspace_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False, index=True)
    invited_by_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    target_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    total_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    success_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    failed_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    skipped_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(
            "status IN ('in_progress', 'completed', 'partial', 'failed')",
            name="ck_bulk_invitation_results_status",
        ),
        nullable=False,
        default="in_progress",
    )
    failed_emails: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)
