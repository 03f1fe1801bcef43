"""create_invitation_tables

Revision ID: 4c1d7e93a0b2
Revises:
Create Date: 2026-10-19 10:12:44.310582

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4c1d7e93a0b2'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

INVITATION_TYPES = "'workspace', 'space', 'folder', 'project', 'team', 'task'"


def upgrade() -> None:
    """Create invitation, link, access request and bulk result tables."""
    op.create_table('invitations',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('workspace_id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('link_token', sa.String(length=255), nullable=True),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('target_id', sa.UUID(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('permission', sa.String(length=20), nullable=False),
        sa.Column('invited_by_id', sa.UUID(), nullable=False),
        sa.Column('invitee_user_id', sa.UUID(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('method', sa.String(length=10), nullable=False, server_default='email'),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('link_expires_at', sa.DateTime(), nullable=True),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.Column('declined_at', sa.DateTime(), nullable=True),
        sa.Column('reminder_sent_at', sa.DateTime(), nullable=True),
        sa.Column('reminder_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_uses', sa.Integer(), nullable=True),
        sa.Column('use_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint(f"type IN ({INVITATION_TYPES})", name='ck_invitations_type'),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'expired', 'cancelled', 'revoked')",
            name='ck_invitations_status',
        ),
        sa.CheckConstraint("method IN ('email', 'link', 'direct')", name='ck_invitations_method'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token_hash'),
    )
    op.create_index('ix_invitations_workspace_id', 'invitations', ['workspace_id'], unique=False)
    op.create_index('ix_invitations_link_token', 'invitations', ['link_token'], unique=False)
    op.create_index('ix_invitations_invitee_user_id', 'invitations', ['invitee_user_id'], unique=False)
    # Listing invitations for a resource by status
    op.create_index('ix_invitations_target_status', 'invitations', ['type', 'target_id', 'status'], unique=False)
    # Looking up a user's pending invitations
    op.create_index('ix_invitations_email_status', 'invitations', ['email', 'status'], unique=False)

    op.create_table('invitation_permissions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('invitation_id', sa.UUID(), nullable=False),
        sa.Column('can_edit_tasks', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_create_tasks', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_delete_tasks', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_comment', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('can_create_subtasks', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_assign', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_see_time_spent', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('can_track_time', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_add_tags', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_create_views', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_invite_others', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_manage_sprints', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_view_reports', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_export', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('custom_permissions', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['invitation_id'], ['invitations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invitation_id'),
    )

    op.create_table('invitation_activities',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('invitation_id', sa.UUID(), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('actor_id', sa.UUID(), nullable=True),
        sa.Column('actor_type', sa.String(length=10), nullable=False, server_default='user'),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=500), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['invitation_id'], ['invitations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_invitation_activities_invitation_id', 'invitation_activities', ['invitation_id'], unique=False
    )

    op.create_table('invitation_link_settings',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('workspace_id', sa.UUID(), nullable=False),
        sa.Column('link_token', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('target_id', sa.UUID(), nullable=False),
        sa.Column('default_role', sa.String(length=20), nullable=False),
        sa.Column('default_permission', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('requires_approval', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('allowed_domains', postgresql.JSONB(astext_type=sa.Text()), nullable=False,
                  server_default=sa.text("'[]'::jsonb")),
        sa.Column('blocked_domains', postgresql.JSONB(astext_type=sa.Text()), nullable=False,
                  server_default=sa.text("'[]'::jsonb")),
        sa.Column('max_uses', sa.Integer(), nullable=True),
        sa.Column('use_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('created_by_id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint(f"type IN ({INVITATION_TYPES})", name='ck_invitation_links_type'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('link_token'),
    )
    op.create_index(
        'ix_invitation_link_settings_workspace_id', 'invitation_link_settings', ['workspace_id'], unique=False
    )
    op.create_index('ix_invitation_links_target', 'invitation_link_settings', ['type', 'target_id'], unique=False)

    op.create_table('access_requests',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('workspace_id', sa.UUID(), nullable=False),
        sa.Column('requester_id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('target_id', sa.UUID(), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('processed_by', sa.UUID(), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('denial_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint("status IN ('pending', 'approved', 'denied')", name='ck_access_requests_status'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_access_requests_requester_id', 'access_requests', ['requester_id'], unique=False)
    op.create_index(
        'ix_access_requests_target_status', 'access_requests', ['type', 'target_id', 'status'], unique=False
    )

    op.create_table('bulk_invitation_results',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('workspace_id', sa.UUID(), nullable=False),
        sa.Column('invited_by_id', sa.UUID(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('target_id', sa.UUID(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('total_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('success_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('failed_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('skipped_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='in_progress'),
        sa.Column('failed_emails', postgresql.JSONB(astext_type=sa.Text()), nullable=False,
                  server_default=sa.text("'[]'::jsonb")),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint(
            "status IN ('in_progress', 'completed', 'partial', 'failed')",
            name='ck_bulk_invitation_results_status',
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_bulk_invitation_results_workspace_id', 'bulk_invitation_results', ['workspace_id'], unique=False
    )


def downgrade() -> None:
    """Drop invitation tables."""
    op.drop_index('ix_bulk_invitation_results_workspace_id', table_name='bulk_invitation_results')
    op.drop_table('bulk_invitation_results')
    op.drop_index('ix_access_requests_target_status', table_name='access_requests')
    op.drop_index('ix_access_requests_requester_id', table_name='access_requests')
    op.drop_table('access_requests')
    op.drop_index('ix_invitation_links_target', table_name='invitation_link_settings')
    op.drop_index('ix_invitation_link_settings_workspace_id', table_name='invitation_link_settings')
    op.drop_table('invitation_link_settings')
    op.drop_index('ix_invitation_activities_invitation_id', table_name='invitation_activities')
    op.drop_table('invitation_activities')
    op.drop_table('invitation_permissions')
    op.drop_index('ix_invitations_email_status', table_name='invitations')
    op.drop_index('ix_invitations_target_status', table_name='invitations')
    op.drop_index('ix_invitations_invitee_user_id', table_name='invitations')
    op.drop_index('ix_invitations_link_token', table_name='invitations')
    op.drop_index('ix_invitations_workspace_id', table_name='invitations')
    op.drop_table('invitations')
