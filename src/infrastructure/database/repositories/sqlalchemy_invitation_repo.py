"""SQLAlchemy implementation of Invitation repository."""

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import Float, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.functions import FunctionElement

from domain.entities.grant import Capability
from domain.entities.invitation import (
    Invitation,
    InvitationFilter,
    InvitationMethod,
    InvitationPermissions,
    InvitationStatus,
    InvitationTally,
)
from infrastructure.database.models import (
    InvitationActivityModel,
    InvitationModel,
    InvitationPermissionsModel,
)

_PENDING = InvitationStatus.PENDING.value

# Columns a caller may sort by
_ORDER_COLUMNS = {
    "created_at": InvitationModel.created_at,
    "updated_at": InvitationModel.updated_at,
    "expires_at": InvitationModel.expires_at,
    "accepted_at": InvitationModel.accepted_at,
    "email": InvitationModel.email,
    "status": InvitationModel.status,
}


def _not_expired(now: datetime) -> Any:
    return or_(InvitationModel.expires_at.is_(None), InvitationModel.expires_at > now)


class hours_between(FunctionElement[float]):
    """Elapsed hours between two timestamp expressions, NULL if either is NULL."""

    type = Float()
    inherit_cache = True


@compiles(hours_between)
def _hours_between_postgresql(element: hours_between, compiler: Any, **kw: Any) -> str:
    start, end = list(element.clauses)
    return (
        f"EXTRACT(EPOCH FROM ({compiler.process(end, **kw)} - "
        f"{compiler.process(start, **kw)})) / 3600.0"
    )


class SQLAlchemyInvitationRepository:
    """SQLAlchemy implementation of IInvitationRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, invitation: Invitation) -> Invitation:
        """Create a new invitation."""
        model = self._to_model(invitation)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def get_by_id(self, id: UUID) -> Invitation | None:
        """Get an invitation by its primary key."""
        stmt = (
            select(InvitationModel)
            .where(InvitationModel.id == id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_by_token_hash(self, token_hash: str) -> Invitation | None:
        """Get an invitation by its hashed token."""
        stmt = (
            select(InvitationModel)
            .where(InvitationModel.token_hash == token_hash)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_by_link_token(self, link_token: str) -> list[Invitation]:
        """Get invitations created through a shared link."""
        stmt = (
            select(InvitationModel)
            .where(InvitationModel.link_token == link_token)
            .order_by(InvitationModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def get_for_email(self, email: str) -> list[Invitation]:
        """Get all invitations for an email address."""
        stmt = (
            select(InvitationModel)
            .where(InvitationModel.email == email.lower())
            .order_by(InvitationModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def get_for_invitee(self, user_id: UUID) -> list[Invitation]:
        """Get all invitations addressed to or accepted by a user."""
        stmt = (
            select(InvitationModel)
            .where(InvitationModel.invitee_user_id == user_id)
            .order_by(InvitationModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def get_pending_for_email(self, email: str) -> list[Invitation]:
        """Get all pending (non-expired) invitations for an email address."""
        now = datetime.utcnow()
        stmt = (
            select(InvitationModel)
            .where(
                InvitationModel.email == email.lower(),
                InvitationModel.status == _PENDING,
                _not_expired(now),
            )
            .order_by(InvitationModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def find_by_filter(self, filter: InvitationFilter) -> tuple[list[Invitation], int]:
        """List invitations matching a filter. Returns (page, total).

        A limit of 0 returns every match.
        """
        conditions: list[Any] = []
        if filter.workspace_id is not None:
            conditions.append(InvitationModel.workspace_id == filter.workspace_id)
        if filter.email:
            conditions.append(func.lower(InvitationModel.email) == filter.email.lower())
        if filter.statuses:
            conditions.append(InvitationModel.status.in_([str(s) for s in filter.statuses]))
        if filter.types:
            conditions.append(InvitationModel.type.in_([str(t) for t in filter.types]))
        if filter.target_id is not None:
            conditions.append(InvitationModel.target_id == filter.target_id)
        if filter.invited_by_id is not None:
            conditions.append(InvitationModel.invited_by_id == filter.invited_by_id)
        if filter.invitee_user_id is not None:
            conditions.append(InvitationModel.invitee_user_id == filter.invitee_user_id)
        if filter.method is not None:
            conditions.append(InvitationModel.method == str(filter.method))
        if filter.created_from is not None:
            conditions.append(InvitationModel.created_at >= filter.created_from)
        if filter.created_to is not None:
            conditions.append(InvitationModel.created_at <= filter.created_to)
        if not filter.include_expired:
            conditions.append(_not_expired(datetime.utcnow()))

        count_stmt = select(func.count()).select_from(InvitationModel).where(*conditions)
        total = (await self._session.execute(count_stmt)).scalar_one()

        column = _ORDER_COLUMNS.get(filter.order_by, InvitationModel.created_at)
        stmt = (
            select(InvitationModel)
            .where(*conditions)
            .order_by(column.desc() if filter.order_desc else column.asc())
        )
        if filter.limit > 0:
            stmt = stmt.limit(filter.limit)
        if filter.offset > 0:
            stmt = stmt.offset(filter.offset)

        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()], total

    async def count_by_workspace(self, workspace_id: UUID) -> int:
        """Count all invitations in a workspace."""
        stmt = (
            select(func.count())
            .select_from(InvitationModel)
            .where(InvitationModel.workspace_id == workspace_id)
        )
        return (await self._session.execute(stmt)).scalar_one()  # type: ignore[no-any-return]

    async def count_pending_by_target(self, type: str, target_id: UUID) -> int:
        """Count pending invitations for a scope."""
        stmt = (
            select(func.count())
            .select_from(InvitationModel)
            .where(
                InvitationModel.type == type,
                InvitationModel.target_id == target_id,
                InvitationModel.status == _PENDING,
            )
        )
        return (await self._session.execute(stmt)).scalar_one()  # type: ignore[no-any-return]

    async def tally_by_status(
        self,
        workspace_id: UUID | None = None,
        type: str | None = None,
        target_id: UUID | None = None,
    ) -> InvitationTally:
        """Aggregate status counts and mean hours to accept in one grouped query.

        Expired invitations are included. The mean only covers accepted rows
        that carry an acceptance time.
        """
        conditions: list[Any] = []
        if workspace_id is not None:
            conditions.append(InvitationModel.workspace_id == workspace_id)
        if type is not None:
            conditions.append(InvitationModel.type == type)
        if target_id is not None:
            conditions.append(InvitationModel.target_id == target_id)

        stmt = (
            select(
                InvitationModel.status,
                func.count(),
                func.avg(hours_between(InvitationModel.created_at, InvitationModel.accepted_at)),
            )
            .where(*conditions)
            .group_by(InvitationModel.status)
        )
        tally = InvitationTally()
        for status, count, avg_hours in (await self._session.execute(stmt)).all():
            tally.counts[status] = count
            if status == InvitationStatus.ACCEPTED.value and avg_hours is not None:
                tally.avg_time_to_accept_hrs = float(avg_hours)
        return tally

    async def exists_pending_for_email(self, email: str, type: str, target_id: UUID) -> bool:
        """Check for a live (pending, non-expired) invitation to an email on a scope."""
        stmt = select(
            select(InvitationModel.id)
            .where(
                InvitationModel.email == email.lower(),
                InvitationModel.type == type,
                InvitationModel.target_id == target_id,
                InvitationModel.status == _PENDING,
                _not_expired(datetime.utcnow()),
            )
            .exists()
        )
        return bool((await self._session.execute(stmt)).scalar())

    async def exists_pending_for_user(self, user_id: UUID, type: str, target_id: UUID) -> bool:
        """Check for a live (pending, non-expired) invitation to a user on a scope."""
        stmt = select(
            select(InvitationModel.id)
            .where(
                InvitationModel.invitee_user_id == user_id,
                InvitationModel.type == type,
                InvitationModel.target_id == target_id,
                InvitationModel.status == _PENDING,
                _not_expired(datetime.utcnow()),
            )
            .exists()
        )
        return bool((await self._session.execute(stmt)).scalar())

    async def find_pending_for_reminder(
        self, min_age: timedelta, max_reminders: int, limit: int = 100
    ) -> list[Invitation]:
        """Get pending invitations due a reminder, oldest first."""
        now = datetime.utcnow()
        cutoff = now - min_age
        stmt = (
            select(InvitationModel)
            .where(
                InvitationModel.status == _PENDING,
                _not_expired(now),
                InvitationModel.reminder_count < max_reminders,
                InvitationModel.created_at < cutoff,
                or_(
                    InvitationModel.reminder_sent_at.is_(None),
                    InvitationModel.reminder_sent_at < cutoff,
                ),
            )
            .order_by(InvitationModel.created_at.asc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def find_expired(self, limit: int = 500) -> list[Invitation]:
        """Get pending invitations whose expiry has passed."""
        now = datetime.utcnow()
        stmt = (
            select(InvitationModel)
            .where(
                InvitationModel.status == _PENDING,
                InvitationModel.expires_at.is_not(None),
                InvitationModel.expires_at <= now,
            )
            .order_by(InvitationModel.expires_at.asc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    # --- Conditional transitions ---

    async def mark_accepted(self, id: UUID, user_id: UUID) -> bool:
        """Transition pending -> accepted."""
        now = datetime.utcnow()
        return await self._transition(
            id,
            status=InvitationStatus.ACCEPTED.value,
            invitee_user_id=user_id,
            accepted_at=now,
            updated_at=now,
        )

    async def mark_declined(self, id: UUID) -> bool:
        """Transition pending -> declined."""
        now = datetime.utcnow()
        return await self._transition(
            id, status=InvitationStatus.DECLINED.value, declined_at=now, updated_at=now
        )

    async def mark_expired(self, id: UUID) -> bool:
        """Transition pending -> expired."""
        return await self._transition(
            id, status=InvitationStatus.EXPIRED.value, updated_at=datetime.utcnow()
        )

    async def mark_cancelled(self, id: UUID) -> bool:
        """Transition pending -> cancelled."""
        return await self._transition(
            id, status=InvitationStatus.CANCELLED.value, updated_at=datetime.utcnow()
        )

    async def mark_revoked(self, id: UUID) -> bool:
        """Transition pending -> revoked."""
        return await self._transition(
            id, status=InvitationStatus.REVOKED.value, updated_at=datetime.utcnow()
        )

    async def regenerate_token(self, id: UUID, token_hash: str) -> bool:
        """Replace the token of a pending invitation."""
        return await self._transition(id, token_hash=token_hash, updated_at=datetime.utcnow())

    async def _transition(self, id: UUID, **values: Any) -> bool:
        """Single UPDATE guarded by status = 'pending'. True if a row changed."""
        stmt = (
            update(InvitationModel)
            .where(InvitationModel.id == id, InvitationModel.status == _PENDING)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount == 1  # type: ignore[attr-defined, no-any-return]

    # --- Unconditional updates ---

    async def extend_expiry(self, id: UUID, expires_at: datetime | None) -> None:
        """Set a new expiry."""
        await self._update(id, expires_at=expires_at, updated_at=datetime.utcnow())

    async def update_reminder_sent(self, id: UUID) -> None:
        """Increment the reminder count and stamp the send time."""
        now = datetime.utcnow()
        await self._update(
            id,
            reminder_count=InvitationModel.reminder_count + 1,
            reminder_sent_at=now,
            updated_at=now,
        )

    async def reset_reminders(self, id: UUID) -> None:
        """Clear reminder state."""
        await self._update(
            id, reminder_count=0, reminder_sent_at=None, updated_at=datetime.utcnow()
        )

    async def _update(self, id: UUID, **values: Any) -> None:
        stmt = (
            update(InvitationModel)
            .where(InvitationModel.id == id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)
        await self._session.flush()

    async def delete_expired(self, older_than: datetime) -> int:
        """Delete pending invitations that expired before a cutoff. Returns count.

        This is the retention purge: the permissions and the activity trail of
        each purged invitation are deleted with it, so its audit history is gone.
        """
        stale = select(InvitationModel.id).where(
            InvitationModel.status == _PENDING,
            InvitationModel.expires_at.is_not(None),
            InvitationModel.expires_at < older_than,
        )
        await self._session.execute(
            delete(InvitationPermissionsModel)
            .where(InvitationPermissionsModel.invitation_id.in_(stale))
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(
            delete(InvitationActivityModel)
            .where(InvitationActivityModel.invitation_id.in_(stale))
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(
            delete(InvitationModel)
            .where(InvitationModel.id.in_(stale))
            .execution_options(synchronize_session=False)
        )
        await self._session.flush()
        return result.rowcount  # type: ignore[attr-defined, no-any-return]

    # --- Granular permissions ---

    async def create_permissions(self, permissions: InvitationPermissions) -> InvitationPermissions:
        """Attach granular permissions to an invitation."""
        model = InvitationPermissionsModel(
            id=permissions.id,
            invitation_id=permissions.invitation_id,
            custom_permissions=permissions.custom_permissions,
            created_at=permissions.created_at,
            **{cap.value: getattr(permissions, cap.value) for cap in Capability},
        )
        self._session.add(model)
        await self._session.flush()
        return self._permissions_to_entity(model)

    async def get_permissions(self, invitation_id: UUID) -> InvitationPermissions | None:
        """Get the granular permissions of an invitation."""
        stmt = (
            select(InvitationPermissionsModel)
            .where(InvitationPermissionsModel.invitation_id == invitation_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._permissions_to_entity(model) if model else None

    async def update_permissions(self, permissions: InvitationPermissions) -> InvitationPermissions:
        """Replace the granular permissions of an invitation."""
        stmt = select(InvitationPermissionsModel).where(
            InvitationPermissionsModel.invitation_id == permissions.invitation_id
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if not model:
            raise ValueError(f"Permissions for invitation {permissions.invitation_id} not found")

        for cap in Capability:
            setattr(model, cap.value, getattr(permissions, cap.value))
        model.custom_permissions = permissions.custom_permissions

        await self._session.flush()
        return self._permissions_to_entity(model)

    # --- Mapping ---

    def _to_entity(self, model: InvitationModel) -> Invitation:
        """Convert ORM model to domain entity."""
        return Invitation(
            id=model.id,
            workspace_id=model.workspace_id,
            email=model.email,
            token_hash=model.token_hash,
            link_token=model.link_token,
            type=model.type,
            target_id=model.target_id,
            role=model.role,
            permission=model.permission,
            invited_by_id=model.invited_by_id,
            invitee_user_id=model.invitee_user_id,
            status=InvitationStatus(model.status),
            method=InvitationMethod(model.method),
            message=model.message,
            expires_at=model.expires_at,
            link_expires_at=model.link_expires_at,
            accepted_at=model.accepted_at,
            declined_at=model.declined_at,
            reminder_sent_at=model.reminder_sent_at,
            reminder_count=model.reminder_count,
            max_uses=model.max_uses,
            use_count=model.use_count,
            metadata=model.metadata_,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: Invitation) -> InvitationModel:
        """Convert domain entity to ORM model."""
        return InvitationModel(
            id=entity.id,
            workspace_id=entity.workspace_id,
            email=entity.email,
            token_hash=entity.token_hash,
            link_token=entity.link_token,
            type=str(entity.type),
            target_id=entity.target_id,
            role=str(entity.role),
            permission=str(entity.permission),
            invited_by_id=entity.invited_by_id,
            invitee_user_id=entity.invitee_user_id,
            status=entity.status.value,
            method=entity.method.value,
            message=entity.message,
            expires_at=entity.expires_at,
            link_expires_at=entity.link_expires_at,
            accepted_at=entity.accepted_at,
            declined_at=entity.declined_at,
            reminder_sent_at=entity.reminder_sent_at,
            reminder_count=entity.reminder_count,
            max_uses=entity.max_uses,
            use_count=entity.use_count,
            metadata_=entity.metadata,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    def _permissions_to_entity(self, model: InvitationPermissionsModel) -> InvitationPermissions:
        return InvitationPermissions(
            id=model.id,
            invitation_id=model.invitation_id,
            custom_permissions=model.custom_permissions,
            created_at=model.created_at,
            **{cap.value: getattr(model, cap.value) for cap in Capability},
        )
