"""SQLAlchemy implementation of the invitation activity repository."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.activity import ActorType, InvitationActivity
from infrastructure.database.models import InvitationActivityModel


class SQLAlchemyActivityRepository:
    """SQLAlchemy implementation of IInvitationActivityRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, activity: InvitationActivity) -> InvitationActivity:
        """Append an activity entry."""
        model = InvitationActivityModel(
            id=activity.id,
            invitation_id=activity.invitation_id,
            action=activity.action,
            actor_id=activity.actor_id,
            actor_type=activity.actor_type.value,
            ip_address=activity.ip_address,
            user_agent=activity.user_agent,
            details=activity.details,
            metadata_=activity.metadata,
            created_at=activity.created_at,
        )
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def get_for_invitation(
        self,
        invitation_id: UUID,
        limit: int = 50,
    ) -> list[InvitationActivity]:
        """Get activity entries for an invitation, oldest first."""
        stmt = (
            select(InvitationActivityModel)
            .where(InvitationActivityModel.invitation_id == invitation_id)
            .order_by(InvitationActivityModel.created_at.asc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]

    @staticmethod
    def _to_entity(model: InvitationActivityModel) -> InvitationActivity:
        """Convert ORM model to domain entity."""
        return InvitationActivity(
            id=model.id,
            invitation_id=model.invitation_id,
            action=model.action,
            actor_id=model.actor_id,
            actor_type=ActorType(model.actor_type),
            ip_address=model.ip_address,
            user_agent=model.user_agent,
            details=model.details,
            metadata=model.metadata_,
            created_at=model.created_at,
        )
