"""Activity service layer for the invitation audit trail."""

from collections.abc import Callable
from typing import Any
from uuid import UUID

from core.exceptions import InvitationNotFoundError
from domain.entities.activity import ActorContext, InvitationActivity
from domain.repositories.unit_of_work import IUnitOfWork


class ActivityService:
    """Service layer for invitation activity logging and retrieval."""

    def __init__(self, uow_factory: Callable[[], IUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    async def log(
        self,
        uow: IUnitOfWork,
        invitation_id: UUID,
        action: str,
        actor: ActorContext,
        details: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> InvitationActivity:
        """Log an activity within an existing UoW transaction.

        This method is designed to be called from other services
        within their existing transaction context.

        Args:
            uow: The active Unit of Work (caller manages commit).
            invitation_id: The invitation the activity concerns.
            action: The action string (use InvitationActions constants).
            actor: Who performed the action, and from where.
            details: Optional free-text description.
            metadata: Optional additional metadata.

        Returns:
            The created InvitationActivity entry.
        """
        activity = InvitationActivity(
            invitation_id=invitation_id,
            action=action,
            actor_id=actor.actor_id,
            actor_type=actor.actor_type,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
            details=details,
            metadata=metadata,
        )
        return await uow.activities.create(activity)

    async def get_invitation_history(
        self,
        invitation_id: UUID,
        limit: int = 50,
    ) -> list[InvitationActivity]:
        """Get the audit trail of an invitation, oldest first.

        Raises:
            InvitationNotFoundError: If the invitation does not exist.
        """
        async with self._uow_factory() as uow:
            invitation = await uow.invitations.get_by_id(invitation_id)
            if not invitation:
                raise InvitationNotFoundError(str(invitation_id))

            return await uow.activities.get_for_invitation(  # type: ignore[no-any-return]
                invitation_id, limit=limit
            )
