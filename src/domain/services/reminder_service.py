"""Reminder selection and dispatch for pending invitations."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
from uuid import UUID

import structlog

from domain.entities.activity import SYSTEM_ACTOR, InvitationActions
from domain.entities.invitation import Invitation
from domain.entities.notification import EventActions, InvitationEvent
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.activity_service import ActivityService
from domain.services.notification_service import NotificationService

logger = structlog.get_logger()

DEFAULT_MIN_AGE = timedelta(hours=48)
DEFAULT_MAX_REMINDERS = 3


@dataclass
class ReminderRun:
    """Counts from one reminder sweep."""

    selected: int = 0
    sent: int = 0
    failed: int = 0


class ReminderService:
    """Selects invitations due a follow-up and records that one was sent.

    Reminders are best effort. Recording a send may fail without affecting
    the invitation itself, so those failures are logged and not raised.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        activity_service: Optional["ActivityService"] = None,
        notification_service: Optional["NotificationService"] = None,
        min_age: timedelta = DEFAULT_MIN_AGE,
        max_reminders: int = DEFAULT_MAX_REMINDERS,
    ) -> None:
        self._uow_factory = uow_factory
        self._activity = activity_service
        self._notification = notification_service
        self._min_age = min_age
        self._max_reminders = max_reminders

    async def find_pending_for_reminder(
        self,
        min_age: timedelta | None = None,
        max_reminders: int | None = None,
        limit: int = 100,
    ) -> list[Invitation]:
        """Select pending, unexpired invitations due a reminder, oldest first.

        An invitation qualifies once it is older than ``min_age``, has had
        fewer than ``max_reminders`` reminders, and its last reminder (if
        any) is also older than ``min_age``.
        """
        async with self._uow_factory() as uow:
            return await uow.invitations.find_pending_for_reminder(  # type: ignore[no-any-return]
                min_age or self._min_age,
                self._max_reminders if max_reminders is None else max_reminders,
                limit=limit,
            )

    async def mark_reminder_sent(self, invitation_id: UUID) -> bool:
        """Bump the reminder count and stamp the send time.

        Returns:
            False if the update could not be recorded.
        """
        try:
            async with self._uow_factory() as uow:
                await uow.invitations.update_reminder_sent(invitation_id)
                if self._activity:
                    await self._activity.log(
                        uow,
                        invitation_id=invitation_id,
                        action=InvitationActions.INVITATION_REMINDER_SENT,
                        actor=SYSTEM_ACTOR,
                    )
                await uow.commit()
        except Exception:
            logger.exception("reminder_stamp_failed", invitation_id=str(invitation_id))
            return False
        return True

    async def send_reminders(self, limit: int = 100) -> ReminderRun:
        """Publish a reminder event for every due invitation and record each send."""
        due = await self.find_pending_for_reminder(limit=limit)
        run = ReminderRun(selected=len(due))

        for invitation in due:
            if self._notification:
                await self._notification.publish(
                    InvitationEvent(
                        invitation_id=invitation.id,
                        workspace_id=invitation.workspace_id,
                        type=invitation.type,
                        target_id=invitation.target_id,
                        status=invitation.status,
                        action=EventActions.REMINDER,
                        email=invitation.email,
                        metadata={"reminder_number": invitation.reminder_count + 1},
                    )
                )
            if await self.mark_reminder_sent(invitation.id):
                run.sent += 1
            else:
                run.failed += 1

        logger.info(
            "invitation_reminders_sent",
            selected=run.selected,
            sent=run.sent,
            failed=run.failed,
        )
        return run
