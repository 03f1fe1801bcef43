"""Dependency injection factories for API v1."""

from datetime import timedelta
from functools import lru_cache
from typing import Callable

from core.config import settings
from domain.services.access_request_service import AccessRequestService
from domain.services.activity_service import ActivityService
from domain.services.bulk_invitation_service import BulkInvitationService
from domain.services.invitation_service import InvitationService
from domain.services.invitation_stats import InvitationStatsService
from domain.services.link_invitation_service import LinkInvitationService
from domain.services.notification_service import NotificationService
from domain.services.reminder_service import ReminderService
from infrastructure.database.session import async_session_factory
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork


def get_uow_factory() -> Callable[[], SQLAlchemyUnitOfWork]:
    """Factory for creating Unit of Work instances."""

    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(async_session_factory)

    return factory


@lru_cache
def get_activity_service() -> ActivityService:
    """Get Activity service instance."""
    return ActivityService(get_uow_factory())


@lru_cache
def get_notification_service() -> NotificationService:
    """Get Notification service instance.

    No delivery sink is wired here; events are logged and dropped until a
    mailer or queue is attached.
    """
    return NotificationService()


@lru_cache
def get_invitation_service() -> InvitationService:
    """Get Invitation service instance."""
    return InvitationService(
        get_uow_factory(),
        activity_service=get_activity_service(),
        notification_service=get_notification_service(),
        expiry_days=settings.invitation_expiry_days,
    )


@lru_cache
def get_access_request_service() -> AccessRequestService:
    """Get Access Request service instance."""
    return AccessRequestService(
        get_uow_factory(),
        notification_service=get_notification_service(),
    )


@lru_cache
def get_link_invitation_service() -> LinkInvitationService:
    """Get Link Invitation service instance."""
    return LinkInvitationService(
        get_uow_factory(),
        invitation_service=get_invitation_service(),
        access_request_service=get_access_request_service(),
        activity_service=get_activity_service(),
        notification_service=get_notification_service(),
        token_bytes=settings.link_token_bytes,
    )


@lru_cache
def get_bulk_invitation_service() -> BulkInvitationService:
    """Get Bulk Invitation service instance."""
    return BulkInvitationService(
        get_uow_factory(),
        invitation_service=get_invitation_service(),
        max_emails=settings.bulk_max_emails,
    )


@lru_cache
def get_reminder_service() -> ReminderService:
    """Get Reminder service instance."""
    return ReminderService(
        get_uow_factory(),
        activity_service=get_activity_service(),
        notification_service=get_notification_service(),
        min_age=timedelta(hours=settings.reminder_min_age_hours),
        max_reminders=settings.reminder_max_count,
    )


@lru_cache
def get_stats_service() -> InvitationStatsService:
    """Get Invitation Stats service instance."""
    return InvitationStatsService(get_uow_factory())
