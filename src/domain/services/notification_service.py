"""Hand-off of invitation events to the notification collaborator."""

from typing import Protocol

import structlog

from domain.entities.notification import AccessRequestEvent, InvitationEvent

logger = structlog.get_logger()


class INotificationSink(Protocol):
    """Delivery channel owned by the notification collaborator."""

    async def deliver(self, event: InvitationEvent | AccessRequestEvent) -> None:
        """Deliver an event for rendering and sending."""
        ...


class NotificationService:
    """Publishes events after their transaction has committed.

    Delivery never fails the calling operation: the state change is already
    durable, so sink errors are logged and dropped.
    """

    def __init__(self, sink: INotificationSink | None = None) -> None:
        self._sink = sink

    async def publish(self, event: InvitationEvent | AccessRequestEvent) -> None:
        """Forward an event to the sink, if one is configured."""
        log = logger.bind(
            event_type=type(event).__name__,
            action=event.action,
            status=event.status,
            target_type=event.type,
            target_id=str(event.target_id),
        )
        if self._sink is None:
            log.debug("notification_skipped_no_sink")
            return

        try:
            await self._sink.deliver(event)
        except Exception:
            log.exception("notification_delivery_failed")
            return

        log.info("notification_published")
