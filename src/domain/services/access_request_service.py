"""Access request service layer."""

from collections.abc import Callable
from typing import Optional
from uuid import UUID

import structlog

from core.exceptions import (
    AccessRequestAlreadyProcessedError,
    AccessRequestNotFoundError,
    DuplicateAccessRequestError,
    InsufficientPermissionsError,
    InvalidEmailError,
)
from domain.entities.access_request import AccessRequest, AccessRequestStatus
from domain.entities.activity import ActorContext
from domain.entities.invitation import is_valid_email, normalize_email
from domain.entities.notification import AccessRequestEvent, EventActions
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.notification_service import NotificationService

logger = structlog.get_logger()


class AccessRequestService:
    """Service layer for self-service access requests.

    This service only tracks the request. Turning an approval into an actual
    grant is left to the caller.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        notification_service: Optional["NotificationService"] = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._notification = notification_service

    async def create_access_request(
        self,
        actor: ActorContext,
        email: str,
        workspace_id: UUID,
        type: str,
        target_id: UUID,
        message: str | None = None,
    ) -> AccessRequest:
        """Ask for access to a scope.

        Raises:
            InvalidEmailError: If the email is malformed.
            DuplicateAccessRequestError: If the requester already has a
                pending request on the same scope.
        """
        async with self._uow_factory() as uow:
            created = await self.create_in_uow(
                uow, actor, email, workspace_id, type, target_id, message
            )
            await uow.commit()

        await self._publish(created, EventActions.ACCESS_REQUESTED, actor)
        return created

    async def create_in_uow(
        self,
        uow: IUnitOfWork,
        actor: ActorContext,
        email: str,
        workspace_id: UUID,
        type: str,
        target_id: UUID,
        message: str | None = None,
    ) -> AccessRequest:
        """Insert an access request within an existing UoW transaction."""
        email = normalize_email(email)
        if not is_valid_email(email):
            raise InvalidEmailError(email)

        existing = await uow.access_requests.get_pending_for_requester(
            actor.actor_id, type, target_id  # type: ignore[arg-type]
        )
        if existing:
            raise DuplicateAccessRequestError(str(target_id))

        request = AccessRequest(
            workspace_id=workspace_id,
            requester_id=actor.actor_id,  # type: ignore[arg-type]
            email=email,
            type=type,
            target_id=target_id,
            message=message,
        )
        created = await uow.access_requests.create(request)
        logger.info(
            "access_request_created",
            access_request_id=str(created.id),
            type=type,
            target_id=str(target_id),
        )
        return created

    async def approve_access_request(self, actor: ActorContext, request_id: UUID) -> AccessRequest:
        """Approve a pending request."""
        return await self._process(actor, request_id, AccessRequestStatus.APPROVED)

    async def deny_access_request(
        self,
        actor: ActorContext,
        request_id: UUID,
        reason: str | None = None,
    ) -> AccessRequest:
        """Deny a pending request, optionally recording why."""
        return await self._process(actor, request_id, AccessRequestStatus.DENIED, reason)

    async def get_access_request(self, request_id: UUID) -> AccessRequest:
        async with self._uow_factory() as uow:
            request = await uow.access_requests.get_by_id(request_id)
            if not request:
                raise AccessRequestNotFoundError(str(request_id))
            return request

    async def list_for_target(
        self,
        type: str,
        target_id: UUID,
        status: AccessRequestStatus | None = None,
    ) -> list[AccessRequest]:
        async with self._uow_factory() as uow:
            return await uow.access_requests.list_for_target(  # type: ignore[no-any-return]
                type, target_id, status=status
            )

    async def list_for_requester(self, requester_id: UUID) -> list[AccessRequest]:
        async with self._uow_factory() as uow:
            return await uow.access_requests.list_for_requester(requester_id)  # type: ignore[no-any-return]

    async def _process(
        self,
        actor: ActorContext,
        request_id: UUID,
        status: AccessRequestStatus,
        reason: str | None = None,
    ) -> AccessRequest:
        """Resolve a request with a conditional write on its pending status.

        Raises:
            AccessRequestNotFoundError: If the request does not exist.
            InsufficientPermissionsError: If the requester tries to review their own request.
            AccessRequestAlreadyProcessedError: If the request is no longer pending.
        """
        async with self._uow_factory() as uow:
            request = await uow.access_requests.get_by_id(request_id)
            if not request:
                raise AccessRequestNotFoundError(str(request_id))
            if actor.actor_id == request.requester_id:
                raise InsufficientPermissionsError("reviewer other than the requester")
            if not request.is_pending:
                raise AccessRequestAlreadyProcessedError(str(request_id), request.status)

            updated_ok = await uow.access_requests.update_status(
                request_id,
                status,
                processed_by=actor.actor_id,  # type: ignore[arg-type]
                denial_reason=reason if status == AccessRequestStatus.DENIED else None,
            )
            if not updated_ok:
                raise AccessRequestAlreadyProcessedError(str(request_id))
            await uow.commit()

            updated = await uow.access_requests.get_by_id(request_id) or request

        logger.info(
            "access_request_processed",
            access_request_id=str(request_id),
            status=status,
        )
        action = (
            EventActions.ACCESS_APPROVED
            if status == AccessRequestStatus.APPROVED
            else EventActions.ACCESS_DENIED
        )
        await self._publish(updated, action, actor)
        return updated

    async def _publish(self, request: AccessRequest, action: str, actor: ActorContext) -> None:
        if not self._notification:
            return
        await self._notification.publish(
            AccessRequestEvent(
                access_request_id=request.id,
                workspace_id=request.workspace_id,
                type=request.type,
                target_id=request.target_id,
                status=request.status,
                action=action,
                requester_id=request.requester_id,
                email=request.email,
                actor_id=actor.actor_id,
            )
        )
