"""Shareable invitation link workflow."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

import structlog

from core.exceptions import DomainRejectedError, LinkInvalidError, LinkNotFoundError
from domain.entities.access_request import AccessRequest
from domain.entities.activity import ActorContext, InvitationActions
from domain.entities.grant import default_permission_for_role
from domain.entities.invitation import Invitation, InvitationMethod, generate_token
from domain.entities.link_settings import InvitationLinkSettings, LinkInvalidReason
from domain.entities.notification import AccessRequestEvent, EventActions, InvitationEvent
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.access_request_service import AccessRequestService
from domain.services.activity_service import ActivityService
from domain.services.invitation_service import InvitationService
from domain.services.notification_service import NotificationService

logger = structlog.get_logger()

DEFAULT_LINK_TOKEN_BYTES = 24


class _Unset:
    """Marks a nullable argument the caller did not pass."""

    def __repr__(self) -> str:
        return "UNSET"


_UNSET = _Unset()


@dataclass
class LinkJoinResult:
    """Outcome of using a link: a granted invitation, or a request awaiting approval."""

    invitation: Invitation | None = None
    access_request: AccessRequest | None = None

    @property
    def pending_approval(self) -> bool:
        return self.access_request is not None


class LinkInvitationService:
    """Service layer for invitation links.

    A link is a standing policy. Each successful join consumes one use and
    produces its own accepted Invitation with an audit trail.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        invitation_service: InvitationService,
        access_request_service: AccessRequestService,
        activity_service: ActivityService | None = None,
        notification_service: NotificationService | None = None,
        token_bytes: int = DEFAULT_LINK_TOKEN_BYTES,
    ) -> None:
        self._uow_factory = uow_factory
        self._invitations = invitation_service
        self._access_requests = access_request_service
        self._activity = activity_service
        self._notification = notification_service
        self._token_bytes = token_bytes

    async def create_link_settings(
        self,
        actor: ActorContext,
        workspace_id: UUID,
        type: str,
        target_id: UUID,
        default_role: str,
        default_permission: str | None = None,
        requires_approval: bool = False,
        allowed_domains: list[str] | None = None,
        blocked_domains: list[str] | None = None,
        max_uses: int | None = None,
        expires_at: datetime | None = None,
    ) -> InvitationLinkSettings:
        """Create a shareable link for a scope.

        Raises:
            InvalidRoleForTypeError: If the default role cannot be granted on the scope.
        """
        InvitationService.ensure_role_valid(default_role, type)

        link = InvitationLinkSettings(
            workspace_id=workspace_id,
            link_token=generate_token(self._token_bytes),
            type=type,
            target_id=target_id,
            default_role=default_role,
            default_permission=default_permission or default_permission_for_role(default_role),
            created_by_id=actor.actor_id,  # type: ignore[arg-type]
            requires_approval=requires_approval,
            allowed_domains=list(allowed_domains or []),
            blocked_domains=list(blocked_domains or []),
            max_uses=max_uses,
            expires_at=expires_at,
        )
        async with self._uow_factory() as uow:
            created = await uow.link_settings.create(link)
            await uow.commit()

        logger.info(
            "invitation_link_created",
            link_id=str(created.id),
            type=type,
            target_id=str(target_id),
            requires_approval=requires_approval,
        )
        return created

    async def update_link_settings(
        self,
        link_id: UUID,
        default_role: str | None = None,
        default_permission: str | None = None,
        requires_approval: bool | None = None,
        allowed_domains: list[str] | None = None,
        blocked_domains: list[str] | None = None,
        max_uses: int | None | _Unset = _UNSET,
        expires_at: datetime | None | _Unset = _UNSET,
    ) -> InvitationLinkSettings:
        """Change a link's policy. None leaves a field unchanged.

        ``max_uses`` and ``expires_at`` are nullable: leave them out to keep the
        current value, or pass None to clear the limit.
        """
        async with self._uow_factory() as uow:
            link = await self._get(uow, link_id)

            if default_role is not None:
                InvitationService.ensure_role_valid(default_role, link.type)
                link.default_role = default_role
                if default_permission is None:
                    link.default_permission = default_permission_for_role(default_role)
            if default_permission is not None:
                link.default_permission = default_permission
            if requires_approval is not None:
                link.requires_approval = requires_approval
            if allowed_domains is not None:
                link.allowed_domains = list(allowed_domains)
            if blocked_domains is not None:
                link.blocked_domains = list(blocked_domains)
            if not isinstance(max_uses, _Unset):
                link.max_uses = max_uses
            if not isinstance(expires_at, _Unset):
                link.expires_at = expires_at

            updated = await uow.link_settings.update(link)
            await uow.commit()
            return updated

    async def set_link_active(self, link_id: UUID, is_active: bool) -> InvitationLinkSettings:
        """Activate or deactivate a link."""
        async with self._uow_factory() as uow:
            if not await uow.link_settings.set_active(link_id, is_active):
                raise LinkNotFoundError(str(link_id))
            await uow.commit()
            link = await self._get(uow, link_id)

        logger.info("invitation_link_toggled", link_id=str(link_id), is_active=is_active)
        return link

    async def delete_link_settings(self, link_id: UUID) -> None:
        async with self._uow_factory() as uow:
            if not await uow.link_settings.delete(link_id):
                raise LinkNotFoundError(str(link_id))
            await uow.commit()

    async def get_link_settings(self, link_id: UUID) -> InvitationLinkSettings:
        async with self._uow_factory() as uow:
            return await self._get(uow, link_id)

    async def list_link_settings(self, type: str, target_id: UUID) -> list[InvitationLinkSettings]:
        async with self._uow_factory() as uow:
            return await uow.link_settings.list_for_target(type, target_id)  # type: ignore[no-any-return]

    async def validate_link(
        self,
        link_token: str,
        email: str | None = None,
    ) -> InvitationLinkSettings:
        """Check a link is usable, and that an email passes its domain policy.

        Raises:
            LinkNotFoundError: If no link has this token.
            LinkInvalidError: If the link is inactive, expired or exhausted.
            DomainRejectedError: If the email's domain is not permitted.
        """
        async with self._uow_factory() as uow:
            return await self._validated(uow, link_token, email, datetime.utcnow())

    async def join_via_link(
        self,
        actor: ActorContext,
        user_email: str,
        link_token: str,
        message: str | None = None,
    ) -> LinkJoinResult:
        """Use a link to join its scope.

        Links that require approval produce a pending access request instead
        of a grant. Otherwise one use is consumed atomically and an accepted
        invitation is recorded for the caller.

        Raises:
            LinkNotFoundError: If no link has this token.
            LinkInvalidError: If the link is unusable, including when the last
                use was taken by a concurrent join.
            DomainRejectedError: If the caller's email domain is not permitted.
        """
        now = datetime.utcnow()
        async with self._uow_factory() as uow:
            link = await self._validated(uow, link_token, user_email, now)

            if link.requires_approval:
                request = await self._access_requests.create_in_uow(
                    uow,
                    actor,
                    user_email,
                    link.workspace_id,
                    link.type,
                    link.target_id,
                    message,
                )
                await uow.commit()
                await self._publish_request(request, actor)
                return LinkJoinResult(access_request=request)

            if not await uow.link_settings.consume_use(link.id, now):
                raise LinkInvalidError(
                    link.invalid_reason(now) or LinkInvalidReason.EXHAUSTED
                )

            invitation, _ = await self._invitations.create_in_uow(
                uow,
                actor=actor,
                workspace_id=link.workspace_id,
                type=link.type,
                target_id=link.target_id,
                email=user_email,
                role=link.default_role,
                permission=link.default_permission,
                method=InvitationMethod.LINK,
                message=message,
                link_token=link.link_token,
                link_expires_at=link.expires_at,
                invited_by_id=link.created_by_id,
                check_duplicates=False,
            )
            await uow.invitations.mark_accepted(invitation.id, actor.actor_id)  # type: ignore[arg-type]
            if self._activity:
                await self._activity.log(
                    uow,
                    invitation_id=invitation.id,
                    action=InvitationActions.LINK_JOINED,
                    actor=actor,
                    metadata={"link_id": str(link.id)},
                )
            await uow.commit()
            accepted = await uow.invitations.get_by_id(invitation.id) or invitation

        logger.info(
            "invitation_link_joined",
            link_id=str(link.id),
            invitation_id=str(accepted.id),
        )
        await self._publish_accepted(accepted, actor)
        return LinkJoinResult(invitation=accepted)

    # --- Internal helpers ---

    async def _get(self, uow: IUnitOfWork, link_id: UUID) -> InvitationLinkSettings:
        link = await uow.link_settings.get_by_id(link_id)
        if not link:
            raise LinkNotFoundError(str(link_id))
        return link

    async def _validated(
        self,
        uow: IUnitOfWork,
        link_token: str,
        email: str | None,
        now: datetime,
    ) -> InvitationLinkSettings:
        link = await uow.link_settings.get_by_token(link_token)
        if not link:
            raise LinkNotFoundError()

        reason = link.invalid_reason(now)
        if reason is not None:
            raise LinkInvalidError(reason)

        if email is not None and not link.check_domain(email):
            logger.info("invitation_link_domain_rejected", link_id=str(link.id))
            raise DomainRejectedError(email)
        return link

    async def _publish_accepted(self, invitation: Invitation, actor: ActorContext) -> None:
        if not self._notification:
            return
        await self._notification.publish(
            InvitationEvent(
                invitation_id=invitation.id,
                workspace_id=invitation.workspace_id,
                type=invitation.type,
                target_id=invitation.target_id,
                status=invitation.status,
                action=EventActions.ACCEPTED,
                email=invitation.email,
                actor_id=actor.actor_id,
                metadata={"method": InvitationMethod.LINK.value},
            )
        )

    async def _publish_request(self, request: AccessRequest, actor: ActorContext) -> None:
        if not self._notification:
            return
        await self._notification.publish(
            AccessRequestEvent(
                access_request_id=request.id,
                workspace_id=request.workspace_id,
                type=request.type,
                target_id=request.target_id,
                status=request.status,
                action=EventActions.ACCESS_REQUESTED,
                requester_id=request.requester_id,
                email=request.email,
                actor_id=actor.actor_id,
            )
        )
