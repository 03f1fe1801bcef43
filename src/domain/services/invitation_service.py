"""Invitation service layer with business logic."""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import UUID

import structlog

from core.exceptions import (
    DuplicateInvitationError,
    InsufficientPermissionsError,
    InvalidEmailError,
    InvalidRoleForTypeError,
    InvitationAlreadyResolvedError,
    InvitationEmailMismatchError,
    InvitationExpiredError,
    InvitationNotFoundError,
)
from domain.entities.activity import SYSTEM_ACTOR, ActorContext, ActorType, InvitationActions
from domain.entities.grant import (
    Capability,
    default_capabilities,
    default_permission_for_role,
    valid_roles_for_type,
)
from domain.entities.invitation import (
    EffectivePermissions,
    Invitation,
    InvitationFilter,
    InvitationMethod,
    InvitationPermissions,
    InvitationStatus,
    generate_token,
    hash_token,
    is_valid_email,
    normalize_email,
)
from domain.entities.notification import EventActions, InvitationEvent
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.activity_service import ActivityService
from domain.services.notification_service import NotificationService

logger = structlog.get_logger()

DEFAULT_EXPIRY_DAYS = 7


class InvitationService:
    """Service layer for the invitation state machine.

    Every transition goes through a conditional repository write that only
    matches pending rows, so concurrent callers cannot both move the same
    invitation out of pending. The loser gets InvitationAlreadyResolvedError.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        activity_service: Optional["ActivityService"] = None,
        notification_service: Optional["NotificationService"] = None,
        expiry_days: int = DEFAULT_EXPIRY_DAYS,
    ) -> None:
        self._uow_factory = uow_factory
        self._activity = activity_service
        self._notification = notification_service
        self._expiry_days = expiry_days

    # --- Creation ---

    async def create_invitation(
        self,
        actor: ActorContext,
        workspace_id: UUID,
        type: str,
        target_id: UUID,
        email: str,
        role: str,
        permission: str | None = None,
        method: InvitationMethod = InvitationMethod.EMAIL,
        message: str | None = None,
        expires_at: datetime | None = None,
        invitee_user_id: UUID | None = None,
        metadata: dict[str, Any] | None = None,
        permission_flags: dict[str, bool] | None = None,
        custom_permissions: dict[str, Any] | None = None,
    ) -> tuple[Invitation, str]:
        """Create a pending invitation.

        Args:
            actor: The inviter.
            workspace_id: Workspace the target scope lives in.
            type: Grant scope (workspace, space, folder, project, team, task).
            target_id: The scope being granted.
            email: Invitee email address.
            role: Role to grant; must be valid for ``type``.
            permission: Explicit permission level. Derived from ``role`` if omitted.
            method: Delivery method (email or direct).
            message: Optional personal note.
            expires_at: Explicit expiry. Defaults to the configured window.
            invitee_user_id: Existing user being invited directly.
            metadata: Opaque pass-through data.
            permission_flags: Capability overrides; creates a granular permission row.
            custom_permissions: Opaque extra permissions stored with the flags.

        Returns:
            Tuple of (Invitation, raw_token). The raw_token is only available
            at creation time and should be shared with the invitee.

        Raises:
            InvalidEmailError: If the email is malformed.
            InvalidRoleForTypeError: If the role cannot be granted on the scope.
            DuplicateInvitationError: If a pending invitation already exists.
        """
        async with self._uow_factory() as uow:
            created, raw_token = await self.create_in_uow(
                uow,
                actor=actor,
                workspace_id=workspace_id,
                type=type,
                target_id=target_id,
                email=email,
                role=role,
                permission=permission,
                method=method,
                message=message,
                expires_at=expires_at,
                invitee_user_id=invitee_user_id,
                metadata=metadata,
                permission_flags=permission_flags,
                custom_permissions=custom_permissions,
            )
            await uow.commit()

        logger.info(
            "invitation_created",
            invitation_id=str(created.id),
            type=created.type,
            target_id=str(created.target_id),
            role=created.role,
            method=created.method,
        )
        await self._publish(created, EventActions.CREATED, actor, raw_token=raw_token)
        return created, raw_token

    async def create_in_uow(
        self,
        uow: IUnitOfWork,
        actor: ActorContext,
        workspace_id: UUID,
        type: str,
        target_id: UUID,
        email: str,
        role: str,
        permission: str | None = None,
        method: InvitationMethod = InvitationMethod.EMAIL,
        message: str | None = None,
        expires_at: datetime | None = None,
        invitee_user_id: UUID | None = None,
        metadata: dict[str, Any] | None = None,
        permission_flags: dict[str, bool] | None = None,
        custom_permissions: dict[str, Any] | None = None,
        link_token: str | None = None,
        link_expires_at: datetime | None = None,
        invited_by_id: UUID | None = None,
        check_duplicates: bool = True,
    ) -> tuple[Invitation, str]:
        """Validate and insert an invitation within an existing UoW transaction.

        Shared by create_invitation and link joins. The caller commits and
        publishes. ``invited_by_id`` defaults to the actor.
        """
        email = normalize_email(email)
        if not is_valid_email(email):
            raise InvalidEmailError(email)

        self.ensure_role_valid(role, type)

        if check_duplicates:
            if invitee_user_id is not None:
                duplicate = await uow.invitations.exists_pending_for_user(
                    invitee_user_id, type, target_id
                )
            else:
                duplicate = await uow.invitations.exists_pending_for_email(email, type, target_id)
            if duplicate:
                raise DuplicateInvitationError(email)

        raw_token = generate_token()
        invitation = Invitation(
            workspace_id=workspace_id,
            email=email,
            token_hash=hash_token(raw_token),
            type=type,
            target_id=target_id,
            role=role,
            permission=permission or default_permission_for_role(role),
            invited_by_id=invited_by_id or actor.actor_id,  # type: ignore[arg-type]
            link_token=link_token,
            link_expires_at=link_expires_at,
            invitee_user_id=invitee_user_id,
            method=method,
            message=message,
            expires_at=expires_at or self._default_expiry(),
            metadata=metadata,
        )
        created = await uow.invitations.create(invitation)

        if permission_flags is not None or custom_permissions is not None:
            perms = InvitationPermissions.for_level(created.id, created.permission)
            self._apply_flags(perms, permission_flags or {})
            perms.custom_permissions = custom_permissions
            await uow.invitations.create_permissions(perms)

        if self._activity:
            await self._activity.log(
                uow,
                invitation_id=created.id,
                action=InvitationActions.INVITATION_CREATED,
                actor=actor,
                metadata={"role": role, "type": type, "method": str(method)},
            )
        return created, raw_token

    # --- Transitions ---

    async def accept_invitation(
        self,
        actor: ActorContext,
        user_email: str,
        *,
        invitation_id: UUID | None = None,
        token: str | None = None,
    ) -> Invitation:
        """Accept an invitation by id (in-app) or raw token (email link).

        Raises:
            InvitationNotFoundError: If nothing matches the id or token.
            InvitationAlreadyResolvedError: If the invitation is no longer pending.
            InvitationExpiredError: If the expiry has passed. The invitation
                is moved to expired before raising.
            InvitationEmailMismatchError: If the caller is not the invitee.
        """
        async with self._uow_factory() as uow:
            invitation = await self._locate(uow, invitation_id, token)
            await self._ensure_open(uow, invitation, actor)
            self._ensure_invitee(invitation, actor, user_email)

            if not await uow.invitations.mark_accepted(invitation.id, actor.actor_id):  # type: ignore[arg-type]
                raise InvitationAlreadyResolvedError(str(invitation.id))

            return await self._finish(
                uow,
                invitation,
                actor,
                InvitationActions.INVITATION_ACCEPTED,
                EventActions.ACCEPTED,
            )

    async def decline_invitation(
        self,
        actor: ActorContext,
        user_email: str,
        *,
        invitation_id: UUID | None = None,
        token: str | None = None,
    ) -> Invitation:
        """Decline an invitation as the invitee.

        Raises:
            InvitationNotFoundError: If nothing matches the id or token.
            InvitationAlreadyResolvedError: If the invitation is no longer pending.
            InvitationExpiredError: If the expiry has passed.
            InvitationEmailMismatchError: If the caller is not the invitee.
        """
        async with self._uow_factory() as uow:
            invitation = await self._locate(uow, invitation_id, token)
            await self._ensure_open(uow, invitation, actor)
            self._ensure_invitee(invitation, actor, user_email)

            if not await uow.invitations.mark_declined(invitation.id):
                raise InvitationAlreadyResolvedError(str(invitation.id))

            return await self._finish(
                uow,
                invitation,
                actor,
                InvitationActions.INVITATION_DECLINED,
                EventActions.DECLINED,
            )

    async def cancel_invitation(
        self,
        actor: ActorContext,
        *,
        invitation_id: UUID | None = None,
        token: str | None = None,
    ) -> Invitation:
        """Withdraw a pending invitation before the invitee acts on it.

        Raises:
            InsufficientPermissionsError: If the caller did not send the invitation.
        """
        return await self._simple_transition(
            actor,
            invitation_id,
            token,
            InvitationStatus.CANCELLED,
            InvitationActions.INVITATION_CANCELLED,
            EventActions.CANCELLED,
        )

    async def revoke_invitation(
        self,
        actor: ActorContext,
        *,
        invitation_id: UUID | None = None,
        token: str | None = None,
        reason: str | None = None,
    ) -> Invitation:
        """Revoke a pending invitation, e.g. when its token is suspected leaked."""
        return await self._simple_transition(
            actor,
            invitation_id,
            token,
            InvitationStatus.REVOKED,
            InvitationActions.INVITATION_REVOKED,
            EventActions.REVOKED,
            details=reason,
        )

    async def expire_invitation(
        self,
        actor: ActorContext = SYSTEM_ACTOR,
        *,
        invitation_id: UUID | None = None,
        token: str | None = None,
    ) -> Invitation:
        """Force a pending invitation into expired."""
        return await self._simple_transition(
            actor,
            invitation_id,
            token,
            InvitationStatus.EXPIRED,
            InvitationActions.INVITATION_EXPIRED,
            EventActions.EXPIRED,
        )

    async def _simple_transition(
        self,
        actor: ActorContext,
        invitation_id: UUID | None,
        token: str | None,
        target: InvitationStatus,
        activity_action: str,
        event_action: str,
        details: str | None = None,
    ) -> Invitation:
        """Shared path for transitions that only require the invitation to be pending."""
        async with self._uow_factory() as uow:
            invitation = await self._locate(uow, invitation_id, token)
            self._ensure_inviter(invitation, actor)
            if not invitation.is_pending:
                raise InvitationAlreadyResolvedError(str(invitation.id), invitation.status)

            marks = {
                InvitationStatus.CANCELLED: uow.invitations.mark_cancelled,
                InvitationStatus.REVOKED: uow.invitations.mark_revoked,
                InvitationStatus.EXPIRED: uow.invitations.mark_expired,
            }
            if not await marks[target](invitation.id):
                raise InvitationAlreadyResolvedError(str(invitation.id))

            return await self._finish(
                uow, invitation, actor, activity_action, event_action, details=details
            )

    async def resend_invitation(
        self,
        actor: ActorContext,
        invitation_id: UUID,
    ) -> tuple[Invitation, str]:
        """Re-issue a pending invitation.

        Rotates the token, clears reminder state and restarts the expiry
        window. The previous token stops working.

        Returns:
            Tuple of (Invitation, raw_token).
        """
        async with self._uow_factory() as uow:
            invitation = await self._locate(uow, invitation_id, None)
            self._ensure_inviter(invitation, actor)
            if not invitation.can_resend:
                raise InvitationAlreadyResolvedError(str(invitation.id), invitation.status)

            raw_token = generate_token()
            if not await uow.invitations.regenerate_token(invitation.id, hash_token(raw_token)):
                raise InvitationAlreadyResolvedError(str(invitation.id))
            await uow.invitations.reset_reminders(invitation.id)
            await uow.invitations.extend_expiry(invitation.id, self._default_expiry())

            updated = await self._finish(
                uow,
                invitation,
                actor,
                InvitationActions.INVITATION_RESENT,
                EventActions.RESENT,
                raw_token=raw_token,
            )
            return updated, raw_token

    async def regenerate_token(
        self,
        actor: ActorContext,
        invitation_id: UUID,
    ) -> tuple[Invitation, str]:
        """Replace the token of a pending invitation without touching its status.

        Returns:
            Tuple of (Invitation, raw_token).
        """
        async with self._uow_factory() as uow:
            invitation = await self._locate(uow, invitation_id, None)
            self._ensure_inviter(invitation, actor)
            if not invitation.is_pending:
                raise InvitationAlreadyResolvedError(str(invitation.id), invitation.status)

            raw_token = generate_token()
            if not await uow.invitations.regenerate_token(invitation.id, hash_token(raw_token)):
                raise InvitationAlreadyResolvedError(str(invitation.id))

            updated = await self._finish(
                uow,
                invitation,
                actor,
                InvitationActions.INVITATION_TOKEN_REGENERATED,
                EventActions.TOKEN_REGENERATED,
                raw_token=raw_token,
            )
            return updated, raw_token

    # --- Sweeps (called by an external scheduler) ---

    async def expire_overdue(self, limit: int = 500) -> int:
        """Move pending invitations past their expiry to expired.

        Returns:
            Number of invitations transitioned.
        """
        async with self._uow_factory() as uow:
            overdue = await uow.invitations.find_expired(limit=limit)
            expired: list[Invitation] = []
            for invitation in overdue:
                if not await uow.invitations.mark_expired(invitation.id):
                    continue
                if self._activity:
                    await self._activity.log(
                        uow,
                        invitation_id=invitation.id,
                        action=InvitationActions.INVITATION_EXPIRED,
                        actor=SYSTEM_ACTOR,
                        details="expiry sweep",
                    )
                invitation.status = InvitationStatus.EXPIRED
                expired.append(invitation)
            await uow.commit()

        for invitation in expired:
            await self._publish(invitation, EventActions.EXPIRED, SYSTEM_ACTOR)
        logger.info("invitations_expired", count=len(expired))
        return len(expired)

    async def delete_expired(self, older_than_days: int = 30) -> int:
        """Purge pending invitations whose expiry passed long ago.

        Their activity trail is purged too. Invitations that reached a terminal
        status are kept, along with their audit history.

        Returns:
            Number of rows deleted.
        """
        cutoff = datetime.utcnow() - timedelta(days=older_than_days)
        async with self._uow_factory() as uow:
            count = await uow.invitations.delete_expired(cutoff)
            await uow.commit()
        logger.info("invitations_purged", count=count, cutoff=cutoff.isoformat())
        return count

    # --- Queries ---

    async def get_invitation(self, invitation_id: UUID) -> Invitation:
        """Get an invitation by id."""
        async with self._uow_factory() as uow:
            return await self._locate(uow, invitation_id, None)

    async def get_by_token(self, token: str) -> Invitation:
        """Look up an invitation by its raw token (invitee preview)."""
        async with self._uow_factory() as uow:
            return await self._locate(uow, None, token)

    async def list_invitations(self, filter: InvitationFilter) -> tuple[list[Invitation], int]:
        """List invitations matching a filter. Returns (page, total)."""
        async with self._uow_factory() as uow:
            return await uow.invitations.find_by_filter(filter)  # type: ignore[no-any-return]

    async def get_pending_for_email(self, email: str) -> list[Invitation]:
        """Get all pending invitations for an email address.

        Used to show pending invitations on login/dashboard.
        """
        async with self._uow_factory() as uow:
            return await uow.invitations.get_pending_for_email(  # type: ignore[no-any-return]
                normalize_email(email)
            )

    async def get_for_invitee(self, user_id: UUID) -> list[Invitation]:
        """Get invitations addressed to or accepted by a user."""
        async with self._uow_factory() as uow:
            return await uow.invitations.get_for_invitee(user_id)  # type: ignore[no-any-return]

    async def count_by_workspace(self, workspace_id: UUID) -> int:
        async with self._uow_factory() as uow:
            return await uow.invitations.count_by_workspace(workspace_id)  # type: ignore[no-any-return]

    async def count_pending_by_target(self, type: str, target_id: UUID) -> int:
        async with self._uow_factory() as uow:
            return await uow.invitations.count_pending_by_target(type, target_id)  # type: ignore[no-any-return]

    # --- Permissions ---

    async def get_effective_permissions(self, invitation_id: UUID) -> EffectivePermissions:
        """Resolve what an invitation grants.

        Stored granular flags win. Without them the flags are the defaults
        for the invitation's permission level.
        """
        async with self._uow_factory() as uow:
            invitation = await self._locate(uow, invitation_id, None)
            stored = await uow.invitations.get_permissions(invitation.id)

        if stored is not None:
            return EffectivePermissions(
                invitation_id=invitation.id,
                role=invitation.role,
                permission=invitation.permission,
                capabilities=stored.capabilities(),
                custom_permissions=stored.custom_permissions,
                explicit=True,
            )
        return EffectivePermissions(
            invitation_id=invitation.id,
            role=invitation.role,
            permission=invitation.permission,
            capabilities=default_capabilities(invitation.permission),
        )

    async def update_permissions(
        self,
        actor: ActorContext,
        invitation_id: UUID,
        permission_flags: dict[str, bool],
        custom_permissions: dict[str, Any] | None = None,
    ) -> EffectivePermissions:
        """Set granular flags on an invitation, creating the row if needed."""
        async with self._uow_factory() as uow:
            invitation = await self._locate(uow, invitation_id, None)
            self._ensure_inviter(invitation, actor)
            perms = await uow.invitations.get_permissions(invitation.id)
            if perms is None:
                perms = InvitationPermissions.for_level(invitation.id, invitation.permission)
                self._apply_flags(perms, permission_flags)
                perms.custom_permissions = custom_permissions
                await uow.invitations.create_permissions(perms)
            else:
                self._apply_flags(perms, permission_flags)
                if custom_permissions is not None:
                    perms.custom_permissions = custom_permissions
                await uow.invitations.update_permissions(perms)

            if self._activity:
                await self._activity.log(
                    uow,
                    invitation_id=invitation.id,
                    action=InvitationActions.INVITATION_PERMISSIONS_UPDATED,
                    actor=actor,
                    metadata={"flags": permission_flags},
                )
            await uow.commit()

        return EffectivePermissions(
            invitation_id=invitation.id,
            role=invitation.role,
            permission=invitation.permission,
            capabilities=perms.capabilities(),
            custom_permissions=perms.custom_permissions,
            explicit=True,
        )

    # --- Internal helpers ---

    @staticmethod
    def ensure_role_valid(role: str, type: str) -> None:
        """Raise if a role cannot be granted on a scope."""
        allowed = valid_roles_for_type(type)
        if role not in allowed:
            raise InvalidRoleForTypeError(role, type, sorted(str(r) for r in allowed))

    @staticmethod
    def _apply_flags(perms: InvitationPermissions, flags: dict[str, bool]) -> None:
        known = {cap.value for cap in Capability}
        for name, value in flags.items():
            if name in known:
                setattr(perms, name, bool(value))

    def _default_expiry(self) -> datetime | None:
        if self._expiry_days <= 0:
            return None
        return datetime.utcnow() + timedelta(days=self._expiry_days)

    async def _locate(
        self,
        uow: IUnitOfWork,
        invitation_id: UUID | None,
        token: str | None,
    ) -> Invitation:
        """Find an invitation by id or raw token. Raises if absent."""
        invitation: Invitation | None = None
        if invitation_id is not None:
            invitation = await uow.invitations.get_by_id(invitation_id)
        elif token:
            invitation = await uow.invitations.get_by_token_hash(hash_token(token))

        if not invitation:
            raise InvitationNotFoundError(str(invitation_id) if invitation_id else "")
        return invitation

    async def _ensure_open(
        self,
        uow: IUnitOfWork,
        invitation: Invitation,
        actor: ActorContext,
    ) -> None:
        """Check the invitation can still be answered.

        A pending invitation found past its expiry is moved to expired and
        committed before InvitationExpiredError is raised.
        """
        if not invitation.is_pending:
            raise InvitationAlreadyResolvedError(str(invitation.id), invitation.status)

        if invitation.is_expired:
            if await uow.invitations.mark_expired(invitation.id):
                if self._activity:
                    await self._activity.log(
                        uow,
                        invitation_id=invitation.id,
                        action=InvitationActions.INVITATION_EXPIRED,
                        actor=SYSTEM_ACTOR,
                        details="expired on access",
                    )
                await uow.commit()
                invitation.status = InvitationStatus.EXPIRED
                await self._publish(invitation, EventActions.EXPIRED, actor)
            raise InvitationExpiredError()

    @staticmethod
    def _ensure_inviter(invitation: Invitation, actor: ActorContext) -> None:
        """Only the inviter may manage an invitation. Sweeps run as the system actor."""
        if actor.actor_type == ActorType.SYSTEM:
            return
        if actor.actor_id != invitation.invited_by_id:
            raise InsufficientPermissionsError("inviter")

    @staticmethod
    def _ensure_invitee(invitation: Invitation, actor: ActorContext, user_email: str) -> None:
        """Verify the caller is the person the invitation was addressed to."""
        if invitation.invitee_user_id is not None:
            if invitation.invitee_user_id != actor.actor_id:
                raise InvitationEmailMismatchError()
            return
        if normalize_email(user_email) != invitation.email:
            raise InvitationEmailMismatchError()

    async def _finish(
        self,
        uow: IUnitOfWork,
        invitation: Invitation,
        actor: ActorContext,
        activity_action: str,
        event_action: str,
        details: str | None = None,
        raw_token: str | None = None,
    ) -> Invitation:
        """Log, commit, reload and publish after a successful write."""
        if self._activity:
            await self._activity.log(
                uow,
                invitation_id=invitation.id,
                action=activity_action,
                actor=actor,
                details=details,
            )
        await uow.commit()

        updated = await uow.invitations.get_by_id(invitation.id) or invitation
        logger.info(
            "invitation_transitioned",
            invitation_id=str(updated.id),
            action=event_action,
            status=updated.status,
        )
        await self._publish(updated, event_action, actor, raw_token=raw_token)
        return updated

    async def _publish(
        self,
        invitation: Invitation,
        action: str,
        actor: ActorContext,
        raw_token: str | None = None,
    ) -> None:
        if not self._notification:
            return
        await self._notification.publish(
            InvitationEvent(
                invitation_id=invitation.id,
                workspace_id=invitation.workspace_id,
                type=invitation.type,
                target_id=invitation.target_id,
                status=invitation.status,
                action=action,
                email=invitation.email,
                raw_token=raw_token,
                actor_id=actor.actor_id,
            )
        )
