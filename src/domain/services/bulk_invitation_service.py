"""Bulk invitation processing."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

import structlog

from core.exceptions import AppException, BulkResultNotFoundError, ErrorCode
from domain.entities.activity import ActorContext
from domain.entities.bulk_result import (
    BulkInvitationResult,
    BulkItemOutcome,
    BulkItemResult,
)
from domain.entities.invitation import normalize_email
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.invitation_service import InvitationService

logger = structlog.get_logger()

DEFAULT_MAX_EMAILS = 100


@dataclass
class BulkInvitationOutcome:
    """Aggregate summary plus the per-email results it was built from."""

    result: BulkInvitationResult
    items: list[BulkItemResult] = field(default_factory=list)


class BulkInvitationService:
    """Invites many emails to one scope.

    Items are processed strictly in input order, each through the normal
    single-invitation path in its own transaction. A failing item never
    rolls back the ones before it; partial failure shows up in the result
    status rather than as an exception.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        invitation_service: InvitationService,
        max_emails: int = DEFAULT_MAX_EMAILS,
    ) -> None:
        self._uow_factory = uow_factory
        self._invitations = invitation_service
        self._max_emails = max_emails

    async def invite_many(
        self,
        actor: ActorContext,
        workspace_id: UUID,
        type: str,
        target_id: UUID,
        emails: list[str],
        role: str,
        permission: str | None = None,
        message: str | None = None,
    ) -> BulkInvitationOutcome:
        """Invite every email in ``emails``.

        Emails repeated within the batch, and emails that already have a
        pending invitation on the scope, are skipped before any item is
        attempted.

        Raises:
            AppException: If the batch is empty or over the size limit.
            InvalidRoleForTypeError: If the role cannot be granted on the
                scope. Nothing is attempted in that case.
        """
        if not emails:
            raise AppException(
                error_code=ErrorCode.VALIDATION_ERROR,
                message="At least one email is required",
                status_code=400,
            )
        if len(emails) > self._max_emails:
            raise AppException(
                error_code=ErrorCode.VALIDATION_ERROR,
                message=f"A bulk invitation may contain at most {self._max_emails} emails",
                status_code=400,
                details={"max_emails": self._max_emails, "received": len(emails)},
            )
        InvitationService.ensure_role_valid(role, type)

        result = BulkInvitationResult(
            workspace_id=workspace_id,
            invited_by_id=actor.actor_id,  # type: ignore[arg-type]
            type=type,
            target_id=target_id,
            role=role,
            total_count=len(emails),
        )

        # One slot per input email, filled in input order
        items: list[BulkItemResult | None] = [None] * len(emails)
        normalized = [normalize_email(raw) for raw in emails]
        async with self._uow_factory() as uow:
            seen: set[str] = set()
            for index, email in enumerate(normalized):
                if email in seen:
                    items[index] = BulkItemResult(
                        email=email,
                        outcome=BulkItemOutcome.SKIPPED,
                        error="duplicate in batch",
                    )
                    continue
                seen.add(email)
                if await uow.invitations.exists_pending_for_email(email, type, target_id):
                    items[index] = BulkItemResult(
                        email=email,
                        outcome=BulkItemOutcome.SKIPPED,
                        error="pending invitation exists",
                    )

            result = await uow.bulk_results.create(result)
            await uow.commit()

        log = logger.bind(bulk_result_id=str(result.id), target_id=str(target_id))
        log.info(
            "bulk_invitation_started",
            total=len(emails),
            attempting=sum(1 for item in items if item is None),
        )

        for index, email in enumerate(normalized):
            if items[index] is not None:
                continue
            items[index] = await self._invite_one(
                log, actor, workspace_id, type, target_id, email, role, permission, message
            )

        done = [item for item in items if item is not None]
        result.finalize(done)
        async with self._uow_factory() as uow:
            result = await uow.bulk_results.update(result)
            await uow.commit()

        log.info(
            "bulk_invitation_finished",
            status=result.status,
            success=result.success_count,
            failed=result.failed_count,
            skipped=result.skipped_count,
        )
        return BulkInvitationOutcome(result=result, items=done)

    async def _invite_one(
        self,
        log: Any,
        actor: ActorContext,
        workspace_id: UUID,
        type: str,
        target_id: UUID,
        email: str,
        role: str,
        permission: str | None,
        message: str | None,
    ) -> BulkItemResult:
        """Run one item through the single-invitation path, capturing any failure."""
        try:
            invitation, _ = await self._invitations.create_invitation(
                actor,
                workspace_id=workspace_id,
                type=type,
                target_id=target_id,
                email=email,
                role=role,
                permission=permission,
                message=message,
            )
        except AppException as exc:
            log.info("bulk_invitation_item_failed", email=email, error_code=exc.error_code)
            return BulkItemResult(
                email=email,
                outcome=BulkItemOutcome.FAILED,
                error_code=exc.error_code,
                error=exc.message,
            )
        except Exception as exc:
            log.exception("bulk_invitation_item_error", email=email)
            return BulkItemResult(
                email=email,
                outcome=BulkItemOutcome.FAILED,
                error_code=ErrorCode.INTERNAL_ERROR,
                error=str(exc),
            )
        return BulkItemResult(
            email=email,
            outcome=BulkItemOutcome.CREATED,
            invitation_id=invitation.id,
        )

    async def get_bulk_result(self, result_id: UUID) -> BulkInvitationResult:
        async with self._uow_factory() as uow:
            result = await uow.bulk_results.get_by_id(result_id)
            if not result:
                raise BulkResultNotFoundError(str(result_id))
            return result
