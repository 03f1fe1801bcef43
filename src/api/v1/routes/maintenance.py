"""Sweep endpoints for an external scheduler (cron, Cloud Scheduler, etc.).

Callers must also present the shared X-Scheduler-Token.
"""

from fastapi import APIRouter, Depends, Query, Request

from api.dependencies.auth import CurrentCaller, SchedulerAccess
from api.v1.dependencies import get_invitation_service, get_reminder_service
from api.v1.schemas.maintenance import ExpireSweepResponse, PurgeResponse, ReminderSweepResponse
from core.rate_limit import limiter
from domain.services.invitation_service import InvitationService
from domain.services.reminder_service import ReminderService

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post(
    "/expire",
    response_model=ExpireSweepResponse,
    summary="Expire overdue invitations",
    responses={403: {"description": "Missing or wrong scheduler token"}},
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def expire_overdue(
    request: Request,
    caller: CurrentCaller,
    scheduler: SchedulerAccess,
    limit: int = Query(500, ge=1, le=5000),
    service: InvitationService = Depends(get_invitation_service),
) -> ExpireSweepResponse:
    """Move pending invitations past their expiry to expired."""
    return ExpireSweepResponse(expired=await service.expire_overdue(limit=limit))


@router.post(
    "/reminders",
    response_model=ReminderSweepResponse,
    summary="Send invitation reminders",
    responses={403: {"description": "Missing or wrong scheduler token"}},
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def send_reminders(
    request: Request,
    caller: CurrentCaller,
    scheduler: SchedulerAccess,
    limit: int = Query(100, ge=1, le=1000),
    service: ReminderService = Depends(get_reminder_service),
) -> ReminderSweepResponse:
    """Nudge invitees whose invitations have sat pending long enough."""
    run = await service.send_reminders(limit=limit)
    return ReminderSweepResponse(selected=run.selected, sent=run.sent, failed=run.failed)


@router.post(
    "/purge",
    response_model=PurgeResponse,
    summary="Delete stale expired invitations",
    responses={403: {"description": "Missing or wrong scheduler token"}},
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def purge_expired(
    request: Request,
    caller: CurrentCaller,
    scheduler: SchedulerAccess,
    older_than_days: int = Query(30, ge=1),
    service: InvitationService = Depends(get_invitation_service),
) -> PurgeResponse:
    """Delete pending invitations that expired more than ``older_than_days`` ago."""
    return PurgeResponse(deleted=await service.delete_expired(older_than_days=older_than_days))
