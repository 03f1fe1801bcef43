"""Invitation API routes."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from api.dependencies.auth import CurrentCaller
from api.v1.dependencies import (
    get_activity_service,
    get_bulk_invitation_service,
    get_invitation_service,
    get_stats_service,
)
from api.v1.schemas.activity import InvitationActivityListResponse, InvitationActivityResponse
from api.v1.schemas.bulk import (
    BulkInvitationRequest,
    BulkInvitationResponse,
    BulkItemResponse,
    BulkResultDetailResponse,
    BulkResultResponse,
)
from api.v1.schemas.invitation import (
    CreateInvitationRequest,
    InvitationCountResponse,
    InvitationDetailResponse,
    InvitationListResponse,
    InvitationResponse,
    InvitationStatsResponse,
    InvitationTokenResponse,
    PermissionsResponse,
    RevokeInvitationRequest,
    TokenRequest,
    UpdatePermissionsRequest,
)
from core.rate_limit import limiter
from domain.entities.grant import Capability, InvitationType
from domain.entities.invitation import (
    EffectivePermissions,
    Invitation,
    InvitationFilter,
    InvitationMethod,
    InvitationStatus,
)
from domain.services.activity_service import ActivityService
from domain.services.bulk_invitation_service import BulkInvitationService
from domain.services.invitation_service import InvitationService
from domain.services.invitation_stats import InvitationStatsService

# Workspace-scoped invitation routes
workspace_invitations_router = APIRouter(
    prefix="/workspaces/{workspace_id}/invitations",
    tags=["invitations"],
)

# Invitation-scoped routes (lifecycle, permissions, history)
invitations_router = APIRouter(
    prefix="/invitations",
    tags=["invitations"],
)


def _to_response(invitation: Invitation) -> InvitationResponse:
    return InvitationResponse.model_validate(invitation)


def _permissions_response(perms: EffectivePermissions) -> PermissionsResponse:
    return PermissionsResponse(
        invitation_id=perms.invitation_id,
        role=perms.role,
        permission=perms.permission,
        capabilities={cap.value: cap in perms.capabilities for cap in Capability},
        custom_permissions=perms.custom_permissions,
        explicit=perms.explicit,
    )


# --- Workspace-scoped routes ---


@workspace_invitations_router.post(
    "",
    response_model=InvitationTokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create invitation",
    responses={
        201: {"description": "Invitation created"},
        400: {"description": "Invalid email or role not allowed for the scope"},
        409: {"description": "A pending invitation already exists"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def create_invitation(
    request: Request,
    workspace_id: UUID,
    body: CreateInvitationRequest,
    caller: CurrentCaller,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationTokenResponse:
    """Invite someone to a workspace, space, folder, project, team or task."""
    invitation, raw_token = await service.create_invitation(
        caller.actor,
        workspace_id=workspace_id,
        type=body.type,
        target_id=body.target_id,
        email=body.email,
        role=body.role,
        permission=body.permission,
        method=body.method,
        message=body.message,
        expires_at=body.expires_at,
        invitee_user_id=body.invitee_user_id,
        metadata=body.metadata,
        permission_flags=body.permission_flags,
        custom_permissions=body.custom_permissions,
    )
    return InvitationTokenResponse(data=_to_response(invitation), token=raw_token)


@workspace_invitations_router.get(
    "",
    response_model=InvitationListResponse,
    summary="List workspace invitations",
    responses={
        200: {"description": "Page of invitations matching the filters"},
    },
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def list_workspace_invitations(
    request: Request,
    workspace_id: UUID,
    caller: CurrentCaller,
    service: InvitationService = Depends(get_invitation_service),
    status_filter: list[InvitationStatus] | None = Query(None, alias="status"),
    type_filter: list[InvitationType] | None = Query(None, alias="type"),
    target_id: UUID | None = Query(None),
    email: str | None = Query(None),
    invited_by_id: UUID | None = Query(None),
    invitee_user_id: UUID | None = Query(None),
    method: InvitationMethod | None = Query(None),
    created_from: datetime | None = Query(None),
    created_to: datetime | None = Query(None),
    include_expired: bool = Query(True, description="Include pending rows past their expiry"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    order_by: str = Query("created_at"),
    order_desc: bool = Query(True),
) -> InvitationListResponse:
    """List invitations for a workspace with filtering and pagination."""
    invitations, total = await service.list_invitations(
        InvitationFilter(
            workspace_id=workspace_id,
            email=email,
            statuses=status_filter,
            types=[str(t) for t in type_filter] if type_filter else None,
            target_id=target_id,
            invited_by_id=invited_by_id,
            invitee_user_id=invitee_user_id,
            method=method,
            created_from=created_from,
            created_to=created_to,
            include_expired=include_expired,
            limit=limit,
            offset=offset,
            order_by=order_by,
            order_desc=order_desc,
        )
    )
    return InvitationListResponse(
        data=[_to_response(inv) for inv in invitations],
        meta={"total": total, "limit": limit, "offset": offset},
    )


@workspace_invitations_router.get(
    "/count",
    response_model=InvitationCountResponse,
    summary="Count workspace invitations",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def count_workspace_invitations(
    request: Request,
    workspace_id: UUID,
    caller: CurrentCaller,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationCountResponse:
    """Count every invitation ever issued in a workspace."""
    return InvitationCountResponse(count=await service.count_by_workspace(workspace_id))


@workspace_invitations_router.get(
    "/stats",
    response_model=InvitationStatsResponse,
    summary="Workspace invitation statistics",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_workspace_stats(
    request: Request,
    workspace_id: UUID,
    caller: CurrentCaller,
    stats_service: InvitationStatsService = Depends(get_stats_service),
) -> InvitationStatsResponse:
    """Status counts, acceptance rate and average time to accept."""
    stats = await stats_service.get_workspace_stats(workspace_id)
    return InvitationStatsResponse.model_validate(stats)


@workspace_invitations_router.post(
    "/bulk",
    response_model=BulkInvitationResponse,
    summary="Invite several emails",
    responses={
        200: {"description": "Batch processed; check status for partial failure"},
        400: {"description": "Empty or oversized batch, or role not allowed"},
    },
)
@limiter.limit("5/minute")  # type: ignore[untyped-decorator]
async def bulk_invite(
    request: Request,
    workspace_id: UUID,
    body: BulkInvitationRequest,
    caller: CurrentCaller,
    service: BulkInvitationService = Depends(get_bulk_invitation_service),
) -> BulkInvitationResponse:
    """
    Invite a batch of emails to the same scope.

    One bad email never aborts the batch: each email is reported as
    created, failed or skipped, and the summary status is completed,
    partial or failed accordingly.
    """
    outcome = await service.invite_many(
        caller.actor,
        workspace_id=workspace_id,
        type=body.type,
        target_id=body.target_id,
        emails=body.emails,
        role=body.role,
        permission=body.permission,
        message=body.message,
    )
    return BulkInvitationResponse(
        data=BulkResultResponse.model_validate(outcome.result),
        items=[BulkItemResponse.model_validate(item) for item in outcome.items],
    )


@workspace_invitations_router.get(
    "/bulk/{result_id}",
    response_model=BulkResultDetailResponse,
    summary="Get bulk run summary",
    responses={404: {"description": "Bulk result not found"}},
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_bulk_result(
    request: Request,
    workspace_id: UUID,
    result_id: UUID,
    caller: CurrentCaller,
    service: BulkInvitationService = Depends(get_bulk_invitation_service),
) -> BulkResultDetailResponse:
    """Fetch the stored summary of a bulk run."""
    result = await service.get_bulk_result(result_id)
    return BulkResultDetailResponse(data=BulkResultResponse.model_validate(result))


# --- Caller-scoped routes ---


@invitations_router.get(
    "/pending",
    response_model=InvitationListResponse,
    summary="Get pending invitations",
    responses={
        200: {"description": "Open invitations addressed to the caller's email"},
    },
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_pending_invitations(
    request: Request,
    caller: CurrentCaller,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationListResponse:
    """Get all pending, unexpired invitations for the caller's email."""
    invitations = await service.get_pending_for_email(caller.email)
    data = [_to_response(inv) for inv in invitations]
    return InvitationListResponse(data=data, meta={"total": len(data)})


@invitations_router.get(
    "/mine",
    response_model=InvitationListResponse,
    summary="Get invitations addressed to the caller",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_my_invitations(
    request: Request,
    caller: CurrentCaller,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationListResponse:
    """Get every invitation bound to the caller's user id, in any status."""
    invitations = await service.get_for_invitee(caller.id)
    data = [_to_response(inv) for inv in invitations]
    return InvitationListResponse(data=data, meta={"total": len(data)})


@invitations_router.get(
    "/stats",
    response_model=InvitationStatsResponse,
    summary="Scope invitation statistics",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_target_stats(
    request: Request,
    caller: CurrentCaller,
    type: InvitationType = Query(...),
    target_id: UUID = Query(...),
    stats_service: InvitationStatsService = Depends(get_stats_service),
) -> InvitationStatsResponse:
    """Statistics for invitations to a single scope."""
    stats = await stats_service.get_target_stats(type, target_id)
    return InvitationStatsResponse.model_validate(stats)


@invitations_router.get(
    "/pending-count",
    response_model=InvitationCountResponse,
    summary="Count pending invitations for a scope",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def count_pending_for_target(
    request: Request,
    caller: CurrentCaller,
    type: InvitationType = Query(...),
    target_id: UUID = Query(...),
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationCountResponse:
    """Count pending invitations for a scope."""
    return InvitationCountResponse(count=await service.count_pending_by_target(type, target_id))


@invitations_router.post(
    "/lookup",
    response_model=InvitationDetailResponse,
    summary="Look up invitation by token",
    responses={404: {"description": "No invitation for this token"}},
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def lookup_invitation(
    request: Request,
    body: TokenRequest,
    caller: CurrentCaller,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationDetailResponse:
    """Resolve a raw token from an email link to the invitation it addresses."""
    invitation = await service.get_by_token(body.token)
    return InvitationDetailResponse(data=_to_response(invitation))


@invitations_router.post(
    "/accept",
    response_model=InvitationDetailResponse,
    summary="Accept invitation by token",
    responses={
        200: {"description": "Invitation accepted"},
        400: {"description": "Invitation expired"},
        403: {"description": "Caller is not the invitee"},
        404: {"description": "Invitation not found"},
        409: {"description": "Invitation no longer pending"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def accept_invitation_by_token(
    request: Request,
    body: TokenRequest,
    caller: CurrentCaller,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationDetailResponse:
    """Accept an invitation using the token from the invitation email."""
    invitation = await service.accept_invitation(caller.actor, caller.email, token=body.token)
    return InvitationDetailResponse(data=_to_response(invitation))


@invitations_router.post(
    "/decline",
    response_model=InvitationDetailResponse,
    summary="Decline invitation by token",
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def decline_invitation_by_token(
    request: Request,
    body: TokenRequest,
    caller: CurrentCaller,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationDetailResponse:
    """Decline an invitation using the token from the invitation email."""
    invitation = await service.decline_invitation(caller.actor, caller.email, token=body.token)
    return InvitationDetailResponse(data=_to_response(invitation))


# --- Invitation-scoped routes ---


@invitations_router.get(
    "/{invitation_id}",
    response_model=InvitationDetailResponse,
    summary="Get invitation",
    responses={404: {"description": "Invitation not found"}},
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_invitation(
    request: Request,
    invitation_id: UUID,
    caller: CurrentCaller,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationDetailResponse:
    """Get a single invitation by ID."""
    invitation = await service.get_invitation(invitation_id)
    return InvitationDetailResponse(data=_to_response(invitation))


@invitations_router.post(
    "/{invitation_id}/accept",
    response_model=InvitationDetailResponse,
    summary="Accept invitation",
    responses={
        200: {"description": "Invitation accepted"},
        400: {"description": "Invitation expired"},
        403: {"description": "Caller is not the invitee"},
        404: {"description": "Invitation not found"},
        409: {"description": "Invitation no longer pending"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def accept_invitation(
    request: Request,
    invitation_id: UUID,
    caller: CurrentCaller,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationDetailResponse:
    """Accept an invitation from inside the app."""
    invitation = await service.accept_invitation(
        caller.actor, caller.email, invitation_id=invitation_id
    )
    return InvitationDetailResponse(data=_to_response(invitation))


@invitations_router.post(
    "/{invitation_id}/decline",
    response_model=InvitationDetailResponse,
    summary="Decline invitation",
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def decline_invitation(
    request: Request,
    invitation_id: UUID,
    caller: CurrentCaller,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationDetailResponse:
    """Decline an invitation from inside the app."""
    invitation = await service.decline_invitation(
        caller.actor, caller.email, invitation_id=invitation_id
    )
    return InvitationDetailResponse(data=_to_response(invitation))


@invitations_router.post(
    "/{invitation_id}/cancel",
    response_model=InvitationDetailResponse,
    summary="Cancel invitation",
    responses={
        403: {"description": "Caller is not the inviter"},
        409: {"description": "Invitation no longer pending"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def cancel_invitation(
    request: Request,
    invitation_id: UUID,
    caller: CurrentCaller,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationDetailResponse:
    """Withdraw a pending invitation."""
    invitation = await service.cancel_invitation(caller.actor, invitation_id=invitation_id)
    return InvitationDetailResponse(data=_to_response(invitation))


@invitations_router.post(
    "/{invitation_id}/revoke",
    response_model=InvitationDetailResponse,
    summary="Revoke invitation",
    responses={
        403: {"description": "Caller is not the inviter"},
        409: {"description": "Invitation no longer pending"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def revoke_invitation(
    request: Request,
    invitation_id: UUID,
    caller: CurrentCaller,
    body: RevokeInvitationRequest | None = None,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationDetailResponse:
    """Administratively revoke a pending invitation."""
    invitation = await service.revoke_invitation(
        caller.actor,
        invitation_id=invitation_id,
        reason=body.reason if body else None,
    )
    return InvitationDetailResponse(data=_to_response(invitation))


@invitations_router.post(
    "/{invitation_id}/resend",
    response_model=InvitationTokenResponse,
    summary="Resend invitation",
    responses={
        403: {"description": "Caller is not the inviter"},
        409: {"description": "Invitation no longer pending"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def resend_invitation(
    request: Request,
    invitation_id: UUID,
    caller: CurrentCaller,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationTokenResponse:
    """Rotate the token, reset reminders and extend the expiry."""
    invitation, raw_token = await service.resend_invitation(caller.actor, invitation_id)
    return InvitationTokenResponse(data=_to_response(invitation), token=raw_token)


@invitations_router.post(
    "/{invitation_id}/regenerate-token",
    response_model=InvitationTokenResponse,
    summary="Regenerate invitation token",
    responses={
        403: {"description": "Caller is not the inviter"},
        409: {"description": "Invitation no longer pending"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def regenerate_token(
    request: Request,
    invitation_id: UUID,
    caller: CurrentCaller,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationTokenResponse:
    """Replace the token so previously shared links stop working."""
    invitation, raw_token = await service.regenerate_token(caller.actor, invitation_id)
    return InvitationTokenResponse(data=_to_response(invitation), token=raw_token)


@invitations_router.get(
    "/{invitation_id}/permissions",
    response_model=PermissionsResponse,
    summary="Get effective permissions",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_permissions(
    request: Request,
    invitation_id: UUID,
    caller: CurrentCaller,
    service: InvitationService = Depends(get_invitation_service),
) -> PermissionsResponse:
    """Stored capability flags, or the defaults for the invitation's level."""
    perms = await service.get_effective_permissions(invitation_id)
    return _permissions_response(perms)


@invitations_router.put(
    "/{invitation_id}/permissions",
    response_model=PermissionsResponse,
    summary="Override capability flags",
    responses={403: {"description": "Caller is not the inviter"}},
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def update_permissions(
    request: Request,
    invitation_id: UUID,
    body: UpdatePermissionsRequest,
    caller: CurrentCaller,
    service: InvitationService = Depends(get_invitation_service),
) -> PermissionsResponse:
    """Override individual capability flags. Unknown flag names are ignored."""
    perms = await service.update_permissions(
        caller.actor,
        invitation_id,
        permission_flags=body.permission_flags,
        custom_permissions=body.custom_permissions,
    )
    return _permissions_response(perms)


@invitations_router.get(
    "/{invitation_id}/history",
    response_model=InvitationActivityListResponse,
    summary="Get invitation history",
    responses={404: {"description": "Invitation not found"}},
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_invitation_history(
    request: Request,
    invitation_id: UUID,
    caller: CurrentCaller,
    activity_service: ActivityService = Depends(get_activity_service),
    limit: int = Query(50, ge=1, le=200),
) -> InvitationActivityListResponse:
    """Audit trail for an invitation, oldest first."""
    entries = await activity_service.get_invitation_history(invitation_id, limit=limit)
    data = [InvitationActivityResponse.model_validate(e) for e in entries]
    return InvitationActivityListResponse(data=data, meta={"total": len(data)})
