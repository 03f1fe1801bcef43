"""Access request API routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from api.dependencies.auth import CurrentCaller
from api.v1.dependencies import get_access_request_service
from api.v1.schemas.access_request import (
    AccessRequestDetailResponse,
    AccessRequestListResponse,
    AccessRequestResponse,
    CreateAccessRequestRequest,
    DenyAccessRequestRequest,
)
from core.rate_limit import limiter
from domain.entities.access_request import AccessRequestStatus
from domain.entities.grant import InvitationType
from domain.services.access_request_service import AccessRequestService

# Workspace-scoped access request routes
workspace_access_requests_router = APIRouter(
    prefix="/workspaces/{workspace_id}/access-requests",
    tags=["access-requests"],
)

# Request-scoped routes (review, listing)
access_requests_router = APIRouter(
    prefix="/access-requests",
    tags=["access-requests"],
)


@workspace_access_requests_router.post(
    "",
    response_model=AccessRequestDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request access",
    responses={
        201: {"description": "Access request filed"},
        409: {"description": "A pending request already exists"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def create_access_request(
    request: Request,
    workspace_id: UUID,
    body: CreateAccessRequestRequest,
    caller: CurrentCaller,
    service: AccessRequestService = Depends(get_access_request_service),
) -> AccessRequestDetailResponse:
    """Ask an approver to let the caller into a scope."""
    created = await service.create_access_request(
        caller.actor,
        caller.email,
        workspace_id=workspace_id,
        type=body.type,
        target_id=body.target_id,
        message=body.message,
    )
    return AccessRequestDetailResponse(data=AccessRequestResponse.model_validate(created))


@access_requests_router.get(
    "",
    response_model=AccessRequestListResponse,
    summary="List access requests for a scope",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def list_access_requests(
    request: Request,
    caller: CurrentCaller,
    type: InvitationType = Query(...),
    target_id: UUID = Query(...),
    status_filter: AccessRequestStatus | None = Query(None, alias="status"),
    service: AccessRequestService = Depends(get_access_request_service),
) -> AccessRequestListResponse:
    """List requests on a scope, newest first, optionally by status."""
    requests = await service.list_for_target(type, target_id, status=status_filter)
    data = [AccessRequestResponse.model_validate(r) for r in requests]
    return AccessRequestListResponse(data=data, meta={"total": len(data)})


@access_requests_router.get(
    "/mine",
    response_model=AccessRequestListResponse,
    summary="List the caller's access requests",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def list_my_access_requests(
    request: Request,
    caller: CurrentCaller,
    service: AccessRequestService = Depends(get_access_request_service),
) -> AccessRequestListResponse:
    """List every request the caller has filed, newest first."""
    requests = await service.list_for_requester(caller.id)
    data = [AccessRequestResponse.model_validate(r) for r in requests]
    return AccessRequestListResponse(data=data, meta={"total": len(data)})


@access_requests_router.get(
    "/{request_id}",
    response_model=AccessRequestDetailResponse,
    summary="Get access request",
    responses={404: {"description": "Access request not found"}},
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_access_request(
    request: Request,
    request_id: UUID,
    caller: CurrentCaller,
    service: AccessRequestService = Depends(get_access_request_service),
) -> AccessRequestDetailResponse:
    """Get a single access request by ID."""
    found = await service.get_access_request(request_id)
    return AccessRequestDetailResponse(data=AccessRequestResponse.model_validate(found))


@access_requests_router.post(
    "/{request_id}/approve",
    response_model=AccessRequestDetailResponse,
    summary="Approve access request",
    responses={
        404: {"description": "Access request not found"},
        403: {"description": "Requesters cannot review their own request"},
        409: {"description": "Already processed"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def approve_access_request(
    request: Request,
    request_id: UUID,
    caller: CurrentCaller,
    service: AccessRequestService = Depends(get_access_request_service),
) -> AccessRequestDetailResponse:
    """Approve a pending request."""
    approved = await service.approve_access_request(caller.actor, request_id)
    return AccessRequestDetailResponse(data=AccessRequestResponse.model_validate(approved))


@access_requests_router.post(
    "/{request_id}/deny",
    response_model=AccessRequestDetailResponse,
    summary="Deny access request",
    responses={
        404: {"description": "Access request not found"},
        403: {"description": "Requesters cannot review their own request"},
        409: {"description": "Already processed"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def deny_access_request(
    request: Request,
    request_id: UUID,
    caller: CurrentCaller,
    body: DenyAccessRequestRequest | None = None,
    service: AccessRequestService = Depends(get_access_request_service),
) -> AccessRequestDetailResponse:
    """Deny a pending request, optionally with a reason."""
    denied = await service.deny_access_request(
        caller.actor, request_id, reason=body.reason if body else None
    )
    return AccessRequestDetailResponse(data=AccessRequestResponse.model_validate(denied))
