"""Invitation link API routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from api.dependencies.auth import CurrentCaller
from api.v1.dependencies import get_link_invitation_service
from api.v1.schemas.access_request import AccessRequestResponse
from api.v1.schemas.invitation import InvitationResponse
from api.v1.schemas.link import (
    CreateLinkRequest,
    JoinLinkRequest,
    JoinLinkResponse,
    LinkDetailResponse,
    LinkListResponse,
    LinkResponse,
    LinkValidationResponse,
    UpdateLinkRequest,
    ValidateLinkRequest,
)
from core.rate_limit import limiter
from domain.entities.grant import InvitationType
from domain.services.link_invitation_service import LinkInvitationService

# Workspace-scoped link routes
workspace_links_router = APIRouter(
    prefix="/workspaces/{workspace_id}/links",
    tags=["links"],
)

# Link-scoped routes (management, validation, join)
links_router = APIRouter(
    prefix="/links",
    tags=["links"],
)


@workspace_links_router.post(
    "",
    response_model=LinkDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create invitation link",
    responses={
        201: {"description": "Link created"},
        400: {"description": "Default role not allowed for the scope"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def create_link(
    request: Request,
    workspace_id: UUID,
    body: CreateLinkRequest,
    caller: CurrentCaller,
    service: LinkInvitationService = Depends(get_link_invitation_service),
) -> LinkDetailResponse:
    """Create a shareable link that grants access to a scope."""
    link = await service.create_link_settings(
        caller.actor,
        workspace_id=workspace_id,
        type=body.type,
        target_id=body.target_id,
        default_role=body.default_role,
        default_permission=body.default_permission,
        requires_approval=body.requires_approval,
        allowed_domains=body.allowed_domains,
        blocked_domains=body.blocked_domains,
        max_uses=body.max_uses,
        expires_at=body.expires_at,
    )
    return LinkDetailResponse(data=LinkResponse.model_validate(link))


@links_router.get(
    "",
    response_model=LinkListResponse,
    summary="List links for a scope",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def list_links(
    request: Request,
    caller: CurrentCaller,
    type: InvitationType = Query(...),
    target_id: UUID = Query(...),
    service: LinkInvitationService = Depends(get_link_invitation_service),
) -> LinkListResponse:
    """List every link for a scope, active or not, newest first."""
    links = await service.list_link_settings(type, target_id)
    data = [LinkResponse.model_validate(link) for link in links]
    return LinkListResponse(data=data, meta={"total": len(data)})


@links_router.post(
    "/validate",
    response_model=LinkValidationResponse,
    summary="Validate link",
    responses={
        200: {"description": "Link is usable"},
        403: {"description": "Email domain rejected"},
        404: {"description": "Link not found"},
        410: {"description": "Link inactive, expired or exhausted"},
    },
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def validate_link(
    request: Request,
    body: ValidateLinkRequest,
    caller: CurrentCaller,
    service: LinkInvitationService = Depends(get_link_invitation_service),
) -> LinkValidationResponse:
    """Check a link before joining, using the caller's email unless one is given."""
    link = await service.validate_link(body.link_token, email=body.email or caller.email or None)
    return LinkValidationResponse(
        type=link.type,
        target_id=link.target_id,
        default_role=link.default_role,
        requires_approval=link.requires_approval,
    )


@links_router.post(
    "/join",
    response_model=JoinLinkResponse,
    summary="Join through link",
    responses={
        200: {"description": "Joined, or access request filed for approval"},
        403: {"description": "Email domain rejected"},
        404: {"description": "Link not found"},
        409: {"description": "Access request already pending"},
        410: {"description": "Link inactive, expired or exhausted"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def join_link(
    request: Request,
    body: JoinLinkRequest,
    caller: CurrentCaller,
    service: LinkInvitationService = Depends(get_link_invitation_service),
) -> JoinLinkResponse:
    """
    Join the link's scope.

    Links that require approval file an access request instead of
    granting access immediately.
    """
    result = await service.join_via_link(
        caller.actor,
        caller.email,
        body.link_token,
        message=body.message,
    )
    return JoinLinkResponse(
        pending_approval=result.pending_approval,
        invitation=InvitationResponse.model_validate(result.invitation)
        if result.invitation
        else None,
        access_request=AccessRequestResponse.model_validate(result.access_request)
        if result.access_request
        else None,
    )


@links_router.get(
    "/{link_id}",
    response_model=LinkDetailResponse,
    summary="Get link",
    responses={404: {"description": "Link not found"}},
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_link(
    request: Request,
    link_id: UUID,
    caller: CurrentCaller,
    service: LinkInvitationService = Depends(get_link_invitation_service),
) -> LinkDetailResponse:
    """Get a single link by ID."""
    link = await service.get_link_settings(link_id)
    return LinkDetailResponse(data=LinkResponse.model_validate(link))


@links_router.patch(
    "/{link_id}",
    response_model=LinkDetailResponse,
    summary="Update link policy",
    responses={404: {"description": "Link not found"}},
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def update_link(
    request: Request,
    link_id: UUID,
    body: UpdateLinkRequest,
    caller: CurrentCaller,
    service: LinkInvitationService = Depends(get_link_invitation_service),
) -> LinkDetailResponse:
    """Partially update a link. Explicit nulls clear the use limit or expiry."""
    nullable = {
        field: getattr(body, field)
        for field in ("max_uses", "expires_at")
        if field in body.model_fields_set
    }
    link = await service.update_link_settings(
        link_id,
        default_role=body.default_role,
        default_permission=body.default_permission,
        requires_approval=body.requires_approval,
        allowed_domains=body.allowed_domains,
        blocked_domains=body.blocked_domains,
        **nullable,
    )
    return LinkDetailResponse(data=LinkResponse.model_validate(link))


@links_router.post(
    "/{link_id}/activate",
    response_model=LinkDetailResponse,
    summary="Activate link",
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def activate_link(
    request: Request,
    link_id: UUID,
    caller: CurrentCaller,
    service: LinkInvitationService = Depends(get_link_invitation_service),
) -> LinkDetailResponse:
    """Re-enable a deactivated link."""
    link = await service.set_link_active(link_id, True)
    return LinkDetailResponse(data=LinkResponse.model_validate(link))


@links_router.post(
    "/{link_id}/deactivate",
    response_model=LinkDetailResponse,
    summary="Deactivate link",
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def deactivate_link(
    request: Request,
    link_id: UUID,
    caller: CurrentCaller,
    service: LinkInvitationService = Depends(get_link_invitation_service),
) -> LinkDetailResponse:
    """Stop a link from admitting anyone new."""
    link = await service.set_link_active(link_id, False)
    return LinkDetailResponse(data=LinkResponse.model_validate(link))


@links_router.delete(
    "/{link_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete link",
    responses={
        204: {"description": "Link deleted"},
        404: {"description": "Link not found"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def delete_link(
    request: Request,
    link_id: UUID,
    caller: CurrentCaller,
    service: LinkInvitationService = Depends(get_link_invitation_service),
) -> None:
    """Delete a link. Invitations already created through it are kept."""
    await service.delete_link_settings(link_id)
    return None
