"""Caller identity dependencies for FastAPI.

Authentication happens upstream: the gateway verifies the session and
forwards the caller's identity in ``X-User-Id`` and ``X-User-Email``.
"""

import secrets
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, Request

from core.config import settings
from core.exceptions import AuthenticationError, InsufficientPermissionsError
from domain.entities.activity import ActorContext


@dataclass(frozen=True)
class CallerIdentity:
    """Authenticated caller as forwarded by the gateway."""

    id: UUID
    email: str
    actor: ActorContext


async def get_current_caller(
    request: Request,
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_email: Annotated[str | None, Header()] = None,
) -> CallerIdentity:
    """
    Dependency to get the current caller.

    Raises:
        AuthenticationError: If the identity headers are missing or malformed
    """
    if not x_user_id:
        raise AuthenticationError(message="X-User-Id header required")

    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise AuthenticationError(message="X-User-Id must be a UUID")

    ip_address = request.client.host if request.client else None
    actor = ActorContext.user(
        user_id,
        ip_address=ip_address,
        user_agent=request.headers.get("user-agent"),
    )
    return CallerIdentity(id=user_id, email=(x_user_email or "").strip().lower(), actor=actor)


async def require_scheduler(
    x_scheduler_token: Annotated[str | None, Header()] = None,
) -> None:
    """Dependency guarding the sweep endpoints.

    Raises:
        InsufficientPermissionsError: If the token does not match the configured one
    """
    expected = settings.scheduler_token
    if not expected or not x_scheduler_token:
        raise InsufficientPermissionsError("scheduler")
    if not secrets.compare_digest(x_scheduler_token.encode(), expected.encode()):
        raise InsufficientPermissionsError("scheduler")


# Type alias for convenience in route handlers
CurrentCaller = Annotated[CallerIdentity, Depends(get_current_caller)]
SchedulerAccess = Annotated[None, Depends(require_scheduler)]
