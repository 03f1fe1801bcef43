"""Custom exceptions and error codes."""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the API."""

    # Authentication errors (401)
    UNAUTHORIZED = "UNAUTHORIZED"

    # Not found errors (404)
    INVITATION_NOT_FOUND = "INVITATION_NOT_FOUND"
    LINK_NOT_FOUND = "LINK_NOT_FOUND"
    ACCESS_REQUEST_NOT_FOUND = "ACCESS_REQUEST_NOT_FOUND"
    BULK_RESULT_NOT_FOUND = "BULK_RESULT_NOT_FOUND"

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_ROLE_FOR_TYPE = "INVALID_ROLE_FOR_TYPE"
    INVALID_EMAIL = "INVALID_EMAIL"
    INVITATION_EXPIRED = "INVITATION_EXPIRED"

    # Access denial (403)
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    DOMAIN_REJECTED = "DOMAIN_REJECTED"
    INVITATION_EMAIL_MISMATCH = "INVITATION_EMAIL_MISMATCH"

    # Conflict errors (409)
    INVITATION_ALREADY_RESOLVED = "INVITATION_ALREADY_RESOLVED"
    DUPLICATE_INVITATION = "DUPLICATE_INVITATION"
    ACCESS_REQUEST_ALREADY_PROCESSED = "ACCESS_REQUEST_ALREADY_PROCESSED"
    DUPLICATE_ACCESS_REQUEST = "DUPLICATE_ACCESS_REQUEST"

    # Gone (410)
    LINK_INVALID = "LINK_INVALID"

    # Rate limiting (429)
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Any | None = None,
    ) -> None:
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class AuthenticationError(AppException):
    """Caller identity missing or malformed."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            error_code=ErrorCode.UNAUTHORIZED,
            message=message,
            status_code=401,
        )


class InsufficientPermissionsError(AppException):
    """Caller is not allowed to act on this record."""

    def __init__(self, required: str = "inviter") -> None:
        super().__init__(
            error_code=ErrorCode.INSUFFICIENT_PERMISSIONS,
            message=f"Insufficient permissions. Required: {required}",
            status_code=403,
            details={"required": required},
        )


class InvitationNotFoundError(AppException):
    """Invitation not found."""

    def __init__(self, invitation_id: str = "") -> None:
        super().__init__(
            error_code=ErrorCode.INVITATION_NOT_FOUND,
            message="Invitation not found",
            status_code=404,
            details={"invitation_id": invitation_id} if invitation_id else None,
        )


class InvitationAlreadyResolvedError(AppException):
    """A transition was attempted on an invitation that is no longer pending."""

    def __init__(self, invitation_id: str, current_status: str | None = None) -> None:
        super().__init__(
            error_code=ErrorCode.INVITATION_ALREADY_RESOLVED,
            message=(
                f"Invitation is already {current_status}"
                if current_status
                else "Invitation has already been resolved"
            ),
            status_code=409,
            details={"invitation_id": invitation_id, "status": current_status},
        )


class InvitationExpiredError(AppException):
    """Invitation has expired."""

    def __init__(self) -> None:
        super().__init__(
            error_code=ErrorCode.INVITATION_EXPIRED,
            message="This invitation has expired",
            status_code=400,
        )


class InvalidRoleForTypeError(AppException):
    """Role is not grantable at the requested scope."""

    def __init__(self, role: str, invitation_type: str, allowed: list[str]) -> None:
        super().__init__(
            error_code=ErrorCode.INVALID_ROLE_FOR_TYPE,
            message=f"Role '{role}' cannot be granted on a {invitation_type}",
            status_code=400,
            details={"role": role, "type": invitation_type, "allowed_roles": allowed},
        )


class InvalidEmailError(AppException):
    """Email address is malformed."""

    def __init__(self, email: str) -> None:
        super().__init__(
            error_code=ErrorCode.INVALID_EMAIL,
            message="Invalid email address",
            status_code=400,
            details={"email": email},
        )


class DuplicateInvitationError(AppException):
    """A pending invitation already exists for this invitee and target."""

    def __init__(self, email: str) -> None:
        super().__init__(
            error_code=ErrorCode.DUPLICATE_INVITATION,
            message="A pending invitation already exists for this email",
            status_code=409,
            details={"email": email},
        )


class InvitationEmailMismatchError(AppException):
    """The user's email does not match the invitation email."""

    def __init__(self) -> None:
        super().__init__(
            error_code=ErrorCode.INVITATION_EMAIL_MISMATCH,
            message="Your email does not match the invitation email",
            status_code=403,
        )


class LinkNotFoundError(AppException):
    """Invitation link settings not found."""

    def __init__(self, link: str = "") -> None:
        super().__init__(
            error_code=ErrorCode.LINK_NOT_FOUND,
            message="Invitation link not found",
            status_code=404,
            details={"link": link} if link else None,
        )


class LinkInvalidError(AppException):
    """Invitation link is inactive, expired or exhausted."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            error_code=ErrorCode.LINK_INVALID,
            message=f"This invitation link is no longer valid ({reason})",
            status_code=410,
            details={"reason": reason},
        )


class DomainRejectedError(AppException):
    """Email domain is not permitted by the link's domain policy."""

    def __init__(self, email: str) -> None:
        super().__init__(
            error_code=ErrorCode.DOMAIN_REJECTED,
            message="Your email domain is not allowed to use this invitation link",
            status_code=403,
            details={"email": email},
        )


class AccessRequestNotFoundError(AppException):
    """Access request not found."""

    def __init__(self, request_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.ACCESS_REQUEST_NOT_FOUND,
            message=f"Access request not found: {request_id}",
            status_code=404,
            details={"access_request_id": request_id},
        )


class AccessRequestAlreadyProcessedError(AppException):
    """Access request has already been approved or denied."""

    def __init__(self, request_id: str, current_status: str | None = None) -> None:
        super().__init__(
            error_code=ErrorCode.ACCESS_REQUEST_ALREADY_PROCESSED,
            message="This access request has already been processed",
            status_code=409,
            details={"access_request_id": request_id, "status": current_status},
        )


class DuplicateAccessRequestError(AppException):
    """The requester already has a pending request for this target."""

    def __init__(self, target_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.DUPLICATE_ACCESS_REQUEST,
            message="You already have a pending access request for this resource",
            status_code=409,
            details={"target_id": target_id},
        )


class BulkResultNotFoundError(AppException):
    """Bulk invitation result not found."""

    def __init__(self, result_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.BULK_RESULT_NOT_FOUND,
            message=f"Bulk invitation result not found: {result_id}",
            status_code=404,
            details={"bulk_result_id": result_id},
        )
