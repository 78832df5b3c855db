"""
Service Error Taxonomy

Every failure a service can surface carries a human-readable message, a
machine-checkable error code and the HTTP status it maps to. Routers let
these propagate; a single exception handler renders them as

    {"detail": {"error": CODE, "message": text}}
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)

    def to_detail(self) -> dict[str, str]:
        return {"error": self.error_code, "message": self.message}


class UnauthorizedError(ServiceError):
    """Missing, malformed or expired credential."""

    def __init__(self, message: str = "Invalid or expired authentication token."):
        super().__init__(message, "UNAUTHORIZED", status.HTTP_401_UNAUTHORIZED)


class ForbiddenError(ServiceError):
    """Valid credential, but the role or scope does not allow the operation."""

    def __init__(self, message: str = "You are not allowed to perform this action."):
        super().__init__(message, "FORBIDDEN", status.HTTP_403_FORBIDDEN)


class NotFoundError(ServiceError):
    def __init__(self, resource: str, resource_id: object | None = None):
        message = f"{resource} {resource_id} not found" if resource_id else f"{resource} not found"
        super().__init__(message, "NOT_FOUND", status.HTTP_404_NOT_FOUND)


class ConflictError(ServiceError):
    def __init__(self, message: str):
        super().__init__(message, "CONFLICT", status.HTTP_409_CONFLICT)


class ValidationFailedError(ServiceError):
    def __init__(self, message: str):
        super().__init__(message, "VALIDATION_FAILED", status.HTTP_400_BAD_REQUEST)


class InvalidInvitationError(ServiceError):
    """Invitation token cannot be used (not found, expired or already used)."""

    def __init__(
        self,
        message: str = "Invalid or expired invitation token.",
        error_code: str = "INVALID_INVITATION",
    ):
        super().__init__(message, error_code, status.HTTP_410_GONE)


class TokenNotFoundError(InvalidInvitationError):
    def __init__(self):
        super().__init__("Invitation token not found.", "TOKEN_NOT_FOUND")


class TokenExpiredOrUsedError(InvalidInvitationError):
    def __init__(self):
        super().__init__(
            "This invitation has expired or has already been used.",
            "TOKEN_EXPIRED_OR_USED",
        )


class UnsupportedRoleError(ServiceError):
    def __init__(self, role: object):
        super().__init__(
            f"Role '{role}' is not supported for this operation.",
            "UNSUPPORTED_ROLE",
            status.HTTP_400_BAD_REQUEST,
        )


class IdentityCreationFailedError(ServiceError):
    def __init__(self, message: str = "Failed to create user account."):
        super().__init__(message, "IDENTITY_CREATION_FAILED", status.HTTP_409_CONFLICT)


class ClaimAssignmentFailedError(ServiceError):
    def __init__(self, message: str = "Failed to assign role claims to the new account."):
        super().__init__(
            message, "CLAIM_ASSIGNMENT_FAILED", status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class ProfilePersistenceFailedError(ServiceError):
    def __init__(self, message: str = "Failed to persist user profile."):
        super().__init__(
            message, "PROFILE_PERSISTENCE_FAILED", status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class AIResponseInvalidError(ServiceError):
    """The AI provider answered, but not with a usable quiz."""

    def __init__(self, message: str = "The AI response was not valid. Please try again."):
        super().__init__(message, "AI_RESPONSE_INVALID", status.HTTP_502_BAD_GATEWAY)


class AIProviderError(ServiceError):
    """The AI provider could not be reached or rejected the request."""

    def __init__(self, message: str = "The AI provider request failed."):
        super().__init__(message, "AI_PROVIDER_ERROR", status.HTTP_502_BAD_GATEWAY)


class NotConfiguredError(ServiceError):
    def __init__(self, what: str):
        super().__init__(
            f"Server is not configured: {what} is missing.",
            "NOT_CONFIGURED",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


class UnexpectedError(ServiceError):
    def __init__(self, message: str = "Unexpected error."):
        super().__init__(message, "UNEXPECTED", status.HTTP_500_INTERNAL_SERVER_ERROR)


async def _service_error_handler(_request: Request, exc: ServiceError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.to_detail()},
        headers=headers,
    )


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    error = UnexpectedError()
    return JSONResponse(status_code=error.status_code, content={"detail": error.to_detail()})


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers that render ServiceError and unknown exceptions."""
    app.add_exception_handler(ServiceError, _service_error_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)


__all__ = [
    "ServiceError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "ValidationFailedError",
    "InvalidInvitationError",
    "TokenNotFoundError",
    "TokenExpiredOrUsedError",
    "UnsupportedRoleError",
    "IdentityCreationFailedError",
    "ClaimAssignmentFailedError",
    "ProfilePersistenceFailedError",
    "AIResponseInvalidError",
    "AIProviderError",
    "NotConfiguredError",
    "UnexpectedError",
    "register_exception_handlers",
]
