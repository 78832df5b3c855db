"""
Authentication and Authorization Module

Claims-based access gate for FastAPI endpoints. An access token is decoded
once into an explicit Claims structure; role membership is checked against
it. Resource scoping (which school or classroom a caller may touch) is left
to the services, which receive the school and classroom ids from Claims.
"""

import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from classquiz.core.exceptions import ForbiddenError, UnauthorizedError
from classquiz.core.security import ACCESS_TOKEN_TYPE, decode_token
from classquiz.modules.users.models import UserRole

logger = logging.getLogger(__name__)

# auto_error=False so a missing header surfaces as our own UnauthorizedError
security = HTTPBearer(
    auto_error=False,
    description="JWT Bearer token for authentication",
)


@dataclass(frozen=True)
class Claims:
    """
    Authorization claims of an authenticated caller.

    Attributes:
        user_id: Identity ID (token subject)
        role: Caller's role
        school_id: Tenant the caller belongs to (None for a new director)
        classroom_id: Classroom of a teacher or parent
        email: Caller's email, informational only
    """

    user_id: UUID
    role: UserRole
    school_id: UUID | None = None
    classroom_id: UUID | None = None
    email: str | None = None

    def __str__(self) -> str:
        return f"Claims(user_id={self.user_id}, role={self.role.value}, school_id={self.school_id})"


def _optional_uuid(value: Any) -> UUID | None:
    if value in (None, ""):
        return None
    return UUID(str(value))


def decode_claims(token: str | None) -> Claims:
    """
    Decode an access token into Claims.

    Args:
        token: Encoded JWT, or None when no credential was presented

    Returns:
        Claims carried by the token

    Raises:
        UnauthorizedError: For every failure (absent, bad signature,
            expired, wrong token type, missing or malformed claims)
    """
    if not token:
        raise UnauthorizedError("Authentication is required.")

    payload = decode_token(token)
    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise UnauthorizedError()

    token_type = payload.get("type")
    if token_type != ACCESS_TOKEN_TYPE:
        logger.warning(f"Invalid token type: {token_type}")
        raise UnauthorizedError("This endpoint requires an access token.")

    try:
        return Claims(
            user_id=UUID(payload["sub"]),
            role=UserRole(payload["role"]),
            school_id=_optional_uuid(payload.get("school_id")),
            classroom_id=_optional_uuid(payload.get("classroom_id")),
            email=payload.get("email"),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Invalid token claims: {e}")
        raise UnauthorizedError("Token contains invalid or missing claims.") from e


def authorize(claims: Claims | None, required_roles: list[UserRole] | tuple[UserRole, ...]) -> Claims:
    """
    Check that the caller holds one of the required roles.

    Raises:
        UnauthorizedError: If claims are absent
        ForbiddenError: If the role is not in required_roles
    """
    if claims is None:
        raise UnauthorizedError("Authentication is required.")

    if claims.role not in required_roles:
        logger.warning(
            f"Access denied: user {claims.user_id} has role '{claims.role.value}', "
            f"required one of {[role.value for role in required_roles]}"
        )
        raise ForbiddenError()

    return claims


async def get_current_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Claims:
    """
    FastAPI dependency returning the caller's Claims.

    Usage:
        @router.get("/users/me")
        async def me(claims: Claims = Depends(get_current_claims)):
            ...
    """
    claims = decode_claims(credentials.credentials if credentials else None)
    logger.debug(f"Authenticated {claims}")
    return claims


def require_roles(*roles: UserRole) -> Callable[..., Coroutine[Any, Any, Claims]]:
    """
    Build a dependency that admits only the given roles.

    Usage:
        @router.post("/invitations")
        async def create(claims: Claims = Depends(require_roles(UserRole.DIRECTOR))):
            ...
    """

    async def dependency(claims: Claims = Depends(get_current_claims)) -> Claims:
        return authorize(claims, roles)

    return dependency


__all__ = [
    "Claims",
    "authorize",
    "decode_claims",
    "get_current_claims",
    "require_roles",
]
