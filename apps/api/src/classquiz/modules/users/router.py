"""
Users Router

Endpoints:
- GET /users/me - Caller's own profile
- GET /users - Users of the director's school
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from classquiz.core.auth import Claims, get_current_claims, require_roles
from classquiz.core.database import get_db
from classquiz.core.exceptions import NotFoundError, ValidationFailedError
from classquiz.modules.users.models import UserRole
from classquiz.modules.users.repository import UserRepository
from classquiz.modules.users.schemas import UserListResponse, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me(
    claims: Claims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Return the profile of the authenticated caller."""
    user = await UserRepository.get_by_id(db, claims.user_id)
    if user is None:
        raise NotFoundError("User", claims.user_id)
    return UserResponse.model_validate(user)


@router.get("", response_model=UserListResponse)
async def list_users(
    role: UserRole | None = None,
    claims: Claims = Depends(require_roles(UserRole.DIRECTOR)),
    db: AsyncSession = Depends(get_db),
) -> UserListResponse:
    """List the users of the director's school, optionally filtered by role."""
    if claims.school_id is None:
        raise ValidationFailedError("Create your school before listing its users.")

    users = await UserRepository.list_by_school(db, claims.school_id, role)
    return UserListResponse(
        users=[UserResponse.model_validate(user) for user in users],
        total=len(users),
    )
