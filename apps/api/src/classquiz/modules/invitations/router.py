"""
Invitations Router

Endpoints:
- POST /invitations - Director creates a single-use teacher invitation
- GET /invitations - Director lists the school's live invitations
- GET /invitations/parent - Teacher gets (or creates) the classroom's parent link
- POST /invitations/validate - Public, check a token before sign-up
- POST /invitations/consume - Public, create an account from a token

Security:
- Public endpoints are rate limited per client IP (Redis, memory fallback)
- Role, school and classroom of a new account always come from the token
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from classquiz.core.auth import Claims, require_roles
from classquiz.core.config import settings
from classquiz.core.database import get_db
from classquiz.core.exceptions import ForbiddenError, ValidationFailedError
from classquiz.core.rate_limit import rate_limit
from classquiz.modules.identity.store import CredentialStore, get_credential_store
from classquiz.modules.invitations import onboarding, service
from classquiz.modules.invitations.schemas import (
    ConsumeInvitationRequest,
    ConsumeInvitationResponse,
    InvitationCreate,
    InvitationListResponse,
    InvitationResponse,
    ParentInvitationResponse,
    ValidateInvitationRequest,
    ValidateInvitationResponse,
)
from classquiz.modules.users.models import UserRole
from classquiz.modules.users.schemas import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT = settings.invitation_rate_limit
RATE_LIMIT_WINDOW = settings.invitation_rate_limit_window_seconds


def _require_school(claims: Claims) -> UUID:
    if claims.school_id is None:
        raise ValidationFailedError("Create your school first.")
    return claims.school_id


@router.post(
    "",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Teacher Invitation",
)
async def create_invitation(
    data: InvitationCreate,
    claims: Claims = Depends(require_roles(UserRole.DIRECTOR)),
    db: AsyncSession = Depends(get_db),
) -> InvitationResponse:
    """Create a single-use invitation for a teacher of the director's school."""
    invitation = await service.create_single_use_invitation(
        db,
        school_id=_require_school(claims),
        classroom_id=data.classroom_id,
        intended_role=data.intended_role,
        created_by=claims.user_id,
        expires_at=data.expires_at,
    )
    return InvitationResponse.model_validate(invitation)


@router.get("", response_model=InvitationListResponse, summary="List Invitations")
async def list_invitations(
    claims: Claims = Depends(require_roles(UserRole.DIRECTOR)),
    db: AsyncSession = Depends(get_db),
) -> InvitationListResponse:
    invitations = await service.list_school_invitations(db, _require_school(claims))
    return InvitationListResponse(
        items=[InvitationResponse.model_validate(item) for item in invitations],
        total=len(invitations),
    )


@router.get(
    "/parent",
    response_model=ParentInvitationResponse,
    summary="Get Classroom Parent Invitation",
    responses={
        200: {"description": "Existing live invitation returned"},
        201: {"description": "New invitation created"},
    },
)
async def get_parent_invitation(
    response: Response,
    claims: Claims = Depends(require_roles(UserRole.TEACHER)),
    db: AsyncSession = Depends(get_db),
) -> ParentInvitationResponse:
    """Return the reusable parent invitation of the teacher's classroom."""
    if claims.classroom_id is None or claims.school_id is None:
        raise ForbiddenError("Teacher role and classroom assignment required.")

    invitation, created = await service.issue_or_reuse_parent_invitation(
        db,
        claims.classroom_id,
        claims.school_id,
        created_by=claims.user_id,
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return ParentInvitationResponse(
        invitation=InvitationResponse.model_validate(invitation),
        created=created,
    )


@router.post(
    "/validate",
    response_model=ValidateInvitationResponse,
    summary="Validate Invitation Token",
    responses={410: {"description": "Token not found, expired or already used"}},
)
@rate_limit(limit=RATE_LIMIT, window_seconds=RATE_LIMIT_WINDOW)
async def validate_invitation(
    request: Request,
    data: ValidateInvitationRequest,
    db: AsyncSession = Depends(get_db),
) -> ValidateInvitationResponse:
    scope = await service.validate_token(db, data.token)
    return ValidateInvitationResponse(
        school_id=scope.school_id,
        classroom_id=scope.classroom_id,
        intended_role=scope.intended_role,
        expires_at=scope.expires_at,
        school_name=scope.school_name,
        classroom_name=scope.classroom_name,
    )


@router.post(
    "/consume",
    response_model=ConsumeInvitationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Sign Up With Invitation",
    responses={
        400: {"description": "Unsupported role"},
        409: {"description": "Account could not be created (e.g. duplicate email)"},
        410: {"description": "Token not found, expired or already used"},
    },
)
@rate_limit(limit=RATE_LIMIT, window_seconds=RATE_LIMIT_WINDOW)
async def consume_invitation(
    request: Request,
    data: ConsumeInvitationRequest,
    db: AsyncSession = Depends(get_db),
    store: CredentialStore = Depends(get_credential_store),
) -> ConsumeInvitationResponse:
    """
    Create a teacher or parent account from an invitation token.

    The account gets the role, school and classroom of the token. A warning
    is returned when the account was created but the token could not be
    marked as used.
    """
    result = await onboarding.consume_invitation(
        db,
        store,
        token=data.token,
        email=data.email,
        password=data.password,
        full_name=data.full_name,
        requested_role=data.role,
    )
    return ConsumeInvitationResponse(
        user=UserResponse.model_validate(result.user),
        warning=result.warning,
    )
