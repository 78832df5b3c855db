"""Authentication router."""

import logging
import uuid

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from classquiz.core.config import settings
from classquiz.core.database import get_db
from classquiz.core.exceptions import ForbiddenError, UnauthorizedError
from classquiz.core.rate_limit import rate_limit
from classquiz.core.security import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from classquiz.modules.auth.schemas import (
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    SignupDirectorRequest,
)
from classquiz.modules.identity.store import (
    CredentialStore,
    IdentityClaims,
    IdentityNotFoundError,
    get_credential_store,
)
from classquiz.modules.invitations import onboarding
from classquiz.modules.users.repository import UserRepository
from classquiz.modules.users.schemas import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


async def _issue_tokens(
    db: AsyncSession,
    identity_id: uuid.UUID,
    claims: IdentityClaims | None,
    email: str | None = None,
) -> LoginResponse:
    """Build an access token from the identity's current claims."""
    if claims is None:
        logger.warning(f"Token requested for identity without role: {identity_id}")
        raise ForbiddenError("Your account has no role assigned.")

    user = await UserRepository.get_by_id(db, identity_id)

    additional_claims = {
        "email": email or (user.email if user else None),
        "role": claims.role.value,
        "school_id": str(claims.school_id) if claims.school_id else None,
        "classroom_id": str(claims.classroom_id) if claims.classroom_id else None,
        "name": user.full_name if user else None,
    }

    return LoginResponse(
        access_token=create_access_token(
            subject=str(identity_id),
            additional_claims=additional_claims,
        ),
        refresh_token=create_refresh_token(subject=str(identity_id)),
        token_type="bearer",
        user=UserResponse.model_validate(user) if user else None,
    )


@router.post("/login", response_model=LoginResponse)
@rate_limit(
    limit=settings.invitation_rate_limit,
    window_seconds=settings.invitation_rate_limit_window_seconds,
)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
    store: CredentialStore = Depends(get_credential_store),
) -> LoginResponse:
    """
    Authenticate user and return JWT tokens.

    Raises:
        UnauthorizedError: Invalid credentials
        ForbiddenError: Account has no role assigned
    """
    identity = await store.authenticate(credentials.email, credentials.password)
    if identity is None:
        logger.warning("Failed login attempt")
        raise UnauthorizedError("Invalid email or password.")

    claims = IdentityClaims.from_metadata(identity.app_metadata)
    response = await _issue_tokens(db, identity.id, claims, identity.email)

    logger.info(f"User logged in: {identity.id} (role: {claims.role.value})")
    return response


@router.post("/refresh", response_model=LoginResponse)
async def refresh(
    data: RefreshRequest,
    db: AsyncSession = Depends(get_db),
    store: CredentialStore = Depends(get_credential_store),
) -> LoginResponse:
    """
    Re-issue tokens carrying the identity's current claims.

    Called after a change of claims, e.g. once a director created a school.
    """
    payload = decode_token(data.refresh_token)
    if payload is None or payload.get("type") != REFRESH_TOKEN_TYPE:
        raise UnauthorizedError("Invalid or expired refresh token.")

    try:
        identity_id = uuid.UUID(payload["sub"])
        claims = await store.get_claims(identity_id)
    except (KeyError, TypeError, ValueError, IdentityNotFoundError) as e:
        raise UnauthorizedError("Invalid or expired refresh token.") from e

    return await _issue_tokens(db, identity_id, claims)


@router.post(
    "/signup-director",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Account could not be created (e.g. duplicate email)"}},
)
@rate_limit(
    limit=settings.invitation_rate_limit,
    window_seconds=settings.invitation_rate_limit_window_seconds,
)
async def signup_director(
    request: Request,
    data: SignupDirectorRequest,
    db: AsyncSession = Depends(get_db),
    store: CredentialStore = Depends(get_credential_store),
) -> UserResponse:
    """Create a director account. The school is created afterwards via POST /schools."""
    user = await onboarding.signup_director(
        db,
        store,
        email=data.email,
        password=data.password,
        full_name=data.full_name,
    )
    return UserResponse.model_validate(user)
