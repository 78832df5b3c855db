"""
Onboarding

Provisions accounts from invitation tokens. The credential store and the
relational store fail independently, so provisioning runs as a saga:

1. create_identity   - pre-confirmed identity      (undo: delete identity)
2. assign_claims     - role/school/classroom claims
3. persist_profile   - upsert the users row          (undo: delete profile)
4. consume_token     - stamp used_at on a single-use token

A failure at step 2 or 3 deletes the identity from step 1 before the error
surfaces, so no identity survives without a profile. If another onboarding
consumed the same single-use token first, step 4 unwinds the whole account
and the caller gets TokenExpiredOrUsedError. If the token cannot be stamped
for any other reason the account is kept and the caller gets a warning.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from classquiz.core.exceptions import (
    ClaimAssignmentFailedError,
    IdentityCreationFailedError,
    ProfilePersistenceFailedError,
    TokenExpiredOrUsedError,
    UnsupportedRoleError,
)
from classquiz.core.saga import Saga
from classquiz.modules.identity.store import (
    CredentialStore,
    DuplicateIdentityError,
    IdentityClaims,
)
from classquiz.modules.invitations import service
from classquiz.modules.users.models import User, UserRole
from classquiz.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

INVITABLE_ROLES = {UserRole.TEACHER, UserRole.PARENT}

MARK_USED_WARNING = "User created but failed to mark invite as used"


@dataclass
class OnboardingResult:
    user: User
    warning: str | None = None


def _identity_error(exc: Exception) -> Exception:
    if isinstance(exc, DuplicateIdentityError):
        return IdentityCreationFailedError("An account already exists for this email.")
    return IdentityCreationFailedError()


def _account_saga(
    db: AsyncSession,
    store: CredentialStore,
    *,
    saga_name: str,
    email: str,
    password: str,
    full_name: str,
    claims: IdentityClaims,
) -> Saga:
    """Create identity, claims and profile together, or none of them."""

    async def create_identity(_results: dict[str, Any]):
        return await store.create_identity(
            email,
            password,
            preconfirmed=True,
            user_metadata={"full_name": full_name},
        )

    async def delete_identity(identity_id) -> None:
        await store.delete_identity(identity_id)

    async def assign_claims(results: dict[str, Any]) -> None:
        await store.set_claims(results["create_identity"], claims)

    async def persist_profile(results: dict[str, Any]) -> User:
        try:
            user = await UserRepository.upsert(
                db,
                user_id=results["create_identity"],
                role=claims.role,
                email=email.strip().lower(),
                full_name=full_name,
                school_id=claims.school_id,
                classroom_id=claims.classroom_id,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return user

    async def delete_profile(user: User) -> None:
        await UserRepository.delete(db, user.id)
        await db.commit()

    return (
        Saga(saga_name)
        .add_step(
            "create_identity",
            action=create_identity,
            compensation=delete_identity,
            on_error=_identity_error,
        )
        .add_step(
            "assign_claims",
            action=assign_claims,
            on_error=lambda _exc: ClaimAssignmentFailedError(),
        )
        .add_step(
            "persist_profile",
            action=persist_profile,
            compensation=delete_profile,
            on_error=lambda _exc: ProfilePersistenceFailedError(),
        )
    )


async def consume_invitation(
    db: AsyncSession,
    store: CredentialStore,
    *,
    token: str,
    email: str,
    password: str,
    full_name: str,
    requested_role: UserRole | str,
    now: datetime | None = None,
) -> OnboardingResult:
    """
    Provision a teacher or parent account from an invitation token.

    Role, school and classroom always come from the token. requested_role
    is only checked for being a role this flow supports.

    Raises:
        InvalidInvitationError: Token not found, expired or used
        UnsupportedRoleError: requested_role is not TEACHER or PARENT
        IdentityCreationFailedError: e.g. the email is already registered
        ClaimAssignmentFailedError: Claims could not be stamped (identity removed)
        ProfilePersistenceFailedError: Profile could not be saved (identity removed)
        TokenExpiredOrUsedError: A concurrent onboarding consumed the single-use
            token first (identity and profile removed)
    """
    scope = await service.validate_token(db, token, now)

    try:
        role = UserRole(requested_role.lower())
    except ValueError as e:
        raise UnsupportedRoleError(requested_role) from e
    if role not in INVITABLE_ROLES:
        raise UnsupportedRoleError(role.value)

    if role != scope.intended_role:
        logger.warning(
            f"Invitation {scope.invitation_id} requested as {role.value}, "
            f"provisioning as {scope.intended_role.value}"
        )

    async def consume_token(_results: dict[str, Any]) -> str | None:
        try:
            consumed = await service.mark_used(db, scope, now)
        except Exception as e:
            await db.rollback()
            logger.warning(f"Failed to mark invitation {scope.invitation_id} as used: {e}")
            return MARK_USED_WARNING
        if not consumed:
            raise TokenExpiredOrUsedError()
        return None

    saga = _account_saga(
        db,
        store,
        saga_name="consume_invitation",
        email=email,
        password=password,
        full_name=full_name,
        claims=IdentityClaims(
            role=scope.intended_role,
            school_id=scope.school_id,
            classroom_id=scope.classroom_id,
        ),
    ).add_step(
        "consume_token",
        action=consume_token,
        on_error=lambda _exc: TokenExpiredOrUsedError(),
    )

    results = await saga.run()
    user = results["persist_profile"]
    warning = results["consume_token"]

    logger.info(
        f"Onboarded user {user.id} as {scope.intended_role.value} "
        f"into classroom {scope.classroom_id}"
    )
    return OnboardingResult(user=user, warning=warning)


async def signup_director(
    db: AsyncSession,
    store: CredentialStore,
    *,
    email: str,
    password: str,
    full_name: str,
) -> User:
    """
    Provision a director account with no school yet.

    The school is attached afterwards by create_school_for_director.
    """
    saga = _account_saga(
        db,
        store,
        saga_name="signup_director",
        email=email,
        password=password,
        full_name=full_name,
        claims=IdentityClaims(role=UserRole.DIRECTOR),
    )
    user = (await saga.run())["persist_profile"]

    logger.info(f"Director signed up: {user.id}")
    return user
