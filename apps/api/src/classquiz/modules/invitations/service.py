"""
Invitations Service Layer

Token issuer for classroom-scoped invitations:

1. Parent invitations:
   - One reusable token per classroom, shared by every parent of the class
   - Issued idempotently: the live token is returned when one exists
   - Valid for PARENT_INVITATION_VALIDITY_DAYS (one year by default)

2. Teacher invitations:
   - Single-use, created by the school's director
   - Expiry chosen by the caller (TEACHER_INVITATION_VALIDITY_DAYS by default)

3. Validation:
   - A token is usable while now < expires_at and, unless it is reusable,
     it has not been used yet

Security considerations:
- Tokens use cryptographically secure random generation (secrets.token_urlsafe)
- Tokens are stored in plain text because the parent link must be shown
  again every time a teacher opens it
- No token values are logged
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from classquiz.core.config import settings
from classquiz.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    TokenExpiredOrUsedError,
    TokenNotFoundError,
    UnsupportedRoleError,
    ValidationFailedError,
)
from classquiz.modules.invitations import repository
from classquiz.modules.invitations.models import InvitationToken
from classquiz.modules.schools.repository import ClassroomRepository
from classquiz.modules.shared import as_utc
from classquiz.modules.users.models import UserRole

logger = logging.getLogger(__name__)

TOKEN_LENGTH = 32  # 256 bits of entropy when using token_urlsafe

SINGLE_USE_ROLES = {UserRole.TEACHER}


@dataclass(frozen=True)
class InvitationScope:
    """What a valid token grants: a role within a school and classroom."""

    invitation_id: UUID
    school_id: UUID
    classroom_id: UUID | None
    intended_role: UserRole
    is_reusable: bool
    expires_at: datetime
    school_name: str | None = None
    classroom_name: str | None = None


def generate_token() -> str:
    """Generate a URL-safe random invitation token."""
    return secrets.token_urlsafe(TOKEN_LENGTH)


def _scope_of(invitation: InvitationToken) -> InvitationScope:
    return InvitationScope(
        invitation_id=invitation.id,
        school_id=invitation.school_id,
        classroom_id=invitation.classroom_id,
        intended_role=invitation.intended_role,
        is_reusable=invitation.is_reusable,
        expires_at=as_utc(invitation.expires_at),
        school_name=invitation.school.name if invitation.school else None,
        classroom_name=invitation.classroom.name if invitation.classroom else None,
    )


async def issue_or_reuse_parent_invitation(
    db: AsyncSession,
    classroom_id: UUID,
    school_id: UUID,
    *,
    created_by: UUID | None = None,
    now: datetime | None = None,
) -> tuple[InvitationToken, bool]:
    """
    Return the classroom's live parent invitation, creating one if needed.

    Concurrent callers are serialized by the unique index on reusable
    (classroom_id, intended_role) rows: the losing insert re-reads and
    returns the winner's token. An expired row is rotated in place.

    Args:
        db: Database session
        classroom_id: Classroom the parents will join
        school_id: School owning the classroom
        created_by: Teacher issuing the link
        now: Reference time (defaults to the current UTC time)

    Returns:
        Tuple of (invitation, created) where created is False when an
        existing live token was returned
    """
    now = now or datetime.now(UTC)

    existing = await repository.get_reusable_for_classroom(db, classroom_id, UserRole.PARENT)
    if existing is not None and existing.is_usable(now):
        return existing, False

    expires_at = now + timedelta(days=settings.parent_invitation_validity_days)

    if existing is not None:
        rotated = await repository.rotate_expired(
            db,
            existing.id,
            now=now,
            token=generate_token(),
            expires_at=expires_at,
        )
        await db.commit()
        invitation = await repository.get_reusable_for_classroom(
            db, classroom_id, UserRole.PARENT
        )
        if invitation is None or not invitation.is_usable(now):
            raise ConflictError("The invitation link changed concurrently. Please retry.")
        if rotated:
            logger.info(f"Rotated expired parent invitation for classroom {classroom_id}")
        return invitation, rotated

    try:
        invitation = await repository.create(
            db,
            token=generate_token(),
            school_id=school_id,
            classroom_id=classroom_id,
            intended_role=UserRole.PARENT,
            expires_at=expires_at,
            is_reusable=True,
            created_by=created_by,
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info(f"Parent invitation for classroom {classroom_id} created concurrently")
        winner = await repository.get_reusable_for_classroom(db, classroom_id, UserRole.PARENT)
        if winner is None or not winner.is_usable(now):
            raise ConflictError("The invitation link changed concurrently. Please retry.")
        return winner, False

    logger.info(f"Created parent invitation {invitation.id} for classroom {classroom_id}")
    return invitation, True


async def create_single_use_invitation(
    db: AsyncSession,
    *,
    school_id: UUID,
    classroom_id: UUID | None,
    intended_role: UserRole,
    created_by: UUID,
    expires_at: datetime | None = None,
    now: datetime | None = None,
) -> InvitationToken:
    """
    Create a single-use onboarding token.

    Raises:
        UnsupportedRoleError: If intended_role is not TEACHER
        ValidationFailedError: If expires_at is not in the future
        NotFoundError: If the classroom does not exist
        ForbiddenError: If the classroom belongs to another school
    """
    if intended_role not in SINGLE_USE_ROLES:
        raise UnsupportedRoleError(intended_role.value)

    now = now or datetime.now(UTC)
    if expires_at is None:
        expires_at = now + timedelta(days=settings.teacher_invitation_validity_days)
    expires_at = as_utc(expires_at)

    if expires_at <= now:
        raise ValidationFailedError("Invitation expiry must be in the future.")

    if classroom_id is not None:
        classroom = await ClassroomRepository.get_by_id(db, classroom_id)
        if classroom is None:
            raise NotFoundError("Classroom", classroom_id)
        if classroom.school_id != school_id:
            logger.warning(
                f"User {created_by} tried to invite into classroom {classroom_id} "
                f"outside school {school_id}"
            )
            raise ForbiddenError("This classroom does not belong to your school.")

    invitation = await repository.create(
        db,
        token=generate_token(),
        school_id=school_id,
        classroom_id=classroom_id,
        intended_role=intended_role,
        expires_at=expires_at,
        is_reusable=False,
        created_by=created_by,
    )
    await db.commit()

    logger.info(
        f"Created {intended_role.value} invitation {invitation.id} for school {school_id}"
    )
    return invitation


async def validate_token(
    db: AsyncSession,
    token: str,
    now: datetime | None = None,
) -> InvitationScope:
    """
    Check that a token can be used right now.

    Raises:
        TokenNotFoundError: No token matches
        TokenExpiredOrUsedError: Expired, or a single-use token already used
    """
    now = now or datetime.now(UTC)

    invitation = await repository.get_by_token(db, token)
    if invitation is None:
        raise TokenNotFoundError()

    if not invitation.is_usable(now):
        logger.info(f"Rejected expired or used invitation {invitation.id}")
        raise TokenExpiredOrUsedError()

    return _scope_of(invitation)


async def mark_used(
    db: AsyncSession,
    scope: InvitationScope,
    now: datetime | None = None,
) -> bool:
    """
    Consume a single-use token. Reusable tokens are left untouched.

    Returns:
        False if the single-use token had already been consumed, which means
        another caller won the race for it; True otherwise
    """
    if scope.is_reusable:
        return True

    consumed = await repository.mark_used(db, scope.invitation_id, now or datetime.now(UTC))
    await db.commit()
    if not consumed:
        logger.warning(f"Invitation {scope.invitation_id} was already consumed")
    return consumed


async def list_school_invitations(
    db: AsyncSession,
    school_id: UUID,
    now: datetime | None = None,
) -> list[InvitationToken]:
    """List a school's live invitation tokens, newest first."""
    return await repository.list_live_by_school(db, school_id, now or datetime.now(UTC))
