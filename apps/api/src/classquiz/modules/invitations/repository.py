"""
Invitations Repository

Database operations for invitation tokens. Functions flush but never
commit; the service owns the transaction.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from classquiz.modules.users.models import UserRole

from .models import InvitationToken


async def create(
    db: AsyncSession,
    *,
    token: str,
    school_id: UUID,
    classroom_id: UUID | None,
    intended_role: UserRole,
    expires_at: datetime,
    is_reusable: bool,
    created_by: UUID | None = None,
) -> InvitationToken:
    """Insert a new invitation token."""
    invitation = InvitationToken(
        token=token,
        school_id=school_id,
        classroom_id=classroom_id,
        intended_role=intended_role,
        expires_at=expires_at,
        is_reusable=is_reusable,
        created_by=created_by,
    )

    db.add(invitation)
    await db.flush()
    await db.refresh(invitation)

    return invitation


async def get_by_token(db: AsyncSession, token: str) -> InvitationToken | None:
    result = await db.execute(select(InvitationToken).where(InvitationToken.token == token))
    return result.scalar_one_or_none()


async def get_reusable_for_classroom(
    db: AsyncSession,
    classroom_id: UUID,
    intended_role: UserRole,
) -> InvitationToken | None:
    """Get the reusable token of a classroom for a role, expired or not."""
    result = await db.execute(
        select(InvitationToken)
        .where(
            InvitationToken.classroom_id == classroom_id,
            InvitationToken.intended_role == intended_role,
            InvitationToken.is_reusable == True,  # noqa: E712
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def rotate_expired(
    db: AsyncSession,
    invitation_id: UUID,
    *,
    now: datetime,
    token: str,
    expires_at: datetime,
) -> bool:
    """
    Give an expired token row a new token string and expiry.

    The row is only rewritten while it is still expired, so of two
    concurrent rotations exactly one wins.

    Returns:
        True if this call rotated the row
    """
    result = await db.execute(
        update(InvitationToken)
        .where(
            InvitationToken.id == invitation_id,
            InvitationToken.expires_at <= now,
        )
        .values(token=token, expires_at=expires_at, used_at=None)
    )
    await db.flush()
    return result.rowcount > 0


async def mark_used(db: AsyncSession, invitation_id: UUID, used_at: datetime) -> bool:
    """
    Stamp used_at on a single-use token.

    Returns:
        True if a row was updated, False if it was already used or is reusable
    """
    result = await db.execute(
        update(InvitationToken)
        .where(
            InvitationToken.id == invitation_id,
            InvitationToken.is_reusable == False,  # noqa: E712
            InvitationToken.used_at.is_(None),
        )
        .values(used_at=used_at)
    )
    await db.flush()
    return result.rowcount > 0


async def list_live_by_school(
    db: AsyncSession,
    school_id: UUID,
    now: datetime,
) -> list[InvitationToken]:
    """List a school's non-expired tokens, newest first."""
    result = await db.execute(
        select(InvitationToken)
        .where(
            InvitationToken.school_id == school_id,
            InvitationToken.expires_at > now,
        )
        .order_by(InvitationToken.created_at.desc())
    )
    return list(result.scalars().all())
