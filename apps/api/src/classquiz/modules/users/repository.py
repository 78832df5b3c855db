"""
User Repository

Database operations for user profiles. Methods flush but never commit;
the calling service owns the transaction.
"""

import logging
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from classquiz.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user profile database operations."""

    @staticmethod
    async def upsert(
        db: AsyncSession,
        *,
        user_id: UUID,
        role: UserRole,
        email: str,
        full_name: str,
        school_id: UUID | None = None,
        classroom_id: UUID | None = None,
    ) -> User:
        """
        Create or overwrite the profile row for an identity.

        Args:
            db: Database session
            user_id: Identity ID (profile primary key)
            role: User's role
            email: User's email address
            full_name: Display name
            school_id: School ID (None only for a director without a school)
            classroom_id: Classroom ID (teachers and parents)

        Returns:
            The persisted User
        """
        user = await db.get(User, user_id)
        if user is None:
            user = User(id=user_id)
            db.add(user)

        user.role = role
        user.email = email
        user.full_name = full_name
        user.school_id = school_id
        user.classroom_id = classroom_id

        await db.flush()
        await db.refresh(user)

        logger.info(f"Upserted user profile: {user.id} ({user.role.value})")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: UUID) -> User | None:
        return await db.get(User, user_id)

    @staticmethod
    async def list_by_school(
        db: AsyncSession,
        school_id: UUID,
        role: UserRole | None = None,
    ) -> list[User]:
        """List the users of a school, optionally filtered by role, newest first."""
        stmt = select(User).where(User.school_id == school_id)
        if role is not None:
            stmt = stmt.where(User.role == role)
        result = await db.execute(stmt.order_by(User.created_at.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def count_by_role(db: AsyncSession, school_id: UUID) -> dict[UserRole, int]:
        """Number of users per role in a school. Roles with no users are absent."""
        result = await db.execute(
            select(User.role, func.count(User.id))
            .where(User.school_id == school_id)
            .group_by(User.role)
        )
        return {role: count for role, count in result.all()}

    @staticmethod
    async def get_teacher_for_classroom(db: AsyncSession, classroom_id: UUID) -> User | None:
        result = await db.execute(
            select(User)
            .where(User.classroom_id == classroom_id, User.role == UserRole.TEACHER)
            .order_by(User.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def set_school(db: AsyncSession, user_id: UUID, school_id: UUID | None) -> User | None:
        """Attach a user to a school. Returns None if the user does not exist."""
        user = await db.get(User, user_id)
        if user is None:
            return None

        user.school_id = school_id
        await db.flush()
        await db.refresh(user)

        logger.info(f"Set school {school_id} on user {user_id}")
        return user

    @staticmethod
    async def list_by_classroom(
        db: AsyncSession,
        classroom_id: UUID,
        role: UserRole | None = None,
    ) -> list[User]:
        """List the users attached to a classroom, newest first."""
        stmt = select(User).where(User.classroom_id == classroom_id)
        if role is not None:
            stmt = stmt.where(User.role == role)
        result = await db.execute(stmt.order_by(User.created_at.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def delete(db: AsyncSession, user_id: UUID) -> bool:
        """Delete a profile row. Returns False if it does not exist."""
        result = await db.execute(delete(User).where(User.id == user_id))
        await db.flush()
        return result.rowcount > 0
