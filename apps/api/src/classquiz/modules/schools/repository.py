"""
School Repository

Database operations for schools and their classrooms.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from classquiz.modules.schools.models import Classroom, GradeLevel, School

logger = logging.getLogger(__name__)


class SchoolRepository:
    """Repository for school database operations."""

    @staticmethod
    async def create(db: AsyncSession, *, name: str, created_by: UUID) -> School:
        """
        Create a new school record.

        Args:
            db: Database session
            name: School name
            created_by: ID of the director creating the school

        Returns:
            Created School instance
        """
        school = School(name=name, created_by=created_by)

        db.add(school)
        await db.flush()
        await db.refresh(school)

        logger.info(f"Created school: {school.id} - {school.name}")
        return school

    @staticmethod
    async def get_by_id(db: AsyncSession, school_id: UUID) -> School | None:
        return await db.get(School, school_id)

    @staticmethod
    async def get_by_creator(db: AsyncSession, created_by: UUID) -> School | None:
        result = await db.execute(select(School).where(School.created_by == created_by))
        return result.scalars().first()

    @staticmethod
    async def delete(db: AsyncSession, school_id: UUID) -> None:
        await db.execute(delete(School).where(School.id == school_id))
        await db.flush()
        logger.info(f"Deleted school: {school_id}")


class ClassroomRepository:
    """Repository for classroom database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        school_id: UUID,
        name: str,
        grade: GradeLevel,
    ) -> Classroom:
        classroom = Classroom(school_id=school_id, name=name, grade=grade)

        db.add(classroom)
        await db.flush()
        await db.refresh(classroom)

        logger.info(f"Created classroom: {classroom.id} - {classroom.name} in school {school_id}")
        return classroom

    @staticmethod
    async def get_by_id(db: AsyncSession, classroom_id: UUID) -> Classroom | None:
        return await db.get(Classroom, classroom_id)

    @staticmethod
    async def list_by_school(db: AsyncSession, school_id: UUID) -> list[Classroom]:
        result = await db.execute(
            select(Classroom).where(Classroom.school_id == school_id).order_by(Classroom.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def update(db: AsyncSession, classroom: Classroom, **fields: Any) -> Classroom:
        for key, value in fields.items():
            setattr(classroom, key, value)

        await db.flush()
        await db.refresh(classroom)

        logger.info(f"Updated classroom {classroom.id}: {sorted(fields)}")
        return classroom
