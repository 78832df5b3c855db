"""
Schools Service Layer

School creation by a newly signed-up director, and classroom management.

Creating a school touches both stores, so it runs as a saga:

1. create_school      - insert the school row   (undo: delete the school)
2. assign_claims      - stamp school_id on the director's claims
                        (undo: restore the previous claims)
3. attach_profile     - set school_id on the director's profile
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from classquiz.core.auth import Claims
from classquiz.core.exceptions import (
    ClaimAssignmentFailedError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ProfilePersistenceFailedError,
    UnexpectedError,
    ValidationFailedError,
)
from classquiz.core.saga import Saga
from classquiz.modules.identity.store import CredentialStore, IdentityClaims
from classquiz.modules.schools.models import Classroom, GradeLevel, School
from classquiz.modules.schools.repository import ClassroomRepository, SchoolRepository
from classquiz.modules.users.models import User, UserRole
from classquiz.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


async def create_school_for_director(
    db: AsyncSession,
    store: CredentialStore,
    claims: Claims,
    name: str,
) -> School:
    """
    Create the director's school and attach it to their claims and profile.

    Raises:
        ConflictError: The director already has a school
        ClaimAssignmentFailedError: Claims could not be updated (school removed)
        ProfilePersistenceFailedError: Profile could not be updated (school
            removed, claims restored)
    """
    if claims.school_id is not None:
        raise ConflictError("You have already created a school.")

    existing = await SchoolRepository.get_by_creator(db, claims.user_id)
    if existing is not None:
        raise ConflictError("You have already created a school.")

    previous_claims = await store.get_claims(claims.user_id)

    async def create_school(_results: dict[str, Any]) -> School:
        try:
            school = await SchoolRepository.create(db, name=name.strip(), created_by=claims.user_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return school

    async def delete_school(school: School) -> None:
        await SchoolRepository.delete(db, school.id)
        await db.commit()

    async def assign_claims(results: dict[str, Any]) -> IdentityClaims:
        new_claims = IdentityClaims(role=UserRole.DIRECTOR, school_id=results["create_school"].id)
        await store.set_claims(claims.user_id, new_claims)
        return new_claims

    async def restore_claims(_new_claims: IdentityClaims) -> None:
        await store.set_claims(
            claims.user_id,
            previous_claims or IdentityClaims(role=UserRole.DIRECTOR),
        )

    async def attach_profile(results: dict[str, Any]) -> None:
        try:
            user = await UserRepository.set_school(
                db, claims.user_id, results["create_school"].id
            )
            if user is None:
                raise NotFoundError("User", claims.user_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    saga = (
        Saga("create_school")
        .add_step(
            "create_school",
            action=create_school,
            compensation=delete_school,
            on_error=lambda _exc: UnexpectedError("Failed to create school."),
        )
        .add_step(
            "assign_claims",
            action=assign_claims,
            compensation=restore_claims,
            on_error=lambda _exc: ClaimAssignmentFailedError(),
        )
        .add_step(
            "attach_profile",
            action=attach_profile,
            on_error=lambda _exc: ProfilePersistenceFailedError(),
        )
    )

    results = await saga.run()
    school = results["create_school"]

    logger.info(f"Director {claims.user_id} created school {school.id}")
    return school


async def create_classroom(
    db: AsyncSession,
    claims: Claims,
    *,
    name: str,
    grade: GradeLevel,
) -> Classroom:
    if claims.school_id is None:
        raise ValidationFailedError("Create your school before adding classrooms.")

    classroom = await ClassroomRepository.create(
        db, school_id=claims.school_id, name=name.strip(), grade=grade
    )
    await db.commit()
    return classroom


async def list_classrooms(db: AsyncSession, claims: Claims) -> list[Classroom]:
    """Directors see every classroom of their school, teachers only their own."""
    if claims.school_id is None:
        return []

    if claims.role == UserRole.TEACHER:
        if claims.classroom_id is None:
            return []
        classroom = await ClassroomRepository.get_by_id(db, claims.classroom_id)
        return [classroom] if classroom is not None else []

    return await ClassroomRepository.list_by_school(db, claims.school_id)



async def update_classroom(
    db: AsyncSession,
    claims: Claims,
    classroom_id: UUID,
    *,
    name: str | None = None,
    grade: GradeLevel | None = None,
) -> Classroom:
    """Rename a classroom of the director's school or change its grade."""
    classroom = await ClassroomRepository.get_by_id(db, classroom_id)
    if classroom is None or classroom.school_id != claims.school_id:
        raise NotFoundError("Classroom", classroom_id)

    fields: dict[str, Any] = {}
    if name is not None:
        fields["name"] = name.strip()
    if grade is not None:
        fields["grade"] = grade
    if not fields:
        return classroom

    classroom = await ClassroomRepository.update(db, classroom, **fields)
    await db.commit()
    return classroom


async def list_classroom_parents(
    db: AsyncSession,
    claims: Claims,
    classroom_id: UUID,
) -> list[User]:
    """
    List the parents (one per pupil) who joined a classroom.

    Teachers may only list their own classroom, directors any classroom
    of their school.
    """
    if claims.role == UserRole.TEACHER:
        if claims.classroom_id != classroom_id:
            raise ForbiddenError("You can only list the pupils of your own classroom.")
    else:
        classroom = await ClassroomRepository.get_by_id(db, classroom_id)
        if classroom is None or classroom.school_id != claims.school_id:
            raise NotFoundError("Classroom", classroom_id)

    return await UserRepository.list_by_classroom(db, classroom_id, UserRole.PARENT)
