"""
Schools Router

Endpoints:
- POST /schools - Director creates their school (once)
- POST /classrooms - Director adds a classroom
- GET /classrooms - Director lists the school's classrooms, teacher their own
- PATCH /classrooms/{id} - Director renames a classroom or changes its grade
- GET /classrooms/{id}/students - Parents who joined a classroom
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from classquiz.core.auth import Claims, require_roles
from classquiz.core.database import get_db
from classquiz.modules.identity.store import CredentialStore, get_credential_store
from classquiz.modules.schools import service
from classquiz.modules.schools.schemas import (
    ClassroomCreate,
    ClassroomListResponse,
    ClassroomResponse,
    ClassroomUpdate,
    SchoolCreate,
    SchoolCreateResponse,
    SchoolResponse,
)
from classquiz.modules.users.models import UserRole
from classquiz.modules.users.schemas import UserListResponse, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()
classrooms_router = APIRouter()


@router.post(
    "",
    response_model=SchoolCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "The director already has a school"}},
)
async def create_school(
    data: SchoolCreate,
    claims: Claims = Depends(require_roles(UserRole.DIRECTOR)),
    db: AsyncSession = Depends(get_db),
    store: CredentialStore = Depends(get_credential_store),
) -> SchoolCreateResponse:
    """
    Create the director's school.

    The new school_id is stamped on the director's claims; the client must
    call /auth/refresh to get an access token that carries it.
    """
    school = await service.create_school_for_director(db, store, claims, data.name)
    return SchoolCreateResponse(school=SchoolResponse.model_validate(school))


@classrooms_router.post("", response_model=ClassroomResponse, status_code=status.HTTP_201_CREATED)
async def create_classroom(
    data: ClassroomCreate,
    claims: Claims = Depends(require_roles(UserRole.DIRECTOR)),
    db: AsyncSession = Depends(get_db),
) -> ClassroomResponse:
    classroom = await service.create_classroom(db, claims, name=data.name, grade=data.grade)
    return ClassroomResponse.model_validate(classroom)


@classrooms_router.get("", response_model=ClassroomListResponse)
async def list_classrooms(
    claims: Claims = Depends(require_roles(UserRole.DIRECTOR, UserRole.TEACHER)),
    db: AsyncSession = Depends(get_db),
) -> ClassroomListResponse:
    classrooms = await service.list_classrooms(db, claims)
    return ClassroomListResponse(
        classrooms=[ClassroomResponse.model_validate(item) for item in classrooms],
        total=len(classrooms),
    )


@classrooms_router.patch(
    "/{classroom_id}",
    response_model=ClassroomResponse,
    responses={404: {"description": "Classroom not found in the director's school"}},
)
async def update_classroom(
    classroom_id: UUID,
    data: ClassroomUpdate,
    claims: Claims = Depends(require_roles(UserRole.DIRECTOR)),
    db: AsyncSession = Depends(get_db),
) -> ClassroomResponse:
    classroom = await service.update_classroom(
        db, claims, classroom_id, name=data.name, grade=data.grade
    )
    return ClassroomResponse.model_validate(classroom)


@classrooms_router.get("/{classroom_id}/students", response_model=UserListResponse)
async def list_classroom_students(
    classroom_id: UUID,
    claims: Claims = Depends(require_roles(UserRole.DIRECTOR, UserRole.TEACHER)),
    db: AsyncSession = Depends(get_db),
) -> UserListResponse:
    """List the parent accounts of a classroom; each one stands for a pupil."""
    parents = await service.list_classroom_parents(db, claims, classroom_id)
    return UserListResponse(
        users=[UserResponse.model_validate(user) for user in parents],
        total=len(parents),
    )
