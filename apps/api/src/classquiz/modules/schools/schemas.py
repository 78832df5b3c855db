"""School and classroom schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from classquiz.modules.schools.models import GradeLevel


class SchoolCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("School name cannot be blank")
        return value


class SchoolResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    created_by: UUID | None
    created_at: datetime


class SchoolCreateResponse(BaseModel):
    school: SchoolResponse
    # Claims changed: the client must refresh its access token
    need_refresh: bool = True


class ClassroomCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    grade: GradeLevel


class ClassroomUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=1, max_length=100)
    grade: GradeLevel | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("Classroom name cannot be blank")
        return value


class ClassroomResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    school_id: UUID
    name: str
    grade: GradeLevel
    created_at: datetime


class ClassroomListResponse(BaseModel):
    classrooms: list[ClassroomResponse]
    total: int
