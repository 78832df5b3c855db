"""User schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from classquiz.modules.users.models import UserRole


class UserResponse(BaseModel):
    """User profile as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    full_name: str
    role: UserRole
    school_id: UUID | None
    classroom_id: UUID | None
    created_at: datetime


class UserListResponse(BaseModel):
    users: list[UserResponse]
    total: int
