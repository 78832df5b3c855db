"""
Invitation Schemas

Request and response bodies for invitation issuing, validation and
consumption.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from classquiz.modules.users.models import UserRole
from classquiz.modules.users.schemas import UserResponse


class InvitationCreate(BaseModel):
    """Director request for a single-use teacher invitation."""

    classroom_id: UUID | None = None
    intended_role: UserRole = UserRole.TEACHER
    expires_at: datetime | None = Field(
        default=None,
        description="Defaults to TEACHER_INVITATION_VALIDITY_DAYS from now",
    )


class InvitationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    token: str
    school_id: UUID
    classroom_id: UUID | None
    intended_role: UserRole
    is_reusable: bool
    expires_at: datetime
    used_at: datetime | None
    created_by: UUID | None
    created_at: datetime


class InvitationListResponse(BaseModel):
    items: list[InvitationResponse]
    total: int


class ParentInvitationResponse(BaseModel):
    invitation: InvitationResponse
    created: bool


class ValidateInvitationRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=64)


class ValidateInvitationResponse(BaseModel):
    """Scope granted by a usable token."""

    school_id: UUID
    classroom_id: UUID | None
    intended_role: UserRole
    expires_at: datetime
    school_name: str | None = None
    classroom_name: str | None = None


class ConsumeInvitationRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=64)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    full_name: str = Field(..., min_length=1, max_length=200)
    role: str = Field(..., description="Requested role; the token's role always wins")


class ConsumeInvitationResponse(BaseModel):
    user: UserResponse
    warning: str | None = None
