"""
User Models

Profile rows for directors, teachers and parents. A profile shares its id
with the credential-store identity that authenticates the same person.
"""

import uuid
from enum import Enum

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from classquiz.core.database import Base
from classquiz.modules.schools.models import Classroom, School
from classquiz.modules.shared import TimestampMixin


class UserRole(str, Enum):
    """User roles in the system."""

    DIRECTOR = "director"
    TEACHER = "teacher"
    PARENT = "parent"


class User(TimestampMixin, Base):
    """
    User profile.

    Multi-tenant: school_id is NULL only for a director who signed up and
    has not created a school yet. Teachers and parents always carry the
    school and classroom of the invitation that provisioned them.
    """

    __tablename__ = "users"

    # Same value as the identity id; never generated here
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)

    role: Mapped[UserRole] = mapped_column(
        SAEnum(UserRole, name="user_role"),
        nullable=False,
    )

    # ON DELETE SET NULL: If school is deleted, users remain but lose school association
    school_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("schools.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    classroom_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("classrooms.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)

    school: Mapped[School | None] = relationship(School, lazy="selectin")
    classroom: Mapped[Classroom | None] = relationship(Classroom, lazy="selectin")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role.value})>"
