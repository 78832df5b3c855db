"""
Invitation Models

Invitation tokens scope a new account to a school, a classroom and a role.
Parent tokens are reusable and shared per classroom; teacher tokens are
single-use.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Uuid, text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from classquiz.modules.schools.models import Classroom, School
from classquiz.modules.shared import BaseModel, as_utc
from classquiz.modules.users.models import UserRole


class InvitationToken(BaseModel):
    """
    Invitation token.

    Usable while now < expires_at and, for single-use tokens, used_at is
    unset. Reusable tokens never get used_at stamped.
    """

    __tablename__ = "invitation_links"

    token: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)

    school_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    classroom_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("classrooms.id", ondelete="CASCADE"),
        nullable=True,
    )

    intended_role: Mapped[UserRole] = mapped_column(
        SAEnum(UserRole, name="user_role"),
        nullable=False,
    )
    is_reusable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # ON DELETE SET NULL: token stays valid if its creator is removed
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    school: Mapped[School] = relationship(School, lazy="selectin")
    classroom: Mapped[Classroom | None] = relationship(Classroom, lazy="selectin")

    __table_args__ = (
        # At most one reusable token per classroom and role
        Index(
            "uq_invitation_links_reusable_classroom_role",
            "classroom_id",
            "intended_role",
            unique=True,
            postgresql_where=text("is_reusable"),
            sqlite_where=text("is_reusable"),
        ),
    )

    def is_usable(self, now: datetime) -> bool:
        if now >= as_utc(self.expires_at):
            return False
        return self.used_at is None or self.is_reusable

    def __repr__(self) -> str:
        return (
            f"<InvitationToken(id={self.id}, role={self.intended_role.value}, "
            f"classroom_id={self.classroom_id}, reusable={self.is_reusable})>"
        )
