"""
School Models

Schools are the tenants of the platform; classrooms belong to one school.
"""

import enum
import uuid

from sqlalchemy import Enum, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from classquiz.modules.shared import BaseModel


class GradeLevel(str, enum.Enum):
    """French primary and lower-secondary grade levels."""

    CP = "CP"
    CE1 = "CE1"
    CE2 = "CE2"
    CM1 = "CM1"
    CM2 = "CM2"
    SIXIEME = "6EME"
    CINQUIEME = "5EME"
    QUATRIEME = "4EME"
    TROISIEME = "3EME"


class School(BaseModel):
    """School tenant, created by its director."""

    __tablename__ = "schools"

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    classrooms: Mapped[list["Classroom"]] = relationship(
        "Classroom",
        back_populates="school",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<School(id={self.id}, name={self.name})>"


class Classroom(BaseModel):
    """
    Classroom within a school.

    Teachers are assigned through the classroom_id on their profile, not here.
    """

    __tablename__ = "classrooms"

    school_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    grade: Mapped[GradeLevel] = mapped_column(
        Enum(GradeLevel, name="grade_level", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )

    school: Mapped["School"] = relationship("School", back_populates="classrooms")

    __table_args__ = (Index("ix_classrooms_school_id", "school_id"),)

    def __repr__(self) -> str:
        return f"<Classroom(id={self.id}, name={self.name}, grade={self.grade.value})>"
