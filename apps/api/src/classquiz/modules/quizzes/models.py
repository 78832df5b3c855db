"""
Quiz Models

Quizzes belong to a classroom. A published quiz is visible to the parents
of that classroom for a fixed window, after which the sweep job moves it
back to draft.
"""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text, Uuid, func
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from classquiz.core.database import Base
from classquiz.modules.schools.models import GradeLevel
from classquiz.modules.shared import BaseModel


class Quiz(BaseModel):
    """
    Quiz owned by a teacher (or director) for one classroom.

    Publication invariant:
        is_published  => published_at and unpublish_date are set and
                         unpublish_date == published_at + 7 days
        not published => both are NULL
    """

    __tablename__ = "quizzes"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    level: Mapped[GradeLevel] = mapped_column(
        SAEnum(GradeLevel, name="grade_level", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )

    # ON DELETE SET NULL: quizzes outlive the account that wrote them
    owner_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    classroom_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("classrooms.id", ondelete="CASCADE"),
        nullable=False,
    )
    school_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
    )

    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    unpublish_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    items: Mapped[list["QuizItem"]] = relationship(
        "QuizItem",
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="QuizItem.order_index",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_quizzes_classroom_id", "classroom_id"),
        Index("ix_quizzes_school_id", "school_id"),
        # Sweep lookup
        Index("ix_quizzes_published_unpublish_date", "is_published", "unpublish_date"),
    )

    def __repr__(self) -> str:
        return f"<Quiz(id={self.id}, title={self.title}, published={self.is_published})>"


class QuizItem(BaseModel):
    """
    One multiple-choice question.

    choices is a list of {"id": "A", "text": "..."}; answer_keys lists the
    ids of the correct choices.
    """

    __tablename__ = "quiz_items"

    quiz_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("quizzes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    choices: Mapped[list[dict]] = mapped_column(JSON, nullable=False)
    answer_keys: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    quiz: Mapped[Quiz] = relationship(Quiz, back_populates="items")

    def __repr__(self) -> str:
        return f"<QuizItem(id={self.id}, quiz_id={self.quiz_id}, order={self.order_index})>"


class Submission(Base):
    """A parent's answers to a quiz, scored on submission."""

    __tablename__ = "submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    quiz_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("quizzes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    parent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    school_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    classroom_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    # {item_id: [choice ids]}
    answers: Mapped[dict] = mapped_column(JSON, nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    quiz_duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Submission(id={self.id}, quiz_id={self.quiz_id}, score={self.score})>"
