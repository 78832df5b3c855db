"""
Quizzes Repository

Database operations for quizzes, quiz items and submissions.

Design Principles:
- Only database operations, no business logic
- Functions flush but never commit; services own the transaction
- Publication columns are only written through whole-row UPDATE statements
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from classquiz.modules.schools.models import GradeLevel
from classquiz.modules.users.models import User

from .models import Quiz, QuizItem, Submission


async def create_quiz(
    db: AsyncSession,
    *,
    title: str,
    description: str | None,
    level: GradeLevel,
    owner_id: UUID,
    classroom_id: UUID,
    school_id: UUID,
    items: list[dict[str, Any]],
) -> Quiz:
    """Create an unpublished quiz with its items in order."""
    quiz = Quiz(
        title=title,
        description=description,
        level=level,
        owner_id=owner_id,
        classroom_id=classroom_id,
        school_id=school_id,
        is_published=False,
        items=[
            QuizItem(
                question=item["question"],
                choices=item["choices"],
                answer_keys=item["answer_keys"],
                explanation=item.get("explanation"),
                order_index=index,
            )
            for index, item in enumerate(items)
        ],
    )

    db.add(quiz)
    await db.flush()
    await db.refresh(quiz)

    return quiz


async def get_by_id(db: AsyncSession, quiz_id: UUID) -> Quiz | None:
    result = await db.execute(
        select(Quiz).where(Quiz.id == quiz_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_by_classroom(
    db: AsyncSession,
    classroom_id: UUID,
    published_only: bool = False,
) -> list[Quiz]:
    stmt = select(Quiz).where(Quiz.classroom_id == classroom_id)
    if published_only:
        stmt = stmt.where(Quiz.is_published == True)  # noqa: E712
    result = await db.execute(stmt.order_by(Quiz.created_at.desc()))
    return list(result.scalars().all())


async def list_by_school(db: AsyncSession, school_id: UUID) -> list[Quiz]:
    result = await db.execute(
        select(Quiz).where(Quiz.school_id == school_id).order_by(Quiz.created_at.desc())
    )
    return list(result.scalars().all())


async def delete_quiz(db: AsyncSession, quiz_id: UUID) -> None:
    """Delete a quiz with its items and submissions."""
    await db.execute(delete(Submission).where(Submission.quiz_id == quiz_id))
    await db.execute(delete(QuizItem).where(QuizItem.quiz_id == quiz_id))
    await db.execute(delete(Quiz).where(Quiz.id == quiz_id))
    await db.flush()


async def update_publication(
    db: AsyncSession,
    quiz_id: UUID,
    fields: dict[str, Any],
) -> bool:
    """
    Write the publication columns of one quiz in a single statement.

    Returns:
        True if the quiz exists
    """
    result = await db.execute(
        update(Quiz)
        .where(Quiz.id == quiz_id)
        .values(**fields)
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    return result.rowcount > 0


async def get_due_for_unpublish(db: AsyncSession, now: datetime) -> list[Quiz]:
    """Published quizzes whose unpublish_date is set and <= now."""
    result = await db.execute(
        select(Quiz).where(
            Quiz.is_published == True,  # noqa: E712
            Quiz.unpublish_date.is_not(None),
            Quiz.unpublish_date <= now,
        )
    )
    return list(result.scalars().all())


async def bulk_unpublish(db: AsyncSession, quiz_ids: list[UUID], now: datetime) -> int:
    """
    Move the given quizzes back to draft in one statement.

    Rows that no longer match the expiry predicate are skipped.

    Returns:
        Number of rows updated
    """
    result = await db.execute(
        update(Quiz)
        .where(
            Quiz.id.in_(quiz_ids),
            Quiz.is_published == True,  # noqa: E712
            Quiz.unpublish_date <= now,
        )
        .values(
            is_published=False,
            published_at=None,
            unpublish_date=None,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    return result.rowcount


async def create_submission(
    db: AsyncSession,
    *,
    quiz_id: UUID,
    parent_id: UUID,
    school_id: UUID,
    classroom_id: UUID,
    answers: dict[str, list[str]],
    score: int,
    total_questions: int,
    quiz_duration_minutes: int | None = None,
) -> Submission:
    submission = Submission(
        quiz_id=quiz_id,
        parent_id=parent_id,
        school_id=school_id,
        classroom_id=classroom_id,
        answers=answers,
        score=score,
        total_questions=total_questions,
        quiz_duration_minutes=quiz_duration_minutes,
    )

    db.add(submission)
    await db.flush()
    await db.refresh(submission)

    return submission


async def list_submissions(
    db: AsyncSession,
    *,
    parent_id: UUID | None = None,
    classroom_id: UUID | None = None,
    school_id: UUID | None = None,
) -> list[Submission]:
    """List submissions filtered by parent, classroom or school, newest first."""
    stmt = select(Submission)
    if parent_id is not None:
        stmt = stmt.where(Submission.parent_id == parent_id)
    if classroom_id is not None:
        stmt = stmt.where(Submission.classroom_id == classroom_id)
    if school_id is not None:
        stmt = stmt.where(Submission.school_id == school_id)
    result = await db.execute(stmt.order_by(Submission.created_at.desc()))
    return list(result.scalars().all())


async def list_recent_activity(
    db: AsyncSession,
    *,
    classroom_id: UUID | None = None,
    school_id: UUID | None = None,
    limit: int = 10,
) -> list[tuple[Submission, str, str]]:
    """Latest submissions with the parent's name and the quiz title, newest first."""
    stmt = (
        select(Submission, User.full_name, Quiz.title)
        .join(User, User.id == Submission.parent_id)
        .join(Quiz, Quiz.id == Submission.quiz_id)
    )
    if classroom_id is not None:
        stmt = stmt.where(Submission.classroom_id == classroom_id)
    if school_id is not None:
        stmt = stmt.where(Submission.school_id == school_id)
    result = await db.execute(stmt.order_by(Submission.created_at.desc()).limit(limit))
    return [tuple(row) for row in result.all()]
