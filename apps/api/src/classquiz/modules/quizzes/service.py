"""
Quizzes Service Layer

Quiz authoring, publication, parent access and scoring. Every operation
receives the caller's Claims and checks resource scope here:

- TEACHER: quizzes of their own classroom (delete: only quizzes they own)
- DIRECTOR: quizzes of their school
- PARENT: published quizzes of their child's classroom
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from classquiz.core.auth import Claims
from classquiz.core.exceptions import ForbiddenError, NotFoundError, ValidationFailedError
from classquiz.modules.quizzes import lifecycle, repository
from classquiz.modules.quizzes.models import Quiz, QuizItem, Submission
from classquiz.modules.quizzes.schemas import AvailableQuiz, QuizCreate, SubmissionCreate
from classquiz.modules.schools.repository import ClassroomRepository
from classquiz.modules.users.models import UserRole
from classquiz.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


def _can_manage(claims: Claims, quiz: Quiz) -> bool:
    if claims.role == UserRole.DIRECTOR:
        return quiz.school_id == claims.school_id
    if claims.role == UserRole.TEACHER:
        return quiz.classroom_id == claims.classroom_id
    return False


def _can_take(claims: Claims, quiz: Quiz, now: datetime) -> bool:
    return (
        claims.role == UserRole.PARENT
        and quiz.classroom_id == claims.classroom_id
        and quiz.is_published
        and not lifecycle.is_due_for_unpublish(quiz, now)
    )


async def _get_managed_quiz(db: AsyncSession, claims: Claims, quiz_id: UUID) -> Quiz:
    quiz = await repository.get_by_id(db, quiz_id)
    if quiz is None:
        raise NotFoundError("Quiz", quiz_id)
    if not _can_manage(claims, quiz):
        logger.warning(f"User {claims.user_id} denied access to quiz {quiz_id}")
        raise ForbiddenError("You can only manage quizzes of your own classroom or school.")
    return quiz


def score_answers(items: list[QuizItem], answers: dict[str, list[str]]) -> int:
    """Count the items whose selected choices exactly match the answer keys."""
    return sum(
        1 for item in items if set(answers.get(str(item.id), [])) == set(item.answer_keys)
    )


async def create_quiz(db: AsyncSession, claims: Claims, data: QuizCreate) -> Quiz:
    """
    Create a draft quiz.

    Teachers always write to their own classroom; directors must name a
    classroom of their school.

    Raises:
        ForbiddenError: Classroom outside the caller's scope
        NotFoundError: Classroom does not exist
        ValidationFailedError: No classroom could be determined
    """
    if claims.role == UserRole.TEACHER:
        if data.classroom_id is not None and data.classroom_id != claims.classroom_id:
            raise ForbiddenError("Teachers can only create quizzes for their own classroom.")
        classroom_id = claims.classroom_id
    else:
        classroom_id = data.classroom_id

    if classroom_id is None:
        raise ValidationFailedError("A classroom is required to create a quiz.")

    classroom = await ClassroomRepository.get_by_id(db, classroom_id)
    if classroom is None:
        raise NotFoundError("Classroom", classroom_id)
    if classroom.school_id != claims.school_id:
        raise ForbiddenError("This classroom does not belong to your school.")

    quiz = await repository.create_quiz(
        db,
        title=data.title,
        description=data.description,
        level=data.level or classroom.grade,
        owner_id=claims.user_id,
        classroom_id=classroom.id,
        school_id=classroom.school_id,
        items=[item.model_dump(mode="json") for item in data.items],
    )
    await db.commit()

    logger.info(f"Created quiz {quiz.id} with {len(data.items)} item(s) in classroom {classroom.id}")
    return quiz


async def get_quiz(
    db: AsyncSession,
    claims: Claims,
    quiz_id: UUID,
    now: datetime | None = None,
) -> Quiz:
    """
    Get a quiz with its items.

    Parents only see published quizzes of their classroom; anything else
    is reported as not found.
    """
    now = now or datetime.now(UTC)

    if claims.role != UserRole.PARENT:
        return await _get_managed_quiz(db, claims, quiz_id)

    quiz = await repository.get_by_id(db, quiz_id)
    if quiz is None or not _can_take(claims, quiz, now):
        raise NotFoundError("Quiz", quiz_id)
    return quiz


async def list_quizzes(db: AsyncSession, claims: Claims) -> list[Quiz]:
    if claims.role == UserRole.DIRECTOR:
        if claims.school_id is None:
            return []
        return await repository.list_by_school(db, claims.school_id)

    if claims.classroom_id is None:
        return []
    return await repository.list_by_classroom(db, claims.classroom_id)


async def delete_quiz(db: AsyncSession, claims: Claims, quiz_id: UUID) -> None:
    """
    Delete a quiz with its items and submissions.

    Raises:
        ForbiddenError: Teacher deleting someone else's quiz, or director
            deleting outside their school
    """
    quiz = await repository.get_by_id(db, quiz_id)
    if quiz is None:
        raise NotFoundError("Quiz", quiz_id)

    if claims.role == UserRole.TEACHER and quiz.owner_id != claims.user_id:
        raise ForbiddenError("You can only delete your own quizzes.")
    if claims.role == UserRole.DIRECTOR and quiz.school_id != claims.school_id:
        raise ForbiddenError("You can only delete quizzes from your school.")

    await repository.delete_quiz(db, quiz_id)
    await db.commit()

    logger.info(f"User {claims.user_id} deleted quiz {quiz_id}")


async def publish_quiz(
    db: AsyncSession,
    claims: Claims,
    quiz_id: UUID,
    is_published: bool,
    now: datetime | None = None,
) -> Quiz:
    """Publish (restarting the 7-day window) or unpublish a quiz in scope."""
    await _get_managed_quiz(db, claims, quiz_id)

    quiz = await lifecycle.set_published(db, quiz_id, is_published, now)
    if quiz is None:
        raise NotFoundError("Quiz", quiz_id)
    return quiz


async def list_available_quizzes(
    db: AsyncSession,
    claims: Claims,
    now: datetime | None = None,
) -> list[AvailableQuiz]:
    """
    Published quizzes of the parent's classroom with time left and
    completion status.

    Raises:
        ValidationFailedError: Parent is not assigned to a classroom
    """
    now = now or datetime.now(UTC)

    if claims.classroom_id is None:
        raise ValidationFailedError("Parent is not assigned to a classroom.")

    quizzes = [
        quiz
        for quiz in await repository.list_by_classroom(db, claims.classroom_id, published_only=True)
        if not lifecycle.is_due_for_unpublish(quiz, now)
    ]
    if not quizzes:
        return []

    # Newest first, so the first hit per quiz is the latest submission
    last_submission: dict[UUID, datetime] = {}
    for submission in await repository.list_submissions(db, parent_id=claims.user_id):
        last_submission.setdefault(submission.quiz_id, submission.created_at)

    teacher = await UserRepository.get_teacher_for_classroom(db, claims.classroom_id)

    return [
        AvailableQuiz(
            id=quiz.id,
            title=quiz.title,
            description=quiz.description,
            level=quiz.level,
            classroom_id=quiz.classroom_id,
            teacher_name=teacher.full_name if teacher else None,
            published_at=quiz.published_at,
            unpublish_date=quiz.unpublish_date,
            time_remaining=(
                lifecycle.time_remaining(quiz.unpublish_date, now) if quiz.unpublish_date else None
            ),
            is_expiring_soon=lifecycle.is_expiring_soon(quiz.unpublish_date, now),
            is_completed=quiz.id in last_submission,
            last_submission_at=last_submission.get(quiz.id),
        )
        for quiz in quizzes
    ]


async def submit_answers(
    db: AsyncSession,
    claims: Claims,
    quiz_id: UUID,
    data: SubmissionCreate,
    now: datetime | None = None,
) -> Submission:
    """
    Score and store a parent's answers.

    Raises:
        NotFoundError: Quiz missing, unpublished or outside the parent's classroom
        ValidationFailedError: Answers reference items of another quiz
    """
    now = now or datetime.now(UTC)

    quiz = await repository.get_by_id(db, quiz_id)
    if quiz is None or not _can_take(claims, quiz, now):
        raise NotFoundError("Quiz", quiz_id)

    item_ids = {str(item.id) for item in quiz.items}
    unknown = set(data.answers) - item_ids
    if unknown:
        raise ValidationFailedError(f"Answers reference unknown questions: {sorted(unknown)}")

    submission = await repository.create_submission(
        db,
        quiz_id=quiz.id,
        parent_id=claims.user_id,
        school_id=quiz.school_id,
        classroom_id=quiz.classroom_id,
        answers=data.answers,
        score=score_answers(quiz.items, data.answers),
        total_questions=len(quiz.items),
        quiz_duration_minutes=data.quiz_duration_minutes,
    )
    await db.commit()

    logger.info(
        f"Parent {claims.user_id} submitted quiz {quiz_id}: "
        f"{submission.score}/{submission.total_questions}"
    )
    return submission


async def list_submissions(db: AsyncSession, claims: Claims) -> list[Submission]:
    """Parents see their own submissions, teachers their classroom's, directors their school's."""
    if claims.role == UserRole.PARENT:
        return await repository.list_submissions(db, parent_id=claims.user_id)
    if claims.role == UserRole.TEACHER:
        if claims.classroom_id is None:
            return []
        return await repository.list_submissions(db, classroom_id=claims.classroom_id)
    if claims.school_id is None:
        return []
    return await repository.list_submissions(db, school_id=claims.school_id)
