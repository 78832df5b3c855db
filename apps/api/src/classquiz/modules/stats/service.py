"""
Stats Service Layer

Dashboard figures computed from submissions, quizzes and profiles:

1. School stats (director): head counts, classrooms and quizzes
2. Engagement (director: whole school, teacher: own classroom):
   quizzes and submissions with their scores
3. Parent stats: the parent's own results
4. Recent activity (director: whole school, teacher: own classroom)

"This week" means the last 7 days before `now`.
"""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from classquiz.core.auth import Claims
from classquiz.core.exceptions import ValidationFailedError
from classquiz.modules.quizzes import repository as quiz_repository
from classquiz.modules.quizzes.models import Quiz, Submission
from classquiz.modules.schools.repository import ClassroomRepository
from classquiz.modules.shared import as_utc
from classquiz.modules.stats.schemas import (
    ActivityItem,
    EngagementStats,
    ParentStats,
    SchoolStats,
)
from classquiz.modules.users.models import UserRole
from classquiz.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

WEEK = timedelta(days=7)


def score_percent(submission: Submission) -> float:
    if not submission.total_questions:
        return 0.0
    return submission.score / submission.total_questions * 100


def _is_perfect(submission: Submission) -> bool:
    return submission.total_questions > 0 and submission.score == submission.total_questions


def _this_week(created_at: datetime, now: datetime) -> bool:
    return as_utc(created_at) >= now - WEEK


def summarize_engagement(
    quizzes: Sequence[Quiz],
    submissions: Sequence[Submission],
    now: datetime,
) -> EngagementStats:
    percents = [score_percent(submission) for submission in submissions]
    return EngagementStats(
        total_quizzes=len(quizzes),
        this_week_quizzes=sum(1 for quiz in quizzes if _this_week(quiz.created_at, now)),
        total_submissions=len(submissions),
        this_week_submissions=sum(1 for s in submissions if _this_week(s.created_at, now)),
        average_score=round(sum(percents) / len(percents)) if percents else 0,
        best_score=round(max(percents)) if percents else 0,
        perfect_scores=sum(1 for submission in submissions if _is_perfect(submission)),
    )


def summarize_parent(submissions: Sequence[Submission], now: datetime) -> ParentStats:
    engagement = summarize_engagement([], submissions, now)
    return ParentStats(
        total_quizzes_taken=engagement.total_submissions,
        this_week_quizzes=engagement.this_week_submissions,
        average_score=engagement.average_score,
        best_score=engagement.best_score,
        perfect_scores=engagement.perfect_scores,
    )


def _require_school(claims: Claims) -> None:
    if claims.school_id is None:
        raise ValidationFailedError("Create your school before viewing its statistics.")


async def school_stats(db: AsyncSession, claims: Claims) -> SchoolStats:
    _require_school(claims)

    counts = await UserRepository.count_by_role(db, claims.school_id)
    classrooms = await ClassroomRepository.list_by_school(db, claims.school_id)
    quizzes = await quiz_repository.list_by_school(db, claims.school_id)

    parents = counts.get(UserRole.PARENT, 0)
    return SchoolStats(
        total_users=sum(counts.values()),
        total_teachers=counts.get(UserRole.TEACHER, 0),
        total_parents=parents,
        total_students=parents,
        total_classrooms=len(classrooms),
        total_quizzes=len(quizzes),
        published_quizzes=sum(1 for quiz in quizzes if quiz.is_published),
    )


async def engagement_stats(
    db: AsyncSession,
    claims: Claims,
    now: datetime | None = None,
) -> EngagementStats:
    """Teachers get their classroom's figures, directors their school's."""
    now = now or datetime.now(UTC)

    if claims.role == UserRole.TEACHER:
        if claims.classroom_id is None:
            return EngagementStats()
        quizzes = await quiz_repository.list_by_classroom(db, claims.classroom_id)
        submissions = await quiz_repository.list_submissions(db, classroom_id=claims.classroom_id)
    else:
        _require_school(claims)
        quizzes = await quiz_repository.list_by_school(db, claims.school_id)
        submissions = await quiz_repository.list_submissions(db, school_id=claims.school_id)

    return summarize_engagement(quizzes, submissions, now)


async def parent_stats(
    db: AsyncSession,
    claims: Claims,
    now: datetime | None = None,
) -> ParentStats:
    submissions = await quiz_repository.list_submissions(db, parent_id=claims.user_id)
    return summarize_parent(submissions, now or datetime.now(UTC))


async def recent_activity(db: AsyncSession, claims: Claims, limit: int = 10) -> list[ActivityItem]:
    """Latest submissions of the teacher's classroom or the director's school."""
    if claims.role == UserRole.TEACHER:
        if claims.classroom_id is None:
            return []
        rows = await quiz_repository.list_recent_activity(
            db, classroom_id=claims.classroom_id, limit=limit
        )
    else:
        _require_school(claims)
        rows = await quiz_repository.list_recent_activity(
            db, school_id=claims.school_id, limit=limit
        )

    return [
        ActivityItem(
            submission_id=submission.id,
            quiz_id=submission.quiz_id,
            quiz_title=quiz_title,
            parent_id=submission.parent_id,
            parent_name=parent_name,
            score=submission.score,
            total_questions=submission.total_questions,
            created_at=submission.created_at,
        )
        for submission, parent_name, quiz_title in rows
    ]
