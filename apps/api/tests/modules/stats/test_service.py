"""
Unit tests for dashboard statistics.

These tests cover:
- Score percentages, weekly counts and perfect scores
- Role scoping of engagement and recent activity
- School head counts
"""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from classquiz.core.auth import Claims
from classquiz.core.exceptions import ValidationFailedError
from classquiz.modules.stats.schemas import EngagementStats
from classquiz.modules.stats.service import (
    engagement_stats,
    parent_stats,
    recent_activity,
    school_stats,
    summarize_engagement,
    summarize_parent,
)
from classquiz.modules.users.models import UserRole

SERVICE = "classquiz.modules.stats.service"

NOW = datetime(2025, 3, 10, 9, 0, tzinfo=UTC)


def _submission(score, total=10, age=timedelta(days=1)):
    return SimpleNamespace(
        id=uuid4(),
        quiz_id=uuid4(),
        parent_id=uuid4(),
        score=score,
        total_questions=total,
        created_at=NOW - age,
    )


def _quiz(age=timedelta(days=1), is_published=False):
    return SimpleNamespace(id=uuid4(), created_at=NOW - age, is_published=is_published)


class TestSummaries:
    def test_engagement_figures(self):
        submissions = [
            _submission(10),
            _submission(5),
            _submission(7, age=timedelta(days=8)),
        ]
        quizzes = [_quiz(), _quiz(age=timedelta(days=30))]

        stats = summarize_engagement(quizzes, submissions, NOW)

        assert stats == EngagementStats(
            total_quizzes=2,
            this_week_quizzes=1,
            total_submissions=3,
            this_week_submissions=2,
            average_score=73,
            best_score=100,
            perfect_scores=1,
        )

    def test_no_submissions_is_all_zero(self):
        assert summarize_engagement([], [], NOW) == EngagementStats()

    def test_naive_timestamps_are_read_as_utc(self):
        submission = _submission(3)
        submission.created_at = submission.created_at.replace(tzinfo=None)

        assert summarize_engagement([], [submission], NOW).this_week_submissions == 1

    def test_parent_summary(self):
        stats = summarize_parent([_submission(8), _submission(10, age=timedelta(days=9))], NOW)

        assert stats.total_quizzes_taken == 2
        assert stats.this_week_quizzes == 1
        assert stats.average_score == 90
        assert stats.best_score == 100
        assert stats.perfect_scores == 1


class TestEngagementStats:
    @pytest.mark.asyncio
    async def test_teacher_sees_own_classroom(self, mock_db, teacher_claims):
        with patch(f"{SERVICE}.quiz_repository") as mock_repo:
            mock_repo.list_by_classroom = AsyncMock(return_value=[_quiz()])
            mock_repo.list_submissions = AsyncMock(return_value=[_submission(6)])

            stats = await engagement_stats(mock_db, teacher_claims, NOW)

        assert stats.total_quizzes == 1
        assert stats.average_score == 60
        mock_repo.list_submissions.assert_awaited_once_with(
            mock_db, classroom_id=teacher_claims.classroom_id
        )

    @pytest.mark.asyncio
    async def test_teacher_without_classroom_gets_zeros(self, mock_db, school_id):
        claims = Claims(user_id=uuid4(), role=UserRole.TEACHER, school_id=school_id)

        with patch(f"{SERVICE}.quiz_repository") as mock_repo:
            mock_repo.list_submissions = AsyncMock()

            assert await engagement_stats(mock_db, claims, NOW) == EngagementStats()

        mock_repo.list_submissions.assert_not_called()

    @pytest.mark.asyncio
    async def test_director_sees_whole_school(self, mock_db, director_claims):
        with patch(f"{SERVICE}.quiz_repository") as mock_repo:
            mock_repo.list_by_school = AsyncMock(return_value=[])
            mock_repo.list_submissions = AsyncMock(return_value=[])

            await engagement_stats(mock_db, director_claims, NOW)

        mock_repo.list_submissions.assert_awaited_once_with(
            mock_db, school_id=director_claims.school_id
        )

    @pytest.mark.asyncio
    async def test_director_without_school(self, mock_db):
        claims = Claims(user_id=uuid4(), role=UserRole.DIRECTOR)

        with pytest.raises(ValidationFailedError):
            await engagement_stats(mock_db, claims, NOW)


class TestParentStats:
    @pytest.mark.asyncio
    async def test_only_own_submissions(self, mock_db, parent_claims):
        with patch(f"{SERVICE}.quiz_repository") as mock_repo:
            mock_repo.list_submissions = AsyncMock(return_value=[_submission(10)])

            stats = await parent_stats(mock_db, parent_claims, NOW)

        assert stats.perfect_scores == 1
        mock_repo.list_submissions.assert_awaited_once_with(
            mock_db, parent_id=parent_claims.user_id
        )


class TestSchoolStats:
    @pytest.mark.asyncio
    async def test_head_counts(self, mock_db, director_claims):
        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.ClassroomRepository") as mock_classrooms,
            patch(f"{SERVICE}.quiz_repository") as mock_repo,
        ):
            mock_users.count_by_role = AsyncMock(
                return_value={UserRole.DIRECTOR: 1, UserRole.TEACHER: 3, UserRole.PARENT: 40}
            )
            mock_classrooms.list_by_school = AsyncMock(return_value=[object(), object()])
            mock_repo.list_by_school = AsyncMock(
                return_value=[_quiz(is_published=True), _quiz(), _quiz(is_published=True)]
            )

            stats = await school_stats(mock_db, director_claims)

        assert stats.total_users == 44
        assert stats.total_teachers == 3
        assert stats.total_parents == stats.total_students == 40
        assert stats.total_classrooms == 2
        assert stats.total_quizzes == 3
        assert stats.published_quizzes == 2

    @pytest.mark.asyncio
    async def test_empty_school(self, mock_db, director_claims):
        with (
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.ClassroomRepository") as mock_classrooms,
            patch(f"{SERVICE}.quiz_repository") as mock_repo,
        ):
            mock_users.count_by_role = AsyncMock(return_value={UserRole.DIRECTOR: 1})
            mock_classrooms.list_by_school = AsyncMock(return_value=[])
            mock_repo.list_by_school = AsyncMock(return_value=[])

            stats = await school_stats(mock_db, director_claims)

        assert stats.total_teachers == 0
        assert stats.total_students == 0


class TestRecentActivity:
    @pytest.mark.asyncio
    async def test_rows_carry_names_and_titles(self, mock_db, director_claims):
        submission = _submission(9)

        with patch(f"{SERVICE}.quiz_repository") as mock_repo:
            mock_repo.list_recent_activity = AsyncMock(
                return_value=[(submission, "Awa Diop", "Fractions")]
            )

            items = await recent_activity(mock_db, director_claims, limit=5)

        assert len(items) == 1
        assert items[0].parent_name == "Awa Diop"
        assert items[0].quiz_title == "Fractions"
        assert items[0].score == 9
        mock_repo.list_recent_activity.assert_awaited_once_with(
            mock_db, school_id=director_claims.school_id, limit=5
        )

    @pytest.mark.asyncio
    async def test_teacher_is_scoped_to_classroom(self, mock_db, teacher_claims):
        with patch(f"{SERVICE}.quiz_repository") as mock_repo:
            mock_repo.list_recent_activity = AsyncMock(return_value=[])

            await recent_activity(mock_db, teacher_claims)

        mock_repo.list_recent_activity.assert_awaited_once_with(
            mock_db, classroom_id=teacher_claims.classroom_id, limit=10
        )
