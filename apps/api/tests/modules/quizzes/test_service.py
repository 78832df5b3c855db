"""
Unit tests for the quizzes service layer.

These tests cover:
- Scoring
- Quiz authoring scope for teachers and directors
- Parent access to published quizzes only
- Available quizzes with time remaining and completion status
- Submissions
"""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from classquiz.core.exceptions import ForbiddenError, NotFoundError, ValidationFailedError
from classquiz.modules.quizzes.schemas import QuizCreate, SubmissionCreate
from classquiz.modules.quizzes.service import (
    create_quiz,
    delete_quiz,
    get_quiz,
    list_available_quizzes,
    list_submissions,
    publish_quiz,
    score_answers,
    submit_answers,
)
from classquiz.modules.schools.models import GradeLevel

SERVICE = "classquiz.modules.quizzes.service"


def _quiz_create(classroom_id=None):
    return QuizCreate(
        title="Fractions",
        classroom_id=classroom_id,
        items=[
            {
                "question": "1/2 + 1/2 = ?",
                "choices": [{"id": "A", "text": "1"}, {"id": "B", "text": "2"}],
                "answer_keys": ["A"],
            }
        ],
    )


class TestScoreAnswers:
    def test_exact_match_per_item(self, make_item):
        single = make_item(answer_keys=["B"])
        multiple = make_item(answer_keys=["A", "C"], order_index=1)
        missed = make_item(answer_keys=["D"], order_index=2)

        score = score_answers(
            [single, multiple, missed],
            {
                str(single.id): ["B"],
                str(multiple.id): ["C", "A"],
                str(missed.id): ["D", "A"],
            },
        )

        assert score == 2

    def test_unanswered_items_score_zero(self, make_item):
        assert score_answers([make_item()], {}) == 0


class TestCreateQuiz:
    """Tests for create_quiz."""

    @pytest.mark.asyncio
    async def test_teacher_writes_to_own_classroom(
        self, mock_db, teacher_claims, make_quiz
    ):
        classroom = SimpleNamespace(
            id=teacher_claims.classroom_id,
            school_id=teacher_claims.school_id,
            grade=GradeLevel.CE2,
        )

        with (
            patch(f"{SERVICE}.ClassroomRepository") as mock_classrooms,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_classrooms.get_by_id = AsyncMock(return_value=classroom)
            mock_repo.create_quiz = AsyncMock(return_value=make_quiz())

            await create_quiz(mock_db, teacher_claims, _quiz_create())

        kwargs = mock_repo.create_quiz.call_args.kwargs
        assert kwargs["classroom_id"] == teacher_claims.classroom_id
        assert kwargs["school_id"] == teacher_claims.school_id
        assert kwargs["owner_id"] == teacher_claims.user_id
        assert kwargs["level"] == GradeLevel.CE2
        assert kwargs["items"][0]["answer_keys"] == ["A"]
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_teacher_cannot_target_another_classroom(self, mock_db, teacher_claims):
        with pytest.raises(ForbiddenError):
            await create_quiz(mock_db, teacher_claims, _quiz_create(classroom_id=uuid4()))

    @pytest.mark.asyncio
    async def test_director_must_name_a_classroom(self, mock_db, director_claims):
        with pytest.raises(ValidationFailedError):
            await create_quiz(mock_db, director_claims, _quiz_create())

    @pytest.mark.asyncio
    async def test_director_cannot_use_classroom_of_another_school(
        self, mock_db, director_claims
    ):
        foreign = SimpleNamespace(id=uuid4(), school_id=uuid4(), grade=GradeLevel.CP)

        with (
            patch(f"{SERVICE}.ClassroomRepository") as mock_classrooms,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_classrooms.get_by_id = AsyncMock(return_value=foreign)
            mock_repo.create_quiz = AsyncMock()

            with pytest.raises(ForbiddenError):
                await create_quiz(mock_db, director_claims, _quiz_create(classroom_id=foreign.id))

            mock_repo.create_quiz.assert_not_called()


class TestQuizScope:
    @pytest.mark.asyncio
    async def test_parent_cannot_see_draft(self, mock_db, parent_claims, make_quiz, now):
        draft = make_quiz(classroom_id=parent_claims.classroom_id)

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=draft)

            with pytest.raises(NotFoundError):
                await get_quiz(mock_db, parent_claims, draft.id, now)

    @pytest.mark.asyncio
    async def test_parent_cannot_see_other_classroom(self, mock_db, parent_claims, make_quiz, now):
        quiz = make_quiz(is_published=True, unpublish_date=now + timedelta(days=1))

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=quiz)

            with pytest.raises(NotFoundError):
                await get_quiz(mock_db, parent_claims, quiz.id, now)

    @pytest.mark.asyncio
    async def test_parent_sees_published_quiz(self, mock_db, parent_claims, make_quiz, now):
        quiz = make_quiz(
            classroom_id=parent_claims.classroom_id,
            is_published=True,
            unpublish_date=now + timedelta(days=1),
        )

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=quiz)
            assert await get_quiz(mock_db, parent_claims, quiz.id, now) is quiz

    @pytest.mark.asyncio
    async def test_teacher_cannot_delete_colleagues_quiz(self, mock_db, teacher_claims, make_quiz):
        quiz = make_quiz(classroom_id=teacher_claims.classroom_id)

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=quiz)
            mock_repo.delete_quiz = AsyncMock()

            with pytest.raises(ForbiddenError):
                await delete_quiz(mock_db, teacher_claims, quiz.id)

            mock_repo.delete_quiz.assert_not_called()

    @pytest.mark.asyncio
    async def test_director_deletes_quiz_of_school(self, mock_db, director_claims, make_quiz):
        quiz = make_quiz(school_id=director_claims.school_id)

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=quiz)
            mock_repo.delete_quiz = AsyncMock()

            await delete_quiz(mock_db, director_claims, quiz.id)

        mock_repo.delete_quiz.assert_awaited_once_with(mock_db, quiz.id)
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_publish_outside_school_is_forbidden(self, mock_db, director_claims, make_quiz):
        quiz = make_quiz()

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.lifecycle.set_published", new_callable=AsyncMock) as mock_publish,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=quiz)

            with pytest.raises(ForbiddenError):
                await publish_quiz(mock_db, director_claims, quiz.id, True)

            mock_publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_teacher_publishes_quiz_of_classroom(
        self, mock_db, teacher_claims, make_quiz, now
    ):
        quiz = make_quiz(classroom_id=teacher_claims.classroom_id)

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.lifecycle.set_published", new_callable=AsyncMock) as mock_publish,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=quiz)
            mock_publish.return_value = quiz

            result = await publish_quiz(mock_db, teacher_claims, quiz.id, True, now)

        assert result is quiz
        mock_publish.assert_awaited_once_with(mock_db, quiz.id, True, now)


class TestListAvailableQuizzes:
    @pytest.mark.asyncio
    async def test_parent_without_classroom(self, mock_db, parent_claims):
        claims = type(parent_claims)(user_id=parent_claims.user_id, role=parent_claims.role)

        with pytest.raises(ValidationFailedError):
            await list_available_quizzes(mock_db, claims)

    @pytest.mark.asyncio
    async def test_lists_time_remaining_and_completion(
        self, mock_db, parent_claims, make_quiz, now
    ):
        classroom_id = parent_claims.classroom_id
        soon = make_quiz(
            classroom_id=classroom_id,
            is_published=True,
            published_at=now - timedelta(days=6, hours=1),
            unpublish_date=now + timedelta(hours=23),
            title="Soon",
        )
        fresh = make_quiz(
            classroom_id=classroom_id,
            is_published=True,
            published_at=now - timedelta(hours=23),
            unpublish_date=now + timedelta(days=6, hours=1),
            title="Fresh",
        )
        overdue = make_quiz(
            classroom_id=classroom_id,
            is_published=True,
            unpublish_date=now - timedelta(minutes=1),
            title="Overdue",
        )
        submitted_at = now - timedelta(hours=2)
        submissions = [
            SimpleNamespace(quiz_id=fresh.id, created_at=submitted_at),
            SimpleNamespace(quiz_id=fresh.id, created_at=submitted_at - timedelta(days=1)),
        ]

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.UserRepository") as mock_users,
        ):
            mock_repo.list_by_classroom = AsyncMock(return_value=[soon, fresh, overdue])
            mock_repo.list_submissions = AsyncMock(return_value=submissions)
            mock_users.get_teacher_for_classroom = AsyncMock(
                return_value=SimpleNamespace(full_name="Mme Martin")
            )

            result = await list_available_quizzes(mock_db, parent_claims, now)

        by_title = {quiz.title: quiz for quiz in result}
        assert set(by_title) == {"Soon", "Fresh"}

        assert by_title["Soon"].time_remaining == "23h remaining"
        assert by_title["Soon"].is_expiring_soon is True
        assert by_title["Soon"].is_completed is False

        assert by_title["Fresh"].time_remaining == "6d 1h remaining"
        assert by_title["Fresh"].is_expiring_soon is False
        assert by_title["Fresh"].is_completed is True
        assert by_title["Fresh"].last_submission_at == submitted_at
        assert by_title["Fresh"].teacher_name == "Mme Martin"

        mock_repo.list_by_classroom.assert_awaited_once_with(
            mock_db, classroom_id, published_only=True
        )


class TestSubmitAnswers:
    @pytest.mark.asyncio
    async def test_answers_are_scored_and_stored(
        self, mock_db, parent_claims, make_quiz, make_item, now
    ):
        first, second = make_item(answer_keys=["A"]), make_item(answer_keys=["B"], order_index=1)
        quiz = make_quiz(
            classroom_id=parent_claims.classroom_id,
            school_id=parent_claims.school_id,
            is_published=True,
            unpublish_date=now + timedelta(days=2),
            items=[first, second],
        )
        data = SubmissionCreate(
            answers={str(first.id): ["A"], str(second.id): ["C"]},
            quiz_duration_minutes=4,
        )

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=quiz)
            mock_repo.create_submission = AsyncMock(
                side_effect=lambda _db, **kwargs: SimpleNamespace(**kwargs)
            )

            submission = await submit_answers(mock_db, parent_claims, quiz.id, data, now)

        assert submission.score == 1
        assert submission.total_questions == 2
        assert submission.parent_id == parent_claims.user_id
        assert submission.classroom_id == parent_claims.classroom_id
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_question_ids_are_rejected(
        self, mock_db, parent_claims, make_quiz, now
    ):
        quiz = make_quiz(
            classroom_id=parent_claims.classroom_id,
            is_published=True,
            unpublish_date=now + timedelta(days=2),
        )

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=quiz)
            mock_repo.create_submission = AsyncMock()

            with pytest.raises(ValidationFailedError):
                await submit_answers(
                    mock_db,
                    parent_claims,
                    quiz.id,
                    SubmissionCreate(answers={str(uuid4()): ["A"]}),
                    now,
                )

            mock_repo.create_submission.assert_not_called()

    @pytest.mark.asyncio
    async def test_expired_quiz_cannot_be_submitted(self, mock_db, parent_claims, make_quiz, now):
        """Past its unpublish date but not yet swept."""
        quiz = make_quiz(
            classroom_id=parent_claims.classroom_id,
            is_published=True,
            unpublish_date=now - timedelta(minutes=1),
        )

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=quiz)

            with pytest.raises(NotFoundError):
                await submit_answers(
                    mock_db, parent_claims, quiz.id, SubmissionCreate(answers={}), now
                )


class TestListSubmissions:
    @pytest.mark.asyncio
    async def test_scope_per_role(self, mock_db, parent_claims, teacher_claims, director_claims):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.list_submissions = AsyncMock(return_value=[])

            await list_submissions(mock_db, parent_claims)
            await list_submissions(mock_db, teacher_claims)
            await list_submissions(mock_db, director_claims)

        calls = [call.kwargs for call in mock_repo.list_submissions.call_args_list]
        assert calls == [
            {"parent_id": parent_claims.user_id},
            {"classroom_id": teacher_claims.classroom_id},
            {"school_id": director_claims.school_id},
        ]
