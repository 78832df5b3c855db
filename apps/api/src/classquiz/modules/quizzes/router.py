"""
Quizzes Router

Endpoints:
- POST /quizzes - Create a draft quiz (teacher, director)
- GET /quizzes - List quizzes in scope (teacher, director)
- GET /quizzes/available - Published quizzes for the parent's classroom
- POST /quizzes/generate - Generate a quiz from a lesson with AI
- POST /quizzes/improve - Improve questions with AI
- GET /quizzes/{id} - Quiz with items (parents get it without answer keys)
- DELETE /quizzes/{id} - Delete a quiz
- PATCH /quizzes/{id}/publish - Publish or unpublish
- POST /quizzes/{id}/submissions - Submit answers (parent)
- GET /submissions - Submissions in scope
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from classquiz.core.auth import Claims, require_roles
from classquiz.core.database import get_db
from classquiz.modules.quizzes import service
from classquiz.modules.quizzes.generator import QuizGenerator, get_quiz_generator
from classquiz.modules.quizzes.schemas import (
    AvailableQuizListResponse,
    GeneratedQuiz,
    GenerateQuizRequest,
    ImproveQuestionsRequest,
    ImproveQuestionsResponse,
    PublishRequest,
    QuizCreate,
    QuizListResponse,
    QuizPublicResponse,
    QuizResponse,
    SubmissionCreate,
    SubmissionListResponse,
    SubmissionResponse,
)
from classquiz.modules.users.models import UserRole

logger = logging.getLogger(__name__)

router = APIRouter()
submissions_router = APIRouter()

_authors = require_roles(UserRole.TEACHER, UserRole.DIRECTOR)
_parents = require_roles(UserRole.PARENT)


@router.post("", response_model=QuizResponse, status_code=status.HTTP_201_CREATED)
async def create_quiz(
    data: QuizCreate,
    claims: Claims = Depends(_authors),
    db: AsyncSession = Depends(get_db),
) -> QuizResponse:
    quiz = await service.create_quiz(db, claims, data)
    return QuizResponse.model_validate(quiz)


@router.get("", response_model=QuizListResponse)
async def list_quizzes(
    claims: Claims = Depends(_authors),
    db: AsyncSession = Depends(get_db),
) -> QuizListResponse:
    quizzes = await service.list_quizzes(db, claims)
    return QuizListResponse(
        quizzes=[QuizResponse.model_validate(quiz) for quiz in quizzes],
        total=len(quizzes),
    )


@router.get("/available", response_model=AvailableQuizListResponse)
async def list_available_quizzes(
    claims: Claims = Depends(_parents),
    db: AsyncSession = Depends(get_db),
) -> AvailableQuizListResponse:
    """Published quizzes of the parent's classroom, with time remaining."""
    quizzes = await service.list_available_quizzes(db, claims)
    return AvailableQuizListResponse(quizzes=quizzes)


@router.post(
    "/generate",
    response_model=GeneratedQuiz,
    responses={
        500: {"description": "AI provider API key is not configured"},
        502: {"description": "AI provider failed or returned an invalid quiz"},
    },
)
async def generate_quiz(
    data: GenerateQuizRequest,
    claims: Claims = Depends(_authors),
    generator: QuizGenerator = Depends(get_quiz_generator),
) -> GeneratedQuiz:
    """Generate a 10-question quiz from a lesson. Nothing is saved."""
    logger.info(f"User {claims.user_id} generating quiz with {data.model}")
    return await generator.generate_quiz(data.lesson_text, data.grade_level, data.model)


@router.post("/improve", response_model=ImproveQuestionsResponse)
async def improve_questions(
    data: ImproveQuestionsRequest,
    claims: Claims = Depends(_authors),
    generator: QuizGenerator = Depends(get_quiz_generator),
) -> ImproveQuestionsResponse:
    logger.info(f"User {claims.user_id} improving {len(data.questions)} question(s)")
    questions = await generator.improve_questions(
        data.questions, data.feedback, data.grade_level, data.model
    )
    return ImproveQuestionsResponse(questions=questions)


@router.get("/{quiz_id}", response_model=QuizResponse | QuizPublicResponse)
async def get_quiz(
    quiz_id: UUID,
    claims: Claims = Depends(require_roles(UserRole.TEACHER, UserRole.DIRECTOR, UserRole.PARENT)),
    db: AsyncSession = Depends(get_db),
) -> QuizResponse | QuizPublicResponse:
    quiz = await service.get_quiz(db, claims, quiz_id)
    if claims.role == UserRole.PARENT:
        return QuizPublicResponse.model_validate(quiz)
    return QuizResponse.model_validate(quiz)


@router.delete("/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quiz(
    quiz_id: UUID,
    claims: Claims = Depends(_authors),
    db: AsyncSession = Depends(get_db),
) -> None:
    await service.delete_quiz(db, claims, quiz_id)


@router.patch("/{quiz_id}/publish", response_model=QuizResponse)
async def publish_quiz(
    quiz_id: UUID,
    data: PublishRequest,
    claims: Claims = Depends(_authors),
    db: AsyncSession = Depends(get_db),
) -> QuizResponse:
    """Publish for 7 days (republishing restarts the window) or unpublish."""
    quiz = await service.publish_quiz(db, claims, quiz_id, data.is_published)
    return QuizResponse.model_validate(quiz)


@router.post(
    "/{quiz_id}/submissions",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_answers(
    quiz_id: UUID,
    data: SubmissionCreate,
    claims: Claims = Depends(_parents),
    db: AsyncSession = Depends(get_db),
) -> SubmissionResponse:
    submission = await service.submit_answers(db, claims, quiz_id, data)
    return SubmissionResponse.model_validate(submission)


@submissions_router.get("", response_model=SubmissionListResponse)
async def list_submissions(
    claims: Claims = Depends(require_roles(UserRole.PARENT, UserRole.TEACHER, UserRole.DIRECTOR)),
    db: AsyncSession = Depends(get_db),
) -> SubmissionListResponse:
    submissions = await service.list_submissions(db, claims)
    return SubmissionListResponse(
        submissions=[SubmissionResponse.model_validate(item) for item in submissions],
        total=len(submissions),
    )
