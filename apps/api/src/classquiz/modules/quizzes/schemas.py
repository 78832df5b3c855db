"""
Quiz Schemas

Request/response bodies for quizzes, submissions and AI generation, plus
the structure AI providers must return.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from classquiz.modules.schools.models import GradeLevel

AIModel = Literal["gpt-4o-mini", "gpt-4o", "deepseek-chat"]


class Choice(BaseModel):
    id: str = Field(..., min_length=1, max_length=10)
    text: str = Field(..., min_length=1)


class QuestionBase(BaseModel):
    """A multiple-choice question; answer_keys must reference choice ids."""

    question: str = Field(..., min_length=1)
    choices: list[Choice] = Field(..., min_length=2)
    answer_keys: list[str] = Field(..., min_length=1)
    explanation: str | None = None

    @model_validator(mode="after")
    def check_answer_keys(self) -> "QuestionBase":
        choice_ids = [choice.id for choice in self.choices]
        if len(set(choice_ids)) != len(choice_ids):
            raise ValueError("Choice ids must be unique")
        unknown = set(self.answer_keys) - set(choice_ids)
        if unknown:
            raise ValueError(f"Answer keys {sorted(unknown)} do not match any choice")
        return self


class QuizCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    level: GradeLevel | None = Field(
        default=None,
        description="Defaults to the classroom's grade",
    )
    classroom_id: UUID | None = Field(
        default=None,
        description="Required for directors; teachers always write to their own classroom",
    )
    items: list[QuestionBase] = Field(..., min_length=1)


class PublishRequest(BaseModel):
    is_published: bool


class QuizItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    question: str
    choices: list[Choice]
    answer_keys: list[str]
    explanation: str | None
    order_index: int


class QuizItemPublic(BaseModel):
    """Question as shown to a parent taking the quiz."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    question: str
    choices: list[Choice]
    order_index: int


class QuizResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str | None
    level: GradeLevel
    owner_id: UUID | None
    classroom_id: UUID
    school_id: UUID
    is_published: bool
    published_at: datetime | None
    unpublish_date: datetime | None
    created_at: datetime
    updated_at: datetime
    items: list[QuizItemResponse] = []


class QuizPublicResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str | None
    level: GradeLevel
    unpublish_date: datetime | None
    items: list[QuizItemPublic] = []


class QuizListResponse(BaseModel):
    quizzes: list[QuizResponse]
    total: int


class AvailableQuiz(BaseModel):
    """Published quiz as listed for a parent."""

    id: UUID
    title: str
    description: str | None
    level: GradeLevel
    classroom_id: UUID
    teacher_name: str | None
    published_at: datetime | None
    unpublish_date: datetime | None
    time_remaining: str | None
    is_expiring_soon: bool
    is_completed: bool
    last_submission_at: datetime | None


class AvailableQuizListResponse(BaseModel):
    quizzes: list[AvailableQuiz]


class SubmissionCreate(BaseModel):
    answers: dict[str, list[str]] = Field(
        ...,
        description="Selected choice ids keyed by quiz item id",
    )
    quiz_duration_minutes: int | None = Field(default=None, ge=0)


class SubmissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    quiz_id: UUID
    parent_id: UUID
    school_id: UUID
    classroom_id: UUID
    answers: dict[str, list[str]]
    score: int
    total_questions: int
    quiz_duration_minutes: int | None
    created_at: datetime


class SubmissionListResponse(BaseModel):
    submissions: list[SubmissionResponse]
    total: int


# ============================================
# AI generation
# ============================================


class GeneratedQuestion(QuestionBase):
    pass


class GeneratedQuiz(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    questions: list[GeneratedQuestion]


class GenerateQuizRequest(BaseModel):
    lesson_text: str = Field(..., min_length=1, max_length=20000)
    grade_level: GradeLevel
    model: AIModel = "gpt-4o-mini"


class ImproveQuestionsRequest(BaseModel):
    questions: list[GeneratedQuestion] = Field(..., min_length=1)
    feedback: str = Field(..., min_length=1, max_length=5000)
    grade_level: GradeLevel
    model: AIModel = "gpt-4o-mini"


class ImproveQuestionsResponse(BaseModel):
    questions: list[GeneratedQuestion]
