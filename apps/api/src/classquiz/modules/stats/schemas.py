"""Dashboard statistics schemas. Scores are whole percentages (0-100)."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class SchoolStats(BaseModel):
    total_users: int
    total_teachers: int
    total_parents: int
    # One parent account per pupil
    total_students: int
    total_classrooms: int
    total_quizzes: int
    published_quizzes: int


class EngagementStats(BaseModel):
    total_quizzes: int = 0
    this_week_quizzes: int = 0
    total_submissions: int = 0
    this_week_submissions: int = 0
    average_score: int = 0
    best_score: int = 0
    perfect_scores: int = 0


class ParentStats(BaseModel):
    total_quizzes_taken: int = 0
    this_week_quizzes: int = 0
    average_score: int = 0
    best_score: int = 0
    perfect_scores: int = 0


class ActivityItem(BaseModel):
    submission_id: UUID
    quiz_id: UUID
    quiz_title: str
    parent_id: UUID
    parent_name: str
    score: int
    total_questions: int
    created_at: datetime


class ActivityListResponse(BaseModel):
    items: list[ActivityItem]
    total: int
