"""
Quizzes Module

Quiz authoring and the publication lifecycle:
1. Draft quizzes written by hand or generated with AI
2. Publication for a 7-day window, republishing restarts it
3. Parents list and take the published quizzes of their classroom

Background Jobs (via APScheduler):
- quizzes_unpublish_expired: Runs every QUIZ_SWEEP_INTERVAL_MINUTES and moves
  quizzes past their unpublish date back to draft
"""

from .jobs import register_quiz_jobs
from .router import router, submissions_router

__all__ = ["router", "submissions_router", "register_quiz_jobs"]
