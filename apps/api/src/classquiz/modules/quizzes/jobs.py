"""
Quizzes Background Jobs

Scheduled task for the quiz publication lifecycle:
1. Unpublish quizzes whose 7-day window has closed

Design Principles:
- The job is idempotent (unpublished quizzes drop out of the selection)
- The job opens its own database session
- Failures are logged and retried on the next run

Schedule:
- Runs every QUIZ_SWEEP_INTERVAL_MINUTES (15 by default)
- Can also be triggered manually via the debug job endpoints
"""

import logging
from datetime import UTC, datetime
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from classquiz.core.config import settings
from classquiz.core.database import async_session_maker
from classquiz.core.scheduler import register_job
from classquiz.modules.quizzes import lifecycle

logger = logging.getLogger(__name__)

JOB_ID_UNPUBLISH_EXPIRED = "quizzes_unpublish_expired"


async def unpublish_expired_quizzes() -> dict[str, Any]:
    """
    Sweep quizzes past their unpublish date back to draft.

    Returns:
        Dict with executed_at and the number of quizzes unpublished
    """
    executed_at = datetime.now(UTC)
    logger.info(f"Starting quiz unpublish sweep at {executed_at.isoformat()}")

    async with async_session_maker() as db:
        count = await lifecycle.sweep_expired(db, executed_at)

    logger.info(f"Quiz unpublish sweep completed. Unpublished: {count}")
    return {
        "executed_at": executed_at.isoformat(),
        "unpublished": count,
    }


def register_quiz_jobs() -> None:
    """
    Register the quiz background jobs with the scheduler.

    Call during application startup, before the scheduler is started.
    """
    interval = settings.quiz_sweep_interval_minutes

    register_job(
        job_id=JOB_ID_UNPUBLISH_EXPIRED,
        func=unpublish_expired_quizzes,
        trigger=IntervalTrigger(minutes=interval),
    )
    logger.info(f"Registered job: {JOB_ID_UNPUBLISH_EXPIRED} (interval: {interval} minutes)")
