"""
Quiz Publication Lifecycle

State machine:
    Draft -> Published          manual publish
    Published -> Draft          manual unpublish, or the sweep at unpublish_date
    Published -> Published      republish restarts the window

Publishing writes is_published, published_at and unpublish_date in one
UPDATE statement, so the timestamp pair is never half-written. There is no
stored "expired" state: the sweep moves expired quizzes back to Draft.

The pure helpers take `now` explicitly so callers and tests control the clock.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from classquiz.modules.quizzes import repository
from classquiz.modules.quizzes.models import Quiz
from classquiz.modules.shared import as_utc

logger = logging.getLogger(__name__)

PUBLISH_WINDOW = timedelta(days=7)
EXPIRING_SOON_WINDOW = timedelta(hours=24)
EXPIRED_LABEL = "expired"


def calculate_unpublish_date(published_at: datetime) -> datetime:
    """Unpublish date for a quiz published at `published_at`."""
    return published_at + PUBLISH_WINDOW


def publication_fields(is_published: bool, now: datetime) -> dict[str, Any]:
    """
    Column values for a publication change.

    Publishing stamps both timestamps from the same `now`; unpublishing
    clears both.
    """
    if is_published:
        return {
            "is_published": True,
            "published_at": now,
            "unpublish_date": calculate_unpublish_date(now),
            "updated_at": now,
        }
    return {
        "is_published": False,
        "published_at": None,
        "unpublish_date": None,
        "updated_at": now,
    }


def is_due_for_unpublish(quiz: Quiz, now: datetime) -> bool:
    """True for a published quiz whose window has closed."""
    return (
        quiz.is_published
        and quiz.unpublish_date is not None
        and as_utc(quiz.unpublish_date) <= now
    )


def time_remaining(unpublish_date: datetime, now: datetime) -> str:
    """
    Human-readable time left before unpublishing.

    Returns:
        "{d}d {h}h remaining", "{h}h remaining", "{m}m remaining" in the last
        hour (at least 1m), or EXPIRED_LABEL when unpublish_date <= now
    """
    remaining = as_utc(unpublish_date) - now
    if remaining <= timedelta(0):
        return EXPIRED_LABEL

    days = remaining.days
    hours = remaining.seconds // 3600

    if days > 0:
        return f"{days}d {hours}h remaining"
    if hours > 0:
        return f"{hours}h remaining"
    return f"{max(remaining.seconds // 60, 1)}m remaining"


def is_expiring_soon(unpublish_date: datetime | None, now: datetime) -> bool:
    """True iff 0 < unpublish_date - now <= 24h."""
    if unpublish_date is None:
        return False
    remaining = as_utc(unpublish_date) - now
    return timedelta(0) < remaining <= EXPIRING_SOON_WINDOW


async def set_published(
    db: AsyncSession,
    quiz_id: UUID,
    is_published: bool,
    now: datetime | None = None,
) -> Quiz | None:
    """
    Publish or unpublish a quiz.

    Args:
        db: Database session
        quiz_id: Quiz to update
        is_published: Target state; True restarts the 7-day window
        now: Reference time (defaults to the current UTC time)

    Returns:
        The updated quiz, or None if it does not exist
    """
    now = now or datetime.now(UTC)

    updated = await repository.update_publication(
        db, quiz_id, publication_fields(is_published, now)
    )
    await db.commit()

    if not updated:
        return None

    logger.info(
        f"Quiz {quiz_id} {'published' if is_published else 'unpublished'} at {now.isoformat()}"
    )
    return await repository.get_by_id(db, quiz_id)


async def sweep_expired(db: AsyncSession, now: datetime | None = None) -> int:
    """
    Unpublish every published quiz whose unpublish_date has passed.

    Safe to re-run at any cadence: unpublished quizzes drop out of the
    selection. The bulk UPDATE re-checks the predicate, so a quiz that was
    republished after selection is left alone.

    Returns:
        Number of quizzes unpublished
    """
    now = now or datetime.now(UTC)

    due = await repository.get_due_for_unpublish(db, now)
    if not due:
        return 0

    count = await repository.bulk_unpublish(db, [quiz.id for quiz in due], now)
    await db.commit()

    logger.info(f"Unpublished {count} expired quiz(zes)")
    return count
