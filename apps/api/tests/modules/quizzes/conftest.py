"""
Fixtures for quiz tests.
"""

from datetime import UTC, datetime
from types import SimpleNamespace
from uuid import uuid4

import pytest

from classquiz.modules.schools.models import GradeLevel

NOW = datetime(2025, 3, 10, 9, 0, tzinfo=UTC)


def _make_item(answer_keys=("A",), order_index=0):
    return SimpleNamespace(
        id=uuid4(),
        question=f"Question {order_index + 1}?",
        choices=[{"id": key, "text": f"Answer {key}"} for key in "ABCD"],
        answer_keys=list(answer_keys),
        explanation=None,
        order_index=order_index,
    )


def _make_quiz(
    *,
    school_id=None,
    classroom_id=None,
    owner_id=None,
    is_published=False,
    published_at=None,
    unpublish_date=None,
    items=None,
    title="Fractions",
):
    return SimpleNamespace(
        id=uuid4(),
        title=title,
        description=None,
        level=GradeLevel.CM1,
        owner_id=owner_id or uuid4(),
        school_id=school_id or uuid4(),
        classroom_id=classroom_id or uuid4(),
        is_published=is_published,
        published_at=published_at,
        unpublish_date=unpublish_date,
        created_at=NOW,
        updated_at=NOW,
        items=items if items is not None else [_make_item()],
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_quiz():
    """Factory for quiz objects with the attributes services read."""
    return _make_quiz


@pytest.fixture
def make_item():
    return _make_item
