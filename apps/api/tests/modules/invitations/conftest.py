"""
Fixtures for invitation tests.
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from classquiz.modules.invitations.models import InvitationToken
from classquiz.modules.invitations.service import InvitationScope
from classquiz.modules.users.models import UserRole

NOW = datetime(2025, 3, 10, 9, 0, tzinfo=UTC)


def _make_invitation(
    *,
    school_id=None,
    classroom_id=None,
    intended_role=UserRole.PARENT,
    is_reusable=True,
    expires_at=None,
    used_at=None,
    token="invite-token",
):
    invitation = InvitationToken(
        token=token,
        school_id=school_id or uuid4(),
        classroom_id=classroom_id or uuid4(),
        intended_role=intended_role,
        is_reusable=is_reusable,
        expires_at=expires_at or NOW + timedelta(days=30),
        used_at=used_at,
    )
    invitation.id = uuid4()
    return invitation


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_invitation():
    """Factory for transient invitation rows."""
    return _make_invitation


@pytest.fixture
def parent_invitation(school_id, classroom_id):
    """A live reusable parent invitation."""
    return _make_invitation(school_id=school_id, classroom_id=classroom_id)


@pytest.fixture
def teacher_scope(school_id, classroom_id):
    """What a valid single-use teacher token grants."""
    return InvitationScope(
        invitation_id=uuid4(),
        school_id=school_id,
        classroom_id=classroom_id,
        intended_role=UserRole.TEACHER,
        is_reusable=False,
        expires_at=NOW + timedelta(days=7),
    )


@pytest.fixture
def parent_scope(school_id, classroom_id):
    return InvitationScope(
        invitation_id=uuid4(),
        school_id=school_id,
        classroom_id=classroom_id,
        intended_role=UserRole.PARENT,
        is_reusable=True,
        expires_at=NOW + timedelta(days=365),
    )
