"""
Shared fixtures: mock sessions, an in-memory credential store and caller claims.
"""

from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest

from classquiz.core.auth import Claims
from classquiz.modules.identity.store import (
    DuplicateIdentityError,
    IdentityClaims,
    IdentityNotFoundError,
    InvalidCredentialError,
)
from classquiz.modules.users.models import UserRole


class FakeCredentialStore:
    """
    In-memory credential store.

    Add an operation name to `fail_on` to make that operation raise.
    """

    def __init__(self):
        self.identities: dict[UUID, dict] = {}
        self.claims: dict[UUID, IdentityClaims] = {}
        self.deleted: list[UUID] = []
        self.fail_on: set[str] = set()

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise RuntimeError(f"{operation} unavailable")

    async def create_identity(self, email, password, *, preconfirmed=False, user_metadata=None):
        self._maybe_fail("create_identity")
        email = email.strip().lower()
        if any(identity["email"] == email for identity in self.identities.values()):
            raise DuplicateIdentityError(email)
        identity_id = uuid4()
        self.identities[identity_id] = {
            "email": email,
            "password": password,
            "preconfirmed": preconfirmed,
            "user_metadata": user_metadata or {},
        }
        return identity_id

    async def delete_identity(self, identity_id):
        self._maybe_fail("delete_identity")
        self.identities.pop(identity_id, None)
        self.claims.pop(identity_id, None)
        self.deleted.append(identity_id)

    async def set_claims(self, identity_id, claims):
        self._maybe_fail("set_claims")
        if identity_id not in self.identities:
            raise IdentityNotFoundError(identity_id)
        self.claims[identity_id] = claims

    async def get_claims(self, identity_id):
        if identity_id not in self.identities:
            raise IdentityNotFoundError(identity_id)
        return self.claims.get(identity_id)

    async def authenticate(self, email, password):
        return None

    async def verify_token(self, bearer_token):
        raise InvalidCredentialError("not supported")


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.flush = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def credential_store():
    return FakeCredentialStore()


@pytest.fixture
def school_id():
    return uuid4()


@pytest.fixture
def classroom_id():
    return uuid4()


@pytest.fixture
def director_claims(school_id):
    return Claims(user_id=uuid4(), role=UserRole.DIRECTOR, school_id=school_id)


@pytest.fixture
def teacher_claims(school_id, classroom_id):
    return Claims(
        user_id=uuid4(),
        role=UserRole.TEACHER,
        school_id=school_id,
        classroom_id=classroom_id,
    )


@pytest.fixture
def parent_claims(school_id, classroom_id):
    return Claims(
        user_id=uuid4(),
        role=UserRole.PARENT,
        school_id=school_id,
        classroom_id=classroom_id,
    )
