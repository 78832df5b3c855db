"""
Unit tests for the claims-based access gate.

These tests cover:
- Decoding access tokens into Claims
- Role checks (authorize, require_roles)
- Error rendering through the registered exception handlers
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from classquiz.core.auth import Claims, authorize, decode_claims, require_roles
from classquiz.core.exceptions import (
    ForbiddenError,
    UnauthorizedError,
    register_exception_handlers,
)
from classquiz.core.security import create_access_token, create_refresh_token
from classquiz.modules.users.models import UserRole


def _token(user_id=None, **claims):
    return create_access_token(str(user_id or uuid4()), additional_claims=claims)


class TestDecodeClaims:
    """Tests for decode_claims."""

    def test_missing_token_is_unauthorized(self):
        with pytest.raises(UnauthorizedError):
            decode_claims(None)

    def test_malformed_token_is_unauthorized(self):
        with pytest.raises(UnauthorizedError):
            decode_claims("garbage")

    def test_expired_token_is_unauthorized(self):
        token = create_access_token(
            str(uuid4()),
            additional_claims={"role": "teacher"},
            expires_delta=timedelta(seconds=-1),
        )
        with pytest.raises(UnauthorizedError):
            decode_claims(token)

    def test_refresh_token_is_not_accepted(self):
        with pytest.raises(UnauthorizedError):
            decode_claims(create_refresh_token(str(uuid4())))

    def test_token_without_role_is_unauthorized(self):
        with pytest.raises(UnauthorizedError):
            decode_claims(_token(email="someone@test.com"))

    def test_unknown_role_is_unauthorized(self):
        with pytest.raises(UnauthorizedError):
            decode_claims(_token(role="admin"))

    def test_valid_token_yields_claims(self):
        user_id, school_id, classroom_id = uuid4(), uuid4(), uuid4()
        token = _token(
            user_id,
            role="teacher",
            school_id=str(school_id),
            classroom_id=str(classroom_id),
            email="teacher@test.com",
        )

        claims = decode_claims(token)

        assert claims == Claims(
            user_id=user_id,
            role=UserRole.TEACHER,
            school_id=school_id,
            classroom_id=classroom_id,
            email="teacher@test.com",
        )

    def test_director_without_school_has_no_school_id(self):
        claims = decode_claims(_token(role="director", school_id=None))
        assert claims.role == UserRole.DIRECTOR
        assert claims.school_id is None


class TestAuthorize:
    """Tests for authorize."""

    def test_absent_claims_are_unauthorized(self):
        with pytest.raises(UnauthorizedError):
            authorize(None, [UserRole.DIRECTOR])

    def test_role_outside_required_roles_is_forbidden(self):
        claims = Claims(user_id=uuid4(), role=UserRole.PARENT)
        with pytest.raises(ForbiddenError):
            authorize(claims, [UserRole.TEACHER, UserRole.DIRECTOR])

    def test_allowed_role_returns_claims(self):
        claims = Claims(user_id=uuid4(), role=UserRole.TEACHER)
        assert authorize(claims, (UserRole.TEACHER,)) is claims

    @pytest.mark.asyncio
    async def test_require_roles_dependency_checks_role(self):
        dependency = require_roles(UserRole.DIRECTOR)
        claims = Claims(user_id=uuid4(), role=UserRole.TEACHER)

        with pytest.raises(ForbiddenError):
            await dependency(claims=claims)


class TestAccessGateOverHttp:
    """The gate as seen by HTTP clients."""

    @pytest.fixture
    def client(self):
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/directors-only")
        async def directors_only(claims: Claims = Depends(require_roles(UserRole.DIRECTOR))):
            return {"user_id": str(claims.user_id)}

        return TestClient(app)

    def test_no_bearer_header_returns_401(self, client):
        response = client.get("/directors-only")

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "UNAUTHORIZED"
        assert response.headers["www-authenticate"] == "Bearer"

    def test_wrong_role_returns_403(self, client):
        response = client.get(
            "/directors-only",
            headers={"Authorization": f"Bearer {_token(role='teacher')}"},
        )

        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "FORBIDDEN"

    def test_allowed_role_reaches_handler(self, client):
        user_id = uuid4()
        response = client.get(
            "/directors-only",
            headers={"Authorization": f"Bearer {_token(user_id, role='director')}"},
        )

        assert response.status_code == 200
        assert response.json() == {"user_id": str(user_id)}
