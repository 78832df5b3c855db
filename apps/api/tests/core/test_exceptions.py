"""
Unit tests for service error rendering.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from classquiz.core.exceptions import (
    ClaimAssignmentFailedError,
    IdentityCreationFailedError,
    NotFoundError,
    TokenExpiredOrUsedError,
    TokenNotFoundError,
    UnauthorizedError,
    UnsupportedRoleError,
    register_exception_handlers,
)


@pytest.fixture
def client():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/missing-token")
    async def missing_token():
        raise TokenNotFoundError()

    @app.get("/unauthorized")
    async def unauthorized():
        raise UnauthorizedError()

    @app.get("/crash")
    async def crash():
        raise RuntimeError("database exploded")

    return TestClient(app, raise_server_exceptions=False)


class TestErrorCodes:
    @pytest.mark.parametrize(
        ("error", "status_code", "code"),
        [
            (TokenNotFoundError(), 410, "TOKEN_NOT_FOUND"),
            (TokenExpiredOrUsedError(), 410, "TOKEN_EXPIRED_OR_USED"),
            (UnsupportedRoleError("admin"), 400, "UNSUPPORTED_ROLE"),
            (IdentityCreationFailedError(), 409, "IDENTITY_CREATION_FAILED"),
            (ClaimAssignmentFailedError(), 500, "CLAIM_ASSIGNMENT_FAILED"),
            (NotFoundError("Quiz"), 404, "NOT_FOUND"),
        ],
    )
    def test_error_carries_status_and_code(self, error, status_code, code):
        assert error.status_code == status_code
        assert error.to_detail()["error"] == code


class TestHandlers:
    def test_service_error_is_rendered_as_detail(self, client):
        response = client.get("/missing-token")

        assert response.status_code == 410
        assert response.json() == {
            "detail": {"error": "TOKEN_NOT_FOUND", "message": "Invitation token not found."}
        }

    def test_unknown_exception_becomes_unexpected(self, client):
        response = client.get("/crash")

        assert response.status_code == 500
        assert response.json()["detail"]["error"] == "UNEXPECTED"
        assert "exploded" not in response.text

    def test_unauthorized_carries_bearer_challenge(self, client):
        response = client.get("/unauthorized")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["detail"]["error"] == "UNAUTHORIZED"
