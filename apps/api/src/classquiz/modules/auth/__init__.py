"""Authentication module."""

from classquiz.modules.auth.router import router
from classquiz.modules.auth.schemas import LoginRequest, LoginResponse, TokenResponse

__all__ = ["router", "LoginRequest", "LoginResponse", "TokenResponse"]
