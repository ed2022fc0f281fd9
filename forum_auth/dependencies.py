"""Service wiring and authentication dependencies for FastAPI routes."""

from functools import lru_cache

from fastapi import Depends, Request

from forum_auth.config import Settings, get_settings
from forum_auth.errors import UnauthenticatedError
from forum_auth.services.auth import AuthService
from forum_auth.services.jwt import Identity, JWTService


@lru_cache
def get_jwt_service() -> JWTService:
    """JWT service built from the process settings."""
    return JWTService(get_settings())


@lru_cache
def get_auth_service() -> AuthService:
    """Auth service built from the process settings."""
    settings: Settings = get_settings()
    return AuthService(settings, jwt_service=get_jwt_service())


def bearer_token(request: Request) -> str | None:
    """Return the token from an ``Authorization: Bearer`` header, if any."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user(
    request: Request,
    jwt_service: JWTService = Depends(get_jwt_service),
) -> Identity:
    """Verify the bearer token on a protected route. Raises 401 if missing or invalid."""
    token = bearer_token(request)
    if not token:
        raise UnauthenticatedError("Not authenticated")
    return jwt_service.verify_session(token)
