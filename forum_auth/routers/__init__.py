"""API routers."""

from forum_auth.routers.auth import router as auth_router

__all__ = ["auth_router"]
