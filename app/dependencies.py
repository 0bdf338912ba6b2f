"""Shared FastAPI dependencies."""
from fastapi import Request

from .errors import AuthenticationError, AuthorizationError


def get_current_user(request: Request) -> dict | None:
    """Get current user from request state."""
    return getattr(request.state, "user", None)


def require_user(request: Request) -> dict:
    """Require authenticated user, raise 401 if not authenticated."""
    user = get_current_user(request)
    if not user:
        raise AuthenticationError()
    return user


def require_admin(request: Request) -> dict:
    """Require an admin, 401 for guests and 403 for other users."""
    user = require_user(request)
    if user.get("role") != "admin":
        raise AuthorizationError("Admin access required")
    return user


def get_csrf_token(request: Request) -> str:
    """Get CSRF token from request state."""
    return getattr(request.state, "csrf_token", "")
