"""Application middleware."""
import logging
import secrets

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .config import (
    SESSION_COOKIE, SESSION_SECURE,
    CSRF_TOKEN_NAME, CSRF_HEADER_NAME, CSRF_COOKIE_NAME, CSRF_EXEMPT_PATHS
)
from .database import create_connection
from .infrastructure.repositories import SessionRepository

logger = logging.getLogger(__name__)


def load_session_user(session_id: str) -> dict | None:
    """Resolve a session cookie to the user summary, None if expired/unknown."""
    conn = create_connection()
    try:
        session = SessionRepository(conn).get_valid(session_id)
    finally:
        conn.close()
    if not session:
        return None
    return {
        "id": session["user_id"],
        "email": session["email"],
        "name": session["name"],
        "role": session["role"],
        "email_verified": bool(session["email_verified"]),
        "session_id": session_id,
    }


class AuthMiddleware(BaseHTTPMiddleware):
    """Attach ``request.state.user`` from the session cookie.

    Never rejects a request; routes decide with ``require_user`` /
    ``require_admin``.
    """

    async def dispatch(self, request: Request, call_next):
        request.state.user = None

        session_id = request.cookies.get(SESSION_COOKIE)
        if session_id:
            request.state.user = load_session_user(session_id)

        return await call_next(request)


class CSRFMiddleware(BaseHTTPMiddleware):
    """Double-submit cookie protection for state-changing requests."""

    # Methods that require CSRF protection
    PROTECTED_METHODS = {"POST", "PUT", "DELETE", "PATCH"}

    async def dispatch(self, request: Request, call_next):
        # Generate CSRF token if not present
        csrf_token = request.cookies.get(CSRF_COOKIE_NAME)
        if not csrf_token:
            csrf_token = secrets.token_urlsafe(32)

        # Store token in request state for the token endpoint
        request.state.csrf_token = csrf_token

        if request.method in self.PROTECTED_METHODS and request.url.path not in CSRF_EXEMPT_PATHS:
            request_token = request.headers.get(CSRF_HEADER_NAME)
            if not request_token:
                request_token = request.query_params.get(CSRF_TOKEN_NAME)

            stored_token = request.cookies.get(CSRF_COOKIE_NAME)
            if (
                not stored_token
                or not request_token
                or not secrets.compare_digest(stored_token, request_token)
            ):
                logger.warning(
                    "CSRF validation failed",
                    extra={"path": request.url.path, "method": request.method}
                )
                response = JSONResponse(
                    status_code=403,
                    content={
                        "success": False,
                        "error": {
                            "code": "CSRF_TOKEN_INVALID",
                            "message": "CSRF token missing or invalid",
                        },
                    }
                )
                return self._set_csrf_cookie(response, csrf_token)

        response = await call_next(request)
        return self._set_csrf_cookie(response, csrf_token)

    def _set_csrf_cookie(self, response, token: str):
        """Set CSRF cookie on response."""
        response.set_cookie(
            key=CSRF_COOKIE_NAME,
            value=token,
            httponly=False,  # JavaScript needs to read this
            samesite="lax",
            secure=SESSION_SECURE,
            max_age=60 * 60 * 24  # 24 hours
        )
        return response
