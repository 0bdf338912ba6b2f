"""Password reset service - token issuance, verification and password change.

Flow:
    1. ``request_reset(email)`` issues a one-hour, single-use token and emails
       a link to ``{SITE_URL}/reset-password?token=...``. The answer is the
       same whether or not the account exists.
    2. ``reset_password(token, password)`` changes the password, consumes
       every outstanding token of the user and logs them out everywhere.
"""
import logging
import re
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Optional

from ...config import (
    SITE_URL,
    PASSWORD_RESET_EXPIRY_HOURS,
    PASSWORD_RESET_THROTTLE_MINUTES,
)
from ...database import transaction
from ...errors import AppError, ValidationError
from ...infrastructure.repositories import (
    UserRepository,
    SessionRepository,
    PasswordResetRepository,
)
from ...infrastructure.services.email import EmailSender

logger = logging.getLogger(__name__)

EMAIL_REGEX = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
MIN_PASSWORD_LENGTH = 8

GENERIC_RESET_MESSAGE = (
    "If an account exists with this email, a password reset link has been sent."
)
RESET_SUCCESS_MESSAGE = (
    "Password has been reset successfully. You can now log in with your new password."
)


class InvalidTokenError(AppError):
    def __init__(self, message: str = "Invalid or expired reset token"):
        super().__init__(message, 400, "INVALID_TOKEN")


def validate_password_strength(password: str) -> list[str]:
    """Return the list of problems with a password (empty when acceptable)."""
    problems = []
    if len(password) < MIN_PASSWORD_LENGTH:
        problems.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if not (
        re.search(r"[a-z]", password)
        and re.search(r"[A-Z]", password)
        and re.search(r"\d", password)
    ):
        problems.append(
            "Password must contain at least one uppercase letter, "
            "one lowercase letter, and one number"
        )
    return problems


class PasswordResetService:
    """Service for the forgot-password flow."""

    def __init__(
        self,
        connection: sqlite3.Connection,
        user_repository: UserRepository,
        session_repository: SessionRepository,
        reset_repository: PasswordResetRepository,
        email_sender: Optional[EmailSender] = None,
        site_url: str = SITE_URL
    ):
        self.db = connection
        self.user_repo = user_repository
        self.session_repo = session_repository
        self.reset_repo = reset_repository
        self.email = email_sender or EmailSender()
        self.site_url = site_url.rstrip("/")

    def request_reset(self, email: Optional[str]) -> str:
        """Issue a reset token and email the link.

        Args:
            email: Address typed by the user

        Returns:
            The generic confirmation message

        Raises:
            ValidationError: Missing or malformed email
        """
        email = (email or "").strip()
        if not email:
            raise ValidationError("Email is required")
        if not re.match(EMAIL_REGEX, email):
            raise ValidationError("Invalid email format")

        user = self.user_repo.get_by_email(email)
        if not user:
            logger.info("Password reset requested for unknown email")
            return GENERIC_RESET_MESSAGE

        if self.reset_repo.has_recent_request(user["id"], PASSWORD_RESET_THROTTLE_MINUTES):
            logger.info("Password reset throttled", extra={"user_id": user["id"]})
            return GENERIC_RESET_MESSAGE

        token = self.reset_repo.create(user["id"], PASSWORD_RESET_EXPIRY_HOURS)
        expires_at = datetime.now(timezone.utc) + timedelta(hours=PASSWORD_RESET_EXPIRY_HOURS)
        reset_url = f"{self.site_url}/reset-password?token={token}"

        try:
            self.email.send_password_reset(user["email"], reset_url, expires_at)
        except AppError as e:
            # The token stays valid; the user can ask again after the throttle window
            logger.error("Failed to send password reset email: %s", e.message, extra={"user_id": user["id"]})

        return GENERIC_RESET_MESSAGE

    def verify_token(self, token: Optional[str]) -> bool:
        """True if the token exists, is unused and has not expired."""
        if not token:
            return False
        row = self.reset_repo.get_by_token(token)
        return bool(row and not row["used"] and not row["expired"])

    def reset_password(self, token: Optional[str], password: Optional[str]) -> str:
        """Set a new password using a reset token.

        Returns:
            Success message

        Raises:
            ValidationError: Missing fields or weak password
            InvalidTokenError: Unknown, used or expired token
        """
        if not token or not password:
            raise ValidationError("Token and password are required")

        problems = validate_password_strength(password)
        if problems:
            raise ValidationError(problems[0], details=problems)

        row = self.reset_repo.get_by_token(token)
        if not row or row["used"] or row["expired"]:
            raise InvalidTokenError()

        user_id = row["user_id"]
        with transaction(self.db):
            # Only one request can flip the row from unused to used
            if not self.reset_repo.mark_used(token, commit=False):
                raise InvalidTokenError()
            self.user_repo.update_password(user_id, password, commit=False)
            self.reset_repo.invalidate_for_user(user_id, commit=False)
            self.session_repo.delete_all_for_user(user_id, commit=False)

        logger.info("Password reset completed", extra={"user_id": user_id})

        user = self.user_repo.get_by_id(user_id)
        if user:
            try:
                self.email.send_password_changed(user["email"])
            except AppError as e:
                logger.error("Failed to send password changed email: %s", e.message, extra={"user_id": user_id})

        return RESET_SUCCESS_MESSAGE

    def cleanup_expired_tokens(self) -> int:
        deleted = self.reset_repo.cleanup_expired()
        if deleted:
            logger.info("Removed %d stale password reset tokens", deleted)
        return deleted
