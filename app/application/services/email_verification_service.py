"""Email verification service - verification links after registration.

Registration sends a link to ``{SITE_URL}/api/auth/verify-email?token=...``
that stays valid for ``EMAIL_VERIFICATION_EXPIRY_HOURS``. Asking for a new
link replaces the old token and answers the same whether or not the
account exists.
"""
import logging
import re
from typing import Optional

from ...config import EMAIL_VERIFICATION_EXPIRY_HOURS, SITE_URL
from ...errors import AppError, ValidationError
from ...infrastructure.repositories import UserRepository
from ...infrastructure.services.email import EmailSender
from .password_reset_service import EMAIL_REGEX, InvalidTokenError

logger = logging.getLogger(__name__)

GENERIC_RESEND_MESSAGE = (
    "If an unverified account exists with this email, a verification link has been sent."
)
VERIFIED_MESSAGE = "Email verified successfully."


class EmailVerificationService:
    """Service for confirming account email addresses."""

    def __init__(
        self,
        user_repository: UserRepository,
        email_sender: Optional[EmailSender] = None,
        site_url: str = SITE_URL,
        expires_hours: int = EMAIL_VERIFICATION_EXPIRY_HOURS
    ):
        self.user_repo = user_repository
        self.email = email_sender or EmailSender()
        self.site_url = site_url.rstrip("/")
        self.expires_hours = expires_hours

    def send_verification(self, user: dict) -> bool:
        """Issue a fresh token for ``user`` and email the link.

        Returns:
            True if the message was handed to the mail provider
        """
        token = self.user_repo.set_verification_token(user["id"], self.expires_hours)
        url = f"{self.site_url}/api/auth/verify-email?token={token}"
        try:
            return self.email.send_email_verification(user["email"], user["name"], url, self.expires_hours)
        except AppError as e:
            # The token stays valid; the user can ask for the link again
            logger.error("Failed to send verification email: %s", e.message, extra={"user_id": user["id"]})
            return False

    def resend(self, email: Optional[str]) -> str:
        """Send a new link to an unverified account.

        Raises:
            ValidationError: Missing or malformed email
        """
        email = (email or "").strip()
        if not email or not re.match(EMAIL_REGEX, email):
            raise ValidationError("Invalid email format")

        user = self.user_repo.get_by_email(email)
        if not user:
            logger.info("Verification resend requested for unknown email")
        elif user["email_verified"]:
            logger.info("Verification resend for verified account", extra={"user_id": user["id"]})
        else:
            self.send_verification(user)
        return GENERIC_RESEND_MESSAGE

    def verify(self, token: Optional[str]) -> str:
        """Mark the owner of ``token`` as verified.

        Raises:
            InvalidTokenError: Unknown, consumed or expired token
        """
        if not token:
            raise InvalidTokenError("Invalid or expired verification token")

        user = self.user_repo.get_by_verification_token(token)
        if not user or user["expired"] or not self.user_repo.mark_email_verified(user["id"], token):
            raise InvalidTokenError("Invalid or expired verification token")

        logger.info("Email verified", extra={"user_id": user["id"]})
        return VERIFIED_MESSAGE
