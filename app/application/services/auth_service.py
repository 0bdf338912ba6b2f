"""Authentication service - handles registration, login/logout and sessions."""
import logging
import re
from typing import Optional, Tuple

from ...config import SESSION_MAX_AGE
from ...errors import AuthenticationError, ConflictError, ValidationError
from ...infrastructure.repositories import UserRepository, SessionRepository
from .password_reset_service import EMAIL_REGEX, validate_password_strength

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication operations.

    Responsibilities:
    - User registration and credential checks
    - Session creation, lookup and deletion
    """

    def __init__(
        self,
        user_repository: UserRepository,
        session_repository: SessionRepository
    ):
        self.user_repo = user_repository
        self.session_repo = session_repository

    def register(self, email: str, password: str, name: str) -> Tuple[dict, str]:
        """Create an account and open a session for it.

        Args:
            email: Email address (normalized to lowercase)
            password: Plain text password
            name: Display name

        Returns:
            Tuple of (user dict, session ID)

        Raises:
            ValidationError: Malformed email, weak password or missing name
            ConflictError: Email already registered
        """
        email = (email or "").strip()
        name = (name or "").strip()

        if not email or not re.match(EMAIL_REGEX, email):
            raise ValidationError("Invalid email format")
        if not name:
            raise ValidationError("Name is required")

        problems = validate_password_strength(password or "")
        if problems:
            raise ValidationError(problems[0], details=problems)

        if self.user_repo.get_by_email(email):
            raise ConflictError("An account with this email already exists")

        user_id = self.user_repo.create(email, password, name)
        logger.info("User registered", extra={"user_id": user_id})
        return self.user_repo.get_by_id(user_id), self.create_session(user_id)

    def login(self, email: str, password: str) -> Tuple[dict, str]:
        """Check credentials and open a session.

        Raises:
            AuthenticationError: Unknown email or wrong password
        """
        user = self.user_repo.authenticate(email or "", password or "")
        if not user:
            logger.warning("Failed login attempt")
            raise AuthenticationError("Invalid email or password")
        return user, self.create_session(user["id"])

    def create_session(self, user_id: int) -> str:
        return self.session_repo.create(user_id, expires_hours=SESSION_MAX_AGE // 3600)

    def get_session(self, session_id: str) -> Optional[dict]:
        """Get valid session by ID.

        Returns:
            Session dict joined with the user's email, name and role, or None
        """
        if not session_id:
            return None
        return self.session_repo.get_valid(session_id)

    def logout(self, session_id: Optional[str]) -> bool:
        if not session_id:
            return False
        return self.session_repo.delete(session_id)

    def cleanup_expired_sessions(self) -> int:
        return self.session_repo.cleanup_expired()
