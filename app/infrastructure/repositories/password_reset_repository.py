"""Password reset token repository.

Tokens are single use and expire one hour after they are issued.
"""
import secrets

from .base import Repository


class PasswordResetRepository(Repository):
    """Repository for password reset tokens.

    Examples:
        >>> repo = PasswordResetRepository(db)
        >>> token = repo.create(user_id=1)
        >>> repo.get_by_token(token)["used"]
        0
    """

    def create(self, user_id: int, expires_hours: int = 1) -> str:
        """Issue a new reset token.

        Args:
            user_id: User the token belongs to
            expires_hours: Lifetime in hours

        Returns:
            URL-safe random token (32 bytes of entropy)
        """
        token = secrets.token_urlsafe(32)
        self._execute(
            """INSERT INTO password_reset_tokens (user_id, token, expires_at)
               VALUES (?, ?, datetime('now', '+' || ? || ' hours'))""",
            (user_id, token, expires_hours)
        )
        self._commit()
        return token

    def get_by_token(self, token: str) -> dict | None:
        """Get a token row with an ``expired`` flag computed by the database.

        Args:
            token: Token string from the reset link

        Returns:
            Token dict or None if the token is unknown
        """
        return self._fetchone(
            """SELECT t.*, (t.expires_at <= datetime('now')) AS expired
               FROM password_reset_tokens t
               WHERE t.token = ?""",
            (token,)
        )

    def has_recent_request(self, user_id: int, minutes: int) -> bool:
        """True if a token was issued for the user within ``minutes``."""
        row = self._fetchone(
            """SELECT 1 FROM password_reset_tokens
               WHERE user_id = ? AND created_at > datetime('now', '-' || ? || ' minutes')
               LIMIT 1""",
            (user_id, minutes)
        )
        return row is not None

    def mark_used(self, token: str, commit: bool = True) -> bool:
        """Mark a token as consumed.

        Returns:
            True if an unused, unexpired token was updated
        """
        cursor = self._execute(
            """UPDATE password_reset_tokens
               SET used = 1, used_at = CURRENT_TIMESTAMP
               WHERE token = ? AND used = 0 AND expires_at > datetime('now')""",
            (token,)
        )
        self._commit(commit)
        return cursor.rowcount > 0

    def invalidate_for_user(self, user_id: int, commit: bool = True) -> int:
        """Consume every outstanding token of a user.

        Returns:
            Number of tokens invalidated
        """
        cursor = self._execute(
            """UPDATE password_reset_tokens
               SET used = 1, used_at = CURRENT_TIMESTAMP
               WHERE user_id = ? AND used = 0""",
            (user_id,)
        )
        self._commit(commit)
        return cursor.rowcount

    def cleanup_expired(self) -> int:
        """Delete tokens that expired or were used more than a day ago.

        Returns:
            Number of tokens deleted
        """
        cursor = self._execute(
            """DELETE FROM password_reset_tokens
               WHERE expires_at <= datetime('now', '-1 day')
                  OR (used = 1 AND used_at <= datetime('now', '-1 day'))"""
        )
        self._commit()
        return cursor.rowcount
