"""Session repository - login sessions referenced by the session cookie."""
import secrets

from .base import Repository


class SessionRepository(Repository):
    """Repository for session management.

    Examples:
        >>> repo = SessionRepository(db)
        >>> session_id = repo.create(1, expires_hours=24)
        >>> session = repo.get_valid(session_id)
        >>> repo.delete(session_id)  # logout
    """

    def create(self, user_id: int, expires_hours: int = 24 * 7) -> str:
        """Create new session for user.

        Args:
            user_id: User ID to create session for
            expires_hours: Session lifetime in hours (default: 7 days)

        Returns:
            Secure random session ID
        """
        session_id = secrets.token_urlsafe(32)

        self._execute(
            """INSERT INTO sessions (id, user_id, expires_at)
               VALUES (?, ?, datetime('now', '+' || ? || ' hours'))""",
            (session_id, user_id, expires_hours)
        )
        self._commit()
        return session_id

    def get_valid(self, session_id: str) -> dict | None:
        """Get session if valid (not expired).

        Args:
            session_id: Session ID from cookie

        Returns:
            Session dict with user email, name, role and verification flag, or None
        """
        return self._fetchone(
            """SELECT s.id, s.user_id, s.expires_at, u.email, u.name, u.role, u.email_verified
               FROM sessions s
               JOIN users u ON s.user_id = u.id
               WHERE s.id = ? AND s.expires_at > datetime('now')""",
            (session_id,)
        )

    def delete(self, session_id: str) -> bool:
        """Delete session (logout).

        Returns:
            True if session existed and was deleted
        """
        cursor = self._execute("DELETE FROM sessions WHERE id = ?", (session_id,))
        self._commit()
        return cursor.rowcount > 0

    def delete_all_for_user(self, user_id: int, commit: bool = True) -> int:
        """Delete all sessions for user (force logout everywhere).

        Args:
            user_id: User ID
            commit: Commit immediately (False inside a transaction)

        Returns:
            Number of sessions deleted
        """
        cursor = self._execute("DELETE FROM sessions WHERE user_id = ?", (user_id,))
        self._commit(commit)
        return cursor.rowcount

    def cleanup_expired(self) -> int:
        """Delete all expired sessions.

        Returns:
            Number of sessions cleaned up
        """
        cursor = self._execute("DELETE FROM sessions WHERE expires_at <= datetime('now')")
        self._commit()
        return cursor.rowcount
