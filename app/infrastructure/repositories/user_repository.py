"""User repository - accounts, password hashes, roles and email verification."""
import secrets

import bcrypt

from .base import Repository

# Columns safe to hand to the API layer
PUBLIC_COLUMNS = "id, email, name, role, email_verified, created_at"


class UserRepository(Repository):
    """Repository for user entity operations.

    Examples:
        >>> repo = UserRepository(db)
        >>> user_id = repo.create("jane@example.com", "Secret123", "Jane")
        >>> repo.authenticate("jane@example.com", "Secret123")["id"] == user_id
        True
    """

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower()

    @staticmethod
    def _hash_password(password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    @staticmethod
    def _verify_password(password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            # Malformed hash in the database
            return False

    def get_by_id(self, user_id: int) -> dict | None:
        """Get user by ID.

        Args:
            user_id: User ID

        Returns:
            User dict (without password hash) or None if not found
        """
        return self._fetchone(
            f"SELECT {PUBLIC_COLUMNS} FROM users WHERE id = ?",
            (user_id,)
        )

    def get_by_email(self, email: str) -> dict | None:
        """Get user by email (case-insensitive).

        Args:
            email: Email address

        Returns:
            Full user row including password hash, or None
        """
        return self._fetchone(
            "SELECT * FROM users WHERE email = ?",
            (self.normalize_email(email),)
        )

    def create(self, email: str, password: str, name: str, role: str = "user") -> int:
        """Create new user.

        Args:
            email: Unique email address
            password: Plain text password (will be hashed)
            name: Display name
            role: "user" or "admin"

        Returns:
            New user ID
        """
        cursor = self._execute(
            """INSERT INTO users (email, name, password_hash, role)
               VALUES (?, ?, ?, ?)""",
            (self.normalize_email(email), name.strip(), self._hash_password(password), role)
        )
        self._commit()
        return cursor.lastrowid

    def authenticate(self, email: str, password: str) -> dict | None:
        """Check credentials.

        Returns:
            Public user dict if the password matches, None otherwise
        """
        user = self.get_by_email(email)
        if not user or not self._verify_password(password, user["password_hash"]):
            return None
        return self.get_by_id(user["id"])

    def update_password(self, user_id: int, new_password: str, commit: bool = True) -> bool:
        """Replace the user's password hash.

        Args:
            user_id: User ID
            new_password: New plain text password
            commit: Commit immediately (False inside a transaction)

        Returns:
            True if user existed and was updated
        """
        cursor = self._execute(
            """UPDATE users SET password_hash = ?, updated_at = CURRENT_TIMESTAMP
               WHERE id = ?""",
            (self._hash_password(new_password), user_id)
        )
        self._commit(commit)
        return cursor.rowcount > 0

    def set_role(self, user_id: int, role: str) -> bool:
        cursor = self._execute(
            "UPDATE users SET role = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (role, user_id)
        )
        self._commit()
        return cursor.rowcount > 0

    def is_admin(self, user_id: int) -> bool:
        row = self._fetchone("SELECT role FROM users WHERE id = ?", (user_id,))
        return bool(row and row["role"] == "admin")

    def list_all(self) -> list[dict]:
        """List all users ordered by id."""
        return self._fetchall(f"SELECT {PUBLIC_COLUMNS} FROM users ORDER BY id")

    def set_verification_token(self, user_id: int, expires_hours: int) -> str:
        """Issue a new email verification token, replacing any earlier one.

        Returns:
            URL-safe random token
        """
        token = secrets.token_urlsafe(32)
        self._execute(
            """UPDATE users
               SET email_verification_token = ?,
                   email_verification_expires = datetime('now', '+' || ? || ' hours'),
                   updated_at = CURRENT_TIMESTAMP
               WHERE id = ?""",
            (token, expires_hours, user_id)
        )
        self._commit()
        return token

    def get_by_verification_token(self, token: str) -> dict | None:
        """User owning a verification token, with an ``expired`` flag."""
        return self._fetchone(
            f"""SELECT {PUBLIC_COLUMNS},
                       (email_verification_expires <= datetime('now')) AS expired
                FROM users WHERE email_verification_token = ?""",
            (token,)
        )

    def mark_email_verified(self, user_id: int, token: str) -> bool:
        """Verify the email and consume the token.

        Returns:
            True if the token was still current
        """
        cursor = self._execute(
            """UPDATE users
               SET email_verified = 1,
                   email_verification_token = NULL,
                   email_verification_expires = NULL,
                   updated_at = CURRENT_TIMESTAMP
               WHERE id = ? AND email_verification_token = ?
                 AND email_verification_expires > datetime('now')""",
            (user_id, token)
        )
        self._commit()
        return cursor.rowcount > 0
