"""Review repository - course ratings and comments."""
from typing import Optional

from .base import Repository


class ReviewRepository(Repository):
    """Repository for course reviews (one per user and course)."""

    def create(self, user_id: int, course_id: int, rating: int, comment: Optional[str]) -> dict:
        """Insert a review awaiting approval.

        Raises:
            sqlite3.IntegrityError: The user already reviewed this course

        Returns:
            The stored review dict
        """
        cursor = self._execute(
            """INSERT INTO reviews (user_id, course_id, rating, comment)
               VALUES (?, ?, ?, ?)""",
            (user_id, course_id, rating, comment)
        )
        self._commit()
        return self.get_by_id(cursor.lastrowid)

    def get_by_id(self, review_id: int) -> dict | None:
        return self._fetchone("SELECT * FROM reviews WHERE id = ?", (review_id,))

    def exists(self, user_id: int, course_id: int) -> bool:
        return self._fetchone(
            "SELECT 1 FROM reviews WHERE user_id = ? AND course_id = ?",
            (user_id, course_id)
        ) is not None

    def list_approved(self, course_id: int, limit: int = 50, offset: int = 0) -> list[dict]:
        """Approved reviews with the reviewer's name, newest first."""
        return self._fetchall(
            """SELECT r.*, u.name AS user_name
               FROM reviews r JOIN users u ON r.user_id = u.id
               WHERE r.course_id = ? AND r.is_approved = 1
               ORDER BY r.created_at DESC, r.id DESC
               LIMIT ? OFFSET ?""",
            (course_id, limit, offset)
        )

    def rating_summary(self, course_id: int) -> dict:
        """Average rating and count over approved reviews.

        Returns:
            Dict with average (rounded to 1 decimal, 0 when none) and count
        """
        row = self._fetchone(
            """SELECT AVG(rating) AS average, COUNT(*) AS count
               FROM reviews WHERE course_id = ? AND is_approved = 1""",
            (course_id,)
        ) or {}
        average = row.get("average")
        return {
            "average": round(average, 1) if average is not None else 0,
            "count": row.get("count") or 0,
        }

    def approve(self, review_id: int) -> bool:
        cursor = self._execute(
            "UPDATE reviews SET is_approved = 1, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (review_id,)
        )
        self._commit()
        return cursor.rowcount > 0
