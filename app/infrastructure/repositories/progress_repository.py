"""Lesson progress repository."""
from .base import Repository


class ProgressRepository(Repository):
    """Per-user lesson watch time and completion."""

    def record_time(self, user_id: int, course_id: int, lesson_id: str, seconds: int) -> None:
        """Upsert watch time, keeping the largest value seen."""
        self._execute(
            """INSERT INTO lesson_progress
               (user_id, course_id, lesson_id, time_spent_seconds, last_accessed_at, updated_at)
               VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
               ON CONFLICT (user_id, course_id, lesson_id) DO UPDATE SET
                   time_spent_seconds = MAX(lesson_progress.time_spent_seconds, excluded.time_spent_seconds),
                   last_accessed_at = CURRENT_TIMESTAMP,
                   updated_at = CURRENT_TIMESTAMP""",
            (user_id, course_id, lesson_id, seconds)
        )
        self._commit()

    def mark_completed(self, user_id: int, course_id: int, lesson_id: str) -> None:
        """Mark a lesson complete; the first completion time is kept."""
        self._execute(
            """INSERT INTO lesson_progress
               (user_id, course_id, lesson_id, completed, completed_at, last_accessed_at, updated_at)
               VALUES (?, ?, ?, 1, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
               ON CONFLICT (user_id, course_id, lesson_id) DO UPDATE SET
                   completed = 1,
                   completed_at = COALESCE(lesson_progress.completed_at, CURRENT_TIMESTAMP),
                   last_accessed_at = CURRENT_TIMESTAMP,
                   updated_at = CURRENT_TIMESTAMP""",
            (user_id, course_id, lesson_id)
        )
        self._commit()

    def get(self, user_id: int, course_id: int, lesson_id: str) -> dict | None:
        return self._fetchone(
            """SELECT * FROM lesson_progress
               WHERE user_id = ? AND course_id = ? AND lesson_id = ?""",
            (user_id, course_id, lesson_id)
        )

    def list_for_course(self, user_id: int, course_id: int) -> list[dict]:
        return self._fetchall(
            """SELECT * FROM lesson_progress
               WHERE user_id = ? AND course_id = ?
               ORDER BY lesson_id""",
            (user_id, course_id)
        )
