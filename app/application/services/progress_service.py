"""Lesson progress service - watch time and completion for enrolled users."""
import logging
from typing import Any, Optional

from ...errors import AuthorizationError, ValidationError
from ...infrastructure.repositories import OrderRepository, ProgressRepository

logger = logging.getLogger(__name__)

# Watching this share of a lesson counts as finishing it
AUTO_COMPLETE_PERCENT = 90


def serialize_progress(row: dict) -> dict:
    return {
        "courseId": row["course_id"],
        "lessonId": row["lesson_id"],
        "timeSpentSeconds": row["time_spent_seconds"],
        "completed": bool(row["completed"]),
        "completedAt": row["completed_at"],
        "lastAccessedAt": row["last_accessed_at"],
    }


class ProgressService:
    """Service for lesson progress."""

    def __init__(self, progress_repository: ProgressRepository, order_repository: OrderRepository):
        self.progress_repo = progress_repository
        self.order_repo = order_repository

    def _check(self, user_id: int, course_id: Any, lesson_id: Any) -> None:
        if not course_id or not lesson_id:
            raise ValidationError("courseId and lessonId are required")
        if not self.order_repo.is_enrolled(user_id, course_id):
            raise AuthorizationError("Not enrolled in this course")

    def update_progress(
        self,
        user_id: int,
        course_id: Any,
        lesson_id: Any,
        progress: Optional[float] = None,
        current_time: Optional[float] = None
    ) -> dict:
        """Record watch position; ``progress`` is a 0-100 percentage.

        Returns:
            The lesson's progress after the update
        """
        self._check(user_id, course_id, lesson_id)
        lesson_id = str(lesson_id)

        if current_time is not None and (not isinstance(current_time, (int, float)) or current_time < 0):
            raise ValidationError("currentTime must be a non-negative number")
        if progress is not None and (not isinstance(progress, (int, float)) or not 0 <= progress <= 100):
            raise ValidationError("progress must be between 0 and 100")

        if current_time is not None:
            self.progress_repo.record_time(user_id, course_id, lesson_id, int(current_time))
        if progress is not None and progress >= AUTO_COMPLETE_PERCENT:
            self.progress_repo.mark_completed(user_id, course_id, lesson_id)

        row = self.progress_repo.get(user_id, course_id, lesson_id)
        if row is None:
            self.progress_repo.record_time(user_id, course_id, lesson_id, 0)
            row = self.progress_repo.get(user_id, course_id, lesson_id)
        return serialize_progress(row)

    def complete_lesson(self, user_id: int, course_id: Any, lesson_id: Any) -> dict:
        self._check(user_id, course_id, lesson_id)
        lesson_id = str(lesson_id)
        self.progress_repo.mark_completed(user_id, course_id, lesson_id)
        logger.info("Lesson completed", extra={"user_id": user_id, "course_id": course_id, "lesson_id": lesson_id})
        return serialize_progress(self.progress_repo.get(user_id, course_id, lesson_id))

    def get_course_progress(self, user_id: int, course_id: int) -> dict:
        rows = self.progress_repo.list_for_course(user_id, course_id)
        return {
            "courseId": course_id,
            "lessons": [serialize_progress(row) for row in rows],
            "completedLessons": sum(1 for row in rows if row["completed"]),
        }
