"""Course video repository - Cloudflare Stream video metadata per lesson."""
import json
from typing import Any, Optional

from .base import Repository

# Columns the update operation may touch
UPDATABLE_FIELDS = (
    "title",
    "description",
    "duration",
    "thumbnail_url",
    "status",
    "playback_hls_url",
    "playback_dash_url",
    "processing_progress",
    "error_message",
    "metadata",
)


def _decode(row: dict | None) -> dict | None:
    if row is not None and isinstance(row.get("metadata"), str):
        row["metadata"] = json.loads(row["metadata"] or "{}")
    return row


class VideoRepository(Repository):
    """Repository for ``course_videos`` rows.

    The ``metadata`` column holds JSON; it is decoded on read and
    encoded on write.
    """

    def create(
        self,
        course_id: int,
        lesson_id: str,
        cloudflare_video_id: str,
        title: str,
        description: Optional[str] = None,
        duration: Optional[float] = None,
        thumbnail_url: Optional[str] = None,
        status: str = "queued",
        metadata: Optional[dict] = None
    ) -> dict:
        """Insert a video row.

        Raises:
            sqlite3.IntegrityError: Duplicate Cloudflare id or lesson slot

        Returns:
            The stored video dict
        """
        cursor = self._execute(
            """INSERT INTO course_videos
               (course_id, lesson_id, cloudflare_video_id, title, description,
                duration, thumbnail_url, status, metadata)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (course_id, lesson_id, cloudflare_video_id, title, description,
             duration, thumbnail_url, status, json.dumps(metadata or {}))
        )
        self._commit()
        return self.get_by_id(cursor.lastrowid)

    def get_by_id(self, video_id: int) -> dict | None:
        return _decode(self._fetchone("SELECT * FROM course_videos WHERE id = ?", (video_id,)))

    def get_by_cloudflare_id(self, cloudflare_video_id: str) -> dict | None:
        return _decode(self._fetchone(
            "SELECT * FROM course_videos WHERE cloudflare_video_id = ?",
            (cloudflare_video_id,)
        ))

    def get_lesson_video(self, course_id: int, lesson_id: str) -> dict | None:
        return _decode(self._fetchone(
            "SELECT * FROM course_videos WHERE course_id = ? AND lesson_id = ?",
            (course_id, lesson_id)
        ))

    def list_for_course(self, course_id: int, include_not_ready: bool = False) -> list[dict]:
        """List a course's videos ordered by lesson.

        Args:
            course_id: Course ID
            include_not_ready: Include queued, processing and failed videos

        Returns:
            List of video dicts
        """
        sql = "SELECT * FROM course_videos WHERE course_id = ?"
        if not include_not_ready:
            sql += " AND status = 'ready'"
        sql += " ORDER BY lesson_id"
        return [_decode(row) for row in self._fetchall(sql, (course_id,))]

    def list_processing(self) -> list[dict]:
        """Videos still waiting on Cloudflare."""
        return [_decode(row) for row in self._fetchall(
            "SELECT * FROM course_videos WHERE status IN ('queued', 'inprogress') ORDER BY id"
        )]

    def update(self, video_id: int, fields: dict[str, Any]) -> dict | None:
        """Update the given columns.

        Args:
            video_id: Video ID
            fields: Column -> value, restricted to UPDATABLE_FIELDS

        Returns:
            Updated video dict, or None if the video does not exist
        """
        columns = [name for name in UPDATABLE_FIELDS if name in fields]
        if not columns:
            return self.get_by_id(video_id)

        values = [
            json.dumps(fields[name]) if name == "metadata" else fields[name]
            for name in columns
        ]
        assignments = ", ".join(f"{name} = ?" for name in columns)
        cursor = self._execute(
            f"UPDATE course_videos SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            tuple(values) + (video_id,)
        )
        self._commit()
        if cursor.rowcount == 0:
            return None
        return self.get_by_id(video_id)

    def delete(self, video_id: int) -> bool:
        cursor = self._execute("DELETE FROM course_videos WHERE id = ?", (video_id,))
        self._commit()
        return cursor.rowcount > 0

    def stats(self, course_id: Optional[int] = None) -> dict:
        """Aggregate counts by status and total ready duration.

        Args:
            course_id: Restrict to one course

        Returns:
            Dict with total, ready, processing, queued, error, total_duration
        """
        sql = """SELECT
                    COUNT(*) AS total,
                    SUM(CASE WHEN status = 'ready' THEN 1 ELSE 0 END) AS ready,
                    SUM(CASE WHEN status = 'inprogress' THEN 1 ELSE 0 END) AS processing,
                    SUM(CASE WHEN status = 'queued' THEN 1 ELSE 0 END) AS queued,
                    SUM(CASE WHEN status = 'error' THEN 1 ELSE 0 END) AS error,
                    SUM(COALESCE(duration, 0)) AS total_duration
                 FROM course_videos"""
        params: tuple = ()
        if course_id is not None:
            sql += " WHERE course_id = ?"
            params = (course_id,)
        row = self._fetchone(sql, params) or {}
        return {
            "total": row.get("total") or 0,
            "ready": row.get("ready") or 0,
            "processing": row.get("processing") or 0,
            "queued": row.get("queued") or 0,
            "error": row.get("error") or 0,
            "total_duration": row.get("total_duration") or 0,
        }
