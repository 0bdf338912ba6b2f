"""Video service - course video metadata backed by Cloudflare Stream.

The database row is the source of truth; Redis holds read-through copies:

    video:{id}                    one video             (1 hour)
    video:{course_id}:{lesson_id} one lesson's video    (1 hour)
    course_videos:{course_id}     every video of a course (30 minutes)

Every write drops the keys it could have made stale.
"""
import logging
import sqlite3
from enum import Enum
from typing import Any, Optional

from ...errors import AppError, ExternalServiceError
from ...infrastructure.repositories import CatalogRepository, VideoRepository
from ...infrastructure.repositories.video_repository import UPDATABLE_FIELDS
from ...infrastructure.services.cloudflare import (
    CloudflareStreamClient,
    get_cloudflare,
    get_playback_url,
    get_thumbnail_url,
    parse_status,
)
from ...infrastructure.services.redis_client import RedisClient, get_redis

logger = logging.getLogger(__name__)

VIDEO_CACHE_TTL = 3600
COURSE_VIDEOS_CACHE_TTL = 1800

VIDEO_STATUSES = ("queued", "inprogress", "ready", "error")

# Stream states that predate encoding are stored as queued
_STATE_ALIASES = {"pendingupload": "queued", "downloading": "queued"}


class VideoErrorCode(str, Enum):
    VIDEO_NOT_FOUND = "VIDEO_NOT_FOUND"
    COURSE_NOT_FOUND = "COURSE_NOT_FOUND"
    DUPLICATE_VIDEO = "DUPLICATE_VIDEO"
    CLOUDFLARE_ERROR = "CLOUDFLARE_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    CACHE_ERROR = "CACHE_ERROR"
    INVALID_INPUT = "INVALID_INPUT"


_STATUS_BY_CODE = {
    VideoErrorCode.VIDEO_NOT_FOUND: 404,
    VideoErrorCode.COURSE_NOT_FOUND: 404,
    VideoErrorCode.DUPLICATE_VIDEO: 409,
    VideoErrorCode.INVALID_INPUT: 400,
    VideoErrorCode.CLOUDFLARE_ERROR: 502,
}


class VideoError(AppError):
    """Video operation failure; the HTTP status follows from the code."""

    def __init__(self, message: str, code: VideoErrorCode, details: Any = None):
        super().__init__(
            message,
            _STATUS_BY_CODE.get(code, 500),
            code.value,
            is_operational=code in _STATUS_BY_CODE
        )
        self.video_code = code
        if details is not None:
            self.context = {"details": str(details)}


def normalize_state(state: Optional[str]) -> str:
    state = (state or "queued").lower()
    state = _STATE_ALIASES.get(state, state)
    return state if state in VIDEO_STATUSES else "queued"


def video_cache_key(video_id: int) -> str:
    return f"video:{video_id}"


def lesson_cache_key(course_id: int, lesson_id: str) -> str:
    return f"video:{course_id}:{lesson_id}"


def course_videos_cache_key(course_id: int) -> str:
    return f"course_videos:{course_id}"


class VideoService:
    """Service for course video operations.

    Responsibilities:
    - Video row CRUD with input validation
    - Read-through caching and invalidation
    - Status sync with Cloudflare Stream
    """

    def __init__(
        self,
        video_repository: VideoRepository,
        catalog_repository: CatalogRepository,
        cloudflare: Optional[CloudflareStreamClient] = None,
        cache: Optional[RedisClient] = None
    ):
        self.video_repo = video_repository
        self.catalog_repo = catalog_repository
        self.cloudflare = cloudflare or get_cloudflare()
        self.cache = cache or get_redis()

    # --- cache helpers ---

    def _invalidate_course(self, course_id: int) -> None:
        self.cache.delete(course_videos_cache_key(course_id))
        self.cache.delete_pattern(f"video:{course_id}:*")

    def _invalidate_video(self, video: dict) -> None:
        self.cache.delete(
            video_cache_key(video["id"]),
            lesson_cache_key(video["course_id"], video["lesson_id"]),
            course_videos_cache_key(video["course_id"])
        )

    # --- CRUD ---

    def create_course_video(self, data: dict) -> dict:
        """Register an uploaded Stream video against a course lesson.

        Args:
            data: course_id, lesson_id, cloudflare_video_id, title and
                optional description, duration, thumbnail_url, status, metadata

        Returns:
            The stored video

        Raises:
            VideoError: INVALID_INPUT, COURSE_NOT_FOUND, DUPLICATE_VIDEO or DATABASE_ERROR
        """
        required = ("course_id", "lesson_id", "cloudflare_video_id", "title")
        if any(not data.get(name) for name in required):
            raise VideoError(
                "Missing required fields: course_id, lesson_id, cloudflare_video_id, title",
                VideoErrorCode.INVALID_INPUT
            )

        course_id = data["course_id"]
        if not self.catalog_repo.get_course(course_id):
            raise VideoError(f"Course not found: {course_id}", VideoErrorCode.COURSE_NOT_FOUND)

        try:
            video = self.video_repo.create(
                course_id=course_id,
                lesson_id=data["lesson_id"],
                cloudflare_video_id=data["cloudflare_video_id"],
                title=data["title"],
                description=data.get("description"),
                duration=data.get("duration"),
                thumbnail_url=data.get("thumbnail_url"),
                status=normalize_state(data.get("status")),
                metadata=data.get("metadata")
            )
        except sqlite3.IntegrityError as e:
            message = str(e)
            if "cloudflare_video_id" in message:
                raise VideoError(
                    f"Video with Cloudflare ID {data['cloudflare_video_id']} already exists",
                    VideoErrorCode.DUPLICATE_VIDEO
                )
            if "UNIQUE" in message:
                raise VideoError(
                    f"Video already exists for course {course_id}, lesson {data['lesson_id']}",
                    VideoErrorCode.DUPLICATE_VIDEO
                )
            raise VideoError("Failed to create video", VideoErrorCode.DATABASE_ERROR, e)

        self.cache.set_json(video_cache_key(video["id"]), video, VIDEO_CACHE_TTL)
        self._invalidate_course(course_id)
        logger.info(
            "Created video",
            extra={"video_id": video["id"], "course_id": course_id, "lesson_id": data["lesson_id"]}
        )
        return video

    def get_course_videos(self, course_id: int, include_not_ready: bool = False) -> list[dict]:
        """List a course's videos ordered by lesson; ready ones only by default."""
        key = course_videos_cache_key(course_id)
        cached = self.cache.get_json(key)
        if cached is None:
            cached = self.video_repo.list_for_course(course_id, include_not_ready=True)
            self.cache.set_json(key, cached, COURSE_VIDEOS_CACHE_TTL)

        if include_not_ready:
            return cached
        return [video for video in cached if video["status"] == "ready"]

    def get_lesson_video(self, course_id: int, lesson_id: str) -> Optional[dict]:
        key = lesson_cache_key(course_id, lesson_id)
        cached = self.cache.get_json(key)
        if cached is not None:
            return cached

        video = self.video_repo.get_lesson_video(course_id, lesson_id)
        if video:
            self.cache.set_json(key, video, VIDEO_CACHE_TTL)
            self.cache.set_json(video_cache_key(video["id"]), video, VIDEO_CACHE_TTL)
        return video

    def get_video_by_id(self, video_id: int) -> Optional[dict]:
        key = video_cache_key(video_id)
        cached = self.cache.get_json(key)
        if cached is not None:
            return cached

        video = self.video_repo.get_by_id(video_id)
        if video:
            self.cache.set_json(key, video, VIDEO_CACHE_TTL)
        return video

    def update_video_metadata(self, video_id: int, updates: dict) -> dict:
        """Update stored fields of a video.

        Raises:
            VideoError: INVALID_INPUT when nothing updatable is given,
                VIDEO_NOT_FOUND when the row is missing
        """
        fields = {name: updates[name] for name in UPDATABLE_FIELDS if name in updates}
        if not fields:
            raise VideoError("No fields to update", VideoErrorCode.INVALID_INPUT)

        if "status" in fields:
            if fields["status"] not in VIDEO_STATUSES:
                raise VideoError(f"Invalid status: {fields['status']}", VideoErrorCode.INVALID_INPUT)
        if "processing_progress" in fields:
            progress = fields["processing_progress"]
            if not isinstance(progress, (int, float)) or not 0 <= progress <= 100:
                raise VideoError("processing_progress must be between 0 and 100", VideoErrorCode.INVALID_INPUT)

        video = self.video_repo.update(video_id, fields)
        if not video:
            raise VideoError(f"Video not found: {video_id}", VideoErrorCode.VIDEO_NOT_FOUND)

        self._invalidate_video(video)
        logger.info("Updated video", extra={"video_id": video_id, "fields": sorted(fields)})
        return video

    def delete_course_video(self, video_id: int, delete_from_cloudflare: bool = True) -> bool:
        """Delete a video row, and by default the Stream asset first.

        Raises:
            VideoError: VIDEO_NOT_FOUND, or CLOUDFLARE_ERROR (row kept)
        """
        video = self.video_repo.get_by_id(video_id)
        if not video:
            raise VideoError(f"Video not found: {video_id}", VideoErrorCode.VIDEO_NOT_FOUND)

        if delete_from_cloudflare:
            try:
                self.cloudflare.delete_video(video["cloudflare_video_id"])
            except ExternalServiceError as e:
                raise VideoError("Failed to delete video from Cloudflare", VideoErrorCode.CLOUDFLARE_ERROR, e.message)

        self.video_repo.delete(video_id)
        self._invalidate_video(video)
        logger.info("Deleted video", extra={"video_id": video_id, "course_id": video["course_id"]})
        return True

    # --- Cloudflare status ---

    def get_video_playback_data(self, video_id: int) -> dict:
        """Video row combined with live Stream status and playback URLs.

        Falls back to the stored status when Cloudflare is unreachable.
        """
        video = self.get_video_by_id(video_id)
        if not video:
            raise VideoError(f"Video not found: {video_id}", VideoErrorCode.VIDEO_NOT_FOUND)

        uid = video["cloudflare_video_id"]
        try:
            status = parse_status(self.cloudflare.get_video(uid))
            state = normalize_state(status.state)
            cloudflare_status = {
                "state": state,
                "pctComplete": status.pct_complete,
                "errorReasonText": status.error_reason,
            }
            if state != video["status"]:
                video = self.update_video_metadata(video_id, {
                    "status": state,
                    "processing_progress": int(status.pct_complete),
                })
        except ExternalServiceError as e:
            logger.warning("Falling back to stored status for %s: %s", uid, e.message)
            cloudflare_status = {
                "state": video["status"],
                "pctComplete": video["processing_progress"],
            }

        return {
            **video,
            "cloudflare_status": cloudflare_status,
            "is_ready": cloudflare_status["state"] == "ready",
            "playback_urls": {
                "hls": video.get("playback_hls_url") or get_playback_url(uid, "hls"),
                "dash": video.get("playback_dash_url") or get_playback_url(uid, "dash"),
            },
            "thumbnail_url_generated": video.get("thumbnail_url") or get_thumbnail_url(uid),
        }

    def sync_video_status(self, video_id: int) -> dict:
        """Copy state, progress, duration, playback URLs and meta from Stream."""
        video = self.video_repo.get_by_id(video_id)
        if not video:
            raise VideoError(f"Video not found: {video_id}", VideoErrorCode.VIDEO_NOT_FOUND)

        try:
            remote = self.cloudflare.get_video(video["cloudflare_video_id"])
        except ExternalServiceError as e:
            raise VideoError(
                "Failed to sync video status from Cloudflare",
                VideoErrorCode.CLOUDFLARE_ERROR,
                e.message
            )

        status = parse_status(remote)
        state = normalize_state(status.state)
        updates: dict[str, Any] = {
            "status": state,
            "processing_progress": int(status.pct_complete),
            "duration": remote.get("duration") or video["duration"],
        }
        if state == "error" and status.error_reason:
            updates["error_message"] = status.error_reason

        playback = remote.get("playback") or {}
        if state == "ready" and playback:
            updates["playback_hls_url"] = playback.get("hls")
            updates["playback_dash_url"] = playback.get("dash")
        if remote.get("thumbnail"):
            updates["thumbnail_url"] = remote["thumbnail"]
        if remote.get("meta"):
            updates["metadata"] = remote["meta"]

        video = self.update_video_metadata(video_id, updates)
        logger.info("Synced video status", extra={"video_id": video_id, "state": state})
        return video

    def sync_all_processing_videos(self) -> dict:
        """Sync every queued or in-progress video.

        Returns:
            Dict with ``updated`` and ``failed`` counts
        """
        updated = failed = 0
        for video in self.video_repo.list_processing():
            try:
                self.sync_video_status(video["id"])
                updated += 1
            except VideoError as e:
                failed += 1
                logger.error("Failed to sync video %s: %s", video["id"], e.message)

        logger.info("Synced processing videos", extra={"updated": updated, "failed": failed})
        return {"updated": updated, "failed": failed}

    def get_video_stats(self, course_id: Optional[int] = None) -> dict:
        return self.video_repo.stats(course_id)

    def create_upload_url(self, course_id: int, lesson_id: str) -> dict:
        """Reserve a direct creator upload URL tagged with the lesson."""
        if not self.catalog_repo.get_course(course_id):
            raise VideoError(f"Course not found: {course_id}", VideoErrorCode.COURSE_NOT_FOUND)
        try:
            return self.cloudflare.create_direct_upload(
                meta={"courseId": str(course_id), "lessonId": lesson_id}
            )
        except ExternalServiceError as e:
            raise VideoError("Failed to create upload URL", VideoErrorCode.CLOUDFLARE_ERROR, e.message)
