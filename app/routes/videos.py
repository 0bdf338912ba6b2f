"""Course video routes - lesson playback and admin video management."""
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ..application.services import VideoError, VideoErrorCode
from ..database import create_connection
from ..dependencies import require_admin, require_user
from ..errors import AuthorizationError
from ..infrastructure.repositories import OrderRepository
from ..infrastructure.services.rate_limiter import RateLimitProfiles, rate_limit
from .deps import get_video_service

router = APIRouter()
admin_router = APIRouter(
    prefix="/api/admin/videos",
    dependencies=[Depends(rate_limit(RateLimitProfiles.ADMIN))]
)


class VideoCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    course_id: Optional[int] = Field(None, alias="courseId")
    lesson_id: Optional[str] = Field(None, alias="lessonId")
    cloudflare_video_id: Optional[str] = Field(None, alias="cloudflareVideoId")
    title: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[float] = None
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl")
    status: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


class VideoUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[float] = None
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl")
    status: Optional[str] = None
    playback_hls_url: Optional[str] = Field(None, alias="playbackHlsUrl")
    playback_dash_url: Optional[str] = Field(None, alias="playbackDashUrl")
    processing_progress: Optional[int] = Field(None, alias="processingProgress")
    error_message: Optional[str] = Field(None, alias="errorMessage")
    metadata: Optional[dict[str, Any]] = None


class UploadUrlInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    course_id: int = Field(alias="courseId")
    lesson_id: str = Field(alias="lessonId")


@router.get("/api/courses/{course_id}/videos")
def list_course_videos(course_id: int):
    """Ready videos of a course, ordered by lesson."""
    db = create_connection()
    try:
        return {"success": True, "videos": get_video_service(db).get_course_videos(course_id)}
    finally:
        db.close()


@router.get("/api/courses/{course_id}/lessons/{lesson_id}/video")
def get_lesson_video(course_id: int, lesson_id: str, request: Request):
    """Playback data for a lesson; enrolled users and admins only."""
    user = require_user(request)

    db = create_connection()
    try:
        if user["role"] != "admin" and not OrderRepository(db).is_enrolled(user["id"], course_id):
            raise AuthorizationError("Not enrolled in this course")

        service = get_video_service(db)
        video = service.get_lesson_video(course_id, lesson_id)
        if not video:
            raise VideoError(
                f"No video for course {course_id}, lesson {lesson_id}",
                VideoErrorCode.VIDEO_NOT_FOUND
            )
        return {"success": True, "video": service.get_video_playback_data(video["id"])}
    finally:
        db.close()


@admin_router.get("")
def admin_list_videos(request: Request, course_id: int = Query(alias="courseId")):
    require_admin(request)
    db = create_connection()
    try:
        videos = get_video_service(db).get_course_videos(course_id, include_not_ready=True)
        return {"success": True, "videos": videos}
    finally:
        db.close()


@admin_router.post("")
def admin_create_video(data: VideoCreate, request: Request):
    require_admin(request)
    db = create_connection()
    try:
        video = get_video_service(db).create_course_video(data.model_dump(exclude_none=True))
        return JSONResponse(status_code=201, content={"success": True, "video": video})
    finally:
        db.close()


@admin_router.post("/upload-url")
def admin_create_upload_url(data: UploadUrlInput, request: Request):
    """One-time Stream direct upload URL for a lesson."""
    require_admin(request)
    db = create_connection()
    try:
        upload = get_video_service(db).create_upload_url(data.course_id, data.lesson_id)
        return {"success": True, "upload": upload}
    finally:
        db.close()


@admin_router.get("/stats")
def admin_video_stats(request: Request, course_id: Optional[int] = Query(None, alias="courseId")):
    require_admin(request)
    db = create_connection()
    try:
        return {"success": True, "stats": get_video_service(db).get_video_stats(course_id)}
    finally:
        db.close()


@admin_router.post("/sync")
def admin_sync_videos(request: Request):
    """Refresh every queued or in-progress video from Cloudflare."""
    require_admin(request)
    db = create_connection()
    try:
        return {"success": True, **get_video_service(db).sync_all_processing_videos()}
    finally:
        db.close()


@admin_router.patch("/{video_id}")
def admin_update_video(video_id: int, data: VideoUpdate, request: Request):
    require_admin(request)
    db = create_connection()
    try:
        video = get_video_service(db).update_video_metadata(video_id, data.model_dump(exclude_unset=True))
        return {"success": True, "video": video}
    finally:
        db.close()


@admin_router.delete("/{video_id}")
def admin_delete_video(
    video_id: int,
    request: Request,
    delete_from_cloudflare: bool = Query(True, alias="deleteFromCloudflare")
):
    require_admin(request)
    db = create_connection()
    try:
        get_video_service(db).delete_course_video(video_id, delete_from_cloudflare)
        return {"success": True}
    finally:
        db.close()


@admin_router.get("/{video_id}/status")
def admin_video_status(video_id: int, request: Request):
    """Sync one video from Cloudflare and return the stored row."""
    require_admin(request)
    db = create_connection()
    try:
        return {"success": True, "video": get_video_service(db).sync_video_status(video_id)}
    finally:
        db.close()
