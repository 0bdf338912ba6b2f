"""File upload routes for admin content."""
from fastapi import APIRouter, Depends, File, Request, UploadFile

from ..database import create_connection
from ..dependencies import require_admin
from ..infrastructure.services.rate_limiter import RateLimitProfiles, rate_limit
from .deps import get_upload_service

router = APIRouter()


async def _store(file: UploadFile, request: Request) -> dict:
    user = require_admin(request)
    db = create_connection()
    try:
        stored = await get_upload_service(db).upload(file, user["id"])
        return {"success": True, "file": stored}
    finally:
        db.close()


@router.post("/api/admin/upload", dependencies=[Depends(rate_limit(RateLimitProfiles.ADMIN))])
async def admin_upload(request: Request, file: UploadFile = File(...)):
    """Upload an image, video, document or audio file."""
    return await _store(file, request)


@router.post("/api/courses/upload", dependencies=[Depends(rate_limit(RateLimitProfiles.UPLOAD))])
async def course_upload(request: Request, file: UploadFile = File(...)):
    """Upload course material (cover image, video, workbook)."""
    return await _store(file, request)
