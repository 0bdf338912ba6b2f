"""Course catalog routes."""
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ..database import create_connection
from ..dependencies import require_admin
from ..infrastructure.services.rate_limiter import RateLimitProfiles, rate_limit
from .deps import get_catalog_service

router = APIRouter()


class CourseCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    price: Any = None
    description: str = ""
    slug: Optional[str] = None
    level: Optional[str] = None
    instructor_name: Optional[str] = Field(None, alias="instructorName")
    image_url: Optional[str] = Field(None, alias="imageUrl")
    is_published: bool = Field(False, alias="isPublished")


@router.get("/api/courses")
def list_courses():
    db = create_connection()
    try:
        return {"success": True, "courses": get_catalog_service(db).list_courses()}
    finally:
        db.close()


@router.get("/api/courses/{course_id}")
def get_course(course_id: int):
    """Course detail with canonical URL, breadcrumbs and JSON-LD."""
    db = create_connection()
    try:
        return {"success": True, **get_catalog_service(db).get_course_page(course_id)}
    finally:
        db.close()


@router.post("/api/admin/courses", dependencies=[Depends(rate_limit(RateLimitProfiles.ADMIN))])
def create_course(data: CourseCreate, request: Request):
    require_admin(request)
    db = create_connection()
    try:
        course = get_catalog_service(db).create_course(
            title=data.title,
            price=data.price,
            description=data.description,
            slug=data.slug,
            level=data.level,
            instructor_name=data.instructor_name,
            image_url=data.image_url,
            is_published=data.is_published
        )
        return JSONResponse(status_code=201, content={"success": True, "course": course})
    finally:
        db.close()
