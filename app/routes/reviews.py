"""Review routes - submission, public listing, moderation."""
from typing import Any, Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ..database import create_connection
from ..dependencies import require_admin, require_user
from .deps import get_review_service

router = APIRouter()


class ReviewInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    course_id: Any = Field(None, alias="courseId")
    rating: Any = None
    comment: Optional[Any] = None


@router.post("/api/reviews")
def submit_review(data: ReviewInput, request: Request):
    """Submit a review; it stays hidden until an admin approves it."""
    user = require_user(request)
    db = create_connection()
    try:
        review = get_review_service(db).submit_review(
            user_id=user["id"],
            course_id=data.course_id,
            rating=data.rating,
            comment=data.comment
        )
        return JSONResponse(status_code=201, content={"success": True, "review": review})
    finally:
        db.close()


@router.get("/api/courses/{course_id}/reviews")
def list_course_reviews(
    course_id: int,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0)
):
    db = create_connection()
    try:
        return {"success": True, **get_review_service(db).get_course_reviews(course_id, limit, offset)}
    finally:
        db.close()


@router.post("/api/admin/reviews/{review_id}/approve")
def approve_review(review_id: int, request: Request):
    require_admin(request)
    db = create_connection()
    try:
        return {"success": True, "review": get_review_service(db).approve_review(review_id)}
    finally:
        db.close()
