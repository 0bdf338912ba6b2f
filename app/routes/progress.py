"""Lesson progress routes."""
from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field

from ..database import create_connection
from ..dependencies import require_user
from .deps import get_progress_service

router = APIRouter(prefix="/api/progress")


class LessonInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    course_id: Any = Field(None, alias="courseId")
    lesson_id: Any = Field(None, alias="lessonId")


class ProgressInput(LessonInput):
    progress: Any = None
    current_time: Any = Field(None, alias="currentTime")


@router.post("/update")
def update_progress(data: ProgressInput, request: Request):
    user = require_user(request)
    db = create_connection()
    try:
        progress = get_progress_service(db).update_progress(
            user_id=user["id"],
            course_id=data.course_id,
            lesson_id=data.lesson_id,
            progress=data.progress,
            current_time=data.current_time
        )
        return {"success": True, "progress": progress}
    finally:
        db.close()


@router.post("/complete")
def complete_lesson(data: LessonInput, request: Request):
    user = require_user(request)
    db = create_connection()
    try:
        progress = get_progress_service(db).complete_lesson(user["id"], data.course_id, data.lesson_id)
        return {"success": True, "progress": progress}
    finally:
        db.close()


@router.get("/{course_id}")
def get_course_progress(course_id: int, request: Request):
    user = require_user(request)
    db = create_connection()
    try:
        return {"success": True, **get_progress_service(db).get_course_progress(user["id"], course_id)}
    finally:
        db.close()
