# Repository Pattern Implementation
"""
Repositories abstract database operations.
Each aggregate has its own repository; services receive them through
their constructors.

Usage:
    db = create_connection()
    repo = CatalogRepository(db)
    course = repo.get_course(course_id)
"""
from .base import Repository, ConnectionProtocol
from .user_repository import UserRepository
from .session_repository import SessionRepository
from .password_reset_repository import PasswordResetRepository
from .catalog_repository import CatalogRepository
from .video_repository import VideoRepository
from .order_repository import OrderRepository
from .review_repository import ReviewRepository
from .progress_repository import ProgressRepository
from .file_repository import FileRepository

__all__ = [
    "Repository",
    "ConnectionProtocol",
    "UserRepository",
    "SessionRepository",
    "PasswordResetRepository",
    "CatalogRepository",
    "VideoRepository",
    "OrderRepository",
    "ReviewRepository",
    "ProgressRepository",
    "FileRepository",
]
