"""Application services - business logic layer."""

from .auth_service import AuthService
from .password_reset_service import PasswordResetService
from .email_verification_service import EmailVerificationService
from .upload_service import UploadService
from .video_service import VideoService, VideoError, VideoErrorCode
from .cart_service import CartService
from .order_service import OrderService
from .webhook_service import WebhookService
from .review_service import ReviewService
from .progress_service import ProgressService
from .search_service import SearchService
from .catalog_service import CatalogService

__all__ = [
    "AuthService",
    "PasswordResetService",
    "EmailVerificationService",
    "UploadService",
    "VideoService",
    "VideoError",
    "VideoErrorCode",
    "CartService",
    "OrderService",
    "WebhookService",
    "ReviewService",
    "ProgressService",
    "SearchService",
    "CatalogService",
]
