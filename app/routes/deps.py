"""Shared dependencies for API routes.

Factory functions that build services on top of a request-scoped
connection. Routes open the connection, call a factory and close the
connection in ``finally``.
"""
from ..application.services import (
    AuthService, CartService, CatalogService, EmailVerificationService, OrderService, PasswordResetService, ProgressService,
    ReviewService, SearchService, UploadService, VideoService, WebhookService
)
from ..infrastructure.repositories import (
    CatalogRepository, FileRepository, OrderRepository, PasswordResetRepository,
    ProgressRepository, ReviewRepository, SessionRepository, UserRepository,
    VideoRepository
)


def get_auth_service(db) -> AuthService:
    """Create AuthService with repositories."""
    return AuthService(
        user_repository=UserRepository(db),
        session_repository=SessionRepository(db)
    )


def get_password_reset_service(db) -> PasswordResetService:
    """Create PasswordResetService with repositories."""
    return PasswordResetService(
        connection=db,
        user_repository=UserRepository(db),
        session_repository=SessionRepository(db),
        reset_repository=PasswordResetRepository(db)
    )


def get_email_verification_service(db) -> EmailVerificationService:
    return EmailVerificationService(user_repository=UserRepository(db))


def get_catalog_service(db) -> CatalogService:
    return CatalogService(
        catalog_repository=CatalogRepository(db),
        review_repository=ReviewRepository(db)
    )


def get_upload_service(db) -> UploadService:
    return UploadService(file_repository=FileRepository(db))


def get_video_service(db) -> VideoService:
    return VideoService(
        video_repository=VideoRepository(db),
        catalog_repository=CatalogRepository(db)
    )


def get_cart_service(db) -> CartService:
    return CartService(catalog_repository=CatalogRepository(db))


def get_order_service(db) -> OrderService:
    return OrderService(
        order_repository=OrderRepository(db),
        cart_service=get_cart_service(db)
    )


def get_webhook_service(db) -> WebhookService:
    return WebhookService(
        connection=db,
        order_repository=OrderRepository(db),
        cart_service=get_cart_service(db),
        user_repository=UserRepository(db)
    )


def get_review_service(db) -> ReviewService:
    return ReviewService(
        review_repository=ReviewRepository(db),
        order_repository=OrderRepository(db),
        catalog_repository=CatalogRepository(db)
    )


def get_progress_service(db) -> ProgressService:
    return ProgressService(
        progress_repository=ProgressRepository(db),
        order_repository=OrderRepository(db)
    )


def get_search_service(db) -> SearchService:
    return SearchService(catalog_repository=CatalogRepository(db))
