"""Application layer - business logic services.

This layer contains application services that orchestrate domain operations.
Services are independent of HTTP/FastAPI and can be tested in isolation.
"""

from .services.auth_service import AuthService
from .services.cart_service import CartService
from .services.video_service import VideoService

__all__ = [
    "AuthService",
    "CartService",
    "VideoService",
]
