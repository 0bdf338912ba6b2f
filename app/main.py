"""Course Platform - FastAPI Entry Point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .config import LOG_FORMAT, LOG_LEVEL, UPLOADS_DIR
from .database import cleanup_expired_sessions, close_db, get_db, init_db
from .errors import register_exception_handlers
from .infrastructure.repositories import PasswordResetRepository
from .infrastructure.services.cloudflare import reset_cloudflare
from .infrastructure.services.redis_client import reset_redis
from .logging_config import RequestContextMiddleware, setup_logging
from .middleware import AuthMiddleware, CSRFMiddleware

# Import routers
from .routes.auth import router as auth_router
from .routes.cart import router as cart_router
from .routes.catalog import router as catalog_router
from .routes.checkout import router as checkout_router
from .routes.health import router as health_router
from .routes.progress import router as progress_router
from .routes.reviews import router as reviews_router
from .routes.search import router as search_router
from .routes.seo import router as seo_router
from .routes.uploads import router as uploads_router
from .routes.videos import admin_router as admin_videos_router, router as videos_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    setup_logging(LOG_LEVEL, LOG_FORMAT)
    init_db()
    sessions = cleanup_expired_sessions()
    tokens = PasswordResetRepository(get_db()).cleanup_expired()
    logger.info("Startup cleanup done", extra={"expired_sessions": sessions, "expired_tokens": tokens})
    yield
    reset_cloudflare()
    reset_redis()
    close_db()


app = FastAPI(title="Course Platform", lifespan=lifespan)

register_exception_handlers(app)

# Add middleware (order matters - first added = last executed)
app.add_middleware(AuthMiddleware)
app.add_middleware(CSRFMiddleware)
app.add_middleware(RequestContextMiddleware)

# Uploaded media
app.mount("/uploads", StaticFiles(directory=UPLOADS_DIR), name="uploads")

# Include routers
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(catalog_router)
app.include_router(search_router)
app.include_router(cart_router)
app.include_router(checkout_router)
app.include_router(reviews_router)
app.include_router(progress_router)
app.include_router(videos_router)
app.include_router(admin_videos_router)
app.include_router(uploads_router)
app.include_router(seo_router)
