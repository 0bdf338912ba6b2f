"""Application configuration and constants."""
import os
from pathlib import Path

# Directory paths
BASE_DIR = Path(__file__).resolve().parent.parent
UPLOADS_DIR = Path(os.environ.get("PLATFORM_UPLOADS_DIR", str(BASE_DIR / "uploads")))
TEMPLATES_DIR = BASE_DIR / "app" / "templates"

# Create directories if they don't exist
UPLOADS_DIR.mkdir(parents=True, exist_ok=True)

DATABASE_PATH = Path(os.environ.get("PLATFORM_DATABASE_PATH", str(BASE_DIR / "platform.db")))

# Environment: development, production or test
ENVIRONMENT = os.environ.get("PLATFORM_ENV", "development").lower()
IS_DEVELOPMENT = ENVIRONMENT == "development"

# Public site URL (used for emails, sitemap, canonical links)
SITE_URL = os.environ.get("SITE_URL", "http://localhost:8000").rstrip("/")
SITE_NAME = os.environ.get("SITE_NAME", "Spirituality Platform")

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("LOG_FORMAT", "text" if IS_DEVELOPMENT else "json")

# Redis (cache, cart, rate limiting, webhook idempotency)
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")

# Session configuration
SESSION_COOKIE = "platform_session"
SESSION_MAX_AGE = 60 * 60 * 24 * 7  # 7 days
SESSION_SECURE = os.environ.get("SESSION_SECURE", "false").lower() == "true"

# CSRF configuration
CSRF_TOKEN_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_COOKIE_NAME = "platform_csrf"

# Endpoints that authenticate the caller some other way (signature, credentials)
CSRF_EXEMPT_PATHS = {
    "/api/checkout/webhook",
    "/api/auth/login",
    "/api/auth/register",
    "/api/auth/forgot-password",
    "/api/auth/reset-password",
    "/api/auth/resend-verification",
}

# Stripe
STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET", "")
STRIPE_SIGNATURE_TOLERANCE = int(os.environ.get("STRIPE_SIGNATURE_TOLERANCE", "300"))
WEBHOOK_IDEMPOTENCY_TTL = 60 * 60 * 24  # 24 hours

# Cloudflare Stream
CLOUDFLARE_ACCOUNT_ID = os.environ.get("CLOUDFLARE_ACCOUNT_ID", "")
CLOUDFLARE_API_TOKEN = os.environ.get("CLOUDFLARE_API_TOKEN", "")

# Transactional email (Resend)
RESEND_API_KEY = os.environ.get("RESEND_API_KEY", "")
EMAIL_FROM = os.environ.get("EMAIL_FROM", "Spirituality Platform <noreply@localhost>")

# Password reset
PASSWORD_RESET_EXPIRY_HOURS = 1
PASSWORD_RESET_THROTTLE_MINUTES = 5

# Email verification links sent after registration
EMAIL_VERIFICATION_EXPIRY_HOURS = 24

# Checkout
TAX_RATE = 0.08
CART_TTL = 60 * 60 * 24 * 7  # 7 days
MAX_EVENT_TICKETS = 10

# Upload limits (megabytes) and allowed media types per category
MAX_IMAGE_SIZE_MB = 10
MAX_VIDEO_SIZE_MB = 100
MAX_DOCUMENT_SIZE_MB = 50
MAX_AUDIO_SIZE_MB = 50

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}
ALLOWED_VIDEO_TYPES = {"video/mp4", "video/quicktime"}
ALLOWED_DOCUMENT_TYPES = {"application/pdf", "application/zip", "application/epub+zip"}
ALLOWED_AUDIO_TYPES = {"audio/mpeg", "audio/mp3", "audio/wav"}
ALLOWED_UPLOAD_TYPES = (
    ALLOWED_IMAGE_TYPES | ALLOWED_VIDEO_TYPES | ALLOWED_DOCUMENT_TYPES | ALLOWED_AUDIO_TYPES
)
