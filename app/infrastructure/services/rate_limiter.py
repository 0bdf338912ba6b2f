"""Sliding-window rate limiting backed by Redis sorted sets.

Each request is a member of ``rl:{prefix}:{identifier}`` scored by its
timestamp in milliseconds. Members older than the window are trimmed
before counting, so the limit applies to any rolling window rather than
fixed buckets.

When Redis is unreachable the limiter fails open: requests are allowed
and a warning is logged.
"""
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

import redis
from fastapi import Request

from ...config import SESSION_COOKIE
from ...errors import RateLimitError
from .redis_client import get_redis

logger = logging.getLogger(__name__)

KEY_PREFIX = "rl"


@dataclass(frozen=True)
class RateLimitProfile:
    """Limit of ``max_requests`` per ``window_seconds``."""
    max_requests: int
    window_seconds: int
    key_prefix: str
    message: str = "Too many requests. Please try again later."


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: int  # unix seconds when the oldest counted request leaves the window
    limit: int


class RateLimitProfiles:
    """Named limits used across the API."""
    AUTH = RateLimitProfile(5, 15 * 60, "auth", "Too many login attempts. Please try again later.")
    PASSWORD_RESET = RateLimitProfile(3, 60 * 60, "password_reset", "Too many password reset requests. Please try again later.")
    CHECKOUT = RateLimitProfile(10, 60, "checkout", "Too many checkout attempts. Please try again later.")
    SEARCH = RateLimitProfile(30, 60, "search", "Too many search requests. Please try again later.")
    UPLOAD = RateLimitProfile(10, 10 * 60, "upload", "Too many upload attempts. Please try again later.")
    CART = RateLimitProfile(100, 60 * 60, "cart", "Too many cart operations. Please try again later.")
    EMAIL_VERIFY = RateLimitProfile(3, 60 * 60, "email_verify", "Too many verification requests. Please try again later.")
    ADMIN = RateLimitProfile(200, 60, "admin")
    API = RateLimitProfile(100, 60, "api")


def get_client_ip(request: Request) -> str:
    """Client address, preferring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


def get_identifier(request: Request) -> str:
    """Session-scoped identifier when logged in, else per IP."""
    session_id = request.cookies.get(SESSION_COOKIE)
    if session_id:
        return f"session:{session_id}"
    return f"ip:{get_client_ip(request)}"


def _key(identifier: str, profile: RateLimitProfile) -> str:
    return f"{KEY_PREFIX}:{profile.key_prefix}:{identifier}"


class RateLimiter:
    """Sliding-window limiter over a raw ``redis.Redis`` connection."""

    def __init__(self, client: Optional[redis.Redis] = None):
        self._client = client

    @property
    def client(self) -> redis.Redis:
        return self._client if self._client is not None else get_redis().redis

    def check(self, identifier: str, profile: RateLimitProfile) -> RateLimitResult:
        """Count this request against the limit.

        Args:
            identifier: Caller identity (see ``get_identifier``)
            profile: Limit to apply

        Returns:
            RateLimitResult; the request is recorded only when allowed
        """
        key = _key(identifier, profile)
        now_ms = int(time.time() * 1000)
        window_ms = profile.window_seconds * 1000

        try:
            pipe = self.client.pipeline()
            pipe.zremrangebyscore(key, 0, now_ms - window_ms)
            pipe.zcard(key)
            pipe.zrange(key, 0, 0, withscores=True)
            _, count, oldest = pipe.execute()

            if count < profile.max_requests:
                pipe = self.client.pipeline()
                pipe.zadd(key, {f"{now_ms}-{uuid.uuid4().hex[:8]}": now_ms})
                pipe.expire(key, profile.window_seconds)
                pipe.execute()
                allowed = True
                remaining = profile.max_requests - count - 1
            else:
                allowed = False
                remaining = 0

            oldest_ms = int(oldest[0][1]) if oldest else now_ms
            reset_at = (oldest_ms + window_ms) // 1000
            return RateLimitResult(allowed, remaining, reset_at, profile.max_requests)

        except redis.RedisError as e:
            logger.warning("Rate limiter unavailable, allowing request: %s", e)
            return RateLimitResult(
                allowed=True,
                remaining=profile.max_requests,
                reset_at=int(time.time()) + profile.window_seconds,
                limit=profile.max_requests
            )

    def status(self, identifier: str, profile: RateLimitProfile) -> RateLimitResult:
        """Current usage without recording a request."""
        key = _key(identifier, profile)
        now_ms = int(time.time() * 1000)
        window_ms = profile.window_seconds * 1000
        try:
            self.client.zremrangebyscore(key, 0, now_ms - window_ms)
            count = self.client.zcard(key)
            oldest = self.client.zrange(key, 0, 0, withscores=True)
        except redis.RedisError as e:
            logger.warning("Rate limiter status unavailable: %s", e)
            count, oldest = 0, []

        oldest_ms = int(oldest[0][1]) if oldest else now_ms
        return RateLimitResult(
            allowed=count < profile.max_requests,
            remaining=max(0, profile.max_requests - count),
            reset_at=(oldest_ms + window_ms) // 1000,
            limit=profile.max_requests
        )

    def reset(self, identifier: str, profile: RateLimitProfile) -> bool:
        """Forget all recorded requests for an identifier."""
        try:
            return self.client.delete(_key(identifier, profile)) > 0
        except redis.RedisError as e:
            logger.warning("Rate limiter reset failed: %s", e)
            return False


def rate_limit(profile: RateLimitProfile) -> Callable[[Request], RateLimitResult]:
    """FastAPI dependency factory.

    Usage:
        @router.get("/api/search", dependencies=[Depends(rate_limit(RateLimitProfiles.SEARCH))])
    """
    def dependency(request: Request) -> RateLimitResult:
        result = RateLimiter().check(get_identifier(request), profile)
        if not result.allowed:
            retry_after = result.reset_at - int(time.time())
            logger.warning(
                "Rate limit exceeded",
                extra={
                    "profile": profile.key_prefix,
                    "ip": get_client_ip(request),
                    "path": request.url.path,
                    "reset_at": result.reset_at,
                }
            )
            raise RateLimitError(profile.message, retry_after=retry_after, reset_at=result.reset_at)
        return result

    return dependency
