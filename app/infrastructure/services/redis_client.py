"""Redis client for caching, carts, rate limiting and webhook idempotency.

Every helper degrades gracefully: a Redis outage is logged and reads
behave like cache misses, so the database stays the source of truth.
"""
import json
import logging
from typing import Any, Optional

import redis

from ...config import REDIS_URL

logger = logging.getLogger(__name__)


class RedisClient:
    """Thin wrapper around ``redis.Redis`` with JSON helpers."""

    def __init__(self, client: Optional[redis.Redis] = None, url: str = REDIS_URL):
        self.redis = client or redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2
        )

    def ping(self) -> bool:
        try:
            return bool(self.redis.ping())
        except redis.RedisError as e:
            logger.warning("Redis PING failed: %s", e)
            return False

    def get(self, key: str) -> Optional[str]:
        try:
            return self.redis.get(key)
        except redis.RedisError as e:
            logger.warning("Redis GET error for %s: %s", key, e)
            return None

    def set(self, key: str, value: str, expire: Optional[int] = None) -> bool:
        try:
            return bool(self.redis.set(key, value, ex=expire))
        except redis.RedisError as e:
            logger.warning("Redis SET error for %s: %s", key, e)
            return False

    def exists(self, key: str) -> bool:
        try:
            return self.redis.exists(key) > 0
        except redis.RedisError as e:
            logger.warning("Redis EXISTS error for %s: %s", key, e)
            return False

    def get_json(self, key: str) -> Any:
        """Get and decode a JSON value, None on miss or error."""
        value = self.get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except ValueError:
            logger.warning("Discarding undecodable cache entry %s", key)
            self.delete(key)
            return None

    def set_json(self, key: str, value: Any, expire: Optional[int] = None) -> bool:
        return self.set(key, json.dumps(value, default=str), expire)

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return self.redis.delete(*keys)
        except redis.RedisError as e:
            logger.warning("Redis DELETE error for %s: %s", keys, e)
            return 0

    def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern."""
        try:
            keys = list(self.redis.scan_iter(match=pattern, count=100))
            return self.redis.delete(*keys) if keys else 0
        except redis.RedisError as e:
            logger.warning("Redis pattern delete error for %s: %s", pattern, e)
            return 0

    def close(self) -> None:
        try:
            self.redis.close()
        except redis.RedisError as e:
            logger.warning("Redis close error: %s", e)


# Singleton instance
_client: Optional[RedisClient] = None


def get_redis() -> RedisClient:
    """Get or create the shared client."""
    global _client
    if _client is None:
        _client = RedisClient()
    return _client


def set_redis(client: Optional[RedisClient]) -> None:
    """Replace the shared client (tests install a fakeredis-backed one)."""
    global _client
    _client = client


def reset_redis() -> None:
    """Close and forget the shared client."""
    global _client
    if _client is not None:
        _client.close()
    _client = None
