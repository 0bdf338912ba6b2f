"""RedisClient wrapper over fakeredis."""
from unittest.mock import Mock

import fakeredis
import pytest
import redis

from app.infrastructure.services.redis_client import RedisClient


@pytest.fixture
def cache() -> RedisClient:
    return RedisClient(client=fakeredis.FakeRedis(decode_responses=True))


class TestRedisClient:

    def test_json_round_trip_with_ttl(self, cache):
        cache.set_json("cart:abc", [{"itemId": 1}], expire=60)

        assert cache.get_json("cart:abc") == [{"itemId": 1}]
        assert 0 < cache.redis.ttl("cart:abc") <= 60

    def test_delete_pattern_removes_only_matching_keys(self, cache):
        cache.set("video:7:lesson-1", "a")
        cache.set("video:7:lesson-2", "b")
        cache.set("video:70:lesson-1", "c")
        cache.set("course_videos:7", "d")

        assert cache.delete_pattern("video:7:*") == 2

        assert not cache.exists("video:7:lesson-1")
        assert not cache.exists("video:7:lesson-2")
        assert cache.exists("video:70:lesson-1")
        assert cache.exists("course_videos:7")

    def test_delete_pattern_without_matches(self, cache):
        assert cache.delete_pattern("video:99:*") == 0

    def test_errors_degrade_to_misses(self):
        broken = Mock()
        broken.get.side_effect = redis.ConnectionError("down")
        broken.scan_iter.side_effect = redis.ConnectionError("down")
        cache = RedisClient(client=broken)

        assert cache.get("anything") is None
        assert cache.delete_pattern("video:*") == 0
