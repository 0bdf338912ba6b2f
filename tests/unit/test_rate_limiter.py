"""Sliding-window rate limiter tests over fakeredis."""
from unittest.mock import Mock

import fakeredis
import pytest
import redis

from app.infrastructure.services.rate_limiter import (
    RateLimiter,
    RateLimitProfile,
    RateLimitProfiles,
    get_client_ip,
    get_identifier,
)

PROFILE = RateLimitProfile(5, 60, "test")


@pytest.fixture
def limiter():
    return RateLimiter(client=fakeredis.FakeRedis(decode_responses=True))


def _request(headers=None, cookies=None, host="10.0.0.1"):
    request = Mock()
    request.headers = headers or {}
    request.cookies = cookies or {}
    request.client = Mock(host=host)
    return request


class TestRateLimiter:

    def test_allows_up_to_limit_then_blocks(self, limiter):
        results = [limiter.check("ip:1.2.3.4", PROFILE) for _ in range(6)]

        assert [r.allowed for r in results] == [True] * 5 + [False]
        assert [r.remaining for r in results] == [4, 3, 2, 1, 0, 0]
        assert results[-1].limit == 5

    def test_identifiers_are_independent(self, limiter):
        for _ in range(5):
            limiter.check("ip:a", PROFILE)

        assert limiter.check("ip:a", PROFILE).allowed is False
        assert limiter.check("ip:b", PROFILE).allowed is True

    def test_profiles_are_independent(self, limiter):
        for _ in range(5):
            limiter.check("ip:a", PROFILE)

        assert limiter.check("ip:a", RateLimitProfiles.SEARCH).allowed is True

    def test_blocked_request_is_not_recorded(self, limiter):
        for _ in range(8):
            limiter.check("ip:a", PROFILE)

        assert limiter.status("ip:a", PROFILE).remaining == 0
        assert limiter.client.zcard("rl:test:ip:a") == 5

    def test_status_does_not_consume(self, limiter):
        limiter.check("ip:a", PROFILE)
        first = limiter.status("ip:a", PROFILE)
        second = limiter.status("ip:a", PROFILE)

        assert first.remaining == second.remaining == 4
        assert first.allowed is True

    def test_reset(self, limiter):
        for _ in range(5):
            limiter.check("ip:a", PROFILE)

        assert limiter.reset("ip:a", PROFILE) is True
        assert limiter.check("ip:a", PROFILE).allowed is True
        assert limiter.reset("ip:unknown", PROFILE) is False

    def test_reset_at_is_after_now(self, limiter):
        import time

        result = limiter.check("ip:a", PROFILE)
        assert result.reset_at >= int(time.time())

    def test_fails_open_when_redis_down(self):
        broken = Mock()
        broken.pipeline.side_effect = redis.ConnectionError("connection refused")

        result = RateLimiter(client=broken).check("ip:a", PROFILE)

        assert result.allowed is True
        assert result.remaining == PROFILE.max_requests


class TestIdentifiers:

    def test_forwarded_for_first_hop(self):
        request = _request(headers={"x-forwarded-for": "203.0.113.7, 10.0.0.2"})
        assert get_client_ip(request) == "203.0.113.7"

    def test_real_ip_then_client_host(self):
        assert get_client_ip(_request(headers={"x-real-ip": " 198.51.100.4 "})) == "198.51.100.4"
        assert get_client_ip(_request()) == "10.0.0.1"

    def test_session_cookie_wins(self):
        request = _request(cookies={"platform_session": "abc123"})
        assert get_identifier(request) == "session:abc123"

    def test_falls_back_to_ip(self):
        assert get_identifier(_request()) == "ip:10.0.0.1"
