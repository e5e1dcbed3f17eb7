"""
Tests for request and call rate limiting
"""

import time
import pytest

from dentalhub.core.exceptions import RateLimitError
from dentalhub.models.practice import PracticeCreate, PracticeSettings
from dentalhub.services.practice_service import PracticeService
from dentalhub.services.rate_limiter import (
    RateLimitBucket,
    RateLimitConfig,
    RateLimiter,
    check_call_rate_limit,
    check_rate_limit,
    get_rate_limiter,
)
from tests.conftest import auth_headers


class TestRateLimitBucket:
    """Tests for the token bucket"""

    def test_consume_until_empty(self):
        bucket = RateLimitBucket(tokens=2, last_update=time.time(), max_tokens=2, refill_rate=0.0001)
        assert bucket.consume() is True
        assert bucket.consume() is True
        assert bucket.consume() is False

    def test_refill_is_capped(self):
        bucket = RateLimitBucket(tokens=0, last_update=time.time() - 120, max_tokens=5, refill_rate=1.0)
        assert bucket.consume() is True
        assert bucket.tokens == 4

    def test_time_until_available(self):
        bucket = RateLimitBucket(tokens=0.5, last_update=time.time(), max_tokens=1, refill_rate=0.5)
        assert bucket.time_until_available() == pytest.approx(1.0)


class TestRateLimiter:
    """Tests for per-key limits"""

    def test_burst_capacity(self):
        limiter = RateLimiter(RateLimitConfig(requests_per_minute=2, burst_multiplier=1.5))
        results = [limiter.check_request_limit("practice-1") for _ in range(4)]
        assert results == [True, True, True, False]
        assert limiter.get_retry_after("practice-1") >= 1

    def test_keys_are_independent(self):
        limiter = RateLimiter(RateLimitConfig(requests_per_minute=1, burst_multiplier=1.0))
        assert limiter.check_request_limit("practice-1")
        assert not limiter.check_request_limit("practice-1")
        assert limiter.check_request_limit("practice-2")

    def test_overrides_rebuild_buckets_only_when_changed(self):
        limiter = RateLimiter(RateLimitConfig(requests_per_minute=10))
        limiter.check_request_limit("practice-1")
        bucket = limiter.request_buckets["practice-1"]

        limiter.apply_overrides("practice-1", {"requests_per_minute": 10})
        assert limiter.request_buckets["practice-1"] is bucket

        limiter.apply_overrides("practice-1", {"requests_per_minute": 3})
        assert "practice-1" not in limiter.request_buckets
        assert limiter.get_config("practice-1").requests_per_minute == 3
        assert limiter.get_config("practice-1").calls_per_hour == 100

    def test_current_usage(self):
        limiter = RateLimiter(RateLimitConfig(requests_per_minute=60, calls_per_hour=100))
        limiter.check_request_limit("practice-1")
        usage = limiter.get_current_usage("practice-1")
        assert usage["requests"]["limit"] == 60
        assert usage["requests"]["remaining"] == 89
        assert usage["calls"]["limit"] == 100


class TestRateLimitChecks:
    """Tests for the module level checks"""

    def test_request_limit_raises_with_retry_after(self):
        get_rate_limiter().set_practice_config(
            "practice-1", RateLimitConfig(requests_per_minute=1, burst_multiplier=1.0)
        )
        check_rate_limit("practice-1")

        with pytest.raises(RateLimitError) as exc_info:
            check_rate_limit("practice-1")
        assert exc_info.value.status_code == 429
        assert exc_info.value.details["retry_after_seconds"] >= 1

    def test_call_limit_raises(self):
        get_rate_limiter().set_practice_config(
            "practice-1", RateLimitConfig(calls_per_hour=1, burst_multiplier=1.0)
        )
        check_call_rate_limit("practice-1")

        with pytest.raises(RateLimitError):
            check_call_rate_limit("practice-1")


class TestRateLimitedRoutes:
    """Tests for limits applied to API requests"""

    def test_practice_limit_returns_429(self, test_client):
        practice = test_client.portal.call(
            PracticeService().create_practice,
            PracticeCreate(name="Tiny Practice", settings=PracticeSettings(requests_per_minute=1)),
        )
        headers = auth_headers(practice.id)

        first = test_client.get("/api/v1/patients/", headers=headers)
        assert first.status_code == 200

        second = test_client.get("/api/v1/patients/", headers=headers)
        assert second.status_code == 429
        assert second.json()["error"] == "RATE_LIMIT_EXCEEDED"
        assert int(second.headers["Retry-After"]) >= 1
