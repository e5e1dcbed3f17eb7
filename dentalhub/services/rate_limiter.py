"""
Rate Limiter
Token buckets for API requests and outbound calls, keyed by practice
"""

import time
from typing import Dict, Optional
from dataclasses import dataclass

from dentalhub.core.config import settings
from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import RateLimitError

logger = get_logger(__name__)


@dataclass
class RateLimitBucket:
    """Token bucket for rate limiting"""
    tokens: float
    last_update: float
    max_tokens: int
    refill_rate: float  # tokens per second

    def consume(self, tokens: int = 1) -> bool:
        """Try to consume tokens, return True if successful"""
        now = time.time()
        elapsed = now - self.last_update

        # Refill tokens
        self.tokens = min(
            self.max_tokens,
            self.tokens + elapsed * self.refill_rate
        )
        self.last_update = now

        if self.tokens >= tokens:
            self.tokens -= tokens
            return True
        return False

    def time_until_available(self, tokens: int = 1) -> float:
        """Calculate time until tokens are available"""
        if self.tokens >= tokens:
            return 0
        needed = tokens - self.tokens
        return needed / self.refill_rate


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting"""
    requests_per_minute: int = 60
    calls_per_hour: int = 100
    burst_multiplier: float = 1.5

    @classmethod
    def from_settings(cls) -> "RateLimitConfig":
        return cls(
            requests_per_minute=settings.rate_limit_requests_per_minute,
            calls_per_hour=settings.rate_limit_calls_per_hour,
            burst_multiplier=settings.rate_limit_burst_multiplier,
        )


class RateLimiter:
    """
    Request and outbound-call limits per key

    Keys are practice ids for authenticated traffic and "ip:<addr>"
    otherwise.
    """

    def __init__(self, default_config: Optional[RateLimitConfig] = None):
        self.request_buckets: Dict[str, RateLimitBucket] = {}
        self.call_buckets: Dict[str, RateLimitBucket] = {}

        self.default_config = default_config or RateLimitConfig.from_settings()
        self.practice_configs: Dict[str, RateLimitConfig] = {}

    def get_config(self, key: str) -> RateLimitConfig:
        """Get rate limit config for a key"""
        return self.practice_configs.get(key, self.default_config)

    def set_practice_config(self, practice_id: str, config: RateLimitConfig):
        """Set custom limits for a practice; existing buckets are rebuilt"""
        self.practice_configs[practice_id] = config
        self.request_buckets.pop(practice_id, None)
        self.call_buckets.pop(practice_id, None)

    def apply_overrides(self, practice_id: str, overrides: Dict[str, int]):
        """Apply practice settings overrides; unchanged limits keep their buckets"""
        current = self.get_config(practice_id)
        config = RateLimitConfig(
            requests_per_minute=overrides.get("requests_per_minute") or self.default_config.requests_per_minute,
            calls_per_hour=overrides.get("calls_per_hour") or self.default_config.calls_per_hour,
            burst_multiplier=self.default_config.burst_multiplier,
        )
        if config != current:
            self.set_practice_config(practice_id, config)

    @staticmethod
    def _new_bucket(per_period: int, period_seconds: float, burst_multiplier: float) -> RateLimitBucket:
        capacity = per_period * burst_multiplier
        return RateLimitBucket(
            tokens=capacity,
            last_update=time.time(),
            max_tokens=int(capacity),
            refill_rate=per_period / period_seconds
        )

    def _get_request_bucket(self, key: str) -> RateLimitBucket:
        """Get or create request rate limit bucket"""
        if key not in self.request_buckets:
            config = self.get_config(key)
            self.request_buckets[key] = self._new_bucket(
                config.requests_per_minute, 60.0, config.burst_multiplier
            )
        return self.request_buckets[key]

    def _get_call_bucket(self, key: str) -> RateLimitBucket:
        """Get or create call rate limit bucket"""
        if key not in self.call_buckets:
            config = self.get_config(key)
            self.call_buckets[key] = self._new_bucket(
                config.calls_per_hour, 3600.0, config.burst_multiplier
            )
        return self.call_buckets[key]

    def check_request_limit(self, key: str) -> bool:
        """Check if request is within rate limit"""
        return self._get_request_bucket(key).consume(1)

    def check_call_limit(self, key: str) -> bool:
        """Check if new call is within rate limit"""
        return self._get_call_bucket(key).consume(1)

    def get_retry_after(self, key: str, limit_type: str = "request") -> int:
        """Get seconds until the next token is available"""
        if limit_type == "request":
            bucket = self._get_request_bucket(key)
        else:
            bucket = self._get_call_bucket(key)

        return int(bucket.time_until_available(1)) + 1

    def get_current_usage(self, key: str) -> Dict:
        """Get current rate limit usage for a key"""
        config = self.get_config(key)
        request_bucket = self._get_request_bucket(key)
        call_bucket = self._get_call_bucket(key)

        return {
            "requests": {
                "remaining": int(request_bucket.tokens),
                "limit": config.requests_per_minute,
                "reset_seconds": int(request_bucket.time_until_available(config.requests_per_minute))
            },
            "calls": {
                "remaining": int(call_bucket.tokens),
                "limit": config.calls_per_hour,
                "reset_seconds": int(call_bucket.time_until_available(config.calls_per_hour))
            }
        }

    def reset(self):
        self.request_buckets.clear()
        self.call_buckets.clear()


# Singleton instance
_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get rate limiter singleton"""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter()
    return _rate_limiter


def check_rate_limit(key: str):
    """
    Check request limits for a key

    Raises:
        RateLimitError: If rate limit exceeded
    """
    limiter = get_rate_limiter()

    if not limiter.check_request_limit(key):
        retry_after = limiter.get_retry_after(key, "request")
        logger.warning(f"Rate limit exceeded for {key}")
        raise RateLimitError(retry_after=retry_after)


def check_call_rate_limit(practice_id: str):
    """
    Check rate limits for placing a call

    Raises:
        RateLimitError: If rate limit exceeded
    """
    limiter = get_rate_limiter()

    if not limiter.check_call_limit(practice_id):
        retry_after = limiter.get_retry_after(practice_id, "call")
        logger.warning(f"Call rate limit exceeded for practice {practice_id}")
        raise RateLimitError(retry_after=retry_after)


