"""
Rate Limiting Middleware
Applies the practice (or client IP) request limits to API routes
"""

from fastapi import Depends, Request

from dentalhub.models.practice import PracticeContext
from dentalhub.services.rate_limiter import (
    RateLimitBucket,
    RateLimitConfig,
    RateLimiter,
    get_rate_limiter,
    check_rate_limit,
    check_call_rate_limit,
)
from .auth import get_practice_context

__all__ = [
    "RateLimitBucket",
    "RateLimitConfig",
    "RateLimiter",
    "get_rate_limiter",
    "check_rate_limit",
    "check_call_rate_limit",
    "client_key",
    "rate_limit_practice",
    "rate_limit_client",
]


def client_key(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


async def rate_limit_practice(
    context: PracticeContext = Depends(get_practice_context)
) -> PracticeContext:
    """Dependency: authenticate, then apply the practice's request limit"""
    overrides = context.metadata.get("rate_limits")
    if overrides:
        get_rate_limiter().apply_overrides(context.practice_id, overrides)
    check_rate_limit(context.practice_id)
    return context


async def rate_limit_client(request: Request) -> None:
    """Dependency for unauthenticated routes, keyed by client IP"""
    check_rate_limit(client_key(request))
