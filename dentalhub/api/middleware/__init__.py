"""API Middleware"""

from .auth import (
    get_api_key,
    get_access_token,
    get_current_user,
    get_practice_context,
    require_role,
    require_permission
)

from .rate_limit import (
    RateLimiter,
    RateLimitConfig,
    get_rate_limiter,
    check_rate_limit,
    check_call_rate_limit,
    rate_limit_practice,
    rate_limit_client
)

from .webhook_security import (
    WebhookValidator,
    RetellWebhookValidator,
    SikkaWebhookValidator,
    GenericWebhookValidator,
    get_webhook_validator,
    validate_retell_webhook,
    validate_sikka_webhook,
    validate_openai_webhook
)

__all__ = [
    # Auth
    "get_api_key",
    "get_access_token",
    "get_current_user",
    "get_practice_context",
    "require_role",
    "require_permission",
    # Rate limiting
    "RateLimiter",
    "RateLimitConfig",
    "get_rate_limiter",
    "check_rate_limit",
    "check_call_rate_limit",
    "rate_limit_practice",
    "rate_limit_client",
    # Webhook security
    "WebhookValidator",
    "RetellWebhookValidator",
    "SikkaWebhookValidator",
    "GenericWebhookValidator",
    "get_webhook_validator",
    "validate_retell_webhook",
    "validate_sikka_webhook",
    "validate_openai_webhook"
]
