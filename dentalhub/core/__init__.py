"""Core module for configuration, settings, and shared utilities"""

from .config import settings, get_settings, Settings
from .logging import setup_logging, get_logger
from .exceptions import (
    DentalHubException,
    AuthenticationError,
    InvalidTokenError,
    InvalidAPIKeyError,
    AuthorizationError,
    PracticeError,
    PracticeNotFoundError,
    PracticeInactiveError,
    NotFoundError,
    ConflictError,
    InvalidCampaignTransitionError,
    InvalidPhoneNumberError,
    ServiceError,
    ServiceNotConfiguredError,
    InfrastructureError,
    SikkaServiceError,
    SikkaAuthenticationError,
    RetellServiceError,
    OpenAIServiceError,
    MarketingServiceError,
    AgentNotConfiguredError,
    WebhookError,
    WebhookValidationError,
    RateLimitError,
    ValidationError
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    "Settings",
    # Logging
    "setup_logging",
    "get_logger",
    # Exceptions
    "DentalHubException",
    "AuthenticationError",
    "InvalidTokenError",
    "InvalidAPIKeyError",
    "AuthorizationError",
    "PracticeError",
    "PracticeNotFoundError",
    "PracticeInactiveError",
    "NotFoundError",
    "ConflictError",
    "InvalidCampaignTransitionError",
    "InvalidPhoneNumberError",
    "ServiceError",
    "ServiceNotConfiguredError",
    "InfrastructureError",
    "SikkaServiceError",
    "SikkaAuthenticationError",
    "RetellServiceError",
    "OpenAIServiceError",
    "MarketingServiceError",
    "AgentNotConfiguredError",
    "WebhookError",
    "WebhookValidationError",
    "RateLimitError",
    "ValidationError"
]
