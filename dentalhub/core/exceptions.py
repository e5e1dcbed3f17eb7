"""
Custom Exceptions for DentalHub
Provides structured error handling across the application
"""

from typing import Optional, Dict, Any


class DentalHubException(Exception):
    """Base exception for all DentalHub errors"""

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response"""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details
        }


# Authentication & Authorization Exceptions
class AuthenticationError(DentalHubException):
    """Raised when authentication fails"""

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict] = None):
        super().__init__(
            message=message,
            error_code="AUTH_FAILED",
            details=details,
            status_code=401
        )


class InvalidTokenError(AuthenticationError):
    """Raised when an access token cannot be verified"""

    def __init__(self, message: str = "Invalid or expired access token"):
        super().__init__(message=message, details={"hint": "Sign in again or refresh your session"})


class InvalidAPIKeyError(AuthenticationError):
    """Raised when API key is invalid"""

    def __init__(self, message: str = "Invalid or expired API key"):
        super().__init__(message=message, details={"hint": "Check your API key"})


class AuthorizationError(DentalHubException):
    """Raised when authorization fails"""

    def __init__(self, message: str = "Access denied", details: Optional[Dict] = None):
        super().__init__(
            message=message,
            error_code="ACCESS_DENIED",
            details=details,
            status_code=403
        )


# Practice Exceptions
class PracticeError(DentalHubException):
    """Base exception for practice-related errors"""
    pass


class PracticeNotFoundError(PracticeError):
    """Raised when practice is not found"""

    def __init__(self, practice_id: str):
        super().__init__(
            message=f"Practice not found: {practice_id}",
            error_code="PRACTICE_NOT_FOUND",
            details={"practice_id": practice_id},
            status_code=404
        )


class PracticeInactiveError(PracticeError):
    """Raised when practice is inactive"""

    def __init__(self, practice_id: str):
        super().__init__(
            message=f"Practice is inactive: {practice_id}",
            error_code="PRACTICE_INACTIVE",
            details={"practice_id": practice_id},
            status_code=403
        )


# Resource Exceptions
class NotFoundError(DentalHubException):
    """Raised when a practice-owned resource does not exist"""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource.capitalize()} not found: {resource_id}",
            error_code=f"{resource.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource": resource, "id": resource_id},
            status_code=404
        )


class ConflictError(DentalHubException):
    """Raised when a write conflicts with existing state"""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(
            message=message,
            error_code="CONFLICT",
            details=details,
            status_code=409
        )


class InvalidCampaignTransitionError(ConflictError):
    """Raised when a campaign status change is not allowed"""

    def __init__(self, campaign_id: str, current: str, target: str):
        super().__init__(
            message=f"Cannot move campaign from {current} to {target}",
            details={"campaign_id": campaign_id, "current_status": current, "target_status": target}
        )
        self.error_code = "INVALID_CAMPAIGN_TRANSITION"


class InvalidPhoneNumberError(DentalHubException):
    """Raised when phone number is invalid"""

    def __init__(self, phone_number: str):
        super().__init__(
            message=f"Invalid phone number format: {phone_number}",
            error_code="INVALID_PHONE_NUMBER",
            details={
                "phone_number": phone_number,
                "hint": "Use E.164 format (e.g., +14155551234)"
            },
            status_code=400
        )


# Service Exceptions
class ServiceError(DentalHubException):
    """Base exception for external service errors"""

    def __init__(
        self,
        message: str,
        error_code: str = "SERVICE_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 502,
        retryable: bool = False
    ):
        super().__init__(message=message, error_code=error_code, details=details, status_code=status_code)
        self.retryable = retryable


class ServiceNotConfiguredError(ServiceError):
    """Raised when an integration is used without credentials"""

    def __init__(self, service: str, missing: str):
        super().__init__(
            message=f"{service} is not configured",
            error_code="SERVICE_NOT_CONFIGURED",
            details={"service": service, "missing": missing},
            status_code=503
        )


class InfrastructureError(ServiceError):
    """Raised when the database or cache is unavailable"""

    def __init__(self, message: str, component: str):
        super().__init__(
            message=message,
            error_code="INFRASTRUCTURE_ERROR",
            details={"component": component},
            status_code=503
        )


class SikkaServiceError(ServiceError):
    """Raised when the Sikka API fails"""

    RETRYABLE_CODES = {"NETWORK_ERROR", "TIMEOUT_ERROR", "RATE_LIMIT_ERROR", "SERVICE_UNAVAILABLE"}

    def __init__(
        self,
        message: str,
        code: str = "SIKKA_ERROR",
        http_status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        info = dict(details or {})
        if http_status:
            info["status_code"] = http_status
        info["sikka_code"] = code
        super().__init__(
            message=f"Sikka error: {message}",
            error_code="SIKKA_ERROR",
            details=info,
            retryable=code in self.RETRYABLE_CODES
        )
        self.code = code
        self.http_status = http_status


class SikkaAuthenticationError(SikkaServiceError):
    """Raised when Sikka credentials are rejected or refresh is exhausted"""

    def __init__(self, message: str = "Authentication with Sikka failed"):
        super().__init__(message=message, code="AUTHENTICATION_ERROR", http_status=401)


class RetellServiceError(ServiceError):
    """Raised when the Retell API fails"""

    RETRYABLE_CODES = {
        "NETWORK_ERROR",
        "TIMEOUT_ERROR",
        "RATE_LIMIT_ERROR",
        "SERVICE_UNAVAILABLE",
        "CALL_FAILED",
        "TRANSCRIPTION_FAILED",
        "ANALYSIS_FAILED",
    }

    def __init__(
        self,
        message: str,
        code: str = "RETELL_ERROR",
        http_status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        info = dict(details or {})
        if http_status:
            info["status_code"] = http_status
        info["retell_code"] = code
        super().__init__(
            message=f"Retell error: {message}",
            error_code="RETELL_ERROR",
            details=info,
            retryable=code in self.RETRYABLE_CODES
        )
        self.code = code
        self.http_status = http_status


class OpenAIServiceError(ServiceError):
    """Raised when OpenAI service fails"""

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(
            message=f"OpenAI error: {message}",
            error_code="OPENAI_ERROR",
            retryable=retryable
        )


class MarketingServiceError(ServiceError):
    """Raised when Beehiiv or Instantly fails"""

    def __init__(self, provider: str, message: str, http_status: Optional[int] = None):
        super().__init__(
            message=f"{provider} error: {message}",
            error_code="MARKETING_SERVICE_ERROR",
            details={"provider": provider, "status_code": http_status} if http_status else {"provider": provider}
        )


# Agent Exceptions
class AgentNotConfiguredError(DentalHubException):
    """Raised when an agent type has no configuration"""

    def __init__(self, agent_type: str):
        super().__init__(
            message=f"Agent {agent_type} not configured",
            error_code="AGENT_NOT_CONFIGURED",
            details={"agent_type": agent_type},
            status_code=404
        )


# Webhook Exceptions
class WebhookError(DentalHubException):
    """Base exception for webhook errors"""
    pass


class WebhookValidationError(WebhookError):
    """Raised when webhook signature validation fails"""

    def __init__(self, message: str = "Invalid webhook signature"):
        super().__init__(
            message=message,
            error_code="WEBHOOK_VALIDATION_FAILED",
            status_code=401
        )


# Rate Limiting
class RateLimitError(DentalHubException):
    """Raised when rate limit is exceeded"""

    def __init__(self, retry_after: int = 60):
        super().__init__(
            message="Rate limit exceeded",
            error_code="RATE_LIMIT_EXCEEDED",
            details={"retry_after_seconds": retry_after},
            status_code=429
        )


# Validation Exceptions
class ValidationError(DentalHubException):
    """Raised when input validation fails"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details={"field": field} if field else {},
            status_code=400
        )
