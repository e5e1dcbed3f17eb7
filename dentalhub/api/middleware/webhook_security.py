"""
Webhook Security Middleware
Validates HMAC-SHA256 webhook signatures from Retell, Sikka and other senders
"""

import hmac
import hashlib
import time
from typing import Optional
from fastapi import Request

from dentalhub.core.config import settings
from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import ServiceNotConfiguredError, WebhookValidationError

logger = get_logger(__name__)


def compute_signature(secret: str, payload: bytes) -> str:
    """Hex HMAC-SHA256 of a payload"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def signatures_match(received: str, expected: str) -> bool:
    return hmac.compare_digest(received.strip().lower(), expected.lower())


class RetellWebhookValidator:
    """
    Validates Retell webhook signatures

    X-Retell-Signature is the HMAC of the raw body.
    """

    def __init__(self, secret: Optional[str] = None):
        self.secret = secret or settings.retell_webhook_secret

    def compute_signature(self, payload: bytes) -> str:
        return compute_signature(self.secret, payload)

    async def validate(self, request: Request) -> bool:
        if not self.secret:
            raise ServiceNotConfiguredError("Retell webhooks", "RETELL_WEBHOOK_SECRET")

        signature = request.headers.get("X-Retell-Signature")
        if not signature:
            logger.warning("Missing Retell signature header")
            raise WebhookValidationError("Missing X-Retell-Signature header")

        body = await request.body()
        if not signatures_match(signature, self.compute_signature(body)):
            logger.warning("Invalid Retell signature")
            raise WebhookValidationError("Invalid Retell signature")

        return True


class GenericWebhookValidator:
    """
    Validates signed webhooks carrying a millisecond timestamp

    X-Webhook-Signature is the HMAC of "{timestamp}.{body}";
    X-Webhook-Timestamp must fall within the tolerance window.
    """

    provider = "webhook"
    secret_setting = "WEBHOOK_SECRET"

    def __init__(self, secret: Optional[str] = None, tolerance_seconds: Optional[int] = None):
        self.secret = secret
        self.tolerance_seconds = (
            tolerance_seconds if tolerance_seconds is not None
            else settings.webhook_timestamp_tolerance_seconds
        )

    def compute_signature(self, payload: bytes, timestamp: str) -> str:
        signed_data = f"{timestamp}.{payload.decode('utf-8')}"
        return compute_signature(self.secret, signed_data.encode("utf-8"))

    def check_timestamp(self, timestamp: str, now: Optional[float] = None):
        try:
            sent_ms = int(timestamp)
        except (TypeError, ValueError):
            raise WebhookValidationError("Invalid X-Webhook-Timestamp header")

        now_ms = (now if now is not None else time.time()) * 1000
        if abs(now_ms - sent_ms) > self.tolerance_seconds * 1000:
            logger.warning(f"Stale {self.provider} timestamp")
            raise WebhookValidationError("Webhook timestamp outside tolerance window")

    async def validate(self, request: Request) -> bool:
        if not self.secret:
            raise ServiceNotConfiguredError(f"{self.provider} webhooks", self.secret_setting)

        signature = request.headers.get("X-Webhook-Signature")
        timestamp = request.headers.get("X-Webhook-Timestamp")

        if not signature:
            logger.warning(f"Missing {self.provider} signature header")
            raise WebhookValidationError("Missing X-Webhook-Signature header")
        if not timestamp:
            raise WebhookValidationError("Missing X-Webhook-Timestamp header")

        self.check_timestamp(timestamp)

        body = await request.body()
        if not signatures_match(signature, self.compute_signature(body, timestamp)):
            logger.warning(f"Invalid {self.provider} signature")
            raise WebhookValidationError(f"Invalid {self.provider} signature")

        return True


class SikkaWebhookValidator(GenericWebhookValidator):
    """Validates Sikka webhook signatures"""

    provider = "Sikka"
    secret_setting = "SIKKA_WEBHOOK_SECRET"

    def __init__(self, secret: Optional[str] = None, tolerance_seconds: Optional[int] = None):
        super().__init__(secret or settings.sikka_webhook_secret, tolerance_seconds)


class WebhookValidator:
    """
    Combined webhook validator for all providers
    """

    def __init__(self):
        self.retell = RetellWebhookValidator()
        self.sikka = SikkaWebhookValidator()
        self.openai = GenericWebhookValidator(settings.openai_webhook_secret or settings.webhook_secret)

    @staticmethod
    def _skip() -> bool:
        if settings.debug and settings.environment == "development":
            logger.debug("Skipping webhook validation in development mode")
            return True
        return False

    async def validate_retell(self, request: Request) -> bool:
        """Validate Retell webhook"""
        if self._skip():
            return True
        return await self.retell.validate(request)

    async def validate_sikka(self, request: Request) -> bool:
        """Validate Sikka webhook"""
        if self._skip():
            return True
        return await self.sikka.validate(request)

    async def validate_openai(self, request: Request) -> bool:
        """Validate OpenAI webhook"""
        if self._skip():
            return True
        return await self.openai.validate(request)


# Singleton instance
_webhook_validator: Optional[WebhookValidator] = None


def get_webhook_validator() -> WebhookValidator:
    """Get webhook validator singleton"""
    global _webhook_validator
    if _webhook_validator is None:
        _webhook_validator = WebhookValidator()
    return _webhook_validator


async def validate_retell_webhook(request: Request):
    """
    Dependency for validating Retell webhooks

    Usage:
        @router.post("/webhook")
        async def webhook(request: Request, _: bool = Depends(validate_retell_webhook)):
            ...
    """
    return await get_webhook_validator().validate_retell(request)


async def validate_sikka_webhook(request: Request):
    """Dependency for validating Sikka webhooks"""
    return await get_webhook_validator().validate_sikka(request)


async def validate_openai_webhook(request: Request):
    """Dependency for validating OpenAI webhooks"""
    return await get_webhook_validator().validate_openai(request)
