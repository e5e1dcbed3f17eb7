"""
Webhook routes for Retell, Sikka and OpenAI callbacks
"""

import json
from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError

from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import ValidationError
from dentalhub.models.webhook import WebhookEvent, parse_webhook_event
from dentalhub.services.webhook_service import WebhookService, get_webhook_service, provider_for_event
from dentalhub.api.middleware.webhook_security import (
    validate_openai_webhook,
    validate_retell_webhook,
    validate_sikka_webhook,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def get_service() -> WebhookService:
    """Dependency to get webhook service"""
    return get_webhook_service()


async def read_event(request: Request, provider: str) -> WebhookEvent:
    """
    Parse the request body into its event model

    Raises:
        ValidationError: Malformed body, or an event from another sender
    """
    try:
        payload = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Webhook body must be JSON")

    if not isinstance(payload, dict):
        raise ValidationError("Webhook body must be a JSON object")

    try:
        event = parse_webhook_event(payload)
    except PydanticValidationError as e:
        logger.warning(f"Invalid {provider} webhook payload: {e.error_count()} errors")
        raise ValidationError(f"Invalid {provider} webhook payload")

    sender = provider_for_event(event.event_type)
    if sender is not None and sender != provider:
        raise ValidationError(f"Event {event.event_type} is not a {provider} event", field="eventType")

    return event


@router.post("/retell")
async def handle_retell_webhook(
    request: Request,
    _: bool = Depends(validate_retell_webhook),
    service: WebhookService = Depends(get_service)
):
    """
    Handle call events from Retell

    Updates call status and duration, stores transcript segments and
    recordings, and rolls call outcomes into campaign metrics.
    """
    event = await read_event(request, "retell")
    await service.handle_webhook(event)
    return {"status": "received"}


@router.post("/sikka")
async def handle_sikka_webhook(
    request: Request,
    _: bool = Depends(validate_sikka_webhook),
    service: WebhookService = Depends(get_service)
):
    """
    Handle insurance events from Sikka
    """
    event = await read_event(request, "sikka")
    await service.handle_webhook(event)
    return {"status": "received"}


@router.post("/openai")
async def handle_openai_webhook(
    request: Request,
    _: bool = Depends(validate_openai_webhook),
    service: WebhookService = Depends(get_service)
):
    """
    Handle completion, error and moderation events from OpenAI
    """
    event = await read_event(request, "openai")
    await service.handle_webhook(event)
    return {"status": "received"}
