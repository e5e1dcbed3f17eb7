"""
Webhook Service
Applies inbound Retell, Sikka and OpenAI events to local state
"""

from datetime import datetime
from typing import Optional

from dentalhub.core.logging import get_logger
from dentalhub.db import DatabaseAdapter, get_database
from dentalhub.db.repositories import CallRepository, EventRepository, PracticeRepository
from dentalhub.models.call import CallStatus, TERMINAL_CALL_STATUSES, TranscriptSegment
from dentalhub.models.webhook import (
    OpenAIEvent,
    RetellCallEndedEvent,
    RetellCallStartedEvent,
    RetellEvent,
    RetellRecordingEvent,
    RetellTranscriptionEvent,
    SikkaEvent,
    WebhookAck,
    WebhookEvent,
)
from .campaign_service import CampaignService

logger = get_logger(__name__)

SIKKA_PREFIXES = ("eligibility.", "claim.", "preauth.", "benefits.")
OPENAI_PREFIXES = ("completion.", "moderation.")

# call.ended reasons that mean the patient was not reached
FAILED_END_REASONS = {"failed", "error", "no_answer", "busy", "voicemail", "dial_failed"}
CANCELLED_END_REASONS = {"cancelled", "canceled"}


def provider_for_event(event_type: str) -> Optional[str]:
    """Which sender an event type belongs to"""
    if event_type.startswith("call."):
        return "retell"
    if event_type.startswith(SIKKA_PREFIXES):
        return "sikka"
    if event_type == "error" or event_type.startswith(OPENAI_PREFIXES):
        return "openai"
    return None


def call_status_for_end_reason(reason: str) -> CallStatus:
    reason = (reason or "").lower()
    if reason in CANCELLED_END_REASONS:
        return CallStatus.CANCELLED
    if reason in FAILED_END_REASONS:
        return CallStatus.FAILED
    return CallStatus.COMPLETED


class WebhookService:
    """Routes a validated webhook event to its provider handler"""

    def __init__(
        self,
        adapter: Optional[DatabaseAdapter] = None,
        campaign_service: Optional[CampaignService] = None
    ):
        adapter = adapter or get_database()
        self.calls = CallRepository(adapter)
        self.events = EventRepository(adapter)
        self.practices = PracticeRepository(adapter)
        self.campaigns = campaign_service or CampaignService(adapter)

    async def handle_webhook(self, event: WebhookEvent) -> WebhookAck:
        event_type = event.event_type
        logger.info(f"Handling webhook event: {event_type}")

        provider = provider_for_event(event_type)
        if provider == "retell":
            handled = await self.handle_retell_event(event)
        elif provider == "sikka":
            handled = await self.handle_sikka_event(event)
        elif provider == "openai":
            handled = await self.handle_openai_event(event)
        else:
            logger.warning(f"Unknown webhook event type: {event_type}")
            handled = False

        return WebhookAck(event_type=event_type, handled=handled)

    # ==================== Retell ====================

    async def handle_retell_event(self, event: WebhookEvent) -> bool:
        if not isinstance(event, RetellEvent):
            logger.warning(f"Unsupported Retell event: {event.event_type}")
            return False

        call = await self.calls.get_by_retell_id(event.call_id)
        if not call:
            logger.warning(f"Webhook for unknown Retell call: {event.call_id}")
            return False

        if isinstance(event, RetellCallStartedEvent):
            await self.calls.update(call.id, {
                "status": CallStatus.IN_PROGRESS.value,
                "started_at": event.data.start_time or event.timestamp or datetime.utcnow(),
            })
            logger.info(f"Call {call.id} started")

        elif isinstance(event, RetellCallEndedEvent):
            if call.status in TERMINAL_CALL_STATUSES:
                logger.info(f"Call {call.id} already {call.status.value}, ignoring call.ended")
                return True

            status = call_status_for_end_reason(event.data.reason)
            await self.calls.update(call.id, {
                "status": status.value,
                "duration_seconds": event.data.duration,
                "ended_at": event.data.end_time or event.timestamp or datetime.utcnow(),
                "error_message": None if status == CallStatus.COMPLETED else event.data.reason,
            })
            logger.info(f"Call {call.id} ended: {status.value} after {event.data.duration}s")

            campaign_id = call.campaign_id or event.data.metadata.get("campaign_id")
            if campaign_id:
                await self.campaigns.record_call_outcome(campaign_id, status, event.data.duration)

        elif isinstance(event, RetellTranscriptionEvent):
            await self.calls.add_transcript_segment(TranscriptSegment(
                call_id=call.id,
                speaker=event.data.speaker_type,
                text=event.data.text,
                timestamp=event.data.start_time or event.timestamp or datetime.utcnow(),
            ))

        elif isinstance(event, RetellRecordingEvent):
            await self.calls.update(call.id, {"recording_url": event.data.url})
            logger.info(f"Stored recording for call {call.id}")

        return True

    # ==================== Sikka ====================

    async def handle_sikka_event(self, event: WebhookEvent) -> bool:
        if not isinstance(event, SikkaEvent):
            logger.warning(f"Unsupported Sikka event: {event.event_type}")
            return False

        practice = await self.practices.get_by_sikka_id(event.practice_id)
        practice_id = practice.id if practice else event.practice_id

        data = event.data
        reference_id = data.get("claimId") or data.get("preAuthId") or data.get("patientId")

        await self.events.add_insurance_event(
            practice_id=practice_id,
            event_type=event.event_type,
            payload=event.model_dump(mode="json", by_alias=True),
            request_id=event.request_id,
            patient_id=event.patient_id,
            reference_id=reference_id,
            status=data.get("status"),
        )
        logger.info(f"Stored Sikka {event.event_type} for practice {practice_id} ({reference_id})")
        return True

    # ==================== OpenAI ====================

    async def handle_openai_event(self, event: WebhookEvent) -> bool:
        if not isinstance(event, OpenAIEvent):
            logger.warning(f"Unsupported OpenAI event: {event.event_type}")
            return False

        if event.event_type == "error":
            logger.error(f"OpenAI error event: {event.data.get('error') or event.data}")
        elif event.event_type == "moderation.flagged":
            logger.warning(f"OpenAI moderation flagged request {event.request_id}")
        else:
            logger.info(f"OpenAI completion finished: {event.request_id}")

        await self.events.add_ai_event(
            event_type=event.event_type,
            payload=event.model_dump(mode="json", by_alias=True),
            request_id=event.request_id,
            organization_id=event.organization_id,
        )
        return True


def get_webhook_service() -> WebhookService:
    return WebhookService()
