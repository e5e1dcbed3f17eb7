"""
Webhook Event Models
Inbound events from Retell, Sikka and OpenAI, keyed by eventType
"""

from datetime import datetime
from typing import Optional, List, Dict, Any, Type
from pydantic import BaseModel, ConfigDict, Field

from .common import UTCDateTime


class _EventModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class WebhookEvent(_EventModel):
    """Base for every inbound event"""
    event_type: str = Field(..., alias="eventType")
    timestamp: Optional[UTCDateTime] = None


# ==================== Retell ====================

class RetellEvent(WebhookEvent):
    call_id: str = Field(..., alias="callId")


class CallStartedData(_EventModel):
    agent_id: Optional[str] = Field(default=None, alias="agentId")
    customer_id: Optional[str] = Field(default=None, alias="customerId")
    start_time: Optional[UTCDateTime] = Field(default=None, alias="startTime")
    metadata: Dict[str, Any] = Field(default_factory=dict)


class CallEndedData(_EventModel):
    duration: int = 0
    end_time: Optional[UTCDateTime] = Field(default=None, alias="endTime")
    reason: str = "completed"
    metadata: Dict[str, Any] = Field(default_factory=dict)


class TranscriptionData(_EventModel):
    text: str
    speaker_id: Optional[str] = Field(default=None, alias="speakerId")
    speaker_type: str = Field(default="agent", alias="speakerType")
    start_time: Optional[UTCDateTime] = Field(default=None, alias="startTime")
    end_time: Optional[UTCDateTime] = Field(default=None, alias="endTime")


class RecordingData(_EventModel):
    url: str
    duration: int = 0
    format: str = "mp3"


class RetellCallStartedEvent(RetellEvent):
    data: CallStartedData = Field(default_factory=CallStartedData)


class RetellCallEndedEvent(RetellEvent):
    data: CallEndedData = Field(default_factory=CallEndedData)


class RetellTranscriptionEvent(RetellEvent):
    data: TranscriptionData


class RetellRecordingEvent(RetellEvent):
    data: RecordingData


# ==================== Sikka ====================

class SikkaEvent(WebhookEvent):
    practice_id: str = Field(..., alias="practiceId")
    request_id: Optional[str] = Field(default=None, alias="requestId")
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def patient_id(self) -> Optional[str]:
        return self.data.get("patientId")


class SikkaEligibilityVerifiedEvent(SikkaEvent):
    pass


class SikkaClaimStatusEvent(SikkaEvent):
    pass


class SikkaPreAuthStatusEvent(SikkaEvent):
    pass


class SikkaBenefitsUpdateEvent(SikkaEvent):
    pass


# ==================== OpenAI ====================

class OpenAIEvent(WebhookEvent):
    organization_id: Optional[str] = Field(default=None, alias="organizationId")
    model_id: Optional[str] = Field(default=None, alias="modelId")
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def request_id(self) -> Optional[str]:
        return self.data.get("requestId")


class OpenAICompletionEvent(OpenAIEvent):
    pass


class OpenAIErrorEvent(OpenAIEvent):
    pass


class OpenAIModerationEvent(OpenAIEvent):
    pass


EVENT_MODELS: Dict[str, Type[WebhookEvent]] = {
    "call.started": RetellCallStartedEvent,
    "call.ended": RetellCallEndedEvent,
    "call.transcription": RetellTranscriptionEvent,
    "call.recording": RetellRecordingEvent,
    "eligibility.verified": SikkaEligibilityVerifiedEvent,
    "claim.status_update": SikkaClaimStatusEvent,
    "preauth.status_update": SikkaPreAuthStatusEvent,
    "benefits.update": SikkaBenefitsUpdateEvent,
    "completion.finished": OpenAICompletionEvent,
    "error": OpenAIErrorEvent,
    "moderation.flagged": OpenAIModerationEvent,
}


def parse_webhook_event(payload: Dict[str, Any]) -> WebhookEvent:
    """
    Validate a raw payload into its event model

    Unknown event types are returned as a bare WebhookEvent so the
    dispatcher can log them.
    """
    event_type = payload.get("eventType") or payload.get("event_type")
    model = EVENT_MODELS.get(event_type or "", WebhookEvent)
    return model.model_validate(payload)


class WebhookAck(BaseModel):
    status: str = "received"
    event_type: Optional[str] = None
    handled: bool = True
    errors: List[str] = Field(default_factory=list)
