"""
Data models for patient voice calls placed through Retell
"""

import re
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, field_validator

from .common import UTCDateTime


E164_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")


def is_e164(phone_number: str) -> bool:
    return bool(phone_number and E164_PATTERN.match(phone_number))


class CallStatus(str, Enum):
    """Status of a call"""
    QUEUED = "queued"
    INITIATED = "initiated"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_CALL_STATUSES = {CallStatus.COMPLETED, CallStatus.FAILED, CallStatus.CANCELLED}


class CallPurpose(str, Enum):
    APPOINTMENT_REMINDER = "appointment_reminder"
    FOLLOW_UP = "follow_up"
    BILLING = "billing"
    CUSTOM = "custom"


class CallPriority(str, Enum):
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class CallConfig(BaseModel):
    """Per-call options forwarded to Retell"""
    max_duration: int = Field(default=600, ge=30, le=3600)
    record_call: bool = True
    transcription_enabled: bool = True
    ai_analysis_enabled: bool = True
    voice_id: Optional[str] = None


class CallRequest(BaseModel):
    """Request model for initiating a call"""
    model_config = {
        "json_schema_extra": {
            "example": {
                "patient_id": "3f5b6c1e-8a44-4d55-9b1f-5f1d9c0a2b11",
                "phone_number": "+14155551234",
                "purpose": "appointment_reminder",
                "language": "en-US",
                "priority": "normal"
            }
        }
    }

    patient_id: str
    phone_number: Optional[str] = Field(
        default=None,
        description="Number to call (E.164); defaults to the patient's phone"
    )
    purpose: CallPurpose
    custom_script: Optional[str] = None
    language: str = "en-US"
    priority: CallPriority = CallPriority.NORMAL
    config: Optional[CallConfig] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("phone_number")
    @classmethod
    def _check_phone(cls, v):
        if v is not None and not is_e164(v):
            raise ValueError("Phone number must be in E.164 format (e.g., +14155551234)")
        return v


class CallRecord(BaseModel):
    """A call placed for a practice"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    practice_id: str
    retell_call_id: Optional[str] = None
    patient_id: Optional[str] = None
    campaign_id: Optional[str] = None
    phone_number: str
    purpose: CallPurpose = CallPurpose.CUSTOM
    priority: CallPriority = CallPriority.NORMAL
    status: CallStatus = CallStatus.QUEUED
    duration_seconds: Optional[int] = None
    recording_url: Optional[str] = None
    analysis: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    created_at: UTCDateTime = Field(default_factory=datetime.utcnow)
    started_at: Optional[UTCDateTime] = None
    ended_at: Optional[UTCDateTime] = None


class TranscriptSegment(BaseModel):
    id: Optional[int] = None
    call_id: str
    speaker: str
    text: str
    timestamp: UTCDateTime = Field(default_factory=datetime.utcnow)
    confidence: Optional[float] = None


class CallPriorityUpdate(BaseModel):
    priority: CallPriority


class CallStatistics(BaseModel):
    total_calls: int = 0
    completed_calls: int = 0
    failed_calls: int = 0
    active_calls: int = 0
    total_duration_seconds: int = 0
    average_duration_seconds: float = 0
    success_rate: float = 0


class CallList(BaseModel):
    calls: List[CallRecord]
    count: int
