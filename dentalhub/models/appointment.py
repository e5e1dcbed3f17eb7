"""
Appointment Models
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field, model_validator

from .common import UTCDateTime


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class ReminderType(str, Enum):
    SMS = "sms"
    EMAIL = "email"
    VOICE = "voice"


class AppointmentReminder(BaseModel):
    type: ReminderType
    scheduled_time: UTCDateTime
    sent: bool = False


class AppointmentCreate(BaseModel):
    """Request model for booking an appointment"""
    patient_id: str
    provider_id: Optional[str] = None
    start_time: UTCDateTime
    end_time: UTCDateTime
    appointment_type: Optional[str] = None
    notes: Optional[str] = None
    reminders: List[AppointmentReminder] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class AppointmentUpdate(BaseModel):
    """Partial update; reminders are replaced when supplied"""
    provider_id: Optional[str] = None
    start_time: Optional[UTCDateTime] = None
    end_time: Optional[UTCDateTime] = None
    status: Optional[AppointmentStatus] = None
    appointment_type: Optional[str] = None
    notes: Optional[str] = None
    reminders: Optional[List[AppointmentReminder]] = None


class Appointment(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    practice_id: str
    patient_id: str
    provider_id: Optional[str] = None
    start_time: UTCDateTime
    end_time: UTCDateTime
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    appointment_type: Optional[str] = None
    notes: Optional[str] = None
    reminders: List[AppointmentReminder] = Field(default_factory=list)
    created_by: Optional[str] = None
    created_at: UTCDateTime = Field(default_factory=datetime.utcnow)
    updated_at: UTCDateTime = Field(default_factory=datetime.utcnow)


class AppointmentFilters(BaseModel):
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None
    status: Optional[AppointmentStatus] = None
    provider_id: Optional[str] = None
    patient_id: Optional[str] = None
