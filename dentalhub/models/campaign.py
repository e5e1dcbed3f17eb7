"""
Campaign Models
Outreach campaigns with a lifecycle status and aggregate delivery metrics
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, model_validator

from .common import UTCDateTime


class CampaignType(str, Enum):
    VOICE = "voice"
    SMS = "sms"
    EMAIL = "email"


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"


# Allowed manual status changes; completed and failed are terminal
CAMPAIGN_TRANSITIONS: Dict[CampaignStatus, set] = {
    CampaignStatus.DRAFT: {CampaignStatus.SCHEDULED, CampaignStatus.ACTIVE, CampaignStatus.FAILED},
    CampaignStatus.SCHEDULED: {
        CampaignStatus.ACTIVE,
        CampaignStatus.PAUSED,
        CampaignStatus.DRAFT,
        CampaignStatus.FAILED,
    },
    CampaignStatus.ACTIVE: {CampaignStatus.PAUSED, CampaignStatus.COMPLETED, CampaignStatus.FAILED},
    CampaignStatus.PAUSED: {CampaignStatus.ACTIVE, CampaignStatus.COMPLETED, CampaignStatus.FAILED},
    CampaignStatus.COMPLETED: set(),
    CampaignStatus.FAILED: set(),
}


def can_transition(current: CampaignStatus, target: CampaignStatus) -> bool:
    """Check whether a campaign may move from current to target"""
    if current == target:
        return True
    return target in CAMPAIGN_TRANSITIONS.get(current, set())


class CampaignSchedule(BaseModel):
    start_date: UTCDateTime
    end_date: Optional[UTCDateTime] = None
    timezone: str = "UTC"

    @model_validator(mode="after")
    def _check_window(self):
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class CampaignAudience(BaseModel):
    """Patient filters; keys are patient columns, values are exact matches"""
    filters: Dict[str, Any] = Field(default_factory=dict)
    exclude_filters: Optional[Dict[str, Any]] = None
    patient_ids: Optional[List[str]] = None


class CampaignContent(BaseModel):
    template: str
    variables: Optional[Dict[str, Any]] = None
    subject: Optional[str] = None
    attachments: Optional[List[str]] = None


class CampaignSettings(BaseModel):
    retry_count: Optional[int] = Field(default=None, ge=0, le=10)
    retry_delay: Optional[int] = Field(default=None, ge=0)
    callback_url: Optional[str] = None


class CampaignMetrics(BaseModel):
    total: int = 0
    sent: int = 0
    delivered: int = 0
    engaged: int = 0
    failed: int = 0


class CampaignMetricsUpdate(BaseModel):
    """Partial metrics; omitted counters keep their stored value"""
    total: Optional[int] = Field(default=None, ge=0)
    sent: Optional[int] = Field(default=None, ge=0)
    delivered: Optional[int] = Field(default=None, ge=0)
    engaged: Optional[int] = Field(default=None, ge=0)
    failed: Optional[int] = Field(default=None, ge=0)


def derive_campaign_status(metrics: CampaignMetrics, current: CampaignStatus) -> CampaignStatus:
    """
    Compute the status implied by delivery metrics

    completed = delivered + failed. Nothing completed keeps the current
    status; partial completion means the campaign is active; reaching the
    total completes it. Paused and failed campaigns only move when the
    metrics complete them.
    """
    completed = metrics.delivered + metrics.failed

    if completed == 0:
        return current

    if completed >= metrics.total:
        if current == CampaignStatus.FAILED:
            return current
        return CampaignStatus.COMPLETED

    if current in (CampaignStatus.PAUSED, CampaignStatus.FAILED, CampaignStatus.COMPLETED):
        return current
    return CampaignStatus.ACTIVE


class CampaignCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    type: CampaignType
    schedule: Optional[CampaignSchedule] = None
    audience: CampaignAudience = Field(default_factory=CampaignAudience)
    content: CampaignContent
    settings: CampaignSettings = Field(default_factory=CampaignSettings)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class CampaignUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    schedule: Optional[CampaignSchedule] = None
    audience: Optional[CampaignAudience] = None
    content: Optional[CampaignContent] = None
    settings: Optional[CampaignSettings] = None
    metadata: Optional[Dict[str, Any]] = None


class Campaign(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    practice_id: str
    name: str
    type: CampaignType
    status: CampaignStatus = CampaignStatus.DRAFT
    schedule: Optional[CampaignSchedule] = None
    audience: CampaignAudience = Field(default_factory=CampaignAudience)
    content: CampaignContent
    metrics: CampaignMetrics = Field(default_factory=CampaignMetrics)
    settings: CampaignSettings = Field(default_factory=CampaignSettings)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_by: Optional[str] = None
    created_at: UTCDateTime = Field(default_factory=datetime.utcnow)
    updated_at: UTCDateTime = Field(default_factory=datetime.utcnow)


class CampaignFilters(BaseModel):
    type: Optional[CampaignType] = None
    status: Optional[CampaignStatus] = None
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None
    search: Optional[str] = None


class CampaignStatusUpdate(BaseModel):
    status: CampaignStatus


class CampaignScheduleRequest(BaseModel):
    start_date: UTCDateTime
    end_date: Optional[UTCDateTime] = None
    timezone: str = "UTC"


class CampaignAnalytics(BaseModel):
    campaign_id: str
    status: CampaignStatus
    metrics: CampaignMetrics
    delivery_rate: float
    engagement_rate: float
    failure_rate: float
    completion_rate: float
