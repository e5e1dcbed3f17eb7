"""
Practice (tenant) Models
Every practice-owned record is scoped by practice_id
"""

import uuid
from datetime import datetime
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field

from .common import UTCDateTime


DEFAULT_API_KEY_PERMISSIONS = [
    "patients:read",
    "patients:write",
    "campaigns:read",
    "campaigns:write",
    "calls:write",
]


class PracticeSettings(BaseModel):
    """Per-practice operational settings"""
    requests_per_minute: Optional[int] = None
    calls_per_hour: Optional[int] = None
    default_call_language: str = "en-US"
    reminder_lead_hours: int = 24
    business_hours_start: int = 8
    business_hours_end: int = 18


class Practice(BaseModel):
    """A dental practice"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(..., min_length=1, max_length=200)
    timezone: str = "America/New_York"
    phone: Optional[str] = None
    email: Optional[str] = None
    sikka_practice_id: Optional[str] = None
    is_active: bool = True
    settings: PracticeSettings = Field(default_factory=PracticeSettings)
    created_at: UTCDateTime = Field(default_factory=datetime.utcnow)
    updated_at: UTCDateTime = Field(default_factory=datetime.utcnow)


class PracticeCreate(BaseModel):
    """Request model for creating a practice"""
    name: str = Field(..., min_length=1, max_length=200)
    timezone: str = "America/New_York"
    phone: Optional[str] = None
    email: Optional[str] = None
    sikka_practice_id: Optional[str] = None
    settings: Optional[PracticeSettings] = None


class PracticeUpdate(BaseModel):
    """Partial update for a practice"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    timezone: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    sikka_practice_id: Optional[str] = None
    is_active: Optional[bool] = None
    settings: Optional[PracticeSettings] = None


class PracticeAPIKey(BaseModel):
    """API key for practice authentication"""
    api_key: str
    practice_id: str
    name: str = "Default Key"
    permissions: List[str] = Field(default_factory=lambda: list(DEFAULT_API_KEY_PERMISSIONS))
    is_active: bool = True
    created_at: UTCDateTime = Field(default_factory=datetime.utcnow)
    expires_at: Optional[UTCDateTime] = None
    last_used_at: Optional[UTCDateTime] = None

    def is_expired(self) -> bool:
        return self.expires_at is not None and datetime.utcnow() > self.expires_at

    def has_permission(self, permission: str) -> bool:
        return "*" in self.permissions or permission in self.permissions


class APIKeyCreate(BaseModel):
    """Request model for issuing an API key"""
    name: str = Field(..., min_length=1, max_length=100)
    permissions: Optional[List[str]] = None
    expires_in_days: Optional[int] = Field(default=None, ge=1, le=3650)


class PracticeContext(BaseModel):
    """Resolved caller identity for a request"""
    practice_id: str
    user_id: Optional[str] = None
    role: Optional[str] = None
    api_key: Optional[str] = None
    permissions: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
