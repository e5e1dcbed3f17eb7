"""
Staff Profile Models
"""

import uuid
from datetime import date, datetime
from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field

from .common import UTCDateTime


class StaffRole(str, Enum):
    DENTIST = "dentist"
    HYGIENIST = "hygienist"
    ASSISTANT = "assistant"
    FRONT_DESK = "front_desk"
    MANAGER = "manager"
    ADMIN = "admin"


class StaffStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on_leave"


class StaffCreate(BaseModel):
    user_id: Optional[str] = None
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = None
    role: StaffRole
    specialization: Optional[str] = None
    license_number: Optional[str] = None
    license_expiry: Optional[date] = None
    certifications: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    contact_info: Dict[str, Any] = Field(default_factory=dict)
    hire_date: Optional[date] = None


class StaffUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[StaffRole] = None
    status: Optional[StaffStatus] = None
    specialization: Optional[str] = None
    license_number: Optional[str] = None
    license_expiry: Optional[date] = None
    certifications: Optional[List[str]] = None
    skills: Optional[List[str]] = None
    contact_info: Optional[Dict[str, Any]] = None
    hire_date: Optional[date] = None


class StaffProfile(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    practice_id: str
    user_id: Optional[str] = None
    first_name: str
    last_name: str
    email: Optional[str] = None
    role: StaffRole
    status: StaffStatus = StaffStatus.ACTIVE
    specialization: Optional[str] = None
    license_number: Optional[str] = None
    license_expiry: Optional[date] = None
    certifications: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    contact_info: Dict[str, Any] = Field(default_factory=dict)
    hire_date: Optional[date] = None
    created_at: UTCDateTime = Field(default_factory=datetime.utcnow)
    updated_at: UTCDateTime = Field(default_factory=datetime.utcnow)
