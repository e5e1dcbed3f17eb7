"""
Patient Models
"""

import re
import uuid
from datetime import date, datetime
from enum import Enum
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field, field_validator

from .common import UTCDateTime


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_phone(value: Optional[str]) -> Optional[str]:
    """Strip formatting from a phone number, keeping a leading +"""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    prefix = "+" if value.startswith("+") else ""
    digits = re.sub(r"\D", "", value)
    if len(digits) < 7 or len(digits) > 15:
        raise ValueError("Phone number must contain 7 to 15 digits")
    return prefix + digits


def validate_email(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email address")
    return value


class PatientStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class RelationshipType(str, Enum):
    SPOUSE = "spouse"
    PARENT = "parent"
    CHILD = "child"
    SIBLING = "sibling"
    GUARDIAN = "guardian"
    OTHER = "other"


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: str = "US"


class _PatientFields(BaseModel):
    """Validation shared by create and update payloads"""

    @field_validator("email", check_fields=False)
    @classmethod
    def _check_email(cls, v):
        return validate_email(v)

    @field_validator("phone", check_fields=False)
    @classmethod
    def _check_phone(cls, v):
        return normalize_phone(v)

    @field_validator("date_of_birth", check_fields=False)
    @classmethod
    def _check_dob(cls, v):
        if v is not None and v > date.today():
            raise ValueError("Date of birth cannot be in the future")
        return v


class PatientCreate(_PatientFields):
    """Request model for creating a patient"""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    address: Optional[Address] = None
    medical_history: Dict[str, Any] = Field(default_factory=dict)
    sikka_patient_id: Optional[str] = None


class PatientUpdate(_PatientFields):
    """Partial update; only provided fields are written"""
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    address: Optional[Address] = None
    medical_history: Optional[Dict[str, Any]] = None
    status: Optional[PatientStatus] = None


class Patient(BaseModel):
    """A practice patient"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    practice_id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    address: Optional[Address] = None
    medical_history: Dict[str, Any] = Field(default_factory=dict)
    sikka_patient_id: Optional[str] = None
    status: PatientStatus = PatientStatus.ACTIVE
    created_at: UTCDateTime = Field(default_factory=datetime.utcnow)
    updated_at: UTCDateTime = Field(default_factory=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class PatientSearch(BaseModel):
    """Search criteria; text fields are case-insensitive substring matches"""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class PatientRelationship(BaseModel):
    """A family link between two patients of the same practice"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    practice_id: str
    patient_id: str
    related_patient_id: str
    relationship_type: RelationshipType
    created_at: UTCDateTime = Field(default_factory=datetime.utcnow)


class FamilyMemberCreate(BaseModel):
    related_patient_id: str
    relationship_type: RelationshipType


class FamilyMember(BaseModel):
    relationship: PatientRelationship
    patient: Patient


class PatientList(BaseModel):
    patients: List[Patient]
    count: int
