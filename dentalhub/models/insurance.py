"""
Insurance Request Models
Bodies for Sikka verification, eligibility, benefits and claims
"""

from datetime import date
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field

from .common import UTCDateTime


class InsuranceVerificationRequest(BaseModel):
    patient_id: str
    carrier_id: str
    member_id: str
    group_number: Optional[str] = None


class EligibilityRequest(BaseModel):
    patient_id: str
    service_date: date
    service_types: List[str] = Field(..., min_length=1)


class BenefitsRequest(BaseModel):
    patient_id: str
    procedure_codes: List[str] = Field(..., min_length=1)
    service_date: date


class ClaimProcedure(BaseModel):
    code: str
    fee: float = Field(..., ge=0)
    tooth: Optional[str] = None
    surface: Optional[str] = None
    quantity: int = Field(default=1, ge=1)


class ClaimSubmission(BaseModel):
    patient_id: str
    service_date: date
    procedures: List[ClaimProcedure] = Field(..., min_length=1)
    diagnosis_codes: List[str] = Field(default_factory=list)
    place_of_service: str = "11"


class ClaimStatusUpdate(BaseModel):
    status: str
    notes: Optional[str] = None


class InsuranceEvent(BaseModel):
    """A stored Sikka insurance webhook event"""
    id: str
    practice_id: str
    event_type: str
    request_id: Optional[str] = None
    patient_id: Optional[str] = None
    reference_id: Optional[str] = None
    status: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)
    received_at: UTCDateTime
