"""
Procedure Code Models
CDT procedure codes synced from Sikka, with per-practice fee schedules
"""

import uuid
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field

from .common import UTCDateTime


class ProcedureCategory(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    practice_id: str
    sikka_category_id: str
    name: str


class ProcedureCode(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    practice_id: str
    code: str
    description: str
    abbreviation: Optional[str] = None
    category_id: Optional[str] = None
    explosion_code: Optional[str] = None
    submit_to_insurance: bool = True
    allow_discount: bool = True
    procedure_type: Optional[str] = None
    is_active: bool = True
    current_fee: Optional[float] = None
    created_at: UTCDateTime = Field(default_factory=datetime.utcnow)
    updated_at: UTCDateTime = Field(default_factory=datetime.utcnow)


class FeeSchedule(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    procedure_code_id: str
    fee_amount: float
    effective_date: UTCDateTime
    end_date: Optional[UTCDateTime] = None


class FeeUpdate(BaseModel):
    fee_amount: float = Field(..., ge=0)
    effective_date: Optional[UTCDateTime] = None


class ProcedureSyncResult(BaseModel):
    practice_id: str
    total: int
    created: int
    updated: int
    skipped: int
    categories: int
    errors: List[str] = Field(default_factory=list)
