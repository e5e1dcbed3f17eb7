"""
Insurance API Routes
Verification, eligibility, benefits and claims through Sikka
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from dentalhub.core.logging import get_logger
from dentalhub.db import get_database
from dentalhub.db.repositories import EventRepository
from dentalhub.integrations.sikka import SikkaClient, get_sikka_client
from dentalhub.models.insurance import (
    BenefitsRequest,
    ClaimStatusUpdate,
    ClaimSubmission,
    EligibilityRequest,
    InsuranceEvent,
    InsuranceVerificationRequest,
)
from dentalhub.models.practice import PracticeContext
from dentalhub.api.middleware.auth import get_practice_context, require_permission
from dentalhub.api.middleware.rate_limit import rate_limit_practice

logger = get_logger(__name__)

router = APIRouter(prefix="/insurance", tags=["insurance"], dependencies=[Depends(rate_limit_practice)])

can_read = require_permission("patients:read")
can_write = require_permission("patients:write")
can_read_events = require_permission("insurance:read")


def get_client() -> SikkaClient:
    """Dependency to get the Sikka client"""
    return get_sikka_client()


@router.post("/verify")
async def verify_insurance(
    data: InsuranceVerificationRequest,
    context: PracticeContext = Depends(can_read),
    client: SikkaClient = Depends(get_client)
):
    """
    Verify a patient's insurance coverage
    """
    return await client.verify_insurance(
        patient_id=data.patient_id,
        carrier_id=data.carrier_id,
        member_id=data.member_id,
        group_number=data.group_number
    )


@router.post("/eligibility")
async def check_eligibility(
    data: EligibilityRequest,
    context: PracticeContext = Depends(can_read),
    client: SikkaClient = Depends(get_client)
):
    """
    Check eligibility for the given service types on a date
    """
    return await client.check_eligibility(
        patient_id=data.patient_id,
        service_date=data.service_date.isoformat(),
        service_types=data.service_types
    )


@router.post("/benefits")
async def verify_benefits(
    data: BenefitsRequest,
    context: PracticeContext = Depends(can_read),
    client: SikkaClient = Depends(get_client)
):
    """
    Check coverage, limitations and deductibles for procedure codes
    """
    return await client.verify_benefits(
        patient_id=data.patient_id,
        procedure_codes=data.procedure_codes,
        service_date=data.service_date.isoformat()
    )


@router.post("/claims", status_code=201)
async def submit_claim(
    data: ClaimSubmission,
    context: PracticeContext = Depends(can_write),
    client: SikkaClient = Depends(get_client)
):
    """
    Submit an insurance claim
    """
    result = await client.process_claim(
        patient_id=data.patient_id,
        service_date=data.service_date.isoformat(),
        procedures=[p.model_dump(exclude_none=True) for p in data.procedures],
        diagnosis_codes=data.diagnosis_codes,
        place_of_service=data.place_of_service
    )
    logger.info(f"Claim {result.get('claim_id')} submitted for practice {context.practice_id}")
    return result


@router.put("/claims/{claim_id}/status")
async def update_claim_status(
    claim_id: str,
    data: ClaimStatusUpdate,
    context: PracticeContext = Depends(can_write),
    client: SikkaClient = Depends(get_client)
):
    return await client.update_claim_status(claim_id, data.status, data.notes)


@router.get("/companies")
async def list_insurance_companies(
    limit: int = Query(default=100, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    context: PracticeContext = Depends(get_practice_context),
    client: SikkaClient = Depends(get_client)
):
    return await client.get_insurance_companies(limit=limit, offset=offset)


@router.get("/companies/{insurance_company_id}/coverage")
async def get_plan_coverage(
    insurance_company_id: str,
    context: PracticeContext = Depends(get_practice_context),
    client: SikkaClient = Depends(get_client)
):
    return await client.get_insurance_plan_coverage(insurance_company_id)


@router.get("/events", response_model=List[InsuranceEvent])
async def list_insurance_events(
    patient_id: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=200),
    context: PracticeContext = Depends(can_read_events)
):
    """
    Insurance updates received from Sikka webhooks, newest first
    """
    events = await EventRepository(get_database()).list_insurance_events(
        context.practice_id, patient_id=patient_id, limit=limit
    )
    return [InsuranceEvent(**event) for event in events]
