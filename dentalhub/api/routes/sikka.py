"""
Sikka API Routes
Read-through access to practice-management data in Sikka
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from dentalhub.integrations.sikka import SikkaClient, get_sikka_client
from dentalhub.models.practice import PracticeContext
from dentalhub.api.middleware.auth import require_permission
from dentalhub.api.middleware.rate_limit import rate_limit_practice

router = APIRouter(prefix="/sikka", tags=["sikka"], dependencies=[Depends(rate_limit_practice)])

can_read = require_permission("patients:read")


def get_client() -> SikkaClient:
    """Dependency to get the Sikka client"""
    return get_sikka_client()


@router.get("/practice")
async def get_practice_info(
    context: PracticeContext = Depends(can_read),
    client: SikkaClient = Depends(get_client)
):
    """Practice details as Sikka knows them"""
    return await client.get_practice_info()


@router.get("/appointments")
async def get_appointments(
    startdate: Optional[str] = Query(None, description="yyyy-mm-dd"),
    enddate: Optional[str] = Query(None, description="yyyy-mm-dd"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    context: PracticeContext = Depends(can_read),
    client: SikkaClient = Depends(get_client)
):
    """
    Appointments from the practice-management system
    """
    return await client.get_appointments(
        {"startdate": startdate, "enddate": enddate},
        sort_by="appointment_date",
        limit=limit,
        offset=offset
    )


@router.get("/available-slots")
async def get_available_slots(
    startdate: str = Query(..., description="yyyy-mm-dd"),
    enddate: Optional[str] = Query(None, description="yyyy-mm-dd"),
    provider_id: Optional[str] = None,
    context: PracticeContext = Depends(can_read),
    client: SikkaClient = Depends(get_client)
):
    return await client.get_available_slots(
        {"startdate": startdate, "enddate": enddate, "provider_id": provider_id}
    )


@router.get("/patients")
async def get_patients(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    context: PracticeContext = Depends(can_read),
    client: SikkaClient = Depends(get_client)
):
    return await client.get_patients(limit=limit, offset=offset)


@router.get("/patients/{patient_id}/treatment-history")
async def get_treatment_history(
    patient_id: str,
    context: PracticeContext = Depends(can_read),
    client: SikkaClient = Depends(get_client)
):
    return await client.get_patient_treatment_history(patient_id)


@router.get("/treatment-plans")
async def get_treatment_plans(
    patient_id: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=200),
    context: PracticeContext = Depends(can_read),
    client: SikkaClient = Depends(get_client)
):
    return await client.get_treatment_plans({"patient_id": patient_id}, limit=limit)
