"""
Patient API Routes
"""

from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from dentalhub.core.logging import get_logger
from dentalhub.integrations.sikka import get_sikka_client
from dentalhub.models.patient import (
    FamilyMember,
    FamilyMemberCreate,
    Patient,
    PatientCreate,
    PatientList,
    PatientSearch,
    PatientStatus,
    PatientUpdate,
)
from dentalhub.models.practice import PracticeContext
from dentalhub.services.patient_service import PatientService, get_patient_service
from dentalhub.api.middleware.auth import require_permission
from dentalhub.api.middleware.rate_limit import rate_limit_practice

logger = get_logger(__name__)

router = APIRouter(prefix="/patients", tags=["patients"], dependencies=[Depends(rate_limit_practice)])

can_read = require_permission("patients:read")
can_write = require_permission("patients:write")


def get_service() -> PatientService:
    """Dependency to get patient service"""
    return get_patient_service()


@router.get("/", response_model=PatientList)
async def list_patients(
    status: Optional[PatientStatus] = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    context: PracticeContext = Depends(can_read),
    service: PatientService = Depends(get_service)
):
    """
    List patients of the practice
    """
    patients = await service.list_patients(context.practice_id, status=status, limit=limit, offset=offset)
    return PatientList(patients=patients, count=len(patients))


@router.get("/search", response_model=List[Patient])
async def search_patients(
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    date_of_birth: Optional[date] = None,
    phone: Optional[str] = None,
    email: Optional[str] = None,
    context: PracticeContext = Depends(can_read),
    service: PatientService = Depends(get_service)
):
    """
    Search patients

    Names, phone and email match case-insensitive substrings; the date of
    birth must match exactly. At most 100 results.
    """
    criteria = PatientSearch(
        first_name=first_name,
        last_name=last_name,
        date_of_birth=date_of_birth,
        phone=phone,
        email=email,
    )
    return await service.search_patients(context.practice_id, criteria)


@router.post("/", response_model=Patient, status_code=201)
async def create_patient(
    data: PatientCreate,
    context: PracticeContext = Depends(can_write),
    service: PatientService = Depends(get_service)
):
    """Create a patient"""
    return await service.create_patient(context.practice_id, data)


@router.post("/import/sikka")
async def import_patients_from_sikka(
    limit: int = Query(default=200, ge=1, le=200),
    context: PracticeContext = Depends(can_write),
    service: PatientService = Depends(get_service)
):
    """
    Import patients from Sikka

    Existing patients are matched by their Sikka patient id and updated.
    """
    data = await get_sikka_client().get_patients(limit=limit)
    records = data.get("items", []) if isinstance(data, dict) else (data or [])
    return await service.import_from_sikka(context.practice_id, records)


@router.get("/{patient_id}", response_model=Patient)
async def get_patient(
    patient_id: str,
    context: PracticeContext = Depends(can_read),
    service: PatientService = Depends(get_service)
):
    """Get a patient by ID"""
    return await service.get_patient(context.practice_id, patient_id)


@router.patch("/{patient_id}", response_model=Patient)
async def update_patient(
    patient_id: str,
    data: PatientUpdate,
    context: PracticeContext = Depends(can_write),
    service: PatientService = Depends(get_service)
):
    """
    Update a patient

    Only the fields present in the body are changed.
    """
    return await service.update_patient(context.practice_id, patient_id, data)


@router.delete("/{patient_id}")
async def delete_patient(
    patient_id: str,
    context: PracticeContext = Depends(can_write),
    service: PatientService = Depends(get_service)
):
    """Delete a patient"""
    await service.delete_patient(context.practice_id, patient_id)
    return {"message": f"Patient {patient_id} deleted"}


@router.get("/{patient_id}/family", response_model=List[FamilyMember])
async def get_family_members(
    patient_id: str,
    context: PracticeContext = Depends(can_read),
    service: PatientService = Depends(get_service)
):
    """List a patient's family members"""
    return await service.get_family_members(context.practice_id, patient_id)


@router.post("/{patient_id}/family", response_model=FamilyMember, status_code=201)
async def add_family_member(
    patient_id: str,
    data: FamilyMemberCreate,
    context: PracticeContext = Depends(can_write),
    service: PatientService = Depends(get_service)
):
    """
    Link another patient of the practice as a family member
    """
    return await service.add_family_member(context.practice_id, patient_id, data)
