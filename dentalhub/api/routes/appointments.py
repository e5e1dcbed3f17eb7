"""
Appointment API Routes
"""

from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from dentalhub.models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentStatus,
    AppointmentUpdate,
)
from dentalhub.models.practice import PracticeContext
from dentalhub.services.appointment_service import AppointmentService, get_appointment_service
from dentalhub.api.middleware.auth import require_permission
from dentalhub.api.middleware.rate_limit import rate_limit_practice

router = APIRouter(prefix="/appointments", tags=["appointments"], dependencies=[Depends(rate_limit_practice)])

can_read = require_permission("patients:read")
can_write = require_permission("patients:write")


def get_service() -> AppointmentService:
    """Dependency to get appointment service"""
    return get_appointment_service()


@router.get("/", response_model=List[Appointment])
async def list_appointments(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    status: Optional[AppointmentStatus] = None,
    provider_id: Optional[str] = None,
    patient_id: Optional[str] = None,
    context: PracticeContext = Depends(can_read),
    service: AppointmentService = Depends(get_service)
):
    """
    List appointments ordered by start time
    """
    filters = AppointmentFilters(
        start_date=start_date,
        end_date=end_date,
        status=status,
        provider_id=provider_id,
        patient_id=patient_id,
    )
    return await service.list_appointments(context.practice_id, filters)


@router.get("/upcoming", response_model=List[Appointment])
async def upcoming_appointments(
    limit: int = Query(default=10, ge=1, le=100),
    context: PracticeContext = Depends(can_read),
    service: AppointmentService = Depends(get_service)
):
    """Next appointments that are not cancelled"""
    return await service.upcoming(context.practice_id, limit=limit)


@router.post("/", response_model=Appointment, status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    context: PracticeContext = Depends(can_write),
    service: AppointmentService = Depends(get_service)
):
    """
    Book an appointment

    The patient must belong to the practice and the end time must be after
    the start time.
    """
    return await service.create_appointment(context.practice_id, data, created_by=context.user_id)


@router.get("/{appointment_id}", response_model=Appointment)
async def get_appointment(
    appointment_id: str,
    context: PracticeContext = Depends(can_read),
    service: AppointmentService = Depends(get_service)
):
    return await service.get_appointment(context.practice_id, appointment_id)


@router.patch("/{appointment_id}", response_model=Appointment)
async def update_appointment(
    appointment_id: str,
    data: AppointmentUpdate,
    context: PracticeContext = Depends(can_write),
    service: AppointmentService = Depends(get_service)
):
    """Update an appointment; supplied reminders replace the stored ones"""
    return await service.update_appointment(context.practice_id, appointment_id, data)


@router.post("/{appointment_id}/cancel", response_model=Appointment)
async def cancel_appointment(
    appointment_id: str,
    context: PracticeContext = Depends(can_write),
    service: AppointmentService = Depends(get_service)
):
    return await service.cancel_appointment(context.practice_id, appointment_id)


@router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: str,
    context: PracticeContext = Depends(can_write),
    service: AppointmentService = Depends(get_service)
):
    await service.delete_appointment(context.practice_id, appointment_id)
    return {"message": f"Appointment {appointment_id} deleted"}
