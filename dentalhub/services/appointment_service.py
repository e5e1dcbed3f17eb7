"""
Appointment Service
"""

from datetime import datetime
from typing import Optional, List

from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import NotFoundError, ValidationError
from dentalhub.db import DatabaseAdapter, get_database
from dentalhub.db.repositories import AppointmentRepository, PatientRepository
from dentalhub.models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentStatus,
    AppointmentUpdate,
)

logger = get_logger(__name__)


class AppointmentService:
    """Service for booking and managing appointments"""

    def __init__(self, adapter: Optional[DatabaseAdapter] = None):
        adapter = adapter or get_database()
        self.repo = AppointmentRepository(adapter)
        self.patients = PatientRepository(adapter)

    async def list_appointments(self, practice_id: str, filters: AppointmentFilters) -> List[Appointment]:
        return await self.repo.list(practice_id, filters)

    async def get_appointment(self, practice_id: str, appointment_id: str) -> Appointment:
        appointment = await self.repo.get(practice_id, appointment_id)
        if not appointment:
            raise NotFoundError("appointment", appointment_id)
        return appointment

    async def create_appointment(
        self,
        practice_id: str,
        data: AppointmentCreate,
        created_by: Optional[str] = None
    ) -> Appointment:
        if not await self.patients.get(practice_id, data.patient_id):
            raise NotFoundError("patient", data.patient_id)

        appointment = Appointment(practice_id=practice_id, created_by=created_by, **data.model_dump())
        return await self.repo.create(appointment)

    async def update_appointment(
        self,
        practice_id: str,
        appointment_id: str,
        data: AppointmentUpdate
    ) -> Appointment:
        current = await self.get_appointment(practice_id, appointment_id)
        updates = data.model_dump(exclude_unset=True)
        reminders = updates.pop("reminders", None)

        start = updates.get("start_time") or current.start_time
        end = updates.get("end_time") or current.end_time
        if end <= start:
            raise ValidationError("end_time must be after start_time", field="end_time")

        if reminders is not None:
            await self.repo.replace_reminders(appointment_id, data.reminders or [])

        appointment = await self.repo.update(practice_id, appointment_id, updates)
        logger.info(f"Updated appointment {appointment_id}")
        return appointment

    async def cancel_appointment(self, practice_id: str, appointment_id: str) -> Appointment:
        await self.get_appointment(practice_id, appointment_id)
        appointment = await self.repo.update(
            practice_id, appointment_id, {"status": AppointmentStatus.CANCELLED}
        )
        logger.info(f"Cancelled appointment {appointment_id}")
        return appointment

    async def delete_appointment(self, practice_id: str, appointment_id: str) -> None:
        if not await self.repo.delete(practice_id, appointment_id):
            raise NotFoundError("appointment", appointment_id)

    async def upcoming(self, practice_id: str, limit: int = 10) -> List[Appointment]:
        """Next appointments from now that are not cancelled"""
        appointments = await self.repo.list(
            practice_id,
            AppointmentFilters(start_date=datetime.utcnow()),
            limit=limit * 2
        )
        return [a for a in appointments if a.status != AppointmentStatus.CANCELLED][:limit]


def get_appointment_service() -> AppointmentService:
    return AppointmentService()
