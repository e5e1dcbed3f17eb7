"""
Appointment persistence
"""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from dentalhub.db.repository import BaseRepository
from dentalhub.models.appointment import Appointment, AppointmentFilters, AppointmentReminder

logger = logging.getLogger(__name__)


class AppointmentRepository(BaseRepository):

    async def create(self, appointment: Appointment) -> Appointment:
        await self._insert("appointments", {
            "id": appointment.id,
            "practice_id": appointment.practice_id,
            "patient_id": appointment.patient_id,
            "provider_id": appointment.provider_id,
            "start_time": appointment.start_time,
            "end_time": appointment.end_time,
            "status": appointment.status,
            "appointment_type": appointment.appointment_type,
            "notes": appointment.notes,
            "created_by": appointment.created_by,
            "created_at": appointment.created_at,
            "updated_at": appointment.updated_at,
        })
        await self.replace_reminders(appointment.id, appointment.reminders)
        logger.info(f"Created appointment {appointment.id} for patient {appointment.patient_id}")
        return appointment

    async def get(self, practice_id: str, appointment_id: str) -> Optional[Appointment]:
        row = await self.adapter.fetch_one(
            "SELECT * FROM appointments WHERE practice_id = ? AND id = ?", (practice_id, appointment_id)
        )
        if not row:
            return None
        return Appointment(**row, reminders=await self.get_reminders(appointment_id))

    async def list(self, practice_id: str, filters: AppointmentFilters, limit: int = 200) -> List[Appointment]:
        query = "SELECT * FROM appointments WHERE practice_id = ?"
        params: List[Any] = [practice_id]

        if filters.start_date:
            query += " AND start_time >= ?"
            params.append(filters.start_date)
        if filters.end_date:
            query += " AND end_time <= ?"
            params.append(filters.end_date)
        if filters.status:
            query += " AND status = ?"
            params.append(filters.status.value)
        if filters.provider_id:
            query += " AND provider_id = ?"
            params.append(filters.provider_id)
        if filters.patient_id:
            query += " AND patient_id = ?"
            params.append(filters.patient_id)

        query += " ORDER BY start_time ASC LIMIT ?"
        params.append(limit)

        rows = await self.adapter.fetch_all(query, tuple(params))
        appointments = []
        for row in rows:
            appointments.append(Appointment(**row, reminders=await self.get_reminders(row["id"])))
        return appointments

    async def update(self, practice_id: str, appointment_id: str, updates: Dict[str, Any]) -> Optional[Appointment]:
        if updates:
            updates = {**updates, "updated_at": datetime.utcnow()}
            await self._update("appointments", updates, {"practice_id": practice_id, "id": appointment_id})
        return await self.get(practice_id, appointment_id)

    async def delete(self, practice_id: str, appointment_id: str) -> bool:
        await self.adapter.execute(
            "DELETE FROM appointment_reminders WHERE appointment_id = ?", (appointment_id,)
        )
        deleted = await self.adapter.execute(
            "DELETE FROM appointments WHERE practice_id = ? AND id = ?", (practice_id, appointment_id)
        )
        return bool(deleted)

    async def count_by_status(self, practice_id: str) -> Dict[str, int]:
        rows = await self.adapter.fetch_all(
            "SELECT status, COUNT(*) AS count FROM appointments WHERE practice_id = ? GROUP BY status",
            (practice_id,),
        )
        return {row["status"]: int(row["count"] or 0) for row in rows}

    async def count_between(self, practice_id: str, start: datetime, end: datetime) -> int:
        row = await self.adapter.fetch_one(
            "SELECT COUNT(*) AS total FROM appointments "
            "WHERE practice_id = ? AND start_time >= ? AND start_time < ? AND status != ?",
            (practice_id, start, end, "cancelled"),
        )
        return int(row["total"] or 0) if row else 0

    # ==================== Reminders ====================

    async def replace_reminders(self, appointment_id: str, reminders: List[AppointmentReminder]) -> None:
        await self.adapter.execute(
            "DELETE FROM appointment_reminders WHERE appointment_id = ?", (appointment_id,)
        )
        for reminder in reminders:
            await self._insert("appointment_reminders", {
                "appointment_id": appointment_id,
                "type": reminder.type,
                "scheduled_time": reminder.scheduled_time,
                "sent": reminder.sent,
            })

    async def get_reminders(self, appointment_id: str) -> List[AppointmentReminder]:
        rows = await self.adapter.fetch_all(
            "SELECT type, scheduled_time, sent FROM appointment_reminders "
            "WHERE appointment_id = ? ORDER BY scheduled_time ASC",
            (appointment_id,),
        )
        return [
            AppointmentReminder(type=row["type"], scheduled_time=row["scheduled_time"], sent=bool(row["sent"]))
            for row in rows
        ]
