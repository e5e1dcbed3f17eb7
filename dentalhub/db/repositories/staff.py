"""
Staff profile persistence
"""

import logging
from datetime import date, datetime
from typing import Optional, List, Dict, Any

from dentalhub.db.repository import BaseRepository
from dentalhub.models.staff import StaffProfile

logger = logging.getLogger(__name__)


class StaffRepository(BaseRepository):
    json_columns = ("certifications", "skills", "contact_info")

    async def create(self, staff: StaffProfile) -> StaffProfile:
        await self._insert("staff_profiles", staff.model_dump())
        logger.info(f"Created staff profile {staff.id} ({staff.role.value})")
        return staff

    async def get(self, practice_id: str, staff_id: str) -> Optional[StaffProfile]:
        row = await self.adapter.fetch_one(
            "SELECT * FROM staff_profiles WHERE practice_id = ? AND id = ?", (practice_id, staff_id)
        )
        return self._row_to_staff(row) if row else None

    async def list(
        self,
        practice_id: str,
        role: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[StaffProfile]:
        query = "SELECT * FROM staff_profiles WHERE practice_id = ?"
        params: List[Any] = [practice_id]
        if role:
            query += " AND role = ?"
            params.append(role)
        if status:
            query += " AND status = ?"
            params.append(status)
        query += " ORDER BY created_at DESC"
        rows = await self.adapter.fetch_all(query, tuple(params))
        return [self._row_to_staff(row) for row in rows]

    async def licenses_expiring_before(self, practice_id: str, cutoff: date) -> List[StaffProfile]:
        rows = await self.adapter.fetch_all(
            "SELECT * FROM staff_profiles WHERE practice_id = ? AND status = ? "
            "AND license_expiry IS NOT NULL AND license_expiry <= ? ORDER BY license_expiry ASC",
            (practice_id, "active", cutoff),
        )
        return [self._row_to_staff(row) for row in rows]

    async def update(self, practice_id: str, staff_id: str, updates: Dict[str, Any]) -> Optional[StaffProfile]:
        if updates:
            updates = {**updates, "updated_at": datetime.utcnow()}
            await self._update("staff_profiles", updates, {"practice_id": practice_id, "id": staff_id})
        return await self.get(practice_id, staff_id)

    async def delete(self, practice_id: str, staff_id: str) -> bool:
        deleted = await self.adapter.execute(
            "DELETE FROM staff_profiles WHERE practice_id = ? AND id = ?", (practice_id, staff_id)
        )
        return bool(deleted)

    def _row_to_staff(self, row: Dict[str, Any]) -> StaffProfile:
        data = self._decode_row(row)
        for column in ("certifications", "skills"):
            data[column] = data.get(column) or []
        data["contact_info"] = data.get("contact_info") or {}
        return StaffProfile(**data)
