"""
Staff Service
"""

from datetime import date, timedelta
from typing import Optional, List

from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import NotFoundError
from dentalhub.db import DatabaseAdapter, get_database
from dentalhub.db.repositories import StaffRepository
from dentalhub.models.staff import StaffCreate, StaffProfile, StaffRole, StaffStatus, StaffUpdate

logger = get_logger(__name__)


class StaffService:
    def __init__(self, adapter: Optional[DatabaseAdapter] = None):
        self.repo = StaffRepository(adapter or get_database())

    async def list_staff(
        self,
        practice_id: str,
        role: Optional[StaffRole] = None,
        status: Optional[StaffStatus] = None
    ) -> List[StaffProfile]:
        return await self.repo.list(
            practice_id,
            role=role.value if role else None,
            status=status.value if status else None
        )

    async def get_staff(self, practice_id: str, staff_id: str) -> StaffProfile:
        staff = await self.repo.get(practice_id, staff_id)
        if not staff:
            raise NotFoundError("staff", staff_id)
        return staff

    async def create_staff(self, practice_id: str, data: StaffCreate) -> StaffProfile:
        staff = StaffProfile(practice_id=practice_id, **data.model_dump())
        return await self.repo.create(staff)

    async def update_staff(self, practice_id: str, staff_id: str, data: StaffUpdate) -> StaffProfile:
        await self.get_staff(practice_id, staff_id)
        return await self.repo.update(practice_id, staff_id, data.model_dump(exclude_unset=True))

    async def delete_staff(self, practice_id: str, staff_id: str) -> None:
        if not await self.repo.delete(practice_id, staff_id):
            raise NotFoundError("staff", staff_id)
        logger.info(f"Deleted staff profile {staff_id}")

    async def expiring_licenses(self, practice_id: str, days: int = 30) -> List[StaffProfile]:
        """Active staff whose license expires within the given number of days"""
        cutoff = date.today() + timedelta(days=days)
        return await self.repo.licenses_expiring_before(practice_id, cutoff)


def get_staff_service() -> StaffService:
    return StaffService()
