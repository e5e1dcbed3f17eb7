"""
Staff API Routes
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from dentalhub.models.practice import PracticeContext
from dentalhub.models.staff import StaffCreate, StaffProfile, StaffRole, StaffStatus, StaffUpdate
from dentalhub.services.staff_service import StaffService, get_staff_service
from dentalhub.api.middleware.auth import get_practice_context, require_role
from dentalhub.api.middleware.rate_limit import rate_limit_practice

router = APIRouter(prefix="/staff", tags=["staff"], dependencies=[Depends(rate_limit_practice)])

can_manage = require_role("admin", "manager")


def get_service() -> StaffService:
    """Dependency to get staff service"""
    return get_staff_service()


@router.get("/", response_model=List[StaffProfile])
async def list_staff(
    role: Optional[StaffRole] = None,
    status: Optional[StaffStatus] = None,
    context: PracticeContext = Depends(get_practice_context),
    service: StaffService = Depends(get_service)
):
    """
    List staff profiles, newest first
    """
    return await service.list_staff(context.practice_id, role=role, status=status)


@router.get("/licenses/expiring", response_model=List[StaffProfile])
async def expiring_licenses(
    days: int = Query(default=30, ge=1, le=365),
    context: PracticeContext = Depends(get_practice_context),
    service: StaffService = Depends(get_service)
):
    """
    Staff whose license expires within the given number of days
    """
    return await service.expiring_licenses(context.practice_id, days=days)


@router.post("/", response_model=StaffProfile, status_code=201)
async def create_staff(
    data: StaffCreate,
    context: PracticeContext = Depends(can_manage),
    service: StaffService = Depends(get_service)
):
    return await service.create_staff(context.practice_id, data)


@router.get("/{staff_id}", response_model=StaffProfile)
async def get_staff(
    staff_id: str,
    context: PracticeContext = Depends(get_practice_context),
    service: StaffService = Depends(get_service)
):
    return await service.get_staff(context.practice_id, staff_id)


@router.patch("/{staff_id}", response_model=StaffProfile)
async def update_staff(
    staff_id: str,
    data: StaffUpdate,
    context: PracticeContext = Depends(can_manage),
    service: StaffService = Depends(get_service)
):
    return await service.update_staff(context.practice_id, staff_id, data)


@router.delete("/{staff_id}")
async def delete_staff(
    staff_id: str,
    context: PracticeContext = Depends(can_manage),
    service: StaffService = Depends(get_service)
):
    await service.delete_staff(context.practice_id, staff_id)
    return {"message": f"Staff profile {staff_id} deleted"}
