"""
Procedure Code API Routes
CDT codes synced from Sikka and their fee schedules
"""

from typing import List, Optional
from fastapi import APIRouter, Depends

from dentalhub.core.logging import get_logger
from dentalhub.integrations.sikka import get_sikka_client
from dentalhub.models.practice import PracticeContext
from dentalhub.models.procedure import (
    FeeSchedule,
    FeeUpdate,
    ProcedureCategory,
    ProcedureCode,
    ProcedureSyncResult,
)
from dentalhub.services.procedure_service import ProcedureCodeService, get_procedure_service
from dentalhub.api.middleware.auth import get_practice_context, require_role
from dentalhub.api.middleware.rate_limit import rate_limit_practice

logger = get_logger(__name__)

router = APIRouter(prefix="/procedure-codes", tags=["procedure-codes"], dependencies=[Depends(rate_limit_practice)])


def get_service() -> ProcedureCodeService:
    """Dependency to get procedure code service"""
    return get_procedure_service()


@router.get("/", response_model=List[ProcedureCode])
async def list_procedure_codes(
    search: Optional[str] = None,
    category_id: Optional[str] = None,
    active_only: bool = True,
    context: PracticeContext = Depends(get_practice_context),
    service: ProcedureCodeService = Depends(get_service)
):
    """
    List procedure codes with their current fee

    `search` matches the code or the description.
    """
    return await service.list_procedure_codes(
        context.practice_id,
        search=search,
        category_id=category_id,
        active_only=active_only
    )


@router.get("/categories", response_model=List[ProcedureCategory])
async def list_categories(
    context: PracticeContext = Depends(get_practice_context),
    service: ProcedureCodeService = Depends(get_service)
):
    return await service.list_categories(context.practice_id)


@router.post("/sync", response_model=ProcedureSyncResult)
async def sync_procedure_codes(
    context: PracticeContext = Depends(require_role("admin", "manager")),
    service: ProcedureCodeService = Depends(get_service)
):
    """
    Pull the practice's procedure codes from Sikka and upsert them
    """
    records = await get_sikka_client().get_procedure_codes()
    logger.info(f"Fetched {len(records)} procedure codes from Sikka for {context.practice_id}")
    return await service.sync_procedure_codes(context.practice_id, records)


@router.get("/{code}", response_model=ProcedureCode)
async def get_procedure_code(
    code: str,
    context: PracticeContext = Depends(get_practice_context),
    service: ProcedureCodeService = Depends(get_service)
):
    return await service.get_procedure_code(context.practice_id, code)


@router.put("/{code}/fee", response_model=FeeSchedule)
async def update_fee(
    code: str,
    data: FeeUpdate,
    context: PracticeContext = Depends(require_role("admin", "manager")),
    service: ProcedureCodeService = Depends(get_service)
):
    """
    Set a new fee for a procedure code

    The currently open fee schedule is closed and a new one starts at
    `effective_date` (now when omitted).
    """
    return await service.update_fee(context.practice_id, code, data.fee_amount, data.effective_date)


@router.get("/{code}/fees", response_model=List[FeeSchedule])
async def fee_history(
    code: str,
    context: PracticeContext = Depends(get_practice_context),
    service: ProcedureCodeService = Depends(get_service)
):
    """Fee schedule history, newest first"""
    return await service.fee_history(context.practice_id, code)
