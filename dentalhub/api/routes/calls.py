"""
Call management API routes
"""

from typing import Optional, List
from fastapi import APIRouter, Query, Depends

from dentalhub.core.logging import get_logger
from dentalhub.models.call import (
    CallList,
    CallPriorityUpdate,
    CallRecord,
    CallRequest,
    CallStatistics,
    CallStatus,
    TranscriptSegment,
)
from dentalhub.models.practice import PracticeContext
from dentalhub.services.call_service import CallService, get_call_service
from dentalhub.api.middleware.auth import get_practice_context, require_permission
from dentalhub.api.middleware.rate_limit import get_rate_limiter, rate_limit_practice

logger = get_logger(__name__)

router = APIRouter(prefix="/calls", tags=["calls"], dependencies=[Depends(rate_limit_practice)])

can_call = require_permission("calls:write")


def get_service() -> CallService:
    """Dependency to get call service"""
    return get_call_service()


# Static routes MUST come before dynamic routes with path parameters

@router.post("/", response_model=CallRecord, status_code=201)
async def place_call(
    request: CallRequest,
    context: PracticeContext = Depends(can_call),
    service: CallService = Depends(get_service)
):
    """
    Place an outbound call to a patient

    - **patient_id**: Patient to call
    - **phone_number**: Optional override, E.164 format (e.g., +14155551234)
    - **purpose**: appointment_reminder, follow_up, billing or custom
    - **custom_script**: Script for custom calls
    - **priority**: high, normal or low
    """
    logger.info(f"Received call request for patient {request.patient_id}")
    return await service.place_call(context.practice_id, request)


@router.get("/", response_model=CallList)
async def list_calls(
    limit: int = Query(50, ge=1, le=100, description="Maximum number of calls to return"),
    offset: int = Query(0, ge=0),
    status: Optional[CallStatus] = Query(None, description="Filter by call status"),
    patient_id: Optional[str] = None,
    campaign_id: Optional[str] = None,
    context: PracticeContext = Depends(get_practice_context),
    service: CallService = Depends(get_service)
):
    """
    List call history, newest first
    """
    calls = await service.list_calls(
        context.practice_id,
        status=status.value if status else None,
        patient_id=patient_id,
        campaign_id=campaign_id,
        limit=limit,
        offset=offset
    )
    return CallList(calls=calls, count=len(calls))


@router.get("/stats/summary", response_model=CallStatistics)
async def get_call_statistics(
    context: PracticeContext = Depends(get_practice_context),
    service: CallService = Depends(get_service)
):
    """
    Get call statistics for the practice
    """
    return await service.get_statistics(context.practice_id)


@router.get("/usage")
async def get_call_usage(
    context: PracticeContext = Depends(get_practice_context)
):
    """
    Remaining request and outbound-call allowance
    """
    return get_rate_limiter().get_current_usage(context.practice_id)


@router.get("/{call_id}", response_model=CallRecord)
async def get_call(
    call_id: str,
    context: PracticeContext = Depends(get_practice_context),
    service: CallService = Depends(get_service)
):
    """
    Get a call record
    """
    return await service.get_call(context.practice_id, call_id)


@router.post("/{call_id}/cancel", response_model=CallRecord)
async def cancel_call(
    call_id: str,
    context: PracticeContext = Depends(can_call),
    service: CallService = Depends(get_service)
):
    """
    Cancel a call that has not finished
    """
    return await service.cancel_call(context.practice_id, call_id)


@router.patch("/{call_id}/priority", response_model=CallRecord)
async def update_call_priority(
    call_id: str,
    data: CallPriorityUpdate,
    context: PracticeContext = Depends(can_call),
    service: CallService = Depends(get_service)
):
    return await service.update_priority(context.practice_id, call_id, data.priority)


@router.get("/{call_id}/recording")
async def get_call_recording(
    call_id: str,
    context: PracticeContext = Depends(get_practice_context),
    service: CallService = Depends(get_service)
):
    """
    Get the recording URL of a call
    """
    url = await service.get_recording_url(context.practice_id, call_id)
    return {"call_id": call_id, "recording_url": url}


@router.get("/{call_id}/transcript", response_model=List[TranscriptSegment])
async def get_call_transcript(
    call_id: str,
    context: PracticeContext = Depends(get_practice_context),
    service: CallService = Depends(get_service)
):
    """
    Get the transcript of a call
    """
    return await service.get_transcript(context.practice_id, call_id)


@router.get("/{call_id}/analysis")
async def get_call_analysis(
    call_id: str,
    context: PracticeContext = Depends(get_practice_context),
    service: CallService = Depends(get_service)
):
    """
    Get Retell's AI analysis of a call
    """
    return await service.get_analysis(context.practice_id, call_id)
