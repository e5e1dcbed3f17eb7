"""
Campaign API Routes
Create, schedule and launch voice, SMS and email campaigns
"""

from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends

from dentalhub.core.logging import get_logger
from dentalhub.models.campaign import (
    Campaign,
    CampaignAnalytics,
    CampaignCreate,
    CampaignFilters,
    CampaignMetricsUpdate,
    CampaignScheduleRequest,
    CampaignStatus,
    CampaignStatusUpdate,
    CampaignType,
    CampaignUpdate,
)
from dentalhub.models.practice import PracticeContext
from dentalhub.services.campaign_service import CampaignService, get_campaign_service
from dentalhub.api.middleware.auth import require_permission
from dentalhub.api.middleware.rate_limit import rate_limit_practice

logger = get_logger(__name__)

router = APIRouter(prefix="/campaigns", tags=["campaigns"], dependencies=[Depends(rate_limit_practice)])

can_read = require_permission("campaigns:read")
can_write = require_permission("campaigns:write")


def get_service() -> CampaignService:
    """Dependency to get campaign service"""
    return get_campaign_service()


@router.get("/", response_model=List[Campaign])
async def list_campaigns(
    type: Optional[CampaignType] = None,
    status: Optional[CampaignStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    search: Optional[str] = None,
    context: PracticeContext = Depends(can_read),
    service: CampaignService = Depends(get_service)
):
    """
    List campaigns

    `search` matches the campaign name case-insensitively; the dates bound
    the creation time.
    """
    filters = CampaignFilters(
        type=type,
        status=status,
        start_date=start_date,
        end_date=end_date,
        search=search,
    )
    return await service.list_campaigns(context.practice_id, filters)


@router.post("/", response_model=Campaign, status_code=201)
async def create_campaign(
    data: CampaignCreate,
    context: PracticeContext = Depends(can_write),
    service: CampaignService = Depends(get_service)
):
    """
    Create a campaign in draft status
    """
    return await service.create_campaign(context.practice_id, data, created_by=context.user_id)


@router.get("/{campaign_id}", response_model=Campaign)
async def get_campaign(
    campaign_id: str,
    context: PracticeContext = Depends(can_read),
    service: CampaignService = Depends(get_service)
):
    return await service.get_campaign(context.practice_id, campaign_id)


@router.patch("/{campaign_id}", response_model=Campaign)
async def update_campaign(
    campaign_id: str,
    data: CampaignUpdate,
    context: PracticeContext = Depends(can_write),
    service: CampaignService = Depends(get_service)
):
    return await service.update_campaign(context.practice_id, campaign_id, data)


@router.delete("/{campaign_id}")
async def delete_campaign(
    campaign_id: str,
    context: PracticeContext = Depends(can_write),
    service: CampaignService = Depends(get_service)
):
    await service.delete_campaign(context.practice_id, campaign_id)
    return {"message": f"Campaign {campaign_id} deleted"}


@router.put("/{campaign_id}/status", response_model=Campaign)
async def update_campaign_status(
    campaign_id: str,
    data: CampaignStatusUpdate,
    context: PracticeContext = Depends(can_write),
    service: CampaignService = Depends(get_service)
):
    """
    Change a campaign's status

    Returns 409 when the transition is not allowed from the current status.
    """
    return await service.update_campaign_status(context.practice_id, campaign_id, data.status)


@router.put("/{campaign_id}/metrics", response_model=Campaign)
async def update_campaign_metrics(
    campaign_id: str,
    data: CampaignMetricsUpdate,
    context: PracticeContext = Depends(can_write),
    service: CampaignService = Depends(get_service)
):
    """
    Merge partial metrics; the campaign status follows from the result
    """
    return await service.update_campaign_metrics(context.practice_id, campaign_id, data)


@router.post("/{campaign_id}/schedule", response_model=Campaign)
async def schedule_campaign(
    campaign_id: str,
    data: CampaignScheduleRequest,
    context: PracticeContext = Depends(can_write),
    service: CampaignService = Depends(get_service)
):
    """Schedule a draft campaign for a later start"""
    return await service.schedule_campaign(context.practice_id, campaign_id, data)


@router.post("/{campaign_id}/launch", response_model=Campaign)
async def launch_campaign(
    campaign_id: str,
    context: PracticeContext = Depends(can_write),
    service: CampaignService = Depends(get_service)
):
    """
    Launch a campaign now

    The audience is resolved and dispatch runs in the background worker.
    """
    campaign = await service.launch_campaign(context.practice_id, campaign_id)
    logger.info(f"Campaign {campaign_id} launched by {context.user_id or context.metadata.get('key_name')}")
    return campaign


@router.get("/{campaign_id}/analytics", response_model=CampaignAnalytics)
async def campaign_analytics(
    campaign_id: str,
    context: PracticeContext = Depends(can_read),
    service: CampaignService = Depends(get_service)
):
    """Delivery, engagement, failure and completion rates"""
    return await service.campaign_analytics(context.practice_id, campaign_id)
