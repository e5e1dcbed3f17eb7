"""
Marketing Email API Routes
Beehiiv newsletter and Instantly campaign analytics
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query

from dentalhub.integrations.marketing import BeehiivClient, InstantlyClient
from dentalhub.models.practice import PracticeContext
from dentalhub.api.middleware.auth import require_permission
from dentalhub.api.middleware.rate_limit import rate_limit_practice

router = APIRouter(prefix="/email", tags=["email"], dependencies=[Depends(rate_limit_practice)])

can_read = require_permission("campaigns:read")


def get_beehiiv() -> BeehiivClient:
    """Dependency to get the Beehiiv client"""
    return BeehiivClient()


def get_instantly() -> InstantlyClient:
    """Dependency to get the Instantly client"""
    return InstantlyClient()


# ==================== Beehiiv ====================

@router.get("/beehiiv/publications")
async def get_publications(
    context: PracticeContext = Depends(can_read),
    client: BeehiivClient = Depends(get_beehiiv)
):
    return await client.get_publications()


@router.get("/beehiiv/publications/{publication_id}/stats")
async def get_publication_stats(
    publication_id: str,
    context: PracticeContext = Depends(can_read),
    client: BeehiivClient = Depends(get_beehiiv)
):
    return await client.get_publication_stats(publication_id)


@router.get("/beehiiv/publications/{publication_id}/analytics")
async def get_newsletter_analytics(
    publication_id: str,
    start_date: date,
    end_date: Optional[date] = None,
    context: PracticeContext = Depends(can_read),
    client: BeehiivClient = Depends(get_beehiiv)
):
    """
    Email analytics for a publication over a date range
    """
    return await client.get_email_analytics(
        publication_id,
        start_date.isoformat(),
        end_date.isoformat() if end_date else None
    )


# ==================== Instantly ====================

@router.get("/instantly/campaigns")
async def get_instantly_campaigns(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=10, ge=1, le=100),
    context: PracticeContext = Depends(can_read),
    client: InstantlyClient = Depends(get_instantly)
):
    return await client.get_campaigns(skip=skip, limit=limit)


@router.get("/instantly/campaigns/{campaign_id}/status")
async def get_instantly_campaign_status(
    campaign_id: str,
    context: PracticeContext = Depends(can_read),
    client: InstantlyClient = Depends(get_instantly)
):
    return await client.get_campaign_status(campaign_id)


@router.get("/instantly/campaigns/{campaign_id}/analytics")
async def get_instantly_analytics(
    campaign_id: str,
    start_date: date,
    end_date: Optional[date] = None,
    context: PracticeContext = Depends(can_read),
    client: InstantlyClient = Depends(get_instantly)
):
    """
    Email analytics for an Instantly campaign over a date range
    """
    return await client.get_email_analytics(
        campaign_id,
        start_date.isoformat(),
        end_date.isoformat() if end_date else None
    )
