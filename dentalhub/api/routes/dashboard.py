"""
Dashboard API Routes
"""

from fastapi import APIRouter, Depends

from dentalhub.models.dashboard import PracticeOverview
from dentalhub.models.practice import PracticeContext
from dentalhub.services.dashboard_service import DashboardService, get_dashboard_service
from dentalhub.api.middleware.auth import get_practice_context
from dentalhub.api.middleware.rate_limit import rate_limit_practice

router = APIRouter(prefix="/dashboard", tags=["dashboard"], dependencies=[Depends(rate_limit_practice)])


def get_service() -> DashboardService:
    """Dependency to get dashboard service"""
    return get_dashboard_service()


@router.get("/overview", response_model=PracticeOverview)
async def practice_overview(
    context: PracticeContext = Depends(get_practice_context),
    service: DashboardService = Depends(get_service)
):
    """
    Practice overview

    Patient count, appointments in the next 7 days, appointment and campaign
    counts by status, summed campaign metrics and call statistics.
    """
    return await service.practice_overview(context.practice_id)
