"""
Dashboard Service
Aggregates practice data for the overview screen
"""

import asyncio
from datetime import datetime, timedelta
from typing import Optional

from dentalhub.core.logging import get_logger
from dentalhub.db import DatabaseAdapter, get_database
from dentalhub.db.repositories import (
    AppointmentRepository,
    CallRepository,
    CampaignRepository,
    PatientRepository,
)
from dentalhub.models.call import CallStatistics
from dentalhub.models.campaign import CampaignFilters, CampaignMetrics
from dentalhub.models.dashboard import PracticeOverview

logger = get_logger(__name__)

UPCOMING_WINDOW_DAYS = 7


class DashboardService:

    def __init__(self, adapter: Optional[DatabaseAdapter] = None):
        adapter = adapter or get_database()
        self.patients = PatientRepository(adapter)
        self.appointments = AppointmentRepository(adapter)
        self.campaigns = CampaignRepository(adapter)
        self.calls = CallRepository(adapter)

    async def practice_overview(self, practice_id: str) -> PracticeOverview:
        now = datetime.utcnow()

        (
            patient_count,
            upcoming,
            appointments_by_status,
            campaigns_by_status,
            campaigns,
            call_stats,
        ) = await asyncio.gather(
            self.patients.count(practice_id),
            self.appointments.count_between(practice_id, now, now + timedelta(days=UPCOMING_WINDOW_DAYS)),
            self.appointments.count_by_status(practice_id),
            self.campaigns.count_by_status(practice_id),
            self.campaigns.list(practice_id, CampaignFilters()),
            self.calls.get_statistics(practice_id),
        )

        totals = CampaignMetrics()
        for campaign in campaigns:
            for field in CampaignMetrics.model_fields:
                setattr(totals, field, getattr(totals, field) + getattr(campaign.metrics, field))

        return PracticeOverview(
            practice_id=practice_id,
            generated_at=now,
            patient_count=patient_count,
            upcoming_appointments=upcoming,
            appointments_by_status=appointments_by_status,
            campaigns_by_status=campaigns_by_status,
            campaign_metrics=totals,
            calls=CallStatistics(**call_stats),
        )


def get_dashboard_service() -> DashboardService:
    return DashboardService()
