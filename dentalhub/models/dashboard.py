"""
Dashboard Models
"""

from datetime import datetime
from typing import Dict
from pydantic import BaseModel, Field

from .call import CallStatistics
from .campaign import CampaignMetrics


class PracticeOverview(BaseModel):
    """Headline numbers for a practice"""
    practice_id: str
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    patient_count: int = 0
    upcoming_appointments: int = 0
    appointments_by_status: Dict[str, int] = Field(default_factory=dict)
    campaigns_by_status: Dict[str, int] = Field(default_factory=dict)
    campaign_metrics: CampaignMetrics = Field(default_factory=CampaignMetrics)
    calls: CallStatistics = Field(default_factory=CallStatistics)
