"""
Instantly cold-email campaigns
"""

from typing import Optional, Any, Dict, List

from dentalhub.core.config import settings
from dentalhub.core.logging import get_logger
from .base import MarketingClient

logger = get_logger(__name__)


class InstantlyClient(MarketingClient):
    provider = "Instantly"
    api_key_setting = "INSTANTLY_API_KEY"

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        super().__init__(api_key or settings.instantly_api_key, base_url or settings.instantly_api_url)

    async def get_campaigns(self, skip: int = 0, limit: int = 10) -> Any:
        return await self._request("GET", "/campaigns", params={"skip": skip, "limit": limit})

    async def get_campaign_status(self, campaign_id: str) -> Any:
        return await self._request("GET", f"/campaigns/{campaign_id}/status")

    async def get_email_analytics(
        self,
        campaign_id: str,
        start_date: str,
        end_date: Optional[str] = None
    ) -> Any:
        return await self._request(
            "GET",
            "/analytics/emails",
            params={"campaignId": campaign_id, "startDate": start_date, "endDate": end_date},
        )

    async def add_leads(self, campaign_id: str, leads: List[Dict[str, Any]]) -> Any:
        """Add leads ({email, first_name, last_name, ...}) to an Instantly campaign"""
        result = await self._request("POST", "/lead/add", json={"campaign_id": campaign_id, "leads": leads})
        logger.info(f"Added {len(leads)} leads to Instantly campaign {campaign_id}")
        return result
