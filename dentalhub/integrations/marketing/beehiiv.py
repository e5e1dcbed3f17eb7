"""
Beehiiv newsletter analytics
"""

from typing import Optional, Any

from dentalhub.core.config import settings
from .base import MarketingClient


class BeehiivClient(MarketingClient):
    provider = "Beehiiv"
    api_key_setting = "BEEHIIV_API_KEY"

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        super().__init__(api_key or settings.beehiiv_api_key, base_url or settings.beehiiv_api_url)

    async def get_publications(self) -> Any:
        return await self._request("GET", "/publications")

    async def get_publication_stats(self, publication_id: str) -> Any:
        return await self._request("GET", f"/publications/{publication_id}/stats")

    async def get_email_analytics(
        self,
        publication_id: str,
        start_date: str,
        end_date: Optional[str] = None
    ) -> Any:
        return await self._request(
            "GET",
            f"/publications/{publication_id}/emails",
            params={"startDate": start_date, "endDate": end_date},
        )
