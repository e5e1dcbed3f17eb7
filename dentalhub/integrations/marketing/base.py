"""
Shared transport for the marketing email providers
"""

from typing import Optional, Dict, Any

import httpx

from dentalhub.core.config import settings
from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import MarketingServiceError, ServiceNotConfiguredError

logger = get_logger(__name__)


class MarketingClient:
    """Bearer-authenticated JSON client; subclasses set provider and base_url"""

    provider = "marketing"
    api_key_setting = ""

    def __init__(self, api_key: Optional[str], base_url: str, timeout: Optional[float] = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or settings.marketing_http_timeout

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        if not self.api_key:
            raise ServiceNotConfiguredError(self.provider, self.api_key_setting)

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        query = {k: v for k, v in (params or {}).items() if v is not None}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method, f"{self.base_url}{endpoint}", headers=headers, params=query, json=json
                )
        except httpx.RequestError as e:
            logger.error(f"{self.provider} API error: {e}")
            raise MarketingServiceError(self.provider, str(e))

        if response.status_code >= 400:
            logger.error(f"{self.provider} API error: HTTP {response.status_code} {response.text[:500]}")
            raise MarketingServiceError(
                self.provider,
                f"HTTP {response.status_code}",
                http_status=response.status_code,
            )

        if not response.content:
            return {}
        return response.json()
