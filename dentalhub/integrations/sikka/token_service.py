"""
Sikka Token Service
Obtains and caches the Sikka request key
"""

import asyncio
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, List

import httpx

from dentalhub.core.config import settings
from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import (
    ServiceNotConfiguredError,
    SikkaAuthenticationError,
    SikkaServiceError,
)

logger = get_logger(__name__)

MAX_REFRESH_ATTEMPTS = 3
REFRESH_COOLDOWN_SECONDS = 1.0
DEFAULT_EXPIRES_MINUTES = 60


@dataclass
class SikkaToken:
    request_key: str
    expires_at: datetime
    refresh_key: Optional[str] = None
    scope: List[str] = field(default_factory=list)


def parse_expires_in(value: Optional[str]) -> int:
    """Sikka reports expiry as text such as "60 minutes"; take the first number"""
    if value is None:
        return DEFAULT_EXPIRES_MINUTES
    match = re.search(r"(\d+)", str(value))
    return int(match.group(1)) if match else DEFAULT_EXPIRES_MINUTES


class SikkaTokenService:
    """
    Holds the current Sikka request key

    Concurrent callers share one in-flight refresh. After
    MAX_REFRESH_ATTEMPTS consecutive failures further refreshes are
    refused until reset() is called.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        app_id: Optional[str] = None,
        app_key: Optional[str] = None,
        practice_id: Optional[str] = None,
        refresh_threshold_minutes: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.sikka_api_url).rstrip("/")
        self.app_id = app_id or settings.sikka_app_id
        self.app_key = app_key or settings.sikka_app_key
        self.practice_id = practice_id or settings.sikka_practice_id
        self.refresh_threshold = timedelta(
            minutes=refresh_threshold_minutes
            if refresh_threshold_minutes is not None
            else settings.sikka_token_refresh_threshold_minutes
        )
        self.timeout = timeout or settings.sikka_http_timeout

        self.current_token: Optional[SikkaToken] = None
        self.refresh_attempts = 0
        self._lock = asyncio.Lock()
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self):
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    def _token_is_valid(self) -> bool:
        return (
            self.current_token is not None
            and self.current_token.expires_at - self.refresh_threshold > datetime.utcnow()
        )

    async def get_access_token(self) -> str:
        """Return a valid request key, refreshing when close to expiry"""
        if self._token_is_valid():
            return self.current_token.request_key

        async with self._lock:
            # Another caller may have refreshed while we waited
            if self._token_is_valid():
                return self.current_token.request_key
            token = await self._refresh_locked()
            return token.request_key

    async def refresh_token(self) -> SikkaToken:
        """Force a refresh, joining one already in flight"""
        stale = self.current_token
        async with self._lock:
            if self.current_token is not stale and self._token_is_valid():
                return self.current_token
            return await self._refresh_locked()

    def reset(self) -> None:
        self.current_token = None
        self.refresh_attempts = 0

    async def _refresh_locked(self) -> SikkaToken:
        if self.refresh_attempts >= MAX_REFRESH_ATTEMPTS:
            raise SikkaAuthenticationError(
                f"Maximum token refresh attempts exceeded ({self.refresh_attempts})"
            )

        try:
            token = await self._request_token()
        except Exception:
            self.refresh_attempts += 1
            if self.refresh_attempts < MAX_REFRESH_ATTEMPTS:
                delay = REFRESH_COOLDOWN_SECONDS * (2 ** (self.refresh_attempts - 1))
                logger.warning(f"Sikka token refresh failed (attempt {self.refresh_attempts}), backing off {delay}s")
                await asyncio.sleep(delay)
            raise

        self.current_token = token
        self.refresh_attempts = 0
        logger.info(f"Obtained Sikka request key, expires at {token.expires_at.isoformat()}")
        return token

    async def _request_token(self) -> SikkaToken:
        if not self.app_id or not self.app_key or not self.practice_id:
            raise ServiceNotConfiguredError("Sikka", "SIKKA_APP_ID/SIKKA_APP_KEY/SIKKA_PRACTICE_ID")

        payload = {
            "app_id": self.app_id,
            "app_key": self.app_key,
            "practice_id": self.practice_id,
        }

        try:
            response = await self._get_client().post(
                f"{self.base_url}/request_key",
                json=payload,
                headers={"Accept": "application/json", "Content-Type": "application/json"},
            )
        except httpx.TimeoutException as e:
            raise SikkaServiceError(f"Token request timed out: {e}", code="TIMEOUT_ERROR")
        except httpx.RequestError as e:
            raise SikkaServiceError(f"Token request failed: {e}", code="NETWORK_ERROR")

        if response.status_code in (401, 403):
            raise SikkaAuthenticationError("Sikka rejected the application credentials")
        if response.status_code >= 400:
            raise SikkaServiceError(
                f"Token request failed with HTTP {response.status_code}",
                code="SERVICE_UNAVAILABLE" if response.status_code >= 500 else "TOKEN_ERROR",
                http_status=response.status_code,
            )

        data = response.json()
        if not data.get("request_key"):
            raise SikkaAuthenticationError("Sikka token response has no request_key")

        minutes = parse_expires_in(data.get("expires_in"))
        scope = data.get("scope")
        return SikkaToken(
            request_key=data["request_key"],
            refresh_key=data.get("refresh_key"),
            expires_at=datetime.utcnow() + timedelta(minutes=minutes),
            scope=scope.split() if scope else [],
        )
