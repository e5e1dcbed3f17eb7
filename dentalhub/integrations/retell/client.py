"""
Retell Voice Service
Places and manages AI patient calls through the Retell API
"""

from typing import Optional, Dict, Any, Sequence

import httpx

from dentalhub.core.config import settings
from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import (
    InvalidPhoneNumberError,
    RetellServiceError,
    ServiceNotConfiguredError,
)
from dentalhub.models.call import CallConfig, CallPriority, CallPurpose, is_e164
from dentalhub.services.cache import ResponseCache
from dentalhub.utils.retry import RetryError, retry_async_operation

logger = get_logger(__name__)

# Analysis options sent with every analysis request
ANALYSIS_PARAMS = {
    "sentiment": True,
    "sentiment_threshold": 0.7,
    "intents": True,
    "intent_confidence": 0.8,
    "entities": True,
    "entity_confidence": 0.7,
    "summary": True,
    "summary_length": 500,
}

STATUS_CACHE_TTL = 30
RESULT_CACHE_TTL = 7 * 24 * 60 * 60


class RetellClient:
    """Service for interacting with the Retell API"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_delays: Optional[Sequence[float]] = None,
        cache: Optional[ResponseCache] = None,
    ):
        self.api_key = api_key or settings.retell_api_key
        self.base_url = (base_url or settings.retell_api_url).rstrip("/")
        self.timeout = timeout or settings.retell_http_timeout
        self.retry_delays = list(retry_delays) if retry_delays is not None else settings.retell_retry_schedule
        self.cache = cache or ResponseCache(prefix="dentalhub:retell")

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise ServiceNotConfiguredError("Retell", "RETELL_API_KEY")
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _attempt(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        headers = self._headers()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method, f"{self.base_url}{path}", headers=headers, params=params, json=json
                )
        except httpx.TimeoutException as e:
            raise RetellServiceError(f"Request to {path} timed out: {e}", code="TIMEOUT_ERROR")
        except httpx.RequestError as e:
            raise RetellServiceError(f"Request to {path} failed: {e}", code="NETWORK_ERROR")

        if response.status_code >= 400:
            raise self._error_from_response(response)

        if not response.content:
            return {}
        body = response.json()
        # Responses are wrapped as {"data": ...}
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            return await retry_async_operation(
                lambda: self._attempt(method, path, params, json),
                exceptions=(RetellServiceError,),
                operation_name=f"retell {method} {path}",
                delays=self.retry_delays,
            )
        except RetryError as e:
            raise e.last_exception

    @staticmethod
    def _error_from_response(response: httpx.Response) -> RetellServiceError:
        status = response.status_code
        try:
            body = response.json()
        except ValueError:
            body = {}

        error = body.get("error") if isinstance(body, dict) else None
        if not isinstance(error, dict):
            error = {}

        code = error.get("code")
        if not code:
            if status == 429:
                code = "RATE_LIMIT_ERROR"
            elif status >= 500:
                code = "SERVICE_UNAVAILABLE"
            else:
                code = "UNKNOWN_ERROR"

        return RetellServiceError(
            error.get("message") or f"HTTP {status}",
            code=code,
            http_status=status,
            details=error.get("details"),
        )

    # ==================== Calls ====================

    async def initiate_call(
        self,
        patient_id: str,
        phone_number: str,
        purpose: CallPurpose,
        custom_script: Optional[str] = None,
        language: str = "en-US",
        priority: CallPriority = CallPriority.NORMAL,
        config: Optional[CallConfig] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Place an outbound call

        Args:
            patient_id: Patient being called
            phone_number: Destination number (E.164 format)
            purpose: Why the call is placed
            custom_script: Script for custom calls
            language: Conversation language
            priority: Queue priority
            config: Call options (duration, recording, analysis)
            metadata: Opaque data echoed back in webhooks

        Returns:
            Retell call status including the call id
        """
        if not is_e164(phone_number):
            raise InvalidPhoneNumberError(phone_number)

        config = config or CallConfig()
        payload = {
            "patient_id": patient_id,
            "phone_number": phone_number,
            "purpose": CallPurpose(purpose).value,
            "custom_script": custom_script,
            "language": language,
            "priority": CallPriority(priority).value,
            "config": {
                "max_duration": config.max_duration,
                "recording_enabled": config.record_call,
                "transcription_enabled": config.transcription_enabled,
                "ai_analysis_enabled": config.ai_analysis_enabled,
            },
            "metadata": metadata or {},
        }
        if config.voice_id:
            payload["config"]["voice_id"] = config.voice_id
        if settings.retell_agent_id:
            payload["agent_id"] = settings.retell_agent_id
        if settings.retell_from_number:
            payload["from_number"] = settings.retell_from_number

        logger.info(f"Initiating {payload['purpose']} call for patient {patient_id}")
        return await self._request("POST", "/calls", json=payload)

    async def get_call_status(self, call_id: str) -> Dict[str, Any]:
        return await self.cache.get_or_set(
            f"status:{call_id}",
            lambda: self._request("GET", f"/calls/{call_id}"),
            STATUS_CACHE_TTL,
        )

    async def get_transcription(self, call_id: str) -> Dict[str, Any]:
        return await self.cache.get_or_set(
            f"transcription:{call_id}",
            lambda: self._request("GET", f"/calls/{call_id}/transcription"),
            RESULT_CACHE_TTL,
        )

    async def get_analysis(self, call_id: str) -> Dict[str, Any]:
        return await self.cache.get_or_set(
            f"analysis:{call_id}",
            lambda: self._request("GET", f"/calls/{call_id}/analysis", params=ANALYSIS_PARAMS),
            RESULT_CACHE_TTL,
        )

    async def cancel_call(self, call_id: str) -> None:
        await self._request("POST", f"/calls/{call_id}/cancel")
        await self.cache.delete(f"status:{call_id}")
        logger.info(f"Cancelled Retell call {call_id}")

    async def update_call_priority(self, call_id: str, priority: CallPriority) -> Dict[str, Any]:
        result = await self._request("PATCH", f"/calls/{call_id}", json={"priority": CallPriority(priority).value})
        await self.cache.delete(f"status:{call_id}")
        return result

    async def update_call_config(self, call_id: str, config: CallConfig) -> Dict[str, Any]:
        result = await self._request("PATCH", f"/calls/{call_id}", json={
            "config": {
                "max_duration": config.max_duration,
                "recording_enabled": config.record_call,
                "transcription_enabled": config.transcription_enabled,
                "ai_analysis_enabled": config.ai_analysis_enabled,
            }
        })
        await self.cache.delete(f"status:{call_id}")
        return result

    async def get_recording_url(self, call_id: str) -> Optional[str]:
        data = await self._request("GET", f"/calls/{call_id}/recording")
        return (data or {}).get("url")


# Singleton instance
_retell_client: Optional[RetellClient] = None


def get_retell_client() -> RetellClient:
    """Get the RetellClient singleton instance"""
    global _retell_client
    if _retell_client is None:
        _retell_client = RetellClient()
    return _retell_client
