"""
Sikka API Client
Practice-management data: insurance, eligibility, claims, patients,
appointments and procedure codes
"""

from typing import Optional, Dict, Any, List, Sequence

import httpx

from dentalhub.core.config import settings
from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import SikkaServiceError
from dentalhub.services.cache import ResponseCache
from dentalhub.utils.retry import RetryError, retry_async_operation
from .token_service import SikkaTokenService
from .utils import (
    CACHE_TTL_LONG,
    CACHE_TTL_MEDIUM,
    CACHE_TTL_SHORT,
    generate_cache_key,
    prepare_request_params,
    validate_request_params,
)

logger = get_logger(__name__)

# 1s * 2^(n-1) for n = 1..3
DEFAULT_RETRY_DELAYS = (1.0, 2.0, 4.0)


class SikkaClient:
    """Async client for the Sikka v4 API"""

    def __init__(
        self,
        token_service: Optional[SikkaTokenService] = None,
        cache: Optional[ResponseCache] = None,
        base_url: Optional[str] = None,
        practice_id: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
    ):
        self.base_url = (base_url or settings.sikka_api_url).rstrip("/")
        self.practice_id = practice_id or settings.sikka_practice_id
        self.timeout = timeout or settings.sikka_http_timeout
        self.token_service = token_service or SikkaTokenService(base_url=self.base_url)
        self.cache = cache or ResponseCache(prefix="dentalhub")
        self.retry_delays = list(retry_delays)
        self._client: Optional[httpx.AsyncClient] = None

    # ==================== Transport ====================

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self):
        """Close the HTTP connections held by the client and its token service"""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
        await self.token_service.close()

    async def _headers(self) -> Dict[str, str]:
        token = await self.token_service.get_access_token()
        return {
            "Authorization": f"Bearer {token}",
            "X-Practice-ID": self.practice_id or "",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    async def _send(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        headers = await self._headers()
        try:
            return await self._get_client().request(
                method, f"{self.base_url}{path}", headers=headers, params=params, json=json
            )
        except httpx.TimeoutException as e:
            raise SikkaServiceError(f"Request to {path} timed out: {e}", code="TIMEOUT_ERROR")
        except httpx.RequestError as e:
            raise SikkaServiceError(f"Request to {path} failed: {e}", code="NETWORK_ERROR")

    async def _attempt(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]],
        json: Optional[Dict[str, Any]],
    ) -> Any:
        response = await self._send(method, path, params, json)

        if response.status_code == 401:
            # Expired key: refresh once and replay
            logger.info(f"Sikka returned 401 for {path}, refreshing token")
            await self.token_service.refresh_token()
            response = await self._send(method, path, params, json)

        if response.status_code >= 400:
            raise self._error_from_response(response)

        if not response.content:
            return {}
        return response.json()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send a request, retrying rate limits, 5xx and network failures"""
        try:
            return await retry_async_operation(
                lambda: self._attempt(method, path, params, json),
                exceptions=(SikkaServiceError,),
                operation_name=f"sikka {method} {path}",
                delays=self.retry_delays,
            )
        except RetryError as e:
            raise e.last_exception

    @staticmethod
    def _error_from_response(response: httpx.Response) -> SikkaServiceError:
        status = response.status_code
        try:
            body = response.json()
        except ValueError:
            body = {}

        error = body.get("error") if isinstance(body, dict) else None
        if not isinstance(error, dict):
            error = {}

        if status == 429:
            code = "RATE_LIMIT_ERROR"
        elif status >= 500:
            code = "SERVICE_UNAVAILABLE"
        else:
            code = error.get("code") or "UNKNOWN_ERROR"

        message = error.get("message") or f"HTTP {status}"
        return SikkaServiceError(message, code=code, http_status=status, details=error.get("details"))

    async def _cached_get(self, path: str, params: Dict[str, Any], ttl: int) -> Any:
        key = generate_cache_key(path, params)
        return await self.cache.get_or_set(key, lambda: self._request("GET", path, params=params), ttl)

    async def _cached_post(self, path: str, body: Dict[str, Any], ttl: int) -> Any:
        key = generate_cache_key(path, body)
        return await self.cache.get_or_set(key, lambda: self._request("POST", path, json=body), ttl)

    # ==================== Insurance ====================

    async def verify_insurance(
        self,
        patient_id: str,
        carrier_id: str,
        member_id: str,
        group_number: Optional[str] = None,
    ) -> Dict[str, Any]:
        body = {
            "practice_id": self.practice_id,
            "patient_id": patient_id,
            "carrier_id": carrier_id,
            "member_id": member_id,
            "group_number": group_number,
        }
        data = await self._cached_post("/insurance/verify", body, CACHE_TTL_SHORT)
        return {
            "verified": data.get("verified"),
            "details": data.get("verification_details"),
            "timestamp": data.get("timestamp"),
        }

    async def check_eligibility(
        self,
        patient_id: str,
        service_date: str,
        service_types: List[str],
    ) -> Dict[str, Any]:
        body = {
            "practice_id": self.practice_id,
            "patient_id": patient_id,
            "service_date": service_date,
            "service_types": service_types,
        }
        data = await self._cached_post("/eligibility/check", body, CACHE_TTL_SHORT)
        return {
            "eligible": data.get("eligible"),
            "coverage_details": data.get("coverage_details"),
            "limitations": data.get("limitations"),
            "timestamp": data.get("timestamp"),
        }

    async def verify_benefits(
        self,
        patient_id: str,
        procedure_codes: List[str],
        service_date: str,
    ) -> Dict[str, Any]:
        body = {
            "practice_id": self.practice_id,
            "patient_id": patient_id,
            "procedure_codes": procedure_codes,
            "service_date": service_date,
        }
        data = await self._cached_post("/benefits/verify", body, CACHE_TTL_SHORT)
        return {
            "covered": data.get("covered"),
            "benefits_details": data.get("benefits_details"),
            "limitations": data.get("limitations"),
            "deductibles": data.get("deductibles"),
            "timestamp": data.get("timestamp"),
        }

    async def process_claim(
        self,
        patient_id: str,
        service_date: str,
        procedures: List[Dict[str, Any]],
        diagnosis_codes: List[str],
        place_of_service: str,
    ) -> Dict[str, Any]:
        data = await self._request("POST", "/claims/submit", json={
            "practice_id": self.practice_id,
            "patient_id": patient_id,
            "service_date": service_date,
            "procedures": procedures,
            "diagnosis_codes": diagnosis_codes,
            "place_of_service": place_of_service,
        })
        logger.info(f"Submitted claim for patient {patient_id}: {data.get('claim_id')}")
        return self._claim_result(data)

    async def update_claim_status(self, claim_id: str, status: str, notes: Optional[str] = None) -> Dict[str, Any]:
        data = await self._request("PUT", f"/claims/{claim_id}/status", json={
            "practice_id": self.practice_id,
            "status": status,
            "notes": notes,
        })
        return self._claim_result(data)

    @staticmethod
    def _claim_result(data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "claim_id": data.get("claim_id"),
            "status": data.get("status"),
            "acknowledgement": data.get("acknowledgement"),
            "timestamp": data.get("timestamp"),
        }

    async def get_insurance_companies(self, params: Optional[Dict[str, Any]] = None, **options) -> Any:
        query = prepare_request_params(params, **options)
        return await self._cached_get("/insurance_companies", query, CACHE_TTL_LONG)

    async def get_insurance_plan_coverage(self, insurance_company_id: str, practice_id: Optional[str] = None) -> Any:
        query = prepare_request_params({
            "insurance_company_id": insurance_company_id,
            "practice_id": practice_id,
        })
        return await self._cached_get("/insurance_plan_coverage", query, CACHE_TTL_LONG)

    # ==================== Practice data ====================

    async def get_practice_info(self, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._request("GET", "/practices", params=prepare_request_params(params))

    async def get_appointments(self, params: Optional[Dict[str, Any]] = None, **options) -> Any:
        query = prepare_request_params(params, **options)
        validate_request_params(query)
        return await self._cached_get("/appointments", query, CACHE_TTL_SHORT)

    async def get_available_slots(self, params: Optional[Dict[str, Any]] = None) -> Any:
        query = prepare_request_params(params)
        validate_request_params(query)
        return await self._request("GET", "/appointments_available_slots", params=query)

    async def get_patients(self, params: Optional[Dict[str, Any]] = None, **options) -> Any:
        query = prepare_request_params(params, **options)
        validate_request_params(query)
        return await self._cached_get("/patients", query, CACHE_TTL_MEDIUM)

    async def get_patient_treatment_history(
        self,
        patient_id: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        query = prepare_request_params({"patient_id": patient_id, **(params or {})})
        validate_request_params(query, ["patient_id"])
        return await self._cached_get("/patient_treatment_history", query, CACHE_TTL_MEDIUM)

    async def get_treatment_plans(self, params: Optional[Dict[str, Any]] = None, **options) -> Any:
        query = prepare_request_params(params, **options)
        validate_request_params(query)
        return await self._cached_get("/treatment_plans", query, CACHE_TTL_SHORT)

    async def get_procedure_codes(self, params: Optional[Dict[str, Any]] = None, **options) -> List[Dict[str, Any]]:
        """Procedure codes for the practice; unwraps the paged `items` envelope"""
        query = prepare_request_params(params, **options)
        data = await self._cached_get("/procedure_codes", query, CACHE_TTL_LONG)
        if isinstance(data, dict):
            return data.get("items") or data.get("data") or []
        return data or []


# Singleton instance
_sikka_client: Optional[SikkaClient] = None


def get_sikka_client() -> SikkaClient:
    """Get the SikkaClient singleton instance"""
    global _sikka_client
    if _sikka_client is None:
        _sikka_client = SikkaClient()
    return _sikka_client


async def close_sikka_client():
    """Close the SikkaClient singleton's connections"""
    global _sikka_client
    if _sikka_client is not None:
        await _sikka_client.close()
        _sikka_client = None
