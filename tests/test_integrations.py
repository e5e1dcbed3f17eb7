"""
Tests for the external service clients and the retry utilities
"""

import asyncio
import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
from twilio.base.exceptions import TwilioRestException

from dentalhub.core.exceptions import (
    AuthenticationError,
    InvalidPhoneNumberError,
    MarketingServiceError,
    RetellServiceError,
    SikkaAuthenticationError,
    ServiceError,
    ServiceNotConfiguredError,
    SikkaServiceError,
    ValidationError,
)
from dentalhub.integrations.marketing import BeehiivClient, InstantlyClient
from dentalhub.integrations.retell.client import RetellClient
from dentalhub.integrations.sikka.client import SikkaClient
from dentalhub.integrations.sikka.token_service import SikkaToken, SikkaTokenService, parse_expires_in
from dentalhub.integrations.sikka.utils import (
    generate_cache_key,
    is_valid_date_format,
    prepare_request_params,
    validate_request_params,
)
from dentalhub.integrations.sms.twilio_service import TwilioSMSService
from dentalhub.models.call import CallConfig
from dentalhub.services.auth_service import AuthService
from dentalhub.services.cache import ResponseCache
from dentalhub.utils.retry import RetryError, backoff_delays, retry_async_operation


def make_response(status_code: int, body=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.content = b"{}" if body is not None else b""
    response.json.return_value = body if body is not None else {}
    return response


def make_token(minutes: int = 60, key: str = "request-key-1") -> SikkaToken:
    return SikkaToken(request_key=key, expires_at=datetime.utcnow() + timedelta(minutes=minutes))


class TestSikkaTokenService:
    """Tests for the Sikka request key lifecycle"""

    def make_service(self) -> SikkaTokenService:
        return SikkaTokenService(
            base_url="https://sikka.test/v4",
            app_id="app",
            app_key="secret",
            practice_id="sikka-practice-1",
            refresh_threshold_minutes=5,
        )

    def test_parse_expires_in(self):
        assert parse_expires_in("60 minutes") == 60
        assert parse_expires_in("15") == 15
        assert parse_expires_in(None) == 60
        assert parse_expires_in("soon") == 60

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(self):
        service = self.make_service()

        async def slow_token():
            await asyncio.sleep(0.01)
            return make_token()

        service._request_token = AsyncMock(side_effect=slow_token)
        keys = await asyncio.gather(*[service.get_access_token() for _ in range(5)])

        assert keys == ["request-key-1"] * 5
        assert service._request_token.await_count == 1

    @pytest.mark.asyncio
    async def test_token_near_expiry_is_refreshed(self):
        service = self.make_service()
        service.current_token = make_token(minutes=2, key="old-key")
        service._request_token = AsyncMock(return_value=make_token(key="new-key"))

        assert await service.get_access_token() == "new-key"

    @pytest.mark.asyncio
    @patch("dentalhub.integrations.sikka.token_service.REFRESH_COOLDOWN_SECONDS", 0)
    async def test_refresh_attempts_are_capped(self):
        service = self.make_service()
        service._request_token = AsyncMock(side_effect=SikkaServiceError("down", code="SERVICE_UNAVAILABLE"))

        for _ in range(3):
            with pytest.raises(SikkaServiceError):
                await service.refresh_token()
        assert service.refresh_attempts == 3

        with pytest.raises(SikkaAuthenticationError):
            await service.refresh_token()
        assert service._request_token.await_count == 3

        service.reset()
        service._request_token = AsyncMock(return_value=make_token())
        token = await service.refresh_token()
        assert token.request_key == "request-key-1"
        assert service.refresh_attempts == 0

    @pytest.mark.asyncio
    @patch("dentalhub.integrations.sikka.token_service.httpx.AsyncClient")
    async def test_request_token(self, mock_client):
        mock_client_instance = MagicMock()
        mock_client_instance.__aenter__ = AsyncMock(return_value=mock_client_instance)
        mock_client_instance.__aexit__ = AsyncMock(return_value=False)
        mock_client_instance.post = AsyncMock(return_value=make_response(200, {
            "request_key": "rk-1",
            "refresh_key": "ref-1",
            "expires_in": "30 minutes",
            "scope": "patients insurance",
        }))
        mock_client.return_value = mock_client_instance

        token = await self.make_service()._request_token()

        assert token.request_key == "rk-1"
        assert token.refresh_key == "ref-1"
        assert token.scope == ["patients", "insurance"]
        assert timedelta(minutes=29) < token.expires_at - datetime.utcnow() <= timedelta(minutes=30)

        url = mock_client_instance.post.call_args.args[0]
        payload = mock_client_instance.post.call_args.kwargs["json"]
        assert url == "https://sikka.test/v4/request_key"
        assert payload == {"app_id": "app", "app_key": "secret", "practice_id": "sikka-practice-1"}

    @pytest.mark.asyncio
    @patch("dentalhub.integrations.sikka.token_service.httpx.AsyncClient")
    async def test_rejected_credentials(self, mock_client):
        mock_client_instance = MagicMock()
        mock_client_instance.__aenter__ = AsyncMock(return_value=mock_client_instance)
        mock_client_instance.__aexit__ = AsyncMock(return_value=False)
        mock_client_instance.post = AsyncMock(return_value=make_response(401, {"error": "invalid app"}))
        mock_client.return_value = mock_client_instance

        with pytest.raises(SikkaAuthenticationError):
            await self.make_service()._request_token()


class TestSikkaClient:
    """Tests for Sikka transport behavior"""

    def make_client(self, token_service=None) -> SikkaClient:
        if token_service is None:
            token_service = MagicMock()
            token_service.get_access_token = AsyncMock(return_value="request-key-1")
            token_service.refresh_token = AsyncMock(return_value=make_token(key="request-key-2"))
        return SikkaClient(
            token_service=token_service,
            cache=ResponseCache(prefix="test"),
            base_url="https://sikka.test/v4",
            practice_id="sikka-practice-1",
            retry_delays=(0, 0, 0),
        )

    @pytest.mark.asyncio
    async def test_unauthorized_refreshes_and_replays(self):
        client = self.make_client()
        client._send = AsyncMock(side_effect=[
            make_response(401, {"error": {"message": "expired"}}),
            make_response(200, {"practice_name": "Bright Smiles"}),
        ])

        result = await client.get_practice_info()

        assert result == {"practice_name": "Bright Smiles"}
        client.token_service.refresh_token.assert_awaited_once()
        assert client._send.await_count == 2

    @pytest.mark.asyncio
    async def test_connections_are_reused_until_closed(self):
        token_service = SikkaTokenService(
            base_url="https://sikka.test/v4", app_id="app", app_key="secret", practice_id="sikka-practice-1"
        )
        token_service.get_access_token = AsyncMock(return_value="request-key-1")
        client = self.make_client(token_service)

        http_client = MagicMock()
        http_client.is_closed = False
        http_client.request = AsyncMock(return_value=make_response(200, {"practice_name": "Bright Smiles"}))
        http_client.aclose = AsyncMock()

        with patch("dentalhub.integrations.sikka.client.httpx.AsyncClient", return_value=http_client) as factory:
            await client.get_practice_info()
            await client.get_practice_info()

        assert factory.call_count == 1
        assert http_client.request.await_count == 2

        await client.close()
        http_client.aclose.assert_awaited_once()
        assert client._client is None

    @pytest.mark.asyncio
    async def test_server_errors_are_retried(self):
        client = self.make_client()
        client._send = AsyncMock(side_effect=[
            make_response(503),
            make_response(429),
            make_response(200, {"items": [{"code": "D0120"}]}),
        ])

        codes = await client.get_procedure_codes()

        assert codes == [{"code": "D0120"}]
        assert client._send.await_count == 3

    @pytest.mark.asyncio
    async def test_retries_exhausted(self):
        client = self.make_client()
        client._send = AsyncMock(return_value=make_response(503))

        with pytest.raises(SikkaServiceError) as exc_info:
            await client.get_practice_info()

        assert exc_info.value.code == "SERVICE_UNAVAILABLE"
        assert client._send.await_count == 4

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self):
        client = self.make_client()
        client._send = AsyncMock(return_value=make_response(
            400, {"error": {"code": "INVALID_PATIENT", "message": "Unknown patient"}}
        ))

        with pytest.raises(SikkaServiceError) as exc_info:
            await client.verify_insurance("pat-1", "carrier-1", "member-1")

        assert exc_info.value.code == "INVALID_PATIENT"
        assert exc_info.value.retryable is False
        assert client._send.await_count == 1

    @pytest.mark.asyncio
    async def test_eligibility_response_is_normalized(self):
        client = self.make_client()
        client._send = AsyncMock(return_value=make_response(200, {
            "eligible": True,
            "coverage_details": {"plan": "PPO"},
            "limitations": [],
            "timestamp": "2026-01-01T00:00:00Z",
            "internal": "dropped",
        }))

        result = await client.check_eligibility("pat-1", "2026-01-15", ["preventive"])

        assert result == {
            "eligible": True,
            "coverage_details": {"plan": "PPO"},
            "limitations": [],
            "timestamp": "2026-01-01T00:00:00Z",
        }
        body = client._send.call_args.args[3]
        assert body["practice_id"] == "sikka-practice-1"

    @pytest.mark.asyncio
    async def test_invalid_date_rejected_before_request(self):
        client = self.make_client()
        client._send = AsyncMock()

        with pytest.raises(ValidationError):
            await client.get_appointments({"startdate": "01/15/2026"})
        client._send.assert_not_called()


class TestSikkaUtils:
    """Tests for Sikka request helpers"""

    def test_prepare_request_params(self):
        params = prepare_request_params(
            {"patient_id": "p1", "status": None},
            sort_by="lastname",
            limit=500,
            offset=20,
        )
        assert params == {
            "patient_id": "p1",
            "sort_by": "lastname",
            "sort_order": "asc",
            "limit": 200,
            "offset": 20,
        }

    def test_cache_key_ignores_param_order(self):
        first = generate_cache_key("/patients", {"b": 2, "a": 1})
        second = generate_cache_key("/patients", {"a": 1, "b": 2})
        assert first == second
        assert first.startswith("sikka:/patients-")

    def test_date_format(self):
        assert is_valid_date_format("2026-01-15")
        assert not is_valid_date_format("2026-02-30")
        assert not is_valid_date_format("15-01-2026")

    def test_required_fields(self):
        with pytest.raises(ValidationError):
            validate_request_params({"patient_id": ""}, ["patient_id"])
        validate_request_params({"patient_id": "p1", "enddate": "2026-01-31"}, ["patient_id"])


class TestRetellClient:
    """Tests for the Retell client"""

    def make_client(self) -> RetellClient:
        return RetellClient(
            api_key="test-key",
            base_url="https://retell.test/v1",
            retry_delays=[0, 0],
            cache=ResponseCache(prefix="test"),
        )

    def test_error_mapping(self):
        rate_limited = RetellClient._error_from_response(httpx.Response(429, json={}))
        assert rate_limited.code == "RATE_LIMIT_ERROR"
        assert rate_limited.retryable is True

        unavailable = RetellClient._error_from_response(httpx.Response(502, text="bad gateway"))
        assert unavailable.code == "SERVICE_UNAVAILABLE"

        rejected = RetellClient._error_from_response(httpx.Response(
            400, json={"error": {"code": "INVALID_PHONE_NUMBER", "message": "Bad number", "details": {"field": "phone"}}}
        ))
        assert rejected.code == "INVALID_PHONE_NUMBER"
        assert rejected.retryable is False
        assert rejected.details["field"] == "phone"
        assert rejected.details["status_code"] == 400

    @pytest.mark.asyncio
    async def test_invalid_phone_rejected(self):
        client = self.make_client()
        client._request = AsyncMock()

        with pytest.raises(InvalidPhoneNumberError):
            await client.initiate_call("pat-1", "4155551234", "follow_up")
        client._request.assert_not_called()

    @pytest.mark.asyncio
    async def test_initiate_call_payload(self):
        client = self.make_client()
        client._request = AsyncMock(return_value={"call_id": "retell-1"})

        result = await client.initiate_call(
            "pat-1",
            "+14155551234",
            "appointment_reminder",
            config=CallConfig(max_duration=300, record_call=False),
            metadata={"call_id": "local-1"},
        )

        assert result == {"call_id": "retell-1"}
        method, path = client._request.call_args.args
        payload = client._request.call_args.kwargs["json"]
        assert (method, path) == ("POST", "/calls")
        assert payload["purpose"] == "appointment_reminder"
        assert payload["priority"] == "normal"
        assert payload["config"]["max_duration"] == 300
        assert payload["config"]["recording_enabled"] is False
        assert payload["metadata"] == {"call_id": "local-1"}

    @pytest.mark.asyncio
    async def test_retryable_errors_are_retried(self):
        client = self.make_client()
        client._attempt = AsyncMock(side_effect=[
            RetellServiceError("busy", code="SERVICE_UNAVAILABLE"),
            {"call_id": "retell-1", "status": "in_progress"},
        ])

        status = await client.get_call_status("retell-1")
        assert status["status"] == "in_progress"
        assert client._attempt.await_count == 2

    @pytest.mark.asyncio
    async def test_non_retryable_error_raised_once(self):
        client = self.make_client()
        client._attempt = AsyncMock(side_effect=RetellServiceError("missing", code="CALL_NOT_FOUND"))

        with pytest.raises(RetellServiceError):
            await client.cancel_call("retell-404")
        assert client._attempt.await_count == 1


class TestRetryUtilities:
    """Tests for retry helpers"""

    def test_backoff_delays(self):
        assert backoff_delays(4, 1.0, 2.0) == [1.0, 2.0, 4.0]
        assert backoff_delays(1, 1.0) == []

    @pytest.mark.asyncio
    async def test_succeeds_after_failures(self):
        operation = AsyncMock(side_effect=[ConnectionError("a"), ConnectionError("b"), "ok"])
        result = await retry_async_operation(operation, delays=[0, 0])
        assert result == "ok"
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_raises_retry_error_with_last_exception(self):
        operation = AsyncMock(side_effect=ConnectionError("down"))
        with pytest.raises(RetryError) as exc_info:
            await retry_async_operation(operation, delays=[0])
        assert isinstance(exc_info.value.last_exception, ConnectionError)
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_non_retryable_is_raised_immediately(self):
        operation = AsyncMock(side_effect=SikkaServiceError("bad request", code="INVALID_REQUEST"))
        with pytest.raises(SikkaServiceError):
            await retry_async_operation(operation, delays=[0, 0])
        assert operation.await_count == 1


def mock_http_client(response: httpx.Response):
    """Stand-in for `httpx.AsyncClient(...)` used as an async context manager"""
    client = MagicMock()
    client.request = AsyncMock(return_value=response)
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=client)
    factory.return_value.__aexit__ = AsyncMock(return_value=None)
    return factory, client


class TestAuthService:
    """Tests for the Supabase Auth client"""

    @pytest.fixture
    def service(self):
        service = AuthService()
        service.base_url = "https://project.supabase.example"
        service.anon_key = "anon-key"
        return service

    @pytest.mark.asyncio
    async def test_login(self, service):
        factory, client = mock_http_client(httpx.Response(200, json={
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "expires_in": 3600,
            "user": {"id": "user-1", "email": "owner@smiles.example", "user_metadata": {"role": "admin"}},
        }))

        with patch("dentalhub.services.auth_service.httpx.AsyncClient", factory):
            session = await service.login("owner@smiles.example", "secret")

        assert session.access_token == "access-1"
        assert session.user.role == "admin"
        method, url = client.request.call_args.args
        assert (method, url) == ("POST", "https://project.supabase.example/auth/v1/token")
        assert client.request.call_args.kwargs["params"] == {"grant_type": "password"}
        assert client.request.call_args.kwargs["headers"]["apikey"] == "anon-key"

    @pytest.mark.asyncio
    async def test_bad_credentials(self, service):
        factory, _ = mock_http_client(httpx.Response(400, json={"error_description": "Invalid login credentials"}))

        with patch("dentalhub.services.auth_service.httpx.AsyncClient", factory):
            with pytest.raises(AuthenticationError) as exc_info:
                await service.login("owner@smiles.example", "wrong")
        assert exc_info.value.message == "Invalid login credentials"

    @pytest.mark.asyncio
    async def test_provider_outage(self, service):
        factory, _ = mock_http_client(httpx.Response(503, text="unavailable"))

        with patch("dentalhub.services.auth_service.httpx.AsyncClient", factory):
            with pytest.raises(ServiceError) as exc_info:
                await service.refresh_session("refresh-1")
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_update_user_metadata(self, service):
        factory, client = mock_http_client(httpx.Response(200, json={
            "id": "user-1",
            "user_metadata": {"role": "manager", "practice_id": "practice-1"},
        }))

        with patch("dentalhub.services.auth_service.httpx.AsyncClient", factory):
            user = await service.update_user_metadata("access-1", {"practice_id": "practice-1"})

        assert user.practice_id == "practice-1"
        assert client.request.call_args.kwargs["json"] == {"data": {"practice_id": "practice-1"}}
        assert client.request.call_args.kwargs["headers"]["Authorization"] == "Bearer access-1"

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        service = AuthService()
        service.base_url = ""
        with pytest.raises(ServiceNotConfiguredError):
            await service.get_user("access-1")


class TestMarketingClients:
    """Tests for Beehiiv and Instantly"""

    @pytest.mark.asyncio
    async def test_instantly_add_leads(self):
        factory, client = mock_http_client(httpx.Response(200, json={"status": "success"}))
        instantly = InstantlyClient(api_key="inst-key", base_url="https://api.instantly.example/v1")

        with patch("dentalhub.integrations.marketing.base.httpx.AsyncClient", factory):
            result = await instantly.add_leads("camp-1", [{"email": "ada@example.com"}])

        assert result == {"status": "success"}
        method, url = client.request.call_args.args
        assert (method, url) == ("POST", "https://api.instantly.example/v1/lead/add")
        assert client.request.call_args.kwargs["json"]["campaign_id"] == "camp-1"

    @pytest.mark.asyncio
    async def test_beehiiv_drops_empty_params(self):
        factory, client = mock_http_client(httpx.Response(200, json={"data": []}))
        beehiiv = BeehiivClient(api_key="bh-key", base_url="https://api.beehiiv.example/v2")

        with patch("dentalhub.integrations.marketing.base.httpx.AsyncClient", factory):
            await beehiiv.get_email_analytics("pub-1", "2026-01-01")

        assert client.request.call_args.kwargs["params"] == {"startDate": "2026-01-01"}
        assert client.request.call_args.kwargs["headers"]["Authorization"] == "Bearer bh-key"

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        factory, _ = mock_http_client(httpx.Response(401, text="unauthorized"))
        instantly = InstantlyClient(api_key="inst-key", base_url="https://api.instantly.example/v1")

        with patch("dentalhub.integrations.marketing.base.httpx.AsyncClient", factory):
            with pytest.raises(MarketingServiceError) as exc_info:
                await instantly.get_campaigns()
        assert exc_info.value.details == {"provider": "Instantly", "status_code": 401}

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        with patch("dentalhub.integrations.marketing.beehiiv.settings") as mock_settings:
            mock_settings.beehiiv_api_key = None
            mock_settings.beehiiv_api_url = "https://api.beehiiv.example/v2"
            beehiiv = BeehiivClient()

        with pytest.raises(ServiceNotConfiguredError):
            await beehiiv.get_publications()


class TestTwilioSMSService:
    """Tests for campaign SMS delivery"""

    def make_service(self) -> TwilioSMSService:
        return TwilioSMSService(account_sid="AC1", auth_token="token", phone_number="+15550000000")

    @pytest.mark.asyncio
    async def test_connection_errors_are_retried(self):
        with patch("dentalhub.integrations.sms.twilio_service.Client") as mock_client_cls, \
                patch("dentalhub.utils.retry.asyncio.sleep", new=AsyncMock()):
            create = mock_client_cls.return_value.messages.create
            create.side_effect = [ConnectionError("reset"), MagicMock(sid="SM1", status="queued")]

            result = await self.make_service().send_sms("+15551234567", "Time for your cleaning")

        assert result == {"success": True, "message_sid": "SM1", "status": "queued"}
        assert create.call_count == 2
        assert create.call_args.kwargs == {
            "body": "Time for your cleaning",
            "from_": "+15550000000",
            "to": "+15551234567",
        }

    @pytest.mark.asyncio
    async def test_rejected_message_is_not_retried(self):
        with patch("dentalhub.integrations.sms.twilio_service.Client") as mock_client_cls:
            create = mock_client_cls.return_value.messages.create
            create.side_effect = TwilioRestException(400, "/Messages", msg="Invalid 'To' number")

            result = await self.make_service().send_sms("+1", "Hi")

        assert result == {"success": False, "error": "Invalid 'To' number"}
        assert create.call_count == 1

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        with patch("dentalhub.integrations.sms.twilio_service.settings") as mock_settings:
            mock_settings.twilio_account_sid = None
            mock_settings.twilio_auth_token = None
            mock_settings.twilio_phone_number = None
            service = TwilioSMSService()

        with pytest.raises(ServiceNotConfiguredError):
            await service.send_sms("+15551234567", "Hi")
