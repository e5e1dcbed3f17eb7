"""
Tests for webhook signature validation and the webhook endpoints
"""

import hashlib
import hmac
import json
import time
import pytest

from dentalhub.core.config import settings
from dentalhub.core.exceptions import WebhookValidationError
from dentalhub.api.middleware.webhook_security import (
    GenericWebhookValidator,
    SikkaWebhookValidator,
    compute_signature,
    signatures_match,
)
from tests.conftest import auth_headers


def sign_retell(body: bytes) -> dict:
    return {
        "Content-Type": "application/json",
        "X-Retell-Signature": compute_signature(settings.retell_webhook_secret, body),
    }


def now_ms() -> int:
    return int(time.time() * 1000)


def sign_sikka(body: bytes, timestamp_ms: int = None) -> dict:
    timestamp = str(timestamp_ms if timestamp_ms is not None else now_ms())
    validator = SikkaWebhookValidator(settings.sikka_webhook_secret)
    return {
        "Content-Type": "application/json",
        "X-Webhook-Signature": validator.compute_signature(body, timestamp),
        "X-Webhook-Timestamp": timestamp,
    }


def sign_openai(body: bytes, timestamp_ms: int = None) -> dict:
    timestamp = str(timestamp_ms if timestamp_ms is not None else now_ms())
    validator = GenericWebhookValidator(settings.openai_webhook_secret)
    return {
        "Content-Type": "application/json",
        "X-Webhook-Signature": validator.compute_signature(body, timestamp),
        "X-Webhook-Timestamp": timestamp,
    }


class TestSignatures:
    """Tests for HMAC helpers"""

    def test_compute_signature(self):
        expected = hmac.new(b"secret", b'{"a":1}', hashlib.sha256).hexdigest()
        assert compute_signature("secret", b'{"a":1}') == expected

    def test_signature_comparison_ignores_case(self):
        signature = compute_signature("secret", b"body")
        assert signatures_match(signature.upper(), signature)
        assert not signatures_match("deadbeef", signature)

    def test_sikka_signature_covers_timestamp(self):
        validator = SikkaWebhookValidator("secret")
        assert validator.compute_signature(b"{}", "100") != validator.compute_signature(b"{}", "101")
        assert validator.compute_signature(b"{}", "100") == compute_signature("secret", b"100.{}")

    def test_generic_signature_covers_timestamp(self):
        validator = GenericWebhookValidator("secret")
        assert validator.compute_signature(b"{}", "100") == compute_signature("secret", b"100.{}")
        assert validator.compute_signature(b"{}", "100") != compute_signature("secret", b"{}")

    def test_timestamp_tolerance(self):
        validator = GenericWebhookValidator("secret", tolerance_seconds=300)
        validator.check_timestamp("1000000", now=1100.0)

        with pytest.raises(WebhookValidationError):
            validator.check_timestamp("1000000", now=1400.0)
        with pytest.raises(WebhookValidationError):
            validator.check_timestamp("yesterday", now=1000.0)


class TestRetellWebhookEndpoint:
    """Tests for /webhooks/retell"""

    def test_valid_signature_accepted(self, test_client):
        body = json.dumps({"eventType": "call.started", "callId": "unknown-call", "data": {}}).encode()
        response = test_client.post("/api/v1/webhooks/retell", content=body, headers=sign_retell(body))
        assert response.status_code == 200
        assert response.json()["status"] == "received"

    def test_invalid_signature_rejected(self, test_client):
        body = json.dumps({"eventType": "call.started", "callId": "c1", "data": {}}).encode()
        response = test_client.post(
            "/api/v1/webhooks/retell",
            content=body,
            headers={"Content-Type": "application/json", "X-Retell-Signature": "0" * 64},
        )
        assert response.status_code == 401
        assert response.json()["error"] == "WEBHOOK_VALIDATION_FAILED"

    def test_missing_signature_rejected(self, test_client):
        response = test_client.post("/api/v1/webhooks/retell", json={"eventType": "call.started"})
        assert response.status_code == 401

    def test_other_provider_event_rejected(self, test_client):
        body = json.dumps({"eventType": "claim.status_update", "practiceId": "s1", "data": {}}).encode()
        response = test_client.post("/api/v1/webhooks/retell", content=body, headers=sign_retell(body))
        assert response.status_code == 400

    def test_malformed_payload_rejected(self, test_client):
        body = b"not json"
        response = test_client.post("/api/v1/webhooks/retell", content=body, headers=sign_retell(body))
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_missing_fields_rejected(self, test_client):
        body = json.dumps({"eventType": "call.ended"}).encode()
        response = test_client.post("/api/v1/webhooks/retell", content=body, headers=sign_retell(body))
        assert response.status_code == 400


class TestSikkaWebhookEndpoint:
    """Tests for /webhooks/sikka"""

    def test_insurance_event_is_listed(self, test_client, api_practice):
        body = json.dumps({
            "eventType": "eligibility.verified",
            "practiceId": "sikka-practice-1",
            "requestId": "req-1",
            "data": {"patientId": "pat-1", "status": "eligible"},
        }).encode()

        response = test_client.post("/api/v1/webhooks/sikka", content=body, headers=sign_sikka(body))
        assert response.status_code == 200

        events = test_client.get("/api/v1/insurance/events", headers=auth_headers(api_practice.id))
        assert events.status_code == 200
        data = events.json()
        assert len(data) == 1
        assert data[0]["event_type"] == "eligibility.verified"
        assert data[0]["patient_id"] == "pat-1"
        assert data[0]["status"] == "eligible"

    def test_bad_signature_rejected(self, test_client):
        body = json.dumps({"eventType": "benefits.update", "practiceId": "s1", "data": {}}).encode()
        headers = sign_sikka(body)
        headers["X-Webhook-Timestamp"] = "1"
        response = test_client.post("/api/v1/webhooks/sikka", content=body, headers=headers)
        assert response.status_code == 401

    def test_stale_signed_request_rejected(self, test_client):
        body = json.dumps({"eventType": "benefits.update", "practiceId": "s1", "data": {}}).encode()
        an_hour_ago = now_ms() - 3600 * 1000
        response = test_client.post(
            "/api/v1/webhooks/sikka", content=body, headers=sign_sikka(body, timestamp_ms=an_hour_ago)
        )
        assert response.status_code == 401
        assert response.json()["error"] == "WEBHOOK_VALIDATION_FAILED"


class TestOpenAIWebhookEndpoint:
    """Tests for /webhooks/openai"""

    def test_completion_event_accepted(self, test_client):
        body = json.dumps({
            "eventType": "completion.finished",
            "organizationId": "org-1",
            "data": {"requestId": "req-1"},
        }).encode()
        response = test_client.post("/api/v1/webhooks/openai", content=body, headers=sign_openai(body))
        assert response.status_code == 200

    def test_stale_timestamp_rejected(self, test_client):
        body = json.dumps({"eventType": "error", "data": {}}).encode()
        stale = int((time.time() - 3600) * 1000)
        response = test_client.post(
            "/api/v1/webhooks/openai", content=body, headers=sign_openai(body, timestamp_ms=stale)
        )
        assert response.status_code == 401

    def test_old_signature_with_fresh_timestamp_rejected(self, test_client):
        body = json.dumps({"eventType": "completion.finished", "data": {}}).encode()
        headers = sign_openai(body, timestamp_ms=now_ms() - 3600 * 1000)
        headers["X-Webhook-Timestamp"] = str(now_ms())

        response = test_client.post("/api/v1/webhooks/openai", content=body, headers=headers)
        assert response.status_code == 401
        assert response.json()["error"] == "WEBHOOK_VALIDATION_FAILED"
