"""
Tests for API endpoints
"""

import subprocess
import sys
from pathlib import Path

import jwt
import pytest
from unittest.mock import patch

from dentalhub.core.config import settings
from dentalhub.core.exceptions import InvalidTokenError
from dentalhub.agents import AgentFactory
from dentalhub.models.practice import PracticeCreate
from dentalhub.services.practice_service import PracticeService
from dentalhub.services.auth_service import decode_access_token
from tests.conftest import auth_headers, make_access_token


def create_patient(test_client, practice_id, **overrides):
    body = {"first_name": "Ada", "last_name": "Lovelace", "phone": "+14155550101", **overrides}
    response = test_client.post("/api/v1/patients/", json=body, headers=auth_headers(practice_id))
    assert response.status_code == 201
    return response.json()


class TestHealthEndpoints:
    """Tests for health check endpoints"""

    def test_health_check(self, test_client):
        response = test_client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["environment"] == "test"

    def test_root(self, test_client):
        response = test_client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "DentalHub"

    def test_api_info(self, test_client):
        response = test_client.get("/api")
        assert response.status_code == 200
        endpoints = response.json()["endpoints"]
        assert endpoints["campaigns"] == "/api/v1/campaigns"
        assert endpoints["webhooks"] == "/api/v1/webhooks"


class TestAccessTokens:
    """Tests for Supabase access token verification"""

    def test_valid_token(self):
        user = decode_access_token(make_access_token(user_id="user-9", practice_id="p1", role="manager"))
        assert user.id == "user-9"
        assert user.practice_id == "p1"
        assert user.role == "manager"

    def test_expired_token(self):
        with pytest.raises(InvalidTokenError):
            decode_access_token(make_access_token(expires_in=-60))

    def test_wrong_secret(self):
        token = jwt.encode(
            {"sub": "user-1", "aud": settings.jwt_audience},
            "another-secret-that-is-long-enough-for-hs256",
            algorithm="HS256",
        )
        with pytest.raises(InvalidTokenError):
            decode_access_token(token)

    def test_wrong_audience(self):
        token = jwt.encode(
            {"sub": "user-1", "aud": "anon"},
            settings.supabase_jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(InvalidTokenError):
            decode_access_token(token)


class TestAuthentication:
    """Tests for request authentication"""

    def test_missing_credentials(self, test_client):
        response = test_client.get("/api/v1/patients/")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_invalid_token(self, test_client):
        response = test_client.get("/api/v1/patients/", headers={"Authorization": "Bearer a.b.c"})
        assert response.status_code == 401

    def test_user_without_practice(self, test_client):
        token = make_access_token(practice_id=None)
        response = test_client.get("/api/v1/patients/", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 403

    def test_unknown_api_key(self, test_client):
        response = test_client.get("/api/v1/patients/", headers={"X-API-Key": "not-a-key"})
        assert response.status_code == 401

    def test_me(self, test_client):
        response = test_client.get("/api/v1/auth/me", headers=auth_headers("practice-1", role="staff"))
        assert response.status_code == 200
        assert response.json()["role"] == "staff"


class TestPracticeEndpoints:
    """Tests for practice management"""

    def test_current_practice(self, test_client, api_practice):
        response = test_client.get("/api/v1/practices/current", headers=auth_headers(api_practice.id))
        assert response.status_code == 200
        assert response.json()["name"] == "Bright Smiles Dental"

    def test_list_practices_is_admin_only(self, test_client, api_practice):
        admin = test_client.get("/api/v1/practices/", headers=auth_headers(api_practice.id))
        assert admin.status_code == 200
        assert [p["id"] for p in admin.json()] == [api_practice.id]

        staff = test_client.get("/api/v1/practices/", headers=auth_headers(api_practice.id, role="staff"))
        assert staff.status_code == 403

    def test_manager_cannot_manage_other_practice(self, test_client, api_practice):
        response = test_client.patch(
            "/api/v1/practices/other-practice",
            json={"name": "Renamed"},
            headers=auth_headers(api_practice.id, role="manager"),
        )
        assert response.status_code == 403

    def test_api_key_lifecycle(self, test_client, api_practice):
        response = test_client.post(
            f"/api/v1/practices/{api_practice.id}/api-keys",
            json={"name": "Front desk"},
            headers=auth_headers(api_practice.id),
        )
        assert response.status_code == 201
        key = response.json()
        assert key["practice_id"] == api_practice.id
        assert "insurance:read" not in key["permissions"]

        headers = {"X-API-Key": key["api_key"]}
        assert test_client.get("/api/v1/patients/", headers=headers).status_code == 200
        assert test_client.get("/api/v1/insurance/events", headers=headers).status_code == 403

        revoked = test_client.delete(
            f"/api/v1/practices/{api_practice.id}/api-keys/{key['api_key']}",
            headers=auth_headers(api_practice.id),
        )
        assert revoked.status_code == 200
        assert test_client.get("/api/v1/patients/", headers=headers).status_code == 401

    def test_insurance_events_need_their_own_permission(self, test_client, api_practice):
        response = test_client.post(
            f"/api/v1/practices/{api_practice.id}/api-keys",
            json={"name": "Billing", "permissions": ["insurance:read"]},
            headers=auth_headers(api_practice.id),
        )
        assert response.status_code == 201
        headers = {"X-API-Key": response.json()["api_key"]}

        assert test_client.get("/api/v1/insurance/events", headers=headers).status_code == 200
        assert test_client.get("/api/v1/patients/", headers=headers).status_code == 403


class TestPatientEndpoints:
    """Tests for patient endpoints"""

    def test_create_and_get(self, test_client, api_practice):
        created = create_patient(test_client, api_practice.id, email="Ada@Example.com")
        assert created["practice_id"] == api_practice.id
        assert created["email"] == "ada@example.com"

        response = test_client.get(f"/api/v1/patients/{created['id']}", headers=auth_headers(api_practice.id))
        assert response.status_code == 200
        assert response.json()["first_name"] == "Ada"

    def test_list_and_search(self, test_client, api_practice):
        create_patient(test_client, api_practice.id)
        create_patient(test_client, api_practice.id, first_name="Grace", last_name="Hopper", phone="+14155550102")
        headers = auth_headers(api_practice.id)

        listed = test_client.get("/api/v1/patients/", headers=headers)
        assert listed.json()["count"] == 2

        found = test_client.get("/api/v1/patients/search", params={"last_name": "hopper"}, headers=headers)
        assert found.status_code == 200
        assert [p["first_name"] for p in found.json()] == ["Grace"]

    def test_invalid_patient_rejected(self, test_client, api_practice):
        response = test_client.post(
            "/api/v1/patients/",
            json={"first_name": "Ada", "last_name": "Lovelace", "phone": "123"},
            headers=auth_headers(api_practice.id),
        )
        assert response.status_code == 422

    def test_unknown_patient(self, test_client, api_practice):
        response = test_client.get("/api/v1/patients/missing", headers=auth_headers(api_practice.id))
        assert response.status_code == 404

    def test_family_members(self, test_client, api_practice):
        parent = create_patient(test_client, api_practice.id)
        child = create_patient(test_client, api_practice.id, first_name="Byron", phone=None)
        headers = auth_headers(api_practice.id)

        response = test_client.post(
            f"/api/v1/patients/{parent['id']}/family",
            json={"related_patient_id": child["id"], "relationship_type": "child"},
            headers=headers,
        )
        assert response.status_code == 201

        family = test_client.get(f"/api/v1/patients/{parent['id']}/family", headers=headers)
        assert [m["patient"]["id"] for m in family.json()] == [child["id"]]


class TestCampaignEndpoints:
    """Tests for campaign endpoints"""

    def campaign_body(self, **overrides):
        return {
            "name": "Spring recall",
            "type": "sms",
            "content": {"template": "Hi {first_name}, book your cleaning!"},
            **overrides,
        }

    def test_create_campaign_is_draft(self, test_client, api_practice):
        response = test_client.post(
            "/api/v1/campaigns/", json=self.campaign_body(), headers=auth_headers(api_practice.id)
        )
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "draft"
        assert data["metrics"]["total"] == 0

    def test_invalid_transition_conflicts(self, test_client, api_practice):
        headers = auth_headers(api_practice.id)
        campaign = test_client.post("/api/v1/campaigns/", json=self.campaign_body(), headers=headers).json()

        response = test_client.put(
            f"/api/v1/campaigns/{campaign['id']}/status", json={"status": "completed"}, headers=headers
        )
        assert response.status_code == 409
        assert response.json()["error"] == "INVALID_CAMPAIGN_TRANSITION"

    def test_launch_queues_dispatch(self, test_client, api_practice):
        headers = auth_headers(api_practice.id)
        create_patient(test_client, api_practice.id)
        campaign = test_client.post("/api/v1/campaigns/", json=self.campaign_body(), headers=headers).json()

        with patch("dentalhub.services.campaign_service._enqueue_dispatch") as mock_enqueue:
            response = test_client.post(f"/api/v1/campaigns/{campaign['id']}/launch", headers=headers)

        assert response.status_code == 200
        assert response.json()["status"] == "active"
        assert response.json()["metrics"]["total"] == 1
        mock_enqueue.assert_called_once_with(campaign["id"])

    def test_campaigns_are_practice_scoped(self, test_client, api_practice):
        campaign = test_client.post(
            "/api/v1/campaigns/", json=self.campaign_body(), headers=auth_headers(api_practice.id)
        ).json()

        other_practice = test_client.portal.call(
            PracticeService().create_practice, PracticeCreate(name="Other Dental")
        )
        other = test_client.get(f"/api/v1/campaigns/{campaign['id']}", headers=auth_headers(other_practice.id))
        assert other.status_code == 404
        assert other.json()["error"] == "CAMPAIGN_NOT_FOUND"


class TestCallEndpoints:
    """Tests for call endpoints"""

    def test_place_call(self, test_client, api_practice, mock_retell_client):
        patient = create_patient(test_client, api_practice.id)
        headers = auth_headers(api_practice.id)

        with patch("dentalhub.services.call_service.get_retell_client", return_value=mock_retell_client):
            response = test_client.post(
                "/api/v1/calls/",
                json={"patient_id": patient["id"], "purpose": "appointment_reminder"},
                headers=headers,
            )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "initiated"
        assert data["retell_call_id"] == "retell-call-1"
        assert data["phone_number"] == "+14155550101"

        stats = test_client.get("/api/v1/calls/stats/summary", headers=headers)
        assert stats.status_code == 200
        assert stats.json()["total_calls"] == 1

    def test_invalid_phone_rejected(self, test_client, api_practice):
        patient = create_patient(test_client, api_practice.id)
        response = test_client.post(
            "/api/v1/calls/",
            json={"patient_id": patient["id"], "phone_number": "555-0101", "purpose": "follow_up"},
            headers=auth_headers(api_practice.id),
        )
        assert response.status_code == 422


class TestAgentEndpoints:
    """Tests for AI agent endpoints"""

    @pytest.fixture
    def factory(self, mock_openai_service):
        return AgentFactory(openai_service=mock_openai_service, assistants={})

    def test_list_agents(self, test_client, api_practice, factory):
        with patch("dentalhub.api.routes.agents.get_agent_factory", return_value=factory):
            response = test_client.get("/api/v1/ai/agents", headers=auth_headers(api_practice.id))

        assert response.status_code == 200
        agents = {a["agent_type"]: a["config"] for a in response.json()}
        assert "BRAIN_CONSULTANT" in agents
        assert "api_key" not in agents["ANALYSIS"]

    def test_query_agent(self, test_client, api_practice, factory, mock_openai_service):
        with patch("dentalhub.api.routes.agents.get_agent_factory", return_value=factory):
            response = test_client.post(
                "/api/v1/ai/agents/ANALYSIS/query",
                json={"query": "How is hygiene production?"},
                headers=auth_headers(api_practice.id),
            )

        assert response.status_code == 200
        assert response.json()["content"] == "Test response"
        system_prompt = mock_openai_service.chat_completion.call_args.kwargs["system_prompt"]
        assert api_practice.id in system_prompt

    def test_unconfigured_agent(self, test_client, api_practice):
        empty = AgentFactory(openai_service=None, assistants={}, api_key=None)
        empty.configs.clear()
        with patch("dentalhub.api.routes.agents.get_agent_factory", return_value=empty):
            response = test_client.post(
                "/api/v1/ai/agents/ANALYSIS/query",
                json={"query": "Hello"},
                headers=auth_headers(api_practice.id),
            )

        assert response.status_code == 404
        assert response.json()["error"] == "AGENT_NOT_CONFIGURED"

    def test_orchestrate(self, test_client, api_practice, factory, mock_openai_service):
        mock_openai_service.chat_completion.return_value = {
            "success": True,
            "content": "Ask ANALYSIS.\n- Fill open hygiene slots",
            "usage": {},
            "finish_reason": "stop",
        }
        with patch("dentalhub.api.routes.agents.get_agent_factory", return_value=factory):
            response = test_client.post(
                "/api/v1/ai/orchestrate",
                json={"query": "Why is production down?"},
                headers=auth_headers(api_practice.id),
            )

        assert response.status_code == 200
        data = response.json()
        assert data["agents_involved"] == ["DATA_RETRIEVAL", "ANALYSIS"]
        assert data["recommendations"] == ["Fill open hygiene slots"]


class TestPackageImports:
    """Each entry point must import on its own in a fresh interpreter"""

    @pytest.mark.parametrize("module", [
        "dentalhub.api.middleware",
        "dentalhub.api.middleware.rate_limit",
        "dentalhub.integrations.retell.client",
        "dentalhub.integrations.sikka.client",
        "dentalhub.services.call_service",
        "dentalhub.agents",
        "dentalhub.main",
    ])
    def test_module_imports_cleanly(self, module):
        result = subprocess.run(
            [sys.executable, "-c", f"import {module}"],
            capture_output=True,
            text=True,
            cwd=str(Path(__file__).resolve().parent.parent),
        )
        assert result.returncode == 0, result.stderr
