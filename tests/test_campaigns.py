"""
Tests for campaign launch, dispatch and delivery metrics
"""

import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

from dentalhub.core.exceptions import (
    InvalidCampaignTransitionError,
    RateLimitError,
    RetellServiceError,
    ValidationError,
)
from dentalhub.models.call import CallStatus
from dentalhub.models.campaign import (
    CampaignAudience,
    CampaignContent,
    CampaignCreate,
    CampaignMetricsUpdate,
    CampaignScheduleRequest,
    CampaignStatus,
    CampaignType,
)
from dentalhub.services.campaign_service import CampaignService


@pytest.fixture
def call_service():
    service = MagicMock()
    service.place_call = AsyncMock()
    return service


@pytest.fixture
def sms_service():
    service = MagicMock()
    service.send_sms = AsyncMock(return_value={"success": True, "message_sid": "SM1", "status": "queued"})
    return service


@pytest.fixture
def email_client():
    client = MagicMock()
    client.add_leads = AsyncMock(return_value={"status": "ok"})
    return client


@pytest.fixture
def enqueue():
    return MagicMock()


@pytest.fixture
def service(db, call_service, sms_service, email_client, enqueue):
    return CampaignService(
        db,
        call_service=call_service,
        email_client=email_client,
        sms_service=sms_service,
        enqueue=enqueue,
    )


async def create_campaign(service, practice, campaign_type, audience=None, metadata=None):
    return await service.create_campaign(practice.id, CampaignCreate(
        name="Recall reminders",
        type=campaign_type,
        audience=audience or CampaignAudience(),
        content=CampaignContent(template="Hi {first_name}, time for your checkup!", subject="Checkup"),
        metadata=metadata or {},
    ))


class TestCampaignLaunch:
    """Tests for launching and scheduling campaigns"""

    @pytest.mark.asyncio
    async def test_launch_fixes_total_and_queues_dispatch(self, service, practice, patients, enqueue):
        campaign = await create_campaign(
            service, practice, CampaignType.VOICE, CampaignAudience(filters={"status": "active"})
        )

        launched = await service.launch_campaign(practice.id, campaign.id)
        assert launched.status == CampaignStatus.ACTIVE
        assert launched.metrics.total == 2
        enqueue.assert_called_once_with(campaign.id)

    @pytest.mark.asyncio
    async def test_empty_audience_completes_immediately(self, service, practice, patients, enqueue):
        campaign = await create_campaign(
            service, practice, CampaignType.SMS, CampaignAudience(filters={"status": "archived"})
        )

        launched = await service.launch_campaign(practice.id, campaign.id)
        assert launched.status == CampaignStatus.COMPLETED
        assert launched.metrics.total == 0
        enqueue.assert_not_called()

    @pytest.mark.asyncio
    async def test_audience_exclusions_and_explicit_ids(self, service, practice, patients):
        ada, grace, alan = patients
        excluded = await create_campaign(
            service, practice, CampaignType.SMS,
            CampaignAudience(filters={}, exclude_filters={"status": "inactive", "unknown_column": "x"})
        )
        assert {p.id for p in await service.resolve_audience(excluded)} == {ada.id, grace.id}

        explicit = await create_campaign(
            service, practice, CampaignType.SMS, CampaignAudience(patient_ids=[alan.id])
        )
        assert [p.id for p in await service.resolve_audience(explicit)] == [alan.id]

    @pytest.mark.asyncio
    async def test_completed_campaign_cannot_launch(self, service, practice, patients):
        campaign = await create_campaign(service, practice, CampaignType.SMS)
        await service.update_campaign_status(practice.id, campaign.id, CampaignStatus.ACTIVE)
        await service.update_campaign_status(practice.id, campaign.id, CampaignStatus.COMPLETED)

        with pytest.raises(InvalidCampaignTransitionError):
            await service.launch_campaign(practice.id, campaign.id)

    @pytest.mark.asyncio
    async def test_due_scheduled_campaigns_are_launched(self, service, practice, patients, enqueue):
        due = await create_campaign(service, practice, CampaignType.SMS)
        later = await create_campaign(service, practice, CampaignType.SMS)
        await service.schedule_campaign(
            practice.id, due.id, CampaignScheduleRequest(start_date=datetime.utcnow() - timedelta(minutes=5))
        )
        await service.schedule_campaign(
            practice.id, later.id, CampaignScheduleRequest(start_date=datetime.utcnow() + timedelta(days=1))
        )

        launched = await service.activate_due_campaigns()
        assert launched == [due.id]
        assert (await service.get_campaign(practice.id, later.id)).status == CampaignStatus.SCHEDULED

    @pytest.mark.asyncio
    async def test_active_campaign_cannot_be_rescheduled(self, service, practice):
        campaign = await create_campaign(service, practice, CampaignType.SMS)
        await service.update_campaign_status(practice.id, campaign.id, CampaignStatus.ACTIVE)

        with pytest.raises(InvalidCampaignTransitionError):
            await service.schedule_campaign(
                practice.id, campaign.id, CampaignScheduleRequest(start_date=datetime.utcnow())
            )


class TestCampaignDispatch:
    """Tests for contacting a campaign audience"""

    @pytest.mark.asyncio
    async def test_voice_dispatch_places_calls(self, service, practice, patients, call_service):
        campaign = await create_campaign(
            service, practice, CampaignType.VOICE, CampaignAudience(filters={"status": "active"})
        )
        await service.launch_campaign(practice.id, campaign.id)

        summary = await service.dispatch_campaign(campaign.id)
        assert summary["sent"] == 2
        assert summary["failed"] == 0
        assert summary["status"] == "active"
        assert call_service.place_call.await_count == 2

        request = call_service.place_call.call_args_list[0].args[1]
        assert request.custom_script.startswith("Hi ")
        assert call_service.place_call.call_args_list[0].kwargs["campaign_id"] == campaign.id

        stored = await service.get_campaign(practice.id, campaign.id)
        assert stored.metrics.sent == 2
        assert stored.metrics.delivered == 0

    @pytest.mark.asyncio
    async def test_voice_dispatch_counts_failed_calls(self, service, practice, patients, call_service):
        call_service.place_call.side_effect = RetellServiceError("rejected", code="INVALID_NUMBER")
        campaign = await create_campaign(service, practice, CampaignType.VOICE)
        await service.launch_campaign(practice.id, campaign.id)

        summary = await service.dispatch_campaign(campaign.id)
        # Alan has no phone, the other two are rejected by Retell
        assert summary["failed"] == 3
        assert summary["status"] == "completed"

    @pytest.mark.asyncio
    async def test_voice_dispatch_stops_on_rate_limit(self, service, practice, patients, call_service):
        call_service.place_call.side_effect = RateLimitError(retry_after=30)
        campaign = await create_campaign(
            service, practice, CampaignType.VOICE, CampaignAudience(filters={"status": "active"})
        )
        await service.launch_campaign(practice.id, campaign.id)

        with pytest.raises(RateLimitError):
            await service.dispatch_campaign(campaign.id)

        stored = await service.get_campaign(practice.id, campaign.id)
        assert stored.metrics.failed == 0
        assert stored.status == CampaignStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_sms_dispatch(self, service, practice, patients, sms_service):
        campaign = await create_campaign(service, practice, CampaignType.SMS)
        await service.launch_campaign(practice.id, campaign.id)

        summary = await service.dispatch_campaign(campaign.id)
        assert summary["sent"] == 2
        assert summary["failed"] == 1
        assert summary["status"] == "completed"

        to_numbers = {c.args[0] for c in sms_service.send_sms.call_args_list}
        assert to_numbers == {"+14155550101", "+14155550102"}
        messages = {c.args[1] for c in sms_service.send_sms.call_args_list}
        assert "Hi Ada, time for your checkup!" in messages

        stored = await service.get_campaign(practice.id, campaign.id)
        assert stored.metrics.delivered == 2
        assert stored.metrics.failed == 1

    @pytest.mark.asyncio
    async def test_email_dispatch_adds_leads(self, service, practice, patients, email_client):
        campaign = await create_campaign(
            service, practice, CampaignType.EMAIL, metadata={"instantly_campaign_id": "inst-1"}
        )
        await service.launch_campaign(practice.id, campaign.id)

        summary = await service.dispatch_campaign(campaign.id)
        assert summary["sent"] == 2
        assert summary["failed"] == 1

        instantly_id, leads = email_client.add_leads.call_args.args
        assert instantly_id == "inst-1"
        assert {lead["email"] for lead in leads} == {"ada@example.com", "grace@example.com"}
        assert all(lead["custom_variables"]["subject"] == "Checkup" for lead in leads)

    @pytest.mark.asyncio
    async def test_email_dispatch_requires_instantly_campaign(self, service, practice, patients):
        campaign = await create_campaign(service, practice, CampaignType.EMAIL)
        await service.launch_campaign(practice.id, campaign.id)

        with pytest.raises(ValidationError):
            await service.dispatch_campaign(campaign.id)

    @pytest.mark.asyncio
    async def test_inactive_campaign_not_dispatched(self, service, practice, patients, sms_service):
        campaign = await create_campaign(service, practice, CampaignType.SMS)

        summary = await service.dispatch_campaign(campaign.id)
        assert summary["status"] == "draft"
        assert summary["attempted"] == 0
        sms_service.send_sms.assert_not_called()


class TestCampaignMetrics:
    """Tests for metrics updates and call outcomes"""

    @pytest.mark.asyncio
    async def test_call_outcomes_complete_campaign(self, service, practice, patients):
        campaign = await create_campaign(
            service, practice, CampaignType.VOICE, CampaignAudience(filters={"status": "active"})
        )
        await service.launch_campaign(practice.id, campaign.id)

        await service.record_call_outcome(campaign.id, CallStatus.COMPLETED, 95)
        partial = await service.get_campaign(practice.id, campaign.id)
        assert partial.status == CampaignStatus.ACTIVE

        await service.record_call_outcome(campaign.id, CallStatus.CANCELLED)
        done = await service.get_campaign(practice.id, campaign.id)
        assert done.status == CampaignStatus.COMPLETED
        assert done.metrics.delivered == 1
        assert done.metrics.engaged == 1
        assert done.metrics.failed == 1

    @pytest.mark.asyncio
    async def test_in_progress_outcome_ignored(self, service, practice):
        campaign = await create_campaign(service, practice, CampaignType.VOICE)
        assert await service.record_call_outcome(campaign.id, CallStatus.IN_PROGRESS) is None

    @pytest.mark.asyncio
    async def test_metrics_merge_and_analytics(self, service, practice):
        campaign = await create_campaign(service, practice, CampaignType.SMS)
        await service.update_campaign_metrics(practice.id, campaign.id, CampaignMetricsUpdate(total=10, sent=8))
        updated = await service.update_campaign_metrics(
            practice.id, campaign.id, CampaignMetricsUpdate(delivered=6, engaged=3, failed=2)
        )

        assert updated.metrics.total == 10
        assert updated.metrics.sent == 8
        assert updated.status == CampaignStatus.ACTIVE

        analytics = await service.campaign_analytics(practice.id, campaign.id)
        assert analytics.delivery_rate == 75.0
        assert analytics.engagement_rate == 50.0
        assert analytics.failure_rate == 20.0
        assert analytics.completion_rate == 80.0
