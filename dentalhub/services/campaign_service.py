"""
Campaign Service
Campaign CRUD, the status lifecycle and audience dispatch
"""

from datetime import datetime
from typing import Optional, Dict, Any, List, Callable

from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import (
    DentalHubException,
    InvalidCampaignTransitionError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from dentalhub.db import DatabaseAdapter, get_database
from dentalhub.db.repositories import CallRepository, CampaignRepository, PatientRepository
from dentalhub.integrations.marketing import InstantlyClient
from dentalhub.integrations.sms import TwilioSMSService, get_sms_service
from dentalhub.models.call import CallPurpose, CallRequest, CallStatus, is_e164
from dentalhub.models.campaign import (
    Campaign,
    CampaignAnalytics,
    CampaignCreate,
    CampaignFilters,
    CampaignMetrics,
    CampaignMetricsUpdate,
    CampaignSchedule,
    CampaignScheduleRequest,
    CampaignStatus,
    CampaignType,
    CampaignUpdate,
    can_transition,
    derive_campaign_status,
)
from dentalhub.models.patient import Patient
from .call_service import CallService

logger = get_logger(__name__)

LAUNCHABLE_STATUSES = {CampaignStatus.DRAFT, CampaignStatus.SCHEDULED, CampaignStatus.PAUSED}
EMAIL_LEAD_BATCH_SIZE = 100


def render_template(template: str, patient: Patient, variables: Optional[Dict[str, Any]] = None) -> str:
    """Fill {first_name}, {last_name}, {full_name} and campaign variables; unknown fields are left as-is"""
    values = {str(k): str(v) for k, v in (variables or {}).items()}
    values.update({
        "first_name": patient.first_name,
        "last_name": patient.last_name,
        "full_name": f"{patient.first_name} {patient.last_name}",
    })
    rendered = template
    for key, value in values.items():
        rendered = rendered.replace("{" + key + "}", value)
    return rendered


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole > 0 else 0.0


def _enqueue_dispatch(campaign_id: str) -> None:
    from dentalhub.tasks.campaign_tasks import dispatch_campaign_task

    dispatch_campaign_task.delay(campaign_id)


class CampaignService:
    """Service for outreach campaigns"""

    def __init__(
        self,
        adapter: Optional[DatabaseAdapter] = None,
        call_service: Optional[CallService] = None,
        email_client: Optional[InstantlyClient] = None,
        sms_service: Optional[TwilioSMSService] = None,
        enqueue: Optional[Callable[[str], None]] = None
    ):
        adapter = adapter or get_database()
        self.repo = CampaignRepository(adapter)
        self.patients = PatientRepository(adapter)
        self.calls = CallRepository(adapter)
        self.call_service = call_service or CallService(adapter)
        self._email_client = email_client
        self._sms_service = sms_service
        self.enqueue = enqueue or _enqueue_dispatch

    @property
    def email_client(self) -> InstantlyClient:
        if self._email_client is None:
            self._email_client = InstantlyClient()
        return self._email_client

    @property
    def sms_service(self) -> TwilioSMSService:
        return self._sms_service or get_sms_service()

    # ==================== CRUD ====================

    async def create_campaign(
        self,
        practice_id: str,
        data: CampaignCreate,
        created_by: Optional[str] = None
    ) -> Campaign:
        campaign = Campaign(practice_id=practice_id, created_by=created_by, **data.model_dump())
        return await self.repo.create(campaign)

    async def get_campaign(self, practice_id: str, campaign_id: str) -> Campaign:
        campaign = await self.repo.get(practice_id, campaign_id)
        if not campaign:
            raise NotFoundError("campaign", campaign_id)
        return campaign

    async def list_campaigns(self, practice_id: str, filters: Optional[CampaignFilters] = None) -> List[Campaign]:
        return await self.repo.list(practice_id, filters or CampaignFilters())

    async def update_campaign(self, practice_id: str, campaign_id: str, data: CampaignUpdate) -> Campaign:
        await self.get_campaign(practice_id, campaign_id)
        # Nested models are kept as-is; the repository serializes them as JSON
        updates = {
            field: getattr(data, field)
            for field in data.model_fields_set
            if getattr(data, field) is not None or field == "schedule"
        }
        return await self.repo.update(practice_id, campaign_id, updates)

    async def delete_campaign(self, practice_id: str, campaign_id: str) -> None:
        if not await self.repo.delete(practice_id, campaign_id):
            raise NotFoundError("campaign", campaign_id)
        logger.info(f"Deleted campaign {campaign_id}")

    # ==================== Lifecycle ====================

    async def update_campaign_status(
        self,
        practice_id: str,
        campaign_id: str,
        status: CampaignStatus
    ) -> Campaign:
        """
        Move a campaign to a new status

        Raises:
            InvalidCampaignTransitionError: If the transition table forbids it
        """
        campaign = await self.get_campaign(practice_id, campaign_id)
        target = CampaignStatus(status)
        if not can_transition(campaign.status, target):
            raise InvalidCampaignTransitionError(campaign_id, campaign.status.value, target.value)

        logger.info(f"Campaign {campaign_id}: {campaign.status.value} -> {target.value}")
        return await self.repo.update(practice_id, campaign_id, {"status": target})

    async def update_campaign_metrics(
        self,
        practice_id: str,
        campaign_id: str,
        update: CampaignMetricsUpdate
    ) -> Campaign:
        """Merge partial metrics over the stored ones and derive the status"""
        campaign = await self.get_campaign(practice_id, campaign_id)
        metrics = campaign.metrics.model_copy(update=update.model_dump(exclude_none=True))
        return await self._save_metrics(campaign, metrics)

    async def _save_metrics(self, campaign: Campaign, metrics: CampaignMetrics) -> Campaign:
        status = derive_campaign_status(metrics, campaign.status)
        if status != campaign.status:
            logger.info(f"Campaign {campaign.id} status derived from metrics: {campaign.status.value} -> {status.value}")
        return await self.repo.save_metrics(campaign.practice_id, campaign.id, metrics, status)

    async def _increment(self, campaign_id: str, **deltas: int) -> Optional[Campaign]:
        """Add to counters against the latest stored metrics"""
        campaign = await self.repo.get_by_id(campaign_id)
        if not campaign:
            return None
        values = campaign.metrics.model_dump()
        for key, delta in deltas.items():
            values[key] = values.get(key, 0) + delta
        return await self._save_metrics(campaign, CampaignMetrics(**values))

    async def schedule_campaign(
        self,
        practice_id: str,
        campaign_id: str,
        request: CampaignScheduleRequest
    ) -> Campaign:
        campaign = await self.get_campaign(practice_id, campaign_id)
        if campaign.status not in (CampaignStatus.DRAFT, CampaignStatus.SCHEDULED):
            raise InvalidCampaignTransitionError(
                campaign_id, campaign.status.value, CampaignStatus.SCHEDULED.value
            )

        schedule = CampaignSchedule(**request.model_dump())
        return await self.repo.update(practice_id, campaign_id, {
            "schedule": schedule,
            "status": CampaignStatus.SCHEDULED,
        })

    async def resolve_audience(self, campaign: Campaign) -> List[Patient]:
        """Patients targeted by a campaign (explicit ids, or filters minus exclusions)"""
        audience = campaign.audience
        if audience.patient_ids:
            return await self.patients.get_many(campaign.practice_id, audience.patient_ids)
        return await self.patients.find_by_filters(
            campaign.practice_id, audience.filters, audience.exclude_filters
        )

    async def launch_campaign(self, practice_id: str, campaign_id: str) -> Campaign:
        """
        Activate a campaign and queue its dispatch

        The audience is resolved at launch and fixes metrics.total. A
        campaign with nobody to contact completes immediately.
        """
        campaign = await self.get_campaign(practice_id, campaign_id)
        if campaign.status not in LAUNCHABLE_STATUSES:
            raise InvalidCampaignTransitionError(
                campaign_id, campaign.status.value, CampaignStatus.ACTIVE.value
            )

        audience = await self.resolve_audience(campaign)
        metrics = campaign.metrics.model_copy(update={"total": len(audience)})

        if not audience:
            logger.warning(f"Campaign {campaign_id} has an empty audience")
            return await self.repo.save_metrics(practice_id, campaign_id, metrics, CampaignStatus.COMPLETED)

        campaign = await self.repo.save_metrics(practice_id, campaign_id, metrics, CampaignStatus.ACTIVE)
        self.enqueue(campaign_id)
        logger.info(f"Launched campaign {campaign_id} for {len(audience)} patients")
        return campaign

    async def activate_due_campaigns(self) -> List[str]:
        """Launch scheduled campaigns whose start date has passed"""
        launched = []
        for campaign in await self.repo.list_due(datetime.utcnow()):
            try:
                await self.launch_campaign(campaign.practice_id, campaign.id)
                launched.append(campaign.id)
            except DentalHubException as e:
                logger.error(f"Failed to launch scheduled campaign {campaign.id}: {e.message}")
        return launched

    # ==================== Dispatch ====================

    async def dispatch_campaign(self, campaign_id: str) -> Dict[str, Any]:
        """
        Contact every audience patient of an active campaign

        Each attempt updates sent/failed. Voice calls are delivered when
        the call.ended webhook arrives; SMS and email count as delivered
        once the provider accepts them. Patients already called for this
        campaign are skipped, so a retried dispatch does not call twice.
        """
        campaign = await self.repo.get_by_id(campaign_id)
        if not campaign:
            raise NotFoundError("campaign", campaign_id)

        summary = {"campaign_id": campaign_id, "attempted": 0, "sent": 0, "failed": 0, "skipped": 0}
        if campaign.status != CampaignStatus.ACTIVE:
            logger.info(f"Campaign {campaign_id} is {campaign.status.value}, not dispatching")
            summary["status"] = campaign.status.value
            return summary

        audience = await self.resolve_audience(campaign)
        logger.info(f"Dispatching {campaign.type.value} campaign {campaign_id} to {len(audience)} patients")

        if campaign.type == CampaignType.VOICE:
            await self._dispatch_voice(campaign, audience, summary)
        elif campaign.type == CampaignType.SMS:
            await self._dispatch_sms(campaign, audience, summary)
        else:
            await self._dispatch_email(campaign, audience, summary)

        latest = await self.repo.get_by_id(campaign_id)
        summary["status"] = latest.status.value if latest else campaign.status.value
        logger.info(f"Campaign {campaign_id} dispatch finished: {summary}")
        return summary

    async def _still_active(self, campaign_id: str) -> bool:
        current = await self.repo.get_by_id(campaign_id)
        return bool(current and current.status == CampaignStatus.ACTIVE)

    async def _dispatch_voice(self, campaign: Campaign, audience: List[Patient], summary: Dict[str, Any]):
        called = {
            call.patient_id
            for call in await self.calls.list(campaign.practice_id, campaign_id=campaign.id, limit=100000)
        }
        purpose = campaign.metadata.get("call_purpose", CallPurpose.CUSTOM.value)

        for patient in audience:
            if patient.id in called:
                summary["skipped"] += 1
                continue
            if not await self._still_active(campaign.id):
                logger.info(f"Campaign {campaign.id} left active state, stopping dispatch")
                break

            summary["attempted"] += 1
            if not patient.phone or not is_e164(patient.phone):
                summary["failed"] += 1
                await self._increment(campaign.id, failed=1)
                continue

            request = CallRequest(
                patient_id=patient.id,
                phone_number=patient.phone,
                purpose=CallPurpose(purpose),
                custom_script=render_template(campaign.content.template, patient, campaign.content.variables),
                metadata={"campaign_id": campaign.id},
            )
            try:
                await self.call_service.place_call(campaign.practice_id, request, campaign_id=campaign.id)
            except RateLimitError:
                # Not counted: a retried dispatch picks this patient up again
                summary["attempted"] -= 1
                raise
            except DentalHubException as e:
                logger.warning(f"Campaign {campaign.id} call to patient {patient.id} failed: {e.message}")
                summary["failed"] += 1
                await self._increment(campaign.id, failed=1)
                continue

            summary["sent"] += 1
            await self._increment(campaign.id, sent=1)

    async def _dispatch_sms(self, campaign: Campaign, audience: List[Patient], summary: Dict[str, Any]):
        for patient in audience:
            if not await self._still_active(campaign.id):
                logger.info(f"Campaign {campaign.id} left active state, stopping dispatch")
                break

            summary["attempted"] += 1
            if not patient.phone:
                summary["failed"] += 1
                await self._increment(campaign.id, failed=1)
                continue

            message = render_template(campaign.content.template, patient, campaign.content.variables)
            result = await self.sms_service.send_sms(patient.phone, message)
            if result.get("success"):
                summary["sent"] += 1
                await self._increment(campaign.id, sent=1, delivered=1)
            else:
                logger.warning(f"Campaign {campaign.id} SMS to patient {patient.id} failed: {result.get('error')}")
                summary["failed"] += 1
                await self._increment(campaign.id, failed=1)

    async def _dispatch_email(self, campaign: Campaign, audience: List[Patient], summary: Dict[str, Any]):
        instantly_campaign_id = campaign.metadata.get("instantly_campaign_id")
        if not instantly_campaign_id:
            raise ValidationError(
                "Email campaigns need metadata.instantly_campaign_id", field="metadata"
            )

        reachable = [p for p in audience if p.email]
        missing = len(audience) - len(reachable)
        if missing:
            summary["attempted"] += missing
            summary["failed"] += missing
            await self._increment(campaign.id, failed=missing)

        for start in range(0, len(reachable), EMAIL_LEAD_BATCH_SIZE):
            if not await self._still_active(campaign.id):
                logger.info(f"Campaign {campaign.id} left active state, stopping dispatch")
                break

            batch = reachable[start:start + EMAIL_LEAD_BATCH_SIZE]
            leads = [
                {
                    "email": patient.email,
                    "first_name": patient.first_name,
                    "last_name": patient.last_name,
                    "custom_variables": {
                        "message": render_template(campaign.content.template, patient, campaign.content.variables),
                        "subject": campaign.content.subject or campaign.name,
                    },
                }
                for patient in batch
            ]
            summary["attempted"] += len(batch)
            try:
                await self.email_client.add_leads(instantly_campaign_id, leads)
            except DentalHubException as e:
                logger.warning(f"Campaign {campaign.id} lead batch failed: {e.message}")
                summary["failed"] += len(batch)
                await self._increment(campaign.id, failed=len(batch))
                continue

            summary["sent"] += len(batch)
            await self._increment(campaign.id, sent=len(batch), delivered=len(batch))

    # ==================== Outcomes & Analytics ====================

    async def record_call_outcome(
        self,
        campaign_id: str,
        status: CallStatus,
        duration_seconds: Optional[int] = None
    ) -> Optional[Campaign]:
        """Roll a finished campaign call into the campaign metrics"""
        if status == CallStatus.COMPLETED:
            deltas = {"delivered": 1}
            if duration_seconds:
                deltas["engaged"] = 1
        elif status in (CallStatus.FAILED, CallStatus.CANCELLED):
            deltas = {"failed": 1}
        else:
            return None

        campaign = await self._increment(campaign_id, **deltas)
        if campaign is None:
            logger.warning(f"Call outcome for unknown campaign {campaign_id}")
        return campaign

    async def campaign_analytics(self, practice_id: str, campaign_id: str) -> CampaignAnalytics:
        campaign = await self.get_campaign(practice_id, campaign_id)
        m = campaign.metrics
        return CampaignAnalytics(
            campaign_id=campaign.id,
            status=campaign.status,
            metrics=m,
            delivery_rate=_percent(m.delivered, m.sent),
            engagement_rate=_percent(m.engaged, m.delivered),
            failure_rate=_percent(m.failed, m.total),
            completion_rate=_percent(m.delivered + m.failed, m.total),
        )


def get_campaign_service() -> CampaignService:
    return CampaignService()
