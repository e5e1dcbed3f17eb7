"""
Tests for appointments, staff, procedure codes and the dashboard
"""

import pytest
from datetime import date, datetime, timedelta
from pydantic import ValidationError as PydanticValidationError

from dentalhub.core.exceptions import NotFoundError, ValidationError
from dentalhub.models.appointment import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentReminder,
    AppointmentStatus,
    AppointmentUpdate,
)
from dentalhub.models.campaign import CampaignContent, CampaignCreate, CampaignMetricsUpdate, CampaignType
from dentalhub.models.staff import StaffCreate, StaffRole, StaffStatus, StaffUpdate
from dentalhub.services.appointment_service import AppointmentService
from dentalhub.services.campaign_service import CampaignService
from dentalhub.services.dashboard_service import DashboardService
from dentalhub.services.procedure_service import ProcedureCodeService, sikka_bool
from dentalhub.services.staff_service import StaffService
from tests.conftest import auth_headers


def booking(patient_id: str, hours_from_now: float, length_minutes: int = 60, **extra) -> AppointmentCreate:
    start = datetime.utcnow() + timedelta(hours=hours_from_now)
    return AppointmentCreate(
        patient_id=patient_id,
        start_time=start,
        end_time=start + timedelta(minutes=length_minutes),
        **extra,
    )


class TestAppointmentService:
    """Tests for booking and managing appointments"""

    @pytest.fixture
    def service(self, db):
        return AppointmentService(db)

    def test_end_must_follow_start(self):
        start = datetime(2026, 5, 1, 9, 0)
        with pytest.raises(PydanticValidationError):
            AppointmentCreate(patient_id="p1", start_time=start, end_time=start)

    @pytest.mark.asyncio
    async def test_create_with_reminders(self, service, practice, patients):
        ada = patients[0]
        reminder_time = datetime.utcnow() + timedelta(hours=2)
        created = await service.create_appointment(
            practice.id,
            booking(
                ada.id, 26,
                appointment_type="cleaning",
                reminders=[AppointmentReminder(type="sms", scheduled_time=reminder_time)],
            ),
            created_by="user-1",
        )

        stored = await service.get_appointment(practice.id, created.id)
        assert stored.patient_id == ada.id
        assert stored.status == AppointmentStatus.SCHEDULED
        assert stored.created_by == "user-1"
        assert [r.type.value for r in stored.reminders] == ["sms"]

    @pytest.mark.asyncio
    async def test_unknown_patient_rejected(self, service, practice):
        with pytest.raises(NotFoundError):
            await service.create_appointment(practice.id, booking("missing", 1))

    @pytest.mark.asyncio
    async def test_list_is_ordered_and_filtered(self, service, practice, patients):
        ada, grace, _ = patients
        later = await service.create_appointment(practice.id, booking(ada.id, 48))
        sooner = await service.create_appointment(practice.id, booking(grace.id, 24))

        listed = await service.list_appointments(practice.id, AppointmentFilters())
        assert [a.id for a in listed] == [sooner.id, later.id]

        for_ada = await service.list_appointments(practice.id, AppointmentFilters(patient_id=ada.id))
        assert [a.id for a in for_ada] == [later.id]

    @pytest.mark.asyncio
    async def test_update_replaces_reminders_and_checks_window(self, service, practice, patients):
        created = await service.create_appointment(
            practice.id,
            booking(
                patients[0].id, 24,
                reminders=[AppointmentReminder(type="sms", scheduled_time=datetime.utcnow())],
            ),
        )

        updated = await service.update_appointment(practice.id, created.id, AppointmentUpdate(
            status=AppointmentStatus.CONFIRMED,
            reminders=[AppointmentReminder(type="email", scheduled_time=datetime.utcnow())],
        ))
        assert updated.status == AppointmentStatus.CONFIRMED
        assert [r.type.value for r in updated.reminders] == ["email"]

        with pytest.raises(ValidationError):
            await service.update_appointment(
                practice.id, created.id, AppointmentUpdate(end_time=created.start_time - timedelta(hours=1))
            )

    @pytest.mark.asyncio
    async def test_upcoming_skips_cancelled(self, service, practice, patients):
        kept = await service.create_appointment(practice.id, booking(patients[0].id, 5))
        cancelled = await service.create_appointment(practice.id, booking(patients[1].id, 3))
        await service.create_appointment(practice.id, booking(patients[1].id, -5))
        await service.cancel_appointment(practice.id, cancelled.id)

        upcoming = await service.upcoming(practice.id)
        assert [a.id for a in upcoming] == [kept.id]

    @pytest.mark.asyncio
    async def test_delete(self, service, practice, patients):
        created = await service.create_appointment(practice.id, booking(patients[0].id, 5))
        await service.delete_appointment(practice.id, created.id)

        with pytest.raises(NotFoundError):
            await service.delete_appointment(practice.id, created.id)


class TestStaffService:
    """Tests for staff profiles"""

    @pytest.fixture
    def service(self, db):
        return StaffService(db)

    @pytest.mark.asyncio
    async def test_crud_and_filters(self, service, practice):
        hygienist = await service.create_staff(practice.id, StaffCreate(
            first_name="Hana", last_name="Ito", role=StaffRole.HYGIENIST, certifications=["CPR"]
        ))
        await service.create_staff(practice.id, StaffCreate(
            first_name="Dev", last_name="Rao", role=StaffRole.DENTIST
        ))

        hygienists = await service.list_staff(practice.id, role=StaffRole.HYGIENIST)
        assert [s.id for s in hygienists] == [hygienist.id]
        assert hygienists[0].certifications == ["CPR"]

        updated = await service.update_staff(
            practice.id, hygienist.id, StaffUpdate(status=StaffStatus.ON_LEAVE)
        )
        assert updated.status == StaffStatus.ON_LEAVE
        assert updated.first_name == "Hana"

        on_leave = await service.list_staff(practice.id, status=StaffStatus.ON_LEAVE)
        assert [s.id for s in on_leave] == [hygienist.id]

        await service.delete_staff(practice.id, hygienist.id)
        with pytest.raises(NotFoundError):
            await service.get_staff(practice.id, hygienist.id)

    @pytest.mark.asyncio
    async def test_expiring_licenses(self, service, practice):
        soon = await service.create_staff(practice.id, StaffCreate(
            first_name="Dev", last_name="Rao", role=StaffRole.DENTIST,
            license_number="D-1", license_expiry=date.today() + timedelta(days=10),
        ))
        await service.create_staff(practice.id, StaffCreate(
            first_name="Mia", last_name="Chen", role=StaffRole.DENTIST,
            license_number="D-2", license_expiry=date.today() + timedelta(days=300),
        ))
        await service.create_staff(practice.id, StaffCreate(
            first_name="Sam", last_name="Lee", role=StaffRole.FRONT_DESK,
        ))

        expiring = await service.expiring_licenses(practice.id, days=30)
        assert [s.id for s in expiring] == [soon.id]


SIKKA_CODES = [
    {
        "procedure_code": "D1110",
        "procedure_code_description": "Prophylaxis - adult",
        "procedure_code_category_id": "1",
        "procedure_code_category": "Preventive",
        "submit_to_insurance": "true",
        "allow_discount": "false",
    },
    {
        "procedure_code": "D0120",
        "procedure_code_description": "Periodic oral evaluation",
        "procedure_code_category_id": "2",
        "procedure_code_category": "Diagnostic",
        "submit_to_insurance": "true",
        "allow_discount": "true",
    },
    {"procedure_code": "", "procedure_code_description": "No code"},
]


class TestProcedureCodeService:
    """Tests for procedure code sync and fee schedules"""

    @pytest.fixture
    def service(self, db):
        return ProcedureCodeService(db)

    def test_sikka_bool(self):
        assert sikka_bool("true") is True
        assert sikka_bool("FALSE") is False
        assert sikka_bool(True) is True
        assert sikka_bool(None) is False

    @pytest.mark.asyncio
    async def test_sync_creates_then_updates(self, service, practice):
        first = await service.sync_procedure_codes(practice.id, SIKKA_CODES)
        assert (first.total, first.created, first.updated, first.skipped) == (3, 2, 0, 1)
        assert first.categories == 2
        assert first.errors == []

        prophy = await service.get_procedure_code(practice.id, "D1110")
        assert prophy.submit_to_insurance is True
        assert prophy.allow_discount is False
        assert prophy.category_id is not None

        second = await service.sync_procedure_codes(practice.id, SIKKA_CODES[:1])
        assert (second.created, second.updated) == (0, 1)
        assert len(await service.list_categories(practice.id)) == 2

    @pytest.mark.asyncio
    async def test_search(self, service, practice):
        await service.sync_procedure_codes(practice.id, SIKKA_CODES)

        found = await service.list_procedure_codes(practice.id, search="prophylaxis")
        assert [c.code for c in found] == ["D1110"]
        assert [c.code for c in await service.list_procedure_codes(practice.id)] == ["D0120", "D1110"]

    @pytest.mark.asyncio
    async def test_fee_updates_close_previous_fee(self, service, practice):
        await service.sync_procedure_codes(practice.id, SIKKA_CODES)

        await service.update_fee(practice.id, "D1110", 95.0, effective_date=datetime.utcnow() - timedelta(days=30))
        await service.update_fee(practice.id, "D1110", 110.0)

        history = await service.fee_history(practice.id, "D1110")
        assert [f.fee_amount for f in history] == [110.0, 95.0]
        assert history[0].end_date is None
        assert history[1].end_date is not None

        assert (await service.get_procedure_code(practice.id, "D1110")).current_fee == 110.0

    @pytest.mark.asyncio
    async def test_unknown_code(self, service, practice):
        with pytest.raises(NotFoundError):
            await service.update_fee(practice.id, "D9999", 10.0)


class TestDashboard:
    """Tests for the practice overview"""

    @pytest.mark.asyncio
    async def test_practice_overview(self, db, practice, patients):
        appointments = AppointmentService(db)
        await appointments.create_appointment(practice.id, booking(patients[0].id, 24))
        await appointments.create_appointment(practice.id, booking(patients[1].id, 24 * 10))

        campaigns = CampaignService(db)
        campaign = await campaigns.create_campaign(practice.id, CampaignCreate(
            name="Recall", type=CampaignType.SMS, content=CampaignContent(template="Hi {first_name}")
        ))
        await campaigns.update_campaign_metrics(
            practice.id, campaign.id, CampaignMetricsUpdate(total=4, sent=4, delivered=2)
        )

        overview = await DashboardService(db).practice_overview(practice.id)
        assert overview.patient_count == 3
        assert overview.upcoming_appointments == 1
        assert overview.appointments_by_status == {"scheduled": 2}
        assert overview.campaigns_by_status == {"active": 1}
        assert overview.campaign_metrics.delivered == 2
        assert overview.calls.total_calls == 0

    def test_overview_route(self, test_client, api_practice):
        response = test_client.get("/api/v1/dashboard/overview", headers=auth_headers(api_practice.id))
        assert response.status_code == 200
        data = response.json()
        assert data["practice_id"] == api_practice.id
        assert data["patient_count"] == 0
