"""
Patient Service
Patient records, search, family links and Sikka import
"""

from datetime import date
from typing import Optional, List, Dict, Any

from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import ConflictError, NotFoundError, ValidationError
from dentalhub.db import DatabaseAdapter, get_database
from dentalhub.db.repositories import PatientRepository
from dentalhub.models.patient import (
    FamilyMember,
    FamilyMemberCreate,
    Patient,
    PatientCreate,
    PatientRelationship,
    PatientSearch,
    PatientStatus,
    PatientUpdate,
    normalize_phone,
    validate_email,
)

logger = get_logger(__name__)


class PatientService:
    """Service for practice patients"""

    def __init__(self, adapter: Optional[DatabaseAdapter] = None):
        self.repo = PatientRepository(adapter or get_database())

    async def create_patient(self, practice_id: str, data: PatientCreate) -> Patient:
        patient = Patient(practice_id=practice_id, **data.model_dump())
        return await self.repo.create(patient)

    async def get_patient(self, practice_id: str, patient_id: str) -> Patient:
        patient = await self.repo.get(practice_id, patient_id)
        if not patient:
            raise NotFoundError("patient", patient_id)
        return patient

    async def list_patients(
        self,
        practice_id: str,
        status: Optional[PatientStatus] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[Patient]:
        return await self.repo.list(
            practice_id,
            status=status.value if status else None,
            limit=limit,
            offset=offset
        )

    async def count_patients(self, practice_id: str) -> int:
        return await self.repo.count(practice_id)

    async def search_patients(self, practice_id: str, criteria: PatientSearch) -> List[Patient]:
        return await self.repo.search(practice_id, criteria)

    async def update_patient(self, practice_id: str, patient_id: str, data: PatientUpdate) -> Patient:
        await self.get_patient(practice_id, patient_id)
        patient = await self.repo.update(practice_id, patient_id, data.model_dump(exclude_unset=True))
        logger.info(f"Updated patient {patient_id}")
        return patient

    async def delete_patient(self, practice_id: str, patient_id: str) -> None:
        if not await self.repo.delete(practice_id, patient_id):
            raise NotFoundError("patient", patient_id)
        logger.info(f"Deleted patient {patient_id}")

    # ==================== Family ====================

    async def get_family_members(self, practice_id: str, patient_id: str) -> List[FamilyMember]:
        await self.get_patient(practice_id, patient_id)
        relationships = await self.repo.list_relationships(practice_id, patient_id)
        related = await self.repo.get_many(practice_id, [r.related_patient_id for r in relationships])
        by_id = {p.id: p for p in related}
        return [
            FamilyMember(relationship=r, patient=by_id[r.related_patient_id])
            for r in relationships
            if r.related_patient_id in by_id
        ]

    async def add_family_member(
        self,
        practice_id: str,
        patient_id: str,
        data: FamilyMemberCreate
    ) -> FamilyMember:
        if patient_id == data.related_patient_id:
            raise ValidationError("A patient cannot be related to themselves", field="related_patient_id")

        await self.get_patient(practice_id, patient_id)
        related = await self.get_patient(practice_id, data.related_patient_id)

        if await self.repo.get_relationship(patient_id, data.related_patient_id):
            raise ConflictError(
                "Relationship already exists",
                details={"patient_id": patient_id, "related_patient_id": data.related_patient_id}
            )

        relationship = PatientRelationship(
            practice_id=practice_id,
            patient_id=patient_id,
            related_patient_id=data.related_patient_id,
            relationship_type=data.relationship_type,
        )
        await self.repo.add_relationship(relationship)
        logger.info(f"Linked patient {patient_id} -> {data.related_patient_id} ({data.relationship_type.value})")
        return FamilyMember(relationship=relationship, patient=related)

    # ==================== Sikka import ====================

    async def import_from_sikka(self, practice_id: str, records: List[Dict[str, Any]]) -> Dict[str, int]:
        """
        Upsert patients from Sikka records keyed by patient_id

        Records without an id or a name are skipped; invalid contact
        fields are dropped rather than failing the record.
        """
        created = updated = skipped = 0

        for record in records:
            sikka_id = str(record.get("patient_id") or record.get("patientId") or "").strip()
            first_name = (record.get("firstname") or record.get("first_name") or "").strip()
            last_name = (record.get("lastname") or record.get("last_name") or "").strip()
            if not sikka_id or not first_name or not last_name:
                skipped += 1
                continue

            fields = {
                "first_name": first_name,
                "last_name": last_name,
                "email": _safe(validate_email, record.get("email")),
                "phone": _safe(normalize_phone, record.get("cell") or record.get("phone")),
            }
            birthdate = _safe(_parse_date, record.get("birthdate") or record.get("date_of_birth"))
            if birthdate:
                fields["date_of_birth"] = birthdate

            existing = await self.repo.get_by_sikka_id(practice_id, sikka_id)
            if existing:
                await self.repo.update(practice_id, existing.id, fields)
                updated += 1
            else:
                try:
                    patient = Patient(practice_id=practice_id, sikka_patient_id=sikka_id, **fields)
                except ValueError as e:
                    logger.warning(f"Skipping Sikka patient {sikka_id}: {e}")
                    skipped += 1
                    continue
                await self.repo.create(patient)
                created += 1

        logger.info(
            f"Sikka patient import for {practice_id}: {created} created, {updated} updated, {skipped} skipped"
        )
        return {"total": len(records), "created": created, "updated": updated, "skipped": skipped}


def _parse_date(value) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(str(value)[:10])


def _safe(validator, value):
    try:
        return validator(value)
    except ValueError:
        return None


def get_patient_service() -> PatientService:
    return PatientService()
