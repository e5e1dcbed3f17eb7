"""
Patient persistence
"""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from dentalhub.db.repository import BaseRepository
from dentalhub.models.patient import Patient, PatientSearch, PatientRelationship

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 100

# Columns an audience filter may target
FILTERABLE_COLUMNS = {"status", "first_name", "last_name", "email", "phone", "date_of_birth", "sikka_patient_id"}


class PatientRepository(BaseRepository):
    json_columns = ("address", "medical_history")

    async def create(self, patient: Patient) -> Patient:
        await self._insert("patients", {
            "id": patient.id,
            "practice_id": patient.practice_id,
            "first_name": patient.first_name,
            "last_name": patient.last_name,
            "email": patient.email,
            "phone": patient.phone,
            "date_of_birth": patient.date_of_birth,
            "address": patient.address,
            "medical_history": patient.medical_history,
            "sikka_patient_id": patient.sikka_patient_id,
            "status": patient.status,
            "created_at": patient.created_at,
            "updated_at": patient.updated_at,
        })
        logger.info(f"Created patient {patient.id} for practice {patient.practice_id}")
        return patient

    async def get(self, practice_id: str, patient_id: str) -> Optional[Patient]:
        row = await self.adapter.fetch_one(
            "SELECT * FROM patients WHERE practice_id = ? AND id = ?", (practice_id, patient_id)
        )
        return self._row_to_patient(row) if row else None

    async def get_by_sikka_id(self, practice_id: str, sikka_patient_id: str) -> Optional[Patient]:
        row = await self.adapter.fetch_one(
            "SELECT * FROM patients WHERE practice_id = ? AND sikka_patient_id = ?",
            (practice_id, sikka_patient_id),
        )
        return self._row_to_patient(row) if row else None

    async def list(
        self,
        practice_id: str,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Patient]:
        query = "SELECT * FROM patients WHERE practice_id = ?"
        params: List[Any] = [practice_id]
        if status:
            query += " AND status = ?"
            params.append(status)
        query += " ORDER BY last_name ASC, first_name ASC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        rows = await self.adapter.fetch_all(query, tuple(params))
        return [self._row_to_patient(row) for row in rows]

    async def count(self, practice_id: str) -> int:
        row = await self.adapter.fetch_one(
            "SELECT COUNT(*) AS total FROM patients WHERE practice_id = ?", (practice_id,)
        )
        return int(row["total"] or 0) if row else 0

    async def search(self, practice_id: str, criteria: PatientSearch) -> List[Patient]:
        """Substring match on names, phone and email; exact match on date of birth."""
        query = "SELECT * FROM patients WHERE practice_id = ?"
        params: List[Any] = [practice_id]

        for column in ("first_name", "last_name", "phone", "email"):
            value = getattr(criteria, column)
            if value:
                query += f" AND LOWER({column}) LIKE ?"
                params.append(self._like(value))

        if criteria.date_of_birth:
            query += " AND date_of_birth = ?"
            params.append(criteria.date_of_birth)

        query += f" ORDER BY last_name ASC, first_name ASC LIMIT {SEARCH_LIMIT}"
        rows = await self.adapter.fetch_all(query, tuple(params))
        return [self._row_to_patient(row) for row in rows]

    async def find_by_filters(
        self,
        practice_id: str,
        filters: Dict[str, Any],
        exclude_filters: Optional[Dict[str, Any]] = None,
    ) -> List[Patient]:
        """Resolve a campaign audience; unknown filter keys are ignored."""
        query = "SELECT * FROM patients WHERE practice_id = ?"
        params: List[Any] = [practice_id]

        for key, value in (filters or {}).items():
            if key not in FILTERABLE_COLUMNS:
                logger.warning(f"Ignoring unsupported audience filter: {key}")
                continue
            if isinstance(value, list):
                if not value:
                    continue
                query += f" AND {key} IN ({self._in_clause(value)})"
                params.extend(value)
            else:
                query += f" AND {key} = ?"
                params.append(value)

        for key, value in (exclude_filters or {}).items():
            if key not in FILTERABLE_COLUMNS:
                logger.warning(f"Ignoring unsupported audience exclusion: {key}")
                continue
            values = value if isinstance(value, list) else [value]
            if not values:
                continue
            query += f" AND ({key} IS NULL OR {key} NOT IN ({self._in_clause(values)}))"
            params.extend(values)

        query += " ORDER BY created_at ASC"
        rows = await self.adapter.fetch_all(query, tuple(params))
        return [self._row_to_patient(row) for row in rows]

    async def get_many(self, practice_id: str, patient_ids: List[str]) -> List[Patient]:
        if not patient_ids:
            return []
        rows = await self.adapter.fetch_all(
            f"SELECT * FROM patients WHERE practice_id = ? AND id IN ({self._in_clause(patient_ids)})",
            (practice_id, *patient_ids),
        )
        return [self._row_to_patient(row) for row in rows]

    async def update(self, practice_id: str, patient_id: str, updates: Dict[str, Any]) -> Optional[Patient]:
        if updates:
            updates = {**updates, "updated_at": datetime.utcnow()}
            await self._update("patients", updates, {"practice_id": practice_id, "id": patient_id})
        return await self.get(practice_id, patient_id)

    async def delete(self, practice_id: str, patient_id: str) -> bool:
        await self.adapter.execute(
            "DELETE FROM patient_relationships WHERE patient_id = ? OR related_patient_id = ?",
            (patient_id, patient_id),
        )
        deleted = await self.adapter.execute(
            "DELETE FROM patients WHERE practice_id = ? AND id = ?", (practice_id, patient_id)
        )
        return bool(deleted)

    # ==================== Relationships ====================

    async def add_relationship(self, relationship: PatientRelationship) -> PatientRelationship:
        await self._insert("patient_relationships", {
            "id": relationship.id,
            "practice_id": relationship.practice_id,
            "patient_id": relationship.patient_id,
            "related_patient_id": relationship.related_patient_id,
            "relationship_type": relationship.relationship_type,
            "created_at": relationship.created_at,
        })
        return relationship

    async def get_relationship(self, patient_id: str, related_patient_id: str) -> Optional[PatientRelationship]:
        row = await self.adapter.fetch_one(
            "SELECT * FROM patient_relationships WHERE patient_id = ? AND related_patient_id = ?",
            (patient_id, related_patient_id),
        )
        return PatientRelationship(**row) if row else None

    async def list_relationships(self, practice_id: str, patient_id: str) -> List[PatientRelationship]:
        rows = await self.adapter.fetch_all(
            "SELECT * FROM patient_relationships WHERE practice_id = ? AND patient_id = ? ORDER BY created_at ASC",
            (practice_id, patient_id),
        )
        return [PatientRelationship(**row) for row in rows]

    def _row_to_patient(self, row: Dict[str, Any]) -> Patient:
        data = self._decode_row(row)
        data["medical_history"] = data.get("medical_history") or {}
        return Patient(**data)
