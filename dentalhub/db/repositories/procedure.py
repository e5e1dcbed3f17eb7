"""
Procedure code, category and fee schedule persistence
"""

import logging
import uuid
from datetime import datetime
from typing import Optional, List, Dict, Any

from dentalhub.db.repository import BaseRepository
from dentalhub.models.procedure import ProcedureCode, ProcedureCategory, FeeSchedule

logger = logging.getLogger(__name__)

CODE_SELECT = """
    SELECT pc.*, (
        SELECT fs.fee_amount FROM fee_schedules fs
        WHERE fs.procedure_code_id = pc.id AND fs.end_date IS NULL
        ORDER BY fs.effective_date DESC LIMIT 1
    ) AS current_fee
    FROM procedure_codes pc
"""


class ProcedureRepository(BaseRepository):
    bool_columns = ("submit_to_insurance", "allow_discount", "is_active")

    # ==================== Categories ====================

    async def upsert_category(self, practice_id: str, sikka_category_id: str, name: str) -> ProcedureCategory:
        row = await self.adapter.fetch_one(
            "SELECT * FROM procedure_categories WHERE practice_id = ? AND sikka_category_id = ?",
            (practice_id, sikka_category_id),
        )
        if row:
            if row["name"] != name:
                await self._update("procedure_categories", {"name": name}, {"id": row["id"]})
            return ProcedureCategory(**{**row, "name": name})

        category = ProcedureCategory(practice_id=practice_id, sikka_category_id=sikka_category_id, name=name)
        await self._insert("procedure_categories", category.model_dump())
        return category

    async def list_categories(self, practice_id: str) -> List[ProcedureCategory]:
        rows = await self.adapter.fetch_all(
            "SELECT * FROM procedure_categories WHERE practice_id = ? ORDER BY name ASC", (practice_id,)
        )
        return [ProcedureCategory(**row) for row in rows]

    # ==================== Codes ====================

    async def get_by_code(self, practice_id: str, code: str) -> Optional[ProcedureCode]:
        row = await self.adapter.fetch_one(
            CODE_SELECT + " WHERE pc.practice_id = ? AND pc.code = ?", (practice_id, code)
        )
        return self._row_to_code(row) if row else None

    async def upsert_code(self, code: ProcedureCode) -> bool:
        """Insert or update by (practice_id, code). Returns True when created."""
        existing = await self.adapter.fetch_one(
            "SELECT id FROM procedure_codes WHERE practice_id = ? AND code = ?",
            (code.practice_id, code.code),
        )
        fields = {
            "description": code.description,
            "abbreviation": code.abbreviation,
            "category_id": code.category_id,
            "explosion_code": code.explosion_code,
            "submit_to_insurance": code.submit_to_insurance,
            "allow_discount": code.allow_discount,
            "procedure_type": code.procedure_type,
            "is_active": code.is_active,
        }
        if existing:
            await self._update(
                "procedure_codes",
                {**fields, "updated_at": datetime.utcnow()},
                {"id": existing["id"]},
            )
            return False

        await self._insert("procedure_codes", {
            "id": code.id,
            "practice_id": code.practice_id,
            "code": code.code,
            **fields,
            "created_at": code.created_at,
            "updated_at": code.updated_at,
        })
        return True

    async def list(
        self,
        practice_id: str,
        search: Optional[str] = None,
        category_id: Optional[str] = None,
        active_only: bool = True,
        limit: int = 500,
    ) -> List[ProcedureCode]:
        query = CODE_SELECT + " WHERE pc.practice_id = ?"
        params: List[Any] = [practice_id]
        if search:
            query += " AND (LOWER(pc.code) LIKE ? OR LOWER(pc.description) LIKE ?)"
            params.extend([self._like(search), self._like(search)])
        if category_id:
            query += " AND pc.category_id = ?"
            params.append(category_id)
        if active_only:
            query += " AND pc.is_active = ?"
            params.append(True)
        query += " ORDER BY pc.code ASC LIMIT ?"
        params.append(limit)
        rows = await self.adapter.fetch_all(query, tuple(params))
        return [self._row_to_code(row) for row in rows]

    # ==================== Fees ====================

    async def close_open_fee(self, procedure_code_id: str, end_date: datetime) -> int:
        return await self.adapter.execute(
            "UPDATE fee_schedules SET end_date = ? WHERE procedure_code_id = ? AND end_date IS NULL",
            (end_date, procedure_code_id),
        ) or 0

    async def add_fee(self, procedure_code_id: str, fee_amount: float, effective_date: datetime) -> FeeSchedule:
        fee = FeeSchedule(
            id=str(uuid.uuid4()),
            procedure_code_id=procedure_code_id,
            fee_amount=fee_amount,
            effective_date=effective_date,
        )
        await self._insert("fee_schedules", fee.model_dump())
        return fee

    async def fee_history(self, procedure_code_id: str) -> List[FeeSchedule]:
        rows = await self.adapter.fetch_all(
            "SELECT * FROM fee_schedules WHERE procedure_code_id = ? ORDER BY effective_date DESC",
            (procedure_code_id,),
        )
        return [FeeSchedule(**row) for row in rows]

    def _row_to_code(self, row: Dict[str, Any]) -> ProcedureCode:
        data = self._decode_row(row)
        if data.get("current_fee") is not None:
            data["current_fee"] = float(data["current_fee"])
        return ProcedureCode(**data)
