"""
Procedure Code Service
Syncs CDT procedure codes from Sikka and maintains fee schedules
"""

import asyncio
from datetime import datetime
from typing import Optional, List, Dict, Any

from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import NotFoundError
from dentalhub.db import DatabaseAdapter, get_database
from dentalhub.db.repositories import ProcedureRepository
from dentalhub.models.procedure import (
    FeeSchedule,
    ProcedureCategory,
    ProcedureCode,
    ProcedureSyncResult,
)

logger = get_logger(__name__)

SYNC_BATCH_SIZE = 100


def sikka_bool(value: Any) -> bool:
    """Sikka sends booleans as the strings "true" / "false" """
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


class ProcedureCodeService:
    def __init__(self, adapter: Optional[DatabaseAdapter] = None):
        self.repo = ProcedureRepository(adapter or get_database())

    async def sync_procedure_codes(
        self,
        practice_id: str,
        sikka_records: List[Dict[str, Any]]
    ) -> ProcedureSyncResult:
        """
        Upsert Sikka procedure codes in batches

        Each batch resolves its categories first, then writes its codes
        concurrently. A record that fails is reported in `errors` and does
        not stop the sync.
        """
        result = ProcedureSyncResult(
            practice_id=practice_id,
            total=len(sikka_records),
            created=0,
            updated=0,
            skipped=0,
            categories=0,
        )
        categories: Dict[str, ProcedureCategory] = {}

        for start in range(0, len(sikka_records), SYNC_BATCH_SIZE):
            batch = sikka_records[start:start + SYNC_BATCH_SIZE]

            # One write per code within a batch; the last record wins
            by_code: Dict[str, Dict[str, Any]] = {}
            for record in batch:
                code = str(record.get("procedure_code") or "").strip()
                if not code:
                    result.skipped += 1
                    continue
                if code in by_code:
                    result.skipped += 1
                by_code[code] = record

            for record in by_code.values():
                category_key = str(record.get("procedure_code_category_id") or "").strip()
                if category_key and category_key not in categories:
                    categories[category_key] = await self.repo.upsert_category(
                        practice_id,
                        category_key,
                        record.get("procedure_code_category") or category_key,
                    )

            outcomes = await asyncio.gather(
                *(self._sync_code(practice_id, record, categories) for record in by_code.values()),
                return_exceptions=True,
            )
            for code, outcome in zip(by_code.keys(), outcomes):
                if isinstance(outcome, Exception):
                    logger.error(f"Error syncing procedure code {code}: {outcome}")
                    result.errors.append(f"{code}: {outcome}")
                elif outcome:
                    result.created += 1
                else:
                    result.updated += 1

            logger.debug(f"Synced procedure code batch {start // SYNC_BATCH_SIZE + 1} for {practice_id}")

        result.categories = len(categories)
        logger.info(
            f"Procedure code sync for {practice_id}: {result.created} created, "
            f"{result.updated} updated, {len(result.errors)} failed"
        )
        return result

    async def _sync_code(
        self,
        practice_id: str,
        record: Dict[str, Any],
        categories: Dict[str, ProcedureCategory]
    ) -> bool:
        category = categories.get(str(record.get("procedure_code_category_id") or "").strip())
        code = ProcedureCode(
            practice_id=practice_id,
            code=str(record["procedure_code"]).strip(),
            description=record.get("procedure_code_description") or "",
            abbreviation=record.get("abbreaviation") or record.get("abbreviation"),
            category_id=category.id if category else None,
            explosion_code=record.get("explosion_code") or None,
            submit_to_insurance=sikka_bool(record.get("submit_to_insurance")),
            allow_discount=sikka_bool(record.get("allow_discount")),
            procedure_type=record.get("procedure_code_type"),
            is_active=True,
        )
        return await self.repo.upsert_code(code)

    async def list_procedure_codes(
        self,
        practice_id: str,
        search: Optional[str] = None,
        category_id: Optional[str] = None,
        active_only: bool = True
    ) -> List[ProcedureCode]:
        return await self.repo.list(practice_id, search=search, category_id=category_id, active_only=active_only)

    async def list_categories(self, practice_id: str) -> List[ProcedureCategory]:
        return await self.repo.list_categories(practice_id)

    async def get_procedure_code(self, practice_id: str, code: str) -> ProcedureCode:
        procedure = await self.repo.get_by_code(practice_id, code)
        if not procedure:
            raise NotFoundError("procedure code", code)
        return procedure

    async def update_fee(
        self,
        practice_id: str,
        code: str,
        fee_amount: float,
        effective_date: Optional[datetime] = None
    ) -> FeeSchedule:
        """Close the open fee schedule row and open a new one"""
        procedure = await self.get_procedure_code(practice_id, code)
        now = datetime.utcnow()

        await self.repo.close_open_fee(procedure.id, now)
        fee = await self.repo.add_fee(procedure.id, fee_amount, effective_date or now)

        logger.info(f"Updated fee for {code} ({practice_id}) to {fee_amount}")
        return fee

    async def fee_history(self, practice_id: str, code: str) -> List[FeeSchedule]:
        procedure = await self.get_procedure_code(practice_id, code)
        return await self.repo.fee_history(procedure.id)


def get_procedure_service() -> ProcedureCodeService:
    return ProcedureCodeService()
