"""
Practice and API key persistence
"""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from dentalhub.db.repository import BaseRepository
from dentalhub.models.practice import Practice, PracticeAPIKey

logger = logging.getLogger(__name__)


class PracticeRepository(BaseRepository):
    json_columns = ("settings", "permissions")
    bool_columns = ("is_active",)

    # ==================== Practices ====================

    async def create(self, practice: Practice) -> Practice:
        await self._insert("practices", {
            "id": practice.id,
            "name": practice.name,
            "timezone": practice.timezone,
            "phone": practice.phone,
            "email": practice.email,
            "sikka_practice_id": practice.sikka_practice_id,
            "is_active": practice.is_active,
            "settings": practice.settings,
            "created_at": practice.created_at,
            "updated_at": practice.updated_at,
        })
        logger.info(f"Created practice: {practice.id}")
        return practice

    async def get(self, practice_id: str) -> Optional[Practice]:
        row = await self.adapter.fetch_one("SELECT * FROM practices WHERE id = ?", (practice_id,))
        return self._row_to_practice(row) if row else None

    async def get_by_sikka_id(self, sikka_practice_id: str) -> Optional[Practice]:
        row = await self.adapter.fetch_one(
            "SELECT * FROM practices WHERE sikka_practice_id = ?", (sikka_practice_id,)
        )
        return self._row_to_practice(row) if row else None

    async def list(self, active_only: bool = False) -> List[Practice]:
        query = "SELECT * FROM practices"
        params: tuple = ()
        if active_only:
            query += " WHERE is_active = ?"
            params = (True,)
        query += " ORDER BY name ASC"
        rows = await self.adapter.fetch_all(query, params)
        return [self._row_to_practice(row) for row in rows]

    async def update(self, practice_id: str, updates: Dict[str, Any]) -> Optional[Practice]:
        if updates:
            updates = {**updates, "updated_at": datetime.utcnow()}
            await self._update("practices", updates, {"id": practice_id})
        return await self.get(practice_id)

    async def delete(self, practice_id: str) -> bool:
        await self.adapter.execute("DELETE FROM api_keys WHERE practice_id = ?", (practice_id,))
        deleted = await self.adapter.execute("DELETE FROM practices WHERE id = ?", (practice_id,))
        return bool(deleted)

    # ==================== API Keys ====================

    async def create_api_key(self, key: PracticeAPIKey) -> PracticeAPIKey:
        await self._insert("api_keys", {
            "api_key": key.api_key,
            "practice_id": key.practice_id,
            "name": key.name,
            "permissions": key.permissions,
            "is_active": key.is_active,
            "created_at": key.created_at,
            "expires_at": key.expires_at,
            "last_used_at": key.last_used_at,
        })
        return key

    async def get_api_key(self, api_key: str) -> Optional[PracticeAPIKey]:
        row = await self.adapter.fetch_one("SELECT * FROM api_keys WHERE api_key = ?", (api_key,))
        return PracticeAPIKey(**self._decode_row(row)) if row else None

    async def list_api_keys(self, practice_id: str) -> List[PracticeAPIKey]:
        rows = await self.adapter.fetch_all(
            "SELECT * FROM api_keys WHERE practice_id = ? ORDER BY created_at DESC", (practice_id,)
        )
        return [PracticeAPIKey(**self._decode_row(row)) for row in rows]

    async def deactivate_api_key(self, api_key: str) -> bool:
        return bool(await self._update("api_keys", {"is_active": False}, {"api_key": api_key}))

    async def touch_api_key(self, api_key: str) -> None:
        await self._update("api_keys", {"last_used_at": datetime.utcnow()}, {"api_key": api_key})

    def _row_to_practice(self, row: Dict[str, Any]) -> Practice:
        data = self._decode_row(row)
        data["settings"] = data.get("settings") or {}
        return Practice(**data)
