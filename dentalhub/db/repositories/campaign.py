"""
Campaign persistence
"""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from dentalhub.db.repository import BaseRepository
from dentalhub.models.campaign import Campaign, CampaignFilters, CampaignMetrics, CampaignStatus

logger = logging.getLogger(__name__)


class CampaignRepository(BaseRepository):
    json_columns = ("schedule", "audience", "content", "metrics", "settings", "metadata")

    async def create(self, campaign: Campaign) -> Campaign:
        await self._insert("campaigns", {
            "id": campaign.id,
            "practice_id": campaign.practice_id,
            "name": campaign.name,
            "type": campaign.type,
            "status": campaign.status,
            "schedule": campaign.schedule,
            "audience": campaign.audience,
            "content": campaign.content,
            "metrics": campaign.metrics,
            "settings": campaign.settings,
            "metadata": campaign.metadata,
            "created_by": campaign.created_by,
            "created_at": campaign.created_at,
            "updated_at": campaign.updated_at,
        })
        logger.info(f"Created {campaign.type.value} campaign {campaign.id}")
        return campaign

    async def get(self, practice_id: str, campaign_id: str) -> Optional[Campaign]:
        row = await self.adapter.fetch_one(
            "SELECT * FROM campaigns WHERE practice_id = ? AND id = ?", (practice_id, campaign_id)
        )
        return self._row_to_campaign(row) if row else None

    async def get_by_id(self, campaign_id: str) -> Optional[Campaign]:
        """Unscoped lookup for background work and webhooks."""
        row = await self.adapter.fetch_one("SELECT * FROM campaigns WHERE id = ?", (campaign_id,))
        return self._row_to_campaign(row) if row else None

    async def list(self, practice_id: str, filters: CampaignFilters) -> List[Campaign]:
        query = "SELECT * FROM campaigns WHERE practice_id = ?"
        params: List[Any] = [practice_id]

        if filters.type:
            query += " AND type = ?"
            params.append(filters.type.value)
        if filters.status:
            query += " AND status = ?"
            params.append(filters.status.value)
        if filters.start_date:
            query += " AND created_at >= ?"
            params.append(filters.start_date)
        if filters.end_date:
            query += " AND created_at <= ?"
            params.append(filters.end_date)
        if filters.search:
            query += " AND LOWER(name) LIKE ?"
            params.append(self._like(filters.search))

        query += " ORDER BY created_at DESC"
        rows = await self.adapter.fetch_all(query, tuple(params))
        return [self._row_to_campaign(row) for row in rows]

    async def update(self, practice_id: str, campaign_id: str, updates: Dict[str, Any]) -> Optional[Campaign]:
        if updates:
            updates = {**updates, "updated_at": datetime.utcnow()}
            await self._update("campaigns", updates, {"practice_id": practice_id, "id": campaign_id})
        return await self.get(practice_id, campaign_id)

    async def save_metrics(
        self,
        practice_id: str,
        campaign_id: str,
        metrics: CampaignMetrics,
        status: CampaignStatus,
    ) -> Optional[Campaign]:
        return await self.update(practice_id, campaign_id, {"metrics": metrics, "status": status})

    async def delete(self, practice_id: str, campaign_id: str) -> bool:
        deleted = await self.adapter.execute(
            "DELETE FROM campaigns WHERE practice_id = ? AND id = ?", (practice_id, campaign_id)
        )
        return bool(deleted)

    async def count_by_status(self, practice_id: str) -> Dict[str, int]:
        rows = await self.adapter.fetch_all(
            "SELECT status, COUNT(*) AS count FROM campaigns WHERE practice_id = ? GROUP BY status",
            (practice_id,),
        )
        return {row["status"]: int(row["count"] or 0) for row in rows}

    async def list_due(self, now: datetime) -> List[Campaign]:
        """Scheduled campaigns whose start date has passed, across practices."""
        rows = await self.adapter.fetch_all(
            "SELECT * FROM campaigns WHERE status = ? ORDER BY created_at ASC",
            (CampaignStatus.SCHEDULED.value,),
        )
        campaigns = [self._row_to_campaign(row) for row in rows]
        return [c for c in campaigns if c.schedule and c.schedule.start_date <= now]

    def _row_to_campaign(self, row: Dict[str, Any]) -> Campaign:
        data = self._decode_row(row)
        for column in ("audience", "metrics", "settings", "metadata"):
            data[column] = data.get(column) or {}
        return Campaign(**data)
