"""
Call, transcript and webhook event persistence
"""

import logging
import uuid
from datetime import datetime
from typing import Optional, List, Dict, Any

from dentalhub.db.repository import BaseRepository
from dentalhub.models.call import CallRecord, TranscriptSegment

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ("queued", "initiated", "in_progress")


class CallRepository(BaseRepository):
    json_columns = ("analysis", "metadata")

    # ==================== Call Records ====================

    async def create(self, call: CallRecord) -> CallRecord:
        await self._insert("calls", call.model_dump())
        logger.info(f"Created call record: {call.id}")
        return call

    async def get(self, practice_id: str, call_id: str) -> Optional[CallRecord]:
        row = await self.adapter.fetch_one(
            "SELECT * FROM calls WHERE practice_id = ? AND id = ?", (practice_id, call_id)
        )
        return self._row_to_call(row) if row else None

    async def get_by_retell_id(self, retell_call_id: str) -> Optional[CallRecord]:
        row = await self.adapter.fetch_one(
            "SELECT * FROM calls WHERE retell_call_id = ?", (retell_call_id,)
        )
        return self._row_to_call(row) if row else None

    async def list(
        self,
        practice_id: str,
        status: Optional[str] = None,
        patient_id: Optional[str] = None,
        campaign_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[CallRecord]:
        query = "SELECT * FROM calls WHERE practice_id = ?"
        params: List[Any] = [practice_id]

        if status:
            query += " AND status = ?"
            params.append(status)
        if patient_id:
            query += " AND patient_id = ?"
            params.append(patient_id)
        if campaign_id:
            query += " AND campaign_id = ?"
            params.append(campaign_id)

        query += " ORDER BY created_at DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        rows = await self.adapter.fetch_all(query, tuple(params))
        return [self._row_to_call(row) for row in rows]

    async def update(self, call_id: str, updates: Dict[str, Any]) -> None:
        await self._update("calls", updates, {"id": call_id})

    async def get_statistics(self, practice_id: str) -> Dict[str, Any]:
        """Get aggregated call statistics."""
        row = await self.adapter.fetch_one(
            f"""
            SELECT
                COUNT(*) as total_calls,
                SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END) as completed_calls,
                SUM(CASE WHEN status = 'failed' THEN 1 ELSE 0 END) as failed_calls,
                SUM(CASE WHEN status IN {ACTIVE_STATUSES} THEN 1 ELSE 0 END) as active_calls,
                SUM(COALESCE(duration_seconds, 0)) as total_duration,
                AVG(CASE WHEN status = 'completed' AND duration_seconds > 0 THEN duration_seconds END) as avg_duration
            FROM calls
            WHERE practice_id = ?
            """,
            (practice_id,),
        )

        total = int((row or {}).get("total_calls") or 0)
        completed = int((row or {}).get("completed_calls") or 0)

        return {
            "total_calls": total,
            "completed_calls": completed,
            "failed_calls": int((row or {}).get("failed_calls") or 0),
            "active_calls": int((row or {}).get("active_calls") or 0),
            "total_duration_seconds": int((row or {}).get("total_duration") or 0),
            "average_duration_seconds": round(float((row or {}).get("avg_duration") or 0), 1),
            "success_rate": round((completed / total * 100) if total > 0 else 0, 1),
        }

    # ==================== Transcripts ====================

    async def add_transcript_segment(self, segment: TranscriptSegment) -> TranscriptSegment:
        await self._insert("call_transcripts", {
            "call_id": segment.call_id,
            "speaker": segment.speaker,
            "text": segment.text,
            "timestamp": segment.timestamp,
            "confidence": segment.confidence,
        })
        logger.debug(f"Added transcript segment for call: {segment.call_id}")
        return segment

    async def get_transcript(self, call_id: str) -> List[TranscriptSegment]:
        rows = await self.adapter.fetch_all(
            "SELECT * FROM call_transcripts WHERE call_id = ? ORDER BY timestamp ASC, id ASC",
            (call_id,),
        )
        return [TranscriptSegment(**row) for row in rows]

    def _row_to_call(self, row: Dict[str, Any]) -> CallRecord:
        data = self._decode_row(row)
        data["analysis"] = data.get("analysis") or {}
        data["metadata"] = data.get("metadata") or {}
        return CallRecord(**data)


class EventRepository(BaseRepository):
    """Stores Sikka insurance events and OpenAI events received by webhook"""

    json_columns = ("payload",)

    async def add_insurance_event(
        self,
        practice_id: str,
        event_type: str,
        payload: Dict[str, Any],
        request_id: Optional[str] = None,
        patient_id: Optional[str] = None,
        reference_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> str:
        event_id = str(uuid.uuid4())
        await self._insert("insurance_events", {
            "id": event_id,
            "practice_id": practice_id,
            "event_type": event_type,
            "request_id": request_id,
            "patient_id": patient_id,
            "reference_id": reference_id,
            "status": status,
            "payload": payload,
            "received_at": datetime.utcnow(),
        })
        return event_id

    async def list_insurance_events(
        self,
        practice_id: str,
        patient_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        query = "SELECT * FROM insurance_events WHERE practice_id = ?"
        params: List[Any] = [practice_id]
        if patient_id:
            query += " AND patient_id = ?"
            params.append(patient_id)
        query += " ORDER BY received_at DESC LIMIT ?"
        params.append(limit)
        rows = await self.adapter.fetch_all(query, tuple(params))
        return [self._decode_row(row) for row in rows]

    async def add_ai_event(
        self,
        event_type: str,
        payload: Dict[str, Any],
        request_id: Optional[str] = None,
        organization_id: Optional[str] = None,
    ) -> str:
        event_id = str(uuid.uuid4())
        await self._insert("ai_events", {
            "id": event_id,
            "event_type": event_type,
            "request_id": request_id,
            "organization_id": organization_id,
            "payload": payload,
            "received_at": datetime.utcnow(),
        })
        return event_id
