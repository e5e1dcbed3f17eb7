"""
Call Service
Places patient calls through Retell and keeps the local call records in sync
"""

from datetime import datetime
from typing import Optional, Dict, Any, List

from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import (
    DentalHubException,
    InvalidPhoneNumberError,
    NotFoundError,
    ValidationError,
)
from dentalhub.db import DatabaseAdapter, get_database
from dentalhub.db.repositories import CallRepository, PatientRepository
from dentalhub.integrations.retell import RetellClient, get_retell_client
from dentalhub.services.rate_limiter import check_call_rate_limit
from dentalhub.models.call import (
    CallPriority,
    CallRecord,
    CallRequest,
    CallStatus,
    TERMINAL_CALL_STATUSES,
    TranscriptSegment,
    is_e164,
)

logger = get_logger(__name__)


class CallService:
    """
    Manages the lifecycle of patient calls

    A local record is written before Retell is contacted so failed
    attempts are still visible; webhooks move the record forward.
    """

    def __init__(self, adapter: Optional[DatabaseAdapter] = None, retell: Optional[RetellClient] = None):
        adapter = adapter or get_database()
        self.repo = CallRepository(adapter)
        self.patients = PatientRepository(adapter)
        self._retell = retell

    @property
    def retell(self) -> RetellClient:
        return self._retell or get_retell_client()

    async def place_call(
        self,
        practice_id: str,
        request: CallRequest,
        campaign_id: Optional[str] = None
    ) -> CallRecord:
        """
        Place an outbound call to a patient

        Args:
            practice_id: Practice placing the call
            request: Call parameters; the patient's phone is used when no number is given
            campaign_id: Campaign the call belongs to, if any

        Returns:
            The stored call record
        """
        patient = await self.patients.get(practice_id, request.patient_id)
        if not patient:
            raise NotFoundError("patient", request.patient_id)

        phone_number = request.phone_number or patient.phone
        if not phone_number or not is_e164(phone_number):
            raise InvalidPhoneNumberError(phone_number or "")

        check_call_rate_limit(practice_id)

        record = CallRecord(
            practice_id=practice_id,
            patient_id=patient.id,
            campaign_id=campaign_id,
            phone_number=phone_number,
            purpose=request.purpose,
            priority=request.priority,
            metadata=request.metadata,
        )
        await self.repo.create(record)

        try:
            result = await self.retell.initiate_call(
                patient_id=patient.id,
                phone_number=phone_number,
                purpose=request.purpose,
                custom_script=request.custom_script,
                language=request.language,
                priority=request.priority,
                config=request.config,
                metadata={
                    **request.metadata,
                    "call_id": record.id,
                    "practice_id": practice_id,
                    "campaign_id": campaign_id,
                },
            )
        except DentalHubException as e:
            logger.error(f"Failed to initiate call {record.id}: {e.message}")
            await self.repo.update(record.id, {
                "status": CallStatus.FAILED.value,
                "error_message": e.message,
                "ended_at": datetime.utcnow(),
            })
            raise

        updates = {
            "retell_call_id": result.get("call_id") or result.get("id"),
            "status": CallStatus.INITIATED.value,
        }
        await self.repo.update(record.id, updates)
        logger.info(f"Call {record.id} initiated (retell id {updates['retell_call_id']})")
        return record.model_copy(update={**updates, "status": CallStatus.INITIATED})

    async def list_calls(
        self,
        practice_id: str,
        status: Optional[str] = None,
        patient_id: Optional[str] = None,
        campaign_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[CallRecord]:
        return await self.repo.list(practice_id, status, patient_id, campaign_id, limit, offset)

    async def get_call(self, practice_id: str, call_id: str) -> CallRecord:
        call = await self.repo.get(practice_id, call_id)
        if not call:
            raise NotFoundError("call", call_id)
        return call

    def _require_retell_id(self, call: CallRecord) -> str:
        if not call.retell_call_id:
            raise ValidationError(f"Call {call.id} was never placed with Retell", field="call_id")
        return call.retell_call_id

    async def cancel_call(self, practice_id: str, call_id: str) -> CallRecord:
        call = await self.get_call(practice_id, call_id)
        if call.status in TERMINAL_CALL_STATUSES:
            raise ValidationError(f"Call {call_id} is already {call.status.value}", field="status")

        await self.retell.cancel_call(self._require_retell_id(call))

        updates = {"status": CallStatus.CANCELLED.value, "ended_at": datetime.utcnow()}
        await self.repo.update(call_id, updates)
        logger.info(f"Cancelled call {call_id}")
        return call.model_copy(update={**updates, "status": CallStatus.CANCELLED})

    async def update_priority(self, practice_id: str, call_id: str, priority: CallPriority) -> CallRecord:
        call = await self.get_call(practice_id, call_id)
        await self.retell.update_call_priority(self._require_retell_id(call), priority)
        await self.repo.update(call_id, {"priority": CallPriority(priority).value})
        return call.model_copy(update={"priority": CallPriority(priority)})

    async def get_recording_url(self, practice_id: str, call_id: str) -> Optional[str]:
        call = await self.get_call(practice_id, call_id)
        if call.recording_url:
            return call.recording_url

        url = await self.retell.get_recording_url(self._require_retell_id(call))
        if url:
            await self.repo.update(call_id, {"recording_url": url})
        return url

    async def get_transcript(self, practice_id: str, call_id: str) -> List[TranscriptSegment]:
        """Stored transcript segments, falling back to Retell when none were received"""
        call = await self.get_call(practice_id, call_id)
        segments = await self.repo.get_transcript(call_id)
        if segments or not call.retell_call_id:
            return segments

        data = await self.retell.get_transcription(call.retell_call_id)
        return [
            TranscriptSegment(
                call_id=call_id,
                speaker=item.get("speaker", "unknown"),
                text=item.get("text", ""),
                confidence=item.get("confidence"),
            )
            for item in (data or {}).get("segments", [])
        ]

    async def get_analysis(self, practice_id: str, call_id: str) -> Dict[str, Any]:
        call = await self.get_call(practice_id, call_id)
        if call.analysis:
            return call.analysis

        analysis = await self.retell.get_analysis(self._require_retell_id(call))
        if analysis:
            await self.repo.update(call_id, {"analysis": analysis})
        return analysis or {}

    async def get_statistics(self, practice_id: str) -> Dict[str, Any]:
        return await self.repo.get_statistics(practice_id)


def get_call_service() -> CallService:
    return CallService()
