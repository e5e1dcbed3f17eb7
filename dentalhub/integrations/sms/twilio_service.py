"""
Twilio SMS Service
Sends campaign text messages through the Twilio REST API
"""

import asyncio
from typing import Optional, Dict, Any

from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException

from dentalhub.core.config import settings
from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import ServiceNotConfiguredError
from dentalhub.utils.retry import RetryError, retry_async

logger = get_logger(__name__)


class TwilioSMSService:
    """Service for sending SMS with Twilio"""

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        phone_number: Optional[str] = None
    ):
        self.account_sid = account_sid or settings.twilio_account_sid
        self.auth_token = auth_token or settings.twilio_auth_token
        self.phone_number = phone_number or settings.twilio_phone_number
        self._client: Optional[Client] = None

    @property
    def client(self) -> Client:
        if self._client is None:
            if not self.account_sid or not self.auth_token or not self.phone_number:
                raise ServiceNotConfiguredError(
                    "Twilio", "TWILIO_ACCOUNT_SID/TWILIO_AUTH_TOKEN/TWILIO_PHONE_NUMBER"
                )
            self._client = Client(self.account_sid, self.auth_token)
        return self._client

    @retry_async(max_retries=3, delay=1.0, exceptions=(OSError,))
    async def _create_message(self, to_number: str, message: str):
        # twilio's REST client is blocking
        return await asyncio.to_thread(
            self.client.messages.create,
            body=message,
            from_=self.phone_number,
            to=to_number
        )

    async def send_sms(
        self,
        to_number: str,
        message: str
    ) -> Dict[str, Any]:
        """
        Send an SMS message

        Connection failures are retried; rejected messages are not.

        Args:
            to_number: Recipient phone number
            message: Message text

        Returns:
            Result of the operation
        """
        try:
            sms = await self._create_message(to_number, message)
            return {
                "success": True,
                "message_sid": sms.sid,
                "status": sms.status
            }
        except TwilioRestException as e:
            logger.error(f"Failed to send SMS: {e.msg}")
            return {
                "success": False,
                "error": e.msg
            }
        except RetryError as e:
            logger.error(f"Failed to reach Twilio: {e.last_exception}")
            return {
                "success": False,
                "error": str(e.last_exception)
            }


# Singleton instance
_sms_service: Optional[TwilioSMSService] = None


def get_sms_service() -> TwilioSMSService:
    global _sms_service
    if _sms_service is None:
        _sms_service = TwilioSMSService()
    return _sms_service
