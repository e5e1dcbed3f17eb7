"""Outbound SMS for campaigns"""

from .twilio_service import TwilioSMSService, get_sms_service

__all__ = ["TwilioSMSService", "get_sms_service"]
