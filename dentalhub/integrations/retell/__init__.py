"""Retell voice-call integration"""

from .client import RetellClient, get_retell_client

__all__ = ["RetellClient", "get_retell_client"]
