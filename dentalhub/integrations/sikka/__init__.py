"""Sikka practice-management integration"""

from .client import SikkaClient, get_sikka_client, close_sikka_client
from .token_service import SikkaTokenService, SikkaToken, parse_expires_in
from .utils import generate_cache_key, prepare_request_params, validate_request_params

__all__ = [
    "SikkaClient",
    "get_sikka_client",
    "close_sikka_client",
    "SikkaTokenService",
    "SikkaToken",
    "parse_expires_in",
    "generate_cache_key",
    "prepare_request_params",
    "validate_request_params",
]
