"""Utility functions"""

from .retry import (
    RetryError,
    backoff_delays,
    retry_async,
    retry_async_operation,
)

__all__ = [
    "RetryError",
    "backoff_delays",
    "retry_async",
    "retry_async_operation",
]
