"""
Retry Utilities
Retry logic for external API calls with exponential backoff
"""

import asyncio
from functools import wraps
from typing import Optional, Callable, Any, Type, Tuple, Sequence

from dentalhub.core.logging import get_logger
from dentalhub.core.config import settings

logger = get_logger(__name__)


class RetryError(Exception):
    """Raised when all retry attempts fail"""
    def __init__(self, message: str, last_exception: Optional[Exception] = None):
        super().__init__(message)
        self.last_exception = last_exception


def backoff_delays(
    attempts: int,
    delay: float,
    backoff_multiplier: float = 2.0,
) -> list:
    """Delays between attempts: delay, delay*m, delay*m^2, ..."""
    return [delay * (backoff_multiplier ** i) for i in range(max(attempts - 1, 0))]


def _is_retryable(exc: Exception) -> bool:
    """Exceptions carrying a `retryable` flag decide for themselves."""
    return getattr(exc, "retryable", True)


def retry_async(
    max_retries: Optional[int] = None,
    delay: Optional[float] = None,
    backoff_multiplier: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable[[int, Exception], None]] = None
):
    """
    Asynchronous retry decorator with exponential backoff

    Args:
        max_retries: Maximum number of attempts (settings.api_max_retries if omitted)
        delay: Initial delay between retries in seconds
        backoff_multiplier: Multiplier for exponential backoff
        exceptions: Tuple of exception types to catch and retry
        on_retry: Optional callback function called on each retry
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            return await retry_async_operation(
                lambda: func(*args, **kwargs),
                max_retries=max_retries,
                delay=delay,
                backoff_multiplier=backoff_multiplier,
                exceptions=exceptions,
                operation_name=func.__name__,
                on_retry=on_retry,
            )

        return wrapper
    return decorator


async def retry_async_operation(
    operation: Callable,
    max_retries: Optional[int] = None,
    delay: Optional[float] = None,
    backoff_multiplier: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    operation_name: str = "operation",
    on_retry: Optional[Callable[[int, Exception], None]] = None,
    delays: Optional[Sequence[float]] = None,
) -> Any:
    """
    Execute an async operation with retry logic

    Exceptions whose `retryable` attribute is False are re-raised
    immediately instead of being retried.

    Args:
        operation: Async callable to execute
        max_retries: Maximum attempts
        delay: Initial delay between retries
        backoff_multiplier: Multiplier for exponential backoff
        exceptions: Exception types to catch
        operation_name: Name for logging purposes
        on_retry: Optional callback called with (attempt, exception)
        delays: Explicit delay schedule; overrides delay/backoff and sets
                the attempt count to len(delays) + 1

    Returns:
        Result of the operation

    Raises:
        RetryError: If all attempts fail
    """
    if delays is not None:
        schedule = list(delays)
        attempts = len(schedule) + 1
    else:
        attempts = max_retries if max_retries is not None else settings.api_max_retries
        attempts = max(attempts, 1)
        initial = delay if delay is not None else settings.api_retry_delay
        schedule = backoff_delays(attempts, initial, backoff_multiplier)

    last_exception = None

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except exceptions as e:
            if not _is_retryable(e):
                raise
            last_exception = e
            logger.warning(
                f"Attempt {attempt}/{attempts} failed for {operation_name}: {e}"
            )

            if on_retry:
                on_retry(attempt, e)

            if attempt < attempts:
                wait = schedule[attempt - 1]
                logger.info(f"Retrying {operation_name} in {wait:.1f}s...")
                await asyncio.sleep(wait)
            else:
                logger.error(f"All {attempts} attempts failed for {operation_name}")

    raise RetryError(
        f"Failed {operation_name} after {attempts} attempts",
        last_exception=last_exception
    )
