"""Retry utilities for backend storage calls with exponential backoff.

Completion calls are deliberately not wrapped: a failed parse is reported
to the user, who decides whether to record again.
"""
import logging
from typing import Callable, TypeVar

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default retry configuration
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MIN_WAIT_SECONDS = 1
DEFAULT_MAX_WAIT_SECONDS = 10


def is_retryable_error(exception: BaseException) -> bool:
    """
    Determine if an exception is retryable.

    Retryable errors include:
    - Rate limit errors (429)
    - Server errors (5xx)
    - Timeout errors
    - Connection errors

    Non-retryable errors include:
    - Authentication errors (401)
    - Bad request errors (400)
    - Not found errors (404)
    - Constraint violations (duplicate keys)
    """
    error_str = str(exception).lower()
    exception_type = type(exception).__name__.lower()

    # Rate limit (429)
    if "rate" in error_str and "limit" in error_str:
        return True
    if "429" in error_str:
        return True

    # Server errors (5xx)
    if any(code in error_str for code in ["500", "502", "503", "504"]):
        return True

    # Timeouts
    if "timeout" in error_str or "timed out" in error_str:
        return True
    if "timeout" in exception_type:
        return True

    # Connection errors
    if "connection" in error_str or "connect" in exception_type:
        return True

    # DNS resolution failures
    if "name or service not known" in error_str:
        return True
    if "temporary failure in name resolution" in error_str:
        return True

    # Default: don't retry unknown errors (bad requests, auth, duplicates...)
    return False


def create_retry_decorator(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    min_wait_seconds: float = DEFAULT_MIN_WAIT_SECONDS,
    max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Create a retry decorator with exponential backoff for transient errors.

    Args:
        max_attempts: Maximum number of attempts
        min_wait_seconds: Minimum wait time between retries
        max_wait_seconds: Maximum wait time between retries

    Returns:
        A retry decorator; the last exception is re-raised when attempts run out
    """
    return retry(
        retry=retry_if_exception(is_retryable_error),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(
            multiplier=1,
            min=min_wait_seconds,
            max=max_wait_seconds,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


# Pre-configured retry decorator for Supabase calls
store_retry = create_retry_decorator()
