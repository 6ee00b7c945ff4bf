# ideaforge/llm/retry.py
"""Transient-error classification and the single-retry policy for generation calls."""

import asyncio
import logging

import httpx
from ollama import ResponseError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from ideaforge.errors import TransientGenerationError

logger = logging.getLogger(__name__)

# Retryable HTTP status codes (timeouts, rate limits, upstream hiccups)
RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})

# One initial attempt plus exactly one retry
GENERATION_ATTEMPTS = 2


def is_transient(exception: BaseException) -> bool:
    """
    Returns True if the exception should be retried.

    Retryable conditions:
    - TimeoutError / asyncio.TimeoutError (call exceeded its own timeout)
    - ConnectionError (server unavailable)
    - httpx timeouts and network errors
    - ResponseError with status in (408, 429, 500, 502, 503, 504)
      BUT NOT status 500 with "requires more system memory" (retrying won't help)
    - TransientGenerationError raised by a generator
    """
    if isinstance(exception, TransientGenerationError):
        return True

    if isinstance(exception, (TimeoutError, asyncio.TimeoutError, ConnectionError)):
        return True

    if isinstance(exception, (httpx.TimeoutException, httpx.NetworkError)):
        return True

    if isinstance(exception, ResponseError):
        status = exception.status_code
        if status not in RETRYABLE_STATUSES:
            return False

        if status == 500 and "requires more system memory" in str(exception).lower():
            return False

        return True

    return False


def generation_retrying(wait_seconds: float = 2.0) -> AsyncRetrying:
    """
    Build the tenacity controller for one generation call.

    Args:
        wait_seconds: Delay before the single retry

    Returns:
        AsyncRetrying that re-raises the last error after two attempts
    """
    return AsyncRetrying(
        stop=stop_after_attempt(GENERATION_ATTEMPTS),
        wait=wait_fixed(wait_seconds),
        retry=retry_if_exception(is_transient),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
