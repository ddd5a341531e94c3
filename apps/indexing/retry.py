"""
Bounded retries for Gemini and Pinecone calls.

Each caller picks a RetryPolicy. Only transient failures (timeouts,
connection problems, rate limiting, 5xx) are retried; configuration and
request errors are raised on the first attempt.
"""
import time
import random
import logging
from dataclasses import dataclass
from typing import Callable, Tuple, Type, TypeVar

import httpx
import requests

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass(frozen=True)
class RetryPolicy:
    retries: int
    base_delay: float
    max_delay: float
    jitter: float = 0.25

    @property
    def attempts(self) -> int:
        return self.retries + 1

    def delay(self, retry: int) -> float:
        """Seconds to wait before retry number `retry` (0-based): doubling, capped, jittered."""
        delay = min(self.base_delay * (2 ** retry), self.max_delay)
        spread = delay * self.jitter
        return max(0.0, delay + random.uniform(-spread, spread))


# Embedding batches and vector upserts in the worker
EMBEDDING_RETRY = RetryPolicy(retries=3, base_delay=2.0, max_delay=30.0)
# Chat answers, a user is waiting
GENERATION_RETRY = RetryPolicy(retries=2, base_delay=1.0, max_delay=5.0, jitter=0.1)
# Whole-document analysis prompts
ANALYSIS_RETRY = RetryPolicy(retries=2, base_delay=5.0, max_delay=30.0)

TRANSIENT_MARKERS = (
    'timed out', 'timeout', 'connect', 'unavailable', 'overloaded',
    'resource_exhausted', 'rate limit', '429', '500', '502', '503', '504',
    'no embedding in response',
)
PERMANENT_MARKERS = (
    'not configured', 'blocked', 'invalid', 'not found',
    '400', '401', '403', '404',
)


class RetryExhausted(Exception):
    """Every attempt failed with a transient error."""

    def __init__(self, attempts: int, last_error: Exception):
        super().__init__(f"gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


def is_transient(error: Exception) -> bool:
    if isinstance(error, (httpx.TransportError, requests.ConnectionError, requests.Timeout)):
        return True
    message = str(error).lower()
    if any(marker in message for marker in TRANSIENT_MARKERS):
        return True
    # Unrecognised failures get another attempt
    return not any(marker in message for marker in PERMANENT_MARKERS)


def call_with_retry(
    func: Callable[[], T],
    policy: RetryPolicy,
    retry_on: Tuple[Type[Exception], ...],
    label: str,
) -> T:
    """
    Call func, retrying transient failures of the given exception types.

    Raises:
        RetryExhausted: if the last attempt also failed transiently
        The original exception, unchanged, when it is not transient
    """
    for retry in range(policy.attempts):
        try:
            return func()
        except retry_on as e:
            if not is_transient(e):
                logger.warning(f"{label} failed permanently: {e}")
                raise
            if retry == policy.retries:
                raise RetryExhausted(policy.attempts, e) from e
            wait = policy.delay(retry)
            logger.warning(
                f"{label} attempt {retry + 1}/{policy.attempts} failed: {e}. "
                f"Retrying in {wait:.1f}s"
            )
            time.sleep(wait)
