"""
Retry Policy for Store Operations

Bounded retry with exponential backoff for transport-level failures.
Business-rule errors are never retried.
"""

import logging
import os
import time
from dataclasses import dataclass
from typing import Callable

from .errors import TransientStoreError

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (TransientStoreError, ConnectionError, TimeoutError)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to retry and how long to wait between attempts."""

    max_attempts: int = 3
    initial_delay: float = 0.2
    max_delay: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based), doubling up to max_delay."""
        return min(self.initial_delay * (2 ** (attempt - 1)), self.max_delay)

    @classmethod
    def from_env(cls) -> "RetryPolicy":
        return cls(
            max_attempts=int(os.environ.get("QUOTE_ENGINE_RETRY_MAX_ATTEMPTS", 3)),
            initial_delay=float(os.environ.get("QUOTE_ENGINE_RETRY_INITIAL_DELAY", 0.2)),
            max_delay=float(os.environ.get("QUOTE_ENGINE_RETRY_MAX_DELAY", 2.0)),
        )


def call_with_retry(
    func: Callable,
    policy: RetryPolicy,
    *args,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs
):
    """Call func, retrying transient failures according to policy."""
    attempts = max(1, policy.max_attempts)
    for attempt in range(1, attempts + 1):
        try:
            return func(*args, **kwargs)
        except RETRYABLE_ERRORS as e:
            if attempt >= attempts:
                logger.error(f"Store operation failed after {attempt} attempt(s): {e}")
                raise
            wait = policy.delay_for(attempt)
            logger.warning(f"Transient store error, retry {attempt}/{attempts - 1} in {wait}s: {e}")
            sleep(wait)

