"""
Retry policy for object fetches.

Fetches go through a peer-to-peer network and fail transiently; a policy
with exponential backoff bounds how hard each address is tried.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from tzipfs.core.errors import FetchError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Configuration for retry behavior."""

    max_attempts: int = 1
    initial_delay_seconds: float = 1.0
    max_delay_seconds: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True

    retryable_exceptions: tuple[type[Exception], ...] = field(
        default_factory=lambda: (FetchError, OSError)
    )

    def compute_delay(self, attempt: int) -> float:
        """
        Compute delay before the next attempt.

        Args:
            attempt: Attempt that just failed (1-indexed).

        Returns:
            Delay in seconds.
        """
        delay = self.initial_delay_seconds * (self.exponential_base ** (attempt - 1))
        delay = min(delay, self.max_delay_seconds)

        if self.jitter:
            # Up to 25% extra
            delay += delay * 0.25 * random.random()

        return delay

    def should_retry(self, exception: Exception, attempt: int) -> bool:
        """Whether a failed attempt should be retried."""
        if attempt >= self.max_attempts:
            return False
        return isinstance(exception, self.retryable_exceptions)


@dataclass
class RetryOutcome:
    """Result of running an operation under a retry policy."""

    attempts: int = 0
    error: Exception | None = None

    @property
    def success(self) -> bool:
        return self.error is None


def run_with_retry(
    func: Callable[[], T],
    policy: RetryPolicy | None = None,
    label: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[T | None, RetryOutcome]:
    """
    Run ``func`` until it succeeds or the policy gives up.

    Errors the policy does not consider retryable propagate immediately.
    The last retryable error is returned in the outcome, not raised.

    Args:
        func: Zero-argument callable.
        policy: Retry policy. Defaults to a single attempt.
        label: Name used in log messages.
        sleep: Sleep function, replaceable in tests.

    Returns:
        Tuple of (result or None, outcome).
    """
    policy = policy or RetryPolicy()
    outcome = RetryOutcome()

    for attempt in range(1, policy.max_attempts + 1):
        outcome.attempts = attempt
        try:
            result = func()
        except policy.retryable_exceptions as e:
            outcome.error = e
            if not policy.should_retry(e, attempt):
                break
            delay = policy.compute_delay(attempt)
            logger.info(
                "Attempt %d/%d for %s failed (%s); retrying in %.1fs",
                attempt,
                policy.max_attempts,
                label,
                e,
                delay,
            )
            sleep(delay)
        else:
            outcome.error = None
            return result, outcome

    return None, outcome
