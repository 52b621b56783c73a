"""Caller-side retries for whole sync passes.

The synchronizer and the remote client never retry on their own. A pass
is safe to re-run from scratch after any failure, so a caller that wants
retries re-runs the complete pass while the log stays unreachable.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import TypeVar

from factsync.core.errors import NetworkError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 5
DEFAULT_INITIAL_BACKOFF = 1.0  # seconds
DEFAULT_MAX_BACKOFF = 60.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0

# Only an unreachable log is worth another pass
RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (NetworkError,)


@dataclass(frozen=True)
class RetryPolicy:
    """How often, and how patiently, a failed pass is re-run."""

    max_retries: int = DEFAULT_MAX_RETRIES
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF
    max_backoff: float = DEFAULT_MAX_BACKOFF
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER

    def delays(self) -> Iterator[float]:
        """Wait before each retry: geometric growth, capped."""
        delay = self.initial_backoff
        for _ in range(self.max_retries):
            yield min(delay, self.max_backoff)
            delay *= self.backoff_multiplier

    def run(
        self,
        func: Callable[[], T],
        retryable_exceptions: tuple[type[Exception], ...] = RETRYABLE_EXCEPTIONS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> T:
        """Call ``func`` until it succeeds or the delays run out."""
        attempts = self.max_retries + 1
        for attempt, delay in enumerate(self.delays(), start=1):
            try:
                return func()
            except retryable_exceptions as e:
                logger.warning(f"Sync attempt {attempt}/{attempts} failed ({e}), next in {delay:.1f}s")
            sleep(delay)

        try:
            return func()
        except retryable_exceptions as e:
            logger.error(f"Giving up after {attempts} attempts: {e}")
            raise


def retry_with_backoff(
    func: Callable[[], T],
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
    max_backoff: float = DEFAULT_MAX_BACKOFF,
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
    retryable_exceptions: tuple[type[Exception], ...] = RETRYABLE_EXCEPTIONS,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``func`` (typically ``Synchronizer.sync``) under a RetryPolicy.

    Non-retryable errors propagate from the first attempt; the last
    retryable one propagates once the retries are spent.
    """
    policy = RetryPolicy(max_retries, initial_backoff, max_backoff, backoff_multiplier)
    return policy.run(func, retryable_exceptions=retryable_exceptions, sleep=sleep)
