"""Reusable retry policy with exponential backoff."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from carslots.errors import is_transient

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry a callable on transient errors.

    Attributes:
        max_attempts: Total number of attempts (first call included).
        base_delay: Delay before the second attempt; doubles every retry.
        retryable: Predicate deciding whether an exception is worth retrying.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    retryable: Callable[[BaseException], bool] = field(default=is_transient)

    def delay_for(self, attempt: int) -> float:
        """Delay after the given (1-based) failed attempt."""
        return self.base_delay * (2 ** (attempt - 1))

    def call(self, fn: Callable[[], T], *, label: str = "call") -> T:
        for attempt in range(1, self.max_attempts + 1):
            try:
                return fn()
            except Exception as exc:
                if attempt >= self.max_attempts or not self.retryable(exc):
                    raise
                delay = self.delay_for(attempt)
                log.warning(
                    "%s failed (attempt %d/%d): %s; retrying in %.1fs",
                    label,
                    attempt,
                    self.max_attempts,
                    exc,
                    delay,
                )
                time.sleep(delay)

        raise RuntimeError("Unexpected retry loop termination")
