"""Retry policy: attempt budget and bounded exponential backoff."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator

from .errors import PolicyError, ValidationCode


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class RetryPolicy:
    """
    How many times to retry a failed open, and how long to wait in between.

    Attempt 0 is immediate. Before each later attempt the current interval is
    waited, then grown by backoff_factor and capped at max_interval, so waits
    never shrink and never exceed max_interval.
    """
    max_retries: int = 3
    base_interval: float = 1.0
    backoff_factor: float = 2.0
    max_interval: float = 10.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def validate(self) -> None:
        """Raise PolicyError if the policy breaks a static rule."""
        if not isinstance(self.max_retries, int) or isinstance(self.max_retries, bool):
            raise PolicyError(
                ValidationCode.INVALID_MAX_RETRIES,
                f"max retries must be an integer, got: {self.max_retries!r}",
            )
        if self.max_retries < 0:
            raise PolicyError(ValidationCode.NEGATIVE_MAX_RETRIES, "max retries cannot be negative")
        # Comparisons are written to fail for NaN.
        if not (_is_number(self.base_interval) and 0 <= self.base_interval < math.inf):
            raise PolicyError(
                ValidationCode.NEGATIVE_INTERVAL,
                f"retry interval must be a finite number >= 0, got: {self.base_interval!r}",
            )
        if not (_is_number(self.backoff_factor) and 1.0 <= self.backoff_factor < math.inf):
            raise PolicyError(
                ValidationCode.INVALID_BACKOFF_FACTOR,
                f"backoff factor must be a finite number >= 1.0, got: {self.backoff_factor!r}",
            )
        if not (_is_number(self.max_interval) and self.base_interval <= self.max_interval < math.inf):
            raise PolicyError(
                ValidationCode.MAX_INTERVAL_TOO_SMALL,
                f"max interval must be finite and not less than retry interval, got: {self.max_interval!r}",
            )

    def next_interval(self, attempt_index: int, previous_interval: float) -> float:
        """
        Interval to use after previous_interval has been waited.

        Args:
            attempt_index: Index of the attempt about to be made (0 = first).
            previous_interval: The interval just waited.

        Returns:
            0.0 for the first attempt, otherwise the grown, capped interval.
        """
        if attempt_index == 0:
            return 0.0
        return min(previous_interval * self.backoff_factor, self.max_interval)

    def backoff_schedule(self) -> Iterator[float]:
        """Yield the wait inserted before each of attempts 1..max_retries."""
        interval = self.base_interval
        for attempt in range(1, self.max_retries + 1):
            yield interval
            interval = self.next_interval(attempt, interval)


DEFAULT_RETRY_POLICY = RetryPolicy()
