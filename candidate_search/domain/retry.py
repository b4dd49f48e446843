"""Retry policy for indexing jobs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Type

from candidate_search.domain.exceptions import EmbeddingGenerationError


class BackoffStrategy(str, Enum):
    """Backoff strategies for retry delays."""

    FIXED = "fixed"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


DEFAULT_TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (
    EmbeddingGenerationError,
    ConnectionError,
    TimeoutError,
    OSError,
)


@dataclass
class RetryPolicy:
    """Configuration for retry behaviour.

    ``max_attempts`` counts every attempt including the first one, so a job
    with ``retry_count == max_attempts - 1`` that fails again is exhausted.
    """

    max_attempts: int = 4
    base_delay_seconds: float = 2.0
    max_delay_seconds: float = 60.0
    backoff_strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    transient_errors: Tuple[Type[BaseException], ...] = DEFAULT_TRANSIENT_ERRORS

    def is_retryable(self, error: BaseException) -> bool:
        """Check if an error is transient according to this policy."""
        return isinstance(error, self.transient_errors)

    def has_attempts_left(self, retry_count: int) -> bool:
        """``retry_count`` is the number of attempts already failed."""
        return retry_count + 1 < self.max_attempts

    def calculate_delay(self, attempt: int) -> float:
        """Calculate the delay before retry number ``attempt`` (1-based)."""
        attempt = max(1, attempt)
        if self.backoff_strategy == BackoffStrategy.FIXED:
            delay = self.base_delay_seconds
        elif self.backoff_strategy == BackoffStrategy.LINEAR:
            delay = self.base_delay_seconds * attempt
        else:
            delay = self.base_delay_seconds * (2 ** (attempt - 1))

        return min(delay, self.max_delay_seconds)


__all__ = ["BackoffStrategy", "RetryPolicy", "DEFAULT_TRANSIENT_ERRORS"]
