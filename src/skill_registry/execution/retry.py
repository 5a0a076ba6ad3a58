"""Retry strategies for link validation attempts.

The validator asks a strategy two questions after a failed attempt: may the
entry be tried again, and how long to wait first. Only retryable errors
(timeouts, transport failures) ever reach the strategy; HTTP error statuses
are final verdicts.

Example:
    >>> strategy = ConstantBackoff(max_retries=1, delay=1.0)
    >>> strategy.should_retry(1, NetworkError("reset"))
    True
    >>> strategy.should_retry(2, NetworkError("reset"))
    False
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from skill_registry.core.errors import is_retryable


class RetryStrategy(ABC):
    """Abstract base for retry strategies."""

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Calculate delay before the next attempt.

        Args:
            attempt: Number of attempts already made (1 after the first failure)

        Returns:
            Delay in seconds before next attempt
        """
        ...

    @abstractmethod
    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        """Determine if another attempt should be made.

        Args:
            attempt: Number of attempts already made
            error: The exception that caused the failure
        """
        ...


@dataclass
class ConstantBackoff(RetryStrategy):
    """Fixed delay between attempts, bounded number of retries.

    Attributes:
        max_retries: Retries allowed after the first attempt
        delay: Seconds to wait before each retry
    """

    max_retries: int = 1
    delay: float = 1.0

    def next_delay(self, attempt: int) -> float:
        """Return constant delay."""
        return self.delay

    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        if attempt > self.max_retries:
            return False
        if error is not None and not is_retryable(error):
            return False
        return True

    @classmethod
    def for_attempts(cls, max_attempts: int, delay: float) -> ConstantBackoff:
        """Build from a total attempt budget (initial attempt included)."""
        return cls(max_retries=max(0, max_attempts - 1), delay=delay)


__all__ = ["RetryStrategy", "ConstantBackoff"]
