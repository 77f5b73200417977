"""Execution engine state models."""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from nodeflow.core.config import Settings
from .exceptions import NonRetriableError


@dataclass
class RetryPolicy:
    """Retry configuration for a step.

    Implements exponential backoff with configurable limits.
    Delay formula: min(initial_delay * (backoff_multiplier ^ attempt), max_delay)
    """
    max_attempts: int = 3
    initial_delay: float = 1.0       # seconds
    max_delay: float = 30.0          # seconds
    backoff_multiplier: float = 2.0

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay before next retry attempt.

        Args:
            attempt: Current attempt number (0-indexed)

        Returns:
            Delay in seconds before next attempt
        """
        delay = self.initial_delay * (self.backoff_multiplier ** attempt)
        return min(delay, self.max_delay)

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        """Determine if a failed step should be attempted again.

        Args:
            error: Exception raised by the step's work
            attempt: Number of attempts made so far (1-indexed)
        """
        if isinstance(error, NonRetriableError):
            return False
        return attempt < self.max_attempts

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.step_max_attempts,
            initial_delay=settings.step_initial_delay,
            max_delay=settings.step_max_delay,
            backoff_multiplier=settings.step_backoff_multiplier,
        )


StepWork = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class Step:
    """A durable unit of work: an idempotency key plus the work itself."""
    name: str
    work: StepWork

    def key(self, run_id: str) -> str:
        """Memo key for this step within a run."""
        return f"step:{run_id}:{self.name}"
