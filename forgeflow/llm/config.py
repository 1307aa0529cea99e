"""Retry policy for model calls."""

from dataclasses import dataclass, replace
from datetime import timedelta
from enum import Enum

from ..utils.constants import DEFAULT_RETRY_BASE_DELAY_MS, DEFAULT_RETRY_MAX_ATTEMPTS


class RetryStrategy(str, Enum):
    """How the delay between attempts grows."""

    FIXED = "fixed"
    EXPONENTIAL_BACKOFF = "exponential"
    EXPONENTIAL_BACKOFF_WITH_JITTER = "exponential_jitter"


@dataclass(frozen=True)
class RetryConfig:
    """Immutable retry policy attached to a ``RetryingModel``.

    ``max_attempts`` counts retries, so a call may be issued up to
    ``1 + max_attempts`` times. Zero means no decoration at all.
    """

    max_attempts: int = DEFAULT_RETRY_MAX_ATTEMPTS
    base_delay: timedelta = timedelta(milliseconds=DEFAULT_RETRY_BASE_DELAY_MS)
    strategy: RetryStrategy = RetryStrategy.EXPONENTIAL_BACKOFF_WITH_JITTER
    only_retry_rate_limits: bool = True

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError("max_attempts must not be negative")
        if self.base_delay < timedelta(0):
            raise ValueError("base_delay must not be negative")

    @property
    def enabled(self) -> bool:
        return self.max_attempts > 0

    @classmethod
    def default(cls) -> "RetryConfig":
        return cls()

    @classmethod
    def aggressive(cls) -> "RetryConfig":
        """More attempts, shorter delays."""
        return cls(
            max_attempts=5,
            base_delay=timedelta(milliseconds=500),
            strategy=RetryStrategy.EXPONENTIAL_BACKOFF_WITH_JITTER,
        )

    @classmethod
    def conservative(cls) -> "RetryConfig":
        """Fewer attempts, longer delays."""
        return cls(
            max_attempts=2,
            base_delay=timedelta(milliseconds=2000),
            strategy=RetryStrategy.EXPONENTIAL_BACKOFF,
        )

    @classmethod
    def disabled(cls) -> "RetryConfig":
        return cls(
            max_attempts=0,
            base_delay=timedelta(0),
            strategy=RetryStrategy.FIXED,
        )

    def retry_all_errors(self) -> "RetryConfig":
        """Copy of this policy that retries every ``PromptError``."""
        return replace(self, only_retry_rate_limits=False)
