"""Model contract, retry policy and decorators."""

from .config import RetryConfig, RetryStrategy
from .core import Model
from .factory import with_default_retry, without_retry, wrap_model
from .retry import RetryingModel, backoff_delay, parse_duration, should_retry

__all__ = [
    "Model",
    "RetryConfig",
    "RetryStrategy",
    "RetryingModel",
    "backoff_delay",
    "parse_duration",
    "should_retry",
    "with_default_retry",
    "without_retry",
    "wrap_model",
]
