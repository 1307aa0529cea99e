"""Retry decorator for models.

``RetryingModel`` re-issues a failed prompt under a ``RetryConfig``. By
default only rate-limit failures are retried: the provider error body must
parse as ``{"error": {"code": 429, ...}}``. Anything else, unparsable text
included, propagates after the first call.

Delay before the next attempt, in order of preference:

1. a provider hint, i.e. a ``google.rpc.RetryInfo`` detail carrying a
   ``retryDelay`` duration string such as ``"2s"`` or ``"100ms"``;
2. the strategy's backoff for the failed attempt's index.
"""

import asyncio
import re
from datetime import timedelta
from typing import Any, Awaitable, Callable, Optional

import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from ..exceptions import PromptError
from ..utils.constants import (
    RATE_LIMIT_ERROR_CODE,
    RETRY_INFO_TYPE,
    RETRY_JITTER_CAP_MS,
    RETRY_JITTER_STEP_MS,
)
from .config import RetryConfig, RetryStrategy
from .core import Model

logger = structlog.get_logger()

SleepFunc = Callable[[float], Awaitable[Any]]

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)\s*(ns|us|ms|sec|min|s|m|h)")
_DURATION_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "sec": 1.0,
    "m": 60.0,
    "min": 60.0,
    "h": 3600.0,
}


def parse_duration(text: str) -> Optional[timedelta]:
    """Parse strings like ``"2s"``, ``"1.5s"``, ``"100ms"`` or ``"1m 30s"``."""
    if not isinstance(text, str):
        return None
    remaining = text.strip()
    if not remaining:
        return None
    total = 0.0
    while remaining:
        match = _DURATION_PART.match(remaining)
        if match is None:
            return None
        total += float(match.group(1)) * _DURATION_SECONDS[match.group(2)]
        remaining = remaining[match.end() :].lstrip()
    return timedelta(seconds=total)


def should_retry(error: BaseException, only_rate_limits: bool = True) -> bool:
    """Whether a failed prompt is worth another attempt."""
    if not isinstance(error, PromptError):
        return False
    if not only_rate_limits:
        return True
    return error.code == RATE_LIMIT_ERROR_CODE


def retry_delay_hint(error: BaseException) -> Optional[timedelta]:
    """Provider-supplied delay from a ``RetryInfo`` detail, if any."""
    if not isinstance(error, PromptError):
        return None
    provider_error = error.provider_error
    if provider_error is None:
        return None
    details = provider_error.get("details")
    if not isinstance(details, list):
        return None
    for detail in details:
        if not isinstance(detail, dict) or detail.get("@type") != RETRY_INFO_TYPE:
            continue
        delay = parse_duration(detail.get("retryDelay", ""))
        if delay is not None:
            return delay
    return None


def backoff_delay(config: RetryConfig, attempt: int) -> timedelta:
    """Computed delay after the failure of 0-based ``attempt``."""
    if config.strategy == RetryStrategy.FIXED:
        return config.base_delay
    delay = config.base_delay * (2**attempt)
    if config.strategy == RetryStrategy.EXPONENTIAL_BACKOFF_WITH_JITTER:
        jitter_ms = (attempt * RETRY_JITTER_STEP_MS) % RETRY_JITTER_CAP_MS
        delay += timedelta(milliseconds=jitter_ms)
    return delay


class RetryingModel(Model):
    """Wraps another ``Model`` and retries failed prompts sequentially."""

    def __init__(
        self,
        inner: Model,
        config: Optional[RetryConfig] = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self.inner = inner
        self.config = config or RetryConfig()
        self._sleep = sleep

    async def prompt(self, text: str) -> str:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.max_attempts + 1),
            wait=self._wait,
            retry=retry_if_exception(self._is_retryable),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        return await retrying(self.inner.prompt, text)

    def _is_retryable(self, error: BaseException) -> bool:
        return should_retry(error, self.config.only_retry_rate_limits)

    def _wait(self, retry_state: RetryCallState) -> float:
        failed_attempt = retry_state.attempt_number - 1
        error = retry_state.outcome.exception() if retry_state.outcome else None
        hint = retry_delay_hint(error) if error is not None else None
        delay = hint if hint is not None else backoff_delay(self.config, failed_attempt)
        return delay.total_seconds()

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Model call failed, retrying",
            attempt=retry_state.attempt_number,
            max_attempts=self.config.max_attempts,
            delay_seconds=retry_state.next_action.sleep
            if retry_state.next_action
            else None,
            error=str(error),
        )
