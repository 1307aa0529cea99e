"""Assemble the model the agent actually calls."""

from typing import Optional

import structlog

from .config import RetryConfig
from .core import Model
from .retry import RetryingModel

logger = structlog.get_logger()


def wrap_model(model: Model, retry_config: Optional[RetryConfig]) -> Model:
    """Decorate ``model`` according to ``retry_config``.

    ``None`` or a policy with zero attempts leaves the model undecorated.
    """
    if retry_config is None:
        logger.debug("No retry config provided, using base model without retry")
        return model
    if not retry_config.enabled:
        logger.debug("Retry config has max_attempts=0, using base model without retry")
        return model

    logger.debug(
        "Wrapping model with retry decorator",
        max_attempts=retry_config.max_attempts,
        base_delay_ms=int(retry_config.base_delay.total_seconds() * 1000),
        strategy=retry_config.strategy.value,
        only_rate_limits=retry_config.only_retry_rate_limits,
    )
    return RetryingModel(model, retry_config)


def with_default_retry(model: Model) -> Model:
    return wrap_model(model, RetryConfig.default())


def without_retry(model: Model) -> Model:
    return wrap_model(model, None)
