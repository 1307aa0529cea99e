"""Pytest configuration and fixtures."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from forgeflow.events.channels import EventChannel, ShutdownBroadcast
from forgeflow.llm.config import RetryConfig, RetryStrategy
from tests.fakes import EchoModel


@pytest.fixture
def echo_model():
    """Model that echoes its prompt."""
    return EchoModel()


@pytest.fixture
def fake_sleep():
    """Stand-in for asyncio.sleep that records requested delays."""
    return AsyncMock(return_value=None)


@pytest.fixture
def fixed_retry_config():
    """Retry policy with a small fixed delay."""
    return RetryConfig(
        max_attempts=3,
        base_delay=timedelta(milliseconds=10),
        strategy=RetryStrategy.FIXED,
    )


@pytest.fixture
def channel():
    """Small event channel."""
    return EventChannel(capacity=4)


@pytest.fixture
def broadcast():
    """Fresh shutdown broadcast."""
    return ShutdownBroadcast()


@pytest.fixture
def sample_template():
    return "Event {{ name }} fired with {{ payload | verbatim }}"
