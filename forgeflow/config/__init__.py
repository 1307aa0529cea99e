"""Agent configuration: settings, environment overrides and feature flags."""

from .environments import DevelopmentConfig, ProductionConfig, TestingConfig
from .features import FeatureFlags
from .loader import create_test_config, environment_overrides, load_config
from .settings import Settings

__all__ = [
    "Settings",
    "FeatureFlags",
    "load_config",
    "environment_overrides",
    "create_test_config",
    "DevelopmentConfig",
    "TestingConfig",
    "ProductionConfig",
]
