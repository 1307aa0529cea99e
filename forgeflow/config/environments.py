"""Environment-specific configuration overrides."""

from typing import Any, Dict


class _EnvironmentOverrides:
    @classmethod
    def as_dict(cls) -> Dict[str, Any]:
        """Return config as dictionary."""
        return {
            key: value
            for key, value in vars(cls).items()
            if not key.startswith("_")
            and not callable(value)
            and not isinstance(value, classmethod)
        }


class DevelopmentConfig(_EnvironmentOverrides):
    """Development environment overrides."""

    debug: bool = True
    development_mode: bool = True
    log_level: str = "DEBUG"
    shutdown_grace_seconds: float = 2.0  # Quicker restarts while iterating


class TestingConfig(_EnvironmentOverrides):
    """Testing environment configuration."""

    debug: bool = True
    development_mode: bool = True
    retry_base_delay_ms: int = 10  # Keep retry tests fast
    shutdown_grace_seconds: float = 0.1


class ProductionConfig(_EnvironmentOverrides):
    """Production environment configuration."""

    debug: bool = False
    development_mode: bool = False
    log_level: str = "INFO"
    # Providers rate-limit harder under sustained load
    retry_max_attempts: int = 5
