"""Configuration loading with environment detection."""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

import structlog
from dotenv import load_dotenv

from ..exceptions import ConfigurationError, InvalidConfigError
from .environments import DevelopmentConfig, ProductionConfig, TestingConfig
from .settings import Settings

logger = structlog.get_logger()

ENVIRONMENT_OVERRIDES: Dict[str, Type[Any]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def load_config(
    env: Optional[str] = None, config_file: Optional[Path] = None
) -> Settings:
    """Build agent settings for an environment.

    The dotenv file (``config_file`` or ``./.env``) is loaded into the
    process environment first, then per-environment overrides are applied
    on top of whatever the environment provides.

    Raises:
        ConfigurationError: If the settings are invalid or incomplete.
    """
    dotenv_path = config_file or Path(".env")
    if dotenv_path.exists():
        load_dotenv(dotenv_path)
        logger.info("Loaded dotenv file", path=str(dotenv_path))
    else:
        logger.warning(
            "Dotenv file not found, using process environment",
            path=str(dotenv_path),
        )

    env = env or os.getenv("ENVIRONMENT", "development")

    try:
        settings = Settings(**environment_overrides(env))  # type: ignore[arg-type]
        _validate_config(settings)
    except ConfigurationError:
        raise
    except Exception as e:
        logger.error("Invalid agent configuration", error=str(e), environment=env)
        raise ConfigurationError(f"Configuration loading failed: {e}") from e

    logger.info(
        "Agent configuration ready",
        environment=settings.environment,
        triggers=enabled_trigger_names(settings),
        retry=settings.retry_enabled,
    )
    return settings


def environment_overrides(env: Optional[str]) -> Dict[str, Any]:
    """Values forced by the named environment, including ``environment`` itself."""
    overrides_cls = ENVIRONMENT_OVERRIDES.get(env or "")
    if overrides_cls is None:
        logger.warning("Unknown environment, no overrides applied", environment=env)
        return {}
    overrides = overrides_cls.as_dict()
    overrides["environment"] = env
    logger.debug("Environment overrides", environment=env, keys=sorted(overrides))
    return overrides


def _validate_config(settings: Settings) -> None:
    """Checks that need the whole configuration, or the filesystem."""
    if settings.resolved_prompt_template is None:
        raise InvalidConfigError(
            "No prompt template configured (PROMPT_TEMPLATE or PROMPT_TEMPLATE_PATH)"
        )

    if not settings.model_factory:
        raise InvalidConfigError("No model factory configured (MODEL_FACTORY)")

    if settings.enable_gmail_trigger:
        credentials = settings.gmail_credentials_path
        if credentials is None or not credentials.exists():
            raise InvalidConfigError(f"Gmail credential file not found: {credentials}")
        settings.gmail_token_path.parent.mkdir(parents=True, exist_ok=True)

    if not enabled_trigger_names(settings):
        logger.warning("No triggers enabled; the agent will exit immediately")


def enabled_trigger_names(settings: Settings) -> List[str]:
    names = []
    if settings.enable_poll_trigger:
        names.append("poll")
    if settings.enable_gmail_trigger:
        names.append("gmail")
    if settings.enable_telegram_trigger:
        names.append("telegram")
    return names


def create_test_config(**overrides: Any) -> Settings:
    """Settings for tests: testing overrides and an inline template.

    No model factory is set; pass ``model_factory`` to build a runnable agent.
    Ignores any dotenv file so tests see only what they pass in.
    """
    values = environment_overrides("testing")
    values["prompt_template"] = "Event {{ name }} fired"
    values.update(overrides)
    return Settings(_env_file=None, **values)  # type: ignore[call-arg]
