"""Main entry point for the Forgeflow agent runtime."""

import argparse
import asyncio
import importlib
import logging
import sys
from datetime import timedelta
from pathlib import Path
from typing import List

import structlog

from forgeflow import __version__
from forgeflow.agent import Agent, AgentConfig
from forgeflow.config import FeatureFlags, load_config
from forgeflow.config.settings import Settings
from forgeflow.exceptions import ConfigurationError, ForgeflowError
from forgeflow.llm.core import Model
from forgeflow.shutdown import ShutdownHandler, SignalShutdown, TimeBasedShutdown
from forgeflow.triggers import (
    GmailWatchTriggerBuilder,
    PollTrigger,
    TelegramBotTrigger,
    Trigger,
)
from forgeflow.utils.context_hub import ContextHub
from forgeflow.utils.google_auth import GConf


def setup_logging(debug: bool = False, log_level: str = "INFO") -> None:
    """Configure structured logging.

    ``--debug`` wins over ``log_level`` and switches to the console renderer.
    """
    level = logging.DEBUG if debug else logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout)
    logging.getLogger().setLevel(level)

    # Google and Telegram clients log every HTTP round trip at DEBUG
    noisy_loggers = (
        "httpx",
        "httpcore",
        "telegram",
        "telegram.ext",
        "googleapiclient",
        "google_auth_oauthlib",
    )
    noisy_level = logging.DEBUG if debug else logging.WARNING
    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(noisy_level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            (
                structlog.processors.JSONRenderer()
                if not debug
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Forgeflow agent runtime",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version", action="version", version=f"Forgeflow {__version__}"
    )

    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    parser.add_argument("--config-file", type=Path, help="Path to configuration file")

    return parser.parse_args()


def load_model(import_path: str) -> Model:
    """Instantiate a model from a ``package.module:callable`` path."""
    module_name, _, attr = import_path.partition(":")
    try:
        factory = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Cannot import model factory {import_path}: {e}") from e

    model = factory()
    if not isinstance(model, Model):
        raise ConfigurationError(
            f"Model factory {import_path} returned {type(model).__name__}, not a Model"
        )
    return model


async def create_triggers(config: Settings) -> List[Trigger]:
    """Build every enabled trigger from settings."""
    features = FeatureFlags(config)
    triggers: List[Trigger] = []

    if features.poll_trigger_enabled:
        triggers.append(
            PollTrigger(
                config.poll_event_name,
                timedelta(seconds=config.poll_interval_seconds),
                hot_start=config.poll_hot_start,
            )
        )

    if features.telegram_trigger_enabled:
        triggers.append(
            TelegramBotTrigger(
                token=config.telegram_token_str,
                poll_timeout=config.telegram_poll_timeout_seconds,
            )
        )

    if features.gmail_trigger_enabled:
        hub = ContextHub(
            GConf(
                credentials_path=config.gmail_credentials_path,  # type: ignore[arg-type]
                token_path=config.gmail_token_path,
            )
        )
        # Every consumer registers its scopes before the first build()
        gmail_builder = GmailWatchTriggerBuilder(
            hub,
            interval=timedelta(seconds=config.gmail_poll_interval_seconds),
            query=config.gmail_query,
        )
        triggers.append(await gmail_builder.build())

    return triggers


async def create_agent(config: Settings) -> Agent:
    """Create and configure the agent from settings."""
    logger = structlog.get_logger()
    logger.info("Creating agent components")

    model = load_model(config.model_factory) if config.model_factory else None

    shutdown_handler: ShutdownHandler
    if config.shutdown_after_seconds is not None:
        shutdown_handler = TimeBasedShutdown(
            timedelta(seconds=config.shutdown_after_seconds)
        )
    else:
        shutdown_handler = SignalShutdown()

    agent = AgentConfig(
        model=model,
        prompt_template=config.resolved_prompt_template,
        triggers=await create_triggers(config),
        shutdown_handler=shutdown_handler,
        retry_config=config.retry_config,
        grace_period=config.shutdown_grace_period,
    ).build()

    logger.info("Agent components created successfully", triggers=len(agent.triggers))
    return agent


async def run_application(agent: Agent) -> None:
    """Run the agent until it shuts down."""
    logger = structlog.get_logger()
    logger.info("Starting Forgeflow agent")
    try:
        await agent.run()
    except Exception as e:
        logger.error("Application error", error=str(e))
        raise
    finally:
        logger.info("Application shutdown complete")


async def main() -> None:
    """Main application entry point."""
    args = parse_args()
    setup_logging(debug=args.debug)

    logger = structlog.get_logger()
    logger.info("Starting Forgeflow", version=__version__)

    try:
        config = load_config(config_file=args.config_file)
        if not args.debug:
            logging.getLogger().setLevel(config.log_level.upper())
        features = FeatureFlags(config)

        logger.info(
            "Configuration loaded",
            environment=config.environment,
            enabled_features=features.get_enabled_features(),
            debug=config.debug,
        )

        agent = await create_agent(config)
        await run_application(agent)

    except ConfigurationError as e:
        logger.error("Configuration error", error=str(e))
        sys.exit(1)
    except ForgeflowError as e:
        logger.error("Startup failed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)
    except Exception as e:
        logger.exception("Unexpected error", error=str(e))
        sys.exit(1)


def run() -> None:
    """Synchronous entry point for setuptools."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
        sys.exit(0)


if __name__ == "__main__":
    run()
