"""Configuration management using Pydantic Settings.

Features:
- Environment variable loading
- Type validation
- Default values
- Computed properties
- Environment-specific settings

Secrets and paths are resolved here and handed to components as plain
constructor arguments; nothing below the bootstrap layer reads the
environment.
"""

from datetime import timedelta
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..llm.config import RetryConfig, RetryStrategy
from ..utils.constants import (
    DEFAULT_GMAIL_POLL_INTERVAL_SECONDS,
    DEFAULT_GMAIL_QUERY,
    DEFAULT_RETRY_BASE_DELAY_MS,
    DEFAULT_RETRY_MAX_ATTEMPTS,
    DEFAULT_SHUTDOWN_GRACE_SECONDS,
    DEFAULT_TELEGRAM_POLL_TIMEOUT_SECONDS,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Agent
    prompt_template: Optional[str] = Field(
        None, description="Prompt template rendered for every event"
    )
    prompt_template_path: Optional[Path] = Field(
        None, description="File containing the prompt template"
    )
    model_factory: Optional[str] = Field(
        None,
        description="Import path 'package.module:callable' returning a Model",
    )

    # Retry policy for model calls
    retry_enabled: bool = Field(True, description="Wrap the model in the retry decorator")
    retry_max_attempts: int = Field(
        DEFAULT_RETRY_MAX_ATTEMPTS, description="Retries after the first call", ge=0
    )
    retry_base_delay_ms: int = Field(
        DEFAULT_RETRY_BASE_DELAY_MS, description="Base backoff delay", ge=0
    )
    retry_strategy: RetryStrategy = Field(
        RetryStrategy.EXPONENTIAL_BACKOFF_WITH_JITTER,
        description="fixed, exponential or exponential_jitter",
    )
    retry_only_rate_limits: bool = Field(
        True, description="Only retry HTTP 429 provider errors"
    )

    # Shutdown
    shutdown_grace_seconds: float = Field(
        DEFAULT_SHUTDOWN_GRACE_SECONDS,
        description="How long an in-flight model call may finish after shutdown",
        ge=0,
    )
    shutdown_after_seconds: Optional[float] = Field(
        None, description="Stop automatically after this many seconds"
    )

    # Poll trigger
    enable_poll_trigger: bool = Field(False, description="Enable the interval trigger")
    poll_event_name: str = Field("Tick", description="Name of the emitted event")
    poll_interval_seconds: float = Field(60.0, description="Seconds between events", gt=0)
    poll_hot_start: bool = Field(False, description="Fire immediately on launch")

    # Gmail trigger
    enable_gmail_trigger: bool = Field(False, description="Enable the mailbox trigger")
    gmail_credentials_path: Optional[Path] = Field(
        None, description="OAuth client secret JSON"
    )
    gmail_token_path: Path = Field(
        Path("data/gmail_token.json"), description="Where the OAuth token is cached"
    )
    gmail_poll_interval_seconds: float = Field(
        DEFAULT_GMAIL_POLL_INTERVAL_SECONDS, description="Mailbox poll cadence", gt=0
    )
    gmail_query: str = Field(DEFAULT_GMAIL_QUERY, description="Gmail search query")

    # Telegram trigger
    enable_telegram_trigger: bool = Field(
        False, description="Enable the Telegram chat trigger"
    )
    telegram_bot_token: Optional[SecretStr] = Field(
        None, description="Telegram bot token from BotFather"
    )
    telegram_poll_timeout_seconds: int = Field(
        DEFAULT_TELEGRAM_POLL_TIMEOUT_SECONDS,
        description="Long-poll timeout for getUpdates",
        ge=0,
    )

    # Monitoring
    log_level: str = Field("INFO", description="Logging level")

    # Development
    debug: bool = Field(False, description="Enable debug mode")
    development_mode: bool = Field(False, description="Enable development features")
    environment: Literal["development", "testing", "production"] = Field(
        "development", description="Deployment environment"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
        protected_namespaces=(),
    )

    @field_validator("retry_strategy", mode="before")
    @classmethod
    def parse_retry_strategy(cls, v: Any) -> Any:
        """Accept enum values case-insensitively."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("prompt_template_path", "gmail_credentials_path", mode="before")
    @classmethod
    def blank_path_is_unset(cls, v: Any) -> Optional[Path]:
        """Treat blank paths as unset instead of Path('.')"""
        if v is None:
            return None
        if isinstance(v, str) and not v.strip():
            return None
        return v  # type: ignore[no-any-return]

    @field_validator("prompt_template_path")
    @classmethod
    def validate_prompt_template_path(cls, v: Optional[Path]) -> Optional[Path]:
        if v is None:
            return None
        if not v.is_file():
            raise ValueError(f"Prompt template file does not exist: {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("model_factory")
    @classmethod
    def validate_model_factory(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        module, _, attr = v.strip().partition(":")
        if not module or not attr:
            raise ValueError("model_factory must look like 'package.module:callable'")
        return v.strip()

    @model_validator(mode="after")
    def validate_cross_field_dependencies(self) -> "Settings":
        """Validate settings that depend on each other."""
        if self.prompt_template is not None and self.prompt_template_path is not None:
            raise ValueError("Set only one of prompt_template and prompt_template_path")
        if self.enable_telegram_trigger and self.telegram_bot_token is None:
            raise ValueError("Telegram trigger enabled but no telegram_bot_token set")
        if self.enable_gmail_trigger and self.gmail_credentials_path is None:
            raise ValueError("Gmail trigger enabled but no gmail_credentials_path set")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def telegram_token_str(self) -> Optional[str]:
        """Get Telegram token as string."""
        if self.telegram_bot_token is None:
            return None
        return self.telegram_bot_token.get_secret_value()

    @property
    def resolved_prompt_template(self) -> Optional[str]:
        """The template text, read from disk when configured by path."""
        if self.prompt_template_path is not None:
            return self.prompt_template_path.read_text(encoding="utf-8")
        return self.prompt_template

    @property
    def retry_config(self) -> Optional[RetryConfig]:
        """Retry policy for the agent, or None when retry is disabled."""
        if not self.retry_enabled:
            return None
        return RetryConfig(
            max_attempts=self.retry_max_attempts,
            base_delay=timedelta(milliseconds=self.retry_base_delay_ms),
            strategy=self.retry_strategy,
            only_retry_rate_limits=self.retry_only_rate_limits,
        )

    @property
    def shutdown_grace_period(self) -> timedelta:
        return timedelta(seconds=self.shutdown_grace_seconds)
