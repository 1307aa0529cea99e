"""Test configuration loading and validation."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from forgeflow.config import Settings, create_test_config, load_config
from forgeflow.config.features import FeatureFlags
from forgeflow.exceptions import ConfigurationError
from forgeflow.llm.config import RetryStrategy

CONFIG_ENV_VARS = (
    "PROMPT_TEMPLATE",
    "PROMPT_TEMPLATE_PATH",
    "MODEL_FACTORY",
    "ENABLE_POLL_TRIGGER",
    "ENABLE_GMAIL_TRIGGER",
    "ENABLE_TELEGRAM_TRIGGER",
    "TELEGRAM_BOT_TOKEN",
    "GMAIL_CREDENTIALS_PATH",
    "RETRY_ENABLED",
    "RETRY_STRATEGY",
    "ENVIRONMENT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Clear environment variables that would leak into Settings."""
    for name in CONFIG_ENV_VARS:
        # setenv first so the variable is removed again on teardown
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_settings_defaults():
    """Settings without any input fall back to documented defaults."""
    settings = Settings(_env_file=None)

    assert settings.prompt_template is None
    assert settings.model_factory is None
    assert settings.enable_poll_trigger is False
    assert settings.shutdown_grace_period == timedelta(seconds=10)

    retry = settings.retry_config
    assert retry is not None
    assert retry.max_attempts == 3
    assert retry.base_delay == timedelta(milliseconds=1000)
    assert retry.strategy == RetryStrategy.EXPONENTIAL_BACKOFF_WITH_JITTER
    assert retry.only_retry_rate_limits is True


def test_create_test_config():
    """The test helper fills in a template but leaves the model to the caller."""
    settings = create_test_config(enable_poll_trigger=True)

    assert settings.environment == "testing"
    assert settings.model_factory is None
    assert settings.resolved_prompt_template == "Event {{ name }} fired"
    assert settings.retry_base_delay_ms == 10
    assert settings.enable_poll_trigger is True


def test_template_options_are_exclusive(tmp_path):
    """Inline template and template file cannot both be set."""
    template_file = tmp_path / "prompt.j2"
    template_file.write_text("Hello {{ name }}")

    with pytest.raises(ValidationError):
        Settings(
            _env_file=None,
            prompt_template="inline",
            prompt_template_path=str(template_file),
        )


def test_template_file_is_read(tmp_path):
    """The template text comes from disk when configured by path."""
    template_file = tmp_path / "prompt.j2"
    template_file.write_text("Hello {{ name }}\n")

    settings = Settings(_env_file=None, prompt_template_path=str(template_file))

    assert settings.resolved_prompt_template == "Hello {{ name }}\n"


def test_missing_template_file_is_rejected(tmp_path):
    with pytest.raises(ValidationError) as exc_info:
        Settings(_env_file=None, prompt_template_path=str(tmp_path / "missing.j2"))

    assert "does not exist" in str(exc_info.value)


def test_blank_template_path_is_unset():
    settings = Settings(_env_file=None, prompt_template_path="  ")

    assert settings.prompt_template_path is None


@pytest.mark.parametrize("value", ["no_colon", ":callable", "module:"])
def test_model_factory_format(value):
    """model_factory must look like module:callable."""
    with pytest.raises(ValidationError):
        Settings(_env_file=None, model_factory=value)


def test_retry_strategy_is_case_insensitive():
    settings = Settings(_env_file=None, retry_strategy="FIXED")

    assert settings.retry_strategy == RetryStrategy.FIXED
    assert settings.retry_config.strategy == RetryStrategy.FIXED


def test_retry_can_be_disabled():
    settings = Settings(_env_file=None, retry_enabled=False)

    assert settings.retry_config is None


def test_telegram_requires_token():
    """Enabling the chat trigger without a token is rejected."""
    with pytest.raises(ValidationError):
        Settings(_env_file=None, enable_telegram_trigger=True)


def test_telegram_token_is_secret():
    settings = Settings(
        _env_file=None, enable_telegram_trigger=True, telegram_bot_token="secret"
    )

    assert settings.telegram_token_str == "secret"
    assert "secret" not in repr(settings.telegram_bot_token)


def test_gmail_requires_credentials():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, enable_gmail_trigger=True)


def test_feature_flags():
    """Feature flags reflect the enabled triggers."""
    settings = create_test_config(
        enable_poll_trigger=True,
        enable_telegram_trigger=True,
        telegram_bot_token="token",
        shutdown_after_seconds=5,
    )
    features = FeatureFlags(settings)

    assert features.poll_trigger_enabled is True
    assert features.telegram_trigger_enabled is True
    assert features.gmail_trigger_enabled is False
    assert features.is_feature_enabled("retry") is True
    assert features.is_feature_enabled("unknown") is False
    assert features.get_enabled_features() == [
        "poll_trigger",
        "telegram_trigger",
        "retry",
        "timed_shutdown",
        "development",
    ]


def test_retry_feature_off_with_zero_attempts():
    settings = create_test_config(retry_max_attempts=0)

    assert FeatureFlags(settings).retry_enabled is False


def test_load_config_from_environment(monkeypatch, tmp_path):
    """load_config reads environment variables and applies overrides."""
    monkeypatch.setenv("PROMPT_TEMPLATE", "Got {{ name }}")
    monkeypatch.setenv("MODEL_FACTORY", "tests.fakes:EchoModel")
    monkeypatch.setenv("ENABLE_POLL_TRIGGER", "true")

    settings = load_config(env="testing", config_file=tmp_path / "missing.env")

    assert settings.environment == "testing"
    assert settings.prompt_template == "Got {{ name }}"
    assert settings.enable_poll_trigger is True
    assert settings.shutdown_grace_seconds == 0.1


def test_load_config_production_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("PROMPT_TEMPLATE", "Got {{ name }}")
    monkeypatch.setenv("MODEL_FACTORY", "tests.fakes:EchoModel")

    settings = load_config(env="production", config_file=tmp_path / "missing.env")

    assert settings.is_production
    assert settings.retry_max_attempts == 5
    assert settings.debug is False


def test_load_config_from_dotenv_file(tmp_path):
    """Values in the configuration file are picked up."""
    env_file = tmp_path / "agent.env"
    env_file.write_text(
        "PROMPT_TEMPLATE=From file {{ name }}\nMODEL_FACTORY=tests.fakes:EchoModel\n"
    )

    settings = load_config(env="development", config_file=env_file)

    assert settings.prompt_template == "From file {{ name }}"
    assert settings.debug is True


def test_load_config_requires_model_factory(monkeypatch, tmp_path):
    monkeypatch.setenv("PROMPT_TEMPLATE", "Got {{ name }}")

    with pytest.raises(ConfigurationError) as exc_info:
        load_config(env="testing", config_file=tmp_path / "missing.env")

    assert "MODEL_FACTORY" in str(exc_info.value)


def test_load_config_requires_template(monkeypatch, tmp_path):
    monkeypatch.setenv("MODEL_FACTORY", "tests.fakes:EchoModel")

    with pytest.raises(ConfigurationError):
        load_config(env="testing", config_file=tmp_path / "missing.env")


def test_load_config_checks_gmail_credentials(monkeypatch, tmp_path):
    monkeypatch.setenv("PROMPT_TEMPLATE", "Got {{ name }}")
    monkeypatch.setenv("MODEL_FACTORY", "tests.fakes:EchoModel")
    monkeypatch.setenv("ENABLE_GMAIL_TRIGGER", "true")
    monkeypatch.setenv("GMAIL_CREDENTIALS_PATH", str(tmp_path / "nope.json"))

    with pytest.raises(ConfigurationError) as exc_info:
        load_config(env="testing", config_file=tmp_path / "missing.env")

    assert "credential" in str(exc_info.value).lower()


def test_log_level_is_normalised():
    assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    with pytest.raises(ValidationError):
        Settings(_env_file=None, log_level="chatty")
