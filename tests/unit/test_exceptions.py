"""Test custom exceptions."""

import pytest

from forgeflow.exceptions import (
    PROMPT_ERROR_PREFIX,
    ActivationError,
    AuthError,
    BuildError,
    ConfigurationError,
    ForgeflowError,
    PromptError,
    TemplateError,
    TriggerError,
)


def test_base_exception():
    """Test base exception."""
    with pytest.raises(ForgeflowError):
        raise ForgeflowError("Test error")


def test_configuration_error():
    """Test configuration error inheritance."""
    with pytest.raises(ForgeflowError):
        raise ConfigurationError("Config error")

    with pytest.raises(ConfigurationError):
        raise BuildError(["model"])


def test_trigger_error():
    """Test trigger error inheritance."""
    with pytest.raises(TriggerError):
        raise ActivationError("Cannot start")

    with pytest.raises(ForgeflowError):
        raise AuthError("Handshake failed")

    with pytest.raises(ForgeflowError):
        raise TemplateError("Bad template")


def test_build_error_lists_missing_fields():
    """BuildError names every missing field."""
    error = BuildError(["model", "prompt_template"])

    assert error.missing == ["model", "prompt_template"]
    assert "model" in str(error)
    assert "prompt_template" in str(error)


class TestPromptError:
    """Provider error parsing."""

    def test_str_carries_prefix(self):
        error = PromptError("quota exceeded")

        assert str(error) == f"{PROMPT_ERROR_PREFIX}quota exceeded"
        assert error.message == "quota exceeded"

    def test_structured_body_exposes_code(self):
        error = PromptError.from_provider({"error": {"code": 429, "message": "slow down"}})

        assert error.code == 429
        assert error.provider_error == {"code": 429, "message": "slow down"}

    def test_prefixed_body_is_still_parsed(self):
        error = PromptError(PROMPT_ERROR_PREFIX + '{"error": {"code": 503}}')

        assert error.code == 503

    def test_unstructured_message_has_no_code(self):
        error = PromptError("connection reset by peer")

        assert error.provider_error is None
        assert error.code is None

    @pytest.mark.parametrize(
        "body",
        [
            '["not", "an", "object"]',
            '{"error": "just text"}',
            '{"error": {"code": "429"}}',
            '{"error": {"code": true}}',
            '{"other": {"code": 429}}',
        ],
    )
    def test_malformed_bodies_have_no_code(self, body):
        assert PromptError(body).code is None
