"""Custom exceptions for Forgeflow."""

import json
from typing import Any, Dict, List, Optional

PROMPT_ERROR_PREFIX = "Failed to prompt the model: "


class ForgeflowError(Exception):
    """Base exception for Forgeflow."""


class ConfigurationError(ForgeflowError):
    """Configuration-related errors."""


class MissingConfigError(ConfigurationError):
    """Required configuration is missing."""


class InvalidConfigError(ConfigurationError):
    """Configuration is invalid."""


class BuildError(ConfigurationError):
    """Agent was assembled without one or more required parts."""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(
            f"Agent cannot be built, missing: {', '.join(self.missing)}"
        )


class TemplateError(ForgeflowError):
    """Prompt template failed to parse or render."""


class PromptError(ForgeflowError):
    """A model call failed.

    The message is the provider's error text. Providers that speak the
    Google RPC error format put a JSON document here, shaped like
    ``{"error": {"code": 429, "message": ..., "details": [...]}}``.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{PROMPT_ERROR_PREFIX}{self.message}"

    @classmethod
    def from_provider(cls, body: Dict[str, Any]) -> "PromptError":
        """Build an error carrying a structured provider body."""
        return cls(json.dumps(body))

    @property
    def provider_error(self) -> Optional[Dict[str, Any]]:
        """The parsed ``error`` object, or None for unstructured errors."""
        text = self.message
        if text.startswith(PROMPT_ERROR_PREFIX):
            text = text[len(PROMPT_ERROR_PREFIX) :]
        try:
            body = json.loads(text)
        except (TypeError, ValueError):
            return None
        if not isinstance(body, dict):
            return None
        error = body.get("error")
        return error if isinstance(error, dict) else None

    @property
    def code(self) -> Optional[int]:
        """Numeric provider error code, if present."""
        error = self.provider_error
        if error is None:
            return None
        code = error.get("code")
        # bool is an int subclass but never a status code
        if isinstance(code, bool) or not isinstance(code, int):
            return None
        return code


class TriggerError(ForgeflowError):
    """Trigger-related errors."""


class ActivationError(TriggerError):
    """Trigger failed to start."""


class AuthError(ForgeflowError):
    """Credential loading or the authentication handshake failed."""


class ChannelClosedError(ForgeflowError):
    """The other end of a channel has gone away."""


class CollaboratorIOError(ForgeflowError):
    """I/O failure inside an external collaborator (API call, file access)."""
