"""The model contract the agent drives."""

from abc import ABC, abstractmethod


class Model(ABC):
    """Prompt-in, text-out capability.

    Implementations wrap a provider SDK (or another ``Model``, for
    decorators) and raise ``PromptError`` for any failure of the
    prompt/response cycle: network errors, rate limiting, invalid
    responses, authentication failures.
    """

    @abstractmethod
    async def prompt(self, text: str) -> str:
        """Send ``text`` to the model and return its response."""
