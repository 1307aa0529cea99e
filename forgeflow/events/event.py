"""The unit of work triggers hand to the agent."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Event:
    """A named occurrence with an optional JSON-like payload."""

    name: str
    payload: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON projection used as the prompt template context."""
        return {"name": self.name, "payload": self.payload}
