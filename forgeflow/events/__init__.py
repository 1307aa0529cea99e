"""Event plumbing between triggers and the agent loop."""

from .channels import (
    EventChannel,
    EventReceiver,
    EventSender,
    ShutdownBroadcast,
    ShutdownListener,
)
from .event import Event

__all__ = [
    "Event",
    "EventChannel",
    "EventSender",
    "EventReceiver",
    "ShutdownBroadcast",
    "ShutdownListener",
]
