"""Event sources the agent can run."""

from .base import Trigger, TriggerState, race_shutdown
from .gmail_watch import GmailWatchTrigger, GmailWatchTriggerBuilder
from .poll import PollTrigger
from .telegram_bot import TelegramBotTrigger

__all__ = [
    "Trigger",
    "TriggerState",
    "race_shutdown",
    "PollTrigger",
    "GmailWatchTrigger",
    "GmailWatchTriggerBuilder",
    "TelegramBotTrigger",
]
