"""Chat trigger: long-polls the Telegram Bot API for incoming messages."""

import asyncio
from datetime import timedelta
from typing import Any, Dict, Optional

import structlog
from telegram import Bot, Message, Update
from telegram.error import RetryAfter, TelegramError

from ..events.channels import EventSender, ShutdownListener
from ..events.event import Event
from ..exceptions import ActivationError
from ..utils.constants import (
    DEFAULT_TELEGRAM_POLL_TIMEOUT_SECONDS,
    TELEGRAM_ERROR_BACKOFF_SECONDS,
    TELEGRAM_EVENT_NAME,
)
from .base import Trigger, race_shutdown

logger = structlog.get_logger()


def message_payload(message: Message) -> Dict[str, Any]:
    """JSON-friendly projection of a Telegram text message."""
    user = message.from_user
    return {
        "message_id": message.message_id,
        "chat_id": message.chat.id,
        "username": user.username if user else None,
        "first_name": user.first_name if user else None,
        "text": message.text,
        "date": int(message.date.timestamp()),
    }


class TelegramBotTrigger(Trigger):
    """Emit ``TelegramMessage`` events for text messages sent to the bot."""

    name = "telegram_bot"

    def __init__(
        self,
        token: Optional[str] = None,
        bot: Optional[Bot] = None,
        poll_timeout: int = DEFAULT_TELEGRAM_POLL_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__()
        if bot is None:
            if not token:
                raise ActivationError("A Telegram bot token is required")
            bot = Bot(token)
        self.bot = bot
        self.poll_timeout = poll_timeout
        self._offset: Optional[int] = None

    async def activate(self) -> None:
        try:
            await self.bot.initialize()
        except TelegramError as e:
            raise ActivationError(f"Telegram bot failed to initialize: {e}") from e

    async def run(self, sender: EventSender, shutdown: ShutdownListener) -> None:
        logger.info("TelegramBotTrigger started, listening for messages")
        try:
            await self._poll(sender, shutdown)
        finally:
            await self.bot.shutdown()
        logger.debug("TelegramBotTrigger task completed")

    async def _poll(self, sender: EventSender, shutdown: ShutdownListener) -> None:
        while True:
            try:
                stopped, updates = await race_shutdown(
                    shutdown,
                    self.bot.get_updates(
                        offset=self._offset,
                        timeout=self.poll_timeout,
                        allowed_updates=[Update.MESSAGE],
                    ),
                )
            except TelegramError as e:
                delay = self._backoff_for(e)
                logger.warning(
                    "Telegram polling failed", error=str(e), retry_in_seconds=delay
                )
                stopped, _ = await race_shutdown(shutdown, asyncio.sleep(delay))
                if stopped:
                    break
                continue

            if stopped:
                logger.info("TelegramBotTrigger received shutdown signal, terminating")
                break

            for update in updates or ():
                self._offset = update.update_id + 1
                message = update.message
                if message is None or message.text is None:
                    continue
                await sender.send(
                    Event(name=TELEGRAM_EVENT_NAME, payload=message_payload(message))
                )
                logger.debug("Sent Telegram event", message_id=message.message_id)

    @staticmethod
    def _backoff_for(error: TelegramError) -> float:
        if isinstance(error, RetryAfter):
            retry_after = error.retry_after
            if isinstance(retry_after, timedelta):
                return retry_after.total_seconds()
            return float(retry_after)
        return TELEGRAM_ERROR_BACKOFF_SECONDS
