"""Interval trigger: fires the same named event on a fixed cadence."""

import asyncio
from datetime import timedelta

import structlog

from ..events.channels import EventSender, ShutdownListener
from ..events.event import Event
from .base import Trigger, race_shutdown

logger = structlog.get_logger()


class PollTrigger(Trigger):
    """Emit ``Event(event_name)`` every ``interval``.

    With ``hot_start`` the first event fires immediately on launch,
    otherwise one full interval after it. Ticks missed while the agent
    applies backpressure are skipped rather than replayed in a burst.
    """

    name = "poll"

    def __init__(
        self, event_name: str, interval: timedelta, hot_start: bool = False
    ) -> None:
        super().__init__()
        if interval <= timedelta(0):
            raise ValueError("Poll interval must be positive")
        self.event_name = event_name
        self.interval = interval
        self.hot_start = hot_start

    async def run(self, sender: EventSender, shutdown: ShutdownListener) -> None:
        loop = asyncio.get_running_loop()
        period = self.interval.total_seconds()
        next_tick = loop.time() + (0.0 if self.hot_start else period)

        logger.info(
            "PollTrigger started",
            trigger_name=self.event_name,
            interval_seconds=period,
            hot_start=self.hot_start,
        )

        while True:
            delay = max(0.0, next_tick - loop.time())
            stopped, _ = await race_shutdown(shutdown, asyncio.sleep(delay))
            if stopped:
                logger.info(
                    "PollTrigger received shutdown signal, terminating",
                    trigger_name=self.event_name,
                )
                return

            logger.debug("Firing event", trigger_name=self.event_name)
            await sender.send(Event(name=self.event_name))

            next_tick += period
            now = loop.time()
            if next_tick <= now:
                next_tick = now + period
