"""Trigger contract and the supervision every variant shares.

A trigger owns one background task per agent run. The task moves through
``IDLE -> RUNNING -> STOPPED`` and leaves ``RUNNING`` when the shutdown
broadcast fires, when the agent drops its receiving end, or when the
source itself is exhausted.
"""

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Awaitable, Optional, Tuple, TypeVar

import structlog

from ..events.channels import EventSender, ShutdownListener
from ..exceptions import ActivationError, ChannelClosedError

logger = structlog.get_logger()

T = TypeVar("T")


class TriggerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


async def race_shutdown(
    shutdown: ShutdownListener, awaitable: Awaitable[T]
) -> Tuple[bool, Optional[T]]:
    """Await ``awaitable`` unless shutdown fires first.

    Returns ``(stopped, result)``. When shutdown wins the pending work is
    cancelled and ``result`` is None.
    """
    work = asyncio.ensure_future(awaitable)
    if shutdown.triggered:
        work.cancel()
        await asyncio.gather(work, return_exceptions=True)
        return True, None

    stop = asyncio.ensure_future(shutdown.wait())
    try:
        done, pending = await asyncio.wait(
            {work, stop}, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        work.cancel()
        stop.cancel()
        raise

    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    if stop in done:
        if work in done and not work.cancelled():
            # Consume the result so a failure is not reported as unretrieved
            work.exception()
        return True, None
    return False, work.result()


class Trigger(ABC):
    """An asynchronous event source the agent can launch and stop."""

    name: str = "trigger"

    def __init__(self) -> None:
        self.state = TriggerState.IDLE

    async def launch(
        self, sender: EventSender, shutdown: ShutdownListener
    ) -> "asyncio.Task[None]":
        """Start the background task.

        The trigger takes ownership of ``sender`` and closes it when the
        task ends.

        Raises:
            ActivationError: if the trigger cannot start.
        """
        if self.state == TriggerState.RUNNING:
            raise ActivationError(f"Trigger {self.name} is already running")
        await self.activate()
        self.state = TriggerState.RUNNING
        return asyncio.create_task(
            self._supervise(sender, shutdown), name=f"trigger:{self.name}"
        )

    async def activate(self) -> None:
        """Hook for variants that must check resources before starting."""

    @abstractmethod
    async def run(self, sender: EventSender, shutdown: ShutdownListener) -> None:
        """Produce events until shutdown. Runs inside the trigger's task."""

    async def _supervise(
        self, sender: EventSender, shutdown: ShutdownListener
    ) -> None:
        logger.info("Trigger started", trigger=self.name)
        try:
            async with sender:
                await self.run(sender, shutdown)
        except ChannelClosedError:
            logger.warning(
                "Agent event channel closed, stopping trigger", trigger=self.name
            )
        finally:
            self.state = TriggerState.STOPPED
        logger.debug("Trigger task completed", trigger=self.name)
