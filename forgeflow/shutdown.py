"""Sources that ask a running agent to stop."""

import asyncio
import signal
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Dict, Optional, Sequence

import structlog

logger = structlog.get_logger()


class ShutdownHandler(ABC):
    """Resolves ``wait_for_signal`` when the agent should shut down."""

    @abstractmethod
    async def wait_for_signal(self) -> None:
        """Block until a shutdown has been requested."""


class SignalShutdown(ShutdownHandler):
    """Wait for SIGINT or SIGTERM. The agent's default handler."""

    def __init__(
        self, signals: Sequence[signal.Signals] = (signal.SIGINT, signal.SIGTERM)
    ) -> None:
        self.signals = tuple(signals)

    async def wait_for_signal(self) -> None:
        loop = asyncio.get_running_loop()
        received = asyncio.Event()
        installed = []
        previous: Dict[int, Any] = {}

        def on_signal(signum: int) -> None:
            logger.info("Shutdown signal received", signal=signum)
            received.set()

        for sig in self.signals:
            try:
                loop.add_signal_handler(sig, on_signal, sig)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                # No loop signal support (Windows, or not the main thread)
                def handler(signum: int, frame: Any) -> None:
                    loop.call_soon_threadsafe(on_signal, signum)

                previous[sig] = signal.signal(sig, handler)

        try:
            await received.wait()
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)
            for sig, old_handler in previous.items():
                signal.signal(sig, old_handler)


class TimeBasedShutdown(ShutdownHandler):
    """Trigger a shutdown after a fixed duration."""

    def __init__(self, duration: timedelta) -> None:
        self.duration = duration

    async def wait_for_signal(self) -> None:
        seconds = self.duration.total_seconds()
        logger.info("Agent shutdown scheduled", duration_seconds=seconds)
        await asyncio.sleep(seconds)
        logger.info("Time-based shutdown triggered", duration_seconds=seconds)


class EventShutdown(ShutdownHandler):
    """Programmatic shutdown: call ``request()`` from anywhere on the loop."""

    def __init__(self, event: Optional[asyncio.Event] = None) -> None:
        self.event = event or asyncio.Event()

    def request(self) -> None:
        self.event.set()

    async def wait_for_signal(self) -> None:
        await self.event.wait()
        logger.info("Programmatic shutdown requested")
