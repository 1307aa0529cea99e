"""Async plumbing between triggers and the agent.

Two primitives:

- ``EventChannel``: a bounded, multi-producer single-consumer queue. Senders
  block while the buffer is full (backpressure, never drop). The receiver
  sees ``None`` once every sender has been closed and the buffer drained;
  senders get ``ChannelClosedError`` once the receiver is closed.
- ``ShutdownBroadcast``: a one-shot fan-out signal. Each subscriber gets its
  own ``ShutdownListener``; ``send()`` wakes all current listeners.
"""

import asyncio
from collections import deque
from typing import Deque, List, Optional

import structlog

from ..exceptions import ChannelClosedError
from ..utils.constants import DEFAULT_EVENT_CHANNEL_CAPACITY
from .event import Event

logger = structlog.get_logger()


class _ChannelState:
    """Shared state behind one sender/receiver family."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("channel capacity must be at least 1")
        self.capacity = capacity
        self.buffer: Deque[Event] = deque()
        self.senders = 0
        self.receiver_closed = False
        self.condition = asyncio.Condition()


class EventSender:
    """Producer handle. Clone one per trigger; close it when done."""

    def __init__(self, state: _ChannelState) -> None:
        self._state = state
        self._closed = False
        state.senders += 1

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def receiver_closed(self) -> bool:
        return self._state.receiver_closed

    def clone(self) -> "EventSender":
        """Create another sender feeding the same receiver."""
        if self._closed:
            raise ChannelClosedError("Cannot clone a closed sender")
        return EventSender(self._state)

    async def send(self, event: Event) -> None:
        """Enqueue an event, waiting while the channel is full.

        Raises:
            ChannelClosedError: if the receiver has been closed.
        """
        if self._closed:
            raise ChannelClosedError("Sender already closed")
        state = self._state
        async with state.condition:
            while (
                len(state.buffer) >= state.capacity and not state.receiver_closed
            ):
                await state.condition.wait()
            if state.receiver_closed:
                raise ChannelClosedError("Event receiver has been closed")
            state.buffer.append(event)
            state.condition.notify_all()

    async def close(self) -> None:
        """Drop this sender. Idempotent."""
        if self._closed:
            return
        self._closed = True
        state = self._state
        async with state.condition:
            state.senders -= 1
            state.condition.notify_all()

    async def __aenter__(self) -> "EventSender":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


class EventReceiver:
    """The single consumer end of an ``EventChannel``."""

    def __init__(self, state: _ChannelState) -> None:
        self._state = state

    @property
    def closed(self) -> bool:
        return self._state.receiver_closed

    def qsize(self) -> int:
        return len(self._state.buffer)

    async def recv(self) -> Optional[Event]:
        """Next event, or None once all senders are gone and nothing is left."""
        state = self._state
        async with state.condition:
            while not state.buffer:
                if state.senders == 0 or state.receiver_closed:
                    return None
                await state.condition.wait()
            event = state.buffer.popleft()
            state.condition.notify_all()
            return event

    async def close(self) -> None:
        """Stop accepting events; blocked and future sends fail."""
        state = self._state
        async with state.condition:
            if state.receiver_closed:
                return
            state.receiver_closed = True
            dropped = len(state.buffer)
            state.buffer.clear()
            state.condition.notify_all()
        if dropped:
            logger.debug("Event receiver closed with pending events", dropped=dropped)


class EventChannel:
    """Factory pairing one receiver with an initial sender."""

    def __init__(self, capacity: int = DEFAULT_EVENT_CHANNEL_CAPACITY) -> None:
        state = _ChannelState(capacity)
        self.sender = EventSender(state)
        self.receiver = EventReceiver(state)


class ShutdownListener:
    """One subscription to a ``ShutdownBroadcast``."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def triggered(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        """Resolve once shutdown has been broadcast."""
        await self._event.wait()

    def _fire(self) -> None:
        self._event.set()


class ShutdownBroadcast:
    """Fan-out stop signal with no acknowledgment.

    Listeners subscribed after ``send()`` do not observe it, matching
    broadcast-channel semantics.
    """

    def __init__(self) -> None:
        self._listeners: List[ShutdownListener] = []
        self._sent = False

    @property
    def sent(self) -> bool:
        return self._sent

    def subscribe(self) -> ShutdownListener:
        listener = ShutdownListener()
        self._listeners.append(listener)
        return listener

    def send(self) -> int:
        """Wake every listener. Returns how many were notified."""
        self._sent = True
        for listener in self._listeners:
            listener._fire()
        notified = len(self._listeners)
        logger.debug("Shutdown broadcast sent", listeners=notified)
        return notified
