"""Tests for the event channel and shutdown broadcast."""

import asyncio

import pytest

from forgeflow.events import Event, EventChannel
from forgeflow.exceptions import ChannelClosedError


class TestEvent:
    def test_to_dict(self):
        event = Event("NewEmail", {"id": "abc"})

        assert event.to_dict() == {"name": "NewEmail", "payload": {"id": "abc"}}

    def test_payload_defaults_to_none(self):
        assert Event("Tick").to_dict() == {"name": "Tick", "payload": None}

    def test_events_are_immutable(self):
        event = Event("Tick")

        with pytest.raises(AttributeError):
            event.name = "Other"  # type: ignore[misc]


class TestEventChannel:
    """Tests for EventChannel."""

    async def test_events_arrive_in_send_order(self, channel):
        """A single sender's events are received in order."""
        sender = channel.sender
        for index in range(3):
            await sender.send(Event("Tick", index))
        await sender.close()

        received = []
        while (event := await channel.receiver.recv()) is not None:
            received.append(event.payload)

        assert received == [0, 1, 2]

    async def test_recv_returns_none_after_all_senders_close(self, channel):
        """The receiver sees end-of-stream only when every clone is closed."""
        clone = channel.sender.clone()
        await channel.sender.close()

        recv_task = asyncio.create_task(channel.receiver.recv())
        await asyncio.sleep(0.01)
        assert not recv_task.done()

        await clone.send(Event("Late"))
        assert (await recv_task).name == "Late"

        await clone.close()
        assert await channel.receiver.recv() is None

    async def test_send_blocks_while_full(self):
        """Senders wait for capacity instead of dropping events."""
        channel = EventChannel(capacity=1)
        await channel.sender.send(Event("first"))

        blocked = asyncio.create_task(channel.sender.send(Event("second")))
        await asyncio.sleep(0.01)
        assert not blocked.done()
        assert channel.receiver.qsize() == 1

        assert (await channel.receiver.recv()).name == "first"
        await asyncio.wait_for(blocked, timeout=1)
        assert (await channel.receiver.recv()).name == "second"

    async def test_send_fails_after_receiver_closed(self, channel):
        await channel.receiver.close()

        with pytest.raises(ChannelClosedError):
            await channel.sender.send(Event("Tick"))

    async def test_closing_receiver_wakes_blocked_sender(self):
        channel = EventChannel(capacity=1)
        await channel.sender.send(Event("first"))
        blocked = asyncio.create_task(channel.sender.send(Event("second")))
        await asyncio.sleep(0.01)

        await channel.receiver.close()

        with pytest.raises(ChannelClosedError):
            await asyncio.wait_for(blocked, timeout=1)
        assert channel.receiver.qsize() == 0

    async def test_closed_receiver_returns_none(self, channel):
        await channel.sender.send(Event("Tick"))
        await channel.receiver.close()

        assert await channel.receiver.recv() is None

    async def test_sender_close_is_idempotent(self, channel):
        clone = channel.sender.clone()
        await clone.close()
        await clone.close()
        await channel.sender.close()

        assert clone.closed
        assert await channel.receiver.recv() is None

    async def test_closed_sender_rejects_use(self, channel):
        await channel.sender.close()

        with pytest.raises(ChannelClosedError):
            channel.sender.clone()
        with pytest.raises(ChannelClosedError):
            await channel.sender.send(Event("Tick"))

    async def test_sender_context_manager_closes(self, channel):
        async with channel.sender.clone() as sender:
            await sender.send(Event("Tick"))
        await channel.sender.close()

        assert (await channel.receiver.recv()).name == "Tick"
        assert await channel.receiver.recv() is None

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            EventChannel(capacity=0)


class TestShutdownBroadcast:
    """Tests for ShutdownBroadcast."""

    async def test_send_wakes_every_listener(self, broadcast):
        listeners = [broadcast.subscribe() for _ in range(3)]
        waiters = [asyncio.create_task(listener.wait()) for listener in listeners]
        await asyncio.sleep(0)

        assert broadcast.send() == 3

        await asyncio.wait_for(asyncio.gather(*waiters), timeout=1)
        assert all(listener.triggered for listener in listeners)
        assert broadcast.sent

    async def test_listener_not_triggered_before_send(self, broadcast):
        listener = broadcast.subscribe()

        assert not listener.triggered
        assert not broadcast.sent

    async def test_late_subscriber_misses_signal(self, broadcast):
        broadcast.send()

        assert not broadcast.subscribe().triggered

    async def test_send_without_listeners(self, broadcast):
        assert broadcast.send() == 0
