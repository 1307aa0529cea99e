"""The agent: runs triggers, turns their events into prompts, drives the model.

Lifecycle of ``Agent.run()``:

1. Launch every trigger against one bounded event channel and one shutdown
   broadcast. A trigger that fails to launch is logged and left out.
2. Race the event loop against the shutdown handler.
3. Broadcast shutdown, close the receiving end, and wait for every trigger
   task to finish.
4. Give a prompt that is still in flight a grace period to complete, then
   cancel it.

Events are processed one at a time, so at most one model call is in flight.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

import structlog

from .events.channels import EventChannel, EventReceiver, ShutdownBroadcast
from .events.event import Event
from .exceptions import ActivationError, BuildError, PromptError, TemplateError
from .llm.config import RetryConfig
from .llm.core import Model
from .llm.factory import wrap_model
from .shutdown import ShutdownHandler, SignalShutdown
from .triggers.base import Trigger
from .utils.constants import (
    DEFAULT_EVENT_CHANNEL_CAPACITY,
    DEFAULT_SHUTDOWN_GRACE_SECONDS,
    PROMPT_TEMPLATE_NAME,
)
from .utils.template import TemplateEngine

logger = structlog.get_logger()


@dataclass
class AgentConfig:
    """Everything an agent is assembled from.

    ``model`` and ``prompt_template`` are required. ``retry_config``
    defaults to the standard rate-limit policy; pass ``None`` or
    ``RetryConfig.disabled()`` to call the model undecorated.
    """

    model: Optional[Model] = None
    prompt_template: Optional[str] = None
    triggers: List[Trigger] = field(default_factory=list)
    shutdown_handler: Optional[ShutdownHandler] = None
    retry_config: Optional[RetryConfig] = field(default_factory=RetryConfig)
    grace_period: timedelta = timedelta(seconds=DEFAULT_SHUTDOWN_GRACE_SECONDS)
    channel_capacity: int = DEFAULT_EVENT_CHANNEL_CAPACITY

    def validate(self) -> None:
        """Raise ``BuildError`` naming every missing required field."""
        missing = []
        if self.model is None:
            missing.append("model")
        if self.prompt_template is None:
            missing.append("prompt_template")
        if missing:
            raise BuildError(missing)

    def build(self) -> "Agent":
        return Agent(self)


@dataclass
class LaunchedTriggers:
    """Handles produced by ``Agent.launch_triggers``."""

    receiver: EventReceiver
    broadcast: ShutdownBroadcast
    handles: List["asyncio.Task[None]"] = field(default_factory=list)


class Agent:
    """Orchestrates triggers, prompt rendering and the model."""

    def __init__(self, config: AgentConfig):
        config.validate()

        self.templates = TemplateEngine()
        self.templates.register_template_string(
            PROMPT_TEMPLATE_NAME, config.prompt_template  # type: ignore[arg-type]
        )
        self.prompt_template = config.prompt_template
        self.triggers = list(config.triggers)
        self.model = wrap_model(config.model, config.retry_config)  # type: ignore[arg-type]
        self.shutdown_handler = config.shutdown_handler or SignalShutdown()
        self.grace_period = config.grace_period
        self.channel_capacity = config.channel_capacity

        self._inflight = 0
        self._pending: Optional["asyncio.Task[str]"] = None
        self._running = False

    @property
    def inflight(self) -> int:
        """Number of model calls currently awaiting completion."""
        return self._inflight

    async def run(self) -> None:
        """Run until the event channel closes or shutdown is requested."""
        if self._running:
            raise RuntimeError("Agent is already running")
        self._running = True
        try:
            launched = await self.launch_triggers()
            try:
                await self._race_shutdown(launched.receiver)
            finally:
                await self.shutdown_triggers(launched)
        finally:
            self._running = False
        logger.info("Agent has shut down gracefully")

    async def launch_triggers(self) -> LaunchedTriggers:
        """Launch every trigger. Failures are logged and skipped."""
        channel = EventChannel(self.channel_capacity)
        launched = LaunchedTriggers(
            receiver=channel.receiver, broadcast=ShutdownBroadcast()
        )

        logger.info("Launching triggers", trigger_count=len(self.triggers))
        for index, trigger in enumerate(self.triggers):
            sender = channel.sender.clone()
            shutdown = launched.broadcast.subscribe()
            try:
                handle = await trigger.launch(sender, shutdown)
            except ActivationError as e:
                await sender.close()
                logger.error(
                    "Failed to launch trigger",
                    trigger_index=index,
                    trigger=trigger.name,
                    error=str(e),
                )
                continue
            except Exception:
                await sender.close()
                logger.exception(
                    "Unexpected error launching trigger",
                    trigger_index=index,
                    trigger=trigger.name,
                )
                continue
            logger.debug(
                "Trigger launched successfully",
                trigger_index=index,
                trigger=trigger.name,
            )
            launched.handles.append(handle)

        # Only the triggers hold senders now; the channel closes when they stop
        await channel.sender.close()
        logger.info("All triggers launched", launched_count=len(launched.handles))
        return launched

    async def event_loop(self, receiver: EventReceiver) -> None:
        """Consume events one at a time until the channel closes."""
        logger.info("Agent event loop started, waiting for events")
        while True:
            event = await receiver.recv()
            if event is None:
                break
            logger.info("Received event", event_name=event.name)
            await self.process_event(event)
        logger.debug("Event loop terminated - no more events to process")

    async def process_event(self, event: Event) -> Optional[str]:
        """Render and submit one event. Returns the response, or None on failure."""
        try:
            prompt = self.templates.render(PROMPT_TEMPLATE_NAME, event.to_dict())
        except TemplateError as e:
            logger.error(
                "Failed to render prompt template",
                event_name=event.name,
                error=str(e),
            )
            return None

        logger.info(
            "Prompt rendered", event_name=event.name, prompt_length=len(prompt)
        )
        logger.debug("Prompt text", event_name=event.name, prompt=prompt)
        task = asyncio.create_task(self.model.prompt(prompt), name="agent:prompt")
        self._inflight += 1
        self._pending = task
        task.add_done_callback(self._prompt_finished)

        try:
            # Shielded so losing the shutdown race leaves the call to the drain
            response = await asyncio.shield(task)
        except PromptError as e:
            logger.error("Model prompt failed", event_name=event.name, error=str(e))
            return None
        except Exception:
            logger.exception("Unexpected model failure", event_name=event.name)
            return None

        logger.info(
            "Model responded", event_name=event.name, response_length=len(response)
        )
        logger.debug("Response text", event_name=event.name, response=response)
        return response

    async def shutdown_triggers(self, launched: LaunchedTriggers) -> None:
        """Broadcast shutdown, wait for trigger tasks, then drain the model call."""
        logger.info(
            "Sending shutdown signal to all triggers",
            trigger_count=len(launched.handles),
        )
        launched.broadcast.send()
        # Wakes any trigger blocked on a full channel
        await launched.receiver.close()

        logger.debug("Waiting for triggers to terminate")
        for index, handle in enumerate(launched.handles):
            (result,) = await asyncio.gather(handle, return_exceptions=True)
            if isinstance(result, BaseException):
                logger.error(
                    "Error waiting for trigger to terminate",
                    trigger_index=index,
                    error=repr(result),
                )
            else:
                logger.debug("Trigger terminated successfully", trigger_index=index)
        logger.info("All triggers have been shut down")

        await self._drain_inflight()

    async def _race_shutdown(self, receiver: EventReceiver) -> None:
        loop_task = asyncio.create_task(
            self.event_loop(receiver), name="agent:event-loop"
        )
        signal_task = asyncio.create_task(
            self.shutdown_handler.wait_for_signal(), name="agent:shutdown-signal"
        )
        tasks = {loop_task, signal_task}
        try:
            done, pending = await asyncio.wait(
                tasks, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        if loop_task in done:
            logger.info("Event loop completed normally")
        else:
            logger.info("External shutdown signal triggered termination")

        for task in done:
            if task.cancelled():
                continue
            exc = task.exception()
            if exc is not None:
                logger.error(
                    "Agent task failed",
                    task=task.get_name(),
                    error=str(exc),
                    error_type=type(exc).__name__,
                )

    async def _drain_inflight(self) -> None:
        pending = self._pending
        if self._inflight == 0 or pending is None:
            return

        grace = self.grace_period.total_seconds()
        logger.info(
            "Waiting for in-flight model call", inflight=self._inflight, grace_seconds=grace
        )
        done, _ = await asyncio.wait({pending}, timeout=grace)
        if done:
            logger.info("In-flight model call completed during grace period")
            return

        residual = self._inflight
        pending.cancel()
        await asyncio.gather(pending, return_exceptions=True)
        logger.warning(
            "In-flight model call cancelled after grace period", cancelled=residual
        )

    def _prompt_finished(self, task: "asyncio.Task[str]") -> None:
        self._inflight -= 1
        if self._pending is task:
            self._pending = None
        if not task.cancelled() and task.exception() is not None:
            # Marks the exception retrieved when nobody awaits an abandoned call
            logger.debug("Model call finished with error", error=str(task.exception()))
