"""Agent loop: the stream consumer and lifecycle controller.

One ``Agent`` owns exactly one driver coroutine, the body of :meth:`Agent.start`.
It pulls messages from the client stream one at a time and, for each:

1. skips empty items and messages sent by this client's own inbox
2. resolves the conversation (unknown conversations are skipped)
3. builds the :class:`~relaybot.core.context.AgentContext`
4. runs the middleware chain, then handler dispatch unless a middleware halted

Anything raised while processing one message is caught, logged and emitted
as an ``error`` lifecycle event; the loop then moves on.  Failures of the
stream itself are not caught here and propagate out of ``start()``; see
:mod:`relaybot.agent.supervisor` for reconnecting.

Handlers and middleware should be registered before ``start()``.  Later
registrations are allowed and apply to messages whose processing begins
after the registration.
"""

from __future__ import annotations

import asyncio
import signal
import time
from collections.abc import AsyncIterator, Callable, Sequence

from loguru import logger

from relaybot.config.schema import AgentConfig
from relaybot.core.context import AgentContext, build_context
from relaybot.core.errors import HandlerError
from relaybot.core.events import LifecycleBus, LifecycleListener
from relaybot.core.filters import Filter, from_self
from relaybot.core.models import AgentState, EventCategory, LifecycleEvent, Message
from relaybot.core.pipeline import Middleware, Outcome, Pipeline
from relaybot.core.ports import MessagingClientPort
from relaybot.core.registry import Handler, HandlerRegistry
from relaybot.telemetry.base import TelemetryPort
from relaybot.utils.helpers import maybe_await

_LIFECYCLE_NAMES = frozenset(event.value for event in LifecycleEvent)
_STREAM_END = object()


class Agent:
    """Message-processing pipeline bound to one messaging client."""

    def __init__(
        self,
        client: MessagingClientPort,
        *,
        config: AgentConfig | None = None,
        telemetry: TelemetryPort | None = None,
        middleware: Sequence[Middleware] | None = None,
    ) -> None:
        self.client = client
        self.config = config or AgentConfig()
        self._telemetry = telemetry
        self._pipeline = Pipeline(middleware)
        self._events = LifecycleBus()
        self._registry = HandlerRegistry(
            error_policy=self.config.handler_error_policy,
            on_error=self._on_handler_error,
        )
        self._state = AgentState.IDLE
        self._generation = 0
        self._stop_requested = False
        self._received = 0
        self._stop_event: asyncio.Event | None = None

    # ── Registration ─────────────────────────────────────────────────

    def use(self, middleware: Middleware) -> Agent:
        """Append a middleware to the chain."""
        self._pipeline.use(middleware)
        return self

    def on(
        self,
        event: EventCategory | LifecycleEvent | str,
        handler: Handler | LifecycleListener,
        filter: Filter | None = None,
    ) -> Agent:
        """Register a message handler, or a lifecycle listener for start/stop/error."""
        if isinstance(event, LifecycleEvent) or (
            isinstance(event, str) and not isinstance(event, EventCategory) and event in _LIFECYCLE_NAMES
        ):
            if filter is not None:
                raise ValueError(f"Lifecycle event {event!s} does not accept a filter")
            self._events.subscribe(event, handler)
        else:
            self._registry.on(event, handler, filter)
        return self

    def on_event(self, event: LifecycleEvent | str, callback: LifecycleListener) -> Agent:
        """Subscribe to a lifecycle event."""
        self._events.subscribe(event, callback)
        return self

    def handler(
        self, category: EventCategory | str = EventCategory.MESSAGE, filter: Filter | None = None
    ) -> Callable[[Handler], Handler]:
        """Decorator form of :meth:`on` for message handlers."""

        def decorator(fn: Handler) -> Handler:
            self._registry.on(category, fn, filter)
            return fn

        return decorator

    # ── Lifecycle ────────────────────────────────────────────────────

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._state is AgentState.LISTENING

    @property
    def stop_requested(self) -> bool:
        """Whether :meth:`stop` was called since the last :meth:`start`."""
        return self._stop_requested

    @property
    def messages_received(self) -> int:
        """Messages pulled from the stream over the agent's lifetime."""
        return self._received

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry

    @property
    def pipeline(self) -> Pipeline:
        return self._pipeline

    async def start(self) -> None:
        """Listen to the client stream until stopped or the stream ends.

        Calling ``start()`` while already listening logs a warning and returns
        immediately.  Stream-level exceptions propagate to the caller.
        """
        if self._state is AgentState.LISTENING:
            logger.warning("Agent is already listening")
            return

        # Flip state before the first await so a concurrent start() sees it.
        self._state = AgentState.LISTENING
        self._stop_requested = False
        self._generation += 1
        generation = self._generation
        stop_event = self._stop_event = asyncio.Event()
        started = False
        self._gauge("agent_listening", 1)

        try:
            if self.config.auto_sync:
                logger.info("Syncing conversations...")
                await maybe_await(self.client.sync_conversations())

            if not self._should_continue(generation):
                return

            logger.info(f"Agent {self.client.inbox_id} listening for messages")
            started = True
            await self._events.emit(LifecycleEvent.START)

            await self._consume(self.client.stream_messages(), generation, stop_event)
        finally:
            if self._generation == generation:
                self._state = AgentState.STOPPED
                self._gauge("agent_listening", 0)
                logger.info("Agent stopped")
                if started:
                    await self._events.emit(LifecycleEvent.STOP)

    async def _consume(
        self, stream: AsyncIterator[Message | None], generation: int, stop_event: asyncio.Event
    ) -> None:
        """Pull items one at a time, racing each read against ``stop()``."""
        iterator = aiter(stream)
        stop_wait = asyncio.ensure_future(stop_event.wait())
        read: asyncio.Task | None = None
        try:
            while True:
                read = asyncio.ensure_future(_read_next(iterator))
                done, _ = await asyncio.wait({read, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
                if read not in done or not self._should_continue(generation):
                    break
                message = read.result()
                read = None
                if message is _STREAM_END:
                    logger.warning("Message stream ended")
                    break

                await self._process_safely(message)
                if not self._should_continue(generation):
                    break
        finally:
            stop_wait.cancel()
            if read is not None and not read.done():
                read.cancel()
                await asyncio.wait({read})
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    def stop(self) -> None:
        """Request the loop to exit.

        Cooperative: an in-flight message finishes its processing; a pending
        read from an idle stream is abandoned and the loop exits without
        dispatching anything further.
        """
        if self._state is not AgentState.STOPPED:
            logger.info("Stopping agent...")
        self._stop_requested = True
        self._state = AgentState.STOPPED
        if self._stop_event is not None:
            self._stop_event.set()

    def install_signal_handlers(self) -> None:
        """Call :meth:`stop` on SIGINT/SIGTERM.  Needs a running event loop."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except (NotImplementedError, RuntimeError) as e:
                logger.debug("Signal handler for {} not installed: {}", sig.name, e)

    def _should_continue(self, generation: int) -> bool:
        return self._state is AgentState.LISTENING and self._generation == generation

    # ── Per-message processing ───────────────────────────────────────

    async def _process_safely(self, message: Message | None) -> None:
        started = time.monotonic()
        try:
            await self._process_message(message)
        except Exception as e:
            message_id = getattr(message, "id", None)
            logger.opt(exception=e).error(f"Agent error while processing message {message_id}")
            self._incr("message_errors")
            await self._events.emit(LifecycleEvent.ERROR, e)
        finally:
            self._timing("message_duration_seconds", time.monotonic() - started)

    async def _process_message(self, message: Message | None) -> None:
        if message is None:
            self._drop("empty")
            return

        self._received += 1
        self._incr("messages_received")

        if from_self(message, self.client):
            self._drop("self")
            return

        conversation = await maybe_await(self.client.get_conversation_by_id(message.conversation_id))
        if conversation is None:
            logger.info(
                f"Unable to find conversation {message.conversation_id}, skipping message {message.id}"
            )
            self._drop("conversation_not_found")
            return

        ctx = build_context(message, conversation, self.client)
        logger.debug("Processing {}", message.summary())

        outcome = await self._pipeline.run(ctx, self._dispatch)
        if outcome is Outcome.HALT:
            self._incr("middleware_halt")

    async def _dispatch(self, ctx: AgentContext) -> None:
        self._incr("messages_dispatched")
        invoked = await self._registry.dispatch(ctx)
        logger.debug(
            "Dispatched message {} to {} handler(s) for {}",
            ctx.message.id,
            invoked,
            sorted(c.value for c in ctx.categories),
        )

    async def _on_handler_error(self, error: HandlerError) -> None:
        self._incr("handler_errors", labels=(("category", error.category),))
        await self._events.emit(LifecycleEvent.ERROR, error)

    # ── Telemetry ────────────────────────────────────────────────────

    def _drop(self, reason: str) -> None:
        logger.debug("Dropped message ({})", reason)
        self._incr("messages_dropped", labels=(("reason", reason),))

    def _incr(self, name: str, labels: tuple[tuple[str, str], ...] = ()) -> None:
        if self._telemetry is not None:
            self._telemetry.incr(name, labels=labels)

    def _gauge(self, name: str, value: float) -> None:
        if self._telemetry is not None:
            self._telemetry.gauge(name, value)

    def _timing(self, name: str, value: float) -> None:
        if self._telemetry is not None:
            self._telemetry.timing(name, value)

    def __repr__(self) -> str:
        return (
            f"Agent(inbox={getattr(self.client, 'inbox_id', '?')!r}, state={self._state.value}, "
            f"middleware={len(self._pipeline)}, handlers={len(self._registry)})"
        )


async def _read_next(iterator: AsyncIterator[Message | None]) -> object:
    try:
        return await anext(iterator)
    except StopAsyncIteration:
        return _STREAM_END
