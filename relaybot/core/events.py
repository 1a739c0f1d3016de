"""Lifecycle event bus for ``start``, ``stop`` and ``error`` notifications."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeAlias

from loguru import logger

from relaybot.core.models import LifecycleEvent
from relaybot.utils.helpers import callable_name, maybe_await

LifecycleListener: TypeAlias = Callable[..., Awaitable[None] | None]


class LifecycleBus:
    """Typed subscriber lists keyed by :class:`LifecycleEvent`.

    ``start`` and ``stop`` listeners are called with no arguments, ``error``
    listeners with the exception.  Listener failures are logged and never
    reach the emitter, so a broken listener cannot take down the stream loop.
    """

    def __init__(self) -> None:
        self._subscribers: dict[LifecycleEvent, list[LifecycleListener]] = {
            event: [] for event in LifecycleEvent
        }

    def subscribe(self, event: LifecycleEvent | str, callback: LifecycleListener) -> None:
        """Subscribe ``callback`` to ``event``."""
        self._subscribers[LifecycleEvent(event)].append(callback)

    def unsubscribe(self, event: LifecycleEvent | str, callback: LifecycleListener) -> None:
        listeners = self._subscribers[LifecycleEvent(event)]
        if callback in listeners:
            listeners.remove(callback)

    def listener_count(self, event: LifecycleEvent | str) -> int:
        return len(self._subscribers[LifecycleEvent(event)])

    async def emit(self, event: LifecycleEvent, *args: Any) -> None:
        for callback in tuple(self._subscribers[event]):
            try:
                await maybe_await(callback(*args))
            except Exception as e:
                logger.error(f"Error in {event.value} listener {callable_name(callback)}: {e}")
