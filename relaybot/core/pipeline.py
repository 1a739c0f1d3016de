"""Middleware chain run before handler dispatch.

Uses the **pipeline chain** pattern: each middleware receives the context
and a ``next`` callback.  Awaiting ``next()`` runs the rest of the chain
and, past the last middleware, the terminal step (handler dispatch).

The veto is explicit in the return contract:

1. ``return await next()`` to pass through.  ``next()`` reports the
   :class:`Outcome` of everything downstream.
2. ``return Outcome.HALT`` without calling ``next()`` to drop the message.
   Returning ``None`` without calling ``next()`` is also a halt.
3. Call ``await next()`` and then inspect the context to post-process.

A halted message is not an error.  The runner logs it at debug level only,
so a middleware that vetoes should log its own reason if it matters.

Usage::

    pipeline = Pipeline([DeduplicationMiddleware(), AllowListMiddleware(admins)])
    outcome = await pipeline.run(ctx, registry.dispatch)
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from loguru import logger

from relaybot.core.errors import PipelineError
from relaybot.utils.helpers import callable_name, maybe_await

if TYPE_CHECKING:
    from relaybot.core.context import AgentContext


class Outcome(StrEnum):
    CONTINUE = "continue"
    HALT = "halt"


NextFn = Callable[[], Awaitable[Outcome]]
"""Signature for the ``next`` callback passed to each middleware."""

Terminal = Callable[["AgentContext"], Awaitable[Any]]


@runtime_checkable
class Middleware(Protocol):
    """Protocol for pipeline middleware.

    Plain ``async def mw(ctx, next)`` functions satisfy it as well as
    classes implementing ``__call__``.
    """

    async def __call__(self, ctx: AgentContext, next: NextFn) -> Outcome | None: ...


class Pipeline:
    """Ordered chain of middleware in front of a terminal step."""

    __slots__ = ("_layers",)

    def __init__(self, layers: Sequence[Middleware] | None = None) -> None:
        self._layers: list[Middleware] = list(layers or [])

    def use(self, middleware: Middleware) -> None:
        """Append ``middleware``.  Messages already in flight keep their chain."""
        if not callable(middleware):
            raise TypeError(f"Middleware is not callable: {middleware!r}")
        self._layers.append(middleware)

    async def run(self, ctx: AgentContext, terminal: Terminal) -> Outcome:
        """Process ``ctx`` through the chain, then ``terminal`` unless halted."""
        return await self._execute(ctx, tuple(self._layers), 0, terminal)

    async def _execute(
        self,
        ctx: AgentContext,
        layers: tuple[Middleware, ...],
        index: int,
        terminal: Terminal,
    ) -> Outcome:
        if index >= len(layers):
            await terminal(ctx)
            return Outcome.CONTINUE

        layer = layers[index]
        name = callable_name(layer)
        called = False
        downstream = Outcome.HALT

        async def next_() -> Outcome:
            nonlocal called, downstream
            if called:
                raise PipelineError(f"Middleware {name} called next() more than once")
            called = True
            downstream = await self._execute(ctx, layers, index + 1, terminal)
            return downstream

        result = await maybe_await(layer(ctx, next_))

        if called:
            return downstream
        if result is Outcome.CONTINUE:
            raise PipelineError(f"Middleware {name} returned CONTINUE without calling next()")
        logger.debug("Middleware {} halted message {}", name, ctx.message.id)
        return Outcome.HALT

    def __len__(self) -> int:
        return len(self._layers)

    def __repr__(self) -> str:
        names = [callable_name(m) for m in self._layers]
        return f"Pipeline({' → '.join(names)})"
