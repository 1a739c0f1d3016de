"""Per-sender rate limiting over a sliding window."""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable

from loguru import logger

from relaybot.core.context import AgentContext
from relaybot.core.pipeline import NextFn, Outcome


class RateLimitMiddleware:
    """Allow at most ``max_messages`` per sender within ``window_seconds``.

    Halted messages do not count against the window.
    """

    def __init__(
        self,
        *,
        max_messages: int = 10,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_messages < 1:
            raise ValueError("max_messages must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self._max_messages = max_messages
        self._window_seconds = float(window_seconds)
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._next_cleanup_at = 0.0

    async def __call__(self, ctx: AgentContext, next: NextFn) -> Outcome:
        sender = ctx.message.sender_inbox_id.lower()
        now = self._clock()
        hits = self._hits.setdefault(sender, deque())
        cutoff = now - self._window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

        if len(hits) >= self._max_messages:
            logger.info(f"Rate limit exceeded for {sender}, dropping message {ctx.message.id}")
            return Outcome.HALT

        hits.append(now)
        self._maybe_cleanup(now, cutoff)
        return await next()

    def __len__(self) -> int:
        return len(self._hits)

    def _maybe_cleanup(self, now: float, cutoff: float) -> None:
        if now < self._next_cleanup_at:
            return
        idle = [s for s, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for s in idle:
            del self._hits[s]
        self._next_cleanup_at = now + 30.0
