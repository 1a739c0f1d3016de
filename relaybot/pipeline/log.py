"""Message logging middleware."""

from __future__ import annotations

import time

from loguru import logger

from relaybot.core.context import AgentContext
from relaybot.core.pipeline import NextFn, Outcome


class LoggingMiddleware:
    """Log each message on entry and its outcome on the way back out."""

    def __init__(self, *, level: str = "INFO") -> None:
        self._level = level

    async def __call__(self, ctx: AgentContext, next: NextFn) -> Outcome:
        message = ctx.message
        logger.log(self._level, f"Message from {message.sender_inbox_id}: {message.summary()}")
        started = time.monotonic()
        outcome = await next()
        elapsed_ms = (time.monotonic() - started) * 1000
        logger.log(self._level, f"Message {message.id} {outcome.value} in {elapsed_ms:.1f}ms")
        return outcome
