"""Deduplication middleware: TTL-based message ID cache.

The backend delivers at least once, so a reconnect can replay messages that
were already handled.  Drop any id seen within the configured window.
"""

from __future__ import annotations

import time

from relaybot.core.context import AgentContext
from relaybot.core.pipeline import NextFn, Outcome


class DeduplicationMiddleware:
    """Halt messages whose ``(conversation_id, message_id)`` key was seen recently."""

    def __init__(self, *, ttl_seconds: float = 20 * 60) -> None:
        self._ttl_seconds = max(1.0, float(ttl_seconds))
        self._recent_keys: dict[str, float] = {}
        self._next_cleanup_at = 0.0

    async def __call__(self, ctx: AgentContext, next: NextFn) -> Outcome:
        key = self._dedupe_key(ctx)
        if key is None:
            return await next()

        now = time.monotonic()
        self._maybe_cleanup(now)

        expires_at = self._recent_keys.get(key)
        if expires_at is not None and expires_at > now:
            return Outcome.HALT

        self._recent_keys[key] = now + self._ttl_seconds
        return await next()

    def __len__(self) -> int:
        return len(self._recent_keys)

    # ── Internals ────────────────────────────────────────────────────

    @staticmethod
    def _dedupe_key(ctx: AgentContext) -> str | None:
        message = ctx.message
        if not message.id:
            return None
        return f"{message.conversation_id}:{message.id}"

    def _maybe_cleanup(self, now: float) -> None:
        if now < self._next_cleanup_at:
            return
        expired = [k for k, exp in self._recent_keys.items() if exp <= now]
        for k in expired:
            self._recent_keys.pop(k, None)
        self._next_cleanup_at = now + 30.0
