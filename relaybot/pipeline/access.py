"""Access control middleware: sender allow list."""

from __future__ import annotations

from collections.abc import Iterable

from loguru import logger

from relaybot.core.context import AgentContext
from relaybot.core.pipeline import NextFn, Outcome


class AllowListMiddleware:
    """Halt messages from senders outside the allow set.

    Inbox ids are compared case-insensitively.  An empty allow list
    blocks everyone.
    """

    def __init__(self, sender_ids: Iterable[str]) -> None:
        self._allowed = frozenset(s.lower() for s in sender_ids)

    @property
    def allowed(self) -> frozenset[str]:
        return self._allowed

    async def __call__(self, ctx: AgentContext, next: NextFn) -> Outcome:
        sender = ctx.message.sender_inbox_id.lower()
        if sender not in self._allowed:
            logger.debug("Blocked message {} from {}", ctx.message.id, sender)
            return Outcome.HALT
        return await next()
