"""Composable message filters.

A filter is a predicate ``(message, client) -> bool`` that may also be
``async``.  Combinators never mutate their inputs; they build a new filter
closing over the originals, so the same filter object can be reused in any
number of compositions.

Usage::

    from relaybot.core.filters import filters

    agent.on("text", reply, filters.and_(filters.not_from_self, filters.from_sender(admins)))
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from types import SimpleNamespace
from typing import Any, TypeAlias

from relaybot.core.models import ContentTypes, Message
from relaybot.utils.helpers import maybe_await

Filter: TypeAlias = Callable[[Message, Any], bool | Awaitable[bool]]


async def evaluate(flt: Filter, message: Message, client: Any) -> bool:
    """Run one filter, sync or async, and coerce its result to ``bool``."""
    return bool(await maybe_await(flt(message, client)))


def _same_inbox(left: str | None, right: str | None) -> bool:
    if left is None or right is None:
        return False
    return left.lower() == right.lower()


# ── Named filters ───────────────────────────────────────────────────


def not_from_self(message: Message, client: Any) -> bool:
    """True iff the sender is not this client's own inbox."""
    return not _same_inbox(message.sender_inbox_id, getattr(client, "inbox_id", None))


def from_self(message: Message, client: Any) -> bool:
    return _same_inbox(message.sender_inbox_id, getattr(client, "inbox_id", None))


def text_only(message: Message, client: Any = None) -> bool:
    return message.type_id == ContentTypes.TEXT


def content_type(type_id: str) -> Filter:
    """Build a filter matching one content type discriminator."""

    def _matches(message: Message, client: Any = None) -> bool:
        return message.type_id == type_id

    _matches.__qualname__ = f"content_type({type_id!r})"
    return _matches


def from_sender(sender_inbox_ids: str | Iterable[str]) -> Filter:
    """Build a filter matching a sender, or any of several, case-insensitively."""
    if isinstance(sender_inbox_ids, str):
        sender_inbox_ids = [sender_inbox_ids]
    senders = frozenset(sender.lower() for sender in sender_inbox_ids)

    def _matches(message: Message, client: Any = None) -> bool:
        return message.sender_inbox_id.lower() in senders

    _matches.__qualname__ = f"from_sender({sorted(senders)!r})"
    return _matches


# ── Combinators ─────────────────────────────────────────────────────


def and_(*flts: Filter) -> Filter:
    """All filters must pass.  Evaluated in order; stops at the first false one."""

    async def _all(message: Message, client: Any) -> bool:
        for flt in flts:
            if not await evaluate(flt, message, client):
                return False
        return True

    return _all


def or_(*flts: Filter) -> Filter:
    """Any filter may pass.  Evaluated in order; stops at the first true one."""

    async def _any(message: Message, client: Any) -> bool:
        for flt in flts:
            if await evaluate(flt, message, client):
                return True
        return False

    return _any


def not_(flt: Filter) -> Filter:
    async def _negated(message: Message, client: Any) -> bool:
        return not await evaluate(flt, message, client)

    return _negated


filters = SimpleNamespace(
    not_from_self=not_from_self,
    from_self=from_self,
    text_only=text_only,
    content_type=content_type,
    from_sender=from_sender,
    and_=and_,
    or_=or_,
    not_=not_,
)
"""Namespace bundling the filters and combinators for bot authors."""
