"""Per-message context threaded through middleware and handlers.

One :class:`AgentContext` is built for each dispatched message and dropped
once dispatch finishes.  It binds the convenience operations (``send``,
``react``, ``get_sender_address``) to the message's own conversation so
handlers never need to reach for the client directly.
"""

from __future__ import annotations

import asyncio
from typing import Any, Literal

from relaybot.core.errors import SenderResolutionError
from relaybot.core.models import (
    ContentTypeId,
    ContentTypes,
    ConversationKind,
    EventCategory,
    Message,
    Reaction,
)
from relaybot.core.ports import ConversationPort
from relaybot.core.registry import categories_for
from relaybot.utils.helpers import maybe_await


class AgentContext:
    """Message, conversation and bound helpers for one inbound message.

    Attributes:
        message: The inbound message being processed.
        conversation: The resolved conversation the message belongs to.
        client: The messaging client, for handlers that need more than the
            bound helpers.
        categories: Event categories this message dispatches under.
        state: Scratch space for middleware to hand values to handlers.
    """

    __slots__ = ("message", "conversation", "client", "categories", "state", "_sender_address")

    def __init__(
        self,
        message: Message,
        conversation: ConversationPort,
        client: Any,
        categories: frozenset[EventCategory] = frozenset({EventCategory.MESSAGE}),
    ) -> None:
        self.message = message
        self.conversation = conversation
        self.client = client
        self.categories = categories
        self.state: dict[str, Any] = {}
        self._sender_address: asyncio.Future[str] | None = None

    @property
    def is_dm(self) -> bool:
        return self.conversation.kind == ConversationKind.DM

    @property
    def is_group(self) -> bool:
        return self.conversation.kind == ConversationKind.GROUP

    async def send(self, text: str) -> None:
        """Send a text reply to this message's conversation."""
        await self.conversation.send(text)

    async def send_content(self, content: Any, content_type: ContentTypeId) -> None:
        """Send a typed payload (reaction, transaction reference, ...)."""
        await self.conversation.send(content, content_type)

    async def react(
        self,
        emoji: str,
        *,
        action: Literal["added", "removed"] = "added",
        schema: Literal["unicode", "shortcode", "custom"] = "unicode",
    ) -> None:
        """Add or remove a reaction on this message."""
        reaction = Reaction(reference=self.message.id, content=emoji, action=action, schema=schema)
        await self.send_content(reaction, ContentTypeId.of(ContentTypes.REACTION))

    async def get_sender_address(self) -> str:
        """Resolve the sender's display identifier.

        The lookup runs at most once per context; concurrent callers share
        the in-flight lookup.  A failed lookup is not remembered, so a later
        call retries.
        """
        if self._sender_address is None:
            self._sender_address = asyncio.ensure_future(self._resolve_sender())
        try:
            return await asyncio.shield(self._sender_address)
        except SenderResolutionError:
            self._sender_address = None
            raise

    async def _resolve_sender(self) -> str:
        inbox_id = self.message.sender_inbox_id
        try:
            address = await maybe_await(self.client.resolve_sender_identity(self.message))
        except Exception as e:
            raise SenderResolutionError(inbox_id, e) from e
        if not address:
            raise SenderResolutionError(inbox_id)
        return str(address)

    def __repr__(self) -> str:
        return f"AgentContext(message={self.message.id!r}, conversation={self.conversation.id!r})"


def build_context(
    message: Message,
    conversation: ConversationPort,
    client: Any,
    categories: frozenset[EventCategory] | None = None,
) -> AgentContext:
    """Build the context for a message whose conversation has been resolved."""
    if categories is None:
        categories = categories_for(message, conversation)
    return AgentContext(message, conversation, client, categories)
