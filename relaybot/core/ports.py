"""Port interfaces for the messaging client the pipeline consumes.

The pipeline never talks to a network itself.  Any object satisfying these
protocols can drive an :class:`~relaybot.agent.loop.Agent`; methods may be
plain or ``async`` where noted, the core awaits whatever comes back.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable
from typing import Any, Protocol, runtime_checkable

from relaybot.core.models import ContentTypeId, ConversationKind, Message


@runtime_checkable
class ConversationPort(Protocol):
    """A resolved direct or group conversation."""

    @property
    def id(self) -> str: ...

    @property
    def kind(self) -> ConversationKind: ...

    async def send(self, content: Any, content_type: ContentTypeId | None = None) -> None:
        """Deliver one outbound payload.  Failures must raise."""


@runtime_checkable
class MessagingClientPort(Protocol):
    """Connection to the messaging backend."""

    @property
    def inbox_id(self) -> str:
        """This client's own inbox identity."""

    def stream_messages(self) -> AsyncIterator[Message | None]:
        """Ordered, at-least-once, non-restartable stream of inbound messages."""

    def get_conversation_by_id(
        self, conversation_id: str
    ) -> ConversationPort | None | Awaitable[ConversationPort | None]:
        """Look up a conversation.  ``None`` means not synced locally."""

    def resolve_sender_identity(self, message: Message) -> str | Awaitable[str]:
        """Resolve the sender inbox to a display identifier (e.g. an address)."""

    def sync_conversations(self) -> None | Awaitable[None]:
        """Pull the latest conversation list from the backend."""
