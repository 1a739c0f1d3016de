"""In-process messaging client.

Implements the client and conversation ports on top of an ``asyncio.Queue``
so the agent can run without a network backend: the interactive CLI session
and the test suite both drive agents through it.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from loguru import logger

from relaybot.core.errors import StreamClosedError
from relaybot.core.models import ContentTypeId, ContentTypes, ConversationKind, Message

_END = object()


@dataclass(frozen=True, slots=True)
class SentMessage:
    """One payload recorded by :meth:`MemoryConversation.send`."""

    content: Any
    content_type: ContentTypeId | None = None

    @property
    def type_id(self) -> str:
        return self.content_type.type_id if self.content_type is not None else ContentTypes.TEXT


class MemoryConversation:
    """Conversation that records outbound payloads instead of delivering them."""

    def __init__(
        self,
        conversation_id: str,
        kind: ConversationKind = ConversationKind.DM,
        *,
        client: MemoryClient | None = None,
    ) -> None:
        self._id = conversation_id
        self._kind = ConversationKind(kind)
        self._client = client
        self.sent: list[SentMessage] = []
        self.fail_with: BaseException | None = None

    @property
    def id(self) -> str:
        return self._id

    @property
    def kind(self) -> ConversationKind:
        return self._kind

    @property
    def texts(self) -> list[str]:
        """Text payloads sent so far, in order."""
        return [s.content for s in self.sent if s.type_id == ContentTypes.TEXT]

    async def send(self, content: Any, content_type: ContentTypeId | None = None) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(SentMessage(content, content_type))
        if self._client is not None and self._client.loopback:
            # Backends echo our own sends back through the inbound stream.
            self._client.push(
                Message(
                    id=_new_id(),
                    sender_inbox_id=self._client.inbox_id,
                    conversation_id=self._id,
                    content=content,
                    content_type=content_type or ContentTypeId.of(ContentTypes.TEXT),
                )
            )

    def __repr__(self) -> str:
        return f"MemoryConversation(id={self._id!r}, kind={self._kind.value}, sent={len(self.sent)})"


class MemoryClient:
    """Queue-backed client.

    ``push`` feeds the stream, ``close`` ends it cleanly and ``fail`` makes it
    raise, which is how a backend disconnect looks to the agent.  Each call to
    :meth:`stream_messages` opens a new stream over the same queue, so a
    supervisor can reconnect after a failure.
    """

    def __init__(self, inbox_id: str = "agent-inbox", *, loopback: bool = False) -> None:
        self._inbox_id = inbox_id
        self.loopback = loopback
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._conversations: dict[str, MemoryConversation] = {}
        self._unsynced: dict[str, MemoryConversation] = {}
        self._identities: dict[str, str] = {}
        self.sync_count = 0
        self.streams_opened = 0

    @property
    def inbox_id(self) -> str:
        return self._inbox_id

    # ── Setup ────────────────────────────────────────────────────────

    def add_conversation(
        self,
        conversation_id: str | None = None,
        kind: ConversationKind = ConversationKind.DM,
        *,
        synced: bool = True,
    ) -> MemoryConversation:
        """Create a conversation; unsynced ones only resolve after a sync."""
        conversation = MemoryConversation(conversation_id or _new_id(), kind, client=self)
        target = self._conversations if synced else self._unsynced
        target[conversation.id] = conversation
        return conversation

    def register_identity(self, inbox_id: str, address: str) -> None:
        self._identities[inbox_id.lower()] = address

    # ── Stream control ───────────────────────────────────────────────

    def push(self, message: Message | None) -> None:
        self._queue.put_nowait(message)

    def push_text(self, sender_inbox_id: str, conversation_id: str, text: str) -> Message:
        """Queue a text message and return it."""
        message = Message(
            id=_new_id(),
            sender_inbox_id=sender_inbox_id,
            conversation_id=conversation_id,
            content=text,
            content_type=ContentTypeId.of(ContentTypes.TEXT),
        )
        self.push(message)
        return message

    def close(self) -> None:
        """End the current stream after already queued messages."""
        self._queue.put_nowait(_END)

    def fail(self, error: BaseException | None = None) -> None:
        """Make the current stream raise after already queued messages."""
        self._queue.put_nowait(error or StreamClosedError("Memory stream disconnected"))

    # ── Client port ──────────────────────────────────────────────────

    async def stream_messages(self) -> AsyncIterator[Message | None]:
        self.streams_opened += 1
        while True:
            item = await self._queue.get()
            if item is _END:
                return
            if isinstance(item, BaseException):
                raise item
            yield item

    def get_conversation_by_id(self, conversation_id: str) -> MemoryConversation | None:
        return self._conversations.get(conversation_id)

    async def resolve_sender_identity(self, message: Message) -> str:
        address = self._identities.get(message.sender_inbox_id.lower())
        if address is None:
            raise LookupError(f"No identity registered for inbox {message.sender_inbox_id}")
        return address

    async def sync_conversations(self) -> None:
        self.sync_count += 1
        if self._unsynced:
            logger.debug("Synced {} conversation(s)", len(self._unsynced))
            self._conversations.update(self._unsynced)
            self._unsynced.clear()


def _new_id() -> str:
    return uuid.uuid4().hex
