"""Domain models for the message-processing core.

Messages are owned by the messaging client; the pipeline only reads them.
Messages are immutable and shared between filters, middleware and handlers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Literal, TypeAlias

InboxId: TypeAlias = str
ConversationId: TypeAlias = str
MessageId: TypeAlias = str


class ContentTypes:
    """Well-known content type discriminators (``ContentTypeId.type_id``)."""

    TEXT = "text"
    MARKDOWN = "markdown"
    REACTION = "reaction"
    REPLY = "reply"
    TRANSACTION_REFERENCE = "transactionReference"
    WALLET_SEND_CALLS = "walletSendCalls"
    ATTACHMENT = "attachment"
    REMOTE_ATTACHMENT = "remoteStaticAttachment"
    READ_RECEIPT = "readReceipt"
    GROUP_UPDATED = "group_updated"


@dataclass(frozen=True, slots=True)
class ContentTypeId:
    """Fully qualified content type as carried by the messaging backend."""

    type_id: str
    authority: str = "xmtp.org"
    version_major: int = 1
    version_minor: int = 0

    def __str__(self) -> str:
        return f"{self.authority}/{self.type_id}:{self.version_major}.{self.version_minor}"

    @classmethod
    def of(cls, type_id: str) -> ContentTypeId:
        return cls(type_id=type_id)


@dataclass(frozen=True, slots=True)
class Reaction:
    """Reaction payload referencing another message."""

    reference: MessageId
    content: str
    action: Literal["added", "removed"] = "added"
    schema: Literal["unicode", "shortcode", "custom"] = "unicode"


@dataclass(frozen=True, slots=True, kw_only=True)
class TransactionReference:
    """Pointer to an on-chain transaction shared in a conversation."""

    network_id: str
    reference: str
    namespace: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class ConversationKind(StrEnum):
    DM = "dm"
    GROUP = "group"


@dataclass(frozen=True, slots=True, kw_only=True)
class Message:
    """Decoded inbound message delivered by the client stream."""

    id: MessageId
    sender_inbox_id: InboxId
    conversation_id: ConversationId
    content: Any
    content_type: ContentTypeId | None = None
    sent_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def type_id(self) -> str | None:
        """Content type discriminator, or ``None`` when the type is unknown."""
        if self.content_type is None:
            return None
        return self.content_type.type_id

    @property
    def text(self) -> str | None:
        """Text body for text-like messages."""
        if self.type_id in (ContentTypes.TEXT, ContentTypes.MARKDOWN) and isinstance(self.content, str):
            return self.content
        return None

    def summary(self, limit: int = 60) -> str:
        """Short single-line description used in log lines."""
        body = self.text if self.text is not None else f"<{self.type_id or 'unknown'}>"
        if len(body) > limit:
            body = body[: limit - 1] + "…"
        return f"{self.id} from {self.sender_inbox_id} in {self.conversation_id}: {body}"


class EventCategory(StrEnum):
    """Closed set of categories handlers can be registered under.

    ``MESSAGE`` matches every dispatched message; the others are derived
    from the content type and the conversation kind.  Anything more
    specific is expressed as a filter on ``MESSAGE``.
    """

    MESSAGE = "message"
    TEXT = "text"
    REACTION = "reaction"
    REPLY = "reply"
    TRANSACTION_REFERENCE = "transaction_reference"
    ATTACHMENT = "attachment"
    DM = "dm"
    GROUP = "group"


class LifecycleEvent(StrEnum):
    START = "start"
    STOP = "stop"
    ERROR = "error"


class AgentState(StrEnum):
    IDLE = "idle"
    LISTENING = "listening"
    STOPPED = "stopped"


CONTENT_TYPE_CATEGORIES: dict[str, EventCategory] = {
    ContentTypes.TEXT: EventCategory.TEXT,
    ContentTypes.REACTION: EventCategory.REACTION,
    ContentTypes.REPLY: EventCategory.REPLY,
    ContentTypes.TRANSACTION_REFERENCE: EventCategory.TRANSACTION_REFERENCE,
    ContentTypes.ATTACHMENT: EventCategory.ATTACHMENT,
    ContentTypes.REMOTE_ATTACHMENT: EventCategory.ATTACHMENT,
}
