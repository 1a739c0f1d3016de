"""Core primitives: models, ports, filters, context, middleware and dispatch."""

from relaybot.core.context import AgentContext, build_context
from relaybot.core.errors import (
    HandlerError,
    PipelineError,
    ReconnectExhaustedError,
    RelayBotError,
    SenderResolutionError,
    StreamClosedError,
)
from relaybot.core.events import LifecycleBus
from relaybot.core.filters import filters
from relaybot.core.models import (
    AgentState,
    ContentTypeId,
    ContentTypes,
    ConversationKind,
    EventCategory,
    LifecycleEvent,
    Message,
    Reaction,
    TransactionReference,
)
from relaybot.core.pipeline import Middleware, NextFn, Outcome, Pipeline
from relaybot.core.ports import ConversationPort, MessagingClientPort
from relaybot.core.registry import HandlerErrorPolicy, HandlerRegistry, categories_for

__all__ = [
    "AgentContext",
    "AgentState",
    "ContentTypeId",
    "ContentTypes",
    "ConversationKind",
    "ConversationPort",
    "EventCategory",
    "HandlerError",
    "HandlerErrorPolicy",
    "HandlerRegistry",
    "LifecycleBus",
    "LifecycleEvent",
    "Message",
    "MessagingClientPort",
    "Middleware",
    "NextFn",
    "Outcome",
    "Pipeline",
    "PipelineError",
    "Reaction",
    "ReconnectExhaustedError",
    "RelayBotError",
    "SenderResolutionError",
    "StreamClosedError",
    "TransactionReference",
    "build_context",
    "categories_for",
    "filters",
]
