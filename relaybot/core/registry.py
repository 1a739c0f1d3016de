"""Handler registry: category-keyed, filtered, ordered handler dispatch."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, TypeAlias

from loguru import logger

from relaybot.core.errors import HandlerError
from relaybot.core.filters import Filter, evaluate
from relaybot.core.models import (
    CONTENT_TYPE_CATEGORIES,
    ConversationKind,
    EventCategory,
    Message,
)
from relaybot.utils.helpers import callable_name, maybe_await

if TYPE_CHECKING:
    from relaybot.core.context import AgentContext
    from relaybot.core.ports import ConversationPort

Handler: TypeAlias = Callable[["AgentContext"], Awaitable[None] | None]
HandlerErrorCallback: TypeAlias = Callable[[HandlerError], Awaitable[None] | None]


class HandlerErrorPolicy(StrEnum):
    """What a failing handler does to the rest of the message's dispatch.

    ``ISOLATE`` reports the failure and moves on to the next handler.
    ``ABORT`` stops dispatching the message and raises :class:`HandlerError`.
    """

    ISOLATE = "isolate"
    ABORT = "abort"


@dataclass(frozen=True, slots=True)
class Registration:
    category: EventCategory
    handler: Handler
    filter: Filter | None = None

    @property
    def name(self) -> str:
        return callable_name(self.handler)


def categories_for(message: Message, conversation: ConversationPort | None) -> frozenset[EventCategory]:
    """Derive the event categories a message dispatches under."""
    categories = {EventCategory.MESSAGE}
    type_id = message.type_id
    if type_id is not None and type_id in CONTENT_TYPE_CATEGORIES:
        categories.add(CONTENT_TYPE_CATEGORIES[type_id])
    if conversation is not None:
        if conversation.kind == ConversationKind.DM:
            categories.add(EventCategory.DM)
        elif conversation.kind == ConversationKind.GROUP:
            categories.add(EventCategory.GROUP)
    return frozenset(categories)


class HandlerRegistry:
    """Ordered list of ``(category, filter?, handler)`` registrations.

    Dispatch walks every registration in the order it was added and runs
    the ones whose category applies to the message and whose filter passes.
    Handlers run one after another, never concurrently.
    """

    def __init__(
        self,
        *,
        error_policy: HandlerErrorPolicy | str = HandlerErrorPolicy.ISOLATE,
        on_error: HandlerErrorCallback | None = None,
    ) -> None:
        self._registrations: list[Registration] = []
        self.error_policy = HandlerErrorPolicy(error_policy)
        self._on_error = on_error

    def on(
        self,
        category: EventCategory | str,
        handler: Handler,
        filter: Filter | None = None,
    ) -> Registration:
        """Register ``handler`` under ``category``, optionally gated by ``filter``."""
        try:
            resolved = EventCategory(category)
        except ValueError:
            valid = ", ".join(c.value for c in EventCategory)
            raise ValueError(f"Unknown event category {category!r} (expected one of: {valid})") from None
        if not callable(handler):
            raise TypeError(f"Handler for {resolved.value!r} is not callable: {handler!r}")

        registration = Registration(category=resolved, handler=handler, filter=filter)
        self._registrations.append(registration)
        logger.debug("Registered handler {} for {}", registration.name, resolved.value)
        return registration

    def registrations(self, category: EventCategory | str | None = None) -> list[Registration]:
        if category is None:
            return list(self._registrations)
        resolved = EventCategory(category)
        return [r for r in self._registrations if r.category == resolved]

    async def dispatch(self, ctx: AgentContext) -> int:
        """Run matching handlers for ``ctx`` and return how many were invoked."""
        invoked = 0
        # Snapshot so a handler registering another handler only affects later messages.
        for registration in tuple(self._registrations):
            if registration.category not in ctx.categories:
                continue
            try:
                if registration.filter is not None and not await evaluate(
                    registration.filter, ctx.message, ctx.client
                ):
                    continue
                invoked += 1
                await maybe_await(registration.handler(ctx))
            except Exception as e:
                error = HandlerError(registration.category.value, registration.name, e)
                if self.error_policy is HandlerErrorPolicy.ABORT:
                    raise error from e
                logger.opt(exception=e).error(
                    f"Handler {registration.name} failed for message {ctx.message.id}"
                )
                await self._report(error)
        return invoked

    async def _report(self, error: HandlerError) -> None:
        if self._on_error is None:
            return
        try:
            await maybe_await(self._on_error(error))
        except Exception as e:
            logger.error(f"Handler error callback failed: {e}")

    def __len__(self) -> int:
        return len(self._registrations)

    def __repr__(self) -> str:
        names = [f"{r.category.value}:{r.name}" for r in self._registrations]
        return f"HandlerRegistry({', '.join(names)})"
