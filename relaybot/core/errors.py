"""Exception hierarchy for relaybot."""

from __future__ import annotations


class RelayBotError(Exception):
    """Base class for all relaybot errors."""


class HandlerError(RelayBotError):
    """A registered handler (or its filter) failed for one message.

    Raised from dispatch under the ``abort`` policy, or reported through
    the ``error`` lifecycle event under the ``isolate`` policy.
    """

    def __init__(self, category: str, handler_name: str, original: BaseException):
        super().__init__(f"Handler {handler_name!r} for {category!r} failed: {original!r}")
        self.category = category
        self.handler_name = handler_name
        self.original = original


class SenderResolutionError(RelayBotError):
    """The sender inbox could not be resolved to a display identifier."""

    def __init__(self, inbox_id: str, original: BaseException | None = None):
        super().__init__(f"Unable to resolve sender {inbox_id!r}")
        self.inbox_id = inbox_id
        self.original = original


class PipelineError(RelayBotError):
    """Middleware broke the chain contract."""


class StreamClosedError(RelayBotError):
    """The inbound stream ended because the backend disconnected."""


class ReconnectExhaustedError(RelayBotError):
    """The stream supervisor ran out of reconnect attempts."""

    def __init__(self, attempts: int, last_error: BaseException | None = None):
        super().__init__(f"Stream reconnect attempts exhausted ({attempts})")
        self.attempts = attempts
        self.last_error = last_error
