"""relaybot - middleware and handler pipeline for chat agents."""

__version__ = "0.1.0"
__logo__ = "📨"

from relaybot.adapters.memory import MemoryClient, MemoryConversation  # noqa: E402
from relaybot.agent.loop import Agent  # noqa: E402
from relaybot.agent.supervisor import StreamSupervisor  # noqa: E402
from relaybot.core.context import AgentContext  # noqa: E402
from relaybot.core.filters import filters  # noqa: E402
from relaybot.core.models import EventCategory, LifecycleEvent, Message  # noqa: E402
from relaybot.core.pipeline import Outcome  # noqa: E402

__all__ = [
    "__version__",
    "__logo__",
    "Agent",
    "AgentContext",
    "EventCategory",
    "LifecycleEvent",
    "MemoryClient",
    "MemoryConversation",
    "Message",
    "Outcome",
    "StreamSupervisor",
    "filters",
]
