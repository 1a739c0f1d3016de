"""Client adapters implementing the messaging ports."""

from relaybot.adapters.memory import MemoryClient, MemoryConversation, SentMessage

__all__ = ["MemoryClient", "MemoryConversation", "SentMessage"]
