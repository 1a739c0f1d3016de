"""Agent stream loop and reconnect supervisor."""

from relaybot.agent.loop import Agent
from relaybot.agent.supervisor import StreamSupervisor

__all__ = ["Agent", "StreamSupervisor"]
