"""Application wiring."""

from relaybot.app.bootstrap import AgentRuntime, build_runtime, build_telemetry

__all__ = ["AgentRuntime", "build_runtime", "build_telemetry"]
