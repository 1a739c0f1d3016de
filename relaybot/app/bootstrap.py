"""Runtime wiring: build telemetry, agent and supervisor from config."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import assert_never

from loguru import logger

from relaybot.agent.loop import Agent
from relaybot.agent.supervisor import StreamSupervisor
from relaybot.config.schema import Config, TelemetryConfig
from relaybot.core.pipeline import Middleware
from relaybot.core.ports import MessagingClientPort
from relaybot.telemetry import InMemoryTelemetry, PrometheusConfig, PrometheusTelemetry, TelemetryPort


def build_telemetry(config: TelemetryConfig) -> TelemetryPort | None:
    """Create the configured telemetry backend (``None`` when disabled)."""
    backend = config.backend
    if backend == "none":
        return None
    if backend == "memory":
        return InMemoryTelemetry()
    if backend == "prometheus":
        telemetry = PrometheusTelemetry(PrometheusConfig(port=config.port, host=config.host))
        telemetry.start()
        return telemetry
    assert_never(backend)


@dataclass(slots=True)
class AgentRuntime:
    """Everything needed to run one agent."""

    agent: Agent
    supervisor: StreamSupervisor
    telemetry: TelemetryPort | None

    async def run(self) -> None:
        await self.supervisor.run()


def build_runtime(
    client: MessagingClientPort,
    config: Config,
    *,
    middleware: Sequence[Middleware] = (),
    telemetry: TelemetryPort | None = None,
) -> AgentRuntime:
    if telemetry is None:
        telemetry = build_telemetry(config.telemetry)
    agent = Agent(client, config=config.agent, telemetry=telemetry, middleware=middleware)
    supervisor = StreamSupervisor(agent, config.reconnect, telemetry=telemetry)
    logger.debug("Built runtime {}", agent)
    return AgentRuntime(agent=agent, supervisor=supervisor, telemetry=telemetry)
