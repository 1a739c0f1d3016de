"""Reconnecting supervisor around :meth:`Agent.start`.

The agent propagates stream failures; this wrapper restarts it with
exponential backoff and jitter until the agent is stopped on purpose or the
attempt budget runs out.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable

from loguru import logger

from relaybot.agent.loop import Agent
from relaybot.config.schema import ReconnectConfig
from relaybot.core.errors import ReconnectExhaustedError, StreamClosedError
from relaybot.telemetry.base import TelemetryPort


class StreamSupervisor:
    """Run an agent and restart it when its message stream fails or ends."""

    def __init__(
        self,
        agent: Agent,
        config: ReconnectConfig | None = None,
        *,
        telemetry: TelemetryPort | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.agent = agent
        self.config = config or ReconnectConfig()
        self._telemetry = telemetry
        self._sleep = sleep
        self._attempts = 0

    @property
    def attempts(self) -> int:
        """Consecutive failed starts since the last productive one."""
        return self._attempts

    async def run(self) -> None:
        while True:
            received_before = self.agent.messages_received
            error: BaseException
            try:
                await self.agent.start()
            except Exception as e:
                if self.agent.stop_requested:
                    logger.info(f"Stream closed after stop: {e}")
                    return
                if not self.config.enabled:
                    raise
                error = e
            else:
                if self.agent.stop_requested:
                    return
                if not self.config.enabled:
                    return
                error = StreamClosedError("Message stream ended")

            if self.agent.messages_received > received_before:
                self._attempts = 0
            self._attempts += 1

            max_attempts = self.config.max_attempts
            if max_attempts > 0 and self._attempts > max_attempts:
                logger.error(f"Giving up on message stream after {max_attempts} reconnect attempts")
                raise ReconnectExhaustedError(max_attempts, error) from error

            delay = self.compute_backoff_ms(self._attempts) / 1000.0
            logger.warning(f"Message stream failed: {error}")
            logger.info(f"Reconnecting in {delay:.2f}s (attempt {self._attempts})...")
            if self._telemetry is not None:
                self._telemetry.incr("stream_restarts")
            await self._sleep(delay)

            if self.agent.stop_requested:
                return

    def compute_backoff_ms(self, attempt: int) -> int:
        initial = self.config.initial_ms
        factor = self.config.factor
        raw = initial * (factor ** max(0, attempt - 1))
        capped = min(float(self.config.max_ms), raw)
        jitter = capped * self.config.jitter
        low = max(0.0, capped - jitter)
        high = capped + jitter
        return int(random.uniform(low, high))
