import asyncio

import pytest

from relaybot.adapters.memory import MemoryClient
from relaybot.agent.loop import Agent
from relaybot.agent.supervisor import StreamSupervisor
from relaybot.config.schema import ReconnectConfig
from relaybot.core.errors import ReconnectExhaustedError, StreamClosedError
from relaybot.core.models import EventCategory
from relaybot.telemetry import InMemoryTelemetry


class FakeSleep:
    def __init__(self, on_sleep=None) -> None:
        self.delays: list[float] = []
        self._on_sleep = on_sleep

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self._on_sleep is not None:
            self._on_sleep()


def make_agent() -> tuple[Agent, MemoryClient]:
    client = MemoryClient("agent-inbox")
    client.add_conversation("c1")
    return Agent(client), client


def fast_config(**overrides) -> ReconnectConfig:
    values = {"initial_ms": 10, "max_ms": 100, "factor": 2.0, "jitter": 0.0, "max_attempts": 3}
    values.update(overrides)
    return ReconnectConfig(**values)


async def test_restarts_after_stream_failure():
    agent, client = make_agent()
    seen: list[str] = []

    def handler(ctx):
        seen.append(ctx.message.content)
        if ctx.message.content == "after":
            agent.stop()

    agent.on(EventCategory.TEXT, handler)
    client.push_text("peer", "c1", "before")
    client.fail()
    client.push_text("peer", "c1", "after")

    telemetry = InMemoryTelemetry()
    sleep = FakeSleep()
    supervisor = StreamSupervisor(agent, fast_config(), telemetry=telemetry, sleep=sleep)
    await supervisor.run()

    assert seen == ["before", "after"]
    assert client.streams_opened == 2
    assert sleep.delays == [0.01]
    assert telemetry.get_counter("stream_restarts") == 1


async def test_gives_up_after_max_attempts():
    agent, client = make_agent()
    for _ in range(4):
        client.fail(ConnectionError("backend down"))

    sleep = FakeSleep()
    supervisor = StreamSupervisor(agent, fast_config(max_attempts=3), sleep=sleep)

    with pytest.raises(ReconnectExhaustedError) as excinfo:
        await supervisor.run()

    assert excinfo.value.attempts == 3
    assert isinstance(excinfo.value.last_error, ConnectionError)
    assert sleep.delays == [0.01, 0.02, 0.04]
    assert client.streams_opened == 4


async def test_attempts_reset_after_productive_run():
    agent, client = make_agent()
    seen: list[str] = []

    def handler(ctx):
        seen.append(ctx.message.content)
        if ctx.message.content == "last":
            agent.stop()

    agent.on(EventCategory.TEXT, handler)
    client.fail()
    client.push_text("peer", "c1", "progress")
    client.fail()
    client.push_text("peer", "c1", "last")

    sleep = FakeSleep()
    supervisor = StreamSupervisor(agent, fast_config(max_attempts=1), sleep=sleep)
    await supervisor.run()

    assert seen == ["progress", "last"]
    assert sleep.delays == [0.01, 0.01]


async def test_stream_end_without_stop_counts_as_disconnect():
    agent, client = make_agent()
    agent.on(EventCategory.TEXT, lambda ctx: agent.stop())

    client.close()
    client.push_text("peer", "c1", "reconnected")

    sleep = FakeSleep()
    await StreamSupervisor(agent, fast_config(), sleep=sleep).run()

    assert client.streams_opened == 2
    assert len(sleep.delays) == 1


async def test_clean_stop_returns_without_restart():
    agent, client = make_agent()
    agent.on(EventCategory.TEXT, lambda ctx: agent.stop())
    client.push_text("peer", "c1", "bye")

    sleep = FakeSleep()
    await StreamSupervisor(agent, fast_config(), sleep=sleep).run()

    assert sleep.delays == []
    assert client.streams_opened == 1


async def test_stop_during_backoff_ends_supervision():
    agent, client = make_agent()
    client.fail()

    sleep = FakeSleep(on_sleep=agent.stop)
    await StreamSupervisor(agent, fast_config(), sleep=sleep).run()

    assert len(sleep.delays) == 1
    assert client.streams_opened == 1


async def test_disabled_reconnect_propagates_failure():
    agent, client = make_agent()
    client.fail()

    with pytest.raises(StreamClosedError):
        await StreamSupervisor(agent, fast_config(enabled=False), sleep=FakeSleep()).run()


def test_backoff_is_capped_and_jittered():
    agent, _ = make_agent()

    exact = StreamSupervisor(agent, fast_config())
    assert [exact.compute_backoff_ms(n) for n in range(1, 6)] == [10, 20, 40, 80, 100]

    jittered = StreamSupervisor(agent, fast_config(initial_ms=1000, max_ms=1000, jitter=0.5))
    for _ in range(20):
        assert 500 <= jittered.compute_backoff_ms(3) <= 1500


async def test_stop_on_idle_stream_ends_supervised_run():
    agent, client = make_agent()
    sleep = FakeSleep()
    supervisor = StreamSupervisor(agent, fast_config(), sleep=sleep)

    task = asyncio.create_task(supervisor.run())
    while not agent.is_listening:
        await asyncio.sleep(0)
    await asyncio.sleep(0)

    agent.stop()
    await asyncio.wait_for(task, timeout=1.0)

    assert sleep.delays == []
    assert client.streams_opened == 1
