import pytest

from relaybot.adapters.memory import MemoryClient
from relaybot.agent.loop import Agent
from relaybot.core.context import build_context
from relaybot.core.models import ContentTypeId, ContentTypes, EventCategory, Message
from relaybot.core.pipeline import Outcome, Pipeline
from relaybot.pipeline import (
    AllowListMiddleware,
    DeduplicationMiddleware,
    LoggingMiddleware,
    RateLimitMiddleware,
)


def make_ctx(message_id: str = "m1", sender: str = "peer"):
    client = MemoryClient("agent-inbox")
    conversation = client.add_conversation("c1")
    message = Message(
        id=message_id,
        sender_inbox_id=sender,
        conversation_id="c1",
        content="hi",
        content_type=ContentTypeId.of(ContentTypes.TEXT),
    )
    return build_context(message, conversation, client)


async def noop(ctx) -> None:
    return None


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


async def test_dedup_halts_redelivered_message():
    pipeline = Pipeline([DeduplicationMiddleware(ttl_seconds=60)])

    assert await pipeline.run(make_ctx("m1"), noop) is Outcome.CONTINUE
    assert await pipeline.run(make_ctx("m1"), noop) is Outcome.HALT
    assert await pipeline.run(make_ctx("m2"), noop) is Outcome.CONTINUE


async def test_dedup_in_agent_dispatches_once():
    client = MemoryClient("agent-inbox")
    client.add_conversation("c1")
    agent = Agent(client).use(DeduplicationMiddleware())
    seen: list[str] = []
    agent.on(EventCategory.TEXT, lambda ctx: seen.append(ctx.message.id))

    message = client.push_text("peer", "c1", "hello")
    client.push(message)
    client.close()
    await agent.start()

    assert seen == [message.id]


async def test_allow_list_is_case_insensitive():
    pipeline = Pipeline([AllowListMiddleware(["Admin"])])

    assert await pipeline.run(make_ctx(sender="ADMIN"), noop) is Outcome.CONTINUE
    assert await pipeline.run(make_ctx(sender="stranger"), noop) is Outcome.HALT


async def test_empty_allow_list_blocks_everyone():
    assert await Pipeline([AllowListMiddleware([])]).run(make_ctx(), noop) is Outcome.HALT


async def test_rate_limit_per_sender_sliding_window():
    clock = FakeClock()
    pipeline = Pipeline([RateLimitMiddleware(max_messages=2, window_seconds=10, clock=clock)])

    assert await pipeline.run(make_ctx(sender="a"), noop) is Outcome.CONTINUE
    clock.now += 1
    assert await pipeline.run(make_ctx(sender="a"), noop) is Outcome.CONTINUE
    assert await pipeline.run(make_ctx(sender="a"), noop) is Outcome.HALT
    assert await pipeline.run(make_ctx(sender="b"), noop) is Outcome.CONTINUE

    clock.now += 9.5
    assert await pipeline.run(make_ctx(sender="a"), noop) is Outcome.CONTINUE
    assert await pipeline.run(make_ctx(sender="a"), noop) is Outcome.HALT


async def test_rate_limit_forgets_idle_senders_on_periodic_sweep():
    clock = FakeClock()
    limiter = RateLimitMiddleware(max_messages=1, window_seconds=10, clock=clock)
    pipeline = Pipeline([limiter])

    await pipeline.run(make_ctx(sender="a"), noop)
    clock.now = 1015.0
    await pipeline.run(make_ctx(sender="b"), noop)
    assert len(limiter) == 2

    clock.now = 1100.0
    await pipeline.run(make_ctx(sender="c"), noop)
    assert len(limiter) == 1


def test_rate_limit_rejects_bad_settings():
    with pytest.raises(ValueError):
        RateLimitMiddleware(max_messages=0)
    with pytest.raises(ValueError):
        RateLimitMiddleware(window_seconds=0)


async def test_logging_middleware_passes_outcome_through():
    async def veto(ctx, next):
        return Outcome.HALT

    assert await Pipeline([LoggingMiddleware()]).run(make_ctx(), noop) is Outcome.CONTINUE
    assert await Pipeline([LoggingMiddleware(level="DEBUG"), veto]).run(make_ctx(), noop) is Outcome.HALT
