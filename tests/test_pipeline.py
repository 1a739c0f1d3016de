import pytest

from relaybot.adapters.memory import MemoryClient
from relaybot.core.context import AgentContext, build_context
from relaybot.core.errors import PipelineError
from relaybot.core.models import ContentTypeId, ContentTypes, Message
from relaybot.core.pipeline import Outcome, Pipeline


def make_ctx() -> AgentContext:
    client = MemoryClient("agent-inbox")
    conversation = client.add_conversation("c1")
    message = Message(
        id="m1",
        sender_inbox_id="peer",
        conversation_id="c1",
        content="hi",
        content_type=ContentTypeId.of(ContentTypes.TEXT),
    )
    return build_context(message, conversation, client)


class Recorder:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def layer(self, name: str):
        async def _mw(ctx, next):
            self.calls.append(f"{name}:before")
            outcome = await next()
            self.calls.append(f"{name}:after")
            return outcome

        return _mw

    async def terminal(self, ctx) -> None:
        self.calls.append("terminal")


async def test_middleware_runs_in_order_around_terminal():
    rec = Recorder()
    pipeline = Pipeline([rec.layer("a"), rec.layer("b")])

    outcome = await pipeline.run(make_ctx(), rec.terminal)

    assert outcome is Outcome.CONTINUE
    assert rec.calls == ["a:before", "b:before", "terminal", "b:after", "a:after"]


async def test_empty_pipeline_calls_terminal():
    rec = Recorder()
    assert await Pipeline().run(make_ctx(), rec.terminal) is Outcome.CONTINUE
    assert rec.calls == ["terminal"]


async def test_returning_without_next_halts():
    rec = Recorder()

    async def veto(ctx, next):
        return None

    pipeline = Pipeline([rec.layer("a"), veto, rec.layer("c")])
    outcome = await pipeline.run(make_ctx(), rec.terminal)

    assert outcome is Outcome.HALT
    assert rec.calls == ["a:before", "a:after"]


async def test_explicit_halt_outcome():
    rec = Recorder()

    async def veto(ctx, next):
        return Outcome.HALT

    assert await Pipeline([veto]).run(make_ctx(), rec.terminal) is Outcome.HALT
    assert rec.calls == []


async def test_sync_middleware_is_supported():
    rec = Recorder()

    def veto(ctx, next):
        return Outcome.HALT

    assert await Pipeline([veto]).run(make_ctx(), rec.terminal) is Outcome.HALT


async def test_outer_layer_sees_inner_halt():
    seen: list[Outcome] = []

    async def outer(ctx, next):
        outcome = await next()
        seen.append(outcome)
        return outcome

    async def veto(ctx, next):
        return None

    await Pipeline([outer, veto]).run(make_ctx(), Recorder().terminal)
    assert seen == [Outcome.HALT]


async def test_calling_next_twice_raises():
    async def greedy(ctx, next):
        await next()
        await next()

    with pytest.raises(PipelineError):
        await Pipeline([greedy]).run(make_ctx(), Recorder().terminal)


async def test_continue_without_next_raises():
    async def liar(ctx, next):
        return Outcome.CONTINUE

    with pytest.raises(PipelineError):
        await Pipeline([liar]).run(make_ctx(), Recorder().terminal)


async def test_middleware_exception_propagates():
    async def broken(ctx, next):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await Pipeline([broken]).run(make_ctx(), Recorder().terminal)


async def test_middleware_can_hand_values_to_terminal():
    async def tag(ctx, next):
        ctx.state["tagged"] = True
        return await next()

    seen: list[bool] = []

    async def terminal(ctx):
        seen.append(ctx.state.get("tagged", False))

    await Pipeline([tag]).run(make_ctx(), terminal)
    assert seen == [True]


async def test_run_uses_snapshot_of_layers():
    rec = Recorder()
    pipeline = Pipeline()

    async def adds_more(ctx, next):
        pipeline.use(rec.layer("late"))
        return await next()

    pipeline.use(adds_more)
    await pipeline.run(make_ctx(), rec.terminal)
    assert rec.calls == ["terminal"]

    rec.calls.clear()
    await pipeline.run(make_ctx(), rec.terminal)
    assert rec.calls == ["late:before", "terminal", "late:after"]


def test_use_rejects_non_callable():
    with pytest.raises(TypeError):
        Pipeline().use("not a middleware")
