import itertools

import pytest

from relaybot.adapters.memory import MemoryClient
from relaybot.core.filters import and_, content_type, evaluate, filters, from_sender, not_, or_
from relaybot.core.models import ContentTypeId, ContentTypes, Message


def make_message(sender: str = "peer", type_id: str = ContentTypes.TEXT, content="hi") -> Message:
    return Message(
        id="m1",
        sender_inbox_id=sender,
        conversation_id="c1",
        content=content,
        content_type=ContentTypeId.of(type_id),
    )


def const(value: bool):
    def _f(message, client):
        return value

    return _f


def async_const(value: bool):
    async def _f(message, client):
        return value

    return _f


CLIENT = MemoryClient("agent-inbox")


@pytest.mark.parametrize("a, b", list(itertools.product([True, False], repeat=2)))
async def test_de_morgan(a: bool, b: bool):
    msg = make_message()
    left = not_(and_(const(a), async_const(b)))
    right = or_(not_(const(a)), not_(async_const(b)))
    assert await evaluate(left, msg, CLIENT) == await evaluate(right, msg, CLIENT)
    assert await evaluate(left, msg, CLIENT) == (not (a and b))


async def test_empty_combinators_are_vacuous():
    msg = make_message()
    assert await evaluate(and_(), msg, CLIENT) is True
    assert await evaluate(or_(), msg, CLIENT) is False


async def test_and_short_circuits_on_first_false():
    calls: list[str] = []

    def spy(message, client):
        calls.append("spy")
        return True

    assert await evaluate(and_(const(False), spy), make_message(), CLIENT) is False
    assert calls == []


async def test_or_short_circuits_on_first_true():
    calls: list[str] = []

    async def spy(message, client):
        calls.append("spy")
        return False

    assert await evaluate(or_(async_const(True), spy), make_message(), CLIENT) is True
    assert calls == []


async def test_combinators_evaluate_in_order():
    order: list[int] = []

    def mark(n: int, result: bool):
        def _f(message, client):
            order.append(n)
            return result

        return _f

    await evaluate(and_(mark(1, True), mark(2, True), mark(3, False), mark(4, True)), make_message(), CLIENT)
    assert order == [1, 2, 3]


async def test_truthy_results_are_coerced_to_bool():
    def truthy(message, client):
        return "yes"

    assert await evaluate(truthy, make_message(), CLIENT) is True
    assert await evaluate(not_(truthy), make_message(), CLIENT) is False


def test_self_filters_compare_case_insensitively():
    own = make_message(sender="AGENT-INBOX")
    other = make_message(sender="someone-else")

    assert filters.from_self(own, CLIENT) is True
    assert filters.not_from_self(own, CLIENT) is False
    assert filters.from_self(other, CLIENT) is False
    assert filters.not_from_self(other, CLIENT) is True


def test_text_only_and_content_type():
    text = make_message()
    reaction = make_message(type_id=ContentTypes.REACTION, content=None)

    assert filters.text_only(text, CLIENT) is True
    assert filters.text_only(reaction, CLIENT) is False
    assert content_type(ContentTypes.REACTION)(reaction, CLIENT) is True
    assert content_type(ContentTypes.REACTION)(text, CLIENT) is False


def test_text_only_rejects_untyped_message():
    msg = Message(id="m", sender_inbox_id="peer", conversation_id="c", content="hi")
    assert filters.text_only(msg, CLIENT) is False


def test_from_sender_accepts_single_id_or_collection():
    alice = make_message(sender="Alice")
    bob = make_message(sender="bob")

    assert from_sender("alice")(alice, CLIENT) is True
    assert from_sender("alice")(bob, CLIENT) is False
    assert from_sender(["ALICE", "Bob"])(bob, CLIENT) is True


async def test_combinators_do_not_mutate_inputs():
    base = const(True)
    negated = not_(base)
    combined = and_(base, negated)

    msg = make_message()
    assert base(msg, CLIENT) is True
    assert await evaluate(negated, msg, CLIENT) is False
    assert await evaluate(combined, msg, CLIENT) is False
    assert await evaluate(or_(base, negated), msg, CLIENT) is True


@pytest.mark.parametrize("value", [True, False])
async def test_single_argument_combinators_are_identity(value: bool):
    msg = make_message()
    f = const(value)
    assert await evaluate(and_(f), msg, CLIENT) is value
    assert await evaluate(or_(f), msg, CLIENT) is value
    assert await evaluate(not_(not_(f)), msg, CLIENT) is value
