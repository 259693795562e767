# tests/services/test_message_log.py
"""Tests for the append-only message log."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from parley_relay.core.context import ServiceContext
from parley_relay.core.errors import EmptyMessage, InvalidInput, NotAuthorized, NotFound, Unavailable
from parley_relay.services.identity import AuthResult
from parley_relay.services.message_log import MessageLog


@pytest.fixture()
def room(context: ServiceContext) -> int:
    return context.directory.get_or_create_default_conversation().id


@pytest.mark.asyncio
async def test_append_assigns_sequential_ids(context: ServiceContext, alice: AuthResult, room: int) -> None:
    first = await context.message_log.append(room, alice.user_id, "hi")
    second = await context.message_log.append(room, alice.user_id, "there")

    assert (first.id, second.id) == (1, 2)
    assert second.created_at >= first.created_at
    assert context.message_log.latest_id(room) == 2


@pytest.mark.asyncio
async def test_append_trims_text(context: ServiceContext, alice: AuthResult, room: int) -> None:
    message = await context.message_log.append(room, alice.user_id, "  hello  \n")
    assert message.text == "hello"


@pytest.mark.asyncio
async def test_concurrent_appends_form_a_total_order(
    context: ServiceContext, alice: AuthResult, bob: AuthResult, room: int
) -> None:
    senders = [alice.user_id, bob.user_id]

    results = await asyncio.gather(
        *(context.message_log.append(room, senders[i % 2], f"message {i}") for i in range(40))
    )

    assert sorted(m.id for m in results) == list(range(1, 41))
    stored = list(context.message_log.read(room))
    assert [m.id for m in stored] == list(range(1, 41))
    assert all(a.created_at <= b.created_at for a, b in zip(stored, stored[1:]))


@pytest.mark.asyncio
async def test_same_millisecond_appends_keep_relative_order(
    context: ServiceContext, alice: AuthResult, bob: AuthResult, room: int, mocker
) -> None:
    instant = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)
    mocker.patch("parley_relay.services.message_log.utcnow", return_value=instant)

    hi, hello = await asyncio.gather(
        context.message_log.append(room, alice.user_id, "hi"),
        context.message_log.append(room, bob.user_id, "hello"),
    )

    assert hi.id < hello.id
    for _ in range(3):
        replay = list(context.message_log.read(room))
        assert [m.text for m in replay] == ["hi", "hello"]
        assert [m.id for m in replay] == [hi.id, hello.id]


@pytest.mark.asyncio
async def test_created_at_never_goes_backwards(
    context: ServiceContext, alice: AuthResult, room: int, mocker
) -> None:
    later = datetime(2026, 1, 1, 12, 0, 5, tzinfo=UTC)
    earlier = later - timedelta(seconds=3)
    mocker.patch("parley_relay.services.message_log.utcnow", side_effect=[later, earlier])

    first = await context.message_log.append(room, alice.user_id, "first")
    second = await context.message_log.append(room, alice.user_id, "second")

    assert first.created_at == later
    assert second.created_at == later
    assert second.id == first.id + 1


@pytest.mark.asyncio
async def test_whitespace_message_is_rejected_without_storing(
    context: ServiceContext, alice: AuthResult, room: int
) -> None:
    with pytest.raises(EmptyMessage):
        await context.message_log.append(room, alice.user_id, "   \t\n ")

    assert list(context.message_log.read(room)) == []
    assert context.message_log.latest_id(room) == 0


@pytest.mark.asyncio
async def test_overlong_message_is_rejected(context: ServiceContext, alice: AuthResult, room: int) -> None:
    with pytest.raises(InvalidInput):
        await context.message_log.append(room, alice.user_id, "x" * 501)
    assert context.message_log.latest_id(room) == 0


@pytest.mark.asyncio
async def test_non_participant_cannot_append(
    context: ServiceContext, alice: AuthResult, bob: AuthResult, carol: AuthResult
) -> None:
    direct = context.directory.create_conversation([alice.user_id, bob.user_id])

    with pytest.raises(NotAuthorized):
        await context.message_log.append(direct.id, carol.user_id, "let me in")
    assert context.message_log.latest_id(direct.id) == 0


@pytest.mark.asyncio
async def test_append_to_unknown_conversation(context: ServiceContext, alice: AuthResult) -> None:
    with pytest.raises(NotFound):
        await context.message_log.append(9999, alice.user_id, "hello?")


@pytest.mark.asyncio
async def test_lock_wait_timeout_reports_unavailable(
    context: ServiceContext, alice: AuthResult, room: int
) -> None:
    log = MessageLog(context.session_factory, write_timeout=0.05)
    lock = log._lock_for(room)
    await lock.acquire()
    try:
        with pytest.raises(Unavailable):
            await log.append(room, alice.user_id, "stuck")
    finally:
        lock.release()

    assert log.latest_id(room) == 0
    message = await log.append(room, alice.user_id, "unstuck")
    assert message.id == 1


@pytest.mark.asyncio
async def test_storage_failure_rolls_back_and_skips_listeners(
    context: ServiceContext, alice: AuthResult, room: int, mocker
) -> None:
    listener = mocker.Mock()
    context.message_log.add_commit_listener(listener)
    mocker.patch(
        "sqlalchemy.orm.Session.commit",
        side_effect=OperationalError("COMMIT", {}, Exception("disk I/O error")),
    )

    with pytest.raises(Unavailable):
        await context.message_log.append(room, alice.user_id, "lost")

    mocker.stopall()
    listener.assert_not_called()
    assert context.message_log.latest_id(room) == 0
    assert list(context.message_log.read(room)) == []


@pytest.mark.asyncio
async def test_listeners_run_after_commit(context: ServiceContext, alice: AuthResult, room: int) -> None:
    observed: list[tuple[int, int]] = []

    def listener(message) -> None:
        observed.append((message.id, context.message_log.latest_id(message.conversation_id)))

    context.message_log.add_commit_listener(listener)
    await context.message_log.append(room, alice.user_id, "one")
    await context.message_log.append(room, alice.user_id, "two")

    assert observed == [(1, 1), (2, 2)]


@pytest.mark.asyncio
async def test_failing_listener_does_not_fail_append(
    context: ServiceContext, alice: AuthResult, room: int
) -> None:
    def broken(message) -> None:
        raise RuntimeError("subscriber exploded")

    context.message_log.add_commit_listener(broken)
    message = await context.message_log.append(room, alice.user_id, "still stored")
    assert context.message_log.latest_id(room) == message.id


@pytest.mark.asyncio
async def test_read_pages_after_cursor(context: ServiceContext, alice: AuthResult, room: int) -> None:
    for i in range(7):
        await context.message_log.append(room, alice.user_id, f"m{i}")

    # read_batch_size is 3 in the test settings, so this spans several pages.
    assert [m.id for m in context.message_log.read(room)] == [1, 2, 3, 4, 5, 6, 7]
    assert [m.id for m in context.message_log.read(room, after_id=2, limit=4)] == [3, 4, 5, 6]
    assert [m.id for m in context.message_log.read(room, after_id=7)] == []
    assert list(context.message_log.read(room, limit=0)) == []


@pytest.mark.asyncio
async def test_read_is_restartable(context: ServiceContext, alice: AuthResult, room: int) -> None:
    for text in ("a", "b", "c", "d"):
        await context.message_log.append(room, alice.user_id, text)

    messages = context.message_log.read(room, after_id=1)
    assert [m.text for m in messages] == ["b", "c", "d"]
    assert [m.text for m in messages] == ["b", "c", "d"]


def test_read_unknown_conversation_fails_eagerly(context: ServiceContext) -> None:
    with pytest.raises(NotFound):
        context.message_log.read(12345)


def test_read_rejects_negative_limit(context: ServiceContext, room: int) -> None:
    with pytest.raises(InvalidInput):
        context.message_log.read(room, limit=-1)


@pytest.mark.asyncio
async def test_soft_delete_leaves_tombstone(context: ServiceContext, alice: AuthResult, room: int) -> None:
    message = await context.message_log.append(room, alice.user_id, "oops")

    context.message_log.delete(room, message.id, alice.user_id)

    [tombstone] = list(context.message_log.read(room))
    assert tombstone.id == message.id
    assert tombstone.deleted
    assert tombstone.text == ""


@pytest.mark.asyncio
async def test_hard_delete_never_reuses_ids(context: ServiceContext, alice: AuthResult, room: int) -> None:
    first = await context.message_log.append(room, alice.user_id, "one")
    second = await context.message_log.append(room, alice.user_id, "two")

    context.message_log.delete(room, second.id, alice.user_id, hard=True)
    third = await context.message_log.append(room, alice.user_id, "three")

    assert [m.id for m in context.message_log.read(room)] == [first.id, third.id]
    assert third.id == 3


@pytest.mark.asyncio
async def test_only_sender_may_delete(
    context: ServiceContext, alice: AuthResult, bob: AuthResult, room: int
) -> None:
    message = await context.message_log.append(room, alice.user_id, "mine")

    with pytest.raises(NotAuthorized):
        context.message_log.delete(room, message.id, bob.user_id)
    with pytest.raises(NotFound):
        context.message_log.delete(room, 999, alice.user_id)

    [kept] = list(context.message_log.read(room))
    assert not kept.deleted


@pytest.mark.asyncio
async def test_conversation_locks_are_released_after_use(
    context: ServiceContext, alice: AuthResult, room: int
) -> None:
    await asyncio.gather(*(context.message_log.append(room, alice.user_id, f"m{i}") for i in range(5)))

    assert room not in context.message_log._locks
    assert context.message_log.latest_id(room) == 5
