"""Tests for the store-and-forward chat channel."""

from __future__ import annotations

import asyncio
import random

import pytest
from structlog.testing import capture_logs

from conftest import BOAT_A, BOAT_B, BOAT_C, CHENNAI
from kavalan.core.chat import BACKUPS, MESSAGES, THREADS, participants, thread_of
from kavalan.core.errors import ValidationException
from kavalan.core.models import Message
from kavalan.core.transport import SimulatedLoRaTransport


def test_thread_identity_is_order_independent():
    assert thread_of(BOAT_A, BOAT_B) == thread_of(BOAT_B, BOAT_A)
    assert thread_of(BOAT_A, BOAT_B) == f"{BOAT_A}_{BOAT_B}"
    assert participants(thread_of(BOAT_C, BOAT_A)) == (BOAT_A, BOAT_C)


@pytest.mark.parametrize("bad", ["TN1-AB123", "tn01-ab123", "TN01AB123", ""])
def test_thread_rejects_malformed_ids(bad):
    with pytest.raises(ValidationException):
        thread_of(bad, BOAT_A)


def test_thread_needs_two_different_boats():
    with pytest.raises(ValidationException):
        thread_of(BOAT_A, BOAT_A)
    with pytest.raises(ValidationException):
        participants(f"{BOAT_A}_{BOAT_A}")


@pytest.mark.asyncio
async def test_send_appends_backs_up_and_delivers(fleet):
    chat = fleet.services.chat
    receipt = await chat.send(BOAT_A, BOAT_B, "hi")

    assert receipt.message.delivered is True
    assert receipt.transport_status == "transmitted"

    thread = thread_of(BOAT_A, BOAT_B)
    stored = await fleet.store.items(THREADS, thread, MESSAGES)
    assert len(stored) == 1
    assert stored[0]["delivered"] is True
    assert stored[0]["delivered_at"] is not None

    backup = await chat.drain_backup(BOAT_B)
    assert [e.message.id for e in backup] == [receipt.message.id]
    assert await chat.drain_backup(BOAT_A) == []
    assert fleet.stats.snapshot()["messages_delivered"] == 1


@pytest.mark.asyncio
async def test_transport_failure_still_backs_up(fleet):
    fleet.transport.failing.add(BOAT_B)
    receipt = await fleet.services.chat.send(BOAT_A, BOAT_B, "are you there?")

    assert receipt.message.delivered is False
    assert receipt.transport_status == "failed"
    backup = await fleet.services.chat.drain_backup(BOAT_B)
    assert len(backup) == 1
    assert backup[0].message.delivered is False
    assert fleet.stats.snapshot()["transport_failures"] == 1


@pytest.mark.asyncio
async def test_backup_write_failure_does_not_abort_send(fleet):
    original = fleet.store.append

    async def flaky_append(collection, doc_id, sub, item):
        if collection == BACKUPS:
            raise OSError("disk full")
        await original(collection, doc_id, sub, item)

    fleet.store.append = flaky_append
    receipt = await fleet.services.chat.send(BOAT_A, BOAT_B, "hello")

    assert receipt.message.delivered is True
    assert len(await fleet.store.items(THREADS, receipt.message.thread, MESSAGES)) == 1
    assert fleet.stats.snapshot()["backup_errors"] == 1


@pytest.mark.asyncio
async def test_delivery_flag_write_failure_is_not_a_transport_failure(fleet):
    async def failing_update_item(collection, doc_id, sub, item_id, changes):
        raise OSError("disk full")

    fleet.store.update_item = failing_update_item
    with capture_logs() as logs:
        receipt = await fleet.services.chat.send(BOAT_A, BOAT_B, "hello")

    assert receipt.message.delivered is True
    assert receipt.transport_status == "transmitted"
    events = [entry["event"] for entry in logs]
    assert "delivery_flag_write_failed" in events
    assert "transport_failed" not in events
    stored = await fleet.store.items(THREADS, receipt.message.thread, MESSAGES)
    assert stored[0]["delivered"] is False


@pytest.mark.asyncio
@pytest.mark.parametrize("kwargs", [
    {"body": ""},
    {"body": "x" * 1001},
    {"body": "hi", "kind": "video"},
    {"body": "hi", "to_boat": "BOAT-2"},
    {"body": "hi", "to_boat": BOAT_A},
])
async def test_invalid_message_writes_nothing(fleet, kwargs):
    args = {"from_boat": BOAT_A, "to_boat": BOAT_B, "body": "hi", **kwargs}
    with pytest.raises(ValidationException):
        await fleet.services.chat.send(**args)
    assert await fleet.store.all(THREADS) == []
    assert fleet.transport.sent == []


@pytest.mark.asyncio
async def test_mark_read_is_idempotent(fleet):
    chat = fleet.services.chat
    await chat.send(BOAT_A, BOAT_B, "hi")
    await chat.send(BOAT_A, BOAT_B, "still there?")
    await chat.send(BOAT_B, BOAT_A, "yes")
    thread = thread_of(BOAT_A, BOAT_B)

    assert await chat.unread_count(thread, BOAT_B) == 2
    assert await chat.mark_read(thread, BOAT_B) == 2
    assert await chat.unread_count(thread, BOAT_B) == 0
    assert await chat.mark_read(thread, BOAT_B) == 0
    # Messages the other way are untouched.
    assert await chat.unread_count(thread, BOAT_A) == 1


@pytest.mark.asyncio
async def test_mark_read_rejects_outsider(fleet):
    with pytest.raises(ValidationException):
        await fleet.services.chat.mark_read(thread_of(BOAT_A, BOAT_B), BOAT_C)


@pytest.mark.asyncio
async def test_history_is_chronological_and_limited(fleet):
    chat = fleet.services.chat
    for i in range(5):
        await chat.send(BOAT_A, BOAT_B, f"msg {i}")

    history = await chat.history(BOAT_B, BOAT_A, limit=3)
    assert [m.body for m in history] == ["msg 2", "msg 3", "msg 4"]


@pytest.mark.asyncio
async def test_broadcast_reaches_other_active_boats(fleet, boats):
    receipt = await fleet.services.chat.broadcast(BOAT_A, "storm coming", kind="weather")

    assert set(receipt.recipients) == {BOAT_B, BOAT_C}
    assert receipt.to_dict()["succeeded"] == 2
    for boat in (BOAT_B, BOAT_C):
        backup = await fleet.services.chat.drain_backup(boat)
        assert [e.message.kind for e in backup] == ["weather"]


@pytest.mark.asyncio
async def test_broadcast_isolates_recipient_failures(fleet, boats):
    original = fleet.store.append

    async def failing_for_b(collection, doc_id, sub, item):
        if collection == THREADS and BOAT_B in doc_id:
            raise OSError("write failed")
        await original(collection, doc_id, sub, item)

    fleet.store.append = failing_for_b
    receipt = await fleet.services.chat.broadcast(BOAT_A, "anyone near?")

    data = receipt.to_dict()
    assert data["failed_recipients"] == [BOAT_B]
    assert data["succeeded"] == 1
    assert len(await fleet.services.chat.history(BOAT_A, BOAT_C)) == 1


@pytest.mark.asyncio
async def test_broadcast_with_lossy_link_keeps_all_backups(fleet, boats):
    fleet.transport.failing.add(BOAT_C)
    await fleet.services.chat.broadcast(BOAT_A, "check in")

    b = await fleet.services.chat.history(BOAT_A, BOAT_B)
    c = await fleet.services.chat.history(BOAT_A, BOAT_C)
    assert b[0].delivered is True
    assert c[0].delivered is False
    assert len(await fleet.services.chat.drain_backup(BOAT_C)) == 1


@pytest.mark.asyncio
async def test_broadcast_skips_inactive_boats(fleet, boats):
    await fleet.services.boats.deactivate(BOAT_C)
    receipt = await fleet.services.chat.broadcast(BOAT_A, "hello fleet")
    assert receipt.recipients == (BOAT_B,)


@pytest.mark.asyncio
async def test_broadcast_validates_before_sending(fleet, boats):
    with pytest.raises(ValidationException):
        await fleet.services.chat.broadcast(BOAT_A, "")
    assert fleet.transport.sent == []


@pytest.mark.asyncio
async def test_send_sos_body_and_kind(fleet, boats):
    await fleet.services.chat.send_sos(BOAT_A, CHENNAI, "engine failure")
    history = await fleet.services.chat.history(BOAT_A, BOAT_B)
    assert history[0].body == "SOS: engine failure"
    assert history[0].kind == "sos"
    assert history[0].location.latitude == CHENNAI.latitude

    await fleet.services.chat.send_sos(BOAT_A, None)
    assert (await fleet.services.chat.history(BOAT_A, BOAT_B))[-1].body == "SOS:"


@pytest.mark.asyncio
async def test_drain_does_not_clear_until_asked(fleet):
    chat = fleet.services.chat
    await chat.send(BOAT_A, BOAT_B, "one")
    await chat.send(BOAT_C, BOAT_B, "two")

    first = await chat.drain_backup(BOAT_B)
    second = await chat.drain_backup(BOAT_B)
    assert [e.message.body for e in first] == ["one", "two"]
    assert len(second) == 2

    assert await chat.clear_backup(BOAT_B) == 2
    assert await chat.drain_backup(BOAT_B) == []
    assert await chat.clear_backup(BOAT_B) == 0


@pytest.mark.asyncio
async def test_threads_summary_and_statistics(fleet):
    chat = fleet.services.chat
    await chat.send(BOAT_A, BOAT_B, "first")
    await chat.send(BOAT_C, BOAT_A, "second")

    threads = await chat.threads_for(BOAT_A)
    assert [t.other_boat for t in threads] == [BOAT_C, BOAT_B]
    assert threads[0].unread_count == 1
    assert threads[1].unread_count == 0

    summary = await chat.unread_summary(BOAT_A)
    assert summary == {"total_unread": 1, "chats_with_unread": 1, "total_chats": 2}

    stats = await chat.statistics(BOAT_A)
    assert stats["total_messages"] == 2
    assert stats["active_chats"] == 2
    assert stats["unread_messages"] == 1


@pytest.mark.asyncio
async def test_link_status_is_persisted(fleet):
    status = await fleet.services.chat.link_status(BOAT_A)
    assert status.connected is True
    stored = await fleet.store.get("link_status", BOAT_A)
    assert stored["signal_strength"] == 80


@pytest.mark.asyncio
async def test_simulated_transport_delay_and_loss():
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    transport = SimulatedLoRaTransport(rng=random.Random(7), sleep=fake_sleep)
    message = Message(id="m1", thread=thread_of(BOAT_A, BOAT_B), from_boat=BOAT_A,
                      to_boat=BOAT_B, body="ping")
    results = [await transport.transmit(message) for _ in range(200)]

    assert all(0.5 <= s <= 2.5 for s in sleeps)
    delivered = sum(1 for r in results if r.success)
    assert 160 <= delivered <= 199
    assert {r.status for r in results} == {"transmitted", "failed"}


@pytest.mark.asyncio
async def test_simulated_transport_all_or_nothing_rates():
    async def no_sleep(seconds):
        await asyncio.sleep(0)

    message = Message(id="m1", thread="", from_boat=BOAT_A, to_boat=BOAT_B, body="ping")
    never = SimulatedLoRaTransport(success_rate=0.0, sleep=no_sleep)
    always = SimulatedLoRaTransport(success_rate=1.0, sleep=no_sleep)
    assert (await never.transmit(message)).success is False
    assert (await always.transmit(message)).success is True


@pytest.mark.parametrize("kwargs", [
    {"min_delay_s": -1},
    {"min_delay_s": 3, "max_delay_s": 2},
    {"success_rate": 1.5},
])
def test_simulated_transport_rejects_bad_parameters(kwargs):
    with pytest.raises(ValidationException):
        SimulatedLoRaTransport(**kwargs)
