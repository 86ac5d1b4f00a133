"""Tests for SOS case lifecycle and the notification fan-out."""

from __future__ import annotations

import pytest

from conftest import BOAT_A, BOAT_B, BOAT_C, CHENNAI
from kavalan.core.dispatch import BOAT_ALERTS, DEFAULT_AUTHORITIES, INBOX
from kavalan.core.errors import NotFoundException, ValidationException
from kavalan.core.models import Location
from kavalan.core.rendering import maps_link
from kavalan.core.sos import DEFAULT_SOS_MESSAGE, TEST_SOS_MESSAGE


def _by_kind(attempts, kind):
    return [a for a in attempts if a.target_kind == kind]


@pytest.mark.asyncio
async def test_create_case_is_active_and_stored(fleet, boats):
    case = await fleet.services.sos.create_case(BOAT_A, CHENNAI, "engine failure")

    assert case.status == "active"
    assert case.fisherman_name == "Murugan"
    assert case.message == "engine failure"
    assert BOAT_A in case.voice_text
    stored = await fleet.services.sos.get(case.id)
    assert stored.boat_id == BOAT_A
    assert stored.location.latitude == CHENNAI.latitude
    assert len(stored.emergency_contacts) == 2


@pytest.mark.asyncio
async def test_blank_message_gets_default(fleet, boats):
    case = await fleet.services.sos.create_case(BOAT_A, CHENNAI, "   ")
    assert case.message == DEFAULT_SOS_MESSAGE


@pytest.mark.asyncio
async def test_unknown_boat_is_rejected(fleet, boats):
    with pytest.raises(NotFoundException):
        await fleet.services.sos.create_case("TN09-ZZ999", CHENNAI)
    assert await fleet.services.sos.active_cases() == []


@pytest.mark.asyncio
async def test_fan_out_reaches_every_group(fleet, boats):
    case = await fleet.services.sos.create_case(BOAT_A, CHENNAI, "taking water")
    attempts = await fleet.services.sos.attempts(case.id)

    contacts = _by_kind(attempts, "emergency-contact")
    assert sorted((a.channel, a.target) for a in contacts) == [
        ("email", "lakshmi@example.com"),
        ("sms", "+919800000001"),
        ("sms", "+919812345678"),
    ]

    authorities = _by_kind(attempts, "authority")
    assert sorted(a.target for a in authorities) == sorted(DEFAULT_AUTHORITIES.values())

    nearby = _by_kind(attempts, "nearby-boat")
    assert sorted(a.target for a in nearby) == [BOAT_B, BOAT_C]
    assert all(a.status == "sent" for a in attempts)
    assert len(attempts) == 7


@pytest.mark.asyncio
async def test_payloads_carry_case_details(fleet, boats):
    await fleet.services.sos.create_case(BOAT_A, CHENNAI, "taking water")

    sms_to_contact = dict(fleet.sms.sent)["+919812345678"]
    assert sms_to_contact.kind == "short"
    assert "Murugan" in sms_to_contact.body
    assert maps_link(CHENNAI) in sms_to_contact.body
    assert "taking water" in sms_to_contact.body

    email = dict(fleet.email.sent)["lakshmi@example.com"]
    assert email.subject == f"🚨 SOS Emergency Alert - Boat {BOAT_A}"
    assert "View on Map" in email.html
    assert BOAT_A in email.body


@pytest.mark.asyncio
async def test_nearby_boats_get_inbox_copy(fleet, boats):
    case = await fleet.services.sos.create_case(BOAT_A, CHENNAI)

    inbox_b = await fleet.store.items(BOAT_ALERTS, BOAT_B, INBOX)
    assert len(inbox_b) == 1
    assert inbox_b[0]["kind"] == "sos_nearby"
    assert inbox_b[0]["source_id"] == case.id
    assert inbox_b[0]["distance_km"] == pytest.approx(19.1, abs=0.5)

    # No last location, so no distance.
    inbox_c = await fleet.store.items(BOAT_ALERTS, BOAT_C, INBOX)
    assert inbox_c[0]["distance_km"] is None

    assert await fleet.store.items(BOAT_ALERTS, BOAT_A, INBOX) == []


@pytest.mark.asyncio
async def test_radius_does_not_filter_nearby_boats(fleet, boats):
    far_away = Location(8.0, 77.0)
    selected = await fleet.services.dispatcher.nearby_boats(far_away, radius_km=0.1)
    assert {b.boat_id for b in selected} == {BOAT_A, BOAT_B, BOAT_C}


@pytest.mark.asyncio
async def test_channel_failure_is_isolated(fleet, boats):
    fleet.sms.failing.add("+919812345678")
    case = await fleet.services.sos.create_case(BOAT_A, CHENNAI)
    attempts = await fleet.services.sos.attempts(case.id)

    failed = [a for a in attempts if a.status == "failed"]
    assert len(failed) == 1
    assert failed[0].target == "+919812345678"
    assert "rejected" in failed[0].error
    assert len(attempts) == 7
    assert sum(1 for a in attempts if a.status == "sent") == 6
    assert fleet.stats.snapshot()["notifications_failed"] == 1


@pytest.mark.asyncio
async def test_inbox_write_failure_is_isolated(fleet, boats):
    original = fleet.store.append

    async def failing_inbox(collection, doc_id, sub, item):
        if collection == BOAT_ALERTS and doc_id == BOAT_B:
            raise OSError("inbox unavailable")
        await original(collection, doc_id, sub, item)

    fleet.store.append = failing_inbox
    case = await fleet.services.sos.create_case(BOAT_A, CHENNAI)

    nearby = _by_kind(await fleet.services.sos.attempts(case.id), "nearby-boat")
    status = {a.target: a.status for a in nearby}
    assert status == {BOAT_B: "failed", BOAT_C: "sent"}


@pytest.mark.asyncio
async def test_dispatch_report_counts_unrecorded_attempts(fleet, boats):
    case = await fleet.services.sos.create_case(BOAT_C, CHENNAI)
    original = fleet.store.append

    async def audit_down(collection, doc_id, sub, item):
        if collection == "audit":
            raise OSError("audit unavailable")
        await original(collection, doc_id, sub, item)

    fleet.store.append = audit_down
    report = await fleet.services.dispatcher.dispatch_sos(case)

    # Boat C has no contacts: two authorities and two other boats.
    assert report.attempts == ()
    assert report.unrecorded == 4
    assert report.failed_groups == ()


@pytest.mark.asyncio
async def test_boat_without_contacts_still_alerts_authorities(fleet, boats):
    case = await fleet.services.sos.create_case(BOAT_C, CHENNAI)
    attempts = await fleet.services.sos.attempts(case.id)
    assert _by_kind(attempts, "emergency-contact") == []
    assert len(_by_kind(attempts, "authority")) == 2


@pytest.mark.asyncio
async def test_resolve_case(fleet, boats):
    case = await fleet.services.sos.create_case(BOAT_A, CHENNAI)
    resolved = await fleet.services.sos.resolve(case.id, "coast_guard", "towed to harbour")

    assert resolved.status == "resolved"
    assert resolved.resolved_by == "coast_guard"
    assert resolved.notes == "towed to harbour"
    assert resolved.resolved_at is not None
    assert await fleet.services.sos.active_cases() == []

    events = await fleet.services.sos.events(case.id)
    assert [e.action for e in events] == ["created", "resolved"]
    assert events[0].actor == BOAT_A
    assert events[1].actor == "coast_guard"


@pytest.mark.asyncio
async def test_resolve_twice_overwrites(fleet, boats):
    case = await fleet.services.sos.create_case(BOAT_A, CHENNAI)
    first = await fleet.services.sos.resolve(case.id, "coast_guard")
    second = await fleet.services.sos.resolve(case.id, "marine_police", "second look")

    assert second.resolved_by == "marine_police"
    assert second.resolved_at >= first.resolved_at
    stored = await fleet.services.sos.get(case.id)
    assert stored.resolved_by == "marine_police"
    assert [e.action for e in await fleet.services.sos.events(case.id)] == [
        "created", "resolved", "resolved",
    ]


@pytest.mark.asyncio
async def test_resolve_requires_resolver(fleet, boats):
    case = await fleet.services.sos.create_case(BOAT_A, CHENNAI)
    with pytest.raises(ValidationException):
        await fleet.services.sos.resolve(case.id, "  ")
    with pytest.raises(ValidationException):
        await fleet.services.sos.resolve(case.id, "coast_guard", notes={"text": "rescued"})
    assert (await fleet.services.sos.get(case.id)).status == "active"


@pytest.mark.asyncio
async def test_create_case_rejects_non_string_message(fleet, boats):
    with pytest.raises(ValidationException):
        await fleet.services.sos.create_case(BOAT_A, CHENNAI, message=5)
    assert await fleet.services.sos.cases_for_boat(BOAT_A) == []
    assert fleet.sms.sent == []


@pytest.mark.asyncio
async def test_unknown_case(fleet):
    with pytest.raises(NotFoundException):
        await fleet.services.sos.get("nope")
    with pytest.raises(NotFoundException):
        await fleet.services.sos.resolve("nope", "coast_guard")
    with pytest.raises(NotFoundException):
        await fleet.services.sos.attempts("nope")


@pytest.mark.asyncio
async def test_test_case_uses_fixed_location(fleet, boats):
    case = await fleet.services.sos.test_case(BOAT_B)
    assert case.message == TEST_SOS_MESSAGE
    assert case.location.latitude == 13.0827
    assert case.location.accuracy == 10


@pytest.mark.asyncio
async def test_cases_for_boat_and_statistics(fleet, boats):
    sos = fleet.services.sos
    first = await sos.create_case(BOAT_A, CHENNAI, "one")
    await sos.create_case(BOAT_A, CHENNAI, "two")
    await sos.create_case(BOAT_B, CHENNAI, "three")
    await sos.resolve(first.id, "coast_guard")

    cases = await sos.cases_for_boat(BOAT_A)
    assert [c.message for c in cases] == ["two", "one"]
    assert len(await sos.cases_for_boat(BOAT_A, limit=1)) == 1

    stats = await sos.statistics()
    assert stats["total"] == 3
    assert stats["active"] == 2
    assert stats["resolved"] == 1
    assert stats["last_24h"] == 3
    assert stats["average_resolution_minutes"] >= 0

    snap = fleet.stats.snapshot()
    assert snap["sos_cases_created"] == 3
    assert snap["sos_cases_resolved"] == 1


@pytest.mark.asyncio
async def test_statistics_without_resolutions(fleet):
    stats = await fleet.services.sos.statistics()
    assert stats["total"] == 0
    assert stats["average_resolution_minutes"] is None
