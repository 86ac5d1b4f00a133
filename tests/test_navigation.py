"""Tests for location updates, advisories and the safe port registry."""

from __future__ import annotations

import pytest

from conftest import BOAT_A, BOAT_B, CHENNAI
from kavalan.core import geo
from kavalan.core.errors import NoDataYetException, NotFoundException, ValidationException
from kavalan.core.models import Location, SafePort
from kavalan.core.ports import DEFAULT_SAFE_PORTS, SAFE_PORTS

OFF_TUTICORIN = Location(8.9, 78.3)


@pytest.mark.asyncio
async def test_update_location_computes_advisory(fleet, boats):
    advisory = await fleet.services.navigation.update_location(BOAT_A, OFF_TUTICORIN)

    assert advisory.nearest_safe_port.id == "tuticorin"
    expected = geo.distance(OFF_TUTICORIN, Location(8.7642, 78.1348))
    assert advisory.distance_to_port_km == pytest.approx(expected, abs=0.001)
    assert 0 <= advisory.bearing_to_port < 360
    assert advisory.eta_minutes == geo.eta(advisory.distance_to_port_km)
    assert advisory.risk is None

    stored = await fleet.services.navigation.get_advisory(BOAT_A)
    assert stored.nearest_safe_port.id == "tuticorin"
    assert stored.current_location.latitude == OFF_TUTICORIN.latitude

    profile = await fleet.services.boats.require(BOAT_A)
    assert profile.last_location.latitude == OFF_TUTICORIN.latitude
    assert fleet.stats.snapshot()["location_updates"] == 1


@pytest.mark.asyncio
async def test_advisory_replaced_on_each_update(fleet, boats):
    nav = fleet.services.navigation
    await nav.update_location(BOAT_A, OFF_TUTICORIN)
    await nav.update_location(BOAT_A, Location(13.0, 80.3))
    assert (await nav.get_advisory(BOAT_A)).nearest_safe_port.id == "chennai"


@pytest.mark.asyncio
async def test_unknown_boat_location_rejected(fleet, boats):
    with pytest.raises(NotFoundException):
        await fleet.services.navigation.update_location("TN09-ZZ999", CHENNAI)


@pytest.mark.asyncio
async def test_no_advisory_yet(fleet, boats):
    with pytest.raises(NoDataYetException):
        await fleet.services.navigation.get_advisory(BOAT_A)


@pytest.mark.asyncio
async def test_advisory_includes_latest_risk(fleet, boats):
    fleet.weather_source.reading = fleet.weather_source.reading.__class__(
        wind_speed=35.0, wind_direction=90, temperature=29.0,
        humidity=80, pressure=995, visibility_km=0.8, description="gale",
    )
    await fleet.services.weather.refresh(BOAT_A, OFF_TUTICORIN)
    advisory = await fleet.services.navigation.update_location(BOAT_A, OFF_TUTICORIN)

    assert advisory.risk is not None
    assert advisory.risk.level == "red"
    assert advisory.risk.score == 80 + 80 + 70


@pytest.mark.asyncio
async def test_no_active_ports_means_no_fix(fleet, boats):
    for port in DEFAULT_SAFE_PORTS:
        await fleet.services.ports.deactivate(port.id)

    advisory = await fleet.services.navigation.update_location(BOAT_A, CHENNAI)
    assert advisory.nearest_safe_port is None
    assert advisory.distance_to_port_km is None
    assert advisory.eta_minutes is None


@pytest.mark.asyncio
async def test_location_history_newest_first(fleet, boats):
    nav = fleet.services.navigation
    for lat in (10.0, 10.1, 10.2):
        await nav.update_location(BOAT_A, Location(lat, 80.0))

    history = await nav.location_history(BOAT_A)
    assert [loc.latitude for loc in history] == [10.2, 10.1, 10.0]
    assert [loc.latitude for loc in await nav.location_history(BOAT_A, limit=2)] == [10.2, 10.1]


@pytest.mark.asyncio
async def test_active_boat_locations(fleet, boats):
    await fleet.services.navigation.update_location(BOAT_A, CHENNAI)
    located = await fleet.services.navigation.active_boat_locations()
    assert {entry["boat_id"] for entry in located} == {BOAT_A, BOAT_B}


@pytest.mark.asyncio
async def test_nearest_port_and_route(fleet):
    nav = fleet.services.navigation
    fix = await nav.nearest_port(Location(9.3, 79.3))
    assert fix.port.id == "rameshwaram"

    route = nav.route(CHENNAI, OFF_TUTICORIN)
    assert route.eta_minutes == geo.eta(route.distance_km, 20.0)
    faster = nav.route(CHENNAI, OFF_TUTICORIN, speed_kmh=40.0)
    assert faster.eta_minutes < route.eta_minutes


# ---------------------------------------------------------------------------
# Safe port registry
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_defaults_served_without_writing(fleet):
    ports = await fleet.services.ports.list_ports()
    assert [p.id for p in ports] == [p.id for p in DEFAULT_SAFE_PORTS]
    assert await fleet.store.all(SAFE_PORTS) == []


@pytest.mark.asyncio
async def test_add_port_keeps_defaults(fleet):
    port = SafePort(id="pamban", name="Pamban Harbour", localized_name="",
                    location=Location(9.28, 79.21), capacity=20)
    await fleet.services.ports.add(port)

    ids = {p.id for p in await fleet.services.ports.list_ports()}
    assert "pamban" in ids
    assert {p.id for p in DEFAULT_SAFE_PORTS} <= ids


@pytest.mark.parametrize("port_id", ["My Port", "a/b", "../escape", "", "Pamban"])
def test_port_id_must_be_a_slug(port_id):
    with pytest.raises(ValidationException):
        SafePort(id=port_id, name="Pamban Harbour", localized_name="",
                 location=Location(9.28, 79.21))


@pytest.mark.asyncio
async def test_update_port(fleet):
    port = await fleet.services.ports.update("enayam", {"capacity": 75})
    assert port.capacity == 75
    assert (await fleet.services.ports.get("enayam")).capacity == 75
    assert (await fleet.services.ports.get("chennai")).capacity == 100


@pytest.mark.asyncio
async def test_update_port_rejects_unknown_fields(fleet):
    with pytest.raises(ValidationException):
        await fleet.services.ports.update("enayam", {"id": "other"})


@pytest.mark.asyncio
async def test_unknown_port(fleet):
    with pytest.raises(NotFoundException):
        await fleet.services.ports.get("atlantis")


@pytest.mark.asyncio
async def test_deactivated_port_is_skipped(fleet, boats):
    await fleet.services.ports.deactivate("tuticorin")
    advisory = await fleet.services.navigation.update_location(BOAT_A, OFF_TUTICORIN)
    assert advisory.nearest_safe_port.id != "tuticorin"
    assert (await fleet.services.ports.get("tuticorin")).active is False
