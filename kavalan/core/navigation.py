"""Per-boat navigation advisory.

Every location update records the fix (last known location plus the
append-only history) and recomputes the boat's advisory in full: nearest
active safe port, distance, bearing and ETA, together with the boat's
latest stored risk assessment. Only the newest advisory is kept.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog

from kavalan.core import geo
from kavalan.core.errors import NoDataYetException
from kavalan.core.models import (
    Location,
    NavigationAdvisory,
    RiskAssessment,
    ts,
    utcnow,
    validate_boat_id,
)
from kavalan.core.weather import RISK

if TYPE_CHECKING:
    from kavalan.core.boats import BoatDirectory
    from kavalan.core.ports import SafePortRegistry
    from kavalan.core.stats import FleetStats
    from kavalan.storage.base import DocumentStore

log = structlog.get_logger()

ADVISORIES = "navigation"
LOCATIONS = "locations"
HISTORY = "history"


class NavigationService:
    def __init__(
        self,
        store: DocumentStore,
        boats: BoatDirectory,
        ports: SafePortRegistry,
        stats: FleetStats,
        default_speed_kmh: float = geo.DEFAULT_SPEED_KMH,
    ) -> None:
        self._store = store
        self._boats = boats
        self._ports = ports
        self._stats = stats
        self._speed = default_speed_kmh

    async def update_location(self, boat_id: str, location: Location) -> NavigationAdvisory:
        await self._boats.set_last_location(boat_id, location)
        await self._store.append(LOCATIONS, boat_id, HISTORY, {
            "id": str(uuid.uuid4()),
            **location.to_dict(),
            "recorded_at": ts(utcnow()),
        })

        advisory = await self._compute(boat_id, location)
        await self._store.set(ADVISORIES, boat_id, advisory.to_dict())
        self._stats.record_location(boat_id)
        log.info("advisory_updated", boat=boat_id,
                 port=advisory.nearest_safe_port.id if advisory.nearest_safe_port else None,
                 distance_km=advisory.distance_to_port_km,
                 risk=advisory.risk.level if advisory.risk else None)
        return advisory

    async def _compute(self, boat_id: str, location: Location) -> NavigationAdvisory:
        fix = geo.fix_to_nearest_port(location, await self._ports.list_ports(), self._speed)
        risk_doc = await self._store.get(RISK, boat_id)
        return NavigationAdvisory(
            boat_id=boat_id,
            current_location=location,
            nearest_safe_port=fix.port if fix else None,
            distance_to_port_km=round(fix.distance_km, 3) if fix else None,
            bearing_to_port=round(fix.bearing, 1) if fix else None,
            eta_minutes=fix.eta_minutes if fix else None,
            risk=RiskAssessment.from_dict(risk_doc) if risk_doc else None,
            computed_at=utcnow(),
        )

    async def get_advisory(self, boat_id: str) -> NavigationAdvisory:
        validate_boat_id(boat_id)
        data = await self._store.get(ADVISORIES, boat_id)
        if data is None:
            raise NoDataYetException(f"no navigation advisory for boat {boat_id} yet")
        return NavigationAdvisory.from_dict(data)

    async def location_history(self, boat_id: str, limit: int = 50) -> list[Location]:
        """Recorded fixes, newest first."""
        validate_boat_id(boat_id)
        items = await self._store.items(LOCATIONS, boat_id, HISTORY)
        return [Location.from_dict(d) for d in reversed(items[-limit:])]

    async def active_boat_locations(self) -> list[dict]:
        return [
            {"boat_id": b.boat_id, "name": b.name, "location": b.last_location.to_dict()}
            for b in await self._boats.active_boats()
            if b.last_location is not None
        ]

    def _speed_or_default(self, speed_kmh: float | None) -> float:
        return self._speed if speed_kmh is None else speed_kmh

    def route(self, start: Location, end: Location, speed_kmh: float | None = None) -> geo.Route:
        return geo.route(start, end, self._speed_or_default(speed_kmh))

    async def nearest_port(self, location: Location, speed_kmh: float | None = None) -> geo.PortFix | None:
        ports = await self._ports.list_ports()
        return geo.fix_to_nearest_port(location, ports, self._speed_or_default(speed_kmh))
