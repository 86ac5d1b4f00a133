"""Boat directory — identity and emergency-contact resolution.

Profiles are owned by the registration side of the system; the core only
reads them, records each boat's last known location, and deactivates
(never deletes) boats.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

import structlog

from kavalan.core.errors import NotFoundException
from kavalan.core.models import BoatProfile, Location, validate_boat_id

if TYPE_CHECKING:
    from kavalan.storage.base import DocumentStore

log = structlog.get_logger()

BOATS = "boats"


class BoatDirectory:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get(self, boat_id: str) -> BoatProfile | None:
        validate_boat_id(boat_id)
        data = await self._store.get(BOATS, boat_id)
        return BoatProfile.from_dict(data) if data else None

    async def require(self, boat_id: str) -> BoatProfile:
        profile = await self.get(boat_id)
        if profile is None:
            raise NotFoundException(f"boat {boat_id} not found")
        return profile

    async def upsert(self, profile: BoatProfile) -> BoatProfile:
        existing = await self.get(profile.boat_id)
        if existing is not None and profile.last_location is None:
            profile = replace(profile, last_location=existing.last_location)
        await self._store.set(BOATS, profile.boat_id, profile.to_dict())
        log.info("boat_upserted", boat=profile.boat_id, active=profile.active)
        return profile

    async def deactivate(self, boat_id: str) -> BoatProfile:
        profile = await self.require(boat_id)
        profile = replace(profile, active=False)
        await self._store.set(BOATS, boat_id, profile.to_dict())
        log.info("boat_deactivated", boat=boat_id)
        return profile

    async def active_boats(self) -> list[BoatProfile]:
        docs = await self._store.all(BOATS)
        return [p for p in (BoatProfile.from_dict(d) for d in docs) if p.active]

    async def set_last_location(self, boat_id: str, location: Location) -> None:
        await self.require(boat_id)
        await self._store.update(BOATS, boat_id, {"last_location": location.to_dict()})
