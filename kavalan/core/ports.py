"""Safe port registry.

Ports are maintained by an administrator and only read by the routing
code. Removal is a soft delete (``active=False``).
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

import structlog

from kavalan.core.errors import NotFoundException, ValidationException
from kavalan.core.models import Location, SafePort

if TYPE_CHECKING:
    from kavalan.storage.base import DocumentStore

log = structlog.get_logger()

SAFE_PORTS = "safe_ports"

_ALL_FACILITIES = frozenset({"fuel", "repair", "medical", "emergency"})

# Served until an administrator stores ports of their own.
DEFAULT_SAFE_PORTS: tuple[SafePort, ...] = (
    SafePort(
        id="chennai", name="Chennai Port", localized_name="சென்னை துறைமுகம்",
        location=Location(13.0827, 80.2707), capacity=100,
        facilities=_ALL_FACILITIES,
    ),
    SafePort(
        id="tuticorin", name="Tuticorin Port", localized_name="தூத்துக்குடி துறைமுகம்",
        location=Location(8.7642, 78.1348), capacity=80,
        facilities=_ALL_FACILITIES,
    ),
    SafePort(
        id="enayam", name="Enayam Port", localized_name="எண்ணாயம் துறைமுகம்",
        location=Location(8.1833, 77.4167), capacity=60,
        facilities=frozenset({"fuel", "repair", "emergency"}),
    ),
    SafePort(
        id="kanyakumari", name="Kanyakumari Port", localized_name="கன்னியாகுமரி துறைமுகம்",
        location=Location(8.0883, 77.5385), capacity=40,
        facilities=frozenset({"fuel", "emergency"}),
    ),
    SafePort(
        id="rameshwaram", name="Rameshwaram Port", localized_name="ராமேஸ்வரம் துறைமுகம்",
        location=Location(9.2881, 79.3129), capacity=50,
        facilities=frozenset({"fuel", "repair", "emergency"}),
    ),
)

_UPDATABLE = {"name", "localized_name", "location", "capacity", "facilities", "active"}


class SafePortRegistry:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def list_ports(self) -> list[SafePort]:
        docs = await self._store.all(SAFE_PORTS)
        if not docs:
            return list(DEFAULT_SAFE_PORTS)
        return [SafePort.from_dict(d) for d in docs]

    async def _ensure_seeded(self) -> None:
        """Copy the defaults into the store before the first admin edit."""
        if await self._store.all(SAFE_PORTS):
            return
        for port in DEFAULT_SAFE_PORTS:
            await self._store.set(SAFE_PORTS, port.id, port.to_dict())

    async def get(self, port_id: str) -> SafePort:
        for port in await self.list_ports():
            if port.id == port_id:
                return port
        raise NotFoundException(f"safe port {port_id} not found")

    async def add(self, port: SafePort) -> SafePort:
        await self._ensure_seeded()
        await self._store.set(SAFE_PORTS, port.id, port.to_dict())
        log.info("safe_port_added", port=port.id)
        return port

    async def update(self, port_id: str, changes: dict) -> SafePort:
        unknown = set(changes) - _UPDATABLE
        if unknown:
            raise ValidationException(f"cannot update port fields: {', '.join(sorted(unknown))}")
        await self._ensure_seeded()
        current = await self.get(port_id)
        merged = current.to_dict()
        merged.update(changes)
        port = SafePort.from_dict(merged)
        await self._store.set(SAFE_PORTS, port_id, port.to_dict())
        log.info("safe_port_updated", port=port_id, fields=sorted(changes))
        return port

    async def deactivate(self, port_id: str) -> SafePort:
        await self._ensure_seeded()
        port = replace(await self.get(port_id), active=False)
        await self._store.set(SAFE_PORTS, port_id, port.to_dict())
        log.info("safe_port_deactivated", port=port_id)
        return port
