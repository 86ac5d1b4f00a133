"""Location, navigation advisory and safe port endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request

from kavalan.api.common import read_json, speed
from kavalan.core.errors import ValidationException
from kavalan.core.models import Location, SafePort

router = APIRouter(prefix="/api/v1")


@router.post("/navigation/route")
async def plan_route(request: Request) -> dict:
    """Body: {"from": {lat/lon}, "to": {lat/lon}, "speed_kmh"?}."""
    from kavalan.main import get_services

    body = await read_json(request)
    start = Location.from_dict(body.get("from", {}))
    end = Location.from_dict(body.get("to", {}))
    return get_services().navigation.route(start, end, speed(body)).to_dict()


@router.post("/navigation/nearest-port")
async def nearest_port(request: Request) -> dict:
    from kavalan.main import get_services

    body = await read_json(request)
    fix = await get_services().navigation.nearest_port(
        Location.from_dict(body.get("location", {})), speed(body),
    )
    return {"nearest": fix.to_dict() if fix else None}


@router.get("/navigation/active-boats")
async def active_boat_locations() -> dict:
    from kavalan.main import get_services

    return {"boats": await get_services().navigation.active_boat_locations()}


@router.post("/navigation/{boat_id}/location")
async def update_location(boat_id: str, request: Request) -> dict:
    """Record a position fix and return the recomputed advisory."""
    from kavalan.main import get_services

    body = await read_json(request)
    advisory = await get_services().navigation.update_location(boat_id, Location.from_dict(body))
    return advisory.to_dict()


@router.get("/navigation/{boat_id}/advisory")
async def get_advisory(boat_id: str) -> dict:
    from kavalan.main import get_services

    return (await get_services().navigation.get_advisory(boat_id)).to_dict()


@router.get("/navigation/{boat_id}/history")
async def location_history(boat_id: str, limit: int = Query(50, ge=1, le=500)) -> dict:
    from kavalan.main import get_services

    history = await get_services().navigation.location_history(boat_id, limit)
    return {"boat_id": boat_id, "locations": [loc.to_dict() for loc in history]}


# ---------------------------------------------------------------------------
# Safe ports
# ---------------------------------------------------------------------------


@router.get("/ports")
async def list_ports(include_inactive: bool = False) -> dict:
    from kavalan.main import get_services

    ports = await get_services().ports.list_ports()
    if not include_inactive:
        ports = [p for p in ports if p.active]
    return {"ports": [p.to_dict() for p in ports]}


@router.post("/ports", status_code=201)
async def add_port(request: Request) -> dict:
    from kavalan.main import get_services

    port = SafePort.from_dict(await read_json(request))
    return (await get_services().ports.add(port)).to_dict()


@router.patch("/ports/{port_id}")
async def update_port(port_id: str, request: Request) -> dict:
    from kavalan.main import get_services

    changes = await read_json(request)
    if not changes:
        raise ValidationException("no fields to update")
    return (await get_services().ports.update(port_id, changes)).to_dict()


@router.post("/ports/{port_id}/deactivate")
async def deactivate_port(port_id: str) -> dict:
    from kavalan.main import get_services

    return (await get_services().ports.deactivate(port_id)).to_dict()
