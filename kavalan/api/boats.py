"""Boat profile endpoints.

Registration itself happens elsewhere; these endpoints let that side
push a profile (name, phone, emergency contacts) and deactivate a boat.
"""

from __future__ import annotations

from fastapi import APIRouter, Request

from kavalan.api.common import read_json
from kavalan.core.models import BoatProfile, parse_contacts, validate_boat_id

router = APIRouter(prefix="/api/v1")


@router.get("/boats")
async def list_active_boats() -> dict:
    from kavalan.main import get_services

    boats = await get_services().boats.active_boats()
    return {"boats": [b.to_dict() for b in boats]}


@router.put("/boats/{boat_id}")
async def upsert_boat(boat_id: str, request: Request) -> dict:
    from kavalan.main import get_services

    validate_boat_id(boat_id)
    body = await read_json(request)
    profile = BoatProfile(
        boat_id=boat_id,
        name=body.get("name", ""),
        phone=body.get("phone"),
        emergency_contacts=parse_contacts(body.get("emergency_contacts")),
        active=bool(body.get("active", True)),
        role=body.get("role", "fisherman"),
    )
    profile = await get_services().boats.upsert(profile)
    return profile.to_dict()


@router.get("/boats/{boat_id}")
async def get_boat(boat_id: str) -> dict:
    from kavalan.main import get_services

    return (await get_services().boats.require(boat_id)).to_dict()


@router.post("/boats/{boat_id}/deactivate")
async def deactivate_boat(boat_id: str) -> dict:
    from kavalan.main import get_services

    return (await get_services().boats.deactivate(boat_id)).to_dict()
