"""SOS case endpoints.

Creating a case returns once the case is stored and the notification
fan-out has finished. Whether each contact, authority or boat was reached
is read from ``/sos/{case_id}/attempts``.
"""

from __future__ import annotations

from fastapi import APIRouter, Request

from kavalan.api.common import read_json
from kavalan.core.models import Location

router = APIRouter(prefix="/api/v1")


@router.post("/sos", status_code=201)
async def create_case(request: Request) -> dict:
    from kavalan.main import get_services

    body = await read_json(request)
    case = await get_services().sos.create_case(
        boat_id=body.get("boat_id"),
        location=Location.from_dict(body.get("location", {})),
        message=body.get("message") or "",
        requester=body.get("requester"),
    )
    return case.to_dict()


@router.post("/sos/test", status_code=201)
async def create_test_case(request: Request) -> dict:
    from kavalan.main import get_services

    body = await read_json(request)
    return (await get_services().sos.test_case(body.get("boat_id"))).to_dict()


@router.get("/sos/active")
async def active_cases() -> dict:
    from kavalan.main import get_services

    cases = await get_services().sos.active_cases()
    return {"cases": [c.to_dict() for c in cases]}


@router.get("/sos/statistics")
async def statistics() -> dict:
    from kavalan.main import get_services

    return await get_services().sos.statistics()


@router.get("/sos/boats/{boat_id}")
async def cases_for_boat(boat_id: str) -> dict:
    from kavalan.main import get_services

    cases = await get_services().sos.cases_for_boat(boat_id)
    return {"boat_id": boat_id, "cases": [c.to_dict() for c in cases]}


@router.get("/sos/{case_id}")
async def get_case(case_id: str) -> dict:
    from kavalan.main import get_services

    return (await get_services().sos.get(case_id)).to_dict()


@router.post("/sos/{case_id}/resolve")
async def resolve_case(case_id: str, request: Request) -> dict:
    from kavalan.main import get_services

    body = await read_json(request)
    case = await get_services().sos.resolve(case_id, body.get("resolved_by"), body.get("notes") or "")
    return case.to_dict()


@router.get("/sos/{case_id}/attempts")
async def case_attempts(case_id: str) -> dict:
    from kavalan.main import get_services

    attempts = await get_services().sos.attempts(case_id)
    return {"case_id": case_id, "attempts": [a.to_dict() for a in attempts]}


@router.get("/sos/{case_id}/events")
async def case_events(case_id: str) -> dict:
    from kavalan.main import get_services

    events = await get_services().sos.events(case_id)
    return {"case_id": case_id, "events": [e.to_dict() for e in events]}
