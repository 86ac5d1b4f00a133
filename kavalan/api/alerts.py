"""Broadcast alert endpoints and the per-boat alert inbox."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request

from kavalan.api.common import read_json
from kavalan.core.models import AlertDraft

router = APIRouter(prefix="/api/v1")


@router.post("/alerts", status_code=201)
async def create_alert(request: Request) -> dict:
    """Create an alert and deliver it to every affected boat's inbox."""
    from kavalan.main import get_services

    draft = AlertDraft.from_dict(await read_json(request))
    alert = await get_services().alerts.create(draft)
    return alert.to_dict()


@router.get("/alerts/active")
async def active_alerts() -> dict:
    from kavalan.main import get_services

    alerts = await get_services().alerts.active_alerts()
    return {"alerts": [a.to_dict() for a in alerts]}


@router.get("/alerts/overview")
async def overview() -> dict:
    from kavalan.main import get_services

    return await get_services().alerts.overview()


@router.get("/alerts/boats/{boat_id}")
async def boat_alerts(boat_id: str, limit: int | None = Query(None, ge=1, le=100)) -> dict:
    from kavalan.main import get_services

    items = await get_services().alerts.boat_alerts(boat_id, limit)
    return {"boat_id": boat_id, "alerts": [i.to_dict() for i in items]}


@router.post("/alerts/boats/{boat_id}/test-voice")
async def test_voice(boat_id: str) -> dict:
    from kavalan.main import get_services

    return await get_services().alerts.test_voice(boat_id)


@router.post("/alerts/boats/{boat_id}/{item_id}/read")
async def mark_alert_read(boat_id: str, item_id: str) -> dict:
    from kavalan.main import get_services

    return (await get_services().alerts.mark_read(boat_id, item_id)).to_dict()


@router.post("/alerts/boats/{boat_id}/{item_id}/acknowledge")
async def acknowledge(boat_id: str, item_id: str) -> dict:
    from kavalan.main import get_services

    return (await get_services().alerts.acknowledge(boat_id, item_id)).to_dict()


@router.get("/alerts/{alert_id}")
async def get_alert(alert_id: str) -> dict:
    from kavalan.main import get_services

    return (await get_services().alerts.get(alert_id)).to_dict()


@router.post("/alerts/{alert_id}/deactivate")
async def deactivate_alert(alert_id: str) -> dict:
    from kavalan.main import get_services

    return (await get_services().alerts.deactivate(alert_id)).to_dict()


@router.get("/alerts/{alert_id}/attempts")
async def alert_attempts(alert_id: str) -> dict:
    from kavalan.main import get_services

    attempts = await get_services().alerts.attempts(alert_id)
    return {"alert_id": alert_id, "attempts": [a.to_dict() for a in attempts]}
