"""Weather and risk endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request

from kavalan.api.common import optional_location, read_json
from kavalan.core.errors import NoDataYetException, ValidationException
from kavalan.core.models import Location, WeatherReading
from kavalan.core.weather import snapshot_from_reading

router = APIRouter(prefix="/api/v1")

_READING_FIELDS = (
    "wind_speed", "wind_direction", "temperature", "humidity", "pressure", "visibility_km",
)


@router.get("/weather/forecast")
async def forecast(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
) -> dict:
    from kavalan.main import get_services

    points = await get_services().weather.forecast(Location(latitude=lat, longitude=lon))
    return {"forecast": [p.to_dict() for p in points]}


@router.post("/weather/sweep")
async def run_sweep() -> dict:
    """Run the periodic refresh now instead of waiting for the ticker."""
    from kavalan.main import get_services

    return (await get_services().weather.sweep()).to_dict()


@router.post("/weather/{boat_id}/refresh")
async def refresh(boat_id: str, request: Request) -> dict:
    """Fetch conditions at the given location, or the boat's last known one."""
    from kavalan.main import get_services

    services = get_services()
    body = await read_json(request, required=False)
    location = optional_location(body)
    if location is None:
        profile = await services.boats.require(boat_id)
        if profile.last_location is None:
            raise NoDataYetException(f"no known location for boat {boat_id} yet")
        location = profile.last_location
    return (await services.weather.refresh(boat_id, location)).to_dict()


@router.put("/weather/{boat_id}")
async def report_conditions(boat_id: str, request: Request) -> dict:
    """Store conditions observed on board instead of fetched ones."""
    from kavalan.main import get_services

    body = await read_json(request)
    missing = [
        k for k in _READING_FIELDS
        if isinstance(body.get(k), bool) or not isinstance(body.get(k), (int, float))
    ]
    if missing:
        raise ValidationException(
            "numeric weather fields required",
            details=[{"field": k, "message": "must be a number"} for k in missing],
        )
    reading = WeatherReading(
        wind_speed=body.get("wind_speed"),
        wind_direction=body.get("wind_direction"),
        temperature=body.get("temperature"),
        humidity=body.get("humidity"),
        pressure=body.get("pressure"),
        visibility_km=body.get("visibility_km"),
        description=body.get("description", ""),
    )
    snapshot = snapshot_from_reading(reading, Location.from_dict(body.get("location", {})))
    return (await get_services().weather.store_snapshot(boat_id, snapshot)).to_dict()


@router.get("/weather/{boat_id}")
async def get_weather(boat_id: str) -> dict:
    from kavalan.main import get_services

    return (await get_services().weather.get(boat_id)).to_dict()


@router.get("/weather/{boat_id}/risk")
async def get_risk(boat_id: str) -> dict:
    from kavalan.main import get_services

    return (await get_services().weather.risk(boat_id)).to_dict()
