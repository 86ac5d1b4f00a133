"""Helpers shared by the API routers."""

from __future__ import annotations

import json

from fastapi import Request

from kavalan.core.errors import ValidationException
from kavalan.core.models import Location


async def read_json(request: Request, *, required: bool = True) -> dict:
    """Parse the request body as a JSON object."""
    raw = await request.body()
    if not raw and not required:
        return {}
    try:
        body = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationException("invalid JSON")
    if not isinstance(body, dict):
        raise ValidationException("request body must be a JSON object")
    return body


def optional_location(body: dict, key: str = "location") -> Location | None:
    data = body.get(key)
    return Location.from_dict(data) if data else None


def speed(body: dict) -> float | None:
    value = body.get("speed_kmh")
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationException("speed_kmh must be a number")
    return float(value)
