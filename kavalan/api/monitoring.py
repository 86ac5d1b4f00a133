"""Health check and monitoring endpoints."""

from __future__ import annotations

import json
from pathlib import Path

from fastapi import APIRouter

from kavalan.core.models import BOAT_ID_PATTERN, MESSAGE_BODY_MAX, MESSAGE_KINDS

router = APIRouter(prefix="/api/v1")

# Load build info once at import time.
_BUILD_INFO_PATH = Path(__file__).parent.parent / "build_info.json"
_BUILD_INFO: dict = {}
if _BUILD_INFO_PATH.exists():
    try:
        _BUILD_INFO = json.loads(_BUILD_INFO_PATH.read_text())
    except (json.JSONDecodeError, OSError):
        pass


@router.get("/health")
async def health() -> dict:
    """Basic health check."""
    from kavalan.main import VERSION, get_services, get_stats

    snapshot = get_stats().snapshot()
    result = {
        "status": "ok",
        "version": VERSION,
        "uptime_seconds": snapshot["uptime_seconds"],
        "storage_writable": get_services().store.writable(),
    }
    result.update(_BUILD_INFO)
    return result


@router.get("/stats")
async def stats() -> dict:
    """Detailed fleet statistics including active boat counts.

    The ``active_boats`` section shows:
    - ``total``: boats seen in the last N seconds (configurable window)
    - ``location``, ``chat``, ``sos``: boats by their most recent activity
    - ``window_seconds``: the time window used for "active" calculation
    """
    from kavalan.main import get_stats

    return get_stats().snapshot()


@router.get("/config")
async def get_client_config() -> dict:
    """Configuration endpoint for the mobile app.

    The app calls this on startup to get server-controlled parameters.
    """
    from kavalan.main import get_config

    config = get_config()
    return {
        "boat_id_pattern": BOAT_ID_PATTERN.pattern,
        "message_body_max": MESSAGE_BODY_MAX,
        "message_kinds": list(MESSAGE_KINDS),
        "default_speed_kmh": config.navigation.default_speed_kmh,
        "chat_history_limit": config.limits.chat_history_limit,
        "weather_sweep_interval_s": config.weather.sweep_interval_s,
        "voice_language": config.voice.language,
    }
