"""Geospatial engine — distance, bearing, ETA and nearest safe port.

Pure functions over Location / SafePort values. Everything here is
deterministic and side-effect free.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from kavalan.core.errors import ValidationException
from kavalan.core.models import Location, SafePort

# Earth radius in kilometers (for Haversine).
EARTH_RADIUS_KM = 6371.0

# Cruising speed assumed for a fishing boat when the caller gives none.
DEFAULT_SPEED_KMH = 20.0


def distance(a: Location, b: Location) -> float:
    """Great-circle distance in kilometers between two points."""
    rlat1, rlat2 = math.radians(a.latitude), math.radians(b.latitude)
    dlat = math.radians(b.latitude - a.latitude)
    dlon = math.radians(b.longitude - a.longitude)
    h = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def bearing(a: Location, b: Location) -> float:
    """Initial compass bearing in degrees [0, 360) from a towards b."""
    rlat1, rlat2 = math.radians(a.latitude), math.radians(b.latitude)
    dlon = math.radians(b.longitude - a.longitude)
    y = math.sin(dlon) * math.cos(rlat2)
    x = math.cos(rlat1) * math.sin(rlat2) - math.sin(rlat1) * math.cos(rlat2) * math.cos(dlon)
    return (math.degrees(math.atan2(y, x)) + 360) % 360


def eta(distance_km: float, speed_kmh: float = DEFAULT_SPEED_KMH) -> int:
    """Minutes needed to cover ``distance_km`` at ``speed_kmh``, rounded."""
    if speed_kmh <= 0:
        raise ValidationException(f"speed must be positive, got {speed_kmh}")
    return round(distance_km / speed_kmh * 60)


@dataclass(frozen=True)
class PortFix:
    """The nearest port together with how to get there."""
    port: SafePort
    distance_km: float
    bearing: float
    eta_minutes: int

    def to_dict(self) -> dict:
        return {
            "port": self.port.to_dict(),
            "distance_km": round(self.distance_km, 3),
            "bearing": round(self.bearing, 1),
            "eta_minutes": self.eta_minutes,
        }


def nearest_active_port(location: Location, ports: Iterable[SafePort]) -> SafePort | None:
    """Return the active port closest to ``location``, or None.

    Ties keep the port seen first in ``ports`` iteration order; there is
    no secondary key.
    """
    best: SafePort | None = None
    best_dist = math.inf
    for port in ports:
        if not port.active:
            continue
        d = distance(location, port.location)
        if d < best_dist:
            best_dist = d
            best = port
    return best


def fix_to_nearest_port(
    location: Location,
    ports: Iterable[SafePort],
    speed_kmh: float = DEFAULT_SPEED_KMH,
) -> PortFix | None:
    port = nearest_active_port(location, ports)
    if port is None:
        return None
    d = distance(location, port.location)
    return PortFix(
        port=port,
        distance_km=d,
        bearing=bearing(location, port.location),
        eta_minutes=eta(d, speed_kmh),
    )


@dataclass(frozen=True)
class Route:
    distance_km: float
    bearing: float
    eta_minutes: int
    waypoints: tuple[Location, ...]

    def to_dict(self) -> dict:
        return {
            "distance_km": round(self.distance_km, 3),
            "bearing": round(self.bearing, 1),
            "eta_minutes": self.eta_minutes,
            "waypoints": [
                {"latitude": w.latitude, "longitude": w.longitude} for w in self.waypoints
            ],
        }


def route(start: Location, end: Location, speed_kmh: float = DEFAULT_SPEED_KMH) -> Route:
    """Direct great-circle leg between two points."""
    d = distance(start, end)
    return Route(
        distance_km=d,
        bearing=bearing(start, end),
        eta_minutes=eta(d, speed_kmh),
        waypoints=(start, end),
    )
