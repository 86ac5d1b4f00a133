"""Weather source interface (port)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from kavalan.core.models import ForecastPoint, WeatherReading


class WeatherSource(Protocol):
    """Port: current conditions and a short forecast for a coordinate.

    Wind speeds are in km/h and visibility in km. Failures are raised as
    ``WeatherSourceException``.
    """

    async def fetch(self, latitude: float, longitude: float) -> WeatherReading: ...

    async def forecast(self, latitude: float, longitude: float) -> list[ForecastPoint]: ...
