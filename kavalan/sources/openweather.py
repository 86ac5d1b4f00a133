"""OpenWeatherMap weather source.

Uses the 2.5 ``/weather`` and ``/forecast`` endpoints in metric units.
OpenWeatherMap reports wind in m/s and visibility in metres; both are
converted here so the rest of the system sees km/h and km.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import httpx
import structlog

from kavalan.core.errors import WeatherSourceException
from kavalan.core.models import ForecastPoint, WeatherReading

log = structlog.get_logger()

OPENWEATHER_BASE_URL = "https://api.openweathermap.org/data/2.5"

_MAX_RETRIES = 2
_RETRY_STATUSES = {429, 500, 502, 503, 504}
_BASE_BACKOFF_SECONDS = 1.0

MS_TO_KMH = 3.6


class OpenWeatherSource:
    def __init__(
        self,
        api_key: str,
        base_url: str = OPENWEATHER_BASE_URL,
        timeout_s: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout_s
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def _get(self, path: str, latitude: float, longitude: float) -> dict:
        """GET with exponential backoff on retryable statuses and network errors."""
        client = await self._get_client()
        params = {"lat": latitude, "lon": longitude, "appid": self._api_key, "units": "metric"}

        for attempt in range(_MAX_RETRIES + 1):
            try:
                response = await client.get(path, params=params)
            except httpx.RequestError as exc:
                if attempt >= _MAX_RETRIES:
                    raise WeatherSourceException(f"weather request failed: {exc}") from exc
                delay = _BASE_BACKOFF_SECONDS * (2 ** attempt)
                log.warning("weather_request_retry", path=path, error=str(exc), delay_s=delay)
                await asyncio.sleep(delay)
                continue

            if response.status_code < 400:
                return response.json()
            if response.status_code not in _RETRY_STATUSES or attempt >= _MAX_RETRIES:
                raise WeatherSourceException(
                    f"weather source returned {response.status_code} for {path}",
                )
            delay = _BASE_BACKOFF_SECONDS * (2 ** attempt)
            log.warning("weather_request_retry", path=path,
                        status=response.status_code, delay_s=delay)
            await asyncio.sleep(delay)

        raise WeatherSourceException(f"max retries exceeded for {path}")

    async def fetch(self, latitude: float, longitude: float) -> WeatherReading:
        data = await self._get("/weather", latitude, longitude)
        wind = data.get("wind") or {}
        main = data.get("main") or {}
        weather = (data.get("weather") or [{}])[0]
        return WeatherReading(
            wind_speed=round((wind.get("speed") or 0) * MS_TO_KMH, 1),
            wind_direction=wind.get("deg") or 0,
            temperature=main.get("temp") or 0,
            humidity=main.get("humidity") or 0,
            pressure=main.get("pressure") or 0,
            visibility_km=(data.get("visibility") or 0) / 1000,
            description=weather.get("description", "unknown"),
        )

    async def forecast(self, latitude: float, longitude: float) -> list[ForecastPoint]:
        data = await self._get("/forecast", latitude, longitude)
        points = []
        for item in data.get("list", []):
            main = item.get("main") or {}
            wind = item.get("wind") or {}
            weather = (item.get("weather") or [{}])[0]
            points.append(ForecastPoint(
                at=datetime.fromtimestamp(item.get("dt", 0), tz=timezone.utc),
                temperature=main.get("temp", 0),
                humidity=main.get("humidity", 0),
                wind_speed=round((wind.get("speed") or 0) * MS_TO_KMH, 1),
                wind_direction=wind.get("deg") or 0,
                description=weather.get("description", "unknown"),
            ))
        return points

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
