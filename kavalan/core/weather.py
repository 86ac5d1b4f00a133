"""Weather snapshots and the risk assessments derived from them.

A boat has one current snapshot and one current risk assessment; both are
replaced on every refresh. The periodic sweep refreshes every active boat
with a known location and isolates failures per boat.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

import structlog

from kavalan.core import risk as risk_engine
from kavalan.core.errors import NoDataYetException, WeatherSourceException
from kavalan.core.fanout import run_isolated
from kavalan.core.models import (
    Location,
    RiskAssessment,
    WeatherSnapshot,
    utcnow,
    validate_boat_id,
)

if TYPE_CHECKING:
    from kavalan.core.boats import BoatDirectory
    from kavalan.core.models import ForecastPoint, WeatherReading
    from kavalan.core.stats import FleetStats
    from kavalan.sources.base import WeatherSource
    from kavalan.storage.base import DocumentStore

log = structlog.get_logger()

WEATHER = "weather"
RISK = "risk"


def tide_speed(now: datetime) -> float:
    """Simulated tidal current; no tide model is consulted."""
    return round(abs(math.sin(now.hour / 24 * 2 * math.pi) * 2 + 1), 3)


def snapshot_from_reading(
    reading: WeatherReading,
    location: Location,
    now: datetime | None = None,
) -> WeatherSnapshot:
    now = now or utcnow()
    return WeatherSnapshot(
        wind_speed=reading.wind_speed,
        wind_direction=reading.wind_direction,
        temperature=reading.temperature,
        humidity=reading.humidity,
        pressure=reading.pressure,
        visibility_km=reading.visibility_km,
        sea_condition=risk_engine.sea_condition(reading.wind_speed),
        tide_speed=tide_speed(now),
        location=location,
        captured_at=now,
        description=reading.description,
    )


@dataclass(frozen=True)
class BoatWeather:
    snapshot: WeatherSnapshot
    risk: RiskAssessment | None

    def to_dict(self) -> dict:
        return {
            "weather": self.snapshot.to_dict(),
            "risk": self.risk.to_dict() if self.risk else None,
        }


@dataclass(frozen=True)
class SweepReport:
    updated: tuple[str, ...]
    skipped: tuple[str, ...]
    failed: tuple[str, ...]

    def to_dict(self) -> dict:
        return {
            "updated": list(self.updated),
            "skipped": list(self.skipped),
            "failed": list(self.failed),
        }


class WeatherService:
    def __init__(
        self,
        store: DocumentStore,
        boats: BoatDirectory,
        source: WeatherSource | None,
        stats: FleetStats,
    ) -> None:
        self._store = store
        self._boats = boats
        self._source = source
        self._stats = stats

    def _require_source(self) -> WeatherSource:
        if self._source is None:
            raise WeatherSourceException("no weather source configured")
        return self._source

    async def refresh(self, boat_id: str, location: Location) -> BoatWeather:
        """Fetch current conditions at ``location`` and store them for the boat."""
        validate_boat_id(boat_id)
        try:
            reading = await self._require_source().fetch(location.latitude, location.longitude)
            snapshot = snapshot_from_reading(reading, location)
        except Exception:
            self._stats.record_weather(ok=False)
            raise
        return await self.store_snapshot(boat_id, snapshot)

    async def store_snapshot(self, boat_id: str, snapshot: WeatherSnapshot) -> BoatWeather:
        validate_boat_id(boat_id)
        assessment = risk_engine.assess(snapshot)
        await self._store.set(WEATHER, boat_id, snapshot.to_dict())
        await self._store.set(RISK, boat_id, assessment.to_dict())
        self._stats.record_weather(ok=True)
        log.info("weather_stored", boat=boat_id, wind_speed=snapshot.wind_speed,
                 sea=snapshot.sea_condition, risk=assessment.level, score=assessment.score)
        return BoatWeather(snapshot=snapshot, risk=assessment)

    async def get(self, boat_id: str) -> BoatWeather:
        validate_boat_id(boat_id)
        data = await self._store.get(WEATHER, boat_id)
        if data is None:
            raise NoDataYetException(f"no weather data for boat {boat_id} yet")
        risk_doc = await self._store.get(RISK, boat_id)
        return BoatWeather(
            snapshot=WeatherSnapshot.from_dict(data),
            risk=RiskAssessment.from_dict(risk_doc) if risk_doc else None,
        )

    async def risk(self, boat_id: str) -> RiskAssessment:
        validate_boat_id(boat_id)
        data = await self._store.get(RISK, boat_id)
        if data is None:
            raise NoDataYetException(f"no risk assessment for boat {boat_id} yet")
        return RiskAssessment.from_dict(data)

    async def forecast(self, location: Location) -> list[ForecastPoint]:
        return await self._require_source().forecast(location.latitude, location.longitude)

    async def sweep(self) -> SweepReport:
        """Refresh every active boat with a known location.

        One boat's failure is logged and counted; the others still run.
        """
        boats = await self._boats.active_boats()
        located = {b.boat_id: b.last_location for b in boats if b.last_location is not None}
        skipped = tuple(b.boat_id for b in boats if b.last_location is None)

        outcomes = await run_isolated(
            {boat_id: self.refresh(boat_id, loc) for boat_id, loc in located.items()},
            label="weather_sweep",
        )
        report = SweepReport(
            updated=tuple(o.key for o in outcomes if o.ok),
            skipped=skipped,
            failed=tuple(o.key for o in outcomes if not o.ok),
        )
        self._stats.record_sweep()
        log.info("weather_sweep_finished", updated=len(report.updated),
                 skipped=len(report.skipped), failed=len(report.failed))
        return report
