"""Shared test fixtures."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient

import kavalan.main as main_module
from kavalan.config import AppConfig
from kavalan.core.errors import NotificationChannelException, WeatherSourceException
from kavalan.core.models import BoatProfile, EmergencyContact, ForecastPoint, Location, WeatherReading
from kavalan.core.stats import FleetStats
from kavalan.core.transport import LinkStatus, TransportResult
from kavalan.main import Services, build_services
from kavalan.storage.memory_storage import MemoryDocumentStore

BOAT_A = "TN01-AB123"
BOAT_B = "TN02-CD456"
BOAT_C = "TN03-EF789"

CHENNAI = Location(13.0827, 80.2707)


class InstantTransport:
    """Zero-delay transport; transmissions to ``failing`` boats are lost."""

    def __init__(self) -> None:
        self.failing: set[str] = set()
        self.sent: list = []

    async def transmit(self, message) -> TransportResult:
        self.sent.append(message)
        ok = message.to_boat not in self.failing
        return TransportResult(success=ok, status="transmitted" if ok else "failed")

    async def probe(self, boat_id: str) -> LinkStatus:
        return LinkStatus(connected=True, signal_strength=80, nearby_nodes=3, battery_level=90)


class RecordingChannel:
    """Notification channel that remembers what it sent and fails on demand."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.failing: set[str] = set()
        self.sent: list[tuple[str, object]] = []

    async def send(self, target, message) -> str:
        if target in self.failing:
            raise NotificationChannelException(f"{self.name} rejected {target}")
        self.sent.append((target, message))
        return f"{self.name}-{len(self.sent)}"

    def targets(self) -> list[str]:
        return [t for t, _ in self.sent]


class FakeWeatherSource:
    def __init__(self) -> None:
        self.reading = WeatherReading(
            wind_speed=12.0, wind_direction=180, temperature=29.0,
            humidity=70, pressure=1008, visibility_km=10.0, description="clear sky",
        )
        self.failing_latitudes: set[float] = set()
        self.calls: list[tuple[float, float]] = []

    async def fetch(self, latitude: float, longitude: float) -> WeatherReading:
        self.calls.append((latitude, longitude))
        if latitude in self.failing_latitudes:
            raise WeatherSourceException("upstream timeout")
        return self.reading

    async def forecast(self, latitude: float, longitude: float) -> list[ForecastPoint]:
        return [
            ForecastPoint(
                at=datetime(2030, 1, 1, 3, tzinfo=timezone.utc),
                temperature=28.0, humidity=75, wind_speed=15.0, wind_direction=200,
                description="light rain",
            ),
        ]


class FakeSynthesizer:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def synthesize(self, text: str, language: str) -> str:
        self.calls.append(text)
        return f"https://voice.test/{language}/{len(self.calls)}.mp3"


@dataclass
class Fleet:
    config: AppConfig
    stats: FleetStats
    store: MemoryDocumentStore
    transport: InstantTransport
    sms: RecordingChannel
    email: RecordingChannel
    weather_source: FakeWeatherSource
    synthesizer: FakeSynthesizer
    services: Services


@pytest.fixture
def fleet() -> Fleet:
    config = AppConfig()
    config.storage.backend = "memory"
    config.logging.level = "warning"

    stats = FleetStats(active_window_seconds=config.limits.active_window_seconds)
    store = MemoryDocumentStore()
    transport = InstantTransport()
    sms = RecordingChannel("sms")
    email = RecordingChannel("email")
    weather_source = FakeWeatherSource()
    synthesizer = FakeSynthesizer()
    services = build_services(
        config, stats,
        store=store,
        transport=transport,
        sms=sms,
        email=email,
        weather_source=weather_source,
        synthesizer=synthesizer,
    )
    return Fleet(config, stats, store, transport, sms, email, weather_source, synthesizer, services)


@pytest.fixture(autouse=True)
def _init_server(fleet):
    """Initialize server singletons for every test, using in-memory adapters."""
    main_module._config = fleet.config
    main_module._stats = fleet.stats
    main_module._services = fleet.services

    yield

    # Cleanup
    main_module._config = None
    main_module._stats = None
    main_module._services = None


@pytest.fixture
async def boats(fleet) -> list[BoatProfile]:
    """Three active boats; the first has two emergency contacts."""
    profiles = [
        BoatProfile(
            boat_id=BOAT_A,
            name="Murugan",
            phone="+919876543210",
            emergency_contacts=(
                EmergencyContact(name="Lakshmi", relationship="wife", phone="+919812345678",
                                 email="lakshmi@example.com", is_primary=True),
                EmergencyContact(name="Ravi", relationship="brother", phone="+919800000001"),
            ),
        ),
        BoatProfile(boat_id=BOAT_B, name="Selvam", last_location=Location(13.2, 80.4)),
        BoatProfile(boat_id=BOAT_C, name="Arul"),
    ]
    for profile in profiles:
        await fleet.services.boats.upsert(profile)
    return profiles


@pytest.fixture
async def client():
    from kavalan.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
