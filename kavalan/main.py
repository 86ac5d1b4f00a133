"""Kavalan server — main entry point.

This is the only file that knows about concrete implementations.
It wires together the core, storage, notification, weather and API layers.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from kavalan.api.alerts import router as alerts_router
from kavalan.api.boats import router as boats_router
from kavalan.api.chat import router as chat_router
from kavalan.api.monitoring import router as monitoring_router
from kavalan.api.navigation import router as navigation_router
from kavalan.api.sos import router as sos_router
from kavalan.api.weather import router as weather_router
from kavalan.config import AppConfig, load_config
from kavalan.core.alerts import AlertBoard
from kavalan.core.audit import AuditLog
from kavalan.core.boats import BoatDirectory
from kavalan.core.chat import StoreAndForwardChannel
from kavalan.core.dispatch import AlertDispatcher
from kavalan.core.errors import AppException
from kavalan.core.navigation import NavigationService
from kavalan.core.ports import SafePortRegistry
from kavalan.core.scheduler import Ticker
from kavalan.core.sos import SOSLifecycle
from kavalan.core.stats import FleetStats
from kavalan.core.transport import MessageTransport, SimulatedLoRaTransport
from kavalan.core.voice import InMemoryVoiceCache, VoiceAlerts, VoiceSynthesizer
from kavalan.core.weather import WeatherService
from kavalan.notify.base import NotificationChannel
from kavalan.notify.log_channel import LogChannel
from kavalan.notify.twilio_sms import TwilioSMSChannel
from kavalan.sources.base import WeatherSource
from kavalan.sources.openweather import OpenWeatherSource
from kavalan.storage.base import DocumentStore
from kavalan.storage.file_storage import FileDocumentStore
from kavalan.storage.memory_storage import MemoryDocumentStore

log = structlog.get_logger()

VERSION = "0.1.0"


@dataclass
class Services:
    """Everything the API layer talks to, built once per process."""
    store: DocumentStore
    boats: BoatDirectory
    ports: SafePortRegistry
    chat: StoreAndForwardChannel
    dispatcher: AlertDispatcher
    sos: SOSLifecycle
    alerts: AlertBoard
    navigation: NavigationService
    weather: WeatherService


# Module-level singletons (set during startup)
_services: Services | None = None
_stats: FleetStats | None = None
_config: AppConfig | None = None


def get_services() -> Services:
    assert _services is not None, "Server not initialized"
    return _services


def get_stats() -> FleetStats:
    assert _stats is not None, "Server not initialized"
    return _stats


def get_config() -> AppConfig:
    assert _config is not None, "Server not initialized"
    return _config


def build_services(
    config: AppConfig,
    stats: FleetStats,
    store: DocumentStore,
    transport: MessageTransport,
    sms: NotificationChannel,
    email: NotificationChannel,
    weather_source: WeatherSource | None,
    synthesizer: VoiceSynthesizer | None = None,
) -> Services:
    """Assemble the core services around the given adapters."""
    boats = BoatDirectory(store)
    ports = SafePortRegistry(store)
    audit = AuditLog(store)
    dispatcher = AlertDispatcher(
        store=store,
        boats=boats,
        audit=audit,
        sms=sms,
        email=email,
        stats=stats,
        authorities=config.notify.authorities,
        nearby_radius_km=config.navigation.nearby_radius_km,
    )
    voice = VoiceAlerts(synthesizer, InMemoryVoiceCache(), language=config.voice.language)
    return Services(
        store=store,
        boats=boats,
        ports=ports,
        chat=StoreAndForwardChannel(
            store, boats, transport, stats, history_limit=config.limits.chat_history_limit,
        ),
        dispatcher=dispatcher,
        sos=SOSLifecycle(
            store, boats, dispatcher, audit, stats,
            language=config.voice.language,
            recent_limit=config.limits.recent_cases_limit,
        ),
        alerts=AlertBoard(
            store, dispatcher, audit, voice, stats,
            recent_limit=config.limits.recent_cases_limit,
        ),
        navigation=NavigationService(
            store, boats, ports, stats, default_speed_kmh=config.navigation.default_speed_kmh,
        ),
        weather=WeatherService(store, boats, weather_source, stats),
    )


def _make_store(config: AppConfig) -> DocumentStore:
    if config.storage.backend == "memory":
        return MemoryDocumentStore()
    return FileDocumentStore(base_dir=config.storage.base_dir)


def _make_sms(config: AppConfig) -> NotificationChannel:
    if config.notify.sms_backend == "twilio":
        return TwilioSMSChannel(
            account_sid=config.notify.twilio_account_sid,
            auth_token=config.notify.twilio_auth_token,
            from_number=config.notify.twilio_from_number,
        )
    return LogChannel("sms")


def _make_weather_source(config: AppConfig) -> WeatherSource | None:
    if config.weather.provider == "openweathermap" and config.weather.api_key:
        return OpenWeatherSource(
            api_key=config.weather.api_key,
            base_url=config.weather.base_url,
            timeout_s=config.weather.timeout_s,
        )
    return None


def _setup_logging(config: AppConfig) -> None:
    """Configure structlog based on the logging config."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.logging.format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.logging.level.upper()),
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    global _services, _stats, _config

    _config = load_config()
    _setup_logging(_config)

    log.info("server_starting",
             env=_config.server.env,
             storage_backend=_config.storage.backend,
             storage_dir=_config.storage.base_dir)

    # Create components
    _stats = FleetStats(active_window_seconds=_config.limits.active_window_seconds)
    sms = _make_sms(_config)
    weather_source = _make_weather_source(_config)
    _services = build_services(
        _config,
        _stats,
        store=_make_store(_config),
        transport=SimulatedLoRaTransport(
            min_delay_s=_config.transport.min_delay_s,
            max_delay_s=_config.transport.max_delay_s,
            success_rate=_config.transport.success_rate,
        ),
        sms=sms,
        email=LogChannel("email"),
        weather_source=weather_source,
    )

    # Start the periodic weather sweep
    sweep_task = None
    if weather_source is not None:
        ticker = Ticker("weather_sweep", _config.weather.sweep_interval_s, _services.weather.sweep)
        sweep_task = asyncio.create_task(ticker.run_forever())
    else:
        log.warning("weather_sweep_disabled", provider=_config.weather.provider)

    log.info("server_started",
             host=_config.server.host,
             port=_config.server.port)

    yield

    # Shutdown
    if sweep_task is not None:
        sweep_task.cancel()
        try:
            await sweep_task
        except asyncio.CancelledError:
            pass
    for adapter in (sms, weather_source):
        close = getattr(adapter, "close", None)
        if close is not None:
            await close()
    log.info("server_stopped")


app = FastAPI(
    title="Kavalan",
    description="Fishermen safety: navigation, chat relay and SOS dispatch",
    version=VERSION,
    lifespan=lifespan,
)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("request_failed", path=request.url.path, code=exc.code, message=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": {"code": exc.code, "message": exc.message, "details": exc.details},
        },
    )


app.include_router(boats_router)
app.include_router(navigation_router)
app.include_router(weather_router)
app.include_router(chat_router)
app.include_router(alerts_router)
app.include_router(sos_router)
app.include_router(monitoring_router)
