"""Server configuration.

Loads from config.yaml if present, with environment variable overrides.
Environment variables use the pattern: KAVALAN_<SECTION>_<KEY> (uppercase).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    env: str = "dev"  # "dev" or "prod"


@dataclass
class StorageConfig:
    backend: str = "file"  # "file" or "memory"
    base_dir: str = "data/store"


@dataclass
class TransportConfig:
    min_delay_s: float = 0.5
    max_delay_s: float = 2.5
    success_rate: float = 0.9


@dataclass
class NavigationConfig:
    default_speed_kmh: float = 20.0
    nearby_radius_km: float = 10.0


@dataclass
class WeatherConfig:
    provider: str = "openweathermap"  # "openweathermap" or "none"
    api_key: str = ""
    base_url: str = "https://api.openweathermap.org/data/2.5"
    sweep_interval_s: float = 1800.0
    timeout_s: float = 10.0


@dataclass
class NotifyConfig:
    sms_backend: str = "log"  # "log" or "twilio"
    email_backend: str = "log"
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_from_number: str = ""
    authorities: dict[str, str] = field(default_factory=lambda: {
        "coast_guard": "+91-1800-425-3784",
        "marine_police": "+91-044-2345-6789",
    })


@dataclass
class VoiceConfig:
    language: str = "tamil"  # "tamil" or "english"


@dataclass
class LimitsConfig:
    chat_history_limit: int = 50
    recent_cases_limit: int = 10
    active_window_seconds: float = 900.0


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "console"  # "console" or "json"


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    navigation: NavigationConfig = field(default_factory=NavigationConfig)
    weather: WeatherConfig = field(default_factory=WeatherConfig)
    notify: NotifyConfig = field(default_factory=NotifyConfig)
    voice: VoiceConfig = field(default_factory=VoiceConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTIONS = (
    "server", "storage", "transport", "navigation", "weather",
    "notify", "voice", "limits", "logging",
)


def _apply_env_overrides(config: AppConfig) -> None:
    """Override config values from environment variables."""
    mapping = {
        "KAVALAN_SERVER_HOST": lambda v: setattr(config.server, "host", v),
        "KAVALAN_SERVER_PORT": lambda v: setattr(config.server, "port", int(v)),
        "KAVALAN_SERVER_ENV": lambda v: setattr(config.server, "env", v),
        "KAVALAN_STORAGE_BACKEND": lambda v: setattr(config.storage, "backend", v),
        "KAVALAN_STORAGE_BASE_DIR": lambda v: setattr(config.storage, "base_dir", v),
        "KAVALAN_TRANSPORT_MIN_DELAY_S": lambda v: setattr(config.transport, "min_delay_s", float(v)),
        "KAVALAN_TRANSPORT_MAX_DELAY_S": lambda v: setattr(config.transport, "max_delay_s", float(v)),
        "KAVALAN_TRANSPORT_SUCCESS_RATE": lambda v: setattr(config.transport, "success_rate", float(v)),
        "KAVALAN_NAVIGATION_DEFAULT_SPEED_KMH": lambda v: setattr(config.navigation, "default_speed_kmh", float(v)),
        "KAVALAN_NAVIGATION_NEARBY_RADIUS_KM": lambda v: setattr(config.navigation, "nearby_radius_km", float(v)),
        "KAVALAN_WEATHER_PROVIDER": lambda v: setattr(config.weather, "provider", v),
        "KAVALAN_WEATHER_API_KEY": lambda v: setattr(config.weather, "api_key", v),
        "KAVALAN_WEATHER_BASE_URL": lambda v: setattr(config.weather, "base_url", v),
        "KAVALAN_WEATHER_SWEEP_INTERVAL_S": lambda v: setattr(config.weather, "sweep_interval_s", float(v)),
        "KAVALAN_WEATHER_TIMEOUT_S": lambda v: setattr(config.weather, "timeout_s", float(v)),
        "KAVALAN_NOTIFY_SMS_BACKEND": lambda v: setattr(config.notify, "sms_backend", v),
        "KAVALAN_NOTIFY_EMAIL_BACKEND": lambda v: setattr(config.notify, "email_backend", v),
        "KAVALAN_NOTIFY_TWILIO_ACCOUNT_SID": lambda v: setattr(config.notify, "twilio_account_sid", v),
        "KAVALAN_NOTIFY_TWILIO_AUTH_TOKEN": lambda v: setattr(config.notify, "twilio_auth_token", v),
        "KAVALAN_NOTIFY_TWILIO_FROM_NUMBER": lambda v: setattr(config.notify, "twilio_from_number", v),
        "KAVALAN_VOICE_LANGUAGE": lambda v: setattr(config.voice, "language", v),
        "KAVALAN_LIMITS_CHAT_HISTORY_LIMIT": lambda v: setattr(config.limits, "chat_history_limit", int(v)),
        "KAVALAN_LIMITS_RECENT_CASES_LIMIT": lambda v: setattr(config.limits, "recent_cases_limit", int(v)),
        "KAVALAN_LIMITS_ACTIVE_WINDOW": lambda v: setattr(config.limits, "active_window_seconds", float(v)),
        "KAVALAN_LOG_LEVEL": lambda v: setattr(config.logging, "level", v),
        "KAVALAN_LOG_FORMAT": lambda v: setattr(config.logging, "format", v),
    }
    for env_key, setter in mapping.items():
        val = os.environ.get(env_key)
        if val is not None:
            setter(val)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML file + environment overrides."""
    config = AppConfig()

    if config_path is None:
        config_path = Path(os.environ.get("KAVALAN_CONFIG", "config.yaml"))
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

        for name in _SECTIONS:
            section = getattr(config, name)
            for k, v in (raw.get(name) or {}).items():
                if hasattr(section, k):
                    setattr(section, k, v)

    # Environment overrides always win
    _apply_env_overrides(config)
    return config
