"""Kavalan core — internal data models.

These are plain dataclasses with no framework dependencies. JSON bodies
and stored documents are converted to/from these at the boundary, and
every constructor validates its own fields so a malformed record is
rejected before anything is written.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

from kavalan.core.errors import ValidationException

BOAT_ID_PATTERN = re.compile(r"^TN\d{2}-[A-Z]{2}\d{3}$")
PHONE_PATTERN = re.compile(r"^\+91\d{10}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PORT_ID_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]{0,63}$")

MESSAGE_KINDS = ("text", "sos", "location", "weather")
MESSAGE_BODY_MAX = 1000
SEA_CONDITIONS = ("calm", "slight", "moderate", "rough", "very_rough", "high")
RISK_LEVELS = ("green", "yellow", "red")
ALERT_TYPES = ("weather", "cyclone", "tsunami", "storm", "emergency")
ALERT_SEVERITIES = ("low", "medium", "high", "critical")
SOS_STATUSES = ("active", "resolved")
TARGET_KINDS = ("emergency-contact", "authority", "nearby-boat")
ATTEMPT_STATUSES = ("sent", "failed")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ts(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def parse_ts(value: datetime | str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise ValidationException(f"invalid timestamp: {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def validate_boat_id(value: object, name: str = "boat_id") -> str:
    if not isinstance(value, str) or not BOAT_ID_PATTERN.match(value):
        raise ValidationException(
            f"{name} must match TNdd-LLddd, got {value!r}",
            details=[{"field": name, "message": "invalid boat identifier"}],
        )
    return value


def _number(name: str, value: object, lo: float, hi: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationException(f"{name} must be a number")
    if not lo <= value <= hi:
        raise ValidationException(
            f"{name} must be between {lo} and {hi}, got {value}",
            details=[{"field": name, "message": "out of range"}],
        )
    return float(value)


def _text(name: str, value: object, lo: int, hi: int) -> str:
    if not isinstance(value, str):
        raise ValidationException(f"{name} must be a string")
    if not lo <= len(value) <= hi:
        raise ValidationException(
            f"{name} must be {lo}-{hi} characters, got {len(value)}",
            details=[{"field": name, "message": "invalid length"}],
        )
    return value


def _string_list(name: str, value: object) -> tuple[str, ...]:
    """A JSON array of strings; a bare string is not taken as a list of characters."""
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ValidationException(
            f"{name} must be a list of strings",
            details=[{"field": name, "message": "expected a list of strings"}],
        )
    return tuple(value)


def _choice(name: str, value: object, allowed: tuple[str, ...]) -> str:
    if value not in allowed:
        raise ValidationException(
            f"{name} must be one of {', '.join(allowed)}, got {value!r}",
            details=[{"field": name, "message": "invalid choice"}],
        )
    return value  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Geography
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    accuracy: float | None = None
    captured_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        _number("latitude", self.latitude, -90, 90)
        _number("longitude", self.longitude, -180, 180)
        if self.accuracy is not None:
            _number("accuracy", self.accuracy, 0, 100)

    def to_dict(self) -> dict:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy,
            "captured_at": ts(self.captured_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Location:
        if not isinstance(data, dict) or "latitude" not in data or "longitude" not in data:
            raise ValidationException("location requires latitude and longitude")
        return cls(
            latitude=data["latitude"],
            longitude=data["longitude"],
            accuracy=data.get("accuracy"),
            captured_at=parse_ts(data.get("captured_at")) or utcnow(),
        )


@dataclass(frozen=True)
class SafePort:
    id: str
    name: str
    localized_name: str
    location: Location
    capacity: int = 0
    facilities: frozenset[str] = frozenset()
    active: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not PORT_ID_PATTERN.match(self.id):
            raise ValidationException(
                f"port id must be a lowercase slug, got {self.id!r}",
                details=[{"field": "id", "message": "invalid port identifier"}],
            )
        _text("name", self.name, 1, 200)
        if isinstance(self.capacity, bool) or not isinstance(self.capacity, int) or self.capacity < 0:
            raise ValidationException("capacity must be a non-negative integer")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "localized_name": self.localized_name,
            "location": self.location.to_dict(),
            "capacity": self.capacity,
            "facilities": sorted(self.facilities),
            "active": self.active,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SafePort:
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            localized_name=data.get("localized_name", ""),
            location=Location.from_dict(data.get("location", {})),
            capacity=data.get("capacity", 0),
            facilities=frozenset(data.get("facilities", [])),
            active=bool(data.get("active", True)),
        )


# ---------------------------------------------------------------------------
# Boats and contacts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EmergencyContact:
    name: str
    relationship: str = ""
    phone: str | None = None
    email: str | None = None
    is_primary: bool = False

    def __post_init__(self) -> None:
        _text("contact name", self.name, 2, 100)
        if self.phone is not None and not (isinstance(self.phone, str) and PHONE_PATTERN.match(self.phone)):
            raise ValidationException(f"contact phone must match +91XXXXXXXXXX, got {self.phone!r}")
        if self.email is not None and not (isinstance(self.email, str) and EMAIL_PATTERN.match(self.email)):
            raise ValidationException(f"invalid contact email {self.email!r}")

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "relationship": self.relationship,
            "phone": self.phone,
            "email": self.email,
            "is_primary": self.is_primary,
        }

    @classmethod
    def from_dict(cls, data: dict) -> EmergencyContact:
        if not isinstance(data, dict):
            raise ValidationException("each emergency contact must be an object")
        return cls(
            name=data.get("name", ""),
            relationship=data.get("relationship", ""),
            phone=data.get("phone") or None,
            email=data.get("email") or None,
            is_primary=bool(data.get("is_primary", False)),
        )


def parse_contacts(value: object) -> tuple[EmergencyContact, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ValidationException(
            "emergency_contacts must be a list",
            details=[{"field": "emergency_contacts", "message": "expected a list"}],
        )
    return tuple(EmergencyContact.from_dict(c) for c in value)


@dataclass(frozen=True)
class BoatProfile:
    boat_id: str
    name: str = ""
    phone: str | None = None
    emergency_contacts: tuple[EmergencyContact, ...] = ()
    active: bool = True
    role: str = "fisherman"
    last_location: Location | None = None

    def __post_init__(self) -> None:
        validate_boat_id(self.boat_id)
        if not isinstance(self.name, str):
            raise ValidationException("name must be a string")
        if self.phone is not None and not isinstance(self.phone, str):
            raise ValidationException("phone must be a string")
        if not isinstance(self.role, str):
            raise ValidationException("role must be a string")

    def to_dict(self) -> dict:
        return {
            "boat_id": self.boat_id,
            "name": self.name,
            "phone": self.phone,
            "emergency_contacts": [c.to_dict() for c in self.emergency_contacts],
            "active": self.active,
            "role": self.role,
            "last_location": self.last_location.to_dict() if self.last_location else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> BoatProfile:
        last = data.get("last_location")
        return cls(
            boat_id=data.get("boat_id", ""),
            name=data.get("name", ""),
            phone=data.get("phone"),
            emergency_contacts=parse_contacts(data.get("emergency_contacts")),
            active=bool(data.get("active", True)),
            role=data.get("role", "fisherman"),
            last_location=Location.from_dict(last) if last else None,
        )


# ---------------------------------------------------------------------------
# Weather and risk
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WeatherReading:
    """Raw conditions as returned by a weather source, before validation."""
    wind_speed: float
    wind_direction: float
    temperature: float
    humidity: float
    pressure: float
    visibility_km: float
    description: str = ""


@dataclass(frozen=True)
class ForecastPoint:
    at: datetime
    temperature: float
    humidity: float
    wind_speed: float
    wind_direction: float
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "at": ts(self.at),
            "temperature": self.temperature,
            "humidity": self.humidity,
            "wind_speed": self.wind_speed,
            "wind_direction": self.wind_direction,
            "description": self.description,
        }


@dataclass(frozen=True)
class WeatherSnapshot:
    wind_speed: float
    wind_direction: float
    temperature: float
    humidity: float
    pressure: float
    visibility_km: float
    sea_condition: str
    tide_speed: float
    location: Location
    captured_at: datetime = field(default_factory=utcnow)
    description: str = ""

    def __post_init__(self) -> None:
        _number("wind_speed", self.wind_speed, 0, 200)
        _number("wind_direction", self.wind_direction, 0, 360)
        _number("temperature", self.temperature, -50, 60)
        _number("humidity", self.humidity, 0, 100)
        _number("pressure", self.pressure, 800, 1200)
        _number("visibility_km", self.visibility_km, 0, 50)
        _number("tide_speed", self.tide_speed, 0, 10)
        _choice("sea_condition", self.sea_condition, SEA_CONDITIONS)

    def to_dict(self) -> dict:
        return {
            "wind_speed": self.wind_speed,
            "wind_direction": self.wind_direction,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "pressure": self.pressure,
            "visibility_km": self.visibility_km,
            "sea_condition": self.sea_condition,
            "tide_speed": self.tide_speed,
            "location": self.location.to_dict(),
            "captured_at": ts(self.captured_at),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> WeatherSnapshot:
        return cls(
            wind_speed=data.get("wind_speed"),
            wind_direction=data.get("wind_direction"),
            temperature=data.get("temperature"),
            humidity=data.get("humidity"),
            pressure=data.get("pressure"),
            visibility_km=data.get("visibility_km"),
            sea_condition=data.get("sea_condition"),
            tide_speed=data.get("tide_speed"),
            location=Location.from_dict(data.get("location", {})),
            captured_at=parse_ts(data.get("captured_at")) or utcnow(),
            description=data.get("description", ""),
        )


@dataclass(frozen=True)
class RiskAssessment:
    level: str
    score: int
    reasons: tuple[str, ...] = ()
    computed_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        _choice("level", self.level, RISK_LEVELS)

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "score": self.score,
            "reasons": list(self.reasons),
            "computed_at": ts(self.computed_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> RiskAssessment:
        return cls(
            level=data.get("level"),
            score=int(data.get("score", 0)),
            reasons=tuple(data.get("reasons", [])),
            computed_at=parse_ts(data.get("computed_at")) or utcnow(),
        )


@dataclass(frozen=True)
class NavigationAdvisory:
    boat_id: str
    current_location: Location
    nearest_safe_port: SafePort | None
    distance_to_port_km: float | None
    bearing_to_port: float | None
    eta_minutes: int | None
    risk: RiskAssessment | None = None
    computed_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "boat_id": self.boat_id,
            "current_location": self.current_location.to_dict(),
            "nearest_safe_port": self.nearest_safe_port.to_dict() if self.nearest_safe_port else None,
            "distance_to_port_km": self.distance_to_port_km,
            "bearing_to_port": self.bearing_to_port,
            "eta_minutes": self.eta_minutes,
            "risk": self.risk.to_dict() if self.risk else None,
            "computed_at": ts(self.computed_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> NavigationAdvisory:
        port = data.get("nearest_safe_port")
        risk = data.get("risk")
        return cls(
            boat_id=data.get("boat_id", ""),
            current_location=Location.from_dict(data.get("current_location", {})),
            nearest_safe_port=SafePort.from_dict(port) if port else None,
            distance_to_port_km=data.get("distance_to_port_km"),
            bearing_to_port=data.get("bearing_to_port"),
            eta_minutes=data.get("eta_minutes"),
            risk=RiskAssessment.from_dict(risk) if risk else None,
            computed_at=parse_ts(data.get("computed_at")) or utcnow(),
        )


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


def validate_message_content(body: object, kind: object) -> None:
    _text("body", body, 1, MESSAGE_BODY_MAX)
    _choice("kind", kind, MESSAGE_KINDS)


@dataclass(frozen=True)
class Message:
    id: str
    thread: str
    from_boat: str
    to_boat: str
    body: str
    kind: str = "text"
    sent_at: datetime = field(default_factory=utcnow)
    delivered: bool = False
    delivered_at: datetime | None = None
    read: bool = False
    read_at: datetime | None = None
    location: Location | None = None

    def __post_init__(self) -> None:
        validate_boat_id(self.from_boat, "from_boat")
        validate_boat_id(self.to_boat, "to_boat")
        if self.from_boat == self.to_boat:
            raise ValidationException(
                "a boat cannot send a message to itself",
                details=[{"field": "to_boat", "message": "same as from_boat"}],
            )
        validate_message_content(self.body, self.kind)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "thread": self.thread,
            "from_boat": self.from_boat,
            "to_boat": self.to_boat,
            "body": self.body,
            "kind": self.kind,
            "sent_at": ts(self.sent_at),
            "delivered": self.delivered,
            "delivered_at": ts(self.delivered_at),
            "read": self.read,
            "read_at": ts(self.read_at),
            "location": self.location.to_dict() if self.location else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Message:
        loc = data.get("location")
        return cls(
            id=data.get("id", ""),
            thread=data.get("thread", ""),
            from_boat=data.get("from_boat", ""),
            to_boat=data.get("to_boat", ""),
            body=data.get("body", ""),
            kind=data.get("kind", "text"),
            sent_at=parse_ts(data.get("sent_at")) or utcnow(),
            delivered=bool(data.get("delivered", False)),
            delivered_at=parse_ts(data.get("delivered_at")),
            read=bool(data.get("read", False)),
            read_at=parse_ts(data.get("read_at")),
            location=Location.from_dict(loc) if loc else None,
        )


@dataclass(frozen=True)
class BackupEntry:
    """Durable copy of a message, filed under the recipient's backup queue."""
    message: Message
    backed_up_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        data = self.message.to_dict()
        data["backed_up_at"] = ts(self.backed_up_at)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> BackupEntry:
        return cls(
            message=Message.from_dict(data),
            backed_up_at=parse_ts(data.get("backed_up_at")) or utcnow(),
        )


# ---------------------------------------------------------------------------
# Alerts, SOS cases and the audit trail
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AlertDraft:
    """A broadcast alert as requested by an operator, before it is stored."""
    type: str
    severity: str
    title: str
    description: str
    affected_areas: tuple[str, ...]
    estimated_time: datetime
    recommended_actions: tuple[str, ...]
    voice_text: str

    def __post_init__(self) -> None:
        _choice("type", self.type, ALERT_TYPES)
        _choice("severity", self.severity, ALERT_SEVERITIES)
        _text("title", self.title, 5, 200)
        _text("description", self.description, 10, 1000)
        _text("voice_text", self.voice_text, 5, 500)
        if not self.recommended_actions:
            raise ValidationException("recommended_actions requires at least one action")
        if not isinstance(self.estimated_time, datetime):
            raise ValidationException("estimated_time must be a timestamp")
        if self.estimated_time <= utcnow():
            raise ValidationException(
                "estimated_time must be in the future",
                details=[{"field": "estimated_time", "message": "not in the future"}],
            )

    @classmethod
    def from_dict(cls, data: dict) -> AlertDraft:
        return cls(
            type=data.get("type"),
            severity=data.get("severity"),
            title=data.get("title"),
            description=data.get("description"),
            affected_areas=_string_list("affected_areas", data.get("affected_areas")),
            estimated_time=parse_ts(data.get("estimated_time")),
            recommended_actions=_string_list("recommended_actions", data.get("recommended_actions")),
            voice_text=data.get("voice_text"),
        )


@dataclass(frozen=True)
class Alert:
    id: str
    type: str
    severity: str
    title: str
    description: str
    affected_areas: tuple[str, ...]
    estimated_time: datetime
    recommended_actions: tuple[str, ...]
    voice_text: str
    voice_url: str | None = None
    active: bool = True
    acknowledged_by: frozenset[str] = frozenset()
    created_at: datetime = field(default_factory=utcnow)
    deactivated_at: datetime | None = None

    def __post_init__(self) -> None:
        _choice("type", self.type, ALERT_TYPES)
        _choice("severity", self.severity, ALERT_SEVERITIES)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "severity": self.severity,
            "title": self.title,
            "description": self.description,
            "affected_areas": list(self.affected_areas),
            "estimated_time": ts(self.estimated_time),
            "recommended_actions": list(self.recommended_actions),
            "voice_text": self.voice_text,
            "voice_url": self.voice_url,
            "active": self.active,
            "acknowledged_by": sorted(self.acknowledged_by),
            "created_at": ts(self.created_at),
            "deactivated_at": ts(self.deactivated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Alert:
        return cls(
            id=data.get("id", ""),
            type=data.get("type"),
            severity=data.get("severity"),
            title=data.get("title", ""),
            description=data.get("description", ""),
            affected_areas=tuple(data.get("affected_areas", [])),
            estimated_time=parse_ts(data.get("estimated_time")),
            recommended_actions=tuple(data.get("recommended_actions", [])),
            voice_text=data.get("voice_text", ""),
            voice_url=data.get("voice_url"),
            active=bool(data.get("active", True)),
            acknowledged_by=frozenset(data.get("acknowledged_by", [])),
            created_at=parse_ts(data.get("created_at")) or utcnow(),
            deactivated_at=parse_ts(data.get("deactivated_at")),
        )


@dataclass(frozen=True)
class BoatAlert:
    """A delivery copy of an alert or a nearby-SOS notice in a boat's inbox."""
    id: str
    source_id: str
    boat_id: str
    kind: str  # "alert" or "sos_nearby"
    title: str
    severity: str
    description: str
    sent_at: datetime = field(default_factory=utcnow)
    distance_km: float | None = None
    active: bool = True
    read: bool = False
    read_at: datetime | None = None
    acknowledged: bool = False
    acknowledged_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source_id": self.source_id,
            "boat_id": self.boat_id,
            "kind": self.kind,
            "title": self.title,
            "severity": self.severity,
            "description": self.description,
            "sent_at": ts(self.sent_at),
            "distance_km": self.distance_km,
            "active": self.active,
            "read": self.read,
            "read_at": ts(self.read_at),
            "acknowledged": self.acknowledged,
            "acknowledged_at": ts(self.acknowledged_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> BoatAlert:
        return cls(
            id=data.get("id", ""),
            source_id=data.get("source_id", ""),
            boat_id=data.get("boat_id", ""),
            kind=data.get("kind", "alert"),
            title=data.get("title", ""),
            severity=data.get("severity", ""),
            description=data.get("description", ""),
            sent_at=parse_ts(data.get("sent_at")) or utcnow(),
            distance_km=data.get("distance_km"),
            active=bool(data.get("active", True)),
            read=bool(data.get("read", False)),
            read_at=parse_ts(data.get("read_at")),
            acknowledged=bool(data.get("acknowledged", False)),
            acknowledged_at=parse_ts(data.get("acknowledged_at")),
        )


@dataclass(frozen=True)
class SOSCase:
    id: str
    boat_id: str
    requester: str
    location: Location
    message: str
    fisherman_name: str = ""
    phone: str | None = None
    status: str = "active"
    priority: str = "critical"
    emergency_contacts: tuple[EmergencyContact, ...] = ()
    voice_text: str = ""
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    resolved_at: datetime | None = None
    resolved_by: str | None = None
    notes: str = ""

    def __post_init__(self) -> None:
        validate_boat_id(self.boat_id)
        _choice("status", self.status, SOS_STATUSES)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "boat_id": self.boat_id,
            "requester": self.requester,
            "location": self.location.to_dict(),
            "message": self.message,
            "fisherman_name": self.fisherman_name,
            "phone": self.phone,
            "status": self.status,
            "priority": self.priority,
            "emergency_contacts": [c.to_dict() for c in self.emergency_contacts],
            "voice_text": self.voice_text,
            "created_at": ts(self.created_at),
            "updated_at": ts(self.updated_at),
            "resolved_at": ts(self.resolved_at),
            "resolved_by": self.resolved_by,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SOSCase:
        return cls(
            id=data.get("id", ""),
            boat_id=data.get("boat_id", ""),
            requester=data.get("requester", ""),
            location=Location.from_dict(data.get("location", {})),
            message=data.get("message", ""),
            fisherman_name=data.get("fisherman_name", ""),
            phone=data.get("phone"),
            status=data.get("status", "active"),
            priority=data.get("priority", "critical"),
            emergency_contacts=parse_contacts(data.get("emergency_contacts")),
            voice_text=data.get("voice_text", ""),
            created_at=parse_ts(data.get("created_at")) or utcnow(),
            updated_at=parse_ts(data.get("updated_at")) or utcnow(),
            resolved_at=parse_ts(data.get("resolved_at")),
            resolved_by=data.get("resolved_by"),
            notes=data.get("notes", ""),
        )


@dataclass(frozen=True)
class NotificationAttempt:
    id: str
    subject_id: str
    target_kind: str
    target: str
    channel: str
    status: str
    error: str | None = None
    attempt_ref: str | None = None
    timestamp: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        _choice("target_kind", self.target_kind, TARGET_KINDS)
        _choice("status", self.status, ATTEMPT_STATUSES)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "target_kind": self.target_kind,
            "target": self.target,
            "channel": self.channel,
            "status": self.status,
            "error": self.error,
            "attempt_ref": self.attempt_ref,
            "timestamp": ts(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict) -> NotificationAttempt:
        return cls(
            id=data.get("id", ""),
            subject_id=data.get("subject_id", ""),
            target_kind=data.get("target_kind"),
            target=data.get("target", ""),
            channel=data.get("channel", ""),
            status=data.get("status"),
            error=data.get("error"),
            attempt_ref=data.get("attempt_ref"),
            timestamp=parse_ts(data.get("timestamp")) or utcnow(),
        )


@dataclass(frozen=True)
class CaseEvent:
    id: str
    subject_id: str
    action: str
    actor: str | None = None
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "action": self.action,
            "actor": self.actor,
            "timestamp": ts(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict) -> CaseEvent:
        return cls(
            id=data.get("id", ""),
            subject_id=data.get("subject_id", ""),
            action=data.get("action", ""),
            actor=data.get("actor"),
            timestamp=parse_ts(data.get("timestamp")) or utcnow(),
        )
