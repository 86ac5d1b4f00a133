"""Notification payload rendering.

Every outbound payload for an SOS case is rendered from the same case
data: fisherman name, boat id, a map link for the coordinates, the free
text and the creation time. Two shapes exist: ``short`` (SMS) and
``structured`` (email, with subject plus text and HTML bodies).
"""

from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kavalan.core.models import Location, SOSCase

SYSTEM_NAME = "Uyir Kavalan"

VOICE_LANGUAGES = ("tamil", "english")

_SOS_VOICE = {
    "tamil": "அவசர SOS சிக்னல். படகு {boat} இருந்து. உதவி தேவை. அவசரமாக பதிலளிக்கவும்.",
    "english": "Emergency SOS signal from boat {boat}. Help needed. Please respond urgently.",
}

_SAMPLE_VOICE = {
    "tamil": "சோதனை எச்சரிக்கை. படகு {boat} இருந்து. இது ஒரு சோதனை செய்தி மட்டும்.",
    "english": "Test alert from boat {boat}. This is only a test message.",
}


@dataclass(frozen=True)
class RenderedMessage:
    kind: str  # "short" or "structured"
    body: str
    subject: str | None = None
    html: str | None = None

    def to_dict(self) -> dict:
        return {"kind": self.kind, "subject": self.subject, "body": self.body}


def maps_link(location: Location) -> str:
    return f"https://maps.google.com/?q={location.latitude},{location.longitude}"


def _time(case: SOSCase) -> str:
    return case.created_at.strftime("%Y-%m-%d %H:%M:%S %Z")


def sos_sms(case: SOSCase) -> RenderedMessage:
    body = (
        "🚨 SOS EMERGENCY 🚨\n\n"
        f"Fisherman: {case.fisherman_name}\n"
        f"Boat: {case.boat_id}\n"
        f"Location: {maps_link(case.location)}\n"
        f"Message: {case.message}\n\n"
        "Please respond immediately!\n"
        f"{SYSTEM_NAME} Emergency System"
    )
    return RenderedMessage(kind="short", body=body)


def sos_email(case: SOSCase) -> RenderedMessage:
    link = maps_link(case.location)
    text = (
        "SOS EMERGENCY ALERT\n\n"
        f"Fisherman: {case.fisherman_name}\n"
        f"Boat: {case.boat_id}\n"
        f"Location: {link}\n"
        f"Message: {case.message}\n"
        f"Time: {_time(case)}\n\n"
        "Please respond immediately!"
    )
    html = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<div style="background-color: #dc3545; color: white; padding: 20px; text-align: center;">'
        "<h1>🚨 SOS EMERGENCY ALERT 🚨</h1></div>"
        '<div style="padding: 20px; background-color: #f8f9fa;">'
        "<h2>Emergency Details</h2>"
        f"<p><strong>Fisherman:</strong> {escape(case.fisherman_name)}</p>"
        f"<p><strong>Boat Number:</strong> {escape(case.boat_id)}</p>"
        f'<p><strong>Location:</strong> <a href="{link}">View on Map</a></p>'
        f"<p><strong>Coordinates:</strong> {case.location.latitude}, {case.location.longitude}</p>"
        f"<p><strong>Message:</strong> {escape(case.message)}</p>"
        f"<p><strong>Time:</strong> {_time(case)}</p>"
        "<h3>⚠️ IMMEDIATE ACTION REQUIRED</h3>"
        "<p>Please contact the fisherman immediately and verify their safety.</p>"
        f"<p>This is an automated emergency alert from the {SYSTEM_NAME} Fishermen Safety System.</p>"
        "</div></div>"
    )
    return RenderedMessage(
        kind="structured",
        subject=f"🚨 SOS Emergency Alert - Boat {case.boat_id}",
        body=text,
        html=html,
    )


def authority_sms(case: SOSCase) -> RenderedMessage:
    loc = case.location
    return RenderedMessage(
        kind="short",
        body=f"SOS Alert: Boat {case.boat_id} ({case.fisherman_name}) at {loc.latitude},{loc.longitude}",
    )


def nearby_notice(case: SOSCase) -> tuple[str, str]:
    """Title and description for the inbox copy sent to other boats."""
    loc = case.location
    return (
        f"SOS from boat {case.boat_id}",
        f"{case.fisherman_name or case.boat_id} needs help at "
        f"{loc.latitude},{loc.longitude}: {case.message}",
    )


def sos_voice_text(boat_id: str, language: str = "tamil") -> str:
    return _SOS_VOICE.get(language, _SOS_VOICE["tamil"]).format(boat=boat_id)


def sample_voice_text(boat_id: str, language: str = "tamil") -> str:
    return _SAMPLE_VOICE.get(language, _SAMPLE_VOICE["tamil"]).format(boat=boat_id)
