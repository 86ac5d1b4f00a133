"""Multi-channel fan-out for SOS cases and broadcast alerts.

An SOS case goes out to three groups at once: the requester's emergency
contacts (SMS and email), the fixed authority numbers, and the other
boats' inboxes. A broadcast alert goes to the inbox of every boat in the
affected area. Each group and each delivery inside it runs through
``run_isolated``, so no failure cancels or blocks a sibling. Every
attempt, sent or failed, is written to the audit log.

Two selections are deliberately coarse and kept that way:

* ``nearby_boats`` takes a radius but returns every active boat.
* ``in_affected_area`` always answers True.

Both are flagged for a proper geofence, see DESIGN.md.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from kavalan.core import geo, rendering
from kavalan.core.fanout import TaskOutcome, run_isolated
from kavalan.core.models import BoatAlert, utcnow

if TYPE_CHECKING:
    from kavalan.core.audit import AuditLog
    from kavalan.core.boats import BoatDirectory
    from kavalan.core.models import Alert, BoatProfile, Location, NotificationAttempt, SOSCase
    from kavalan.core.rendering import RenderedMessage
    from kavalan.core.stats import FleetStats
    from kavalan.notify.base import NotificationChannel
    from kavalan.storage.base import DocumentStore

log = structlog.get_logger()

BOAT_ALERTS = "boat_alerts"
INBOX = "alerts"

DEFAULT_AUTHORITIES: dict[str, str] = {
    "coast_guard": "+91-1800-425-3784",
    "marine_police": "+91-044-2345-6789",
}


@dataclass(frozen=True)
class DispatchReport:
    """What one fan-out attempted. Failed groups never reached the audit log."""
    subject_id: str
    attempts: tuple[NotificationAttempt, ...]
    failed_groups: tuple[str, ...] = ()
    unrecorded: int = 0

    def to_dict(self) -> dict:
        sent = sum(1 for a in self.attempts if a.status == "sent")
        return {
            "subject_id": self.subject_id,
            "attempted": len(self.attempts),
            "sent": sent,
            "failed": len(self.attempts) - sent,
            "failed_groups": list(self.failed_groups),
            "unrecorded": self.unrecorded,
        }


def _report(subject_id: str, groups: list[TaskOutcome]) -> DispatchReport:
    attempts: list[NotificationAttempt] = []
    failed_groups = []
    unrecorded = 0
    for group in groups:
        if not group.ok:
            failed_groups.append(group.key)
            continue
        for unit in group.value:
            if unit.ok:
                attempts.append(unit.value)
            else:
                unrecorded += 1
    return DispatchReport(
        subject_id=subject_id,
        attempts=tuple(attempts),
        failed_groups=tuple(failed_groups),
        unrecorded=unrecorded,
    )


class AlertDispatcher:
    def __init__(
        self,
        store: DocumentStore,
        boats: BoatDirectory,
        audit: AuditLog,
        sms: NotificationChannel,
        email: NotificationChannel,
        stats: FleetStats,
        authorities: Mapping[str, str] | None = None,
        nearby_radius_km: float = 10.0,
    ) -> None:
        self._store = store
        self._boats = boats
        self._audit = audit
        self._sms = sms
        self._email = email
        self._stats = stats
        self.authorities = dict(DEFAULT_AUTHORITIES if authorities is None else authorities)
        self.nearby_radius_km = nearby_radius_km

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def dispatch_sos(self, case: SOSCase) -> DispatchReport:
        groups = await run_isolated(
            {
                "emergency_contacts": self.notify_emergency_contacts(case),
                "authorities": self.notify_authorities(case),
                "nearby_boats": self.notify_nearby_boats(case),
            },
            label="sos_dispatch",
        )
        report = _report(case.id, groups)
        log.info("sos_dispatched", case_id=case.id, boat=case.boat_id, **report.to_dict())
        return report

    async def dispatch_alert(self, alert: Alert) -> DispatchReport:
        groups = await run_isolated(
            {"affected_boats": self._deliver_alert(alert)},
            label="alert_dispatch",
        )
        report = _report(alert.id, groups)
        log.info("alert_dispatched", alert_id=alert.id, **report.to_dict())
        return report

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    async def notify_emergency_contacts(self, case: SOSCase) -> list[TaskOutcome]:
        """One SMS and one email per contact; a missing address skips that channel."""
        sms = rendering.sos_sms(case)
        email = rendering.sos_email(case)
        units = {}
        for index, contact in enumerate(case.emergency_contacts):
            if contact.phone:
                units[f"{index}:sms:{contact.phone}"] = self._attempt(
                    case.id, "emergency-contact", contact.phone, self._sms, sms)
            if contact.email:
                units[f"{index}:email:{contact.email}"] = self._attempt(
                    case.id, "emergency-contact", contact.email, self._email, email)
        return await run_isolated(units, label="emergency_contacts")

    async def notify_authorities(self, case: SOSCase) -> list[TaskOutcome]:
        message = rendering.authority_sms(case)
        return await run_isolated(
            {
                name: self._attempt(case.id, "authority", phone, self._sms, message)
                for name, phone in self.authorities.items()
            },
            label="authorities",
        )

    async def notify_nearby_boats(self, case: SOSCase) -> list[TaskOutcome]:
        title, description = rendering.nearby_notice(case)
        units = {}
        for boat in await self.nearby_boats(case.location, self.nearby_radius_km):
            if boat.boat_id == case.boat_id:
                continue
            distance = (
                round(geo.distance(case.location, boat.last_location), 2)
                if boat.last_location else None
            )
            item = BoatAlert(
                id=str(uuid.uuid4()),
                source_id=case.id,
                boat_id=boat.boat_id,
                kind="sos_nearby",
                title=title,
                severity="critical",
                description=description,
                sent_at=utcnow(),
                distance_km=distance,
            )
            units[boat.boat_id] = self._deliver(case.id, "nearby-boat", item)
        return await run_isolated(units, label="nearby_boats")

    async def _deliver_alert(self, alert: Alert) -> list[TaskOutcome]:
        units = {}
        for boat in await self._boats.active_boats():
            if not self.in_affected_area(boat, alert.affected_areas):
                continue
            item = BoatAlert(
                id=str(uuid.uuid4()),
                source_id=alert.id,
                boat_id=boat.boat_id,
                kind="alert",
                title=alert.title,
                severity=alert.severity,
                description=alert.description,
                sent_at=utcnow(),
            )
            units[boat.boat_id] = self._deliver(alert.id, "nearby-boat", item)
        return await run_isolated(units, label="affected_boats")

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    async def nearby_boats(self, location: Location, radius_km: float) -> list[BoatProfile]:
        """Boats to warn about an incident at ``location``.

        Known limitation: ``radius_km`` is not applied and every active
        boat is returned.
        """
        boats = await self._boats.active_boats()
        log.debug("nearby_boats_selected", radius_km=radius_km, count=len(boats))
        return boats

    def in_affected_area(self, boat: BoatProfile, affected_areas: tuple[str, ...]) -> bool:
        """Known limitation: always True, so every active boat is affected."""
        return True

    # ------------------------------------------------------------------
    # Single attempts
    # ------------------------------------------------------------------

    async def _attempt(
        self,
        subject_id: str,
        target_kind: str,
        target: str,
        channel: NotificationChannel,
        message: RenderedMessage,
    ) -> NotificationAttempt:
        try:
            ref = await channel.send(target, message)
        except Exception as exc:
            log.warning("notification_failed", subject=subject_id, target_kind=target_kind,
                        target=target, channel=channel.name, exc_info=True)
            self._stats.record_notification(ok=False)
            return await self._audit.record_attempt(
                subject_id, target_kind=target_kind, target=target, channel=channel.name,
                ok=False, error=str(exc) or type(exc).__name__,
            )
        self._stats.record_notification(ok=True)
        return await self._audit.record_attempt(
            subject_id, target_kind=target_kind, target=target, channel=channel.name,
            ok=True, attempt_ref=ref,
        )

    async def _deliver(self, subject_id: str, target_kind: str, item: BoatAlert) -> NotificationAttempt:
        try:
            await self._store.append(BOAT_ALERTS, item.boat_id, INBOX, item.to_dict())
        except Exception as exc:
            log.warning("inbox_delivery_failed", subject=subject_id, boat=item.boat_id,
                        exc_info=True)
            self._stats.record_notification(ok=False)
            return await self._audit.record_attempt(
                subject_id, target_kind=target_kind, target=item.boat_id, channel="inbox",
                ok=False, error=str(exc) or type(exc).__name__,
            )
        self._stats.record_notification(ok=True)
        return await self._audit.record_attempt(
            subject_id, target_kind=target_kind, target=item.boat_id, channel="inbox",
            ok=True, attempt_ref=item.id,
        )
