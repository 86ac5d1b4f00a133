"""Broadcast alerts and the per-boat alert inbox.

An operator creates an alert from a validated ``AlertDraft``; it is
stored, given a voice URL when a synthesizer is configured, and then
delivered by the dispatcher as a ``BoatAlert`` copy into each affected
boat's inbox. Boats read and acknowledge their inbox copies; an
acknowledgement is also recorded on the alert itself.
"""

from __future__ import annotations

import uuid
from collections import Counter
from dataclasses import replace
from typing import TYPE_CHECKING

import structlog

from kavalan.core import rendering
from kavalan.core.dispatch import BOAT_ALERTS, INBOX
from kavalan.core.errors import NotFoundException
from kavalan.core.models import Alert, BoatAlert, ts, utcnow, validate_boat_id

if TYPE_CHECKING:
    from kavalan.core.audit import AuditLog
    from kavalan.core.dispatch import AlertDispatcher
    from kavalan.core.models import AlertDraft, NotificationAttempt
    from kavalan.core.stats import FleetStats
    from kavalan.core.voice import VoiceAlerts
    from kavalan.storage.base import DocumentStore

log = structlog.get_logger()

ALERTS = "alerts"


class AlertBoard:
    def __init__(
        self,
        store: DocumentStore,
        dispatcher: AlertDispatcher,
        audit: AuditLog,
        voice: VoiceAlerts,
        stats: FleetStats,
        recent_limit: int = 10,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._audit = audit
        self._voice = voice
        self._stats = stats
        self._recent_limit = recent_limit

    async def create(self, draft: AlertDraft) -> Alert:
        voice_url = await self._voice.url_for(draft.voice_text)
        alert = Alert(
            id=str(uuid.uuid4()),
            type=draft.type,
            severity=draft.severity,
            title=draft.title,
            description=draft.description,
            affected_areas=draft.affected_areas,
            estimated_time=draft.estimated_time,
            recommended_actions=draft.recommended_actions,
            voice_text=draft.voice_text,
            voice_url=voice_url,
            created_at=utcnow(),
        )
        await self._store.set(ALERTS, alert.id, alert.to_dict())
        self._stats.record_alert()
        log.info("alert_created", alert_id=alert.id, type=alert.type, severity=alert.severity)

        await self._audit.record_event(alert.id, "created")
        await self._dispatcher.dispatch_alert(alert)
        return alert

    async def get(self, alert_id: str) -> Alert:
        data = await self._store.get(ALERTS, alert_id)
        if data is None:
            raise NotFoundException(f"alert {alert_id} not found")
        return Alert.from_dict(data)

    async def _alerts(self) -> list[Alert]:
        alerts = [Alert.from_dict(d) for d in await self._store.all(ALERTS)]
        alerts.sort(key=lambda a: a.created_at, reverse=True)
        return alerts

    async def active_alerts(self) -> list[Alert]:
        return [a for a in await self._alerts() if a.active]

    async def deactivate(self, alert_id: str) -> Alert:
        alert = replace(await self.get(alert_id), active=False, deactivated_at=utcnow())
        await self._store.set(ALERTS, alert_id, alert.to_dict())
        log.info("alert_deactivated", alert_id=alert_id)
        await self._audit.record_event(alert_id, "deactivated")
        return alert

    async def attempts(self, alert_id: str) -> list[NotificationAttempt]:
        await self.get(alert_id)
        return await self._audit.attempts(alert_id)

    async def overview(self) -> dict:
        alerts = await self._alerts()
        return {
            "total": len(alerts),
            "active": sum(1 for a in alerts if a.active),
            "by_type": dict(Counter(a.type for a in alerts)),
            "by_severity": dict(Counter(a.severity for a in alerts)),
            "acknowledgements": sum(len(a.acknowledged_by) for a in alerts),
        }

    # ------------------------------------------------------------------
    # Boat inbox
    # ------------------------------------------------------------------

    async def boat_alerts(self, boat_id: str, limit: int | None = None) -> list[BoatAlert]:
        """Active inbox entries for a boat, newest first.

        Copies of a deactivated alert are hidden along with it.
        """
        validate_boat_id(boat_id)
        inactive = {a.id for a in await self._alerts() if not a.active}
        items = [
            BoatAlert.from_dict(d)
            for d in await self._store.items(BOAT_ALERTS, boat_id, INBOX)
        ]
        visible = [
            i for i in items
            if i.active and not (i.kind == "alert" and i.source_id in inactive)
        ]
        visible.sort(key=lambda i: i.sent_at, reverse=True)
        return visible[: limit or self._recent_limit]

    async def _inbox_item(self, boat_id: str, item_id: str) -> BoatAlert:
        validate_boat_id(boat_id)
        for data in await self._store.items(BOAT_ALERTS, boat_id, INBOX):
            if data.get("id") == item_id:
                return BoatAlert.from_dict(data)
        raise NotFoundException(f"alert {item_id} not found for boat {boat_id}")

    async def mark_read(self, boat_id: str, item_id: str) -> BoatAlert:
        item = await self._inbox_item(boat_id, item_id)
        now = utcnow()
        await self._store.update_item(BOAT_ALERTS, boat_id, INBOX, item_id,
                                      {"read": True, "read_at": ts(now)})
        return replace(item, read=True, read_at=now)

    async def acknowledge(self, boat_id: str, item_id: str) -> BoatAlert:
        item = await self._inbox_item(boat_id, item_id)
        now = utcnow()
        await self._store.update_item(BOAT_ALERTS, boat_id, INBOX, item_id,
                                      {"acknowledged": True, "acknowledged_at": ts(now)})
        if item.kind == "alert":
            alert = await self.get(item.source_id)
            acknowledged = sorted(alert.acknowledged_by | {boat_id})
            await self._store.update(ALERTS, alert.id, {"acknowledged_by": acknowledged})
        log.info("alert_acknowledged", boat=boat_id, item_id=item_id, source_id=item.source_id)
        return replace(item, acknowledged=True, acknowledged_at=now)

    async def test_voice(self, boat_id: str) -> dict:
        validate_boat_id(boat_id)
        text = rendering.sample_voice_text(boat_id, self._voice.language)
        return {
            "boat_id": boat_id,
            "voice_text": text,
            "voice_url": await self._voice.url_for(text),
        }
