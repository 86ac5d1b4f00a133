"""Append-only audit trail for SOS cases and alerts.

One NotificationAttempt per attempted delivery and one CaseEvent per
lifecycle step, both filed under the case or alert id. Entries are never
rewritten or summarized.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog

from kavalan.core.models import CaseEvent, NotificationAttempt, utcnow

if TYPE_CHECKING:
    from kavalan.storage.base import DocumentStore

log = structlog.get_logger()

AUDIT = "audit"
ATTEMPTS = "attempts"
EVENTS = "events"


class AuditLog:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def record_attempt(
        self,
        subject_id: str,
        *,
        target_kind: str,
        target: str,
        channel: str,
        ok: bool,
        error: str | None = None,
        attempt_ref: str | None = None,
    ) -> NotificationAttempt:
        attempt = NotificationAttempt(
            id=str(uuid.uuid4()),
            subject_id=subject_id,
            target_kind=target_kind,
            target=target,
            channel=channel,
            status="sent" if ok else "failed",
            error=error,
            attempt_ref=attempt_ref,
            timestamp=utcnow(),
        )
        await self._store.append(AUDIT, subject_id, ATTEMPTS, attempt.to_dict())
        return attempt

    async def record_event(self, subject_id: str, action: str, actor: str | None = None) -> CaseEvent:
        event = CaseEvent(
            id=str(uuid.uuid4()),
            subject_id=subject_id,
            action=action,
            actor=actor,
            timestamp=utcnow(),
        )
        await self._store.append(AUDIT, subject_id, EVENTS, event.to_dict())
        log.info("case_event", subject=subject_id, action=action, actor=actor)
        return event

    async def attempts(self, subject_id: str) -> list[NotificationAttempt]:
        return [NotificationAttempt.from_dict(d) for d in await self._store.items(AUDIT, subject_id, ATTEMPTS)]

    async def events(self, subject_id: str) -> list[CaseEvent]:
        return [CaseEvent.from_dict(d) for d in await self._store.items(AUDIT, subject_id, EVENTS)]
