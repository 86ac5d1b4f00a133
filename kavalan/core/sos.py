"""SOS case lifecycle.

A case is created ``active`` and moves to ``resolved``; there is no way
back. Creation stores the case, records a ``created`` event and then runs
the dispatcher's fan-out to completion before returning. The caller only
learns about the synchronous part (the stored case); what each contact,
authority or boat received is read back from the audit log.

``resolve`` on a case that is already resolved is not refused: it
overwrites the resolution fields and logs a warning.
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import timedelta
from typing import TYPE_CHECKING

import structlog

from kavalan.core import rendering
from kavalan.core.errors import NotFoundException, ValidationException
from kavalan.core.models import Location, SOSCase, utcnow, validate_boat_id

if TYPE_CHECKING:
    from kavalan.core.audit import AuditLog
    from kavalan.core.boats import BoatDirectory
    from kavalan.core.dispatch import AlertDispatcher
    from kavalan.core.models import CaseEvent, NotificationAttempt
    from kavalan.core.stats import FleetStats
    from kavalan.storage.base import DocumentStore

log = structlog.get_logger()

SOS_CASES = "sos_cases"

DEFAULT_SOS_MESSAGE = "Emergency SOS signal sent"
TEST_SOS_MESSAGE = "This is a test SOS alert"
TEST_SOS_LOCATION = {"latitude": 13.0827, "longitude": 80.2707, "accuracy": 10}


class SOSLifecycle:
    def __init__(
        self,
        store: DocumentStore,
        boats: BoatDirectory,
        dispatcher: AlertDispatcher,
        audit: AuditLog,
        stats: FleetStats,
        language: str = "tamil",
        recent_limit: int = 10,
    ) -> None:
        self._store = store
        self._boats = boats
        self._dispatcher = dispatcher
        self._audit = audit
        self._stats = stats
        self._language = language
        self._recent_limit = recent_limit

    async def create_case(
        self,
        boat_id: str,
        location: Location,
        message: str = "",
        requester: str | None = None,
    ) -> SOSCase:
        if not isinstance(message, str):
            raise ValidationException(
                "message must be a string",
                details=[{"field": "message", "message": "expected a string"}],
            )
        if requester is not None and not isinstance(requester, str):
            raise ValidationException("requester must be a string")
        profile = await self._boats.require(boat_id)
        now = utcnow()
        case = SOSCase(
            id=str(uuid.uuid4()),
            boat_id=boat_id,
            requester=requester or boat_id,
            location=location,
            message=message.strip() or DEFAULT_SOS_MESSAGE,
            fisherman_name=profile.name,
            phone=profile.phone,
            emergency_contacts=profile.emergency_contacts,
            voice_text=rendering.sos_voice_text(boat_id, self._language),
            created_at=now,
            updated_at=now,
        )
        await self._store.set(SOS_CASES, case.id, case.to_dict())
        self._stats.record_sos_created(boat_id)
        log.info("sos_case_created", case_id=case.id, boat=boat_id,
                 contacts=len(case.emergency_contacts))

        await self._event(case.id, "created", case.requester)
        await self._dispatcher.dispatch_sos(case)
        return case

    async def test_case(self, boat_id: str) -> SOSCase:
        return await self.create_case(
            boat_id, Location.from_dict(TEST_SOS_LOCATION), TEST_SOS_MESSAGE,
        )

    async def resolve(self, case_id: str, resolved_by: str, notes: str = "") -> SOSCase:
        if not isinstance(resolved_by, str) or not resolved_by.strip():
            raise ValidationException("resolved_by is required")
        if not isinstance(notes, str):
            raise ValidationException("notes must be a string")
        case = await self.get(case_id)
        if case.status == "resolved":
            # Not refused: the earlier resolution is overwritten.
            log.warning("sos_case_re_resolved", case_id=case_id,
                        previous_resolved_by=case.resolved_by, resolved_by=resolved_by)
        now = utcnow()
        case = replace(
            case,
            status="resolved",
            resolved_at=now,
            resolved_by=resolved_by,
            notes=notes,
            updated_at=now,
        )
        await self._store.set(SOS_CASES, case_id, case.to_dict())
        self._stats.record_sos_resolved()
        log.info("sos_case_resolved", case_id=case_id, resolved_by=resolved_by)
        await self._event(case_id, "resolved", resolved_by)
        return case

    async def _event(self, case_id: str, action: str, actor: str | None) -> None:
        try:
            await self._audit.record_event(case_id, action, actor)
        except Exception:
            log.error("audit_write_failed", case_id=case_id, action=action, exc_info=True)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get(self, case_id: str) -> SOSCase:
        data = await self._store.get(SOS_CASES, case_id)
        if data is None:
            raise NotFoundException(f"SOS case {case_id} not found")
        return SOSCase.from_dict(data)

    async def _all(self) -> list[SOSCase]:
        cases = [SOSCase.from_dict(d) for d in await self._store.all(SOS_CASES)]
        cases.sort(key=lambda c: c.created_at, reverse=True)
        return cases

    async def cases_for_boat(self, boat_id: str, limit: int | None = None) -> list[SOSCase]:
        validate_boat_id(boat_id)
        cases = [c for c in await self._all() if c.boat_id == boat_id]
        return cases[: limit or self._recent_limit]

    async def active_cases(self) -> list[SOSCase]:
        return [c for c in await self._all() if c.status == "active"]

    async def attempts(self, case_id: str) -> list[NotificationAttempt]:
        await self.get(case_id)
        return await self._audit.attempts(case_id)

    async def events(self, case_id: str) -> list[CaseEvent]:
        await self.get(case_id)
        return await self._audit.events(case_id)

    async def statistics(self) -> dict:
        cases = await self._all()
        cutoff = utcnow() - timedelta(hours=24)
        resolved = [c for c in cases if c.status == "resolved" and c.resolved_at]
        durations = [(c.resolved_at - c.created_at).total_seconds() / 60 for c in resolved]
        return {
            "total": len(cases),
            "active": sum(1 for c in cases if c.status == "active"),
            "resolved": len(resolved),
            "last_24h": sum(1 for c in cases if c.created_at > cutoff),
            "average_resolution_minutes": (
                round(sum(durations) / len(durations), 1) if durations else None
            ),
        }
