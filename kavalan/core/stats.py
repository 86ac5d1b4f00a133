"""Fleet statistics and active-boat tracking.

Tracks in-memory counters and a sliding window of recently active boats.
No framework dependencies.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

ACTIVITY_KINDS = ("location", "chat", "sos")


@dataclass
class BoatActivity:
    """Tracks a single boat's recent activity."""
    last_seen: float          # time.monotonic() timestamp
    last_kind: str            # one of ACTIVITY_KINDS
    events: int = 0


class FleetStats:
    """Thread-safe fleet statistics with active-boat tracking.

    A boat is "active" if it reported a location, sent a chat message or
    raised an SOS within ``active_window_seconds``. It is counted under the
    kind of its most recent activity.
    """

    def __init__(self, active_window_seconds: float = 900.0) -> None:
        self._lock = threading.Lock()
        self._started_at = time.time()
        self._active_window = active_window_seconds

        # Counters
        self.messages_sent: int = 0
        self.messages_delivered: int = 0
        self.transport_failures: int = 0
        self.backup_errors: int = 0
        self.broadcasts: int = 0
        self.location_updates: int = 0
        self.sos_cases_created: int = 0
        self.sos_cases_resolved: int = 0
        self.alerts_created: int = 0
        self.notifications_sent: int = 0
        self.notifications_failed: int = 0
        self.weather_refreshes: int = 0
        self.weather_failures: int = 0
        self.sweeps_run: int = 0

        # Boat tracking: boat_id → BoatActivity
        self._boats: dict[str, BoatActivity] = {}

    def _touch(self, boat_id: str, kind: str) -> None:
        """Caller holds lock."""
        now = time.monotonic()
        if boat_id in self._boats:
            boat = self._boats[boat_id]
            boat.last_seen = now
            boat.last_kind = kind
            boat.events += 1
        else:
            self._boats[boat_id] = BoatActivity(last_seen=now, last_kind=kind, events=1)

    def record_message(self, boat_id: str, *, delivered: bool) -> None:
        with self._lock:
            self.messages_sent += 1
            if delivered:
                self.messages_delivered += 1
            else:
                self.transport_failures += 1
            self._touch(boat_id, "chat")

    def record_backup_error(self) -> None:
        with self._lock:
            self.backup_errors += 1

    def record_broadcast(self) -> None:
        with self._lock:
            self.broadcasts += 1

    def record_location(self, boat_id: str) -> None:
        with self._lock:
            self.location_updates += 1
            self._touch(boat_id, "location")

    def record_sos_created(self, boat_id: str) -> None:
        with self._lock:
            self.sos_cases_created += 1
            self._touch(boat_id, "sos")

    def record_sos_resolved(self) -> None:
        with self._lock:
            self.sos_cases_resolved += 1

    def record_alert(self) -> None:
        with self._lock:
            self.alerts_created += 1

    def record_notification(self, *, ok: bool) -> None:
        with self._lock:
            if ok:
                self.notifications_sent += 1
            else:
                self.notifications_failed += 1

    def record_weather(self, *, ok: bool) -> None:
        with self._lock:
            if ok:
                self.weather_refreshes += 1
            else:
                self.weather_failures += 1

    def record_sweep(self) -> None:
        with self._lock:
            self.sweeps_run += 1

    def _prune_stale_boats(self, now: float) -> None:
        """Remove boats not seen within the active window. Caller holds lock."""
        cutoff = now - self._active_window
        stale = [bid for bid, boat in self._boats.items() if boat.last_seen < cutoff]
        for bid in stale:
            del self._boats[bid]

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot of all stats."""
        now_mono = time.monotonic()
        with self._lock:
            self._prune_stale_boats(now_mono)

            by_kind = {
                kind: sum(1 for b in self._boats.values() if b.last_kind == kind)
                for kind in ACTIVITY_KINDS
            }

            return {
                "uptime_seconds": round(time.time() - self._started_at, 1),
                "messages_sent": self.messages_sent,
                "messages_delivered": self.messages_delivered,
                "transport_failures": self.transport_failures,
                "backup_errors": self.backup_errors,
                "broadcasts": self.broadcasts,
                "location_updates": self.location_updates,
                "sos_cases_created": self.sos_cases_created,
                "sos_cases_resolved": self.sos_cases_resolved,
                "alerts_created": self.alerts_created,
                "notifications_sent": self.notifications_sent,
                "notifications_failed": self.notifications_failed,
                "weather_refreshes": self.weather_refreshes,
                "weather_failures": self.weather_failures,
                "sweeps_run": self.sweeps_run,
                "active_boats": {
                    "total": len(self._boats),
                    **by_kind,
                    "window_seconds": self._active_window,
                },
            }
