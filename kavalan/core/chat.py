"""Store-and-forward chat between boats.

Every message is appended to its thread log, copied into the recipient's
backup queue, and then handed once to the radio transport. The backup
copy is written whatever the transport does: a boat that was out of
range drains its queue when it comes back online and clears it after a
successful local sync.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import TYPE_CHECKING

import structlog

from kavalan.core.errors import ValidationException
from kavalan.core.fanout import TaskOutcome, run_isolated, summarize
from kavalan.core.models import (
    BackupEntry,
    Message,
    ts,
    utcnow,
    validate_boat_id,
    validate_message_content,
)

if TYPE_CHECKING:
    from kavalan.core.boats import BoatDirectory
    from kavalan.core.models import Location
    from kavalan.core.stats import FleetStats
    from kavalan.core.transport import LinkStatus, MessageTransport
    from kavalan.storage.base import DocumentStore

log = structlog.get_logger()

THREADS = "threads"
BACKUPS = "backups"
LINK_STATUS = "link_status"
MESSAGES = "messages"
THREAD_SEPARATOR = "_"

# A chat counts as active if it carried a message within this window.
ACTIVE_CHAT_WINDOW = timedelta(hours=24)


def thread_of(boat_a: str, boat_b: str) -> str:
    """Canonical thread key: both identifiers sorted, then joined."""
    validate_boat_id(boat_a, "boat_a")
    validate_boat_id(boat_b, "boat_b")
    if boat_a == boat_b:
        raise ValidationException(
            f"a thread needs two different boats, got {boat_a} twice",
            details=[{"field": "boat_b", "message": "same as boat_a"}],
        )
    first, second = sorted((boat_a, boat_b))
    return f"{first}{THREAD_SEPARATOR}{second}"


def participants(thread: str) -> tuple[str, str]:
    parts = thread.split(THREAD_SEPARATOR)
    if len(parts) != 2:
        raise ValidationException(f"malformed thread key {thread!r}")
    first, second = (validate_boat_id(p, "thread") for p in parts)
    if first == second:
        raise ValidationException(f"malformed thread key {thread!r}")
    return first, second


@dataclass(frozen=True)
class SendReceipt:
    message: Message
    transport_status: str

    def to_dict(self) -> dict:
        return {
            "message_id": self.message.id,
            "thread": self.message.thread,
            "delivered": self.message.delivered,
            "transport_status": self.transport_status,
        }


@dataclass(frozen=True)
class BroadcastReceipt:
    from_boat: str
    recipients: tuple[str, ...]
    outcomes: tuple[TaskOutcome, ...]

    def to_dict(self) -> dict:
        return {
            "from_boat": self.from_boat,
            "sent_to": len(self.recipients),
            **summarize(list(self.outcomes)),
            "failed_recipients": [o.key for o in self.outcomes if not o.ok],
        }


@dataclass(frozen=True)
class ThreadSummary:
    thread: str
    other_boat: str
    last_message: Message | None
    unread_count: int

    def to_dict(self) -> dict:
        return {
            "thread": self.thread,
            "other_boat": self.other_boat,
            "last_message": self.last_message.to_dict() if self.last_message else None,
            "unread_count": self.unread_count,
        }


class StoreAndForwardChannel:
    """Thread logs, per-boat backup queues and the radio hand-off."""

    def __init__(
        self,
        store: DocumentStore,
        boats: BoatDirectory,
        transport: MessageTransport,
        stats: FleetStats,
        history_limit: int = 50,
    ) -> None:
        self._store = store
        self._boats = boats
        self._transport = transport
        self._stats = stats
        self._history_limit = history_limit

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send(
        self,
        from_boat: str,
        to_boat: str,
        body: str,
        kind: str = "text",
        location: Location | None = None,
    ) -> SendReceipt:
        message = Message(
            id=str(uuid.uuid4()),
            thread=thread_of(from_boat, to_boat),
            from_boat=from_boat,
            to_boat=to_boat,
            body=body,
            kind=kind,
            sent_at=utcnow(),
            location=location,
        )

        first, second = participants(message.thread)
        await self._store.set(THREADS, message.thread, {
            "thread": message.thread,
            "participants": [first, second],
            "updated_at": ts(message.sent_at),
        })
        await self._store.append(THREADS, message.thread, MESSAGES, message.to_dict())
        await self._backup(message)

        result_status = "failed"
        try:
            result = await self._transport.transmit(message)
        except Exception:
            log.error("transport_failed", message_id=message.id, thread=message.thread,
                      exc_info=True)
        else:
            result_status = result.status
            if result.success:
                delivered_at = utcnow()
                try:
                    await self._store.update_item(
                        THREADS, message.thread, MESSAGES, message.id,
                        {"delivered": True, "delivered_at": ts(delivered_at)},
                    )
                except Exception:
                    # The radio delivered it; only the stored flag is stale.
                    log.error("delivery_flag_write_failed", message_id=message.id,
                              thread=message.thread, exc_info=True)
                message = replace(message, delivered=True, delivered_at=delivered_at)

        self._stats.record_message(from_boat, delivered=message.delivered)
        log.info("message_sent", message_id=message.id, thread=message.thread,
                 kind=kind, delivered=message.delivered, transport=result_status)
        return SendReceipt(message=message, transport_status=result_status)

    async def _backup(self, message: Message) -> None:
        entry = BackupEntry(message=message, backed_up_at=utcnow())
        try:
            await self._store.append(BACKUPS, message.to_boat, MESSAGES, entry.to_dict())
        except Exception:
            log.error("backup_write_failed", message_id=message.id, boat=message.to_boat,
                      exc_info=True)
            self._stats.record_backup_error()

    async def broadcast(
        self,
        from_boat: str,
        body: str,
        kind: str = "text",
        location: Location | None = None,
    ) -> BroadcastReceipt:
        """Send independently to every other active boat.

        There is no atomicity across recipients: a failed send for one boat
        leaves the others untouched and nothing is rolled back.
        """
        # Validate once before fanning out so a bad body writes nothing.
        validate_boat_id(from_boat, "from_boat")
        validate_message_content(body, kind)

        recipients = tuple(
            b.boat_id for b in await self._boats.active_boats() if b.boat_id != from_boat
        )
        outcomes = await run_isolated(
            {r: self.send(from_boat, r, body, kind, location) for r in recipients},
            label="chat_broadcast",
        )
        self._stats.record_broadcast()
        log.info("broadcast_finished", from_boat=from_boat, kind=kind, **summarize(outcomes))
        return BroadcastReceipt(from_boat=from_boat, recipients=recipients, outcomes=tuple(outcomes))

    async def send_sos(self, from_boat: str, location: Location | None, text: str = "") -> BroadcastReceipt:
        body = f"SOS: {text}".strip()
        return await self.broadcast(from_boat, body, kind="sos", location=location)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    async def _messages(self, thread: str) -> list[Message]:
        return [Message.from_dict(d) for d in await self._store.items(THREADS, thread, MESSAGES)]

    async def history(self, boat_a: str, boat_b: str, limit: int | None = None) -> list[Message]:
        """The last ``limit`` messages of a thread, oldest first."""
        limit = limit or self._history_limit
        messages = await self._messages(thread_of(boat_a, boat_b))
        return messages[-limit:]

    async def unread_count(self, thread: str, boat_id: str) -> int:
        participants(thread)
        return sum(
            1 for m in await self._messages(thread)
            if m.to_boat == boat_id and not m.read
        )

    async def mark_read(self, thread: str, boat_id: str) -> int:
        """Flag every unread message addressed to ``boat_id``; returns how many."""
        if boat_id not in participants(thread):
            raise ValidationException(f"boat {boat_id} is not part of thread {thread}")
        unread = [m for m in await self._messages(thread) if m.to_boat == boat_id and not m.read]
        read_at = ts(utcnow())
        for m in unread:
            await self._store.update_item(THREADS, thread, MESSAGES, m.id,
                                          {"read": True, "read_at": read_at})
        if unread:
            log.info("messages_marked_read", thread=thread, boat=boat_id, count=len(unread))
        return len(unread)

    async def threads_for(self, boat_id: str) -> list[ThreadSummary]:
        validate_boat_id(boat_id)
        summaries = []
        for doc in await self._store.all(THREADS):
            pair = doc.get("participants", [])
            if boat_id not in pair:
                continue
            thread = doc["thread"]
            messages = await self._messages(thread)
            other = pair[1] if pair[0] == boat_id else pair[0]
            summaries.append(ThreadSummary(
                thread=thread,
                other_boat=other,
                last_message=messages[-1] if messages else None,
                unread_count=sum(1 for m in messages if m.to_boat == boat_id and not m.read),
            ))
        with_messages = [s for s in summaries if s.last_message is not None]
        without = [s for s in summaries if s.last_message is None]
        with_messages.sort(key=lambda s: s.last_message.sent_at, reverse=True)
        return with_messages + without

    async def unread_summary(self, boat_id: str) -> dict:
        threads = await self.threads_for(boat_id)
        return {
            "total_unread": sum(t.unread_count for t in threads),
            "chats_with_unread": sum(1 for t in threads if t.unread_count > 0),
            "total_chats": len(threads),
        }

    async def statistics(self, boat_id: str) -> dict:
        threads = await self.threads_for(boat_id)
        cutoff = utcnow() - ACTIVE_CHAT_WINDOW
        total = 0
        active = 0
        for summary in threads:
            messages = await self._messages(summary.thread)
            total += len(messages)
            if any(m.sent_at > cutoff for m in messages):
                active += 1
        return {
            "total_messages": total,
            "unread_messages": sum(t.unread_count for t in threads),
            "active_chats": active,
            "total_chats": len(threads),
        }

    # ------------------------------------------------------------------
    # Offline backup queue
    # ------------------------------------------------------------------

    async def drain_backup(self, boat_id: str) -> list[BackupEntry]:
        """Everything queued for ``boat_id``, oldest first. Does not clear."""
        validate_boat_id(boat_id)
        entries = [BackupEntry.from_dict(d) for d in await self._store.items(BACKUPS, boat_id, MESSAGES)]
        entries.sort(key=lambda e: e.message.sent_at)
        return entries

    async def clear_backup(self, boat_id: str) -> int:
        validate_boat_id(boat_id)
        count = await self._store.clear(BACKUPS, boat_id, MESSAGES)
        log.info("backup_cleared", boat=boat_id, count=count)
        return count

    async def link_status(self, boat_id: str) -> LinkStatus:
        validate_boat_id(boat_id)
        status = await self._transport.probe(boat_id)
        await self._store.set(LINK_STATUS, boat_id, status.to_dict())
        return status
