"""Simulated long-range radio link.

Stands in for the boat-to-boat radio: best-effort, lossy and slow. Each
transmission waits a random delay and then succeeds with a fixed
probability. There is no retry here; undelivered messages are recovered
through the recipient's backup queue.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from kavalan.core.errors import ValidationException
from kavalan.core.models import utcnow, ts

if TYPE_CHECKING:
    from kavalan.core.models import Message


@dataclass(frozen=True)
class TransportResult:
    success: bool
    status: str  # "transmitted" or "failed"
    delay_s: float = 0.0


@dataclass(frozen=True)
class LinkStatus:
    connected: bool
    signal_strength: int
    nearby_nodes: int
    battery_level: int

    def to_dict(self) -> dict:
        return {
            "connected": self.connected,
            "signal_strength": self.signal_strength,
            "nearby_nodes": self.nearby_nodes,
            "battery_level": self.battery_level,
            "checked_at": ts(utcnow()),
        }


class MessageTransport(Protocol):
    """Port: one best-effort attempt to put a message on the air."""

    async def transmit(self, message: Message) -> TransportResult: ...

    async def probe(self, boat_id: str) -> LinkStatus: ...


class SimulatedLoRaTransport:
    """MessageTransport with uniform random latency and Bernoulli loss."""

    def __init__(
        self,
        min_delay_s: float = 0.5,
        max_delay_s: float = 2.5,
        success_rate: float = 0.9,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if min_delay_s < 0 or max_delay_s < min_delay_s:
            raise ValidationException("transport delays must satisfy 0 <= min <= max")
        if not 0.0 <= success_rate <= 1.0:
            raise ValidationException("success_rate must be within [0, 1]")
        self._min_delay = min_delay_s
        self._max_delay = max_delay_s
        self._success_rate = success_rate
        self._rng = rng or random.Random()
        self._sleep = sleep

    async def transmit(self, message: Message) -> TransportResult:
        delay = self._rng.uniform(self._min_delay, self._max_delay)
        await self._sleep(delay)
        success = self._rng.random() < self._success_rate
        return TransportResult(
            success=success,
            status="transmitted" if success else "failed",
            delay_s=round(delay, 3),
        )

    async def probe(self, boat_id: str) -> LinkStatus:
        return LinkStatus(
            connected=self._rng.random() > 0.2,
            signal_strength=self._rng.randrange(100),
            nearby_nodes=self._rng.randrange(10),
            battery_level=self._rng.randrange(100),
        )
