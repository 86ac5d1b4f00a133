"""Isolated fan-out — run N independent units of work and join them all.

A failing unit never cancels or blocks its siblings: every unit runs to
completion and reports its own outcome. Used for chat broadcast, SOS
notification and alert distribution alike.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog

log = structlog.get_logger()


@dataclass(frozen=True)
class TaskOutcome:
    key: str
    ok: bool
    value: Any = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {"key": self.key, "ok": self.ok, "error": self.error}


async def run_isolated(units: Mapping[str, Awaitable[Any]], *, label: str = "fanout") -> list[TaskOutcome]:
    """Await every unit concurrently; return one outcome per key, in key order."""
    if not units:
        return []
    keys = list(units)
    results = await asyncio.gather(*(units[k] for k in keys), return_exceptions=True)

    outcomes = []
    for key, result in zip(keys, results):
        if isinstance(result, BaseException):
            log.warning("fanout_unit_failed", label=label, key=key,
                        error=f"{type(result).__name__}: {result}")
            outcomes.append(TaskOutcome(key=key, ok=False, error=str(result) or type(result).__name__))
        else:
            outcomes.append(TaskOutcome(key=key, ok=True, value=result))
    return outcomes


def summarize(outcomes: list[TaskOutcome]) -> dict:
    ok = sum(1 for o in outcomes if o.ok)
    return {"total": len(outcomes), "succeeded": ok, "failed": len(outcomes) - ok}
