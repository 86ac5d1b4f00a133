"""Tests for isolated fan-out and the interval ticker."""

from __future__ import annotations

import asyncio

import pytest

from kavalan.core.fanout import run_isolated, summarize
from kavalan.core.scheduler import Ticker


async def _ok(value, delay=0.0):
    await asyncio.sleep(delay)
    return value


async def _boom(message="boom"):
    raise RuntimeError(message)


@pytest.mark.asyncio
async def test_failure_does_not_cancel_siblings():
    finished = []

    async def slow(key):
        await asyncio.sleep(0.02)
        finished.append(key)
        return key

    outcomes = await run_isolated({"a": slow("a"), "b": _boom(), "c": slow("c")})

    assert [o.key for o in outcomes] == ["a", "b", "c"]
    assert [o.ok for o in outcomes] == [True, False, True]
    assert outcomes[1].error == "boom"
    assert sorted(finished) == ["a", "c"]


@pytest.mark.asyncio
async def test_outcomes_keep_values():
    outcomes = await run_isolated({"x": _ok(1), "y": _ok(2, delay=0.01)})
    assert {o.key: o.value for o in outcomes} == {"x": 1, "y": 2}


@pytest.mark.asyncio
async def test_empty_fanout():
    assert await run_isolated({}) == []


@pytest.mark.asyncio
async def test_summarize():
    outcomes = await run_isolated({"a": _ok(1), "b": _boom(), "c": _boom("")})
    assert summarize(outcomes) == {"total": 3, "succeeded": 1, "failed": 2}
    # An exception without a message is reported by its type name.
    assert outcomes[2].error == "RuntimeError"


@pytest.mark.asyncio
async def test_ticker_survives_failing_iteration():
    calls = []

    async def job():
        calls.append(len(calls))
        if len(calls) == 1:
            raise RuntimeError("first run fails")

    ticker = Ticker("test", 60, job)
    assert await ticker.tick() is False
    assert await ticker.tick() is True
    assert ticker.iterations == 2
    assert ticker.failures == 1


@pytest.mark.asyncio
async def test_ticker_run_forever_sleeps_between_ticks():
    sleeps = []
    runs = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)
        if len(sleeps) > 3:
            raise asyncio.CancelledError

    async def job():
        runs.append(1)

    ticker = Ticker("test", 1800, job, sleep=fake_sleep)
    with pytest.raises(asyncio.CancelledError):
        await ticker.run_forever()
    assert sleeps == [1800, 1800, 1800, 1800]
    assert len(runs) == 3


def test_ticker_rejects_bad_interval():
    with pytest.raises(ValueError):
        Ticker("test", 0, _ok)
