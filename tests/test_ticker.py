import asyncio

import pytest

from lacat.ticker import Ticker


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        Ticker("bad", 0, lambda: None)


@pytest.mark.asyncio
async def test_overlapping_tick_is_skipped():
    gate = asyncio.Event()
    calls = []

    async def slow():
        calls.append(1)
        await gate.wait()

    ticker = Ticker("slow", 10, slow)
    first = ticker.fire()
    await asyncio.sleep(0)
    assert ticker.in_flight
    assert ticker.fire() is None
    assert ticker.ticks_skipped == 1

    gate.set()
    await first
    assert not ticker.in_flight
    second = ticker.fire()
    assert second is not None
    await second
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_start_fires_immediately_and_repeats():
    count = 0

    async def tick():
        nonlocal count
        count += 1

    ticker = Ticker("fast", 0.01, tick)
    ticker.start()
    await asyncio.sleep(0.005)
    assert count == 1
    await asyncio.sleep(0.05)
    await ticker.stop()
    assert count >= 3

    after_stop = count
    await asyncio.sleep(0.03)
    assert count == after_stop
    assert not ticker.running
    assert ticker.stopped


@pytest.mark.asyncio
async def test_stop_leaves_inflight_tick_running():
    gate = asyncio.Event()
    finished = []

    async def slow():
        await gate.wait()
        finished.append(True)

    ticker = Ticker("slow", 10, slow)
    ticker.start()
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert ticker.in_flight

    await ticker.stop()
    assert ticker.in_flight
    gate.set()
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert finished == [True]


@pytest.mark.asyncio
async def test_tick_errors_do_not_stop_schedule():
    count = 0

    async def failing():
        nonlocal count
        count += 1
        raise RuntimeError("rpc down")

    ticker = Ticker("failing", 0.01, failing)
    ticker.start()
    await asyncio.sleep(0.035)
    await ticker.stop()
    assert count >= 2
