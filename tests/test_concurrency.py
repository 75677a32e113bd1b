import asyncio
import pytest
from pulse.concurrency import bounded_map, join_all

def test_join_all_keeps_order():
    async def value(v, delay):
        await asyncio.sleep(delay)
        return v

    assert asyncio.run(join_all(value(1, 0.03), value(2, 0.0), value(3, 0.01))) == [1, 2, 3]

def test_join_all_cancels_siblings_and_reraises():
    cancelled = []

    async def slow():
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            cancelled.append(True)
            raise

    async def boom():
        await asyncio.sleep(0.01)
        raise KeyError("boom")

    with pytest.raises(KeyError):
        asyncio.run(join_all(slow(), boom(), slow()))
    assert cancelled == [True, True]

def test_bounded_map_caps_in_flight():
    in_flight = 0
    peak = 0

    async def work(i):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return i * 2

    assert asyncio.run(bounded_map(work, range(10), limit=3)) == [i * 2 for i in range(10)]
    assert peak == 3

def test_bounded_map_uncapped_runs_everything_at_once():
    in_flight = 0
    peak = 0

    async def work(i):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return i

    assert asyncio.run(bounded_map(work, range(8))) == list(range(8))
    assert peak == 8

def test_bounded_map_empty():
    async def work(i):
        return i

    assert asyncio.run(bounded_map(work, [])) == []
