"""Unit tests for the snapshot TTL cache"""

import asyncio
from datetime import datetime, timedelta, timezone

from bonus_manager.domain.models import Extraction
from bonus_manager.engine.session import SnapshotRead
from bonus_manager.engine.snapshot_cache import SnapshotCache
from conftest import make_snapshot


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class CountingFetch:
    def __init__(self):
        self.calls = 0

    async def __call__(self) -> SnapshotRead:
        self.calls += 1
        await asyncio.sleep(0)
        snapshot = make_snapshot(bonus_points=90000 + self.calls)
        return SnapshotRead(snapshot=snapshot, extraction=Extraction(value=snapshot.bonus_points))


async def test_serves_cached_value_within_ttl():
    clock, fetch = FakeClock(), CountingFetch()
    cache = SnapshotCache(fetch, ttl_seconds=300, clock=clock)

    first = await cache.get()
    clock.advance(299)
    second = await cache.get()

    assert fetch.calls == 1
    assert second is first
    assert first.fetched_at == datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


async def test_refetches_after_ttl():
    clock, fetch = FakeClock(), CountingFetch()
    cache = SnapshotCache(fetch, ttl_seconds=300, clock=clock)

    await cache.get()
    clock.advance(300)
    refreshed = await cache.get()

    assert fetch.calls == 2
    assert refreshed.value.snapshot.bonus_points == 90002
    assert refreshed.fetched_at == clock.now


async def test_force_refresh_bypasses_ttl():
    fetch = CountingFetch()
    cache = SnapshotCache(fetch, ttl_seconds=300, clock=FakeClock())

    await cache.get()
    await cache.get(force_refresh=True)

    assert fetch.calls == 2


async def test_concurrent_callers_share_one_fetch():
    fetch = CountingFetch()
    cache = SnapshotCache(fetch, ttl_seconds=300, clock=FakeClock())

    results = await asyncio.gather(*(cache.get() for _ in range(5)))

    assert fetch.calls == 1
    assert len({id(r) for r in results}) == 1


async def test_clear_forgets_entry():
    fetch = CountingFetch()
    cache = SnapshotCache(fetch, ttl_seconds=300, clock=FakeClock())

    await cache.get()
    cache.clear()
    await cache.get()

    assert fetch.calls == 2
