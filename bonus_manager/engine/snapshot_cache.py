"""TTL cache in front of the browser-backed snapshot read"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from bonus_manager.engine.session import SnapshotRead


@dataclass(frozen=True)
class CachedSnapshot:
    value: SnapshotRead
    fetched_at: datetime


class SnapshotCache:
    """
    Serves the last snapshot until it is older than ttl_seconds.

    Fetches are serialized behind a lock so at most one browser session runs
    at a time; callers queued behind a fetch reuse its result.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[SnapshotRead]],
        ttl_seconds: float,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._fetch = fetch
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = asyncio.Lock()
        self._entry: Optional[CachedSnapshot] = None

    def _fresh(self) -> bool:
        return self._entry is not None and (self._clock() - self._entry.fetched_at).total_seconds() < self.ttl_seconds

    async def get(self, force_refresh: bool = False) -> CachedSnapshot:
        if not force_refresh and self._fresh():
            return self._entry

        async with self._lock:
            # Another caller may have refreshed while we waited
            if not force_refresh and self._fresh():
                return self._entry
            value = await self._fetch()
            self._entry = CachedSnapshot(value=value, fetched_at=self._clock())
            return self._entry

    def clear(self) -> None:
        self._entry = None
