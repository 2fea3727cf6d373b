"""Time-boxed memoization cache for outbound provider requests."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Any
    cached_at: float
    ttl: float

    @property
    def expires_at(self) -> float:
        return self.cached_at + self.ttl

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class FetchCache:
    """
    In-memory TTL cache, process-lifetime scoped.

    Expired entries are treated as absent: ``get`` evicts them on read and a
    background sweep removes the rest every ``sweep_interval`` seconds.
    Concurrent misses for the same key are not coalesced.
    """

    def __init__(self, sweep_interval: float = 60.0, clock: Callable[[], float] = time.time):
        self.sweep_interval = sweep_interval
        self.clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._sweep_task: asyncio.Task | None = None
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get_entry(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if entry.is_expired(self.clock()):
            del self._entries[key]
            self.misses += 1
            return None
        self.hits += 1
        return entry

    def get(self, key: str) -> Any | None:
        """Return the cached payload, or None when absent or expired."""
        entry = self.get_entry(key)
        return entry.payload if entry is not None else None

    def set(self, key: str, value: Any, ttl: float) -> CacheEntry:
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        entry = CacheEntry(key=key, payload=value, cached_at=self.clock(), ttl=ttl)
        self._entries[key] = entry
        return entry

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def sweep(self) -> int:
        """Remove every expired entry. Returns the number evicted."""
        now = self.clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Fetch cache sweep evicted {len(expired)} entries")
        return len(expired)

    async def start(self) -> None:
        """Start the periodic sweep task."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        if self._sweep_task is None:
            return
        self._sweep_task.cancel()
        await asyncio.gather(self._sweep_task, return_exceptions=True)
        self._sweep_task = None

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.sweep()
