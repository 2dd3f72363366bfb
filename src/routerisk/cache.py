"""TTL memoization for the aggregate risk counts."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Hashable
from typing import Any


class TTLCache:
    """Values are reused for ``ttl_s`` seconds after they were computed.

    A per-key lock makes the expiry check and the recomputation atomic, so
    concurrent callers of one expired key wait for a single computation.
    Failed computations are not cached. Entries are only replaced, never
    evicted, so size is bounded by the number of distinct keys queried.
    """

    def __init__(self, ttl_s: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_s = ttl_s
        self._clock = clock
        self._entries: dict[Hashable, tuple[Any, float]] = {}
        self._locks: dict[Hashable, asyncio.Lock] = {}

    def _fresh(self, key: Hashable) -> tuple[bool, Any]:
        entry = self._entries.get(key)
        if entry is not None and self._clock() - entry[1] < self.ttl_s:
            return True, entry[0]
        return False, None

    async def get_or_compute(self, key: Hashable, compute: Callable[[], Awaitable[Any]]) -> Any:
        hit, value = self._fresh(key)
        if hit:
            return value
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            hit, value = self._fresh(key)
            if hit:
                return value
            value = await compute()
            self._entries[key] = (value, self._clock())
            return value

    def __len__(self) -> int:
        return len(self._entries)
