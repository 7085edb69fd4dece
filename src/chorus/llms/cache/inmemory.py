"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/inmemory.py.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from ...types import AnswerResponse
from .base import CacheEntry, ResponseCache
from .locking import ReadWriteLock


@dataclass(slots=True)
class InMemoryResponseCache(ResponseCache):
    """
    Process-local TTL cache shared by concurrent pipeline executions.

    Expired rows are treated as misses and dropped when a read finds them;
    ``purge_expired`` sweeps the rest on demand.
    """

    backend_id: str = "inmemory"
    clock: Callable[[], float] = field(default=time.monotonic)
    _rows: dict[str, CacheEntry] = field(init=False, default_factory=dict, repr=False)
    _lock: ReadWriteLock = field(init=False, default_factory=ReadWriteLock, repr=False)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._rows)

    async def get(self, key: str) -> AnswerResponse | None:
        with self._lock.read():
            row = self._rows.get(key)
        if row is None:
            return None
        if row.expires_at_s <= self.clock():
            with self._lock.write():
                if self._rows.get(key) is row:
                    del self._rows[key]
            return None
        return row.value

    async def set(self, key: str, value: AnswerResponse, *, ttl_s: float) -> None:
        if ttl_s <= 0:
            raise ValueError(f"Cache ttl must be positive, got {ttl_s}")
        with self._lock.write():
            self._rows[key] = CacheEntry(value=value, expires_at_s=self.clock() + ttl_s)

    async def delete(self, key: str) -> None:
        with self._lock.write():
            self._rows.pop(key, None)

    def purge_expired(self) -> int:
        """Drop every expired row and return how many were removed."""
        now = self.clock()
        with self._lock.write():
            stale = [key for key, row in self._rows.items() if row.expires_at_s <= now]
            for key in stale:
                del self._rows[key]
        return len(stale)
