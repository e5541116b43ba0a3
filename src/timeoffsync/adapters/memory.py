"""In-process run state for tests and one-off runs."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from timeoffsync.domain.ports.storage import KeyValueStore, RunLock
from timeoffsync.domain.time_windows import utcnow

if TYPE_CHECKING:
    from datetime import datetime, timedelta

    from timeoffsync.domain.time_windows import Clock


class InMemoryKeyValueStore:
    def __init__(self, *, clock: Clock = utcnow) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[str, datetime]] = {}

    def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return None
        return value

    def put(self, key: str, value: str, ttl: timedelta) -> None:
        self._entries[key] = (value, self._clock() + ttl)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)


class InMemoryRunLock:
    """Excludes overlapping runs within one process only."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def try_acquire(self, timeout: float) -> bool:
        return self._lock.acquire(timeout=max(timeout, 0.0))

    def release(self) -> None:
        if self._lock.locked():
            self._lock.release()


if TYPE_CHECKING:
    _store_check: type[KeyValueStore] = InMemoryKeyValueStore
    _lock_check: type[RunLock] = InMemoryRunLock
