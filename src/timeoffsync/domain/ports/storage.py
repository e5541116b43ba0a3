"""Ports for best-effort run state: a TTL key-value store and a run lock."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import timedelta


@runtime_checkable
class KeyValueStore(Protocol):
    """Ephemeral string store; losing entries must never break correctness."""

    def get(self, key: str) -> str | None: ...

    def put(self, key: str, value: str, ttl: timedelta) -> None: ...

    def delete(self, key: str) -> None: ...


@runtime_checkable
class RunLock(Protocol):
    """Mutual exclusion between overlapping runs."""

    def try_acquire(self, timeout: float) -> bool: ...

    def release(self) -> None: ...
