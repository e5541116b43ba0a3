"""Per-employee circuit breaker for records that keep failing.

An entry remembers the ``updated_at`` of a record at the moment an action on
it failed. While the record is unchanged the action is not retried; any edit
on either side changes ``updated_at`` and releases it. The whole ledger of an
employee expires after a randomised TTL so retries of many employees do not
line up.
"""

from __future__ import annotations

import json
import random
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from timeoffsync.domain.ports.storage import KeyValueStore

log = getLogger(__name__)

DEFAULT_FAILURE_TTL = timedelta(hours=1)
_STORE_PREFIX = "failed-syncs:"


class RecordKind(StrEnum):
    EVENT = "event"
    TIME_OFF = "timeoff"


@dataclass(frozen=True, slots=True)
class LedgerKey:
    kind: RecordKind
    record_id: str

    def encode(self) -> str:
        return f"{self.kind}:{self.record_id}"


def _stamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


class FailureLedger:
    def __init__(
        self,
        store: KeyValueStore,
        scope: str,
        *,
        ttl: timedelta = DEFAULT_FAILURE_TTL,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._store_key = f"{_STORE_PREFIX}{scope}"
        self._ttl = ttl
        self._rng = rng or random.Random()
        self._entries: dict[str, str] | None = None
        self._dirty = False

    @property
    def dirty(self) -> bool:
        return self._dirty

    def __len__(self) -> int:
        return len(self._load())

    def is_suppressed(self, key: LedgerKey, current_updated_at: datetime) -> bool:
        """True iff a live entry for ``key`` carries exactly this timestamp."""

        return self._load().get(key.encode()) == _stamp(current_updated_at)

    def record_failure(self, key: LedgerKey, updated_at: datetime) -> None:
        self._load()[key.encode()] = _stamp(updated_at)
        self._dirty = True

    def next_ttl(self) -> timedelta:
        return self._ttl / 2 + self._ttl * self._rng.random()

    def save(self) -> None:
        """Persist pending failures; a clean ledger is left to expire."""

        if not self._dirty:
            return
        self._store.put(self._store_key, json.dumps(self._load()), self.next_ttl())
        self._dirty = False

    def _load(self) -> dict[str, str]:
        if self._entries is None:
            self._entries = self._read()
        return self._entries

    def _read(self) -> dict[str, str]:
        raw = self._store.get(self._store_key)
        if raw is None:
            return {}
        try:
            loaded = json.loads(raw)
        except json.JSONDecodeError:
            log.warning("Discarding unreadable failure ledger %s", self._store_key)
            return {}
        if not isinstance(loaded, dict):
            return {}
        return {str(key): str(value) for key, value in loaded.items()}
