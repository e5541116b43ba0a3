"""SQLAlchemy-backed key-value store and run lock."""

from __future__ import annotations

import time
import uuid
from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError

from timeoffsync.domain.ports.storage import KeyValueStore, RunLock
from timeoffsync.domain.time_windows import utcnow

from .engine import session_factory as default_session_factory
from .mappings import KeyValueEntry, LockLease

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.orm import Session, sessionmaker

    from timeoffsync.domain.time_windows import Clock

log = getLogger(__name__)

DEFAULT_LOCK_NAME = "reconciliation"
# outlives the longest run the scheduler allows
DEFAULT_LOCK_LEASE = timedelta(minutes=6)
_POLL_INTERVAL_SECONDS = 0.25


class SqlAlchemyKeyValueStore:
    """TTL entries in the ``kv_entry`` table; expired rows read as missing."""

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._session_factory = session_factory or default_session_factory()
        self._clock = clock

    def get(self, key: str) -> str | None:
        with self._session_factory() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                session.delete(entry)
                session.commit()
                return None
            return entry.value

    def put(self, key: str, value: str, ttl: timedelta) -> None:
        expires_at = self._clock() + ttl
        with self._session_factory() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                session.add(KeyValueEntry(key=key, value=value, expires_at=expires_at))
            else:
                entry.value = value
                entry.expires_at = expires_at
            session.commit()

    def delete(self, key: str) -> None:
        with self._session_factory() as session:
            session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))  # pyright: ignore[reportArgumentType]
            session.commit()

    def purge_expired(self) -> int:
        with self._session_factory() as session:
            result = session.execute(
                delete(KeyValueEntry).where(KeyValueEntry.expires_at <= self._clock())  # pyright: ignore[reportArgumentType, reportOperatorIssue]
            )
            session.commit()
            return int(getattr(result, "rowcount", 0) or 0)


class SqlAlchemyRunLock:
    """A named lease in the ``run_lock`` table.

    A lease left behind by a killed run expires on its own, so a crash never
    blocks later runs for longer than ``lease``.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        *,
        name: str = DEFAULT_LOCK_NAME,
        lease: timedelta = DEFAULT_LOCK_LEASE,
        clock: Clock = utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._session_factory = session_factory or default_session_factory()
        self._name = name
        self._lease = lease
        self._clock = clock
        self._sleep = sleep
        self.owner = uuid.uuid4().hex

    def try_acquire(self, timeout: float) -> bool:
        give_up_at = time.monotonic() + max(timeout, 0.0)
        while True:
            if self._try_take():
                return True
            if time.monotonic() >= give_up_at:
                log.info("Run lock %s is held by another run", self._name)
                return False
            self._sleep(_POLL_INTERVAL_SECONDS)

    def release(self) -> None:
        with self._session_factory() as session:
            session.execute(
                delete(LockLease).where(
                    LockLease.name == self._name,  # pyright: ignore[reportArgumentType]
                    LockLease.owner == self.owner,  # pyright: ignore[reportArgumentType]
                )
            )
            session.commit()

    def _try_take(self) -> bool:
        now = self._clock()
        with self._session_factory() as session:
            lease = session.get(LockLease, self._name)
            if lease is None:
                session.add(LockLease(name=self._name, owner=self.owner, expires_at=now + self._lease))
            elif lease.owner == self.owner or lease.expires_at <= now:
                if lease.owner != self.owner:
                    log.warning("Taking over expired run lock %s", self._name)
                lease.owner = self.owner
                lease.expires_at = now + self._lease
            else:
                return False
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                return False
            return True


if TYPE_CHECKING:
    _store_check: type[KeyValueStore] = SqlAlchemyKeyValueStore
    _lock_check: type[RunLock] = SqlAlchemyRunLock
