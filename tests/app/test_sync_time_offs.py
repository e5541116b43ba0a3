from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy.engine import Engine  # noqa: TC002

from tests.support.fakes import JANE, FakeCalendarFactory, FakeHrClient, make_time_off
from timeoffsync.adapters.memory import InMemoryKeyValueStore, InMemoryRunLock
from timeoffsync.adapters.sqlalchemy import SqlAlchemyRunLock
from timeoffsync.app import build_run_state, sync_time_offs, unsync_time_offs
from timeoffsync.config import SyncConfig  # noqa: TC001


def test_build_run_state_ephemeral() -> None:
    store, lock = build_run_state(ephemeral=True)

    assert isinstance(store, InMemoryKeyValueStore)
    assert isinstance(lock, InMemoryRunLock)


def test_build_run_state_persistent_lock_uses_lease(started_adapter: Engine) -> None:
    _ = started_adapter
    _, lock = build_run_state(lease=timedelta(minutes=12))

    assert isinstance(lock, SqlAlchemyRunLock)
    assert lock._lease == timedelta(minutes=12)  # noqa: SLF001  # type: ignore[reportPrivateUsage]


def test_sync_creates_event_for_upcoming_absence(sync_config: SyncConfig) -> None:
    start = date.today() + timedelta(days=10)
    hr = FakeHrClient(time_offs=[make_time_off(start=start, end=start + timedelta(days=2))])
    calendars = FakeCalendarFactory()

    summary = sync_time_offs(config=sync_config, hr=hr, calendars=calendars, ephemeral=True)

    assert summary.completed
    assert summary.employees_processed == 1
    assert summary.actions_applied == 1
    inserted = calendars.calendars[JANE.email].inserted
    assert [event.time_off_id for event in inserted] == [100]


def test_unsync_without_matching_events_changes_nothing(sync_config: SyncConfig) -> None:
    hr = FakeHrClient(time_offs=[make_time_off()])
    calendars = FakeCalendarFactory()

    summary = unsync_time_offs(
        "Offsite", config=sync_config, hr=hr, calendars=calendars, ephemeral=True
    )

    assert summary.actions_applied == 0
    assert hr.deleted == []
