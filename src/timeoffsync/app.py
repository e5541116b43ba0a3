"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack
from logging import getLogger
from typing import TYPE_CHECKING

from timeoffsync.adapters.google_calendar import GoogleCalendarClientFactory
from timeoffsync.adapters.memory import InMemoryKeyValueStore, InMemoryRunLock
from timeoffsync.adapters.personio import PersonioClient, PersonioLinkBuilder
from timeoffsync.adapters.sqlalchemy import (
    SqlAlchemyKeyValueStore,
    SqlAlchemyRunLock,
    is_started,
    startup,
)
from timeoffsync.config import get_google_calendar_config, get_personio_config, get_sync_config
from timeoffsync.domain.coordinator import RunCoordinator, RunSummary

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import timedelta

    from timeoffsync.config import SyncConfig
    from timeoffsync.domain.actions import RecordLinkBuilder
    from timeoffsync.domain.ports import CalendarClientFactory, HrClient, KeyValueStore, RunLock

    RunOperation = Callable[[RunCoordinator], Awaitable[RunSummary]]


log = getLogger(__name__)


def build_run_state(
    *, ephemeral: bool = False, lease: timedelta | None = None
) -> tuple[KeyValueStore, RunLock]:
    """Failure ledger store and run lock, persistent unless ``ephemeral``."""

    if ephemeral:
        return InMemoryKeyValueStore(), InMemoryRunLock()
    if not is_started():
        startup()
    if lease is None:
        return SqlAlchemyKeyValueStore(), SqlAlchemyRunLock()
    return SqlAlchemyKeyValueStore(), SqlAlchemyRunLock(lease=lease)


async def _run_with_adapters(
    operation: RunOperation,
    *,
    config: SyncConfig,
    hr: HrClient | None,
    calendars: CalendarClientFactory | None,
    store: KeyValueStore | None,
    lock: RunLock | None,
    links: RecordLinkBuilder | None,
    ephemeral: bool,
) -> RunSummary:
    async with AsyncExitStack() as stack:
        if hr is None:
            personio_config = get_personio_config()
            hr = await stack.enter_async_context(PersonioClient(personio_config))
            if links is None and personio_config.web_url:
                links = PersonioLinkBuilder(personio_config.web_url)
        if calendars is None:
            calendars = await stack.enter_async_context(
                GoogleCalendarClientFactory(get_google_calendar_config())
            )
        if store is None or lock is None:
            default_store, default_lock = build_run_state(
                ephemeral=ephemeral, lease=config.lock_lease
            )
            store = store or default_store
            lock = lock or default_lock

        coordinator = RunCoordinator(
            config=config,
            hr=hr,
            calendars=calendars,
            store=store,
            lock=lock,
            links=links,
        )
        return await operation(coordinator)


def sync_time_offs(
    *,
    config: SyncConfig | None = None,
    hr: HrClient | None = None,
    calendars: CalendarClientFactory | None = None,
    store: KeyValueStore | None = None,
    lock: RunLock | None = None,
    links: RecordLinkBuilder | None = None,
    ephemeral: bool = False,
) -> RunSummary:
    """Reconcile HR absences and calendar events using the configured adapters."""

    effective_config = config or get_sync_config()
    log.info(
        "Starting time-off sync: lookback=%s days, lookahead=%s days, max_runtime=%s",
        effective_config.lookback_days,
        effective_config.lookahead_days,
        effective_config.max_runtime,
    )

    summary = asyncio.run(
        _run_with_adapters(
            RunCoordinator.run,
            config=effective_config,
            hr=hr,
            calendars=calendars,
            store=store,
            lock=lock,
            links=links,
            ephemeral=ephemeral,
        )
    )

    log.info(
        f"Finished time-off sync: accounts={summary.employees_processed}/"
        f"{summary.employees_total}, applied={summary.actions_applied}, "
        f"failed={summary.actions_failed}, completed={summary.completed}"
    )
    return summary


def unsync_time_offs(
    title: str,
    *,
    config: SyncConfig | None = None,
    hr: HrClient | None = None,
    calendars: CalendarClientFactory | None = None,
    store: KeyValueStore | None = None,
    lock: RunLock | None = None,
    ephemeral: bool = False,
) -> RunSummary:
    """Delete the absences behind synced events titled ``title`` and unlink the events."""

    effective_config = config or get_sync_config()
    log.info("Starting unsync of events titled %r", title)

    async def operation(coordinator: RunCoordinator) -> RunSummary:
        return await coordinator.unsync(title)

    summary = asyncio.run(
        _run_with_adapters(
            operation,
            config=effective_config,
            hr=hr,
            calendars=calendars,
            store=store,
            lock=lock,
            links=None,
            ephemeral=ephemeral,
        )
    )

    log.info(
        f"Finished unsync: accounts={summary.employees_processed}/{summary.employees_total}, "
        f"unsynced={summary.actions_applied}, completed={summary.completed}"
    )
    return summary


__all__ = ["RunSummary", "build_run_state", "sync_time_offs", "unsync_time_offs"]
