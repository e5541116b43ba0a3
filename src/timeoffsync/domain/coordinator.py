"""Run-level orchestration: lock, window, population and the employee loop."""

from __future__ import annotations

import random
from contextlib import contextmanager
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from .actions import TIME_OFF_ID_PROPERTY
from .errors import ConcurrentRunError, RequestFailed
from .matching import RecordMatcher
from .model import EventChanges
from .reconciler import EmployeeReconciler
from .time_off_types import TimeOffTypeRegistry
from .time_windows import FetchWindow, utcnow

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import datetime

    from timeoffsync.config.sync import SyncConfig

    from .actions import RecordLinkBuilder
    from .model import Employee
    from .ports import CalendarClientFactory, HrClient, KeyValueStore, RunLock
    from .reconciler import EmployeePassResult
    from .time_windows import Clock

log = getLogger(__name__)


@contextmanager
def hold_run_lock(lock: RunLock, timeout: float) -> Iterator[None]:
    if not lock.try_acquire(timeout):
        raise ConcurrentRunError(
            "Failed to acquire the run lock; only one run may be active at any given time"
        )
    try:
        yield
    finally:
        lock.release()


@dataclass(slots=True)
class RunSummary:
    employees_total: int = 0
    employees_processed: int = 0
    actions_planned: int = 0
    actions_applied: int = 0
    actions_failed: int = 0
    errors: int = 0
    completed: bool = True

    def add(self, result: EmployeePassResult) -> None:
        self.actions_planned += result.planned
        self.actions_applied += result.applied
        self.actions_failed += result.failed


class RunCoordinator:
    """Reconcile every eligible employee within one time-boxed run."""

    def __init__(
        self,
        *,
        config: SyncConfig,
        hr: HrClient,
        calendars: CalendarClientFactory,
        store: KeyValueStore,
        lock: RunLock,
        links: RecordLinkBuilder | None = None,
        clock: Clock = utcnow,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config
        self._hr = hr
        self._calendars = calendars
        self._store = store
        self._lock = lock
        self._links = links
        self._clock = clock
        self._rng = rng or random.Random()

    async def run(self) -> RunSummary:
        """Reconcile all employees; re-raise the first per-employee error at the end."""

        config = self._config
        summary = RunSummary()
        first_error: Exception | None = None

        with hold_run_lock(self._lock, config.lock_timeout_seconds):
            epoch = self._clock()
            deadline = epoch + config.max_runtime
            window = FetchWindow.around(
                epoch,
                lookback_days=config.lookback_days,
                lookahead_days=config.lookahead_days,
            )
            registry = TimeOffTypeRegistry(
                await self._hr.list_absence_types(),
                config.skip_approval_blacklist,
            )
            employees = await self._load_employees()
            summary.employees_total = len(employees)
            prefetched = None
            if config.prefer_bulk_requests:
                prefetched = await self._hr.list_time_offs(window.start_date, window.end_date)

            log.info(
                "Syncing time-offs in %s for %s accounts (%s absence types)",
                window,
                len(employees),
                len(registry),
            )
            matcher = RecordMatcher(
                registry,
                dead_zone=config.dead_zone,
                zone=ZoneInfo(config.default_time_zone),
                foreign_sync_markers=config.foreign_sync_markers,
            )
            reconciler = EmployeeReconciler(
                hr=self._hr,
                matcher=matcher,
                store=self._store,
                deadline=deadline,
                max_fail_count=config.max_fail_count,
                calendar_id=config.calendar_id,
                failure_ttl=config.failure_ttl,
                links=self._links,
                clock=self._clock,
                rng=self._rng,
            )

            for employee in employees:
                try:
                    calendar = await self._calendars.for_user(employee.email)
                    result = await reconciler.reconcile(employee, calendar, window, prefetched)
                except Exception as exc:
                    log.exception("Failed to sync time-offs of user %s", employee.email)
                    summary.errors += 1
                    summary.employees_processed += 1
                    if first_error is None:
                        first_error = exc
                    continue

                summary.add(result)
                if not result.completed:
                    summary.completed = False
                    break
                summary.employees_processed += 1

            log.info(
                "Synced %s of %s accounts: %s actions applied, %s failed",
                summary.employees_processed,
                summary.employees_total,
                summary.actions_applied,
                summary.actions_failed,
            )

        if first_error is not None:
            raise first_error
        return summary

    async def unsync(self, title: str) -> RunSummary:
        """Detach every synced event whose title contains ``title``.

        The linked absences are deleted and the events lose their link; the
        events themselves stay in the calendar.
        """

        if not title:
            raise ValueError("A title to unsync is required")

        config = self._config
        summary = RunSummary()
        first_error: Exception | None = None

        with hold_run_lock(self._lock, config.lock_timeout_seconds):
            epoch = self._clock()
            deadline = epoch + config.max_runtime
            window = FetchWindow.around(
                epoch,
                lookback_days=config.lookback_days,
                lookahead_days=config.lookahead_days,
            )
            employees = await self._load_employees()
            summary.employees_total = len(employees)
            log.info("Unsyncing events titled %r in %s", title, window)

            for employee in employees:
                if self._clock() >= deadline:
                    summary.completed = False
                    break
                try:
                    done = await self._unsync_employee(employee, title, window, deadline, summary)
                except Exception as exc:
                    log.exception("Failed to unsync time-offs of user %s", employee.email)
                    summary.errors += 1
                    if first_error is None:
                        first_error = exc
                    done = True
                summary.employees_processed += 1
                if not done:
                    summary.completed = False
                    break

        if first_error is not None:
            raise first_error
        return summary

    async def _unsync_employee(
        self,
        employee: Employee,
        title: str,
        window: FetchWindow,
        deadline: datetime,
        summary: RunSummary,
    ) -> bool:
        calendar = await self._calendars.for_user(employee.email)
        events = await calendar.list_events(self._config.calendar_id, window.start, window.end)
        self._rng.shuffle(events)
        for event in events:
            if event.time_off_id is None or event.is_cancelled or title not in event.summary:
                continue
            if self._clock() >= deadline:
                return False
            summary.actions_planned += 1
            try:
                await self._hr.delete_time_off(event.time_off_id)
            except RequestFailed as exc:
                log.warning(
                    "Failed to delete time-off %s of user %s: %s",
                    event.time_off_id,
                    employee.email,
                    exc,
                )
            await calendar.update_event(
                self._config.calendar_id,
                event.id,
                EventChanges(private_properties={TIME_OFF_ID_PROPERTY: ""}),
            )
            summary.actions_applied += 1
            log.info("Unsynced event %s (%r) of user %s", event.id, event.summary, employee.email)
        return True

    async def _load_employees(self) -> list[Employee]:
        employees = [
            employee
            for employee in await self._hr.list_employees()
            if employee.active and self._config.is_email_allowed(employee.email)
        ]
        # order differs between runs
        self._rng.shuffle(employees)
        return employees


__all__ = ["RunCoordinator", "RunSummary", "hold_run_lock"]
