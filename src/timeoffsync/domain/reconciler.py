"""One employee's reconciliation pass."""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from .actions import ReconciliationActions
from .failure_ledger import DEFAULT_FAILURE_TTL, FailureLedger
from .time_windows import utcnow

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime, timedelta

    from .actions import RecordLinkBuilder
    from .matching import RecordMatcher
    from .model import Employee, TimeOffRecord
    from .ports import CalendarClient, HrClient, KeyValueStore
    from .time_windows import Clock, FetchWindow

log = getLogger(__name__)


class PassState(StrEnum):
    FETCHING = "fetching"
    MATCHING = "matching"
    APPLYING = "applying"
    DONE = "done"
    ABORTED = "aborted"


@dataclass(slots=True)
class EmployeePassResult:
    email: str
    state: PassState = PassState.FETCHING
    planned: int = 0
    applied: int = 0
    failed: int = 0
    fail_limit_reached: bool = False

    @property
    def completed(self) -> bool:
        return self.state is PassState.DONE


class EmployeeReconciler:
    """Fetch, match and apply for a single employee until done or out of time."""

    def __init__(
        self,
        *,
        hr: HrClient,
        matcher: RecordMatcher,
        store: KeyValueStore,
        deadline: datetime,
        max_fail_count: int,
        calendar_id: str = "primary",
        failure_ttl: timedelta = DEFAULT_FAILURE_TTL,
        links: RecordLinkBuilder | None = None,
        clock: Clock = utcnow,
        rng: random.Random | None = None,
    ) -> None:
        self._hr = hr
        self._matcher = matcher
        self._store = store
        self._deadline = deadline
        self._max_fail_count = max_fail_count
        self._calendar_id = calendar_id
        self._failure_ttl = failure_ttl
        self._links = links
        self._clock = clock
        self._rng = rng or random.Random()

    def is_past_deadline(self) -> bool:
        return self._clock() >= self._deadline

    async def reconcile(
        self,
        employee: Employee,
        calendar: CalendarClient,
        window: FetchWindow,
        prefetched: Sequence[TimeOffRecord] | None = None,
    ) -> EmployeePassResult:
        result = EmployeePassResult(employee.email)
        if self.is_past_deadline():
            log.info("Out of time before syncing user %s", employee.email)
            result.state = PassState.ABORTED
            return result

        if prefetched is not None:
            time_offs = [record for record in prefetched if record.employee_id == employee.id]
        else:
            time_offs = await self._hr.list_time_offs(
                window.start_date, window.end_date, employee.id
            )
        events = await calendar.list_events(self._calendar_id, window.start, window.end)

        result.state = PassState.MATCHING
        ledger = FailureLedger(self._store, employee.email, ttl=self._failure_ttl, rng=self._rng)
        actions = self._matcher.match(
            employee=employee,
            events=events,
            time_offs=time_offs,
            now=self._clock(),
            ledger=ledger,
        )
        result.planned = len(actions)
        log.debug(
            "User %s: %s events, %s time-offs, %s actions",
            employee.email,
            len(events),
            len(time_offs),
            len(actions),
        )

        result.state = PassState.APPLYING
        applier = ReconciliationActions(
            hr=self._hr,
            calendar=calendar,
            employee=employee,
            registry=self._matcher.registry,
            zone=self._matcher.zone,
            calendar_id=self._calendar_id,
            links=self._links,
        )
        # order differs between runs
        self._rng.shuffle(actions)
        try:
            for action in actions:
                if self.is_past_deadline():
                    log.info("Out of time while syncing user %s", employee.email)
                    result.state = PassState.ABORTED
                    break
                if result.failed >= self._max_fail_count:
                    log.warning(
                        "Giving up on user %s after %s failed actions",
                        employee.email,
                        result.failed,
                    )
                    result.fail_limit_reached = True
                    break
                if await applier.apply(action):
                    result.applied += 1
                else:
                    result.failed += 1
                    ledger.record_failure(action.ledger_key, action.ledger_stamp)
        finally:
            ledger.save()

        if result.state is PassState.APPLYING:
            result.state = PassState.DONE
        return result


__all__ = ["EmployeePassResult", "EmployeeReconciler", "PassState"]
