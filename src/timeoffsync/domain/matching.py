"""Pair calendar events with HR absences and decide what to change.

Matching is a pure function of its inputs: given the same events, absences,
``now`` and failure ledger it yields the same actions in the same order.
Events are visited first (linked ones before unlinked ones), then whatever
absences no event claimed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, timedelta
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, TypeAlias
from zoneinfo import ZoneInfo

from .errors import InvalidTimestamp
from .failure_ledger import LedgerKey, RecordKind
from .model import TimeOffDraft, TimeOffStatus, strip_sync_markers
from .time_off_types import TimeOffTypeRegistry

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime

    from .failure_ledger import FailureLedger
    from .model import CalendarEventRecord, Employee, TimeOffRecord

log = getLogger(__name__)

DEFAULT_DEAD_ZONE = timedelta(seconds=120)
OUT_OF_OFFICE_KEYWORD = "out"


class ActionKind(StrEnum):
    DELETE_TIME_OFF = "delete-time-off"
    CANCEL_EVENT = "cancel-event"
    CREATE_EVENT_FROM_TIME_OFF = "create-event-from-time-off"
    CREATE_TIME_OFF_FROM_EVENT = "create-time-off-from-event"
    UPDATE_EVENT_FROM_TIME_OFF = "update-event-from-time-off"
    RECREATE_TIME_OFF_FROM_EVENT = "recreate-time-off-from-event"


@dataclass(frozen=True, slots=True)
class DeleteTimeOff:
    """The event was cancelled; drop its absence."""

    event: CalendarEventRecord
    time_off: TimeOffRecord

    kind = ActionKind.DELETE_TIME_OFF

    @property
    def ledger_key(self) -> LedgerKey:
        return LedgerKey(RecordKind.EVENT, self.event.id)

    @property
    def ledger_stamp(self) -> datetime:
        return max(self.event.updated_at, self.time_off.updated_at)


@dataclass(frozen=True, slots=True)
class CancelEvent:
    """The event points at an absence that no longer exists."""

    event: CalendarEventRecord

    kind = ActionKind.CANCEL_EVENT

    @property
    def ledger_key(self) -> LedgerKey:
        return LedgerKey(RecordKind.EVENT, self.event.id)

    @property
    def ledger_stamp(self) -> datetime:
        return self.event.updated_at


@dataclass(frozen=True, slots=True)
class CreateEventFromTimeOff:
    time_off: TimeOffRecord

    kind = ActionKind.CREATE_EVENT_FROM_TIME_OFF

    @property
    def ledger_key(self) -> LedgerKey:
        return LedgerKey(RecordKind.TIME_OFF, str(self.time_off.id))

    @property
    def ledger_stamp(self) -> datetime:
        return self.time_off.updated_at


@dataclass(frozen=True, slots=True)
class CreateTimeOffFromEvent:
    """Create the absence (or adopt ``existing``) and link it to the event."""

    event: CalendarEventRecord
    draft: TimeOffDraft
    existing: TimeOffRecord | None = None

    kind = ActionKind.CREATE_TIME_OFF_FROM_EVENT

    @property
    def ledger_key(self) -> LedgerKey:
        return LedgerKey(RecordKind.EVENT, self.event.id)

    @property
    def ledger_stamp(self) -> datetime:
        return self.event.updated_at


@dataclass(frozen=True, slots=True)
class UpdateEventFromTimeOff:
    event: CalendarEventRecord
    time_off: TimeOffRecord

    kind = ActionKind.UPDATE_EVENT_FROM_TIME_OFF

    @property
    def ledger_key(self) -> LedgerKey:
        return LedgerKey(RecordKind.EVENT, self.event.id)

    @property
    def ledger_stamp(self) -> datetime:
        return max(self.event.updated_at, self.time_off.updated_at)


@dataclass(frozen=True, slots=True)
class RecreateTimeOffFromEvent:
    """Absences cannot be edited in place: replace ``time_off`` by ``draft``."""

    event: CalendarEventRecord
    time_off: TimeOffRecord
    draft: TimeOffDraft

    kind = ActionKind.RECREATE_TIME_OFF_FROM_EVENT

    @property
    def ledger_key(self) -> LedgerKey:
        return LedgerKey(RecordKind.EVENT, self.event.id)

    @property
    def ledger_stamp(self) -> datetime:
        return max(self.event.updated_at, self.time_off.updated_at)


ReconciliationAction: TypeAlias = (
    DeleteTimeOff
    | CancelEvent
    | CreateEventFromTimeOff
    | CreateTimeOffFromEvent
    | UpdateEventFromTimeOff
    | RecreateTimeOffFromEvent
)


class RecordMatcher:
    def __init__(
        self,
        registry: TimeOffTypeRegistry,
        *,
        dead_zone: timedelta = DEFAULT_DEAD_ZONE,
        zone: ZoneInfo | None = None,
        foreign_sync_markers: Iterable[str] = (),
    ) -> None:
        self._registry = registry
        self._dead_zone = dead_zone
        self._zone = zone or ZoneInfo("UTC")
        self._foreign_sync_markers = tuple(marker for marker in foreign_sync_markers if marker)

    @property
    def registry(self) -> TimeOffTypeRegistry:
        return self._registry

    @property
    def zone(self) -> ZoneInfo:
        return self._zone

    def match(
        self,
        *,
        employee: Employee,
        events: Sequence[CalendarEventRecord],
        time_offs: Sequence[TimeOffRecord],
        now: datetime,
        ledger: FailureLedger | None = None,
    ) -> list[ReconciliationAction]:
        cutoff = now.astimezone(UTC) - self._dead_zone
        own = {record.id: record for record in time_offs if record.employee_id == employee.id}
        consumed: set[int] = set()
        actions: list[ReconciliationAction] = []

        def is_settling(*stamps: datetime) -> bool:
            return any(stamp.astimezone(UTC) > cutoff for stamp in stamps)

        def is_suppressed(action: ReconciliationAction) -> bool:
            if ledger is None or not ledger.is_suppressed(action.ledger_key, action.ledger_stamp):
                return False
            log.debug("Skipping %s for %s after an earlier failure", action.kind, action.ledger_key)
            return True

        def take(action: ReconciliationAction) -> None:
            if not is_suppressed(action):
                actions.append(action)

        unresolved: list[CalendarEventRecord] = []
        for event in events:
            time_off = own.get(event.time_off_id) if event.time_off_id is not None else None
            if time_off is None:
                unresolved.append(event)
                continue

            # Claim the pair before the dead-zone check so the absence is not
            # mirrored a second time while the pair is settling.
            consumed.add(time_off.id)
            if is_settling(event.updated_at, time_off.updated_at):
                continue
            if event.is_cancelled:
                take(DeleteTimeOff(event, time_off))
                continue

            draft = self.convert_event(employee, event, time_off)
            if draft is None or draft.matches(time_off):
                continue
            if time_off.updated_at >= event.updated_at:
                take(UpdateEventFromTimeOff(event, time_off))
            else:
                take(RecreateTimeOffFromEvent(event, time_off, draft))

        for event in unresolved:
            if event.is_cancelled or is_settling(event.updated_at):
                continue
            linked = event.time_off_id is not None
            if not linked and self.is_foreign_sync(event):
                continue

            draft = self.convert_event(employee, event, None)
            adopted = self._find_adoptable(draft, own, consumed) if draft is not None else None
            if adopted is not None and draft is not None:
                consumed.add(adopted.id)
                if not is_settling(adopted.updated_at):
                    take(CreateTimeOffFromEvent(event, draft, adopted))
            elif linked:
                take(CancelEvent(event))
            elif draft is not None and self._is_long_enough(event, draft):
                take(CreateTimeOffFromEvent(event, draft))

        for time_off in own.values():
            if time_off.id in consumed or is_settling(time_off.updated_at):
                continue
            take(CreateEventFromTimeOff(time_off))

        return actions

    def is_foreign_sync(self, event: CalendarEventRecord) -> bool:
        """True if another synchronisation tool owns this event."""

        return any(marker in event.ical_uid for marker in self._foreign_sync_markers)

    def convert_event(
        self,
        employee: Employee,
        event: CalendarEventRecord,
        existing: TimeOffRecord | None,
    ) -> TimeOffDraft | None:
        """Describe the absence an event stands for, or ``None`` if it stands for none."""

        if event.creator_email and event.creator_email.lower() != employee.email.lower():
            return None

        time_off_type = self._registry.match_by_keyword(event.summary)
        if time_off_type is None and existing is not None:
            time_off_type = self._registry.find_by_id(existing.type_id)
        if time_off_type is None and event.is_out_of_office:
            time_off_type = self._registry.match_by_keyword(OUT_OF_OFFICE_KEYWORD)
        if time_off_type is None:
            return None

        half_days_allowed = time_off_type.half_days_allowed
        try:
            start_at = event.start.to_wall_clock(self._zone).normalize_for_role(
                is_end=False, half_days_allowed=half_days_allowed
            )
            end_at = event.end.to_wall_clock(self._zone).normalize_for_role(
                is_end=True, half_days_allowed=half_days_allowed
            )
        except InvalidTimestamp as exc:
            log.warning("Ignoring event %s with unusable times: %s", event.id, exc)
            return None

        if existing is not None:
            status = existing.status
        elif self._registry.is_approval_skippable(time_off_type.id):
            status = TimeOffStatus.APPROVED
        else:
            status = TimeOffStatus.PENDING

        return TimeOffDraft(
            employee_id=employee.id,
            type_id=time_off_type.id,
            type_name=time_off_type.name,
            start_at=start_at,
            end_at=end_at,
            comment=strip_sync_markers(event.summary),
            status=status,
            updated_at=event.updated_at,
        )

    def _is_long_enough(self, event: CalendarEventRecord, draft: TimeOffDraft) -> bool:
        time_off_type = self._registry.find_by_id(draft.type_id)
        if time_off_type is None:
            return False
        if event.duration(self._zone) < TimeOffTypeRegistry.minimum_duration(time_off_type):
            log.debug("Ignoring event %s, too short for %s", event.id, time_off_type.name)
            return False
        return True

    @staticmethod
    def _find_adoptable(
        draft: TimeOffDraft,
        own: dict[int, TimeOffRecord],
        consumed: set[int],
    ) -> TimeOffRecord | None:
        for record in own.values():
            if record.id not in consumed and draft.matches(record):
                return record
        return None


__all__ = [
    "DEFAULT_DEAD_ZONE",
    "ActionKind",
    "CancelEvent",
    "CreateEventFromTimeOff",
    "CreateTimeOffFromEvent",
    "DeleteTimeOff",
    "ReconciliationAction",
    "RecordMatcher",
    "RecreateTimeOffFromEvent",
    "UpdateEventFromTimeOff",
]
