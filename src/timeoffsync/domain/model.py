"""Records exchanged with the HR system and the calendar."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING

from .wall_clock import WallClockValue

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo

SYNC_MARKER = "⇵"
LEGACY_SYNC_MARKER = " [synced]"
_TRAILING_MARKER = re.compile(rf" ?{SYNC_MARKER}$")


class TimeOffStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class EventStatus(StrEnum):
    CONFIRMED = "confirmed"
    TENTATIVE = "tentative"
    CANCELLED = "cancelled"


class EventType(StrEnum):
    DEFAULT = "default"
    OUT_OF_OFFICE = "outOfOffice"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class Employee:
    id: int
    email: str
    active: bool = True
    first_name: str | None = None
    last_name: str | None = None


@dataclass(frozen=True, slots=True)
class TimeOffTypeDefinition:
    id: int
    name: str
    half_days_allowed: bool = False

    @property
    def keyword(self) -> str:
        """The first word of the name, used to recognise the type in free text."""

        return extract_keyword(self.name)


def extract_keyword(type_name: str | None) -> str:
    words = (type_name or "").split()
    return words[0].lower() if words else ""


@dataclass(frozen=True, slots=True, kw_only=True)
class TimeOffRecord:
    """Projection of an HR absence; the HR system stays the source of truth."""

    id: int
    employee_id: int
    type_id: int
    type_name: str
    start_at: WallClockValue
    end_at: WallClockValue
    half_day_start: bool = False
    half_day_end: bool = False
    comment: str = ""
    status: TimeOffStatus = TimeOffStatus.PENDING
    updated_at: datetime
    email: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class TimeOffDraft:
    """What an HR absence should look like, derived from a calendar event."""

    employee_id: int
    type_id: int
    type_name: str
    start_at: WallClockValue
    end_at: WallClockValue
    comment: str
    status: TimeOffStatus
    updated_at: datetime

    @property
    def skip_approval(self) -> bool:
        return self.status is TimeOffStatus.APPROVED

    def half_day_flags(self) -> tuple[bool, bool]:
        """Derive the HR ``half_day_start``/``half_day_end`` flags.

        Multi-day ranges flag each boundary that sits at noon. Single-day
        ranges only know "morning" (ends at noon) or "afternoon" (starts at
        noon), so the flags are derived from the opposite boundary. The two
        branches disagree on a noon-to-noon single day, which is reported as
        an afternoon.
        """

        if not self.start_at.is_same_day(self.end_at):
            return self.start_at.is_half_day(), self.end_at.is_half_day()
        half_day_start = self.end_at.is_half_day() and self.start_at.is_first_half_day()
        half_day_end = self.start_at.is_half_day() and not self.end_at.is_first_half_day()
        return half_day_start, half_day_end

    def matches(self, record: TimeOffRecord) -> bool:
        return (
            self.start_at == record.start_at
            and self.end_at == record.end_at
            and self.type_id == record.type_id
        )


@dataclass(frozen=True, slots=True)
class EventTime:
    """Either an all-day date or a ``date_time`` instant, as the calendar sends it."""

    all_day_date: date | None = None
    date_time: datetime | None = None
    time_zone: str | None = None

    def __post_init__(self) -> None:
        if (self.all_day_date is None) == (self.date_time is None):
            raise ValueError("EventTime needs exactly one of all_day_date or date_time")

    @property
    def is_all_day(self) -> bool:
        return self.all_day_date is not None

    def to_wall_clock(self, default_zone: ZoneInfo) -> WallClockValue:
        if self.date_time is not None:
            offset = self.date_time.utcoffset()
            local = self.date_time
            if offset is None:
                offset = default_zone.utcoffset(self.date_time) or timedelta(0)
            return WallClockValue(local.year, local.month, local.day, local.hour, offset)
        day = self.all_day_date
        assert day is not None
        midnight = datetime(day.year, day.month, day.day)
        return WallClockValue.from_date(day).with_offset(
            default_zone.utcoffset(midnight) or timedelta(0)
        )

    def to_datetime(self, default_zone: ZoneInfo) -> datetime:
        if self.date_time is not None:
            if self.date_time.tzinfo is None:
                return self.date_time.replace(tzinfo=default_zone)
            return self.date_time
        day = self.all_day_date
        assert day is not None
        return datetime(day.year, day.month, day.day, tzinfo=default_zone)


@dataclass(frozen=True, slots=True, kw_only=True)
class CalendarEventRecord:
    id: str
    status: EventStatus
    updated_at: datetime
    start: EventTime
    end: EventTime
    summary: str = ""
    description: str | None = None
    event_type: EventType = EventType.DEFAULT
    creator_email: str | None = None
    ical_uid: str = ""
    time_off_id: int | None = None

    @property
    def is_cancelled(self) -> bool:
        return self.status is EventStatus.CANCELLED

    @property
    def is_out_of_office(self) -> bool:
        return self.event_type is EventType.OUT_OF_OFFICE

    def duration(self, default_zone: ZoneInfo) -> timedelta:
        return self.end.to_datetime(default_zone) - self.start.to_datetime(default_zone)


@dataclass(frozen=True, slots=True, kw_only=True)
class NewCalendarEvent:
    summary: str
    start: WallClockValue
    end: WallClockValue
    time_off_id: int
    description: str | None = None
    ical_uid: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class EventChanges:
    """Partial update of a calendar event; ``None`` leaves a field untouched."""

    start: WallClockValue | None = None
    end: WallClockValue | None = None
    status: EventStatus | None = None
    summary: str | None = None
    description: str | None = None
    private_properties: dict[str, str] = field(default_factory=dict[str, str])


def strip_sync_markers(summary: str) -> str:
    return _TRAILING_MARKER.sub("", summary.replace(LEGACY_SYNC_MARKER, ""))


def with_sync_marker(summary: str) -> str:
    if _TRAILING_MARKER.search(summary):
        return summary
    return f"{summary.replace(LEGACY_SYNC_MARKER, '')} {SYNC_MARKER}"
