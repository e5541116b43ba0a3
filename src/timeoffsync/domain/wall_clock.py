"""Local date + hour values with half-day semantics.

The HR system only knows whole and half days while the calendar speaks in
instants. Both are compared on a common ground: a local date plus an hour
marker, where ``24`` stands for the end of that day (the HR system stores an
inclusive end as the last day at 24:00 rather than the next day at 00:00).
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone

from .errors import InvalidTimestamp

MIN_OFFSET = timedelta(hours=-12)
MAX_OFFSET = timedelta(hours=14)
NOON = 12
END_OF_DAY = 24


@dataclass(frozen=True, slots=True, eq=False)
class WallClockValue:
    """Immutable local date and hour; the offset only matters for serialization."""

    year: int
    month: int
    day: int
    hour: int = 0
    offset: timedelta = field(default=timedelta(0))

    def __post_init__(self) -> None:
        if not 1 <= self.year <= 9999 or not 1 <= self.month <= 12:
            raise InvalidTimestamp(f"Invalid date {self.year}-{self.month}")
        if not 1 <= self.day <= calendar.monthrange(self.year, self.month)[1]:
            raise InvalidTimestamp(f"Invalid day {self.year}-{self.month}-{self.day}")
        if not 0 <= self.hour <= END_OF_DAY:
            raise InvalidTimestamp(f"Invalid hour {self.hour}")
        if not MIN_OFFSET <= self.offset <= MAX_OFFSET:
            raise InvalidTimestamp(f"Invalid UTC offset {self.offset}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WallClockValue):
            return NotImplemented
        return (self.year, self.month, self.day, self.hour) == (
            other.year,
            other.month,
            other.day,
            other.hour,
        )

    def __hash__(self) -> int:
        return hash((self.year, self.month, self.day, self.hour))

    def __str__(self) -> str:
        return f"{self.to_iso_date()}T{self.hour:02d}:00:00"

    @classmethod
    def from_text(
        cls,
        text: str | None,
        hour_override: int | None = None,
        offset_override: timedelta | None = None,
    ) -> WallClockValue:
        """Parse ``2016-05-13`` or ``2018-09-24T20:15:13.123+01:00`` (lossy).

        Minutes and below are discarded. An explicit ``hour_override`` wins over
        the hour in the text, an ``offset_override`` over the offset in the text.
        """

        if not text or not text.strip():
            raise InvalidTimestamp("Cannot convert an empty timestamp")

        stripped = text.strip()
        date_part, _, time_part = stripped.replace(" ", "T", 1).partition("T")
        try:
            year, month, day = (int(component) for component in date_part.split("-"))
            hour = hour_override if hour_override is not None else _parse_hour(time_part)
            offset = offset_override if offset_override is not None else _parse_offset(time_part)
        except ValueError as exc:
            raise InvalidTimestamp(f"Invalid timestamp {text!r}") from exc

        return cls(year, month, day, hour, offset)

    @classmethod
    def from_date(cls, value: date, hour: int = 0) -> WallClockValue:
        return cls(value.year, value.month, value.day, hour)

    def to_iso_date(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    def to_text(self) -> str:
        """Render as ISO-8601 with the associated offset (hour 24 is kept verbatim)."""

        minutes = round(self.offset.total_seconds() / 60)
        if minutes == 0:
            return f"{self}Z"
        sign = "-" if minutes < 0 else "+"
        hours, rest = divmod(abs(minutes), 60)
        return f"{self}{sign}{hours:02d}:{rest:02d}"

    def with_offset(self, offset: timedelta) -> WallClockValue:
        return replace(self, offset=offset)

    def as_date(self) -> date:
        return date(self.year, self.month, self.day)

    def as_naive_datetime(self) -> datetime:
        return datetime(self.year, self.month, self.day) + timedelta(hours=self.hour)

    def as_datetime(self) -> datetime:
        return self.as_naive_datetime().replace(tzinfo=timezone(self.offset))

    def shift_hours(self, hours: int) -> WallClockValue:
        """Return a new value moved by whole hours, following calendar rules."""

        shifted = self.as_naive_datetime() + timedelta(hours=hours)
        return WallClockValue(shifted.year, shifted.month, shifted.day, shifted.hour, self.offset)

    def switch_midnight_to_hour24(self) -> WallClockValue:
        """Turn 00:00 into 24:00 of the previous day, the HR system's end-of-range form."""

        if self.hour != 0:
            return self
        return replace(self.shift_hours(-1), hour=END_OF_DAY)

    def switch_hour24_to_midnight(self) -> WallClockValue:
        """Turn 24:00 into 00:00 of the next day, the calendar's end-of-range form."""

        if self.hour != END_OF_DAY:
            return self
        return self.shift_hours(0)

    def normalize_for_role(self, *, is_end: bool, half_days_allowed: bool) -> WallClockValue:
        """Collapse onto 0/12/24 for use as a range start or end.

        Ambiguous hours round outwards so the absence covers more of the day,
        never less.
        """

        if is_end:
            value = self.switch_midnight_to_hour24()
            hour = END_OF_DAY if value.hour > NOON or not half_days_allowed else NOON
        else:
            value = self
            hour = 0 if value.hour < NOON or not half_days_allowed else NOON
        return replace(value, hour=hour)

    def is_same_day(self, other: WallClockValue) -> bool:
        return (self.year, self.month, self.day) == (other.year, other.month, other.day)

    def is_half_day(self) -> bool:
        return self.hour == NOON

    def is_first_half_day(self) -> bool:
        return self.hour < NOON


def _parse_hour(time_part: str) -> int:
    if not time_part:
        return 0
    return int(time_part[:2])


def _parse_offset(time_part: str) -> timedelta:
    if not time_part or time_part.endswith("Z"):
        return timedelta(0)
    sign_index = max(time_part.rfind("+"), time_part.rfind("-"))
    if sign_index <= 0:
        return timedelta(0)
    digits = time_part[sign_index + 1 :].replace(":", "")
    hours = int(digits[:2])
    minutes = int(digits[2:4] or 0)
    magnitude = timedelta(hours=hours, minutes=minutes)
    return -magnitude if time_part[sign_index] == "-" else magnitude
