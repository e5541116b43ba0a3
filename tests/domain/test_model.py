from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from tests.support.fakes import NOW
from timeoffsync.domain.model import (
    EventTime,
    TimeOffDraft,
    TimeOffStatus,
    strip_sync_markers,
    with_sync_marker,
)
from timeoffsync.domain.wall_clock import WallClockValue


def _draft(start: WallClockValue, end: WallClockValue) -> TimeOffDraft:
    return TimeOffDraft(
        employee_id=1,
        type_id=1,
        type_name="Vacation",
        start_at=start,
        end_at=end,
        comment="",
        status=TimeOffStatus.APPROVED,
        updated_at=NOW,
    )


@pytest.mark.parametrize(
    ("start_hour", "end_hour", "expected"),
    [
        (0, 24, (False, False)),
        (0, 12, (True, False)),
        (12, 24, (False, True)),
        # noon to noon on one day reads as an afternoon
        (12, 12, (False, True)),
    ],
)
def test_half_day_flags_single_day(
    start_hour: int, end_hour: int, expected: tuple[bool, bool]
) -> None:
    draft = _draft(WallClockValue(2024, 5, 13, start_hour), WallClockValue(2024, 5, 13, end_hour))

    assert draft.half_day_flags() == expected


def test_half_day_flags_multi_day_follow_boundaries() -> None:
    draft = _draft(WallClockValue(2024, 5, 13, 12), WallClockValue(2024, 5, 15, 12))

    assert draft.half_day_flags() == (True, True)


def test_sync_marker_is_added_once_and_replaces_legacy_marker() -> None:
    assert with_sync_marker("Vacation") == "Vacation ⇵"
    assert with_sync_marker("Vacation ⇵") == "Vacation ⇵"
    assert with_sync_marker("Vacation [synced]") == "Vacation ⇵"


def test_strip_sync_markers() -> None:
    assert strip_sync_markers("Vacation ⇵") == "Vacation"
    assert strip_sync_markers("Vacation [synced]") == "Vacation"
    assert strip_sync_markers("Vacation") == "Vacation"


def test_event_time_needs_exactly_one_value() -> None:
    with pytest.raises(ValueError, match="exactly one"):
        EventTime()
    with pytest.raises(ValueError, match="exactly one"):
        EventTime(all_day_date=date(2024, 5, 1), date_time=NOW)


def test_all_day_event_time_uses_zone_offset() -> None:
    zone = ZoneInfo("Europe/Berlin")

    value = EventTime(all_day_date=date(2024, 7, 1)).to_wall_clock(zone)

    assert value == WallClockValue(2024, 7, 1, 0)
    assert value.offset == timedelta(hours=2)


def test_timed_event_time_keeps_its_own_offset() -> None:
    moment = datetime(2024, 7, 1, 9, 30, tzinfo=UTC)

    value = EventTime(date_time=moment).to_wall_clock(ZoneInfo("Europe/Berlin"))

    assert value == WallClockValue(2024, 7, 1, 9)
    assert value.offset == timedelta(0)
