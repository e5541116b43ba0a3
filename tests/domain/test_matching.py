from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING

from tests.support.fakes import (
    JANE,
    JOHN,
    LONG_AGO,
    NOW,
    OUT_OF_OFFICE,
    SICK,
    VACATION,
    FixedClock,
    make_event,
    make_registry,
    make_time_off,
)
from timeoffsync.adapters.memory import InMemoryKeyValueStore
from timeoffsync.domain.failure_ledger import FailureLedger
from timeoffsync.domain.matching import (
    CancelEvent,
    CreateEventFromTimeOff,
    CreateTimeOffFromEvent,
    DeleteTimeOff,
    RecordMatcher,
    RecreateTimeOffFromEvent,
    UpdateEventFromTimeOff,
)
from timeoffsync.domain.model import EventStatus, EventType, TimeOffStatus
from timeoffsync.domain.wall_clock import WallClockValue

if TYPE_CHECKING:
    from collections.abc import Sequence

    from timeoffsync.domain.matching import ReconciliationAction
    from timeoffsync.domain.model import CalendarEventRecord, TimeOffRecord


def _matcher(blacklist: Sequence[str] = ()) -> RecordMatcher:
    return RecordMatcher(make_registry(blacklist), foreign_sync_markers=("cronofy.com",))


def _match(
    events: Sequence[CalendarEventRecord] = (),
    time_offs: Sequence[TimeOffRecord] = (),
    *,
    matcher: RecordMatcher | None = None,
    ledger: FailureLedger | None = None,
) -> list[ReconciliationAction]:
    return (matcher or _matcher()).match(
        employee=JANE, events=events, time_offs=time_offs, now=NOW, ledger=ledger
    )


def test_event_linked_to_missing_time_off_is_cancelled() -> None:
    event = make_event(time_off_id=42)

    assert _match([event]) == [CancelEvent(event)]


def test_keyword_event_creates_time_off() -> None:
    event = make_event(
        summary="Vacation in Italy", start=date(2024, 5, 13), end=date(2024, 5, 22)
    )

    actions = _match([event])

    assert len(actions) == 1
    action = actions[0]
    assert isinstance(action, CreateTimeOffFromEvent)
    assert action.existing is None
    assert action.draft.type_id == VACATION.id
    assert action.draft.start_at == WallClockValue(2024, 5, 13, 0)
    assert action.draft.end_at == WallClockValue(2024, 5, 21, 24)
    assert action.draft.comment == "Vacation in Italy"
    assert action.draft.status is TimeOffStatus.APPROVED


def test_unmirrored_time_off_creates_event() -> None:
    time_off = make_time_off(updated_at=NOW - timedelta(minutes=10))

    assert _match(time_offs=[time_off]) == [CreateEventFromTimeOff(time_off)]


def test_matched_pair_in_sync_needs_nothing() -> None:
    time_off = make_time_off()
    event = make_event(time_off_id=time_off.id)

    assert _match([event], [time_off]) == []


def test_matched_pair_with_newer_time_off_updates_event() -> None:
    time_off = make_time_off(updated_at=LONG_AGO + timedelta(hours=1))
    event = make_event(time_off_id=time_off.id, end=date(2024, 5, 20))

    assert _match([event], [time_off]) == [UpdateEventFromTimeOff(event, time_off)]


def test_matched_pair_with_equal_timestamps_updates_event() -> None:
    time_off = make_time_off()
    event = make_event(time_off_id=time_off.id, end=date(2024, 5, 20))

    assert _match([event], [time_off]) == [UpdateEventFromTimeOff(event, time_off)]


def test_matched_pair_with_newer_event_recreates_time_off() -> None:
    time_off = make_time_off()
    event = make_event(
        time_off_id=time_off.id,
        end=date(2024, 5, 20),
        updated_at=LONG_AGO + timedelta(hours=1),
    )

    actions = _match([event], [time_off])

    assert len(actions) == 1
    action = actions[0]
    assert isinstance(action, RecreateTimeOffFromEvent)
    assert action.time_off is time_off
    assert action.draft.end_at == WallClockValue(2024, 5, 19, 24)
    assert action.draft.status is time_off.status


def test_type_change_in_title_counts_as_difference() -> None:
    time_off = make_time_off()
    event = make_event(
        summary="Sick",
        time_off_id=time_off.id,
        updated_at=LONG_AGO + timedelta(hours=1),
    )

    actions = _match([event], [time_off])

    assert len(actions) == 1
    assert isinstance(actions[0], RecreateTimeOffFromEvent)
    assert actions[0].draft.type_id == SICK.id


def test_linked_event_without_keyword_keeps_previous_type() -> None:
    time_off = make_time_off(comment="Trip")
    event = make_event(summary="Trip ⇵", time_off_id=time_off.id)

    assert _match([event], [time_off]) == []


def test_cancelled_linked_event_deletes_time_off() -> None:
    time_off = make_time_off()
    event = make_event(time_off_id=time_off.id, status=EventStatus.CANCELLED)

    assert _match([event], [time_off]) == [DeleteTimeOff(event, time_off)]


def test_cancelled_unlinked_event_is_ignored() -> None:
    event = make_event(status=EventStatus.CANCELLED)

    assert _match([event]) == []


def test_matching_is_deterministic() -> None:
    time_offs = [make_time_off(1), make_time_off(2, start=date(2024, 6, 3), end=date(2024, 6, 4))]
    events = [
        make_event("a", time_off_id=99, start=date(2024, 9, 2), end=date(2024, 9, 3)),
        make_event("b", summary="Sick", start=date(2024, 7, 1), end=date(2024, 7, 2)),
    ]
    matcher = _matcher()

    first = _match(events, time_offs, matcher=matcher)
    second = _match(events, time_offs, matcher=matcher)

    assert first == second
    assert [type(action) for action in first] == [
        CancelEvent,
        CreateTimeOffFromEvent,
        CreateEventFromTimeOff,
        CreateEventFromTimeOff,
    ]


def test_records_in_dead_zone_are_skipped() -> None:
    fresh = NOW - timedelta(seconds=90)
    time_off = make_time_off(updated_at=fresh)
    events = [
        make_event("linked-missing", time_off_id=42, updated_at=fresh),
        make_event(
            "unlinked", start=date(2024, 8, 1), end=date(2024, 8, 2), updated_at=fresh
        ),
    ]

    assert _match(events, [time_off]) == []


def test_settling_pair_still_claims_its_time_off() -> None:
    time_off = make_time_off()
    event = make_event(
        time_off_id=time_off.id,
        end=date(2024, 5, 20),
        updated_at=NOW - timedelta(seconds=30),
    )

    assert _match([event], [time_off]) == []


def test_events_from_foreign_sync_tools_are_ignored() -> None:
    event = make_event(ical_uid="abc123@cronofy.com")

    assert _match([event]) == []


def test_events_created_by_someone_else_are_ignored() -> None:
    event = make_event(creator_email="boss@example.com")

    assert _match([event]) == []


def test_out_of_office_event_without_keyword_uses_out_type() -> None:
    event = make_event(summary="Dentist", event_type=EventType.OUT_OF_OFFICE)

    actions = _match([event])

    assert len(actions) == 1
    assert isinstance(actions[0], CreateTimeOffFromEvent)
    assert actions[0].draft.type_id == OUT_OF_OFFICE.id


def test_plain_event_without_keyword_is_ignored() -> None:
    assert _match([make_event(summary="Dentist")]) == []


def test_too_short_events_are_ignored() -> None:
    short_vacation = make_event(
        "short",
        start=datetime(2024, 5, 13, 10, tzinfo=UTC),
        end=datetime(2024, 5, 13, 11, tzinfo=UTC),
    )
    short_sickness = make_event(
        "sick",
        summary="Sick",
        start=datetime(2024, 5, 14, 9, tzinfo=UTC),
        end=datetime(2024, 5, 14, 13, tzinfo=UTC),
    )

    assert _match([short_vacation, short_sickness]) == []


def test_whole_day_type_rounds_a_long_timed_event_to_full_days() -> None:
    event = make_event(
        summary="Sick",
        start=datetime(2024, 5, 14, 9, tzinfo=UTC),
        end=datetime(2024, 5, 14, 16, tzinfo=UTC),
    )

    actions = _match([event])

    assert len(actions) == 1
    assert isinstance(actions[0], CreateTimeOffFromEvent)
    assert actions[0].draft.start_at == WallClockValue(2024, 5, 14, 0)
    assert actions[0].draft.end_at == WallClockValue(2024, 5, 14, 24)


def test_afternoon_event_becomes_half_day() -> None:
    event = make_event(
        start=datetime(2024, 5, 14, 13, tzinfo=UTC),
        end=datetime(2024, 5, 14, 18, tzinfo=UTC),
    )

    actions = _match([event])

    assert len(actions) == 1
    assert isinstance(actions[0], CreateTimeOffFromEvent)
    draft = actions[0].draft
    assert draft.start_at == WallClockValue(2024, 5, 14, 12)
    assert draft.end_at == WallClockValue(2024, 5, 14, 24)
    assert draft.half_day_flags() == (False, True)


def test_blacklisted_type_is_not_auto_approved() -> None:
    event = make_event(summary="Sick")

    actions = _match([event], matcher=_matcher(blacklist=["sick"]))

    assert len(actions) == 1
    assert isinstance(actions[0], CreateTimeOffFromEvent)
    assert actions[0].draft.status is TimeOffStatus.PENDING


def test_unlinked_event_adopts_identical_time_off() -> None:
    time_off = make_time_off()
    event = make_event()

    actions = _match([event], [time_off])

    assert len(actions) == 1
    action = actions[0]
    assert isinstance(action, CreateTimeOffFromEvent)
    assert action.existing is time_off


def test_settling_time_off_is_not_adopted_nor_mirrored() -> None:
    time_off = make_time_off(updated_at=NOW - timedelta(seconds=10))
    event = make_event()

    assert _match([event], [time_off]) == []


def test_dangling_link_is_cancelled_next_to_unrelated_time_off() -> None:
    time_off = make_time_off(start=date(2024, 9, 2), end=date(2024, 9, 3))
    event = make_event(time_off_id=42)

    assert _match([event], [time_off]) == [CancelEvent(event), CreateEventFromTimeOff(time_off)]


def test_other_employees_time_offs_are_ignored() -> None:
    time_off = make_time_off(employee=JOHN)

    assert _match(time_offs=[time_off]) == []


def test_failure_ledger_suppresses_until_record_changes() -> None:
    store = InMemoryKeyValueStore(clock=FixedClock())
    ledger = FailureLedger(store, JANE.email)
    event = make_event(time_off_id=42)
    ledger.record_failure(CancelEvent(event).ledger_key, event.updated_at)

    assert _match([event], ledger=ledger) == []

    edited = make_event(time_off_id=42, updated_at=LONG_AGO + timedelta(minutes=5))
    assert _match([edited], ledger=ledger) == [CancelEvent(edited)]
