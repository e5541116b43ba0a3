from __future__ import annotations

import asyncio
from datetime import date, timedelta
from zoneinfo import ZoneInfo

from tests.support.fakes import (
    JANE,
    NOW,
    VACATION,
    FakeCalendarClient,
    FakeHrClient,
    make_event,
    make_registry,
    make_time_off,
)
from timeoffsync.adapters.personio import PersonioLinkBuilder
from timeoffsync.domain.actions import ReconciliationActions, attach_record_link
from timeoffsync.domain.matching import (
    CancelEvent,
    CreateEventFromTimeOff,
    CreateTimeOffFromEvent,
    DeleteTimeOff,
    RecordMatcher,
    RecreateTimeOffFromEvent,
    UpdateEventFromTimeOff,
)
from timeoffsync.domain.model import EventStatus
from timeoffsync.domain.wall_clock import WallClockValue

UTC_ZONE = ZoneInfo("UTC")


def _actions(
    hr: FakeHrClient,
    calendar: FakeCalendarClient,
    *,
    zone: ZoneInfo = UTC_ZONE,
    links: PersonioLinkBuilder | None = None,
) -> ReconciliationActions:
    return ReconciliationActions(
        hr=hr,
        calendar=calendar,
        employee=JANE,
        registry=make_registry(),
        zone=zone,
        links=links,
    )


def test_attach_record_link_to_empty_description() -> None:
    assert attach_record_link(None, "https://x/1", "Show") == '<a href="https://x/1">Show</a>'


def test_attach_record_link_appends_to_existing_text() -> None:
    result = attach_record_link("Beach", "https://x/1?a=1&b=2", "Show")

    assert result == 'Beach<br/><a href="https://x/1?a=1&amp;b=2">Show</a>'


def test_attach_record_link_replaces_link_with_same_label() -> None:
    description = 'Beach<br/><a href="https://x/old">Show</a>'

    result = attach_record_link(description, "https://x/new", "Show")

    assert result == 'Beach<br/><a href="https://x/new">Show</a>'


def test_create_event_from_time_off() -> None:
    hr = FakeHrClient()
    calendar = FakeCalendarClient()
    links = PersonioLinkBuilder("https://acme.personio.de/")
    applier = _actions(hr, calendar, zone=ZoneInfo("Europe/Berlin"), links=links)

    assert asyncio.run(applier.apply(CreateEventFromTimeOff(make_time_off())))

    inserted = calendar.inserted[0]
    assert inserted.summary == "Vacation ⇵"
    assert inserted.start == WallClockValue(2024, 5, 13, 0)
    assert inserted.start.offset == timedelta(hours=2)
    assert inserted.end == WallClockValue(2024, 5, 18, 0)
    assert inserted.time_off_id == 100
    assert inserted.description == (
        '<a href="https://acme.personio.de/time-off/employee/1/monthly'
        '?absenceTypeId=1&amp;month=5&amp;year=2024">Show in Personio</a>'
    )
    assert inserted.ical_uid is not None
    assert inserted.ical_uid.endswith("-p-100-timeoffsync@example.com")


def test_event_summary_names_type_when_comment_does_not() -> None:
    calendar = FakeCalendarClient()
    applier = _actions(FakeHrClient(), calendar)

    asyncio.run(applier.apply(CreateEventFromTimeOff(make_time_off(1, comment="Italy trip"))))
    asyncio.run(applier.apply(CreateEventFromTimeOff(make_time_off(2, comment="Vacation Rome"))))

    assert [event.summary for event in calendar.inserted] == [
        "Vacation: Italy trip ⇵",
        "Vacation Rome ⇵",
    ]


def test_create_time_off_links_event() -> None:
    event = make_event()
    hr = FakeHrClient()
    calendar = FakeCalendarClient(events=[event])
    [action] = RecordMatcher(make_registry()).match(
        employee=JANE, events=[event], time_offs=[], now=NOW
    )
    assert isinstance(action, CreateTimeOffFromEvent)

    assert asyncio.run(_actions(hr, calendar).apply(action))

    assert hr.created == [action.draft]
    linked = calendar.events[0]
    assert linked.time_off_id == 500
    assert linked.summary == "Vacation ⇵"


def test_failed_write_back_is_reported_and_recovered_by_adoption() -> None:
    event = make_event()
    hr = FakeHrClient()
    calendar = FakeCalendarClient(events=[event], fail_updates=True)
    matcher = RecordMatcher(make_registry())
    [action] = matcher.match(employee=JANE, events=[event], time_offs=[], now=NOW)

    assert not asyncio.run(_actions(hr, calendar).apply(action))
    assert len(hr.time_offs) == 1

    later = NOW + timedelta(minutes=5)
    [retry] = matcher.match(employee=JANE, events=[event], time_offs=hr.time_offs, now=later)
    assert isinstance(retry, CreateTimeOffFromEvent)
    assert retry.existing == hr.time_offs[0]

    calendar.fail_updates = False
    assert asyncio.run(_actions(hr, calendar).apply(retry))
    assert len(hr.created) == 1
    assert calendar.events[0].time_off_id == hr.time_offs[0].id


def test_rejected_time_off_is_reported_as_failure() -> None:
    event = make_event()
    hr = FakeHrClient(reject_creates=True)
    calendar = FakeCalendarClient(events=[event])
    [action] = RecordMatcher(make_registry()).match(
        employee=JANE, events=[event], time_offs=[], now=NOW
    )

    assert not asyncio.run(_actions(hr, calendar).apply(action))
    assert calendar.updates == []


def test_recreate_replaces_time_off_and_relinks_event() -> None:
    time_off = make_time_off()
    event = make_event(time_off_id=time_off.id, end=date(2024, 5, 20))
    hr = FakeHrClient(time_offs=[time_off])
    calendar = FakeCalendarClient(events=[event])
    draft = RecordMatcher(make_registry()).convert_event(JANE, event, time_off)
    assert draft is not None

    assert asyncio.run(
        _actions(hr, calendar).apply(RecreateTimeOffFromEvent(event, time_off, draft))
    )

    assert hr.deleted == [time_off.id]
    assert [record.end_at for record in hr.time_offs] == [WallClockValue(2024, 5, 19, 24)]
    assert calendar.events[0].time_off_id == hr.time_offs[0].id


def test_update_event_moves_it_to_time_off_range() -> None:
    time_off = make_time_off(start=date(2024, 5, 14), start_hour=12)
    event = make_event(time_off_id=time_off.id, end=date(2024, 5, 20))
    calendar = FakeCalendarClient(events=[event])

    assert asyncio.run(
        _actions(FakeHrClient(), calendar).apply(UpdateEventFromTimeOff(event, time_off))
    )

    [(event_id, changes)] = calendar.updates
    assert event_id == event.id
    assert changes.start == WallClockValue(2024, 5, 14, 12)
    assert changes.end == WallClockValue(2024, 5, 18, 0)


def test_delete_time_off_and_cancel_event() -> None:
    time_off = make_time_off()
    hr = FakeHrClient(time_offs=[time_off])
    orphan = make_event("orphan", time_off_id=7)
    calendar = FakeCalendarClient(events=[orphan])
    applier = _actions(hr, calendar)

    cancelled = make_event(time_off_id=time_off.id, status=EventStatus.CANCELLED)
    assert asyncio.run(applier.apply(DeleteTimeOff(cancelled, time_off)))
    assert asyncio.run(applier.apply(CancelEvent(orphan)))

    assert hr.deleted == [time_off.id]
    assert calendar.events[0].status is EventStatus.CANCELLED


def test_failed_delete_is_reported_as_failure() -> None:
    time_off = make_time_off(time_off_type=VACATION)
    hr = FakeHrClient(time_offs=[time_off], fail_deletes=True)
    event = make_event(time_off_id=time_off.id, status=EventStatus.CANCELLED)

    assert not asyncio.run(
        _actions(hr, FakeCalendarClient()).apply(DeleteTimeOff(event, time_off))
    )
