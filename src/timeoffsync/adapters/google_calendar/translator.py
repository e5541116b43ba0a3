"""Translate Google Calendar payloads into domain records and back."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any, TypeVar

from timeoffsync.domain.actions import TIME_OFF_ID_PROPERTY
from timeoffsync.domain.model import (
    CalendarEventRecord,
    EventStatus,
    EventTime,
    EventType,
)

if TYPE_CHECKING:
    from timeoffsync.domain.model import EventChanges, NewCalendarEvent
    from timeoffsync.domain.wall_clock import WallClockValue

    from .schema import EventDateTime, EventPayload

log = getLogger(__name__)


def _event_time(value: EventDateTime | None) -> EventTime | None:
    if value is None:
        return None
    if value.date_time is not None:
        return EventTime(date_time=value.date_time, time_zone=value.time_zone)
    if value.day is not None:
        return EventTime(all_day_date=value.day, time_zone=value.time_zone)
    return None


def _time_off_id(payload: EventPayload) -> int | None:
    properties = payload.extended_properties
    raw = properties.private.get(TIME_OFF_ID_PROPERTY) if properties is not None else None
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        log.warning("Ignoring malformed %s %r on event %s", TIME_OFF_ID_PROPERTY, raw, payload.id)
        return None


E = TypeVar("E", EventStatus, EventType)


def _enum_value(enum: type[E], value: str, fallback: E) -> E:
    try:
        return enum(value)
    except ValueError:
        return fallback


def translate_event(payload: EventPayload) -> CalendarEventRecord | None:
    """Build a record, or ``None`` for events without times (cancelled recurrence instances)."""

    start = _event_time(payload.start)
    end = _event_time(payload.end)
    if start is None or end is None or payload.updated is None:
        return None
    return CalendarEventRecord(
        id=payload.id,
        status=_enum_value(EventStatus, payload.status, EventStatus.CONFIRMED),
        updated_at=payload.updated,
        start=start,
        end=end,
        summary=payload.summary,
        description=payload.description,
        event_type=_enum_value(EventType, payload.event_type, EventType.OTHER),
        creator_email=payload.creator.email if payload.creator is not None else None,
        ical_uid=payload.ical_uid,
        time_off_id=_time_off_id(payload),
    )


def _date_time(value: WallClockValue) -> dict[str, str]:
    return {"dateTime": value.to_text()}


def build_event_body(event: NewCalendarEvent) -> dict[str, Any]:
    body: dict[str, Any] = {
        "kind": "calendar#event",
        "summary": event.summary,
        "start": _date_time(event.start),
        "end": _date_time(event.end),
        "extendedProperties": {"private": {TIME_OFF_ID_PROPERTY: str(event.time_off_id)}},
    }
    if event.description is not None:
        body["description"] = event.description
    if event.ical_uid is not None:
        body["iCalUID"] = event.ical_uid
    return body


def _patched_time(value: WallClockValue) -> dict[str, str | None]:
    # PATCH merges nested objects, a leftover all-day "date" would clash with "dateTime"
    return {**_date_time(value), "date": None, "timeZone": None}


def build_patch_body(changes: EventChanges) -> dict[str, Any]:
    """Only the fields that change; PATCH merges ``extendedProperties.private``."""

    body: dict[str, Any] = {}
    if changes.start is not None:
        body["start"] = _patched_time(changes.start)
    if changes.end is not None:
        body["end"] = _patched_time(changes.end)
    if changes.status is not None:
        body["status"] = changes.status.value
    if changes.summary is not None:
        body["summary"] = changes.summary
    if changes.description is not None:
        body["description"] = changes.description
    if changes.private_properties:
        body["extendedProperties"] = {"private": dict(changes.private_properties)}
    return body


__all__ = ["build_event_body", "build_patch_body", "translate_event"]
