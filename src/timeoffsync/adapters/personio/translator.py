"""Translate Personio payloads into domain records and back."""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from timeoffsync.domain.model import (
    Employee,
    TimeOffRecord,
    TimeOffStatus,
    TimeOffTypeDefinition,
)
from timeoffsync.domain.wall_clock import END_OF_DAY, NOON, WallClockValue

if TYPE_CHECKING:
    from timeoffsync.domain.model import TimeOffDraft

    from .schema import EmployeeAttribute, EmployeePayload, TimeOffPeriodPayload, TimeOffTypePayload

INACTIVE_STATUS = "inactive"
API_AUTHOR = "API"
# absences edited in the Personio web UI report updated_at one hour ahead
UPDATED_AT_SKEW = timedelta(hours=1)


def _text(attribute: EmployeeAttribute | None) -> str | None:
    if attribute is None or attribute.value is None:
        return None
    return str(attribute.value).strip()


def translate_employee(payload: EmployeePayload) -> Employee:
    attributes = payload.attributes
    return Employee(
        id=int(attributes.id.value),
        email=_text(attributes.email) or "",
        active=_text(attributes.status) != INACTIVE_STATUS,
        first_name=_text(attributes.first_name),
        last_name=_text(attributes.last_name),
    )


def translate_time_off_type(payload: TimeOffTypePayload) -> TimeOffTypeDefinition:
    attributes = payload.attributes
    return TimeOffTypeDefinition(
        id=attributes.id,
        name=attributes.name,
        half_days_allowed=attributes.half_day_requests_enabled,
    )


def _status(value: str) -> TimeOffStatus:
    try:
        return TimeOffStatus(value)
    except ValueError:
        return TimeOffStatus.PENDING


def correct_updated_at(updated_at: datetime, created_by: str | None, now: datetime) -> datetime:
    """Undo the web UI's one-hour shift of ``updated_at``.

    Only absences created through the API are reported correctly, and only
    until someone edits them in the UI; a value in the future is always shifted.
    """

    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=UTC)
    if created_by != API_AUTHOR or updated_at >= now:
        return updated_at - UPDATED_AT_SKEW
    return updated_at


def translate_time_off(payload: TimeOffPeriodPayload, *, now: datetime) -> TimeOffRecord:
    attributes = payload.attributes
    start_at = WallClockValue.from_text(attributes.start_date, hour_override=0)
    end_at = WallClockValue.from_text(attributes.end_date, hour_override=END_OF_DAY)

    half_day_start = attributes.half_day_start
    half_day_end = attributes.half_day_end
    if start_at.is_same_day(end_at):
        # a single day is either a morning or an afternoon
        if half_day_start and not half_day_end:
            end_at = replace(end_at, hour=NOON)
        elif half_day_end and not half_day_start:
            start_at = replace(start_at, hour=NOON)
    else:
        if half_day_start:
            start_at = replace(start_at, hour=NOON)
        if half_day_end:
            end_at = replace(end_at, hour=NOON)

    time_off_type = attributes.time_off_type
    employee = attributes.employee
    employee_id = employee.attributes.id.value if employee is not None else None
    return TimeOffRecord(
        id=attributes.id,
        employee_id=int(employee_id) if employee_id is not None else 0,
        type_id=time_off_type.attributes.id if time_off_type is not None else 0,
        type_name=time_off_type.attributes.name if time_off_type is not None else "",
        start_at=start_at,
        end_at=end_at,
        half_day_start=half_day_start,
        half_day_end=half_day_end,
        comment=attributes.comment or "",
        status=_status(attributes.status),
        updated_at=correct_updated_at(attributes.updated_at, attributes.created_by, now),
        email=_text(employee.attributes.email) if employee is not None else None,
    )


def build_time_off_form(draft: TimeOffDraft) -> dict[str, str]:
    """Form fields for ``POST /company/time-offs``."""

    half_day_start, half_day_end = draft.half_day_flags()
    form = {
        "employee_id": str(draft.employee_id),
        "time_off_type_id": str(draft.type_id),
        "start_date": draft.start_at.to_iso_date(),
        "end_date": draft.end_at.to_iso_date(),
        "half_day_start": "1" if half_day_start else "0",
        "half_day_end": "1" if half_day_end else "0",
        "comment": draft.comment,
    }
    if draft.skip_approval:
        form["skip_approval"] = "1"
    return form


__all__ = [
    "build_time_off_form",
    "correct_updated_at",
    "translate_employee",
    "translate_time_off",
    "translate_time_off_type",
]
