"""Carry out reconciliation actions against the HR system and the calendar."""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timedelta
from html import escape
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from .errors import TimeOffSyncError
from .matching import (
    CancelEvent,
    CreateEventFromTimeOff,
    CreateTimeOffFromEvent,
    DeleteTimeOff,
    RecreateTimeOffFromEvent,
    UpdateEventFromTimeOff,
)
from .model import (
    EventChanges,
    EventStatus,
    NewCalendarEvent,
    with_sync_marker,
)

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo

    from .matching import ReconciliationAction
    from .model import CalendarEventRecord, Employee, TimeOffRecord
    from .ports import CalendarClient, HrClient
    from .time_off_types import TimeOffTypeRegistry
    from .wall_clock import WallClockValue

log = getLogger(__name__)

TIME_OFF_ID_PROPERTY = "timeOffId"


class RecordLinkBuilder(Protocol):
    """Renders a link to an absence in the HR system's web interface."""

    @property
    def label(self) -> str: ...

    def __call__(self, record: TimeOffRecord) -> str | None: ...


def attach_record_link(description: str | None, url: str, label: str) -> str:
    """Add or refresh the anchor labelled ``label`` in an HTML description."""

    anchor = f'<a href="{escape(url)}">{escape(label)}</a>'
    pattern = re.compile(rf'<a href="[^"]*">{re.escape(escape(label))}</a>')
    if not description:
        return anchor
    if pattern.search(description):
        return pattern.sub(lambda _: anchor, description, count=1)
    return f"{description}<br/>{anchor}"


class ReconciliationActions:
    """Apply the actions planned for one employee.

    ``apply`` never raises for collaborator failures; it logs them and reports
    ``False`` so the caller can record the failure and carry on.
    """

    def __init__(
        self,
        *,
        hr: HrClient,
        calendar: CalendarClient,
        employee: Employee,
        registry: TimeOffTypeRegistry,
        zone: ZoneInfo,
        calendar_id: str = "primary",
        links: RecordLinkBuilder | None = None,
    ) -> None:
        self._hr = hr
        self._calendar = calendar
        self._employee = employee
        self._registry = registry
        self._zone = zone
        self._calendar_id = calendar_id
        self._links = links

    async def apply(self, action: ReconciliationAction) -> bool:
        try:
            match action:
                case DeleteTimeOff():
                    await self._delete_time_off(action)
                case CancelEvent():
                    await self._cancel_event(action)
                case CreateEventFromTimeOff():
                    await self._create_event(action)
                case CreateTimeOffFromEvent():
                    await self._create_time_off(action)
                case UpdateEventFromTimeOff():
                    await self._update_event(action)
                case RecreateTimeOffFromEvent():
                    await self._recreate_time_off(action)
        except TimeOffSyncError as exc:
            log.warning(
                "Failed to %s (%s) for user %s: %s",
                action.kind,
                action.ledger_key.encode(),
                self._employee.email,
                exc,
            )
            return False
        return True

    async def _delete_time_off(self, action: DeleteTimeOff) -> None:
        await self._hr.delete_time_off(action.time_off.id)
        log.info(
            "Deleted time-off %s (%s - %s) of user %s",
            action.time_off.id,
            action.time_off.start_at,
            action.time_off.end_at,
            self._employee.email,
        )

    async def _cancel_event(self, action: CancelEvent) -> None:
        await self._calendar.update_event(
            self._calendar_id,
            action.event.id,
            EventChanges(status=EventStatus.CANCELLED),
        )
        log.info(
            "Cancelled event %s (%r) of user %s, its time-off %s is gone",
            action.event.id,
            action.event.summary,
            self._employee.email,
            action.event.time_off_id,
        )

    async def _create_event(self, action: CreateEventFromTimeOff) -> None:
        time_off = action.time_off
        start = time_off.start_at
        end = time_off.end_at.switch_hour24_to_midnight()
        new_event = NewCalendarEvent(
            summary=self._summary_for(time_off),
            start=start.with_offset(self._offset_at(start)),
            end=end.with_offset(self._offset_at(end)),
            time_off_id=time_off.id,
            description=self._describe(None, time_off),
            ical_uid=self._ical_uid(time_off),
        )
        created = await self._calendar.insert_event(self._calendar_id, new_event)
        log.info(
            "Created event %s (%r) from time-off %s of user %s",
            created.id,
            new_event.summary,
            time_off.id,
            self._employee.email,
        )

    async def _create_time_off(self, action: CreateTimeOffFromEvent) -> None:
        if action.existing is not None:
            time_off = action.existing
            log.info(
                "Linking event %s of user %s to existing time-off %s",
                action.event.id,
                self._employee.email,
                time_off.id,
            )
        else:
            time_off = await self._hr.create_time_off(action.draft)
            log.info(
                "Created time-off %s (%s - %s) from event %s of user %s",
                time_off.id,
                time_off.start_at,
                time_off.end_at,
                action.event.id,
                self._employee.email,
            )
        await self._link_event(action.event, time_off)

    async def _update_event(self, action: UpdateEventFromTimeOff) -> None:
        time_off = action.time_off
        offset = action.event.start.to_wall_clock(self._zone).offset
        end = time_off.end_at.switch_hour24_to_midnight()
        await self._calendar.update_event(
            self._calendar_id,
            action.event.id,
            EventChanges(
                start=time_off.start_at.with_offset(offset),
                end=end.with_offset(offset),
            ),
        )
        log.info(
            "Updated event %s of user %s to %s - %s from time-off %s",
            action.event.id,
            self._employee.email,
            time_off.start_at,
            time_off.end_at,
            time_off.id,
        )

    async def _recreate_time_off(self, action: RecreateTimeOffFromEvent) -> None:
        await self._hr.delete_time_off(action.time_off.id)
        time_off = await self._hr.create_time_off(action.draft)
        log.info(
            "Replaced time-off %s by %s (%s - %s) after event %s of user %s changed",
            action.time_off.id,
            time_off.id,
            time_off.start_at,
            time_off.end_at,
            action.event.id,
            self._employee.email,
        )
        await self._link_event(action.event, time_off)

    async def _link_event(self, event: CalendarEventRecord, time_off: TimeOffRecord) -> None:
        await self._calendar.update_event(
            self._calendar_id,
            event.id,
            EventChanges(
                summary=with_sync_marker(event.summary),
                description=self._describe(event.description, time_off),
                private_properties={TIME_OFF_ID_PROPERTY: str(time_off.id)},
            ),
        )

    def _summary_for(self, time_off: TimeOffRecord) -> str:
        summary = time_off.comment.strip() or time_off.type_name
        recognised = self._registry.match_by_keyword(summary)
        if recognised is None or recognised.id != time_off.type_id:
            words = time_off.type_name.split()
            if words and summary != time_off.type_name:
                summary = f"{words[0]}: {summary}"
        return with_sync_marker(summary)

    def _describe(self, description: str | None, time_off: TimeOffRecord) -> str | None:
        if self._links is None:
            return description
        url = self._links(time_off)
        if url is None:
            return description
        return attach_record_link(description, url, self._links.label)

    def _ical_uid(self, time_off: TimeOffRecord) -> str:
        domain = self._employee.email.rpartition("@")[2] or "localhost"
        return f"{uuid.uuid4()}-p-{time_off.id}-timeoffsync@{domain}"

    def _offset_at(self, value: WallClockValue) -> timedelta:
        local = datetime(value.year, value.month, value.day, min(value.hour, 23))
        return self._zone.utcoffset(local) or timedelta(0)


__all__ = [
    "TIME_OFF_ID_PROPERTY",
    "ReconciliationActions",
    "RecordLinkBuilder",
    "attach_record_link",
]
