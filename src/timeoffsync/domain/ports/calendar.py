"""Port for the calendar system holding out-of-office events."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from timeoffsync.domain.model import CalendarEventRecord, EventChanges, NewCalendarEvent


@runtime_checkable
class CalendarClient(Protocol):
    """One user's calendars; every method raises ``RequestFailed`` on failure."""

    async def list_events(
        self,
        calendar_id: str,
        window_start: datetime,
        window_end: datetime,
    ) -> list[CalendarEventRecord]: ...

    async def insert_event(
        self,
        calendar_id: str,
        event: NewCalendarEvent,
    ) -> CalendarEventRecord: ...

    async def update_event(
        self,
        calendar_id: str,
        event_id: str,
        changes: EventChanges,
    ) -> CalendarEventRecord: ...


@runtime_checkable
class CalendarClientFactory(Protocol):
    """Hands out a calendar client acting on behalf of one user."""

    async def for_user(self, email: str) -> CalendarClient: ...
