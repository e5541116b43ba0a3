"""Minimal Pydantic models for the Google Calendar API v3."""

from __future__ import annotations

import datetime as dt  # noqa: TC003
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GoogleBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class EventDateTime(GoogleBaseModel):
    day: dt.date | None = Field(default=None, alias="date")
    date_time: dt.datetime | None = Field(default=None, alias="dateTime")
    time_zone: str | None = Field(default=None, alias="timeZone")


class EventPerson(GoogleBaseModel):
    email: str | None = None
    display_name: str | None = Field(default=None, alias="displayName")


class ExtendedProperties(GoogleBaseModel):
    private: dict[str, str] = Field(default_factory=dict)
    shared: dict[str, str] = Field(default_factory=dict)


class EventPayload(GoogleBaseModel):
    id: str
    status: str = "confirmed"
    updated: dt.datetime | None = None
    summary: str = ""
    description: str | None = None
    start: EventDateTime | None = None
    end: EventDateTime | None = None
    event_type: str = Field(default="default", alias="eventType")
    creator: EventPerson | None = None
    ical_uid: str = Field(default="", alias="iCalUID")
    extended_properties: ExtendedProperties | None = Field(
        default=None, alias="extendedProperties"
    )


class EventsPage(GoogleBaseModel):
    # validated one by one so a malformed event does not void its page
    items: list[dict[str, Any]] = Field(default_factory=list[dict[str, Any]])
    next_page_token: str | None = Field(default=None, alias="nextPageToken")
    time_zone: str | None = Field(default=None, alias="timeZone")


__all__ = [
    "EventDateTime",
    "EventPayload",
    "EventPerson",
    "EventsPage",
    "ExtendedProperties",
]
