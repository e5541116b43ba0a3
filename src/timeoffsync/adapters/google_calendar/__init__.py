"""Public interface for the Google Calendar adapter."""

from __future__ import annotations

from .client import GoogleCalendarClient, GoogleCalendarClientFactory
from .credentials import DelegatedTokenSource, TokenSource
from .schema import EventPayload, EventsPage
from .translator import build_event_body, build_patch_body, translate_event

__all__ = [
    "DelegatedTokenSource",
    "EventPayload",
    "EventsPage",
    "GoogleCalendarClient",
    "GoogleCalendarClientFactory",
    "TokenSource",
    "build_event_body",
    "build_patch_body",
    "translate_event",
]
