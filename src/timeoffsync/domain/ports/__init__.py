"""Domain port definitions for adapters."""

from __future__ import annotations

from .calendar import CalendarClient, CalendarClientFactory
from .hr import HrClient
from .storage import KeyValueStore, RunLock

__all__ = [
    "CalendarClient",
    "CalendarClientFactory",
    "HrClient",
    "KeyValueStore",
    "RunLock",
]
