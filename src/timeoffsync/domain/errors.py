"""Domain error taxonomy."""

from __future__ import annotations


class TimeOffSyncError(Exception):
    """Base class for all reconciliation errors."""


class InvalidTimestamp(TimeOffSyncError, ValueError):  # noqa: N818
    """A date/time value could not be interpreted as a wall-clock value."""


class RequestFailed(TimeOffSyncError):
    """A collaborator call failed; the status code is not interpreted further."""

    def __init__(self, message: str, *, status: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class ValidationError(RequestFailed):
    """The HR system rejected a payload (for example overlapping absences)."""


class ConcurrentRunError(TimeOffSyncError):
    """Another run holds the reconciliation lock."""
