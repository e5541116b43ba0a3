"""Utilities for constraining a reconciliation run to a window of days."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from typing import Protocol


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def utcnow() -> datetime:
    return datetime.now(UTC)


def _ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        raise ValueError("Time window values must include timezone information")
    return value.astimezone(UTC)


@dataclass(frozen=True)
class FetchWindow:
    """Whole UTC days around a run's epoch in which both systems are compared."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if _ensure_aware(self.start) > _ensure_aware(self.end):
            raise ValueError("Time window start must be before end")

    @classmethod
    def around(cls, epoch: datetime, *, lookback_days: int, lookahead_days: int) -> FetchWindow:
        """Round ``epoch - lookback`` down and ``epoch + lookahead`` up to UTC midnight."""

        if lookback_days < 0 or lookahead_days < 0:
            raise ValueError("Lookback and lookahead must be non-negative")
        anchor = _ensure_aware(epoch)
        first_day = (anchor - timedelta(days=lookback_days)).date()
        last_day = (anchor + timedelta(days=lookahead_days)).date()
        return cls(
            start=datetime.combine(first_day, time(), tzinfo=UTC),
            end=datetime.combine(last_day + timedelta(days=1), time(), tzinfo=UTC),
        )

    @property
    def start_date(self) -> date:
        return _ensure_aware(self.start).date()

    @property
    def end_date(self) -> date:
        return _ensure_aware(self.end).date()

    def __str__(self) -> str:
        return f"{self.start.isoformat()} - {self.end.isoformat()}"


__all__ = ["Clock", "FetchWindow", "utcnow"]
