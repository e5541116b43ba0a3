"""Deep links into the Personio absence calendar."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from timeoffsync.domain.model import TimeOffRecord

PERSONIO_LINK_LABEL = "Show in Personio"


@dataclass(frozen=True, slots=True)
class PersonioLinkBuilder:
    web_url: str
    label: str = PERSONIO_LINK_LABEL

    def __call__(self, record: TimeOffRecord) -> str | None:
        if record.employee_id <= 0 or record.type_id <= 0:
            return None
        base = self.web_url.rstrip("/")
        return (
            f"{base}/time-off/employee/{record.employee_id}/monthly"
            f"?absenceTypeId={record.type_id}"
            f"&month={record.start_at.month}&year={record.start_at.year}"
        )


__all__ = ["PERSONIO_LINK_LABEL", "PersonioLinkBuilder"]
