"""Port for the HR system holding absence records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import date

    from timeoffsync.domain.model import (
        Employee,
        TimeOffDraft,
        TimeOffRecord,
        TimeOffTypeDefinition,
    )


@runtime_checkable
class HrClient(Protocol):
    """Absence data of the whole organisation.

    Every method raises ``RequestFailed`` on failure; ``create_time_off``
    raises ``ValidationError`` when the payload is rejected.
    """

    async def list_absence_types(self) -> list[TimeOffTypeDefinition]: ...

    async def list_employees(self) -> list[Employee]: ...

    async def list_time_offs(
        self,
        window_start: date,
        window_end: date,
        employee_id: int | None = None,
    ) -> list[TimeOffRecord]: ...

    async def create_time_off(self, draft: TimeOffDraft) -> TimeOffRecord: ...

    async def delete_time_off(self, time_off_id: int) -> None: ...
