"""Recognise absence types in free text and expose per-type policy."""

from __future__ import annotations

import re
from datetime import timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .model import TimeOffTypeDefinition

HALF_DAY_MINIMUM = timedelta(hours=3)
WHOLE_DAY_MINIMUM = timedelta(hours=6)


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    escaped = re.escape(keyword)
    return re.compile(rf"(^|[\s:\-\[(])({escaped})([\s:\-\])]|$)", re.MULTILINE)


class TimeOffTypeRegistry:
    """Precomputed keyword table for the configured absence types.

    Built once per run. A type is recognised by the first word of its name,
    matched as a whole word anywhere in a title.
    """

    def __init__(
        self,
        types: Iterable[TimeOffTypeDefinition],
        skip_approval_blacklist: Iterable[str] = (),
    ) -> None:
        self._types = tuple(types)
        self._patterns = tuple(
            (time_off_type, _keyword_pattern(time_off_type.keyword))
            for time_off_type in self._types
            if time_off_type.keyword
        )
        self._by_id = {time_off_type.id: time_off_type for time_off_type in self._types}
        self._blacklist = frozenset(keyword.strip().lower() for keyword in skip_approval_blacklist)

    def __len__(self) -> int:
        return len(self._types)

    @property
    def types(self) -> tuple[TimeOffTypeDefinition, ...]:
        return self._types

    def find_by_id(self, type_id: int) -> TimeOffTypeDefinition | None:
        return self._by_id.get(type_id)

    def match_by_keyword(self, text: str | None) -> TimeOffTypeDefinition | None:
        """Guess the type named in ``text``; when several match, the last one wins."""

        search_text = (text or "").lower()
        matched: TimeOffTypeDefinition | None = None
        for time_off_type, pattern in self._patterns:
            if pattern.search(search_text):
                matched = time_off_type
        return matched

    def is_approval_skippable(self, type_id: int) -> bool:
        time_off_type = self._by_id.get(type_id)
        if time_off_type is None:
            return True
        return time_off_type.keyword not in self._blacklist

    @staticmethod
    def minimum_duration(time_off_type: TimeOffTypeDefinition) -> timedelta:
        return HALF_DAY_MINIMUM if time_off_type.half_days_allowed else WHOLE_DAY_MINIMUM
