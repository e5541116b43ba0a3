"""Environment variable loaders for configuration."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence

_FALSE_FLAGS = frozenset({"false", "0", "off", "no"})


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Return the given environment variables or raise if any are missing/blank."""

    missing: list[str] = []
    values: dict[str, str] = {}
    for name in names:
        value = os.getenv(name)
        if value is None or not value.strip():
            missing.append(name)
            continue
        values[name] = value

    if missing:
        missing_list = ", ".join(sorted(missing))
        raise MissingConfigurationError(f"Missing configuration for: {missing_list}")

    return values


def require_env_var(name: str) -> str:
    """Return a required environment variable by name."""

    return require_env_vars([name])[name]


def get_env_list(name: str, *, lower: bool = False) -> tuple[str, ...]:
    """Split a comma separated variable into trimmed, non-empty items."""

    raw = os.getenv(name) or ""
    items = (item.strip() for item in raw.split(","))
    return tuple(item.lower() if lower else item for item in items if item)


def get_env_count(name: str, default: int) -> int:
    """Read a positive count; zero, blank or garbage fall back to ``default``.

    Negative values are accepted by magnitude and fractions are rounded, so
    ``-30`` and ``29.6`` both read as ``30``.
    """

    raw = (os.getenv(name) or "").strip()
    try:
        value = abs(round(float(raw)))
    except (ValueError, OverflowError):
        return default
    return value or default


def get_env_flag(name: str, *, default: bool = True) -> bool:
    """Read a boolean flag that is on unless explicitly switched off."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in _FALSE_FLAGS
