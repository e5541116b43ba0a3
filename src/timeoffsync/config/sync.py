"""Reconciliation run settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta

from .env import get_env_count, get_env_flag, get_env_list, require_env_var
from .errors import ConfigurationError

DEFAULT_LOOKBACK_DAYS = 30
DEFAULT_LOOKAHEAD_DAYS = 6 * 30
DEFAULT_MAX_FAIL_COUNT = 10
# the scheduler kills a run after 6 minutes and starts the next one every 5
DEFAULT_MAX_RUNTIME_SECONDS = 290
DEFAULT_DEAD_ZONE = timedelta(seconds=120)
DEFAULT_LOCK_TIMEOUT_SECONDS = 5.0
# headroom for the pass that is still running when the deadline passes
LOCK_LEASE_MARGIN = timedelta(seconds=70)
DEFAULT_FAILURE_TTL = timedelta(hours=1)
DEFAULT_FOREIGN_SYNC_MARKERS = ("cronofy.com",)


@dataclass(frozen=True, slots=True)
class SyncConfig:
    """Everything a reconciliation run needs to know besides credentials."""

    allowed_domains: tuple[str, ...]
    email_allow_list: tuple[str, ...] = ()
    skip_approval_blacklist: tuple[str, ...] = ()
    lookback_days: int = DEFAULT_LOOKBACK_DAYS
    lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS
    max_fail_count: int = DEFAULT_MAX_FAIL_COUNT
    prefer_bulk_requests: bool = True
    max_runtime: timedelta = field(
        default_factory=lambda: timedelta(seconds=DEFAULT_MAX_RUNTIME_SECONDS)
    )
    dead_zone: timedelta = DEFAULT_DEAD_ZONE
    lock_timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS
    failure_ttl: timedelta = DEFAULT_FAILURE_TTL
    default_time_zone: str = "UTC"
    foreign_sync_markers: tuple[str, ...] = DEFAULT_FOREIGN_SYNC_MARKERS
    calendar_id: str = "primary"

    def __post_init__(self) -> None:
        if not self.allowed_domains:
            raise ConfigurationError("At least one allowed email domain is required")
        if self.max_fail_count <= 0:
            raise ConfigurationError("max_fail_count must be positive")

    @property
    def lock_lease(self) -> timedelta:
        return self.max_runtime + LOCK_LEASE_MARGIN

    def is_email_allowed(self, email: str) -> bool:
        if self.email_allow_list and email not in self.email_allow_list:
            return False
        domain = email[email.rfind("@") + 1 :]
        return domain in self.allowed_domains


def get_sync_config() -> SyncConfig:
    require_env_var("TIMEOFFSYNC_ALLOWED_DOMAINS")
    markers = get_env_list("TIMEOFFSYNC_FOREIGN_SYNC_MARKERS")
    return SyncConfig(
        allowed_domains=get_env_list("TIMEOFFSYNC_ALLOWED_DOMAINS"),
        email_allow_list=get_env_list("TIMEOFFSYNC_EMAIL_ALLOW_LIST"),
        skip_approval_blacklist=get_env_list("TIMEOFFSYNC_SKIP_APPROVAL_BLACKLIST", lower=True),
        lookback_days=get_env_count("TIMEOFFSYNC_LOOKBACK_DAYS", DEFAULT_LOOKBACK_DAYS),
        lookahead_days=get_env_count("TIMEOFFSYNC_LOOKAHEAD_DAYS", DEFAULT_LOOKAHEAD_DAYS),
        max_fail_count=get_env_count("TIMEOFFSYNC_MAX_FAIL_COUNT", DEFAULT_MAX_FAIL_COUNT),
        prefer_bulk_requests=get_env_flag("TIMEOFFSYNC_PREFER_BULK_REQUESTS"),
        max_runtime=timedelta(
            seconds=get_env_count("TIMEOFFSYNC_MAX_RUNTIME_SECONDS", DEFAULT_MAX_RUNTIME_SECONDS)
        ),
        default_time_zone=(os.getenv("TIMEOFFSYNC_TIME_ZONE") or "UTC").strip(),
        foreign_sync_markers=markers or DEFAULT_FOREIGN_SYNC_MARKERS,
        calendar_id=(os.getenv("TIMEOFFSYNC_CALENDAR_ID") or "primary").strip(),
    )
