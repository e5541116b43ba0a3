"""Personio configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .env import get_env_count, require_env_vars
from .http_resilience import IDEMPOTENT_METHODS, RateLimit, ResilienceConfig, RetryPolicy

PERSONIO_BASE_URL = "https://api.personio.de/v1"
PERSONIO_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True)
class PersonioConfig:
    """Holds Personio API configuration values."""

    client_id: str
    client_secret: str = field(repr=False)
    resilience: ResilienceConfig
    web_url: str | None = None


def _default_resilience(ratelimit: RateLimit | None) -> ResilienceConfig:
    # creating an absence is not idempotent, a replayed POST would duplicate it
    return ResilienceConfig(
        name="personio",
        base_url=PERSONIO_BASE_URL,
        timeout_seconds=PERSONIO_TIMEOUT_SECONDS,
        retry=RetryPolicy(total=3, allowed_methods=IDEMPOTENT_METHODS),
        ratelimit=ratelimit,
        default_headers={"Accept": "application/json"},
    )


def get_personio_config(*, resilience: ResilienceConfig | None = None) -> PersonioConfig:
    values = require_env_vars(("PERSONIO_CLIENT_ID", "PERSONIO_CLIENT_SECRET"))
    calls_per_second = get_env_count("PERSONIO_MAX_CALLS_PER_SECOND", 0)
    ratelimit = RateLimit(max_calls=calls_per_second, per_seconds=1.0) if calls_per_second else None
    web_url = (os.getenv("PERSONIO_WEB_URL") or "").strip().rstrip("/")
    return PersonioConfig(
        client_id=values["PERSONIO_CLIENT_ID"].strip(),
        client_secret=values["PERSONIO_CLIENT_SECRET"].strip(),
        resilience=resilience or _default_resilience(ratelimit),
        web_url=web_url or None,
    )
