"""Google Calendar configuration values."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import ResilienceConfig, RetryPolicy

GOOGLE_CALENDAR_BASE_URL = "https://www.googleapis.com/calendar/v3"
GOOGLE_CALENDAR_SCOPES = ("https://www.googleapis.com/auth/calendar",)


@dataclass(frozen=True)
class GoogleCalendarConfig:
    """Service-account credentials with domain-wide delegation."""

    service_account_info: dict[str, Any] = field(repr=False)
    scopes: tuple[str, ...] = GOOGLE_CALENDAR_SCOPES
    resilience: ResilienceConfig = field(
        default_factory=lambda: ResilienceConfig(
            name="google-calendar",
            base_url=GOOGLE_CALENDAR_BASE_URL,
            retry=RetryPolicy(total=4),
        )
    )


def _load_service_account_info() -> dict[str, Any]:
    inline = (os.getenv("GOOGLE_SERVICE_ACCOUNT_JSON") or "").strip()
    path = (os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE") or "").strip()
    if inline:
        raw = inline
    elif path:
        try:
            raw = Path(path).expanduser().read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(f"Cannot read service account file {path}: {exc}") from exc
    else:
        raise MissingConfigurationError(
            "Missing configuration for: GOOGLE_SERVICE_ACCOUNT_FILE or GOOGLE_SERVICE_ACCOUNT_JSON"
        )

    try:
        info = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError("Service account credentials are not valid JSON") from exc
    if not isinstance(info, dict) or "client_email" not in info or "private_key" not in info:
        raise ConfigurationError("Service account credentials lack client_email/private_key")
    return info


def get_google_calendar_config() -> GoogleCalendarConfig:
    return GoogleCalendarConfig(service_account_info=_load_service_account_info())
