"""Application configuration helpers."""

from __future__ import annotations

from .env import get_env_count, get_env_flag, get_env_list, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .google import GoogleCalendarConfig, get_google_calendar_config
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .personio import PersonioConfig, get_personio_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .sync import SyncConfig, get_sync_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "GoogleCalendarConfig",
    "MissingConfigurationError",
    "PersonioConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "SyncConfig",
    "configure_logging",
    "get_database_config",
    "get_env_count",
    "get_env_flag",
    "get_env_list",
    "get_google_calendar_config",
    "get_personio_config",
    "get_storage_config",
    "get_sync_config",
    "require_env_var",
    "require_env_vars",
]
