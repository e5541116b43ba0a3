"""SQLAlchemy adapter package for run state."""

from __future__ import annotations

from .engine import StartupError, configured_engine, is_started, shutdown, startup
from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import SqlAlchemyKeyValueStore, SqlAlchemyRunLock

__all__ = [
    "SqlAlchemyKeyValueStore",
    "SqlAlchemyRunLock",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
