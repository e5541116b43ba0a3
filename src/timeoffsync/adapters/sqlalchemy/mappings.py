"""SQLAlchemy mapping metadata for run state."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    String,
    Table,
    Text,
    TypeDecorator,
    orm,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


@dataclass
class KeyValueEntry:
    key: str
    value: str
    expires_at: datetime


@dataclass
class LockLease:
    name: str
    owner: str
    expires_at: datetime


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "pk": "pk_%(table_name)s",
}

kv_entry_table = Table(
    "kv_entry",
    mapper_registry.metadata,
    Column("key", String(255), primary_key=True),
    Column("value", Text, nullable=False),
    Column("expires_at", UTCDateTime(), nullable=False, index=True),
)

run_lock_table = Table(
    "run_lock",
    mapper_registry.metadata,
    Column("name", String(64), primary_key=True),
    Column("owner", String(64), nullable=False),
    Column("expires_at", UTCDateTime(), nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Map the run state classes onto their tables (once per process)."""

    log.info("Starting SQLAlchemy mappers")
    mapper_registry.map_imperatively(KeyValueEntry, kv_entry_table)
    mapper_registry.map_imperatively(LockLease, run_lock_table)
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)


__all__ = [
    "KeyValueEntry",
    "LockLease",
    "UTCDateTime",
    "create_all_tables",
    "kv_entry_table",
    "mapper_registry",
    "run_lock_table",
    "start_mappers",
]
