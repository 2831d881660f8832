"""Database backend and isolation level enumerations."""

from __future__ import annotations

from enum import Enum


class DatabaseBackend(Enum):
    """Supported database backends."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class IsolationLevel(Enum):
    """Transaction isolation levels.

    ``DEFAULT`` leaves the choice to the database.
    """

    DEFAULT = "default"
    READ_UNCOMMITTED = "read uncommitted"
    READ_COMMITTED = "read committed"
    WRITE_COMMITTED = "write committed"
    REPEATABLE_READ = "repeatable read"
    SNAPSHOT = "snapshot"
    SERIALIZABLE = "serializable"
    LINEARIZABLE = "linearizable"
