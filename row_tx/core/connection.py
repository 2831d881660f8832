"""Connection configuration.

ConnectionConfig is a Pydantic model for type-safe connection config.
``open_database`` loads the adapter for its driver and opens a Database
handle over a single connection.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from row_tx.core.enums import DatabaseBackend
from row_tx.core.exceptions import AdapterError

if TYPE_CHECKING:
    from row_tx.adapters.dbapi import DBAPIDatabase


class ConnectionConfig(BaseModel):
    """Configuration for database connections.

    ``extra`` is passed through to the driver's connect call.
    """

    driver: str
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str
    extra: dict[str, Any] = {}


# Adapter module mapping: driver name → (module_path, database_class)
_ADAPTER_MAP: dict[str, tuple[str, str]] = {
    DatabaseBackend.SQLITE.value: ("row_tx.adapters.sqlite", "SqliteDatabase"),
    DatabaseBackend.POSTGRESQL.value: ("row_tx.adapters.postgresql", "PostgresqlDatabase"),
}


def _load_adapter(driver: str) -> Any:
    """Load a Database class by driver name."""
    driver_lower = driver.lower()
    if driver_lower not in _ADAPTER_MAP:
        raise AdapterError(f"Unsupported database driver: {driver}")

    module_path, cls_name = _ADAPTER_MAP[driver_lower]
    try:
        module = importlib.import_module(module_path)
        return getattr(module, cls_name)
    except (ImportError, AttributeError) as e:
        raise AdapterError(f"Failed to load adapter for '{driver}': {e}") from e


def open_database(config: ConnectionConfig) -> DBAPIDatabase:
    """Connect using the adapter registered for ``config.driver``.

    Raises:
        AdapterError: Unknown driver, or the driver library is missing.
    """
    cls = _load_adapter(config.driver)
    try:
        return cls.connect(config)
    except ImportError as e:
        raise AdapterError(f"Driver library for '{config.driver}' is not installed: {e}") from e
