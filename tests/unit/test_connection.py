"""Unit tests for ConnectionConfig and open_database."""

from __future__ import annotations

import pytest

from row_tx.adapters.sqlite import SqliteDatabase
from row_tx.core.connection import ConnectionConfig, open_database
from row_tx.core.exceptions import AdapterError


class TestConnectionConfig:
    def test_defaults(self, sqlite_config: ConnectionConfig) -> None:
        assert sqlite_config.host is None
        assert sqlite_config.extra == {}

    def test_full_config(self) -> None:
        config = ConnectionConfig(
            driver="postgresql",
            host="localhost",
            port=5432,
            user="app",
            password="secret",
            database="app",
        )
        assert config.port == 5432


class TestOpenDatabase:
    def test_sqlite(self, sqlite_config: ConnectionConfig) -> None:
        with open_database(sqlite_config) as db:
            assert isinstance(db, SqliteDatabase)

    def test_driver_name_is_case_insensitive(self) -> None:
        with open_database(ConnectionConfig(driver="SQLite", database=":memory:")) as db:
            assert isinstance(db, SqliteDatabase)

    def test_unknown_driver(self) -> None:
        with pytest.raises(AdapterError, match="Unsupported database driver"):
            open_database(ConnectionConfig(driver="mssql", database="x"))
