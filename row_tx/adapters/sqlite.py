"""SQLite adapter using stdlib sqlite3.

Read-only transactions open with BEGIN DEFERRED under ``PRAGMA query_only``;
read-write transactions take the write lock up front with BEGIN IMMEDIATE.
SQLite transactions are always serializable, so only the default,
serializable and read-uncommitted isolation levels are accepted.
"""

from __future__ import annotations

import sqlite3
from typing import Any

from row_tx.adapters.dbapi import DBAPIDatabase
from row_tx.adapters.protocol import TxOptions
from row_tx.core.connection import ConnectionConfig
from row_tx.core.enums import IsolationLevel
from row_tx.core.exceptions import BeginError

_SUPPORTED_ISOLATION = frozenset(
    {IsolationLevel.DEFAULT, IsolationLevel.SERIALIZABLE, IsolationLevel.READ_UNCOMMITTED}
)


class SqliteDatabase(DBAPIDatabase):
    """Database handle over a sqlite3 connection.

    The connection is switched to autocommit mode (``isolation_level=None``)
    so that transactions are controlled only by this adapter.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        connection.isolation_level = None
        super().__init__(connection)

    @classmethod
    def connect(cls, config: ConnectionConfig) -> SqliteDatabase:
        """Open ``config.database`` (a file path or ``:memory:``)."""
        params: dict[str, Any] = {"check_same_thread": False}
        params.update(config.extra)
        return cls(sqlite3.connect(config.database, **params))

    def begin_statements(self, options: TxOptions) -> list[str]:
        if options.isolation not in _SUPPORTED_ISOLATION:
            raise BeginError(f"SQLite does not support isolation level '{options.isolation.value}'")
        statements: list[str] = []
        if options.isolation == IsolationLevel.READ_UNCOMMITTED:
            statements.append("PRAGMA read_uncommitted = 1")
        if options.read_only:
            statements.append("PRAGMA query_only = 1")
            statements.append("BEGIN DEFERRED")
        else:
            statements.append("BEGIN IMMEDIATE")
        return statements

    def reset_statements(self, options: TxOptions) -> list[str]:
        statements: list[str] = []
        if options.read_only:
            statements.append("PRAGMA query_only = 0")
        if options.isolation == IsolationLevel.READ_UNCOMMITTED:
            statements.append("PRAGMA read_uncommitted = 0")
        return statements

    def in_transaction(self) -> bool:
        return self._connection.in_transaction

    def interrupt(self) -> None:
        self._connection.interrupt()
