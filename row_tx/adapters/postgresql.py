"""PostgreSQL adapter using psycopg (v3+).

psycopg is imported lazily so the package works without it installed.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from row_tx.adapters.dbapi import DBAPIDatabase
from row_tx.adapters.protocol import TxOptions
from row_tx.core.connection import ConnectionConfig
from row_tx.core.enums import IsolationLevel
from row_tx.core.exceptions import BeginError

_ISOLATION_SQL: dict[IsolationLevel, str] = {
    IsolationLevel.READ_UNCOMMITTED: "READ UNCOMMITTED",
    IsolationLevel.READ_COMMITTED: "READ COMMITTED",
    IsolationLevel.REPEATABLE_READ: "REPEATABLE READ",
    IsolationLevel.SERIALIZABLE: "SERIALIZABLE",
}


def _build_conninfo(config: ConnectionConfig) -> str:
    """Build a libpq connection string from config fields."""
    parts: list[str] = []
    if config.host is not None:
        parts.append(f"host={config.host}")
    if config.port is not None:
        parts.append(f"port={config.port}")
    if config.user is not None:
        parts.append(f"user={config.user}")
    if config.password is not None:
        parts.append(f"password={config.password}")
    parts.append(f"dbname={config.database}")
    return " ".join(parts)


def begin_statement(options: TxOptions) -> str:
    """Render the BEGIN statement for ``options``."""
    parts = ["BEGIN"]
    if options.isolation != IsolationLevel.DEFAULT:
        level = _ISOLATION_SQL.get(options.isolation)
        if level is None:
            raise BeginError(
                f"PostgreSQL does not support isolation level '{options.isolation.value}'"
            )
        parts.append(f"ISOLATION LEVEL {level}")
    parts.append("READ ONLY" if options.read_only else "READ WRITE")
    return " ".join(parts)


class PostgresqlDatabase(DBAPIDatabase):
    """Database handle over a psycopg connection in autocommit mode.

    Statements use psycopg's ``%s`` placeholders. Cancelling the transaction
    context sends a cancel request to the server.
    """

    def __init__(self, connection: Any) -> None:
        connection.autocommit = True
        super().__init__(connection)

    @classmethod
    def connect(cls, config: ConnectionConfig) -> PostgresqlDatabase:
        import psycopg

        return cls(psycopg.connect(_build_conninfo(config), autocommit=True, **config.extra))

    def parameters(self, args: Sequence[Any]) -> Any:
        # without parameters psycopg leaves literal '%' alone
        return tuple(args) or None

    def begin_statements(self, options: TxOptions) -> list[str]:
        return [begin_statement(options)]

    def in_transaction(self) -> bool:
        from psycopg.pq import TransactionStatus

        return self._connection.info.transaction_status != TransactionStatus.IDLE

    def interrupt(self) -> None:
        self._connection.cancel()
