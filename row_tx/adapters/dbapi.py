"""Generic PEP 249 adapter.

Drives transactions with explicit BEGIN / COMMIT / ROLLBACK statements on a
connection in autocommit mode, so the transaction options can be expressed
in SQL. Backend adapters subclass DBAPIDatabase and supply the statements.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from row_tx.adapters.protocol import TxOptions
from row_tx.core.context import Context
from row_tx.core.exceptions import BindingError, TransactionStateError
from row_tx.core.result import ExecResult
from row_tx.mapping.scanner import ScanSlot

logger = logging.getLogger(__name__)

_LOCK_POLL_SECONDS = 0.05


class DBAPIRowCursor:
    """RowCursor over a PEP 249 cursor, fetching one row per ``advance``."""

    def __init__(self, cursor: Any, ctx: Context) -> None:
        self._cursor = cursor
        self._ctx = ctx
        self._row: Any = None
        self._error: Exception | None = None
        self._closed = False

    @property
    def columns(self) -> list[str]:
        if self._cursor.description is None:
            return []
        return [desc[0] for desc in self._cursor.description]

    def advance(self) -> bool:
        if self._closed or self._error is not None:
            return False
        try:
            self._row = self._cursor.fetchone()
        except Exception as e:
            self._row = None
            self._error = e
            # an interrupted fetch reports the cancellation, not the driver error
            self._ctx.raise_if_cancelled()
            return False
        return self._row is not None

    def scan(self, slots: Sequence[ScanSlot]) -> None:
        if self._row is None:
            raise BindingError("no current row, advance() first")
        if isinstance(self._row, Mapping):
            values = list(self._row.values())
        else:
            values = list(self._row)
        if len(values) != len(slots):
            raise BindingError(
                f"expected {len(slots)} destination columns, row has {len(values)}"
            )
        for slot, value in zip(slots, values, strict=True):
            slot.assign(value)

    def error(self) -> BaseException | None:
        return self._error

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._cursor.close()


class DBAPIStatement:
    """Statement text bound to a connection; each run opens a fresh cursor."""

    def __init__(self, database: DBAPIDatabase, sql: str) -> None:
        self._database = database
        self._sql = sql
        self._closed = False

    def _run(self, ctx: Context, args: Sequence[Any]) -> Any:
        if self._closed:
            raise TransactionStateError("closed", "execute statement")
        ctx.raise_if_cancelled()
        cursor = self._database.connection.cursor()
        try:
            cursor.execute(self._sql, self._database.parameters(args))
        except Exception:
            cursor.close()
            ctx.raise_if_cancelled()
            raise
        return cursor

    def execute(self, ctx: Context, args: Sequence[Any]) -> ExecResult:
        cursor = self._run(ctx, args)
        try:
            rowcount = cursor.rowcount
            return ExecResult(
                rows_affected=rowcount if rowcount is not None else -1,
                last_insert_id=getattr(cursor, "lastrowid", None),
            )
        finally:
            cursor.close()

    def query(self, ctx: Context, args: Sequence[Any]) -> DBAPIRowCursor:
        return DBAPIRowCursor(self._run(ctx, args), ctx)

    def close(self) -> None:
        self._closed = True


class DBAPITransaction:
    """An open transaction on a DBAPIDatabase connection."""

    def __init__(
        self,
        database: DBAPIDatabase,
        options: TxOptions,
        unregister: Callable[[], None],
    ) -> None:
        self._database = database
        self._options = options
        self._unregister = unregister
        self._finished = False

    @property
    def options(self) -> TxOptions:
        return self._options

    def prepare(self, ctx: Context, sql: str) -> DBAPIStatement:
        if self._finished:
            raise TransactionStateError("finished", "prepare")
        ctx.raise_if_cancelled()
        return DBAPIStatement(self._database, sql)

    def commit(self) -> None:
        self._finish("COMMIT")

    def rollback(self) -> None:
        self._finish("ROLLBACK")

    def _finish(self, terminal: str) -> None:
        if self._finished:
            raise TransactionStateError("finished", terminal.lower())
        self._finished = True
        try:
            self._database.run(terminal)
        except Exception:
            if terminal == "COMMIT" and self._database.in_transaction():
                self._database.abandon()
            raise
        finally:
            self._unregister()
            self._database.release(self._options)


class DBAPIDatabase:
    """Database handle over one autocommit-mode PEP 249 connection.

    One transaction runs on the connection at a time; ``begin`` waits for
    the previous one to finish, or for ``ctx`` to be cancelled. A thread
    that already holds the connection's transaction cannot begin another.

    Args:
        connection: An open PEP 249 connection in autocommit mode.
    """

    def __init__(self, connection: Any) -> None:
        self._connection = connection
        self._lock = threading.Lock()
        self._owner: int | None = None

    @property
    def connection(self) -> Any:
        return self._connection

    def begin(self, ctx: Context, options: TxOptions) -> DBAPITransaction:
        statements = self.begin_statements(options)
        if self._owner == threading.get_ident():
            raise TransactionStateError("active", "begin nested")
        while not self._lock.acquire(timeout=_LOCK_POLL_SECONDS):
            ctx.raise_if_cancelled()
        self._owner = threading.get_ident()
        try:
            ctx.raise_if_cancelled()
            for sql in statements:
                self.run(sql)
        except BaseException:
            self._reset_session(options)
            self._unlock()
            raise
        unregister = ctx.on_cancel(self.interrupt)
        return DBAPITransaction(self, options, unregister)

    def run(self, sql: str) -> None:
        """Execute a parameterless control statement."""
        cursor = self._connection.cursor()
        try:
            cursor.execute(sql)
        finally:
            cursor.close()

    def release(self, options: TxOptions) -> None:
        """Restore session state after a transaction and free the connection."""
        try:
            self._reset_session(options)
        finally:
            self._unlock()

    def _unlock(self) -> None:
        self._owner = None
        self._lock.release()

    def abandon(self) -> None:
        """Roll back a transaction left open by a failed COMMIT."""
        try:
            self.run("ROLLBACK")
        except Exception as e:
            logger.warning("Rollback after failed commit also failed: %s", e)

    def _reset_session(self, options: TxOptions) -> None:
        for sql in self.reset_statements(options):
            try:
                self.run(sql)
            except Exception as e:
                logger.warning("Failed to reset session with %r: %s", sql, e)

    def parameters(self, args: Sequence[Any]) -> Any:
        """Driver parameters for positional ``args``."""
        return tuple(args)

    def begin_statements(self, options: TxOptions) -> list[str]:
        """Statements that open a transaction with ``options``."""
        return ["BEGIN"]

    def reset_statements(self, options: TxOptions) -> list[str]:
        """Statements undoing session changes made by ``begin_statements``."""
        return []

    def in_transaction(self) -> bool:
        return False

    def interrupt(self) -> None:
        """Abort the statement currently running on the connection, if possible."""

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> DBAPIDatabase:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: Any, exc_tb: Any) -> None:
        self.close()
