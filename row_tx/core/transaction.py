"""Transaction management.

A UnitOfWork wraps one driver transaction: begin on enter, commit when the
block completes, roll back when it raises. ``with_tx`` runs a function inside
one and is what the CRUD operations build on.

    def transfer(ctx, tx):
        with tx.prepare("UPDATE account SET balance = balance - ? WHERE id = ?") as stmt:
            stmt.execute((amount, source_id))
        ...

    with_write_tx(db, None, transfer)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Any, TypeVar

from row_tx.adapters.protocol import Database, Statement, Transaction, TxOptions
from row_tx.core.context import Context
from row_tx.core.enums import IsolationLevel
from row_tx.core.exceptions import (
    BeginError,
    CommitError,
    RollbackError,
    RowTxError,
    StatementError,
    TransactionStateError,
)
from row_tx.core.result import ExecResult
from row_tx.mapping.protocol import RowCursor

logger = logging.getLogger(__name__)

R = TypeVar("R")

READ_ONLY = TxOptions(isolation=IsolationLevel.DEFAULT, read_only=True)
READ_WRITE = TxOptions(isolation=IsolationLevel.DEFAULT, read_only=False)


class _TxState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class PreparedStatement:
    """Statement bound to a unit-of-work context.

    Driver failures surface as StatementError; RowTx errors raised by the
    adapter (cancellation, for instance) pass through as they are.
    """

    def __init__(self, statement: Statement, sql: str, ctx: Context) -> None:
        self._statement = statement
        self._sql = sql
        self._ctx = ctx

    @property
    def sql(self) -> str:
        return self._sql

    def execute(self, args: Sequence[Any] = ()) -> ExecResult:
        try:
            return self._statement.execute(self._ctx, args)
        except RowTxError:
            raise
        except Exception as e:
            raise StatementError("execute", self._sql, str(e)) from e

    def query(self, args: Sequence[Any] = ()) -> RowCursor:
        try:
            return self._statement.query(self._ctx, args)
        except RowTxError:
            raise
        except Exception as e:
            raise StatementError("query", self._sql, str(e)) from e

    def close(self) -> None:
        self._statement.close()

    def __enter__(self) -> PreparedStatement:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class UnitOfWork:
    """Synchronous transaction context manager.

    Commits when the block exits normally and rolls back when it raises.
    Exactly one of commit or rollback reaches the driver, once.

    Args:
        database: Handle to begin the transaction against.
        ctx: Parent context. When None, a background context is created and
            cancelled on exit.
        options: Isolation level and read-only flag.
    """

    def __init__(
        self,
        database: Database,
        ctx: Context | None = None,
        options: TxOptions = READ_WRITE,
    ) -> None:
        self._database = database
        self._parent_ctx = ctx
        self._options = options
        self._owned_ctx: Context | None = None
        self._context: Context | None = None
        self._tx: Transaction | None = None
        self._state = _TxState.IDLE

    @property
    def context(self) -> Context:
        """Child context scoped to this unit of work."""
        if self._context is None:
            raise TransactionStateError(self._state.value, "use context of")
        return self._context

    @property
    def options(self) -> TxOptions:
        return self._options

    @property
    def state(self) -> str:
        return self._state.value

    def __enter__(self) -> UnitOfWork:
        if self._state != _TxState.IDLE:
            raise TransactionStateError(self._state.value, "begin")

        parent = self._parent_ctx
        if parent is None:
            self._owned_ctx = parent = Context.background()

        try:
            self._tx = self._database.begin(parent, self._options)
        except RowTxError:
            self._release_contexts()
            raise
        except Exception as e:
            self._release_contexts()
            raise BeginError(f"Failed to begin transaction: {e}") from e

        self._context = parent.with_cancel()
        self._state = _TxState.ACTIVE
        logger.debug(
            "Started transaction (isolation=%s, read_only=%s)",
            self._options.isolation.value,
            self._options.read_only,
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        try:
            if self._state != _TxState.ACTIVE:
                return
            if exc_val is None:
                self._commit()
                return

            rollback_error = self._rollback(exc_val)
            if rollback_error is None:
                return
            if isinstance(exc_val, Exception):
                raise RollbackError(exc_val, rollback_error) from exc_val
            # KeyboardInterrupt, SystemExit and friends keep propagating as themselves
            exc_val.add_note(f"rollback failed: {rollback_error}")
            if exc_val.__context__ is None:
                exc_val.__context__ = rollback_error
        finally:
            self._release_contexts()

    def prepare(self, sql: str) -> PreparedStatement:
        """Prepare a statement within this transaction."""
        self._check_active()
        assert self._tx is not None and self._context is not None
        try:
            statement = self._tx.prepare(self._context, sql)
        except RowTxError:
            raise
        except Exception as e:
            raise StatementError("prepare", sql, str(e)) from e
        return PreparedStatement(statement, sql, self._context)

    def execute(self, sql: str, args: Sequence[Any] = ()) -> ExecResult:
        """Prepare, execute and close a statement in one call."""
        with self.prepare(sql) as statement:
            return statement.execute(args)

    def _commit(self) -> None:
        assert self._tx is not None
        self._state = _TxState.COMMITTED
        try:
            self._tx.commit()
        except Exception as e:
            logger.error("Commit failed: %s", e)
            raise CommitError(str(e)) from e
        logger.debug("Committed transaction")

    def _rollback(self, cause: BaseException) -> Exception | None:
        """Roll back, returning the rollback failure instead of raising it."""
        assert self._tx is not None
        self._state = _TxState.ROLLED_BACK
        try:
            self._tx.rollback()
        except Exception as e:
            logger.error("Rollback after %r failed: %s", cause, e)
            return e
        logger.warning("Rolled back transaction after %r", cause)
        return None

    def _release_contexts(self) -> None:
        if self._context is not None:
            self._context.cancel()
        if self._owned_ctx is not None:
            self._owned_ctx.cancel()

    def _check_active(self) -> None:
        if self._state != _TxState.ACTIVE:
            raise TransactionStateError(self._state.value, "execute")


TransactionHandler = Callable[[Context, UnitOfWork], R]


def with_tx(
    database: Database,
    ctx: Context | None,
    options: TxOptions,
    fn: TransactionHandler[R],
) -> R:
    """Run ``fn`` inside a new transaction and return its result.

    ``fn`` receives a child context of ``ctx`` (cancelled when this returns)
    and the unit of work. The transaction commits if ``fn`` returns and rolls
    back if it raises.

    Raises:
        BeginError: The transaction could not be started.
        CommitError: ``fn`` succeeded but the commit failed.
        RollbackError: ``fn`` raised and the rollback failed too.
    """
    with UnitOfWork(database, ctx, options) as tx:
        return fn(tx.context, tx)


def with_read_tx(
    database: Database,
    ctx: Context | None,
    fn: TransactionHandler[R],
) -> R:
    """``with_tx`` with default isolation, read-only."""
    return with_tx(database, ctx, READ_ONLY, fn)


def with_write_tx(
    database: Database,
    ctx: Context | None,
    fn: TransactionHandler[R],
) -> R:
    """``with_tx`` with default isolation, read-write."""
    return with_tx(database, ctx, READ_WRITE, fn)
