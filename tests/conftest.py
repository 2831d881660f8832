"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import pytest

from row_tx.adapters.protocol import TxOptions
from row_tx.core.connection import ConnectionConfig
from row_tx.core.context import Context
from row_tx.core.exceptions import BindingError
from row_tx.core.result import ExecResult
from row_tx.mapping.registry import MappingRegistry
from row_tx.mapping.scanner import ScanSlot


class FakeCursor:
    """In-memory RowCursor that counts calls.

    ``fail_at`` makes the advance onto that row index stop with ``failure``
    recorded as the cursor error.
    """

    def __init__(
        self,
        rows: Sequence[Sequence[Any]] = (),
        fail_at: int | None = None,
        failure: Exception | None = None,
    ) -> None:
        self.rows = [tuple(row) for row in rows]
        self.fail_at = fail_at
        self.failure = failure or RuntimeError("connection reset")
        self.position = -1
        self.advance_calls = 0
        self.scan_calls = 0
        self.closed = False
        self._error: Exception | None = None

    def advance(self) -> bool:
        self.advance_calls += 1
        if self._error is not None:
            return False
        if self.fail_at is not None and self.position + 1 == self.fail_at:
            self._error = self.failure
            return False
        self.position += 1
        return self.position < len(self.rows)

    def scan(self, slots: Sequence[ScanSlot]) -> None:
        self.scan_calls += 1
        row = self.rows[self.position]
        if len(row) != len(slots):
            raise BindingError(f"expected {len(slots)} destination columns, row has {len(row)}")
        for slot, value in zip(slots, row, strict=True):
            slot.assign(value)

    def error(self) -> Exception | None:
        return self._error

    def close(self) -> None:
        self.closed = True


class FakeStatement:
    def __init__(self, database: FakeDatabase, sql: str) -> None:
        self.database = database
        self.sql = sql
        self.closed = False

    def execute(self, ctx: Context, args: Sequence[Any]) -> ExecResult:
        index = len(self.database.executed)
        self.database.executed.append((self.sql, tuple(args)))
        error = self.database.execute_errors.get(index)
        if error is not None:
            raise error
        return ExecResult(rows_affected=1, last_insert_id=index + 1)

    def query(self, ctx: Context, args: Sequence[Any]) -> FakeCursor:
        self.database.queried.append((self.sql, tuple(args)))
        cursor = FakeCursor(self.database.rows, self.database.fail_at)
        self.database.cursors.append(cursor)
        return cursor

    def close(self) -> None:
        self.closed = True


class FakeTransaction:
    def __init__(self, database: FakeDatabase, ctx: Context, options: TxOptions) -> None:
        self.database = database
        self.ctx = ctx
        self.options = options
        self.commits = 0
        self.rollbacks = 0

    def prepare(self, ctx: Context, sql: str) -> FakeStatement:
        if self.database.prepare_error is not None:
            raise self.database.prepare_error
        statement = FakeStatement(self.database, sql)
        self.database.statements.append(statement)
        return statement

    def commit(self) -> None:
        self.commits += 1
        if self.database.commit_error is not None:
            raise self.database.commit_error

    def rollback(self) -> None:
        self.rollbacks += 1
        if self.database.rollback_error is not None:
            raise self.database.rollback_error


class FakeDatabase:
    """Database double recording every transaction, statement and cursor.

    Failures are injected by setting the ``*_error`` attributes, or
    ``execute_errors`` keyed by execution index.
    """

    def __init__(self, rows: Sequence[Sequence[Any]] = ()) -> None:
        self.rows = list(rows)
        self.fail_at: int | None = None
        self.begin_error: Exception | None = None
        self.prepare_error: Exception | None = None
        self.commit_error: Exception | None = None
        self.rollback_error: Exception | None = None
        self.execute_errors: dict[int, Exception] = {}
        self.transactions: list[FakeTransaction] = []
        self.statements: list[FakeStatement] = []
        self.cursors: list[FakeCursor] = []
        self.executed: list[tuple[str, tuple[Any, ...]]] = []
        self.queried: list[tuple[str, tuple[Any, ...]]] = []

    def begin(self, ctx: Context, options: TxOptions) -> FakeTransaction:
        if self.begin_error is not None:
            raise self.begin_error
        tx = FakeTransaction(self, ctx, options)
        self.transactions.append(tx)
        return tx

    @property
    def commits(self) -> int:
        return sum(tx.commits for tx in self.transactions)

    @property
    def rollbacks(self) -> int:
        return sum(tx.rollbacks for tx in self.transactions)


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def make_cursor():
    """Factory for FakeCursor.

    Usage:
        cursor = make_cursor([(1, "alice")], fail_at=1)
    """
    return FakeCursor


@pytest.fixture
def registry() -> MappingRegistry:
    """Isolated mapping registry."""
    return MappingRegistry()


@pytest.fixture
def sqlite_config() -> ConnectionConfig:
    """SQLite in-memory connection config."""
    return ConnectionConfig(driver="sqlite", database=":memory:")
