"""Database handle protocols.

Every adapter module MUST implement these protocols. The transaction runner
and CRUD operations only ever talk to a driver through them.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from row_tx.core.context import Context
from row_tx.core.enums import IsolationLevel
from row_tx.core.result import ExecResult
from row_tx.mapping.protocol import RowCursor


@dataclass(frozen=True)
class TxOptions:
    """Options a transaction is started with."""

    isolation: IsolationLevel = IsolationLevel.DEFAULT
    read_only: bool = False


@runtime_checkable
class Statement(Protocol):
    """A statement prepared within a transaction."""

    def execute(self, ctx: Context, args: Sequence[Any]) -> ExecResult:
        """Execute with positional arguments and report the outcome."""
        ...

    def query(self, ctx: Context, args: Sequence[Any]) -> RowCursor:
        """Execute with positional arguments and return a row cursor."""
        ...

    def close(self) -> None:
        """Release the statement."""
        ...


@runtime_checkable
class Transaction(Protocol):
    """One open transaction on a connection."""

    def prepare(self, ctx: Context, sql: str) -> Statement:
        """Prepare ``sql`` for execution within this transaction."""
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


@runtime_checkable
class Database(Protocol):
    """Something transactions can be started against."""

    def begin(self, ctx: Context, options: TxOptions) -> Transaction:
        """Start a transaction. ``ctx`` cancellation should abort blocking work."""
        ...
