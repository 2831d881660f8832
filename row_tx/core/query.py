"""Query builder protocol and a plain SQL implementation.

RowTx does not build SQL. CRUD operations accept anything that can render
itself to ``(sql_text, positional_args)`` and report a row limit.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class QueryBuilder(Protocol):
    """Statement construction collaborator."""

    @property
    def limit(self) -> int | None:
        """Configured row limit, or None if unbounded."""
        ...

    def with_limit(self, limit: int) -> QueryBuilder:
        """Return a builder with the row limit set to ``limit``."""
        ...

    def to_sql(self) -> tuple[str, Sequence[Any]]:
        """Render the statement text and its positional bound arguments."""
        ...


def coerce_args(args: Sequence[Any] | Any) -> tuple[Any, ...]:
    """Normalize *args* to a tuple of positional arguments.

    * ``None`` → empty tuple.
    * ``tuple`` / ``list`` → tuple.
    * Any other scalar → single-element tuple.
    """
    if args is None:
        return ()
    if isinstance(args, (tuple, list)):
        return tuple(args)
    return (args,)


@dataclass(frozen=True)
class Query:
    """Literal SQL with positional arguments.

    The limit is not rendered into the SQL text; it only bounds how many
    rows a select reads from the cursor.

    Args:
        text: SQL text using the driver's positional placeholder style.
        args: Bound arguments, prepended to per-object values in bulk
            operations.
        limit: Maximum rows to read, None for unbounded.
    """

    text: str
    args: tuple[Any, ...] = field(default=())
    limit: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", coerce_args(self.args))

    def with_limit(self, limit: int) -> Query:
        return replace(self, limit=limit)

    def to_sql(self) -> tuple[str, tuple[Any, ...]]:
        return self.text, self.args
