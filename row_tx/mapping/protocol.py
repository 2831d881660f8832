"""Row cursor protocol.

The RowScanner drives any object implementing this interface. Adapters wrap
driver cursors in it; tests substitute in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from row_tx.mapping.scanner import ScanSlot


@runtime_checkable
class RowCursor(Protocol):
    """Forward-only cursor over a result set."""

    def advance(self) -> bool:
        """Move to the next row. False once the result set is exhausted."""
        ...

    def scan(self, slots: Sequence[ScanSlot]) -> None:
        """Bind the current row's columns into ``slots``, positionally.

        Raises on a column count mismatch or when a value cannot populate
        its slot.
        """
        ...

    def error(self) -> BaseException | None:
        """Error that ended iteration early, if any."""
        ...

    def close(self) -> None:
        """Release the cursor."""
        ...
