"""Statement execution outcomes.

Frozen snapshots of what the driver reported, detached from the cursor that
produced them.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ExecResult:
    """Outcome of one statement execution.

    ``rows_affected`` is -1 when the driver cannot tell; ``last_insert_id``
    is None when the driver does not report one.
    """

    rows_affected: int = -1
    last_insert_id: int | None = None


@dataclass(frozen=True)
class BulkResult:
    """Outcomes of a per-object bulk execution, in object order."""

    results: tuple[ExecResult, ...] = field(default_factory=tuple)

    @property
    def executions(self) -> int:
        """Number of completed executions."""
        return len(self.results)

    @property
    def rows_affected(self) -> int:
        """Total rows affected, ignoring executions the driver could not count."""
        return sum(r.rows_affected for r in self.results if r.rows_affected >= 0)

    @property
    def last_insert_ids(self) -> list[int | None]:
        return [r.last_insert_id for r in self.results]

    def __len__(self) -> int:
        return len(self.results)
