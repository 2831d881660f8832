"""RowTx exception hierarchy.

Driver exceptions are wrapped into RowTx types at lifecycle boundaries.
Exceptions raised by caller code inside a transaction pass through unchanged.
"""

from __future__ import annotations

from typing import Any


class RowTxError(Exception):
    """Base exception for all RowTx errors."""


# --- Mapping ---


class MappingError(RowTxError):
    """Base for mapping errors."""


class WrongTypeError(MappingError):
    """Raised when a value does not resolve to a structured record."""

    def __init__(self, value_type: type) -> None:
        self.value_type = value_type
        super().__init__(
            f"Expected a dataclass or pydantic model, got {value_type.__qualname__}"
        )


class DuplicateColumnError(MappingError):
    """Raised when two fields of one record resolve to the same column."""

    def __init__(self, record_type: type, column: str, fields: list[str]) -> None:
        self.record_type = record_type
        self.column = column
        self.fields = fields
        super().__init__(
            f"Column '{column}' of {record_type.__name__} is claimed by fields {fields}"
        )


class FieldAccessError(MappingError):
    """Raised when a record field value cannot be read."""

    def __init__(self, record_type: type, field_name: str) -> None:
        self.record_type = record_type
        self.field_name = field_name
        super().__init__(f"Cannot read field '{field_name}' of {record_type.__name__}")


class BindingError(MappingError):
    """Raised when a row cannot populate a record."""

    def __init__(self, detail: str, row_index: int | None = None) -> None:
        self.detail = detail
        self.row_index = row_index
        if row_index is None:
            super().__init__(f"Error scanning row: {detail}")
        else:
            super().__init__(f"Error scanning row #{row_index}: {detail}")


# --- Partial results ---


class PartialResultError(RowTxError):
    """Raised when a multi-step operation stops after producing some results.

    The results gathered before the failure are available as ``results``;
    the failure itself is the ``__cause__``.
    """

    def __init__(self, message: str, results: Any) -> None:
        self.results = results
        super().__init__(message)


class IncompleteScanError(PartialResultError):
    """Raised when scanning stops on a failing row."""

    def __init__(self, results: list[Any], row_index: int, detail: str) -> None:
        self.row_index = row_index
        super().__init__(
            f"Scan stopped at row #{row_index} after {len(results)} rows: {detail}",
            results,
        )


class IncompleteExecutionError(PartialResultError):
    """Raised when a per-object bulk execution stops on a failing object."""

    def __init__(self, results: Any, object_index: int, detail: str) -> None:
        self.object_index = object_index
        super().__init__(
            f"Execution stopped at object #{object_index} after "
            f"{results.executions} executions: {detail}",
            results,
        )


# --- Transaction ---


class TransactionError(RowTxError):
    """Base for transaction errors."""


class BeginError(TransactionError):
    """Raised when a transaction cannot be started."""


class CommitError(TransactionError):
    """Raised when committing a transaction fails."""


class RollbackError(TransactionError):
    """Raised when rolling back after a failure fails as well.

    Keeps both the failure that triggered the rollback and the rollback
    failure itself.
    """

    def __init__(self, original: BaseException, rollback_error: BaseException) -> None:
        self.original = original
        self.rollback_error = rollback_error
        super().__init__(f"{rollback_error}: {original}")


class TransactionStateError(TransactionError):
    """Raised on invalid transaction state transitions."""

    def __init__(self, current_state: str, attempted_action: str) -> None:
        self.current_state = current_state
        self.attempted_action = attempted_action
        super().__init__(f"Cannot {attempted_action} transaction in state '{current_state}'")


# --- Execution ---


class ExecutionError(RowTxError):
    """Base for statement execution errors."""


class QueryBuildError(ExecutionError):
    """Raised when a query builder fails to produce SQL."""


class StatementError(ExecutionError):
    """Raised when preparing or executing a statement fails."""

    def __init__(self, stage: str, sql: str, detail: str) -> None:
        self.stage = stage
        self.sql = sql
        super().__init__(f"Failed to {stage} statement {sql!r}: {detail}")


class EmptyObjectListError(ExecutionError):
    """Raised when a bulk operation receives no objects."""

    def __init__(self) -> None:
        super().__init__("`objs` is empty")


# --- Context ---


class ContextCancelledError(RowTxError):
    """Raised when work is attempted on a cancelled context."""

    def __init__(self, detail: str = "context canceled") -> None:
        super().__init__(detail)


class DeadlineExceededError(ContextCancelledError):
    """Raised when a context deadline passes."""

    def __init__(self) -> None:
        super().__init__("context deadline exceeded")


# --- Adapter ---


class AdapterError(RowTxError):
    """Base for adapter errors."""
