"""Row scanner - materialize records from a row cursor.

Binds each row positionally into one ScanSlot per mapped field, then builds
a fresh record from the slot values.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from row_tx.core.exceptions import BindingError, ContextCancelledError, IncompleteScanError
from row_tx.mapping.descriptor import FieldDescriptor, Mapping
from row_tx.mapping.protocol import RowCursor

T = TypeVar("T")

DEFAULT_SCAN_CAPACITY = 256


class ScanSlot:
    """Destination for one column of the current row."""

    __slots__ = ("descriptor", "value", "bound")

    def __init__(self, descriptor: FieldDescriptor) -> None:
        self.descriptor = descriptor
        self.value: Any = None
        self.bound = False

    @property
    def column(self) -> str:
        return self.descriptor.column

    def assign(self, value: Any) -> None:
        """Convert ``value`` to the field type and store it."""
        try:
            self.value = self.descriptor.convert(value)
        except ValidationError as e:
            raise BindingError(
                f"column '{self.column}' cannot hold {value!r} "
                f"({e.error_count()} validation errors)"
            ) from e
        self.bound = True

    def __repr__(self) -> str:
        return f"<ScanSlot {self.column}={self.value!r}>"


class RowScanner(Generic[T]):
    """Populate records of one mapped type from a RowCursor.

    Args:
        mapping: Mapping of the record type to produce.
        initial_capacity: Starting size of the scan_many buffer. The buffer
            doubles whenever it fills up.
    """

    def __init__(self, mapping: Mapping, initial_capacity: int = DEFAULT_SCAN_CAPACITY) -> None:
        if initial_capacity < 1:
            raise ValueError(f"initial_capacity must be positive, got {initial_capacity}")
        self._mapping = mapping
        self._initial_capacity = initial_capacity

    @property
    def mapping(self) -> Mapping:
        return self._mapping

    def scan_one(self, cursor: RowCursor) -> T:
        """Bind the cursor's current row into a new record.

        The cursor must already be positioned on a row; this does not advance.
        """
        slots = [ScanSlot(f) for f in self._mapping.fields]
        try:
            cursor.scan(slots)
        except (BindingError, ContextCancelledError):
            raise
        except Exception as e:
            raise BindingError(str(e)) from e

        unbound = [slot.column for slot in slots if not slot.bound]
        if unbound:
            raise BindingError(f"columns not populated: {unbound}")

        try:
            record: T = self._mapping.build([slot.value for slot in slots])
            return record
        except (ValidationError, TypeError, ValueError) as e:
            raise BindingError(
                f"cannot construct {self._mapping.record_type.__name__}: {e}"
            ) from e

    def scan_many(self, cursor: RowCursor, limit: int = -1) -> list[T]:
        """Advance and scan up to ``limit`` rows; negative means unbounded.

        Raises IncompleteScanError carrying the rows scanned so far if a row
        fails to bind.
        """
        if limit == 0:
            return []

        capacity = self._initial_capacity if limit < 0 else min(self._initial_capacity, limit)
        buffer: list[Any] = [None] * capacity
        count = 0
        while (limit < 0 or count < limit) and cursor.advance():
            if count == len(buffer):
                buffer.extend([None] * len(buffer))
            try:
                buffer[count] = self.scan_one(cursor)
            except BindingError as e:
                del buffer[count:]
                raise IncompleteScanError(buffer, count, e.detail) from e
            count += 1

        del buffer[count:]
        return buffer
