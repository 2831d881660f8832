"""Mapping descriptor data classes.

Frozen dataclasses describing how a record type's fields line up with
result-set columns. Built once per type by the MappingRegistry and shared
by every scanner and statement that uses the type.
"""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import TypeAdapter


@dataclass(frozen=True)
class FieldDescriptor:
    """One record field and the column it binds to."""

    name: str
    column: str
    type: Any
    adapter: TypeAdapter[Any] = field(compare=False, repr=False)
    init: bool = True
    # model_validate input location; differs from (name,) for aliased pydantic fields
    input_path: tuple[str | int, ...] = ()

    def convert(self, value: Any) -> Any:
        """Validate and coerce a raw column value to the field type."""
        return self.adapter.validate_python(value)

    @property
    def type_name(self) -> str:
        if isinstance(self.type, type):
            return self.type.__qualname__
        return repr(self.type).removeprefix("typing.")


@dataclass(frozen=True, eq=False)
class Mapping:
    """Column-to-field correspondence for one record type.

    ``fields`` keeps declaration order and is used positionally when binding
    scan destinations. ``columns`` indexes the same descriptors by column.
    """

    record_type: type
    fields: tuple[FieldDescriptor, ...]
    columns: MappingABC[str, FieldDescriptor]
    is_pydantic: bool = False

    @property
    def column_names(self) -> tuple[str, ...]:
        """Resolved column names in field order."""
        return tuple(f.column for f in self.fields)

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def describe(self) -> dict[str, dict[str, str]]:
        """JSON-friendly summary: column -> field name and type."""
        return {f.column: {"field": f.name, "type": f.type_name} for f in self.fields}

    def build(self, values: Sequence[Any]) -> Any:
        """Construct a record from values given in field order."""
        if self.is_pydantic:
            data: dict[str, Any] = {}
            for f, value in zip(self.fields, values, strict=True):
                _place(data, f.input_path or (f.name,), value)
            return self.record_type.model_validate(data)  # type: ignore[attr-defined]

        kwargs: dict[str, Any] = {}
        late: list[tuple[str, Any]] = []
        for f, value in zip(self.fields, values, strict=True):
            if f.init:
                kwargs[f.name] = value
            else:
                late.append((f.name, value))
        record = self.record_type(**kwargs)
        # init=False fields; object.__setattr__ also covers frozen dataclasses
        for name, value in late:
            object.__setattr__(record, name, value)
        return record


def _place(container: Any, path: tuple[str | int, ...], value: Any) -> None:
    """Store ``value`` at an alias path, creating nested dicts and lists."""
    key, rest = path[0], path[1:]
    if isinstance(key, int):
        container.extend([None] * (key + 1 - len(container)))
    if not rest:
        container[key] = value
        return
    child = container[key] if isinstance(key, int) else container.get(key)
    if child is None:
        child = [] if isinstance(rest[0], int) else {}
        container[key] = child
    _place(child, rest, value)
