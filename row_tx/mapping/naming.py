"""Column name resolution.

A field's column name comes from the first naming source, in priority order,
that carries an annotation for it. Sources are annotation keys:

    @dataclass
    class User:
        id: int = field(metadata={"dbfield": "user_id"})
        name: str = field(metadata={"json": "display_name,omitempty"})
        email: str

resolves to the columns ``user_id``, ``display_name`` and ``email``.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic.fields import FieldInfo

DBFIELD = "dbfield"
DB_MAP_NAME = "dbMapName"
SERIALIZATION_KEY = "json"

DEFAULT_NAMING_SOURCES: tuple[str, ...] = (DBFIELD, DB_MAP_NAME, SERIALIZATION_KEY)


def _serialization_name(value: Any) -> str | None:
    """Column name from a serialization annotation, None if suppressed."""
    name = str(value).split(",", 1)[0].strip()
    if not name or name == "-":
        return None
    return name


def dataclass_annotations(f: dataclasses.Field[Any]) -> Mapping[str, Any]:
    """Naming annotations of a dataclass field (its metadata)."""
    return f.metadata


def pydantic_annotations(info: FieldInfo) -> Mapping[str, Any]:
    """Naming annotations of a pydantic field.

    Keys come from a dict ``json_schema_extra``; the serialization key falls
    back to the field's serialization alias, then its alias.
    """
    annotations: dict[str, Any] = {}
    if isinstance(info.json_schema_extra, dict):
        annotations.update(info.json_schema_extra)
    alias = info.serialization_alias or info.alias
    if alias:
        annotations.setdefault(SERIALIZATION_KEY, alias)
    return annotations


def resolve_column(
    field_name: str,
    annotations: Mapping[str, Any],
    sources: Iterable[str] = DEFAULT_NAMING_SOURCES,
) -> str:
    """Return the column name for a field; first matching source wins."""
    for key in sources:
        value = annotations.get(key)
        if value is None:
            continue
        if key == SERIALIZATION_KEY:
            name = _serialization_name(value)
        else:
            name = str(value) or None
        if name is not None:
            return name
    return field_name
