"""Mapping layer - derive record mappings and scan rows into records."""

from __future__ import annotations

from row_tx.mapping.descriptor import FieldDescriptor, Mapping
from row_tx.mapping.naming import DB_MAP_NAME, DBFIELD, DEFAULT_NAMING_SOURCES, SERIALIZATION_KEY
from row_tx.mapping.protocol import RowCursor
from row_tx.mapping.registry import (
    MappingConfig,
    MappingRegistry,
    build_mapping,
    default_registry,
    get_mapping,
    values_of,
)
from row_tx.mapping.scanner import RowScanner, ScanSlot

__all__ = [
    "FieldDescriptor",
    "Mapping",
    "MappingConfig",
    "MappingRegistry",
    "build_mapping",
    "default_registry",
    "get_mapping",
    "values_of",
    "RowScanner",
    "ScanSlot",
    "RowCursor",
    "DBFIELD",
    "DB_MAP_NAME",
    "SERIALIZATION_KEY",
    "DEFAULT_NAMING_SOURCES",
]
