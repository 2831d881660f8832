"""Mapping registry - derive and cache record mappings per type.

Mappings are built on first use and shared afterwards. Lookups of cached
types take no lock; building is serialized by a population lock with a
second check under the lock, so each type is built at most once per cache
generation. Changing naming sources or resetting takes the outer lock and
then the population lock, and starts a new generation.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import typing
from collections.abc import Iterable
from types import MappingProxyType
from typing import Any

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    ConfigDict,
    TypeAdapter,
    field_validator,
)
from pydantic.errors import PydanticSchemaGenerationError
from pydantic.fields import FieldInfo

from row_tx.core.exceptions import (
    DuplicateColumnError,
    FieldAccessError,
    WrongTypeError,
)
from row_tx.mapping.descriptor import FieldDescriptor, Mapping
from row_tx.mapping.naming import (
    DEFAULT_NAMING_SOURCES,
    dataclass_annotations,
    pydantic_annotations,
    resolve_column,
)
from row_tx.mapping.scanner import DEFAULT_SCAN_CAPACITY, RowScanner

logger = logging.getLogger(__name__)

_ANY_ADAPTER: TypeAdapter[Any] = TypeAdapter(Any)


class MappingConfig(BaseModel):
    """Configuration for a MappingRegistry."""

    naming_sources: tuple[str, ...] = DEFAULT_NAMING_SOURCES
    scan_capacity: int = DEFAULT_SCAN_CAPACITY

    @field_validator("naming_sources")
    @classmethod
    def _check_sources(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if len(set(value)) != len(value):
            raise ValueError(f"naming sources must be unique: {value}")
        if any(not key for key in value):
            raise ValueError("naming sources must be non-empty strings")
        return value

    @field_validator("scan_capacity")
    @classmethod
    def _check_capacity(cls, value: int) -> int:
        if value < 1:
            raise ValueError("scan_capacity must be at least 1")
        return value


def is_pydantic_model(cls: type) -> bool:
    """Check if a class is a Pydantic BaseModel."""
    return isinstance(cls, type) and issubclass(cls, BaseModel)


def is_record_type(cls: Any) -> bool:
    """True for dataclass classes and pydantic model classes."""
    return isinstance(cls, type) and (dataclasses.is_dataclass(cls) or is_pydantic_model(cls))


def _record_type_of(record: Any) -> type:
    cls = record if isinstance(record, type) else type(record)
    if not is_record_type(cls):
        raise WrongTypeError(cls)
    return cls


def _type_adapter(tp: Any) -> TypeAdapter[Any]:
    if tp is Any:
        return _ANY_ADAPTER
    try:
        return TypeAdapter(tp)
    except PydanticSchemaGenerationError:
        # arbitrary classes (driver types, enums of foreign libs): isinstance check only
        return TypeAdapter(tp, config=ConfigDict(arbitrary_types_allowed=True))


def _resolved_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError):
        logger.debug("Could not resolve type hints of %s, binding untyped", cls.__qualname__)
        return {}


def _dataclass_fields(cls: type, sources: tuple[str, ...]) -> list[FieldDescriptor]:
    hints = _resolved_hints(cls)
    descriptors: list[FieldDescriptor] = []
    for f in dataclasses.fields(cls):
        tp = hints.get(f.name, f.type if not isinstance(f.type, str) else Any)
        descriptors.append(
            FieldDescriptor(
                name=f.name,
                column=resolve_column(f.name, dataclass_annotations(f), sources),
                type=tp,
                adapter=_type_adapter(tp),
                init=f.init,
            )
        )
    return descriptors


def _input_path(name: str, info: FieldInfo) -> tuple[str | int, ...]:
    """Where model_validate looks for a field: its first accepted alias."""
    alias = info.validation_alias
    if isinstance(alias, str):
        return (alias,)
    if isinstance(alias, AliasChoices):
        return tuple(alias.convert_to_aliases()[0])
    if isinstance(alias, AliasPath):
        return tuple(alias.convert_to_aliases())
    return (info.alias or name,)


def _pydantic_fields(cls: type[BaseModel], sources: tuple[str, ...]) -> list[FieldDescriptor]:
    descriptors: list[FieldDescriptor] = []
    for name, info in cls.model_fields.items():
        descriptors.append(
            FieldDescriptor(
                name=name,
                column=resolve_column(name, pydantic_annotations(info), sources),
                type=info.annotation,
                # model_validate converts when the record is built
                adapter=_ANY_ADAPTER,
                input_path=_input_path(name, info),
            )
        )
    return descriptors


def build_mapping(cls: type, sources: Iterable[str] = DEFAULT_NAMING_SOURCES) -> Mapping:
    """Build a fresh (uncached) Mapping for a record class."""
    sources = tuple(sources)
    pydantic = is_pydantic_model(cls)
    if pydantic:
        descriptors = _pydantic_fields(cls, sources)
    elif dataclasses.is_dataclass(cls):
        descriptors = _dataclass_fields(cls, sources)
    else:
        raise WrongTypeError(cls)

    columns: dict[str, FieldDescriptor] = {}
    for descriptor in descriptors:
        if descriptor.column in columns:
            raise DuplicateColumnError(
                cls, descriptor.column, [columns[descriptor.column].name, descriptor.name]
            )
        columns[descriptor.column] = descriptor

    return Mapping(
        record_type=cls,
        fields=tuple(descriptors),
        columns=MappingProxyType(columns),
        is_pydantic=pydantic,
    )


class MappingRegistry:
    """Process-wide (or test-scoped) cache of record mappings.

    Args:
        naming_sources: Annotation keys consulted, in order, for column names.
        scan_capacity: Initial buffer size of scanners created by ``scanner``.
    """

    def __init__(
        self,
        naming_sources: Iterable[str] = DEFAULT_NAMING_SOURCES,
        scan_capacity: int = DEFAULT_SCAN_CAPACITY,
    ) -> None:
        config = MappingConfig(naming_sources=tuple(naming_sources), scan_capacity=scan_capacity)
        self._naming_sources = config.naming_sources
        self._scan_capacity = config.scan_capacity
        self._mappings: dict[type, Mapping] = {}
        self._lock = threading.Lock()
        self._populate_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: MappingConfig) -> MappingRegistry:
        """Create a MappingRegistry from a MappingConfig."""
        return cls(naming_sources=config.naming_sources, scan_capacity=config.scan_capacity)

    @property
    def naming_sources(self) -> tuple[str, ...]:
        return self._naming_sources

    @property
    def scan_capacity(self) -> int:
        return self._scan_capacity

    def get_mapping(self, record: Any) -> Mapping:
        """Return the shared Mapping for a record class or instance.

        Raises:
            WrongTypeError: If the class is not a dataclass or pydantic model.
        """
        cls = _record_type_of(record)
        mapping = self._mappings.get(cls)
        if mapping is not None:
            return mapping

        with self._populate_lock:
            mapping = self._mappings.get(cls)
            if mapping is None:
                mapping = build_mapping(cls, self._naming_sources)
                self._mappings[cls] = mapping
                logger.debug("Mapped %s to columns %s", cls.__qualname__, mapping.column_names)
            return mapping

    def scanner(self, record: Any) -> RowScanner[Any]:
        """Return a RowScanner for a record class or instance."""
        return RowScanner(self.get_mapping(record), initial_capacity=self._scan_capacity)

    def set_naming_sources(self, *sources: str) -> None:
        """Replace the naming source priority and drop all cached mappings."""
        validated = MappingConfig(naming_sources=sources).naming_sources
        with self._lock, self._populate_lock:
            self._naming_sources = validated
            self._mappings = {}
        logger.debug("Naming sources set to %s, mapping cache cleared", validated)

    def reset(self) -> None:
        """Drop all cached mappings. Mappings already handed out stay valid."""
        with self._lock, self._populate_lock:
            self._mappings = {}
        logger.debug("Mapping cache cleared")

    def __contains__(self, record: Any) -> bool:
        cls = record if isinstance(record, type) else type(record)
        return cls in self._mappings

    def __len__(self) -> int:
        """Number of cached mappings."""
        return len(self._mappings)


_default_registry = MappingRegistry()


def default_registry() -> MappingRegistry:
    """The registry used when no explicit registry is passed."""
    return _default_registry


def get_mapping(record: Any, registry: MappingRegistry | None = None) -> Mapping:
    """Return the Mapping for a record class or instance."""
    return (registry if registry is not None else _default_registry).get_mapping(record)


def values_of(record: Any, registry: MappingRegistry | None = None) -> list[Any]:
    """Return a record's field values in mapping order.

    Raises:
        WrongTypeError: If ``record`` is not a dataclass or pydantic instance.
        FieldAccessError: If a field was never set on the instance.
    """
    if isinstance(record, type):
        raise WrongTypeError(record)
    mapping = get_mapping(record, registry)
    values: list[Any] = []
    for f in mapping.fields:
        try:
            values.append(getattr(record, f.name))
        except AttributeError:
            raise FieldAccessError(mapping.record_type, f.name) from None
    return values
