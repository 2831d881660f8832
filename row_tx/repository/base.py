"""Repository base class.

Thin wrapper binding one record type's mapping to the CRUD operations,
for DDD-oriented usage.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Generic, TypeVar

from row_tx.adapters.protocol import Database
from row_tx.core import crud
from row_tx.core.context import Context
from row_tx.core.exceptions import WrongTypeError
from row_tx.core.query import QueryBuilder
from row_tx.core.result import BulkResult, ExecResult
from row_tx.mapping.descriptor import Mapping
from row_tx.mapping.registry import MappingRegistry, default_registry

T = TypeVar("T")


class Repository(Generic[T]):
    """Base repository class for DDD-oriented usage.

    Subclasses define concrete data access methods in terms of ``get``,
    ``find``, ``add`` and friends; each call runs in its own transaction.
    Pass ``ctx`` to make a call cancellable.
    """

    def __init__(
        self,
        database: Database,
        record_type: type[T],
        registry: MappingRegistry | None = None,
    ) -> None:
        self.database = database
        self.record_type = record_type
        self.registry = registry if registry is not None else default_registry()
        # fail fast on non-record types
        self.registry.get_mapping(record_type)

    @property
    def mapping(self) -> Mapping:
        """Current mapping of the record type; follows registry resets."""
        return self.registry.get_mapping(self.record_type)

    def get(self, query: QueryBuilder, ctx: Context | None = None) -> T | None:
        """Return the first matching record, or None."""
        return crud.select_one(self.database, ctx, query, self.mapping)

    def find(self, query: QueryBuilder, ctx: Context | None = None) -> list[T]:
        """Return all matching records, up to the query's limit."""
        return crud.select(
            self.database, ctx, query, self.mapping, capacity=self.registry.scan_capacity
        )

    def add(self, query: QueryBuilder, obj: T, ctx: Context | None = None) -> ExecResult:
        """Insert one record with its fields bound after the query's own args."""
        return self.add_all(query, [obj], ctx).results[0]

    def add_all(
        self, query: QueryBuilder, objs: Iterable[T], ctx: Context | None = None
    ) -> BulkResult:
        """Insert records in one transaction."""
        return crud.insert_objects(
            self.database, ctx, query, self._checked(objs), registry=self.registry
        )

    def save_all(
        self, query: QueryBuilder, objs: Iterable[T], ctx: Context | None = None
    ) -> BulkResult:
        """Update records in one transaction."""
        return crud.update_objects(
            self.database, ctx, query, self._checked(objs), registry=self.registry
        )

    def remove(self, query: QueryBuilder, ctx: Context | None = None) -> ExecResult:
        return crud.delete(self.database, ctx, query)

    def _checked(self, objs: Iterable[T]) -> list[T]:
        objs = list(objs)
        for obj in objs:
            if not isinstance(obj, self.record_type):
                raise WrongTypeError(type(obj))
        return objs
