"""RowTx - transactional CRUD over plain records with cached row mappings."""

from __future__ import annotations

from row_tx.adapters.protocol import Database, Statement, Transaction, TxOptions
from row_tx.core.connection import ConnectionConfig, open_database
from row_tx.core.context import Context
from row_tx.core.crud import (
    delete,
    insert,
    insert_objects,
    select,
    select_one,
    update,
    update_objects,
)
from row_tx.core.enums import DatabaseBackend, IsolationLevel
from row_tx.core.exceptions import (
    AdapterError,
    BeginError,
    BindingError,
    CommitError,
    ContextCancelledError,
    DeadlineExceededError,
    DuplicateColumnError,
    EmptyObjectListError,
    ExecutionError,
    FieldAccessError,
    IncompleteExecutionError,
    IncompleteScanError,
    MappingError,
    PartialResultError,
    QueryBuildError,
    RollbackError,
    RowTxError,
    StatementError,
    TransactionError,
    TransactionStateError,
    WrongTypeError,
)
from row_tx.core.query import Query, QueryBuilder
from row_tx.core.result import BulkResult, ExecResult
from row_tx.core.transaction import (
    READ_ONLY,
    READ_WRITE,
    UnitOfWork,
    with_read_tx,
    with_tx,
    with_write_tx,
)
from row_tx.mapping.registry import (
    MappingConfig,
    MappingRegistry,
    default_registry,
    get_mapping,
    values_of,
)
from row_tx.mapping.scanner import RowScanner

__all__ = [
    # Connection
    "ConnectionConfig",
    "open_database",
    "Database",
    "Transaction",
    "Statement",
    "TxOptions",
    # Context
    "Context",
    # Transaction
    "UnitOfWork",
    "with_tx",
    "with_read_tx",
    "with_write_tx",
    "READ_ONLY",
    "READ_WRITE",
    # CRUD
    "Query",
    "QueryBuilder",
    "ExecResult",
    "BulkResult",
    "insert",
    "update",
    "delete",
    "insert_objects",
    "update_objects",
    "select",
    "select_one",
    # Mapping
    "MappingConfig",
    "MappingRegistry",
    "RowScanner",
    "default_registry",
    "get_mapping",
    "values_of",
    # Enums
    "DatabaseBackend",
    "IsolationLevel",
    # Exceptions
    "RowTxError",
    "MappingError",
    "WrongTypeError",
    "DuplicateColumnError",
    "FieldAccessError",
    "BindingError",
    "PartialResultError",
    "IncompleteScanError",
    "IncompleteExecutionError",
    "TransactionError",
    "BeginError",
    "CommitError",
    "RollbackError",
    "TransactionStateError",
    "ExecutionError",
    "QueryBuildError",
    "StatementError",
    "EmptyObjectListError",
    "ContextCancelledError",
    "DeadlineExceededError",
    "AdapterError",
]
