"""table-mapper - typed table facades over an embedded SQLite database."""

from __future__ import annotations

from table_mapper.core.connection import (
    ConnectionConfig,
    ConnectionManager,
    Reservation,
)
from table_mapper.core.cursor import DbCursor
from table_mapper.core.enums import ConflictAlgorithm, FieldType
from table_mapper.core.exceptions import (
    AdapterError,
    BulkInsertError,
    ClauseSanitizationError,
    ColumnMismatchError,
    ColumnNotFoundError,
    ConnectionError,  # noqa: A004
    CursorClosedError,
    CursorPositionError,
    DecodingError,
    ExecutionError,
    LifecycleError,
    ManagerClosedError,
    MappingError,
    ParameterBindingError,
    QueryCompileError,
    ReservationError,
    TableMapperError,
    TableSpecError,
    TransactionError,
    TransactionStateError,
    WriteError,
)
from table_mapper.core.sanitizer import ClauseSanitizer
from table_mapper.core.transaction import TransactionManager, WriteResult
from table_mapper.mapping import Codec, ModelCodec, Record, RecordCodec, cursor_to_list
from table_mapper.table import TableMapper, TableSpec

__all__ = [
    # Connection
    "ConnectionConfig",
    "ConnectionManager",
    "Reservation",
    # Cursor
    "DbCursor",
    # Transaction
    "TransactionManager",
    "WriteResult",
    # Sanitizer
    "ClauseSanitizer",
    # Mapping
    "Codec",
    "Record",
    "ModelCodec",
    "RecordCodec",
    "cursor_to_list",
    # Table
    "TableMapper",
    "TableSpec",
    # Enums
    "ConflictAlgorithm",
    "FieldType",
    # Exceptions
    "TableMapperError",
    "ExecutionError",
    "ParameterBindingError",
    "ClauseSanitizationError",
    "QueryCompileError",
    "WriteError",
    "MappingError",
    "DecodingError",
    "ColumnMismatchError",
    "ColumnNotFoundError",
    "TransactionError",
    "TransactionStateError",
    "BulkInsertError",
    "LifecycleError",
    "ManagerClosedError",
    "ReservationError",
    "CursorClosedError",
    "CursorPositionError",
    "TableSpecError",
    "AdapterError",
    "ConnectionError",
]
