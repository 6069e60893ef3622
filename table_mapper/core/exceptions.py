"""table-mapper exception hierarchy.

All exceptions are table-mapper specific. Raw sqlite3 exceptions are never
exposed to callers; they are chained as ``__cause__``.
"""

from __future__ import annotations

from typing import Any


class TableMapperError(Exception):
    """Base exception for all table-mapper errors."""


# --- Execution ---


class ExecutionError(TableMapperError):
    """Base for statement execution errors."""


class ParameterBindingError(ExecutionError):
    """Raised when row values or arguments cannot be bound."""

    def __init__(self, table: str, detail: str) -> None:
        self.table = table
        super().__init__(f"Parameter binding error for '{table}': {detail}")


class ClauseSanitizationError(ExecutionError):
    """Raised when a SQL clause fragment fails a sanitization check."""

    def __init__(self, clause: str, detail: str) -> None:
        self.clause = clause
        super().__init__(f"Invalid {clause} clause: {detail}")


class QueryCompileError(ExecutionError):
    """Raised when the engine rejects a query. No cursor is produced."""

    def __init__(self, table: str, detail: str) -> None:
        self.table = table
        super().__init__(f"Query on '{table}' failed to compile: {detail}")


class WriteError(ExecutionError):
    """Raised on integrity violations, constraint failures or I/O errors."""

    def __init__(self, table: str, operation: str, detail: str) -> None:
        self.table = table
        self.operation = operation
        super().__init__(f"{operation} on '{table}' failed: {detail}")


# --- Mapping ---


class MappingError(TableMapperError):
    """Base for record mapping errors."""


class DecodingError(MappingError):
    """Raised when a stored value cannot be read as the declared type."""

    def __init__(self, column: str, expected: str, value: Any) -> None:
        self.column = column
        self.expected = expected
        self.value = value
        super().__init__(
            f"Cannot decode column '{column}' as {expected}: "
            f"got {type(value).__name__} {value!r}"
        )


class ColumnMismatchError(MappingError):
    """Raised when required fields cannot be mapped from row columns."""

    def __init__(self, target_class: str, missing_fields: list[str]) -> None:
        self.target_class = target_class
        self.missing_fields = missing_fields
        super().__init__(f"Cannot map to {target_class}: missing fields {missing_fields}")


class ColumnNotFoundError(MappingError):
    """Raised when a cursor has no column with the requested name or index."""

    def __init__(self, column: str, available: tuple[str, ...]) -> None:
        self.column = column
        self.available = available
        super().__init__(f"Column '{column}' not in result columns {list(available)}")


# --- Transaction ---


class TransactionError(TableMapperError):
    """Base for transaction errors."""


class TransactionStateError(TransactionError):
    """Raised on invalid transaction state transitions."""

    def __init__(self, current_state: str, attempted_action: str) -> None:
        self.current_state = current_state
        self.attempted_action = attempted_action
        super().__init__(f"Cannot {attempted_action} transaction in state '{current_state}'")


class BulkInsertError(TransactionError):
    """Raised when a bulk insert fails. The whole batch has been rolled back."""

    def __init__(self, table: str, index: int, detail: str) -> None:
        self.table = table
        self.index = index
        super().__init__(
            f"Bulk insert into '{table}' rolled back at row {index}: {detail}"
        )


# --- Lifecycle ---


class LifecycleError(TableMapperError):
    """Base for operations attempted against a closed resource."""


class ManagerClosedError(LifecycleError):
    """Raised when a reservation is requested after shutdown()."""

    def __init__(self, database: str) -> None:
        self.database = database
        super().__init__(f"Connection manager for '{database}' has been shut down")


class ReservationError(LifecycleError):
    """Raised on close() without a matching open()."""


class CursorClosedError(LifecycleError):
    """Raised when a cursor is used after close()."""

    def __init__(self) -> None:
        super().__init__("Cursor has been closed")


class CursorPositionError(LifecycleError):
    """Raised when a row is read while the cursor is not on a row."""

    def __init__(self, position: int, count: int | None) -> None:
        self.position = position
        self.count = count
        super().__init__(
            f"Cursor is not positioned on a row (position {position}, count {count})"
        )


# --- Table descriptor ---


class TableSpecError(TableMapperError):
    """Raised for an invalid table descriptor."""

    def __init__(self, table: str, detail: str) -> None:
        self.table = table
        super().__init__(f"Invalid table spec '{table}': {detail}")


# --- Adapter ---


class AdapterError(TableMapperError):
    """Base for adapter errors."""


class ConnectionError(AdapterError):  # noqa: A001
    """Raised when the database handle cannot be opened."""
