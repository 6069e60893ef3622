"""Positionable result cursor.

DbCursor wraps a forward-only DB-API cursor and buffers its rows in windows,
giving random positional access (before-first, 0..N-1, after-last). Each open
DbCursor owns one reservation on the ConnectionManager, released exactly once
by ``close()``.
"""

from __future__ import annotations

import logging
from contextlib import nullcontext
from typing import TYPE_CHECKING, Any

from table_mapper.core.enums import FieldType
from table_mapper.core.exceptions import (
    ColumnNotFoundError,
    CursorClosedError,
    CursorPositionError,
    DecodingError,
    ExecutionError,
)

if TYPE_CHECKING:
    from table_mapper.core.connection import Reservation

logger = logging.getLogger(__name__)

Column = int | str


class DbCursor:
    """Random-access cursor over a query result.

    Args:
        raw_cursor: DB-API cursor the statement was executed on.
        reservation: Reservation released when this cursor closes.
        lock: Statement lock shared with the owning manager; held while rows
            are fetched from the handle.
        window: Number of rows fetched from the engine at a time.
        error: Driver exception base class, wrapped on fetch failures.
    """

    def __init__(
        self,
        raw_cursor: Any,
        reservation: Reservation | None = None,
        *,
        lock: Any = None,
        window: int = 256,
        error: type[Exception] = Exception,
    ) -> None:
        self._raw = raw_cursor
        self._reservation = reservation
        self._lock = lock if lock is not None else nullcontext()
        self._window = max(1, window)
        self._error = error
        description = raw_cursor.description
        self._columns: tuple[str, ...] = (
            tuple(desc[0] for desc in description) if description else ()
        )
        self._index = {name: i for i, name in enumerate(self._columns)}
        self._rows: list[tuple[Any, ...]] = []
        self._exhausted = description is None
        self._position = -1
        self._closed = False

    # ------------------------------------------------------------------
    # Buffering
    # ------------------------------------------------------------------

    def _fill(self, target: int | None) -> None:
        """Fetch windows until row *target* is buffered (all rows if None)."""
        while not self._exhausted and (target is None or len(self._rows) <= target):
            with self._lock:
                try:
                    batch = self._raw.fetchmany(self._window)
                except self._error as e:
                    raise ExecutionError(f"Failed to fetch rows: {e}") from e
                if len(batch) < self._window:
                    self._exhausted = True
                    self._raw.close()
            self._rows.extend(tuple(row) for row in batch)

    def _check_open(self) -> None:
        if self._closed:
            raise CursorClosedError()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    @property
    def count(self) -> int:
        """Number of rows in the result set."""
        self._check_open()
        self._fill(None)
        return len(self._rows)

    def get_count(self) -> int:
        return self.count

    @property
    def position(self) -> int:
        """Current position: -1 before first, ``count`` after last."""
        self._check_open()
        return self._position

    def get_position(self) -> int:
        return self.position

    def move_to_position(self, position: int) -> bool:
        """Move to *position*, clamping to before-first / after-last.

        Returns True if the cursor is now on a row.
        """
        self._check_open()
        if position < 0:
            self._position = -1
            return False
        self._fill(position)
        if position < len(self._rows):
            self._position = position
            return True
        self._position = len(self._rows)
        return False

    def move(self, offset: int) -> bool:
        """Move relative to the current position."""
        return self.move_to_position(self.position + offset)

    def move_to_first(self) -> bool:
        return self.move_to_position(0)

    def move_to_last(self) -> bool:
        return self.move_to_position(self.count - 1)

    def move_to_next(self) -> bool:
        return self.move(1)

    def move_to_previous(self) -> bool:
        return self.move(-1)

    def is_before_first(self) -> bool:
        self._check_open()
        if self._position < 0:
            return True
        return self.count == 0

    def is_after_last(self) -> bool:
        self._check_open()
        if self._position < 0:
            # an empty result is both before first and after last
            self._fill(0)
            return not self._rows
        return self._position >= len(self._rows)

    def is_first(self) -> bool:
        self._check_open()
        return self._position == 0 and bool(self._rows)

    def is_last(self) -> bool:
        self._check_open()
        if self._position < 0 or self._position >= len(self._rows):
            return False
        self._fill(self._position + 1)
        return self._position == len(self._rows) - 1

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    @property
    def column_names(self) -> tuple[str, ...]:
        self._check_open()
        return self._columns

    @property
    def column_count(self) -> int:
        self._check_open()
        return len(self._columns)

    def get_column_index(self, name: str) -> int:
        """Index of column *name*, or -1 if the result has no such column."""
        self._check_open()
        index = self._index.get(name)
        if index is None:
            # SQLite column names are case-insensitive
            lowered = name.lower()
            for i, column in enumerate(self._columns):
                if column.lower() == lowered:
                    return i
            return -1
        return index

    def get_column_index_or_raise(self, name: str) -> int:
        index = self.get_column_index(name)
        if index < 0:
            raise ColumnNotFoundError(name, self._columns)
        return index

    def get_column_name(self, index: int) -> str:
        self._check_open()
        return self._columns[index]

    def _resolve(self, column: Column) -> tuple[int, str]:
        if isinstance(column, str):
            return self.get_column_index_or_raise(column), column
        if not 0 <= column < len(self._columns):
            raise ColumnNotFoundError(str(column), self._columns)
        return column, self._columns[column]

    # ------------------------------------------------------------------
    # Row reads
    # ------------------------------------------------------------------

    def _current_row(self) -> tuple[Any, ...]:
        self._check_open()
        if not 0 <= self._position < len(self._rows):
            raise CursorPositionError(
                self._position, len(self._rows) if self._exhausted else None
            )
        return self._rows[self._position]

    def get_value(self, column: Column) -> Any:
        """Raw value of *column* (name or index) on the current row."""
        row = self._current_row()
        index, _ = self._resolve(column)
        return row[index]

    def is_null(self, column: Column) -> bool:
        return self.get_value(column) is None

    def get_type(self, column: Column) -> FieldType:
        value = self.get_value(column)
        if value is None:
            return FieldType.NULL
        if isinstance(value, int):
            return FieldType.INTEGER
        if isinstance(value, float):
            return FieldType.FLOAT
        if isinstance(value, str):
            return FieldType.STRING
        return FieldType.BLOB

    def get_int(self, column: Column) -> int | None:
        row = self._current_row()
        index, name = self._resolve(column)
        value = row[index]
        if value is None or isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                pass
        raise DecodingError(name, "int", value)

    def get_float(self, column: Column) -> float | None:
        row = self._current_row()
        index, name = self._resolve(column)
        value = row[index]
        if value is None:
            return None
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                pass
        raise DecodingError(name, "float", value)

    def get_string(self, column: Column) -> str | None:
        row = self._current_row()
        index, name = self._resolve(column)
        value = row[index]
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, (int, float)):
            return str(value)
        raise DecodingError(name, "str", value)

    def get_blob(self, column: Column) -> bytes | None:
        row = self._current_row()
        index, name = self._resolve(column)
        value = row[index]
        if value is None or isinstance(value, bytes):
            return value
        if isinstance(value, str):
            return value.encode("utf-8")
        raise DecodingError(name, "bytes", value)

    def get_bool(self, column: Column) -> bool | None:
        value = self.get_int(column)
        return None if value is None else value != 0

    def row_dict(self) -> dict[str, Any]:
        """Current row as a column-name → value dict."""
        return dict(zip(self._columns, self._current_row(), strict=True))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Close the cursor and release its reservation. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._rows = []
        try:
            if not self._exhausted:
                with self._lock:
                    self._raw.close()
        finally:
            if self._reservation is not None:
                self._reservation.release()
            logger.debug("Cursor closed")

    def __enter__(self) -> DbCursor:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"position={self._position}"
        return f"DbCursor(columns={list(self._columns)!r}, {state})"
