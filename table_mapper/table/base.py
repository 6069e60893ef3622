"""Table mapper base classes.

A TableMapper composes a table descriptor (TableSpec) with a codec and
delegates every operation to the shared ConnectionManager.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from table_mapper.core.connection import ConnectionManager
from table_mapper.core.cursor import DbCursor
from table_mapper.core.enums import ConflictAlgorithm
from table_mapper.core.exceptions import TableSpecError
from table_mapper.core.params import normalize_row
from table_mapper.mapping.materialize import cursor_to_list
from table_mapper.mapping.protocol import Codec

T = TypeVar("T")

logger = logging.getLogger(__name__)

Guard = Callable[[Mapping[str, Any]], bool]


@dataclass(frozen=True)
class TableSpec:
    """Descriptor of one logical table.

    Attributes:
        name: Table name.
        columns: Ordered, distinct column names, including the primary key.
            The single authority for both directions of record conversion.
        primary_key: Primary key column.
        guard: Optional insertion guard; returning False vetoes a single-row
            insert.
    """

    name: str
    columns: tuple[str, ...]
    primary_key: str = "id"
    guard: Guard | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", tuple(self.columns))
        if not self.name:
            raise TableSpecError(self.name, "table name is empty")
        if not self.columns:
            raise TableSpecError(self.name, "column list is empty")
        if any(not column for column in self.columns):
            raise TableSpecError(self.name, "column list contains an empty name")
        duplicates = sorted({c for c in self.columns if self.columns.count(c) > 1})
        if duplicates:
            raise TableSpecError(self.name, f"duplicate columns {duplicates}")
        if self.primary_key not in self.columns:
            raise TableSpecError(
                self.name, f"primary key '{self.primary_key}' is not in the column list"
            )


class TableMapper(Generic[T]):
    """Typed facade over one table.

    Subclasses may override ``table_name``, ``table_columns`` and
    ``continue_insert`` instead of configuring them through the spec.

    Args:
        connection_manager: Shared ConnectionManager.
        spec: Table descriptor.
        codec: Record ↔ row codec.
    """

    def __init__(
        self,
        connection_manager: ConnectionManager,
        spec: TableSpec,
        codec: Codec[T],
    ) -> None:
        self.connection_manager = connection_manager
        if codec.primary_key != spec.primary_key:
            raise TableSpecError(
                spec.name,
                f"codec primary key '{codec.primary_key}' does not match "
                f"'{spec.primary_key}'",
            )
        self.spec = spec
        self.codec = codec

    # ------------------------------------------------------------------
    # Table contract
    # ------------------------------------------------------------------

    def table_name(self) -> str:
        return self.spec.name

    def table_columns(self) -> tuple[str, ...]:
        return self.spec.columns

    def continue_insert(self, row: Mapping[str, Any]) -> bool:
        """Whether *row* should be inserted. Called once per insert()."""
        if self.spec.guard is None:
            return True
        return bool(self.spec.guard(row))

    def new_record_instance(self) -> T | None:
        return self.codec.new_record_instance()

    def _to_row(self, values: Mapping[str, Any] | T) -> dict[str, Any]:
        """Row for *values*: a row mapping as-is, a record through the codec."""
        if not isinstance(values, Mapping):
            values = self.codec.to_row(values, self.table_columns())
        return normalize_row(self.table_name(), values, self.table_columns())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(
        self,
        values: Mapping[str, Any] | T,
        conflict: ConflictAlgorithm = ConflictAlgorithm.ABORT,
    ) -> int:
        """Insert a row mapping or a record.

        Returns:
            The new row id, or -1 if the insertion guard rejected the row or
            the conflict algorithm ignored it.
        """
        row = self._to_row(values)
        if not self.continue_insert(row):
            logger.debug(f"Insert into {self.table_name()} rejected by guard")
            return -1
        return self.connection_manager.insert(self.table_name(), row, conflict)

    def bulk_insert(
        self,
        rows: Iterable[Mapping[str, Any] | T],
        conflict: ConflictAlgorithm = ConflictAlgorithm.ABORT,
    ) -> int:
        """Insert every row in one transaction, without the insertion guard.

        Returns:
            The number of rows inserted.

        Raises:
            BulkInsertError: If any row fails; no row is kept.
        """
        converted = [self._to_row(row) for row in rows]
        return self.connection_manager.bulk_insert(self.table_name(), converted, conflict)

    def update(
        self,
        values: Mapping[str, Any] | T,
        where: str | None = None,
        args: Iterable[Any] | None = None,
        conflict: ConflictAlgorithm = ConflictAlgorithm.ABORT,
    ) -> int:
        """Update rows matching *where*; ``None`` updates every row.

        Columns absent from *values* are left unchanged.
        """
        return self.connection_manager.update(
            self.table_name(), self._to_row(values), where, args, conflict
        )

    def delete(self, where: str | None = None, args: Iterable[Any] | None = None) -> int:
        """Delete rows matching *where*; ``None`` deletes every row."""
        return self.connection_manager.delete(self.table_name(), where, args)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def query(
        self,
        projection: Sequence[str] | None = None,
        where: str | None = None,
        args: Iterable[Any] | None = None,
        group_by: str | None = None,
        having: str | None = None,
        order_by: str | None = None,
        limit: str | int | None = None,
        distinct: bool = False,
    ) -> DbCursor:
        """Query this table. The caller must close the returned cursor.

        ``projection=None`` returns all columns, which reads data that may
        not be used; prefer naming the columns.
        """
        return self.connection_manager.query(
            self.table_name(),
            projection,
            where,
            args,
            group_by,
            having,
            order_by,
            limit,
            distinct=distinct,
        )

    def query_as_list(
        self,
        projection: Sequence[str] | None = None,
        where: str | None = None,
        args: Iterable[Any] | None = None,
        group_by: str | None = None,
        having: str | None = None,
        order_by: str | None = None,
        limit: str | int | None = None,
        distinct: bool = False,
    ) -> list[T]:
        """Query this table and decode every row (see cursor_to_list)."""
        cursor = self.query(
            projection, where, args, group_by, having, order_by, limit, distinct=distinct
        )
        return self.cursor_to_list(cursor)

    def cursor_to_list(self, cursor: DbCursor) -> list[T]:
        """Decode every row of *cursor* into records and close it."""
        return cursor_to_list(cursor, self.codec, self.table_columns())

    def count(self, where: str | None = None, args: Iterable[Any] | None = None) -> int:
        """Number of rows matching *where*."""
        return self.connection_manager.count(self.table_name(), where, args)
