"""Record and codec protocols.

A codec converts between records and row mappings over a table's column
list. ``TableMapper`` calls ``from_row`` once per result row during
materialization and ``to_row`` for every record it writes.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, TypeVar, runtime_checkable

from table_mapper.core.cursor import DbCursor

T = TypeVar("T")


@runtime_checkable
class Record(Protocol):
    """A record that converts itself.

    ``from_row`` fills the record from the cursor's current row. It may read
    the row in place or move the cursor; materialization tolerates both.
    """

    def from_row(self, cursor: DbCursor, columns: Sequence[str]) -> None:
        """Populate this record from the current row at *columns*."""
        ...

    def to_row(self, columns: Sequence[str]) -> dict[str, Any]:
        """Emit a column → value mapping for *columns*."""
        ...


class Codec(Protocol[T]):
    """Base codec protocol."""

    primary_key: str

    def new_record_instance(self) -> T | None:
        """Empty record used as the sink for from_row, or None to skip."""
        ...

    def from_row(self, cursor: DbCursor, columns: Sequence[str]) -> T | None:
        """Build a record from the cursor's current row. None skips the row."""
        ...

    def to_row(self, record: T, columns: Sequence[str]) -> dict[str, Any]:
        """Map *record* to a row restricted to *columns*.

        An engine-assigned primary key still at its sentinel (None or 0) is
        omitted.
        """
        ...


def is_unassigned_key(value: Any) -> bool:
    """Whether *value* is the sentinel for a key the engine will generate."""
    return value is None or (isinstance(value, int) and not isinstance(value, bool) and value == 0)


def restrict_row(
    row: dict[str, Any],
    columns: Sequence[str],
    primary_key: str | None,
) -> dict[str, Any]:
    """Keep the keys of *row* that are in *columns*, in column order.

    The primary key is dropped when unassigned.
    """
    result: dict[str, Any] = {}
    for column in columns:
        if column not in row:
            continue
        value = row[column]
        if column == primary_key and is_unassigned_key(value):
            continue
        result[column] = value
    return result
