"""Codec for records that implement from_row / to_row themselves."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Generic, TypeVar

from table_mapper.core.cursor import DbCursor
from table_mapper.mapping.protocol import restrict_row

T = TypeVar("T")


class RecordCodec(Generic[T]):
    """Delegates conversion to the record's own ``from_row`` / ``to_row``.

    Args:
        factory: Returns a fresh, empty record (or None to skip the row).
        primary_key: Column dropped from written rows while unassigned.
    """

    def __init__(
        self,
        factory: Callable[[], T | None],
        primary_key: str = "id",
    ) -> None:
        self._factory = factory
        self.primary_key = primary_key

    def new_record_instance(self) -> T | None:
        return self._factory()

    def from_row(self, cursor: DbCursor, columns: Sequence[str]) -> T | None:
        record = self.new_record_instance()
        if record is None:
            return None
        record.from_row(cursor, columns)  # type: ignore[attr-defined]
        return record

    def to_row(self, record: T, columns: Sequence[str]) -> dict[str, Any]:
        row = record.to_row(columns)  # type: ignore[attr-defined]
        return restrict_row(dict(row), columns, self.primary_key)
