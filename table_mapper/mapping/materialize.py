"""Cursor to record-list materialization."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, TypeVar

from table_mapper.core.cursor import DbCursor

T = TypeVar("T")


def cursor_to_list(cursor: DbCursor, codec: Any, columns: Sequence[str]) -> list[T]:
    """Decode every row of *cursor* with *codec* and close the cursor.

    ``codec.from_row`` may leave the cursor where it found it or move it
    (e.g. by reading ahead or seeking). Either way the next iteration resumes
    at the row after the one it started on, so each row yields at most one
    record, in cursor order. Rows for which the codec returns None are
    skipped. The cursor is closed on every exit path.
    """
    records: list[T] = []
    try:
        if not cursor.move_to_first():
            return records
        while not cursor.is_after_last():
            position = cursor.position
            record = codec.from_row(cursor, columns)
            if record is not None:
                records.append(record)
            if cursor.position == position:
                cursor.move_to_next()
            else:
                cursor.move_to_position(position + 1)
        return records
    finally:
        cursor.close()
