"""Shared test fixtures."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from pathlib import Path

import pytest

from table_mapper.core.connection import ConnectionConfig, ConnectionManager
from table_mapper.core.cursor import DbCursor

CREATE_T = (
    "CREATE TABLE t (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, age INTEGER)"
)


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Path of a fresh SQLite database file.

    A file is used rather than ``:memory:`` because the handle is closed
    whenever no reservation is held.
    """
    return str(tmp_path / "test.db")


@pytest.fixture
def sqlite_config(db_path: str) -> ConnectionConfig:
    return ConnectionConfig(database=db_path)


@pytest.fixture
def manager(sqlite_config: ConnectionConfig) -> Iterator[ConnectionManager]:
    """ConnectionManager with table ``t(id, name, age)`` created."""
    cm = ConnectionManager(sqlite_config)
    cm.execute_write(CREATE_T)
    yield cm
    cm.shutdown()


@pytest.fixture
def make_cursor():
    """Build a DbCursor over an in-memory query.

    Usage:
        cursor = make_cursor("SELECT 1 AS id")
    """
    conn = sqlite3.connect(":memory:")

    def _make(sql: str, window: int = 256) -> DbCursor:
        return DbCursor(conn.execute(sql), window=window, error=sqlite3.Error)

    yield _make
    conn.close()


@pytest.fixture
def five_rows(make_cursor) -> DbCursor:
    """Cursor over five rows (id 1..5, name n1..n5), ordered by id."""
    return make_cursor(
        "SELECT 1 AS id, 'n1' AS name UNION ALL SELECT 2, 'n2' UNION ALL "
        "SELECT 3, 'n3' UNION ALL SELECT 4, 'n4' UNION ALL SELECT 5, 'n5' ORDER BY id",
        window=2,
    )
