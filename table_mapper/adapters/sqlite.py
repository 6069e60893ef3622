"""SQLite adapter (sqlite3 stdlib)."""

from __future__ import annotations

import sqlite3
from collections.abc import Sequence
from typing import Any

from table_mapper.core.connection import ConnectionConfig


class SqliteSyncAdapter:
    """Synchronous SQLite adapter using stdlib sqlite3.

    The handle runs in autocommit mode (``isolation_level=None``); transactions
    are opened explicitly with ``BEGIN``.
    """

    @property
    def paramstyle(self) -> str:
        return "qmark"

    @property
    def error(self) -> type[Exception]:
        return sqlite3.Error

    def open_handle(self, config: ConnectionConfig) -> sqlite3.Connection:
        """Open a connection and apply the configured pragmas."""
        conn = sqlite3.connect(
            config.database,
            timeout=config.timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        try:
            conn.execute(f"PRAGMA foreign_keys = {'ON' if config.foreign_keys else 'OFF'}")
            if config.journal_mode:
                conn.execute(f"PRAGMA journal_mode = {config.journal_mode}")
            for name, value in config.extra.items():
                conn.execute(f"PRAGMA {name} = {value}")
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    def close_handle(self, handle: sqlite3.Connection) -> None:
        """Close the connection."""
        handle.close()

    def execute(
        self,
        handle: sqlite3.Connection,
        sql: str,
        args: Sequence[Any] = (),
    ) -> sqlite3.Cursor:
        """Execute SQL and return a cursor."""
        return handle.execute(sql, tuple(args))

    def begin(self, handle: sqlite3.Connection) -> None:
        handle.execute("BEGIN")

    def commit(self, handle: sqlite3.Connection) -> None:
        handle.execute("COMMIT")

    def rollback(self, handle: sqlite3.Connection) -> None:
        # ON CONFLICT ROLLBACK may already have ended the transaction
        if handle.in_transaction:
            handle.execute("ROLLBACK")

    def in_transaction(self, handle: sqlite3.Connection) -> bool:
        return handle.in_transaction
