"""Database adapter protocol.

The adapter is the engine contract: it opens and closes the single shared
handle, executes parameterised statements and drives explicit transactions.
Statement text is produced by ``table_mapper.core.statements``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from table_mapper.core.connection import ConnectionConfig


@runtime_checkable
class SyncAdapter(Protocol):
    """Synchronous database adapter protocol."""

    @property
    def paramstyle(self) -> str:
        """Parameter binding style. Statements are built with 'qmark' (?)."""
        ...

    @property
    def error(self) -> type[Exception]:
        """Base exception class raised by the driver."""
        ...

    def open_handle(self, config: ConnectionConfig) -> Any:
        """Open the database handle."""
        ...

    def close_handle(self, handle: Any) -> None:
        """Close the database handle."""
        ...

    def execute(self, handle: Any, sql: str, args: Sequence[Any] = ()) -> Any:
        """Execute SQL and return a DB-API cursor."""
        ...

    def begin(self, handle: Any) -> None:
        """Start a transaction."""
        ...

    def commit(self, handle: Any) -> None:
        """Commit the current transaction."""
        ...

    def rollback(self, handle: Any) -> None:
        """Roll back the current transaction, if one is active."""
        ...

    def in_transaction(self, handle: Any) -> bool:
        """Whether a transaction is active on *handle*."""
        ...
