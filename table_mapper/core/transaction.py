"""Transaction management.

Provides a context manager for executing multiple statements atomically on
the shared handle. Auto-commits on success, auto-rolls-back on exception.
The statement lock is held for the whole transaction so that writes from
other threads cannot interleave with it.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any, NamedTuple

from table_mapper.core.exceptions import TransactionStateError, WriteError

if TYPE_CHECKING:
    from table_mapper.core.connection import ConnectionManager, Reservation

logger = logging.getLogger(__name__)


class WriteResult(NamedTuple):
    """Outcome of a single write statement."""

    rowcount: int
    lastrowid: int | None


class _TxState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


def _rows_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor results to a list of dicts."""
    if cursor.description is None:
        return []
    columns = [desc[0] for desc in cursor.description]
    return [dict(zip(columns, row, strict=True)) for row in cursor.fetchall()]


class TransactionManager:
    """Synchronous transaction context manager.

    The reservation and the handle are acquired in ``__enter__``, allowing
    usage as: ``with manager.transaction() as tx:``. Both are released in
    ``__exit__``.
    """

    def __init__(self, connection_manager: ConnectionManager) -> None:
        self._connection_manager = connection_manager
        self._adapter = connection_manager.adapter
        self._reservation: Reservation | None = None
        self._handle: Any = None
        self._state = _TxState.IDLE

    def __enter__(self) -> TransactionManager:
        if self._state != _TxState.IDLE:
            raise TransactionStateError(self._state.value, "begin")
        manager = self._connection_manager
        self._reservation = manager.acquire()
        manager.statement_lock.acquire()
        try:
            self._handle = manager.handle
            self._adapter.begin(self._handle)
        except self._adapter.error as e:
            manager.statement_lock.release()
            self._reservation.release()
            raise WriteError("<transaction>", "BEGIN", str(e)) from e
        self._state = _TxState.ACTIVE
        logger.debug("Transaction started")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        try:
            if self._state == _TxState.ACTIVE:
                if exc_type is not None:
                    self._adapter.rollback(self._handle)
                    self._state = _TxState.ROLLED_BACK
                    logger.debug(f"Transaction rolled back: {exc_val}")
                else:
                    self.commit()
        finally:
            self._handle = None
            self._connection_manager.statement_lock.release()
            if self._reservation is not None:
                self._reservation.release()

    @property
    def state(self) -> str:
        return self._state.value

    def execute(self, sql: str, args: Sequence[Any] = ()) -> WriteResult:
        """Execute a write statement within this transaction."""
        self._check_active()
        try:
            cursor = self._adapter.execute(self._handle, sql, args)
        except self._adapter.error as e:
            raise WriteError("<transaction>", sql.split(" ", 1)[0].upper(), str(e)) from e
        return WriteResult(int(cursor.rowcount), cursor.lastrowid)

    def fetch_one(self, sql: str, args: Sequence[Any] = ()) -> dict[str, Any] | None:
        """Fetch a single row within the transaction."""
        rows = self.fetch_all(sql, args)
        if not rows:
            return None
        return rows[0]

    def fetch_all(self, sql: str, args: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Fetch all rows within the transaction."""
        self._check_active()
        try:
            cursor = self._adapter.execute(self._handle, sql, args)
            return _rows_to_dicts(cursor)
        except self._adapter.error as e:
            raise WriteError("<transaction>", "SELECT", str(e)) from e

    def commit(self) -> None:
        """Explicitly commit the transaction."""
        if self._state != _TxState.ACTIVE:
            raise TransactionStateError(self._state.value, "commit")
        try:
            self._adapter.commit(self._handle)
        except self._adapter.error as e:
            self._adapter.rollback(self._handle)
            self._state = _TxState.ROLLED_BACK
            raise WriteError("<transaction>", "COMMIT", str(e)) from e
        self._state = _TxState.COMMITTED
        logger.debug("Transaction committed")

    def rollback(self) -> None:
        """Explicitly roll back the transaction."""
        if self._state != _TxState.ACTIVE:
            raise TransactionStateError(self._state.value, "rollback")
        self._adapter.rollback(self._handle)
        self._state = _TxState.ROLLED_BACK
        logger.debug("Transaction rolled back")

    def _check_active(self) -> None:
        if self._state != _TxState.ACTIVE:
            raise TransactionStateError(self._state.value, "execute")
