"""Row value and argument normalization.

Row mappings are restricted to a table's column list and checked against the
scalar types the engine can store. Positional ``where`` arguments are bound as
text, except NULL and blobs.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from table_mapper.core.exceptions import ParameterBindingError

Scalar = int | float | str | bytes | None

_SCALAR_TYPES = (int, float, str, bytes)


def normalize_value(table: str, column: str, value: Any) -> Scalar:
    """Return *value* as a storable scalar or raise ParameterBindingError."""
    if value is None or isinstance(value, _SCALAR_TYPES):
        # bool is an int subclass and is stored as 0/1
        return int(value) if isinstance(value, bool) else value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    raise ParameterBindingError(
        table,
        f"column '{column}' has unsupported value type {type(value).__name__}",
    )


def normalize_row(
    table: str,
    row: Mapping[str, Any],
    columns: Sequence[str] | None = None,
) -> dict[str, Scalar]:
    """Restrict *row* to *columns* (keeping the row's key order) and normalize values.

    Keys outside *columns* are dropped. ``columns=None`` keeps every key.
    """
    allowed = None if columns is None else set(columns)
    result: dict[str, Scalar] = {}
    for column, value in row.items():
        if allowed is not None and column not in allowed:
            continue
        result[column] = normalize_value(table, column, value)
    return result


def coerce_args(table: str, args: Iterable[Any] | Any | None) -> tuple[Scalar, ...]:
    """Normalize positional ``?`` arguments.

    * ``None`` → no arguments.
    * ``str`` / ``bytes`` / any other scalar → a single argument.
    * Any other iterable → one argument per item.

    Values are bound as text; ``None`` stays NULL and bytes stay blobs.
    """
    if args is None:
        return ()
    if isinstance(args, (str, bytes, bytearray, memoryview)) or not isinstance(args, Iterable):
        args = (args,)
    bound: list[Scalar] = []
    for index, arg in enumerate(args):
        if arg is None:
            bound.append(None)
        elif isinstance(arg, (bytes, bytearray, memoryview)):
            bound.append(bytes(arg))
        elif isinstance(arg, bool):
            bound.append(str(int(arg)))
        elif isinstance(arg, _SCALAR_TYPES):
            bound.append(str(arg))
        else:
            raise ParameterBindingError(
                table, f"argument {index} has unsupported type {type(arg).__name__}"
            )
    return tuple(bound)
