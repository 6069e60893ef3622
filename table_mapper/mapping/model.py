"""Model codec for dataclasses, Pydantic models and plain classes."""

from __future__ import annotations

import dataclasses
import inspect
import types
import typing
from collections.abc import Sequence
from enum import Enum
from typing import Any, Generic, TypeVar

from table_mapper.core.cursor import DbCursor
from table_mapper.core.exceptions import ColumnMismatchError, DecodingError
from table_mapper.mapping.protocol import restrict_row

T = TypeVar("T")

_NONE_TYPE = type(None)


def _is_pydantic_model(cls: type) -> bool:
    """Check if a class is a Pydantic BaseModel."""
    try:
        from pydantic import BaseModel

        return issubclass(cls, BaseModel)
    except ImportError:
        return False


def _type_hints(obj: Any) -> dict[str, Any]:
    try:
        return typing.get_type_hints(obj)
    except (NameError, TypeError):
        # unresolvable forward references: leave those fields unchecked
        return {}


def _type_name(hint: Any) -> str:
    return getattr(hint, "__name__", None) or str(hint)


def _field_specs(cls: type) -> dict[str, tuple[Any, bool]]:
    """Return ``{field: (type_hint, has_default)}`` for a record class."""
    if hasattr(cls, "model_fields"):
        return {
            name: (info.annotation, not info.is_required())
            for name, info in cls.model_fields.items()
        }

    if dataclasses.is_dataclass(cls):
        hints = _type_hints(cls)
        return {
            f.name: (
                hints.get(f.name),
                f.default is not dataclasses.MISSING
                or f.default_factory is not dataclasses.MISSING,
            )
            for f in dataclasses.fields(cls)
            if f.init
        }

    try:
        sig = inspect.signature(cls.__init__)  # type: ignore[misc]
    except (ValueError, TypeError):
        return {}
    hints = _type_hints(cls.__init__)  # type: ignore[misc]
    return {
        name: (hints.get(name), param.default is not inspect.Parameter.empty)
        for name, param in sig.parameters.items()
        if name != "self"
        and param.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    }


def _check_value(column: str, value: Any, hint: Any) -> Any:
    """Check *value* against a scalar type hint and return it converted.

    Unknown hints are not checked.
    """
    if hint is None or hint is Any:
        return value

    origin = typing.get_origin(hint)
    if origin is typing.Union or origin is types.UnionType:
        members = [a for a in typing.get_args(hint) if a is not _NONE_TYPE]
        if value is None:
            if len(members) < len(typing.get_args(hint)):
                return None
            raise DecodingError(column, _type_name(hint), value)
        if len(members) != 1:
            return value
        hint = members[0]

    if value is None:
        raise DecodingError(column, _type_name(hint), value)

    if hint is bool:
        if isinstance(value, int):
            return bool(value)
    elif hint is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
    elif hint is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif hint is str:
        if isinstance(value, str):
            return value
    elif hint is bytes:
        if isinstance(value, bytes):
            return value
    elif isinstance(hint, type) and issubclass(hint, Enum):
        try:
            return hint(value)
        except ValueError:
            pass
    else:
        return value
    raise DecodingError(column, _type_name(hint), value)


class ModelCodec(Generic[T]):
    """Row codec for typed record classes.

    Detection order:
    1. Pydantic BaseModel -> model_validate(values)
    2. dataclass -> target_class(**values), values checked against field hints
    3. Plain class -> target_class(**values), values checked against __init__ hints

    Columns missing from the result set leave the field at its default.

    Args:
        target_class: The record class.
        primary_key: Column omitted from written rows while unassigned
            (None or 0).
        aliases: Optional column-name to field-name mapping.
    """

    def __init__(
        self,
        target_class: type[T],
        primary_key: str = "id",
        aliases: dict[str, str] | None = None,
    ) -> None:
        self._target_class = target_class
        self.primary_key = primary_key
        self._aliases = dict(aliases or {})
        self._reverse_aliases = {field: column for column, field in self._aliases.items()}
        self._is_pydantic = _is_pydantic_model(target_class)
        self._is_dataclass = dataclasses.is_dataclass(target_class)
        self._fields = _field_specs(target_class)

    @property
    def target_class(self) -> type[T]:
        return self._target_class

    def new_record_instance(self) -> T | None:
        """A record built from field defaults only.

        None when a required field has no default.
        """
        try:
            return self._build({})
        except ColumnMismatchError:
            return None

    def from_row(self, cursor: DbCursor, columns: Sequence[str]) -> T | None:
        values: dict[str, Any] = {}
        for column in columns:
            index = cursor.get_column_index(column)
            if index < 0:
                continue
            values[self._aliases.get(column, column)] = cursor.get_value(index)
        return self._build(values)

    def _build(self, values: dict[str, Any]) -> T:
        if self._is_pydantic:
            return self._validate_pydantic(values)

        if self._fields:
            values = {k: v for k, v in values.items() if k in self._fields}
            missing = [
                name
                for name, (_, has_default) in self._fields.items()
                if not has_default and name not in values
            ]
            if missing:
                raise ColumnMismatchError(self._target_class.__name__, missing)
            for name, value in values.items():
                column = self._reverse_aliases.get(name, name)
                values[name] = _check_value(column, value, self._fields[name][0])

        try:
            return self._target_class(**values)
        except TypeError as e:
            raise ColumnMismatchError(self._target_class.__name__, [str(e)]) from e

    def _validate_pydantic(self, values: dict[str, Any]) -> T:
        from pydantic import ValidationError

        try:
            return self._target_class.model_validate(values)  # type: ignore[attr-defined, no-any-return]
        except ValidationError as e:
            errors = e.errors()
            missing = [str(err["loc"][0]) for err in errors if err["type"] == "missing" and err["loc"]]
            if missing:
                raise ColumnMismatchError(self._target_class.__name__, missing) from e
            first = errors[0]
            field = str(first["loc"][0]) if first["loc"] else "?"
            hint = self._fields.get(field, (None, False))[0]
            raise DecodingError(
                self._reverse_aliases.get(field, field),
                _type_name(hint) if hint is not None else first["type"],
                first.get("input"),
            ) from e

    def to_row(self, record: T, columns: Sequence[str]) -> dict[str, Any]:
        if self._is_pydantic:
            data = record.model_dump()  # type: ignore[attr-defined]
        elif self._is_dataclass:
            data = {f.name: getattr(record, f.name) for f in dataclasses.fields(record)}  # type: ignore[arg-type]
        else:
            data = dict(vars(record))

        row: dict[str, Any] = {}
        for name, value in data.items():
            if isinstance(value, Enum):
                value = value.value
            row[self._reverse_aliases.get(name, name)] = value
        return restrict_row(row, columns, self.primary_key)
