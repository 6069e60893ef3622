"""Statement and cursor enumerations."""

from __future__ import annotations

from enum import Enum


class ConflictAlgorithm(Enum):
    """SQLite ``ON CONFLICT`` resolution used by insert and update."""

    ABORT = "ABORT"
    ROLLBACK = "ROLLBACK"
    FAIL = "FAIL"
    IGNORE = "IGNORE"
    REPLACE = "REPLACE"


class FieldType(Enum):
    """Storage class of a value read from a cursor."""

    NULL = "null"
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    BLOB = "blob"
