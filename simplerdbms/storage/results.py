"""
Result objects returned by the validation and storage layers.

Validation never raises: Column, TableSchema and TableManager hand back
these results so callers can tell failures apart by ErrorKind as well
as by message.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Closed set of validation and storage failure categories."""
    NOT_NULL = "NOT_NULL"
    TYPE_MISMATCH = "TYPE_MISMATCH"
    LENGTH = "LENGTH"
    PRECISION = "PRECISION"
    SCALE = "SCALE"
    CHECK = "CHECK"
    PRIMARY_KEY = "PRIMARY_KEY"
    UNIQUE = "UNIQUE"
    FOREIGN_KEY = "FOREIGN_KEY"
    COLUMN_COUNT = "COLUMN_COUNT"
    COLUMN_NOT_FOUND = "COLUMN_NOT_FOUND"
    TABLE_NOT_FOUND = "TABLE_NOT_FOUND"
    TABLE_EXISTS = "TABLE_EXISTS"
    ROW_OUT_OF_BOUNDS = "ROW_OUT_OF_BOUNDS"
    INDEX = "INDEX"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a value or a row. Truthy when valid."""
    valid: bool
    error_kind: Optional[ErrorKind] = None
    error_message: str = ""

    @classmethod
    def ok(cls) -> 'ValidationResult':
        return cls(True)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> 'ValidationResult':
        return cls(False, kind, message)

    def __bool__(self) -> bool:
        return self.valid


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of a TableManager mutation.

    ``row_id`` is the positional index of the affected row, or -1 when
    the operation did not touch a single row.
    """
    success: bool
    error_message: str = ""
    rows_affected: int = 0
    row_id: int = -1
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, rows_affected: int = 0, row_id: int = -1) -> 'OperationResult':
        return cls(True, rows_affected=rows_affected, row_id=row_id)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> 'OperationResult':
        return cls(False, error_message=message, error_kind=kind)

    @classmethod
    def from_validation(cls, result: ValidationResult) -> 'OperationResult':
        return cls.failure(result.error_kind, result.error_message)

    def __bool__(self) -> bool:
        return self.success
