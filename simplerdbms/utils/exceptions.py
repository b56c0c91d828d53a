"""
Centralized exception hierarchy for the RDBMS.

All custom exceptions inherit from RDBMSError to provide a single base
for catching database-specific errors. The query executor is the one
place that turns these into failed query results.
"""

from typing import Optional


class RDBMSError(Exception):
    """Base exception for all RDBMS errors."""
    pass


class ParseError(RDBMSError):
    """
    Raised when the token stream does not match the SQL grammar.

    Carries the expected token kind, the offending token text and its
    source position so callers can point at the exact location.
    """

    def __init__(self, expected: str, actual_kind: str, actual_text: str,
                 line: int, column: int):
        self.expected = expected
        self.actual_kind = actual_kind
        self.actual_text = actual_text
        self.line = line
        self.column = column
        super().__init__(
            f"Expected {expected} but got {actual_kind} (\"{actual_text}\") "
            f"at line {line} col {column}"
        )


class ConditionSyntaxError(RDBMSError):
    """Raised when a WHERE or CHECK condition cannot be parsed."""

    def __init__(self, condition: str, reason: str):
        self.condition = condition
        self.reason = reason
        super().__init__(f"Invalid condition '{condition}': {reason}")


class TableNotFoundError(RDBMSError):
    """Raised when attempting to access a non-existent table."""

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(f"Table '{table_name}' does not exist")


class TableAlreadyExistsError(RDBMSError):
    """Raised when attempting to create a table that already exists."""

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(f"Table '{table_name}' already exists")


class ColumnNotFoundError(RDBMSError):
    """Raised when referencing a non-existent column."""

    def __init__(self, column_name: str, table_name: Optional[str] = None):
        self.column_name = column_name
        self.table_name = table_name
        msg = f"Column '{column_name}' does not exist"
        if table_name:
            msg += f" in table '{table_name}'"
        super().__init__(msg)


class DataTypeError(RDBMSError):
    """Raised when a type name is unknown or a conversion is impossible."""

    def __init__(self, message: str):
        super().__init__(message)


class ConstraintViolationError(RDBMSError):
    """Raised when a constraint is violated (e.g., NOT NULL, CHECK)."""

    def __init__(self, message: str):
        super().__init__(message)


class StorageError(RDBMSError):
    """Raised when a table file cannot be read or written."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Storage error for '{path}': {reason}")


class TransactionError(RDBMSError):
    """Raised on invalid BEGIN/COMMIT/ROLLBACK sequencing."""
    pass


class UnsupportedOperationError(RDBMSError):
    """Raised for statements that parse but cannot be executed."""

    def __init__(self, feature: str):
        self.feature = feature
        super().__init__(f"{feature} is not supported")


class InvalidIdentifierError(RDBMSError):
    """Raised when a table/column name is invalid."""

    def __init__(self, identifier: str, reason: str):
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"Invalid identifier '{identifier}': {reason}")


class SchemaError(RDBMSError):
    """Raised when a table definition is inconsistent (duplicate or unknown columns)."""

    def __init__(self, message: str):
        super().__init__(message)
