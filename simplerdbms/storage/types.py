"""
SQL data type definitions and the conversion lattice.

DataType is the single source of truth for which scalar kinds exist, how
each one is spelled in canonical storage form, and which conversions
between kinds are allowed.
"""

import json
import re
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence

from ..utils.exceptions import DataTypeError
from ..utils.validators import is_null_text
from ..config import NULL_SENTINEL


class DataType(Enum):
    """Supported column data types."""
    TINYINT = "TINYINT"
    SMALLINT = "SMALLINT"
    INT = "INT"
    BIGINT = "BIGINT"
    DECIMAL = "DECIMAL"
    NUMERIC = "NUMERIC"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    CHAR = "CHAR"
    VARCHAR = "VARCHAR"
    TEXT = "TEXT"
    NCHAR = "NCHAR"
    NVARCHAR = "NVARCHAR"
    TINYTEXT = "TINYTEXT"
    MEDIUMTEXT = "MEDIUMTEXT"
    LONGTEXT = "LONGTEXT"
    ENUM = "ENUM"
    BOOL = "BOOL"
    JSON = "JSON"
    DATE = "DATE"
    TIME = "TIME"
    DATETIME = "DATETIME"
    TIMESTAMP = "TIMESTAMP"

    @classmethod
    def from_string(cls, type_str: str) -> 'DataType':
        """
        Convert a SQL type name to a DataType.

        Raises:
            DataTypeError: If the name is not a known type
        """
        name = type_str.strip().upper()
        name = TYPE_ALIASES.get(name, name)
        try:
            return cls[name]
        except KeyError:
            raise DataTypeError(f"Unknown data type: {type_str}")

    def is_numeric(self) -> bool:
        return self.is_integer() or self.is_floating_point() or self.is_decimal()

    def is_integer(self) -> bool:
        return self in _INTEGER_TYPES

    def is_floating_point(self) -> bool:
        return self in _FLOATING_TYPES

    def is_decimal(self) -> bool:
        return self in (DataType.DECIMAL, DataType.NUMERIC)

    def is_string(self) -> bool:
        return self in _STRING_TYPES

    def is_temporal(self) -> bool:
        return self in _TEMPORAL_TYPES

    def is_blob(self) -> bool:
        return self in (DataType.MEDIUMTEXT, DataType.LONGTEXT, DataType.JSON)

    @property
    def size(self) -> int:
        """Nominal storage size in bytes."""
        return _TYPE_SIZES[self]

    @property
    def description(self) -> str:
        return _TYPE_DESCRIPTIONS[self]


TYPE_ALIASES = {
    'INTEGER': 'INT',
    'BOOLEAN': 'BOOL',
    'REAL': 'DOUBLE',
}

_INTEGER_TYPES = frozenset({
    DataType.TINYINT, DataType.SMALLINT, DataType.INT, DataType.BIGINT,
})

_FLOATING_TYPES = frozenset({DataType.FLOAT, DataType.DOUBLE})

_STRING_TYPES = frozenset({
    DataType.CHAR, DataType.VARCHAR, DataType.TEXT, DataType.NCHAR,
    DataType.NVARCHAR, DataType.TINYTEXT, DataType.MEDIUMTEXT,
    DataType.LONGTEXT, DataType.ENUM, DataType.JSON,
})

_TEMPORAL_TYPES = frozenset({
    DataType.DATE, DataType.TIME, DataType.DATETIME, DataType.TIMESTAMP,
})

INTEGER_RANGES = {
    DataType.TINYINT: (-2 ** 7, 2 ** 7 - 1),
    DataType.SMALLINT: (-2 ** 15, 2 ** 15 - 1),
    DataType.INT: (-2 ** 31, 2 ** 31 - 1),
    DataType.BIGINT: (-2 ** 63, 2 ** 63 - 1),
}

# Widest first
_NUMERIC_RANK = (
    DataType.DOUBLE, DataType.FLOAT, DataType.DECIMAL, DataType.NUMERIC,
    DataType.BIGINT, DataType.INT, DataType.SMALLINT, DataType.TINYINT,
)

_TYPE_SIZES = {
    DataType.TINYINT: 1,
    DataType.SMALLINT: 2,
    DataType.INT: 4,
    DataType.BIGINT: 8,
    DataType.DECIMAL: 16,
    DataType.NUMERIC: 16,
    DataType.FLOAT: 4,
    DataType.DOUBLE: 8,
    DataType.CHAR: 1,
    DataType.VARCHAR: 255,
    DataType.TEXT: 65535,
    DataType.NCHAR: 2,
    DataType.NVARCHAR: 510,
    DataType.TINYTEXT: 255,
    DataType.MEDIUMTEXT: 16777215,
    DataType.LONGTEXT: 4294967295,
    DataType.ENUM: 2,
    DataType.BOOL: 1,
    DataType.JSON: 4294967295,
    DataType.DATE: 3,
    DataType.TIME: 3,
    DataType.DATETIME: 8,
    DataType.TIMESTAMP: 4,
}

_TYPE_DESCRIPTIONS = {
    DataType.TINYINT: "Very small integer (-128 to 127)",
    DataType.SMALLINT: "Small integer (-32768 to 32767)",
    DataType.INT: "Standard integer (-2147483648 to 2147483647)",
    DataType.BIGINT: "Large integer (64-bit)",
    DataType.DECIMAL: "Fixed-point number with precision and scale",
    DataType.NUMERIC: "Fixed-point number with precision and scale",
    DataType.FLOAT: "Single-precision floating point number",
    DataType.DOUBLE: "Double-precision floating point number",
    DataType.CHAR: "Fixed-length character string",
    DataType.VARCHAR: "Variable-length character string",
    DataType.TEXT: "Text string up to 64KB",
    DataType.NCHAR: "Fixed-length Unicode string",
    DataType.NVARCHAR: "Variable-length Unicode string",
    DataType.TINYTEXT: "Text string up to 255 characters",
    DataType.MEDIUMTEXT: "Text string up to 16MB",
    DataType.LONGTEXT: "Text string up to 4GB",
    DataType.ENUM: "One value from a fixed list of strings",
    DataType.BOOL: "Boolean value (TRUE or FALSE)",
    DataType.JSON: "JSON object or array",
    DataType.DATE: "Date (YYYY-MM-DD)",
    DataType.TIME: "Time of day (HH:MM:SS)",
    DataType.DATETIME: "Date and time (YYYY-MM-DD HH:MM:SS)",
    DataType.TIMESTAMP: "Timestamp (YYYY-MM-DD HH:MM:SS)",
}

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M:%S"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_INTEGER_RE = re.compile(r'^[+-]?\d+$')
_DECIMAL_RE = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)$')
_FLOAT_RE = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$')
_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
_TIME_RE = re.compile(r'^\d{2}:\d{2}:\d{2}$')
_DATETIME_RE = re.compile(r'^\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}:\d{2}$')

_BOOL_TRUE = ('TRUE', '1')
_BOOL_FALSE = ('FALSE', '0')


def can_implicit_convert(source: DataType, target: DataType) -> bool:
    """
    Check whether a value of ``source`` may be promoted to ``target``.

    The lattice is one-way: integer to integer or float, integer/float to
    decimal, anything numeric/temporal/bool to string, and string back to
    numeric or temporal (subject to the text parsing).
    """
    if source == target:
        return True
    if source.is_integer() and (target.is_integer() or target.is_floating_point()):
        return True
    if source.is_floating_point() and target.is_floating_point():
        return True
    if target.is_decimal() and (source.is_integer() or source.is_floating_point() or source.is_decimal()):
        return True
    if target.is_string() and (source.is_numeric() or source.is_temporal() or source == DataType.BOOL):
        return True
    if source.is_string() and (target.is_numeric() or target.is_temporal()):
        return True
    return False


def can_explicit_convert(source: DataType, target: DataType) -> bool:
    """
    Check whether a value of ``source`` may be cast to ``target``.

    Explicit casts additionally allow numeric and temporal to convert into
    each other, numeric narrowing, and BOOL to or from numeric/string.
    """
    if can_implicit_convert(source, target):
        return True
    if source.is_numeric() and (target.is_numeric() or target.is_temporal()):
        return True
    if source.is_temporal() and target.is_numeric():
        return True
    if DataType.BOOL in (source, target):
        other = target if source == DataType.BOOL else source
        return other.is_numeric() or other.is_string()
    return False


def get_common_type(left: DataType, right: DataType) -> DataType:
    """
    Pick the type two operands are promoted to.

    Identical types stay as they are and a string side wins. Two numeric
    types promote to the wider one; any other mix falls back to VARCHAR.
    """
    if left == right:
        return left
    if left.is_string():
        return left
    if right.is_string():
        return right
    if left.is_numeric() and right.is_numeric():
        for candidate in _NUMERIC_RANK:
            if candidate in (left, right):
                return candidate
    return DataType.VARCHAR


def is_valid_value(data_type: DataType, text: Optional[str],
                   enum_values: Optional[Sequence[str]] = None) -> bool:
    """
    Check whether text parses as a value of the given type.

    NULL (empty or any casing of "null") is valid for every type; whether
    a column accepts it is decided by the column.

    Args:
        data_type: Target type
        text: Value text, unquoted
        enum_values: Allowed values for ENUM columns

    Returns:
        True if the text is a well-formed value of ``data_type``
    """
    if is_null_text(text):
        return True

    if data_type.is_string():
        if data_type == DataType.ENUM and enum_values:
            return text in enum_values
        if data_type == DataType.JSON:
            return _is_json_document(text)
        return True

    value = text.strip()

    if data_type.is_integer():
        if not _INTEGER_RE.match(value):
            return False
        low, high = INTEGER_RANGES[data_type]
        return low <= int(value) <= high

    if data_type.is_decimal():
        return bool(_DECIMAL_RE.match(value))

    if data_type.is_floating_point():
        return bool(_FLOAT_RE.match(value))

    if data_type == DataType.BOOL:
        return value.upper() in _BOOL_TRUE + _BOOL_FALSE

    if data_type == DataType.DATE:
        return bool(_DATE_RE.match(value)) and _parses(value, DATE_FORMAT)

    if data_type == DataType.TIME:
        return bool(_TIME_RE.match(value)) and _parses(value, TIME_FORMAT)

    if data_type in (DataType.DATETIME, DataType.TIMESTAMP):
        return bool(_DATETIME_RE.match(value)) and _parses(value.replace('T', ' '), DATETIME_FORMAT)

    return False


def validate_and_sanitize(data_type: DataType, text: Optional[str],
                          enum_values: Optional[Sequence[str]] = None) -> str:
    """
    Convert text into the canonical storage encoding for ``data_type``.

    Raises:
        DataTypeError: If the text is not a valid value of the type
    """
    if is_null_text(text):
        return NULL_SENTINEL
    if not is_valid_value(data_type, text, enum_values):
        raise DataTypeError(f"Invalid value '{text}' for type {data_type.value}")

    if data_type.is_string():
        return text

    value = text.strip()
    if data_type.is_integer():
        return str(int(value))
    if data_type == DataType.BOOL:
        return 'TRUE' if value.upper() in _BOOL_TRUE else 'FALSE'
    if data_type in (DataType.DATETIME, DataType.TIMESTAMP):
        return value.replace('T', ' ')
    return value


def _parses(text: str, fmt: str) -> bool:
    try:
        datetime.strptime(text, fmt)
    except ValueError:
        return False
    return True


def _is_json_document(text: str) -> bool:
    try:
        document = json.loads(text)
    except ValueError:
        return False
    return isinstance(document, (dict, list))
