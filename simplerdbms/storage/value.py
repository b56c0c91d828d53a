"""
Typed scalar values.

A Value pairs a DataType tag with a payload drawn from a closed set of
Python types (int, float, str, bool, date, time, datetime). Comparison,
arithmetic and string helpers used by the condition evaluator live here.
"""

import functools
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Optional

from ..config import EPSILON, NULL_SENTINEL
from ..utils.exceptions import DataTypeError
from ..utils.validators import is_null_text
from .types import (
    DATE_FORMAT, DATETIME_FORMAT, TIME_FORMAT, DataType,
    can_explicit_convert, get_common_type,
)


class ValueKind(Enum):
    """Runtime shape of a Value's payload."""
    NULL = "NULL"
    INTEGER = "INTEGER"
    FLOAT = "FLOAT"
    TEXT = "TEXT"
    BOOL = "BOOL"
    DATE = "DATE"
    TIME = "TIME"
    DATETIME = "DATETIME"


def kind_for(data_type: DataType) -> ValueKind:
    """Map a column type to the payload kind its values carry."""
    if data_type.is_integer():
        return ValueKind.INTEGER
    if data_type.is_floating_point() or data_type.is_decimal():
        return ValueKind.FLOAT
    if data_type == DataType.BOOL:
        return ValueKind.BOOL
    if data_type == DataType.DATE:
        return ValueKind.DATE
    if data_type == DataType.TIME:
        return ValueKind.TIME
    if data_type in (DataType.DATETIME, DataType.TIMESTAMP):
        return ValueKind.DATETIME
    return ValueKind.TEXT


_PAYLOAD_TYPES = {
    ValueKind.INTEGER: int,
    ValueKind.FLOAT: float,
    ValueKind.TEXT: str,
    ValueKind.BOOL: bool,
    ValueKind.DATE: date,
    ValueKind.TIME: time,
    ValueKind.DATETIME: datetime,
}

_NUMERIC_KINDS = (ValueKind.INTEGER, ValueKind.FLOAT)


@functools.total_ordering
class Value:
    """
    A DataType-tagged scalar.

    NULL is represented by a ``None`` payload, so every Value keeps its
    declared type even when null.
    """

    __slots__ = ('_data_type', '_data')

    def __init__(self, data_type: DataType = DataType.VARCHAR, data: Any = None):
        """
        Initialize a value.

        Args:
            data_type: Declared type of the value
            data: Payload matching the type's kind, or None for NULL

        Raises:
            DataTypeError: If the payload does not fit the type
        """
        self._data_type = data_type
        self._data = None
        if data is not None:
            self.set_data(data)

    @classmethod
    def null(cls, data_type: DataType = DataType.VARCHAR) -> 'Value':
        return cls(data_type)

    @classmethod
    def from_string(cls, data_type: DataType, text: Optional[str]) -> 'Value':
        """
        Parse stored or literal text into a Value of ``data_type``.

        Text that does not parse as the type yields a NULL value of that
        type rather than an error.
        """
        if text is None:
            return cls(data_type)
        kind = kind_for(data_type)
        if kind != ValueKind.TEXT and is_null_text(text):
            return cls(data_type)
        if kind == ValueKind.TEXT and text.strip().upper() == NULL_SENTINEL:
            return cls(data_type)
        return cls(data_type, _parse_payload(kind, text))

    @property
    def data_type(self) -> DataType:
        return self._data_type

    @property
    def data(self) -> Any:
        return self._data

    @property
    def kind(self) -> ValueKind:
        if self._data is None:
            return ValueKind.NULL
        return kind_for(self._data_type)

    @property
    def is_null(self) -> bool:
        return self._data is None

    def set_data(self, data: Any) -> None:
        """
        Replace the payload.

        Raises:
            DataTypeError: If the payload's Python type does not match the kind
        """
        kind = kind_for(self._data_type)
        if kind == ValueKind.FLOAT and isinstance(data, int) and not isinstance(data, bool):
            data = float(data)
        expected = _PAYLOAD_TYPES[kind]
        valid = isinstance(data, expected)
        if kind == ValueKind.INTEGER and isinstance(data, bool):
            valid = False
        if kind == ValueKind.DATE and isinstance(data, datetime):
            valid = False
        if not valid:
            raise DataTypeError(
                f"Cannot store {type(data).__name__} in a {self._data_type.value} value"
            )
        self._data = data

    def set_null(self) -> None:
        self._data = None

    # Conversions

    def to_string(self) -> str:
        """Canonical text form, as stored in data files."""
        kind = self.kind
        if kind == ValueKind.NULL:
            return NULL_SENTINEL
        if kind == ValueKind.BOOL:
            return 'TRUE' if self._data else 'FALSE'
        if kind == ValueKind.FLOAT:
            return _format_float(self._data)
        if kind == ValueKind.DATE:
            return self._data.strftime(DATE_FORMAT)
        if kind == ValueKind.TIME:
            return self._data.strftime(TIME_FORMAT)
        if kind == ValueKind.DATETIME:
            return self._data.strftime(DATETIME_FORMAT)
        return str(self._data)

    def serialize(self) -> str:
        """Compact text form: booleans as 1/0, NULL as the sentinel."""
        if self.kind == ValueKind.BOOL:
            return '1' if self._data else '0'
        return self.to_string()

    def to_int(self) -> Optional[int]:
        """Integer view of the value, or None when it has none."""
        kind = self.kind
        if kind == ValueKind.INTEGER:
            return self._data
        if kind == ValueKind.FLOAT:
            return int(self._data)
        if kind == ValueKind.BOOL:
            return 1 if self._data else 0
        if kind == ValueKind.TEXT:
            try:
                return int(self._data.strip())
            except ValueError:
                return None
        return None

    def to_float(self) -> Optional[float]:
        """Float view of the value, or None when it has none."""
        kind = self.kind
        if kind in _NUMERIC_KINDS:
            return float(self._data)
        if kind == ValueKind.BOOL:
            return 1.0 if self._data else 0.0
        if kind == ValueKind.TEXT:
            try:
                return float(self._data.strip())
            except ValueError:
                return None
        return None

    def to_bool(self) -> Optional[bool]:
        """Truth value, or None for NULL and unrecognized text."""
        kind = self.kind
        if kind == ValueKind.BOOL:
            return self._data
        if kind in _NUMERIC_KINDS:
            return abs(self._data) > EPSILON
        if kind == ValueKind.TEXT:
            upper = self._data.strip().upper()
            if upper in ('TRUE', '1'):
                return True
            if upper in ('FALSE', '0'):
                return False
        return None

    def convert(self, target: DataType) -> 'Value':
        """
        Cast to another type.

        Returns a NULL value of ``target`` when the text form does not
        parse as the target type.

        Raises:
            DataTypeError: If the cast is not allowed by the conversion lattice
        """
        if target == self._data_type:
            return Value(target, self._data)
        if not can_explicit_convert(self._data_type, target):
            raise DataTypeError(
                f"Cannot convert {self._data_type.value} to {target.value}"
            )
        if self.is_null:
            return Value(target)
        target_kind = kind_for(target)
        if target_kind == ValueKind.INTEGER and self.kind == ValueKind.FLOAT:
            return Value(target, int(self._data))
        if target_kind == ValueKind.BOOL:
            return Value(target, self.to_bool())
        return Value.from_string(target, self.to_string())

    # Comparison

    def compare(self, other: 'Value') -> int:
        """
        Three-way comparison.

        NULL sorts before everything. Numbers compare within EPSILON,
        temporal values of the same kind compare exactly, everything else
        compares by canonical text.
        """
        if self.is_null and other.is_null:
            return 0
        if self.is_null:
            return -1
        if other.is_null:
            return 1

        left_kind, right_kind = self.kind, other.kind
        if left_kind == ValueKind.INTEGER and right_kind == ValueKind.INTEGER:
            return (self._data > other._data) - (self._data < other._data)
        if left_kind in _NUMERIC_KINDS and right_kind in _NUMERIC_KINDS:
            diff = float(self._data) - float(other._data)
            if abs(diff) < EPSILON:
                return 0
            return -1 if diff < 0 else 1
        if left_kind == right_kind and left_kind in (ValueKind.DATE, ValueKind.TIME, ValueKind.DATETIME):
            return (self._data > other._data) - (self._data < other._data)

        left_text, right_text = self.to_string(), other.to_string()
        return (left_text > right_text) - (left_text < right_text)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return self.compare(other) == 0

    def __lt__(self, other: 'Value') -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return self.compare(other) < 0

    __hash__ = None

    # Arithmetic

    def _numeric_operands(self, other: 'Value'):
        if self.kind in _NUMERIC_KINDS and other.kind in _NUMERIC_KINDS:
            return get_common_type(self._data_type, other._data_type)
        return None

    def __add__(self, other: 'Value') -> 'Value':
        result_type = self._numeric_operands(other)
        if result_type is None:
            return Value(get_common_type(self._data_type, other._data_type))
        return _numeric_result(result_type, self._data + other._data)

    def __sub__(self, other: 'Value') -> 'Value':
        result_type = self._numeric_operands(other)
        if result_type is None:
            return Value(get_common_type(self._data_type, other._data_type))
        return _numeric_result(result_type, self._data - other._data)

    def __mul__(self, other: 'Value') -> 'Value':
        result_type = self._numeric_operands(other)
        if result_type is None:
            return Value(get_common_type(self._data_type, other._data_type))
        return _numeric_result(result_type, self._data * other._data)

    def __truediv__(self, other: 'Value') -> 'Value':
        result_type = self._numeric_operands(other)
        if result_type is None:
            return Value(get_common_type(self._data_type, other._data_type))
        if abs(float(other._data)) < EPSILON:
            return Value(result_type)
        if (self.kind == ValueKind.INTEGER and other.kind == ValueKind.INTEGER
                and self._data % other._data == 0):
            return Value(result_type, self._data // other._data)
        result = float(self._data) / float(other._data)
        if result_type.is_integer():
            result_type = DataType.DOUBLE
        return Value(result_type, result)

    def __mod__(self, other: 'Value') -> 'Value':
        if self.kind != ValueKind.INTEGER or other.kind != ValueKind.INTEGER:
            return Value(get_common_type(self._data_type, other._data_type))
        result_type = get_common_type(self._data_type, other._data_type)
        if other._data == 0:
            return Value(result_type)
        # Truncating remainder: the sign follows the dividend
        remainder = abs(self._data) % abs(other._data)
        return Value(result_type, -remainder if self._data < 0 else remainder)

    # String helpers

    def concat(self, other: 'Value') -> 'Value':
        if self.is_null or other.is_null:
            return Value(DataType.VARCHAR)
        return Value(DataType.VARCHAR, self.to_string() + other.to_string())

    def substring(self, start: int, length: Optional[int] = None) -> 'Value':
        """SQL SUBSTRING with a 1-based start position."""
        if self.is_null:
            return Value(DataType.VARCHAR)
        text = self.to_string()
        begin = max(start - 1, 0)
        end = len(text) if length is None else begin + max(length, 0)
        return Value(DataType.VARCHAR, text[begin:end])

    def upper(self) -> 'Value':
        if self.is_null:
            return Value(DataType.VARCHAR)
        return Value(DataType.VARCHAR, self.to_string().upper())

    def lower(self) -> 'Value':
        if self.is_null:
            return Value(DataType.VARCHAR)
        return Value(DataType.VARCHAR, self.to_string().lower())

    def length(self) -> 'Value':
        if self.is_null:
            return Value(DataType.INT)
        return Value(DataType.INT, len(self.to_string()))

    def __repr__(self) -> str:
        return f"Value({self._data_type.value}, {self.to_string()})"


def _numeric_result(result_type: DataType, result) -> Value:
    if result_type.is_integer() and isinstance(result, float):
        result_type = DataType.DOUBLE
    return Value(result_type, result)


def _parse_payload(kind: ValueKind, text: str):
    if kind == ValueKind.TEXT:
        return text
    value = text.strip()
    try:
        if kind == ValueKind.INTEGER:
            return int(value)
        if kind == ValueKind.FLOAT:
            return float(value)
        if kind == ValueKind.BOOL:
            upper = value.upper()
            if upper in ('TRUE', '1'):
                return True
            if upper in ('FALSE', '0'):
                return False
            return None
        if kind == ValueKind.DATE:
            return datetime.strptime(value, DATE_FORMAT).date()
        if kind == ValueKind.TIME:
            return datetime.strptime(value, TIME_FORMAT).time()
        if kind == ValueKind.DATETIME:
            return datetime.strptime(value.replace('T', ' '), DATETIME_FORMAT)
    except ValueError:
        return None
    return None


def _format_float(number: float) -> str:
    if number.is_integer() and abs(number) < 1e16:
        return str(int(number))
    return repr(number)
