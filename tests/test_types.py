"""
Unit tests for data types and typed values.
"""

from datetime import date, datetime

import pytest

from simplerdbms.storage.types import (
    DataType, can_explicit_convert, can_implicit_convert, get_common_type,
    is_valid_value, validate_and_sanitize
)
from simplerdbms.storage.value import Value, ValueKind
from simplerdbms.utils.exceptions import DataTypeError


class TestDataType:
    """Test DataType names, categories and validation."""

    def test_from_string_and_aliases(self):
        """Test type name lookup, including aliases."""
        assert DataType.from_string("varchar") == DataType.VARCHAR
        assert DataType.from_string("INTEGER") == DataType.INT
        assert DataType.from_string("Boolean") == DataType.BOOL
        assert DataType.from_string("REAL") == DataType.DOUBLE

    def test_from_string_unknown(self):
        """Test that unknown type names are rejected."""
        with pytest.raises(DataTypeError):
            DataType.from_string("BLOB")

    def test_categories(self):
        """Test category predicates."""
        assert DataType.BIGINT.is_integer()
        assert DataType.DOUBLE.is_floating_point()
        assert not DataType.DECIMAL.is_floating_point()
        assert DataType.DECIMAL.is_decimal()
        assert DataType.NUMERIC.is_numeric()
        assert DataType.ENUM.is_string()
        assert DataType.TIMESTAMP.is_temporal()
        assert not DataType.BOOL.is_numeric()

    def test_size_and_description(self):
        """Test nominal sizes and descriptions."""
        assert DataType.INT.size == 4
        assert DataType.BIGINT.size == 8
        assert "integer" in DataType.INT.description.lower()

    def test_integer_ranges(self):
        """Test per-width integer range checks."""
        assert is_valid_value(DataType.TINYINT, "127")
        assert not is_valid_value(DataType.TINYINT, "128")
        assert is_valid_value(DataType.INT, "-2147483648")
        assert not is_valid_value(DataType.INT, "2147483648")
        assert is_valid_value(DataType.BIGINT, "2147483648")

    def test_numeric_formats(self):
        """Test integer, decimal and float syntax."""
        assert not is_valid_value(DataType.INT, "1.5")
        assert is_valid_value(DataType.DECIMAL, "-12.50")
        assert not is_valid_value(DataType.DECIMAL, "1e3")
        assert is_valid_value(DataType.DOUBLE, "1e3")
        assert not is_valid_value(DataType.DOUBLE, "1.2.3")

    def test_null_is_valid_for_every_type(self):
        """Test that NULL passes type validation."""
        for data_type in DataType:
            assert is_valid_value(data_type, "NULL")
            assert is_valid_value(data_type, "")

    def test_temporal_formats(self):
        """Test DATE, TIME and DATETIME validation."""
        assert is_valid_value(DataType.DATE, "2024-02-29")
        assert not is_valid_value(DataType.DATE, "2023-02-29")
        assert is_valid_value(DataType.TIME, "23:59:59")
        assert not is_valid_value(DataType.TIME, "24:00:00")
        assert is_valid_value(DataType.DATETIME, "2024-01-01T10:00:00")
        assert not is_valid_value(DataType.DATETIME, "2024-01-01")

    def test_bool_enum_and_json(self):
        """Test BOOL spellings, ENUM membership and JSON documents."""
        assert is_valid_value(DataType.BOOL, "true")
        assert is_valid_value(DataType.BOOL, "0")
        assert not is_valid_value(DataType.BOOL, "yes")
        assert is_valid_value(DataType.ENUM, "M", ["S", "M", "L"])
        assert not is_valid_value(DataType.ENUM, "XL", ["S", "M", "L"])
        assert is_valid_value(DataType.JSON, '{"a": [1, 2]}')
        assert not is_valid_value(DataType.JSON, '42')

    def test_validate_and_sanitize(self):
        """Test canonical storage forms."""
        assert validate_and_sanitize(DataType.INT, " 007 ") == "7"
        assert validate_and_sanitize(DataType.BOOL, "1") == "TRUE"
        assert validate_and_sanitize(DataType.BOOL, "false") == "FALSE"
        assert validate_and_sanitize(DataType.DATETIME, "2024-01-01T10:00:00") == "2024-01-01 10:00:00"
        assert validate_and_sanitize(DataType.VARCHAR, " padded ") == " padded "
        assert validate_and_sanitize(DataType.INT, "null") == "NULL"

    def test_validate_and_sanitize_rejects(self):
        """Test that invalid text raises DataTypeError."""
        with pytest.raises(DataTypeError):
            validate_and_sanitize(DataType.INT, "abc")

    def test_conversion_lattice(self):
        """Test implicit and explicit conversion rules."""
        assert can_implicit_convert(DataType.INT, DataType.BIGINT)
        assert can_implicit_convert(DataType.INT, DataType.DOUBLE)
        assert can_implicit_convert(DataType.DATE, DataType.VARCHAR)
        assert not can_implicit_convert(DataType.DOUBLE, DataType.INT)
        assert can_implicit_convert(DataType.INT, DataType.DECIMAL)
        assert not can_implicit_convert(DataType.DECIMAL, DataType.DOUBLE)
        assert can_explicit_convert(DataType.DOUBLE, DataType.INT)
        assert can_explicit_convert(DataType.BOOL, DataType.INT)
        assert not can_explicit_convert(DataType.DATE, DataType.BOOL)

    def test_common_type(self):
        """Test operand promotion."""
        assert get_common_type(DataType.INT, DataType.INT) == DataType.INT
        assert get_common_type(DataType.INT, DataType.BIGINT) == DataType.BIGINT
        assert get_common_type(DataType.INT, DataType.DOUBLE) == DataType.DOUBLE
        assert get_common_type(DataType.VARCHAR, DataType.INT) == DataType.VARCHAR
        assert get_common_type(DataType.DATE, DataType.BOOL) == DataType.VARCHAR
        assert get_common_type(DataType.DATE, DataType.INT) == DataType.VARCHAR
        assert get_common_type(DataType.BOOL, DataType.INT) == DataType.VARCHAR
        assert get_common_type(DataType.INT, DataType.DECIMAL) == DataType.DECIMAL


class TestValue:
    """Test the typed Value box."""

    def test_from_string(self):
        """Test parsing stored text into typed payloads."""
        assert Value.from_string(DataType.INT, "42").data == 42
        assert Value.from_string(DataType.DOUBLE, "2.5").data == 2.5
        assert Value.from_string(DataType.BOOL, "TRUE").data is True
        assert Value.from_string(DataType.DATE, "2024-01-05").data == date(2024, 1, 5)
        assert Value.from_string(DataType.DATETIME, "2024-01-05 10:30:00").data == datetime(2024, 1, 5, 10, 30)

    def test_null_handling(self):
        """Test NULL text and unparseable text become NULL values."""
        assert Value.from_string(DataType.INT, "NULL").is_null
        assert Value.from_string(DataType.INT, "abc").is_null
        assert Value.from_string(DataType.VARCHAR, "NULL").is_null
        assert Value.null(DataType.INT).kind == ValueKind.NULL
        assert Value.null(DataType.INT).data_type == DataType.INT

    def test_set_data_checks_payload_type(self):
        """Test that payloads must match the type's kind."""
        value = Value(DataType.INT)
        value.set_data(5)
        assert value.data == 5
        with pytest.raises(DataTypeError):
            value.set_data("five")
        with pytest.raises(DataTypeError):
            value.set_data(True)

    def test_to_string(self):
        """Test canonical text output."""
        assert Value(DataType.BOOL, False).to_string() == "FALSE"
        assert Value(DataType.DOUBLE, 3.0).to_string() == "3"
        assert Value(DataType.DOUBLE, 2.5).to_string() == "2.5"
        assert Value(DataType.DATE, date(2024, 1, 5)).to_string() == "2024-01-05"
        assert Value.null().to_string() == "NULL"
        assert Value(DataType.BOOL, True).serialize() == "1"

    def test_conversions(self):
        """Test to_int, to_float, to_bool and convert."""
        assert Value(DataType.VARCHAR, " 12 ").to_int() == 12
        assert Value(DataType.VARCHAR, "x").to_int() is None
        assert Value(DataType.DOUBLE, 2.9).to_int() == 2
        assert Value(DataType.INT, 0).to_bool() is False
        assert Value(DataType.VARCHAR, "TRUE").to_bool() is True
        assert Value(DataType.VARCHAR, "42").convert(DataType.INT).data == 42
        assert Value(DataType.DOUBLE, 2.7).convert(DataType.INT).data == 2
        with pytest.raises(DataTypeError):
            Value(DataType.DATE, date(2024, 1, 1)).convert(DataType.BOOL)

    def test_compare(self):
        """Test three-way comparison rules."""
        assert Value(DataType.INT, 1).compare(Value(DataType.INT, 2)) == -1
        assert Value(DataType.INT, 2).compare(Value(DataType.DOUBLE, 2.0)) == 0
        assert Value(DataType.DOUBLE, 0.1 + 0.2).compare(Value(DataType.DOUBLE, 0.3)) == 0
        assert Value.null().compare(Value(DataType.INT, -100)) == -1
        assert Value.null().compare(Value.null(DataType.INT)) == 0
        assert Value(DataType.VARCHAR, "b").compare(Value(DataType.VARCHAR, "a")) == 1

    def test_ordering_operators(self):
        """Test that Values sort with the comparison rules."""
        values = [Value(DataType.INT, 3), Value.null(DataType.INT), Value(DataType.INT, 1)]
        assert [v.to_string() for v in sorted(values)] == ["NULL", "1", "3"]
        assert Value(DataType.INT, 1) == Value(DataType.BIGINT, 1)

    def test_arithmetic(self):
        """Test numeric operators and promotion."""
        result = Value(DataType.INT, 2) + Value(DataType.INT, 3)
        assert (result.data_type, result.data) == (DataType.INT, 5)
        result = Value(DataType.INT, 2) * Value(DataType.DOUBLE, 1.5)
        assert (result.data_type, result.data) == (DataType.DOUBLE, 3.0)
        result = Value(DataType.DECIMAL, 0.5) * Value(DataType.INT, 3)
        assert (result.data_type, result.data) == (DataType.DECIMAL, 1.5)
        assert (Value(DataType.INT, 5) - Value(DataType.INT, 7)).data == -2

    def test_division(self):
        """Test exact and inexact integer division."""
        assert (Value(DataType.INT, 6) / Value(DataType.INT, 3)).data == 2
        result = Value(DataType.INT, 7) / Value(DataType.INT, 2)
        assert (result.data_type, result.data) == (DataType.DOUBLE, 3.5)

    def test_division_by_zero_is_null(self):
        """Test that dividing by zero yields NULL."""
        assert (Value(DataType.INT, 1) / Value(DataType.INT, 0)).is_null
        assert (Value(DataType.DOUBLE, 1.0) / Value(DataType.DOUBLE, 0.0)).is_null

    def test_modulo(self):
        """Test modulo, including zero divisor and negative dividend."""
        assert (Value(DataType.INT, 7) % Value(DataType.INT, 3)).data == 1
        assert (Value(DataType.INT, -7) % Value(DataType.INT, 3)).data == -1
        assert (Value(DataType.INT, 7) % Value(DataType.INT, 0)).is_null
        assert (Value(DataType.DOUBLE, 7.0) % Value(DataType.INT, 2)).is_null

    def test_arithmetic_with_non_numbers_is_null(self):
        """Test that non-numeric operands yield NULL."""
        assert (Value(DataType.VARCHAR, "a") + Value(DataType.INT, 1)).is_null
        assert (Value.null(DataType.INT) + Value(DataType.INT, 1)).is_null
        result = Value(DataType.DATE, date(2024, 1, 5)) + Value(DataType.INT, 1)
        assert result.is_null
        assert result.data_type == DataType.VARCHAR

    def test_string_helpers(self):
        """Test concat, substring, upper, lower and length."""
        hello = Value(DataType.VARCHAR, "Hello")
        assert hello.concat(Value(DataType.INT, 1)).data == "Hello1"
        assert hello.substring(2, 3).data == "ell"
        assert hello.substring(3).data == "llo"
        assert hello.upper().data == "HELLO"
        assert hello.lower().data == "hello"
        assert hello.length().data == 5
        assert Value.null().length().is_null
