"""
Column definition and per-value validation.

The Column class is the single source of truth for column metadata and
for validating one value against the column's type, length, precision
and CHECK rules. Rules that need other rows (UNIQUE) or other tables
(FOREIGN KEY) are enforced by TableManager.
"""

from typing import List, Mapping, Optional

from ..utils.validators import validate_identifier, is_null_text
from .constraints import CheckConstraint
from .results import ErrorKind, ValidationResult
from .types import DataType, is_valid_value
from .value import Value


class Column:
    """
    Represents a table column with type and constraints.

    Setting ``primary_key`` or ``not_null`` also clears ``nullable``.
    """

    def __init__(
        self,
        name: str,
        data_type: DataType,
        nullable: bool = True,
        primary_key: bool = False,
        unique: bool = False,
        not_null: bool = False,
        auto_increment: bool = False,
        default_value: Optional[str] = None,
        max_length: Optional[int] = None,
        precision: Optional[int] = None,
        scale: Optional[int] = None,
        enum_values: Optional[List[str]] = None,
        check_condition: Optional[str] = None,
        foreign_key_table: Optional[str] = None,
        foreign_key_column: Optional[str] = None,
        description: str = ""
    ):
        """
        Initialize a column.

        Args:
            name: Column name (validated)
            data_type: Data type enum
            nullable: Whether NULL is accepted
            primary_key: Part of the table's primary key
            unique: Values must be unique across rows
            not_null: NOT NULL constraint
            auto_increment: Generate the next integer when no value is given
            default_value: Literal text or clock function (e.g. "NOW()")
            max_length: Maximum length for string types
            precision: Total digits for DECIMAL/NUMERIC
            scale: Fractional digits for DECIMAL/NUMERIC
            enum_values: Allowed values for ENUM
            check_condition: CHECK condition text
            foreign_key_table: Referenced table for an inline REFERENCES
            foreign_key_column: Referenced column for an inline REFERENCES
            description: Free-form description
        """
        validate_identifier(name)
        self.name = name
        self.data_type = data_type
        self.nullable = nullable
        self._primary_key = False
        self._not_null = False
        self.primary_key = primary_key
        self.not_null = not_null
        self.unique = unique
        self.auto_increment = auto_increment
        self.default_value = default_value
        self.max_length = max_length
        self.precision = precision
        self.scale = scale
        self.enum_values = list(enum_values) if enum_values else []
        self.check_condition = check_condition
        self.foreign_key_table = foreign_key_table
        self.foreign_key_column = foreign_key_column
        self.description = description

    @property
    def primary_key(self) -> bool:
        return self._primary_key

    @primary_key.setter
    def primary_key(self, value: bool) -> None:
        self._primary_key = value
        if value:
            self.nullable = False

    @property
    def not_null(self) -> bool:
        return self._not_null

    @not_null.setter
    def not_null(self, value: bool) -> None:
        self._not_null = value
        if value:
            self.nullable = False

    @property
    def type_name(self) -> str:
        """SQL spelling of the type, including parameters."""
        name = self.data_type.value
        if self.data_type == DataType.ENUM and self.enum_values:
            return f"{name}({', '.join(repr(v) for v in self.enum_values)})"
        if self.data_type.is_decimal() and self.precision:
            if self.scale is not None:
                return f"{name}({self.precision},{self.scale})"
            return f"{name}({self.precision})"
        if self.max_length:
            return f"{name}({self.max_length})"
        return name

    def validate_value(
        self,
        value: Optional[str],
        row_values: Optional[Mapping[str, Value]] = None
    ) -> ValidationResult:
        """
        Validate a value against this column.

        Checks run in order: NULL handling, type conformance, string
        length, DECIMAL precision and scale, then the CHECK condition.

        Args:
            value: Value text (NULL sentinel, empty string or None mean NULL)
            row_values: Typed values of the rest of the row, for CHECK
                conditions that mention other columns

        Returns:
            ValidationResult; falsy with an ErrorKind and message on failure
        """
        if is_null_text(value):
            if self.primary_key:
                return ValidationResult.failure(
                    ErrorKind.PRIMARY_KEY,
                    f"PRIMARY KEY column '{self.name}' cannot be NULL"
                )
            if not self.nullable:
                return ValidationResult.failure(
                    ErrorKind.NOT_NULL,
                    f"Column '{self.name}' does not accept NULL values"
                )
            return ValidationResult.ok()

        if not is_valid_value(self.data_type, value, self.enum_values):
            return ValidationResult.failure(
                ErrorKind.TYPE_MISMATCH,
                f"Invalid value '{value}' for type {self.type_name}"
            )

        if self.data_type.is_string() and self.max_length and len(value) > self.max_length:
            return ValidationResult.failure(
                ErrorKind.LENGTH,
                f"Value exceeds maximum length of {self.max_length}"
            )

        if self.data_type.is_decimal():
            result = self._validate_decimal(value.strip())
            if not result:
                return result

        if self.check_condition:
            return self._validate_check(value, row_values)

        return ValidationResult.ok()

    def _validate_decimal(self, text: str) -> ValidationResult:
        digits = text.lstrip('+-')
        if digits.count('.') > 1:
            return ValidationResult.failure(ErrorKind.TYPE_MISMATCH, "Invalid decimal format")

        int_part, _, frac_part = digits.partition('.')
        int_part = int_part.lstrip('0')
        total = len(int_part) + len(frac_part)

        if self.precision and total > self.precision:
            return ValidationResult.failure(
                ErrorKind.PRECISION,
                f"Decimal precision exceeded: {total} digits (max {self.precision})"
            )
        if self.scale is not None and len(frac_part) > self.scale:
            return ValidationResult.failure(
                ErrorKind.SCALE,
                f"Decimal scale exceeded: {len(frac_part)} digits (max {self.scale})"
            )
        return ValidationResult.ok()

    def _validate_check(
        self,
        value: str,
        row_values: Optional[Mapping[str, Value]]
    ) -> ValidationResult:
        typed = Value.from_string(self.data_type, value)
        values = dict(row_values or {})
        values[self.name.lower()] = typed
        values['value'] = typed
        check = CheckConstraint(f"chk_{self.name}", self.check_condition, [self.name])
        return check.evaluate(values)

    def to_dict(self) -> dict:
        """
        Serialize column to dictionary.

        Used for schema introspection and persistence.
        """
        return {
            'name': self.name,
            'type': self.data_type.value,
            'nullable': self.nullable,
            'primaryKey': self.primary_key,
            'unique': self.unique,
            'notNull': self.not_null,
            'autoIncrement': self.auto_increment,
            'defaultValue': self.default_value,
            'maxLength': self.max_length,
            'precision': self.precision,
            'scale': self.scale,
            'enumValues': self.enum_values,
            'checkCondition': self.check_condition,
            'foreignKeyTable': self.foreign_key_table,
            'foreignKeyColumn': self.foreign_key_column,
            'description': self.description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Column':
        """Deserialize column from dictionary."""
        column = cls(
            name=data['name'],
            data_type=DataType.from_string(data['type']),
            primary_key=data.get('primaryKey', False),
            unique=data.get('unique', False),
            not_null=data.get('notNull', False),
            auto_increment=data.get('autoIncrement', False),
            default_value=data.get('defaultValue'),
            max_length=data.get('maxLength'),
            precision=data.get('precision'),
            scale=data.get('scale'),
            enum_values=data.get('enumValues'),
            check_condition=data.get('checkCondition'),
            foreign_key_table=data.get('foreignKeyTable'),
            foreign_key_column=data.get('foreignKeyColumn'),
            description=data.get('description', ''),
        )
        if not data.get('nullable', True):
            column.nullable = False
        return column

    def __repr__(self) -> str:
        flags = []
        if self.primary_key:
            flags.append("PRIMARY KEY")
        if self.unique:
            flags.append("UNIQUE")
        if self.not_null:
            flags.append("NOT NULL")
        if self.auto_increment:
            flags.append("AUTO_INCREMENT")
        if flags:
            return f"Column({self.name}, {self.type_name}, {', '.join(flags)})"
        return f"Column({self.name}, {self.type_name})"
