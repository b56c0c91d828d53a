"""
Column and table constraint definitions.

Uses abstract base class pattern so the schema can hold any constraint
kind behind one validate-a-value contract:
- PRIMARY KEY and NOT NULL reject NULL values outright
- UNIQUE and FOREIGN KEY need other rows or tables, so their per-value
  validation always passes and TableManager enforces them
- CHECK evaluates its condition against the real value
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Mapping, Optional, Sequence

from ..parser.condition_parser import compile_condition
from ..executor.evaluator import ConditionEvaluator, mapping_resolver
from ..utils.exceptions import RDBMSError
from ..utils.validators import is_null_text
from .results import ErrorKind, ValidationResult
from .types import DataType
from .value import Value


class ConstraintType(Enum):
    """Kinds of constraints a schema can declare."""
    PRIMARY_KEY = "PRIMARY KEY"
    UNIQUE = "UNIQUE"
    NOT_NULL = "NOT NULL"
    FOREIGN_KEY = "FOREIGN KEY"
    CHECK = "CHECK"


class CascadeAction(Enum):
    """Referential actions. Stored with foreign keys but never executed."""
    RESTRICT = "RESTRICT"
    NO_ACTION = "NO ACTION"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"
    CASCADE = "CASCADE"

    @classmethod
    def from_string(cls, text: str) -> 'CascadeAction':
        return cls(" ".join(text.upper().split()))


class Constraint(ABC):
    """
    Abstract base class for all constraints.

    Each constraint has a name and the list of columns it covers.
    """

    def __init__(self, name: str, columns: Sequence[str]):
        self.name = name
        self.columns = list(columns)

    @property
    @abstractmethod
    def constraint_type(self) -> ConstraintType:
        pass

    @abstractmethod
    def validate(self, value: Optional[str]) -> ValidationResult:
        """
        Validate a single value against this constraint.

        Args:
            value: Value text (NULL sentinel, empty string or None mean NULL)

        Returns:
            ValidationResult describing the outcome
        """
        pass

    @property
    def description(self) -> str:
        return f"{self.constraint_type.value} ({', '.join(self.columns)})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name}, {self.columns})"


class PrimaryKeyConstraint(Constraint):
    """PRIMARY KEY: values must be non-NULL here and unique across rows."""

    @property
    def constraint_type(self) -> ConstraintType:
        return ConstraintType.PRIMARY_KEY

    def validate(self, value: Optional[str]) -> ValidationResult:
        if is_null_text(value):
            return ValidationResult.failure(
                ErrorKind.PRIMARY_KEY, "PRIMARY KEY cannot be NULL or empty"
            )
        return ValidationResult.ok()


class UniqueConstraint(Constraint):
    """UNIQUE: enforced across rows by TableManager."""

    @property
    def constraint_type(self) -> ConstraintType:
        return ConstraintType.UNIQUE

    def validate(self, value: Optional[str]) -> ValidationResult:
        return ValidationResult.ok()


class NotNullConstraint(Constraint):
    """NOT NULL."""

    @property
    def constraint_type(self) -> ConstraintType:
        return ConstraintType.NOT_NULL

    def validate(self, value: Optional[str]) -> ValidationResult:
        if is_null_text(value):
            return ValidationResult.failure(ErrorKind.NOT_NULL, "Column cannot be NULL")
        return ValidationResult.ok()


class ForeignKeyConstraint(Constraint):
    """
    FOREIGN KEY reference to columns of another (or the same) table.

    The referenced value's existence is checked by TableManager, which
    can see the parent table. Cascade actions are metadata only.
    """

    def __init__(
        self,
        name: str,
        columns: Sequence[str],
        ref_table: str,
        ref_columns: Sequence[str],
        on_delete: CascadeAction = CascadeAction.RESTRICT,
        on_update: CascadeAction = CascadeAction.RESTRICT
    ):
        super().__init__(name, columns)
        self.ref_table = ref_table
        self.ref_columns = list(ref_columns)
        self.on_delete = on_delete
        self.on_update = on_update

    @property
    def constraint_type(self) -> ConstraintType:
        return ConstraintType.FOREIGN_KEY

    def validate(self, value: Optional[str]) -> ValidationResult:
        return ValidationResult.ok()

    @property
    def full_reference(self) -> str:
        """Referenced target as ``table.column`` (or ``table(a, b)``)."""
        if len(self.ref_columns) == 1:
            return f"{self.ref_table}.{self.ref_columns[0]}"
        return f"{self.ref_table}({', '.join(self.ref_columns)})"

    @property
    def description(self) -> str:
        return (
            f"FOREIGN KEY ({', '.join(self.columns)}) REFERENCES {self.full_reference}"
            f" ON DELETE {self.on_delete.value} ON UPDATE {self.on_update.value}"
        )

    def to_dict(self) -> dict:
        return {
            'columns': self.columns,
            'refTable': self.ref_table,
            'refColumn': self.ref_columns[0] if self.ref_columns else '',
            'refColumns': self.ref_columns,
            'onDelete': self.on_delete.value,
            'onUpdate': self.on_update.value,
        }

    @classmethod
    def from_dict(cls, name: str, data: dict) -> 'ForeignKeyConstraint':
        ref_columns = data.get('refColumns') or [data['refColumn']]
        return cls(
            name=name,
            columns=data.get('columns', ref_columns),
            ref_table=data['refTable'],
            ref_columns=ref_columns,
            on_delete=CascadeAction.from_string(data.get('onDelete', 'RESTRICT')),
            on_update=CascadeAction.from_string(data.get('onUpdate', 'RESTRICT')),
        )


class CheckConstraint(Constraint):
    """
    CHECK: a boolean condition over the value (or the row).

    A condition that evaluates to NULL (unknown) passes, as in SQL.
    """

    _evaluator = ConditionEvaluator()

    def __init__(self, name: str, condition: str, columns: Sequence[str] = ()):
        super().__init__(name, columns)
        self.condition = condition

    @property
    def constraint_type(self) -> ConstraintType:
        return ConstraintType.CHECK

    @property
    def description(self) -> str:
        return f"CHECK ({self.condition})"

    def validate(self, value: Optional[str]) -> ValidationResult:
        """Check a bare value, bound to every covered column and to ``value``."""
        bound = Value.from_string(DataType.VARCHAR, value)
        names = {name.lower(): bound for name in self.columns}
        names['value'] = bound
        return self.evaluate(names)

    def evaluate(self, values: Mapping[str, Value]) -> ValidationResult:
        """
        Evaluate the condition with column references resolved from ``values``.

        Args:
            values: Lower-case column name to typed Value

        Returns:
            ValidationResult with ErrorKind.CHECK on failure
        """
        try:
            condition = compile_condition(self.condition)
            outcome = self._evaluator.evaluate(condition, mapping_resolver(values))
        except RDBMSError as e:
            return ValidationResult.failure(
                ErrorKind.CHECK, f"CHECK constraint failed: {self.condition} ({e})"
            )
        if outcome is False:
            return ValidationResult.failure(
                ErrorKind.CHECK, f"CHECK constraint failed: {self.condition}"
            )
        return ValidationResult.ok()


class ConstraintManager:
    """Display helpers for constraints."""

    @staticmethod
    def describe(constraint: Constraint) -> str:
        return f"{constraint.name}: {constraint.description}"
