"""
Table schema: ordered columns plus named constraint registries.

A TableSchema is assembled while a CREATE TABLE statement runs and is
treated as structurally frozen afterwards. Column order is the canonical
order of every row of the table.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import NULL_SENTINEL
from ..parser.condition_parser import compile_condition
from ..utils.exceptions import SchemaError
from ..utils.validators import is_null_text, validate_identifier
from .column import Column
from .constraints import (
    CascadeAction, CheckConstraint, Constraint, ForeignKeyConstraint,
    PrimaryKeyConstraint, UniqueConstraint,
)
from .results import ErrorKind, ValidationResult
from .types import validate_and_sanitize
from .value import Value

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class IndexDefinition:
    """A named (optionally unique) index over one or more columns."""
    name: str
    columns: List[str]
    unique: bool = False


class TableSchema:
    """
    Represents a table's structure and declared constraints.

    Column lookups are case-insensitive. Unique and foreign-key rules are
    declared here but enforced by TableManager, which sees all rows and
    all tables.
    """

    def __init__(self, name: str, description: str = "", is_temp: bool = False):
        """
        Initialize an empty schema.

        Args:
            name: Table name (validated)
            description: Free-form description
            is_temp: Marks temporary tables
        """
        validate_identifier(name)
        self.name = name
        self.description = description
        self.is_temp = is_temp
        self.columns: List[Column] = []
        self.primary_key: List[str] = []
        self.unique_constraints: Dict[str, UniqueConstraint] = {}
        self.foreign_keys: Dict[str, ForeignKeyConstraint] = {}
        self.checks: Dict[str, CheckConstraint] = {}
        self.indexes: Dict[str, IndexDefinition] = {}
        self.row_count = 0
        self.created_at = datetime.now().replace(microsecond=0)
        self.modified_at = self.created_at

    # ----- Columns -----

    @property
    def column_names(self) -> List[str]:
        return [col.name for col in self.columns]

    @property
    def column_count(self) -> int:
        return len(self.columns)

    def add_column(self, column: Column) -> None:
        """
        Append a column.

        Raises:
            SchemaError: If a column with the same name exists
        """
        if self.has_column(column.name):
            raise SchemaError(f"Duplicate column '{column.name}' in table '{self.name}'")
        self.columns.append(column)
        if column.primary_key:
            self.primary_key.append(column.name)

    def get_column(self, name: str) -> Optional[Column]:
        """Find a column by name, ignoring case."""
        idx = self.get_column_index(name)
        return self.columns[idx] if idx >= 0 else None

    def get_column_index(self, name: str) -> int:
        """Position of a column, or -1 if absent."""
        lowered = name.lower()
        for i, col in enumerate(self.columns):
            if col.name.lower() == lowered:
                return i
        return -1

    def has_column(self, name: str) -> bool:
        return self.get_column_index(name) >= 0

    def _resolve_columns(self, names: Sequence[str], what: str) -> List[str]:
        if not names:
            raise SchemaError(f"{what} needs at least one column")
        resolved = []
        for name in names:
            column = self.get_column(name)
            if column is None:
                raise SchemaError(f"{what} references unknown column '{name}' in table '{self.name}'")
            resolved.append(column.name)
        return resolved

    def _check_constraint_name(self, name: str) -> None:
        validate_identifier(name)
        taken = (
            {n.lower() for n in self.unique_constraints}
            | {n.lower() for n in self.foreign_keys}
            | {n.lower() for n in self.checks}
        )
        if name.lower() in taken:
            raise SchemaError(f"Duplicate constraint name '{name}' in table '{self.name}'")

    # ----- Constraints -----

    def add_primary_key(self, columns: Sequence[str]) -> None:
        """
        Declare the primary key, replacing any earlier declaration.

        Raises:
            SchemaError: If a column does not exist
        """
        resolved = self._resolve_columns(columns, "PRIMARY KEY")
        for name in resolved:
            self.get_column(name).primary_key = True
        self.primary_key = resolved

    def add_unique(self, name: str, columns: Sequence[str]) -> None:
        """Declare a named UNIQUE constraint over one or more columns."""
        self._check_constraint_name(name)
        resolved = self._resolve_columns(columns, "UNIQUE")
        self.unique_constraints[name] = UniqueConstraint(name, resolved)

    def add_foreign_key(
        self,
        name: str,
        columns: Sequence[str],
        ref_table: str,
        ref_columns: Sequence[str],
        on_delete: CascadeAction = CascadeAction.RESTRICT,
        on_update: CascadeAction = CascadeAction.RESTRICT
    ) -> None:
        """
        Declare a FOREIGN KEY.

        Raises:
            SchemaError: If columns are unknown or the column counts differ
        """
        self._check_constraint_name(name)
        resolved = self._resolve_columns(columns, "FOREIGN KEY")
        if len(resolved) != len(ref_columns):
            raise SchemaError("Foreign key column count mismatch")
        self.foreign_keys[name] = ForeignKeyConstraint(
            name, resolved, ref_table, ref_columns, on_delete, on_update
        )

    def add_check(self, name: str, condition: str) -> None:
        """
        Declare a table-level CHECK.

        Raises:
            ConditionSyntaxError: If the condition does not parse
        """
        self._check_constraint_name(name)
        compile_condition(condition)
        self.checks[name] = CheckConstraint(name, condition, self.column_names)

    def unique_keys(self) -> List[Tuple[str, List[str]]]:
        """
        Every uniqueness rule besides the primary key, as (name, columns).

        Includes named UNIQUE constraints and column-level UNIQUE flags.
        """
        keys = [(name, c.columns) for name, c in self.unique_constraints.items()]
        covered = {tuple(n.lower() for n in cols) for _, cols in keys}
        for col in self.columns:
            if col.unique and (col.name.lower(),) not in covered:
                keys.append((f"{col.name}_unique", [col.name]))
        return keys

    def all_constraints(self) -> List[Constraint]:
        constraints: List[Constraint] = []
        if self.primary_key:
            constraints.append(PrimaryKeyConstraint(f"pk_{self.name}", self.primary_key))
        constraints.extend(UniqueConstraint(name, cols) for name, cols in self.unique_keys())
        constraints.extend(self.foreign_keys.values())
        constraints.extend(self.checks.values())
        return constraints

    # ----- Indexes -----

    def add_index(self, name: str, columns: Sequence[str], unique: bool = False) -> IndexDefinition:
        """
        Register an index definition.

        Raises:
            SchemaError: If the name is taken or a column does not exist
        """
        validate_identifier(name)
        if name.lower() in (n.lower() for n in self.indexes):
            raise SchemaError(f"Index '{name}' already exists on table '{self.name}'")
        definition = IndexDefinition(name, self._resolve_columns(columns, "INDEX"), unique)
        self.indexes[name] = definition
        return definition

    def remove_index(self, name: str) -> bool:
        for existing in list(self.indexes):
            if existing.lower() == name.lower():
                del self.indexes[existing]
                return True
        return False

    # ----- Rows -----

    def row_values(self, row: Sequence[str]) -> Dict[str, Value]:
        """
        Typed view of a row, keyed by lower-case column name.

        Qualified "table.column" keys are included for conditions that
        name the table.
        """
        values = {}
        table = self.name.lower()
        for col, text in zip(self.columns, row):
            value = Value.from_string(col.data_type, text)
            values[col.name.lower()] = value
            values[f"{table}.{col.name.lower()}"] = value
        return values

    def validate_row(self, values: Sequence[str]) -> ValidationResult:
        """
        Validate a full positional row.

        Runs the arity check, each column's validation (including column
        CHECKs), the primary-key NULL check, then table-level CHECKs.
        Uniqueness and foreign keys are TableManager's job.
        """
        if len(values) != len(self.columns):
            return ValidationResult.failure(
                ErrorKind.COLUMN_COUNT,
                f"Column count mismatch: expected {len(self.columns)}, got {len(values)}"
            )

        # Same NULL reading as storage: empty text is NULL for every type
        context = self.row_values([NULL_SENTINEL if is_null_text(v) else v for v in values])

        for col, value in zip(self.columns, values):
            result = col.validate_value(value, context)
            if not result:
                return ValidationResult.failure(
                    result.error_kind, f"Column '{col.name}': {result.error_message}"
                )

        for name in self.primary_key:
            idx = self.get_column_index(name)
            if context[name.lower()].is_null or not values[idx].strip():
                return ValidationResult.failure(
                    ErrorKind.PRIMARY_KEY,
                    f"PRIMARY KEY column '{name}' cannot be NULL"
                )

        for check in self.checks.values():
            result = check.evaluate(context)
            if not result:
                return result

        return ValidationResult.ok()

    def canonicalize_row(self, values: Sequence[str]) -> List[str]:
        """Convert a validated row to canonical storage text."""
        return [
            validate_and_sanitize(col.data_type, value, col.enum_values)
            for col, value in zip(self.columns, values)
        ]

    def touch(self) -> None:
        self.modified_at = datetime.now().replace(microsecond=0)

    # ----- Serialization -----

    def to_dict(self) -> dict:
        """Serialize the schema, including every constraint and index."""
        return {
            'name': self.name,
            'description': self.description,
            'rowCount': self.row_count,
            'isTemp': self.is_temp,
            'createdAt': self.created_at.strftime(TIMESTAMP_FORMAT),
            'modifiedAt': self.modified_at.strftime(TIMESTAMP_FORMAT),
            'columns': [col.to_dict() for col in self.columns],
            'constraints': {
                'primaryKey': list(self.primary_key),
                'unique': {name: c.columns for name, c in self.unique_constraints.items()},
                'foreignKeys': {name: fk.to_dict() for name, fk in self.foreign_keys.items()},
                'checks': {name: c.condition for name, c in self.checks.items()},
            },
            'indexes': {
                name: {'columns': idx.columns, 'unique': idx.unique}
                for name, idx in self.indexes.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'TableSchema':
        """Rebuild a schema written by to_dict."""
        schema = cls(
            name=data['name'],
            description=data.get('description', ''),
            is_temp=data.get('isTemp', False),
        )
        schema.row_count = data.get('rowCount', 0)
        if data.get('createdAt'):
            schema.created_at = datetime.strptime(data['createdAt'], TIMESTAMP_FORMAT)
        if data.get('modifiedAt'):
            schema.modified_at = datetime.strptime(data['modifiedAt'], TIMESTAMP_FORMAT)

        for col_data in data.get('columns', []):
            schema.add_column(Column.from_dict(col_data))

        constraints = data.get('constraints', {})
        if constraints.get('primaryKey'):
            schema.add_primary_key(constraints['primaryKey'])
        for name, columns in constraints.get('unique', {}).items():
            schema.add_unique(name, columns)
        for name, fk_data in constraints.get('foreignKeys', {}).items():
            fk = ForeignKeyConstraint.from_dict(name, fk_data)
            schema.add_foreign_key(
                name, fk.columns, fk.ref_table, fk.ref_columns, fk.on_delete, fk.on_update
            )
        for name, condition in constraints.get('checks', {}).items():
            schema.add_check(name, condition)

        for name, idx_data in data.get('indexes', {}).items():
            schema.add_index(name, idx_data['columns'], idx_data.get('unique', False))

        return schema

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, text: str) -> 'TableSchema':
        return cls.from_dict(json.loads(text))

    def __repr__(self) -> str:
        return f"TableSchema({self.name}, {self.column_names})"
