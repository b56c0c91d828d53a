"""
Abstract Syntax Tree (AST) node definitions.

These dataclasses represent parsed SQL statements in a structured form,
decoupling the parser from the executor. Statement is a closed union of
the statement dataclasses; the executor dispatches on it with a match
statement.

WHERE and ORDER BY clauses stay as whitespace-joined text on the
statement nodes. The condition nodes below are produced from that text
by the condition compiler when a statement runs.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Any, Union
from enum import Enum


# ----- Enums -----

class ComparisonOp(Enum):
    """Comparison operators for WHERE and CHECK conditions."""
    EQ = "="
    NE = "!="
    LT = "<"
    GT = ">"
    LTE = "<="
    GTE = ">="


class LogicalOp(Enum):
    """Logical operators for combining conditions."""
    AND = "AND"
    OR = "OR"


class ArithmeticOp(Enum):
    """Binary arithmetic operators."""
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"


# ----- Expression Nodes -----

@dataclass
class ColumnRef:
    """Reference to a column, optionally qualified with table name."""
    column_name: str
    table_name: Optional[str] = None

    def __str__(self):
        if self.table_name:
            return f"{self.table_name}.{self.column_name}"
        return self.column_name


@dataclass
class Literal:
    """
    Literal value.

    ``value`` keeps the literal's text: digits for NUMBER, the unescaped
    content for STRING, "TRUE"/"FALSE" for BOOLEAN and None for NULL.
    """
    value: Any
    type: str  # "NUMBER", "STRING", "BOOLEAN", "NULL"


@dataclass
class FunctionCall:
    """Function call such as NOW() or UPPER(name)."""
    name: str
    args: List['Expr'] = field(default_factory=list)

    def __str__(self):
        return f"{self.name}({', '.join(str(a) for a in self.args)})"


@dataclass
class BinaryOp:
    """Arithmetic expression: left op right."""
    left: 'Expr'
    op: ArithmeticOp
    right: 'Expr'


Expr = Union[ColumnRef, Literal, FunctionCall, BinaryOp]


# ----- Condition Nodes -----

@dataclass
class Comparison:
    """Binary comparison: left op right."""
    left: Expr
    op: ComparisonOp
    right: Expr


@dataclass
class LogicalCondition:
    """Logical combination of conditions: left AND/OR right."""
    left: 'Condition'
    op: LogicalOp
    right: 'Condition'


@dataclass
class NotCondition:
    """Negated condition: NOT operand."""
    operand: 'Condition'


@dataclass
class IsNull:
    """operand IS [NOT] NULL."""
    operand: Expr
    negated: bool = False


@dataclass
class InList:
    """operand [NOT] IN (items...)."""
    operand: Expr
    items: List[Expr]
    negated: bool = False


@dataclass
class Like:
    """operand [NOT] LIKE pattern, with % and _ wildcards."""
    operand: Expr
    pattern: Expr
    negated: bool = False


Condition = Union[Comparison, LogicalCondition, NotCondition, IsNull, InList, Like]


# ----- Column and Constraint Definition Nodes -----

@dataclass
class ForeignKeyDef:
    """FOREIGN KEY (cols) REFERENCES table (cols) [ON DELETE ...] [ON UPDATE ...]."""
    columns: List[str]
    ref_table: str
    ref_columns: List[str]
    name: Optional[str] = None
    on_delete: str = "RESTRICT"
    on_update: str = "RESTRICT"


@dataclass
class UniqueDef:
    """Table-level UNIQUE (cols)."""
    columns: List[str]
    name: Optional[str] = None


@dataclass
class CheckDef:
    """Table-level CHECK (condition)."""
    condition: str
    name: Optional[str] = None


@dataclass
class ColumnDef:
    """Column definition in CREATE TABLE."""
    name: str
    data_type: str  # "INT", "VARCHAR", etc.
    type_params: List[str] = field(default_factory=list)  # VARCHAR(n), DECIMAL(p,s), ENUM('a','b')
    primary_key: bool = False
    unique: bool = False
    not_null: bool = False
    auto_increment: bool = False
    default: Optional[str] = None
    check: Optional[str] = None
    references: Optional[ForeignKeyDef] = None


@dataclass
class OrderByItem:
    """One ORDER BY key."""
    column: str
    descending: bool = False


# ----- Statement Nodes -----

@dataclass
class CreateTableStmt:
    """CREATE TABLE statement."""
    table_name: str
    columns: List[ColumnDef]
    primary_key: List[str] = field(default_factory=list)
    unique_constraints: List[UniqueDef] = field(default_factory=list)
    foreign_keys: List[ForeignKeyDef] = field(default_factory=list)
    checks: List[CheckDef] = field(default_factory=list)
    if_not_exists: bool = False


@dataclass
class AlterTableStmt:
    """ALTER TABLE statement (captured, not executable)."""
    table_name: str
    action: str  # "ADD", "DROP", "MODIFY"
    column_name: str
    definition: str = ""


@dataclass
class DropTableStmt:
    """DROP TABLE statement."""
    table_name: str
    if_exists: bool = False


@dataclass
class CreateIndexStmt:
    """CREATE [UNIQUE] INDEX statement."""
    index_name: str
    table_name: str
    columns: List[str]
    unique: bool = False


@dataclass
class InsertStmt:
    """INSERT statement with one or more value tuples."""
    table_name: str
    columns: Optional[List[str]]  # None means all columns in schema order
    values: List[List[Expr]]


@dataclass
class SelectStmt:
    """SELECT statement."""
    columns: List[str]  # ["*"] for all columns
    table_name: str
    where: Optional[str] = None
    order_by: Optional[str] = None
    limit: Optional[int] = None
    join_clause: Optional[str] = None


@dataclass
class UpdateStmt:
    """UPDATE statement. ``columns`` and ``values`` are parallel lists."""
    table_name: str
    columns: List[str]
    values: List[Expr]
    where: Optional[str] = None


@dataclass
class DeleteStmt:
    """DELETE statement."""
    table_name: str
    where: Optional[str] = None


@dataclass
class BeginStmt:
    """BEGIN [TRANSACTION]."""


@dataclass
class CommitStmt:
    """COMMIT."""


@dataclass
class RollbackStmt:
    """ROLLBACK."""


Statement = Union[
    SelectStmt, InsertStmt, UpdateStmt, DeleteStmt, CreateTableStmt,
    AlterTableStmt, DropTableStmt, CreateIndexStmt, BeginStmt, CommitStmt,
    RollbackStmt,
]
