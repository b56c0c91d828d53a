"""
Query executor - executes AST nodes against the table manager.

Separates execution logic from:
- Parsing (parser layer)
- Storage and constraint enforcement (storage layer)
- User interaction (REPL, web app)

``execute`` is the one boundary where failures stop: every error raised
below it, expected or not, becomes a failed QueryResult.
"""

import logging
from typing import Dict, List, Optional

from ..config import NULL_SENTINEL
from ..parser import ast
from ..parser.condition_parser import compile_condition
from ..parser.parser import SQLParser, parse_order_by
from ..storage.column import Column
from ..storage.constraints import CascadeAction
from ..storage.schema import TableSchema
from ..storage.table_manager import TableManager
from ..storage.types import DataType
from ..storage.value import Value, ValueKind
from ..utils.exceptions import (
    ColumnNotFoundError, ConstraintViolationError, RDBMSError, SchemaError,
    TableAlreadyExistsError, TableNotFoundError, UnsupportedOperationError
)
from ..utils.row_utils import project_columns
from .evaluator import ConditionEvaluator, current_value, mapping_resolver
from .planner import QueryPlanner
from .result import QueryResult
from .transaction import TransactionManager

logger = logging.getLogger(__name__)

_LENGTH_TYPES = (DataType.CHAR, DataType.VARCHAR, DataType.NCHAR, DataType.NVARCHAR)


def compute_default_value(column: Column) -> str:
    """
    Text a column receives when an INSERT does not name it.

    Clock functions (NOW(), CURRENT_TIMESTAMP, CURRENT_DATE, CURRENT_TIME,
    with or without parentheses) are evaluated at call time; anything else
    is the literal default, and a column without a default gets NULL.
    """
    default = column.default_value
    if default is None:
        return NULL_SENTINEL
    name = default.upper()
    if name.endswith("()"):
        name = name[:-2]
    clock = current_value(name)
    if clock is not None:
        return clock.to_string()
    return default


class QueryExecutor:
    """
    Executes parsed SQL statements against a TableManager.

    Uses composition:
    - QueryPlanner for choosing rows (index lookup or scan)
    - ConditionEvaluator for expressions in INSERT/UPDATE
    - TransactionManager for BEGIN/COMMIT/ROLLBACK bookkeeping
    """

    def __init__(self, table_manager: Optional[TableManager] = None,
                 transaction_manager: Optional[TransactionManager] = None):
        """
        Initialize executor.

        Args:
            table_manager: Manager to execute against; defaults to an
                in-memory manager
            transaction_manager: Transaction state tracker
        """
        self.table_manager = table_manager if table_manager is not None else TableManager()
        self.transactions = transaction_manager or TransactionManager()
        self.planner = QueryPlanner(self.table_manager)
        self.evaluator = ConditionEvaluator()
        self.parser = SQLParser()

    def execute_sql(self, sql: str) -> QueryResult:
        """Parse and execute one SQL statement."""
        try:
            statement = self.parser.parse(sql)
        except RDBMSError as e:
            logger.error("Parse failed: %s", e)
            return QueryResult.failure(str(e))
        return self.execute(statement)

    def execute(self, statement: ast.Statement) -> QueryResult:
        """
        Execute an AST statement node.

        The table manager's lock is held for the whole statement.

        Args:
            statement: Parsed AST statement

        Returns:
            QueryResult; never raises
        """
        logger.debug("Executing %s", type(statement).__name__)
        try:
            with self.table_manager.lock:
                return self._dispatch(statement)
        except RDBMSError as e:
            logger.error("Statement failed: %s", e)
            return QueryResult.failure(str(e))
        except Exception as e:
            logger.exception("Unexpected error while executing %s", type(statement).__name__)
            return QueryResult.failure(f"Internal error: {e}")

    def _dispatch(self, statement: ast.Statement) -> QueryResult:
        match statement:
            case ast.CreateTableStmt():
                return self._execute_create_table(statement)
            case ast.InsertStmt():
                return self._execute_insert(statement)
            case ast.SelectStmt():
                return self._execute_select(statement)
            case ast.UpdateStmt():
                return self._execute_update(statement)
            case ast.DeleteStmt():
                return self._execute_delete(statement)
            case ast.DropTableStmt():
                return self._execute_drop_table(statement)
            case ast.CreateIndexStmt():
                return self._execute_create_index(statement)
            case ast.AlterTableStmt():
                raise UnsupportedOperationError("ALTER TABLE")
            case ast.BeginStmt():
                self.transactions.begin()
                return QueryResult(success=True, message="Transaction started")
            case ast.CommitStmt():
                self.transactions.commit()
                return QueryResult(success=True, message="Transaction committed")
            case ast.RollbackStmt():
                self.transactions.rollback()
                return QueryResult(success=True, message="Transaction rolled back")
            case _:
                return QueryResult.failure("Unknown statement type")

    # ----- DDL -----

    def _execute_create_table(self, stmt: ast.CreateTableStmt) -> QueryResult:
        """
        Build a schema from the column and constraint definitions and
        register it.
        """
        if self.table_manager.has_table(stmt.table_name):
            if stmt.if_not_exists:
                return QueryResult(success=True, message=f"Table '{stmt.table_name}' already exists")
            raise TableAlreadyExistsError(stmt.table_name)

        schema = TableSchema(stmt.table_name)
        foreign_keys: List[ast.ForeignKeyDef] = []

        for col_def in stmt.columns:
            schema.add_column(self._build_column(col_def))
            if col_def.references is not None:
                foreign_keys.append(col_def.references)

        if stmt.primary_key:
            schema.add_primary_key(stmt.primary_key)

        for unique in stmt.unique_constraints:
            name = unique.name or f"uq_{stmt.table_name}_{'_'.join(unique.columns)}"
            schema.add_unique(name, unique.columns)

        for fk in foreign_keys + stmt.foreign_keys:
            self._add_foreign_key(schema, fk)

        for i, check in enumerate(stmt.checks, 1):
            schema.add_check(check.name or f"chk_{stmt.table_name}_{i}", check.condition)

        result = self.table_manager.add_table(schema)
        if not result:
            return QueryResult.failure(result.error_message)
        return QueryResult(success=True, message=f"Table '{schema.name}' created")

    def _build_column(self, col_def: ast.ColumnDef) -> Column:
        """Translate a parsed column definition, including its type parameters."""
        data_type = DataType.from_string(col_def.data_type)
        params = col_def.type_params

        max_length = precision = scale = None
        enum_values = None
        if data_type in _LENGTH_TYPES and params:
            max_length = self._int_param(col_def, params[0])
        elif data_type.is_decimal() and params:
            precision = self._int_param(col_def, params[0])
            if len(params) > 1:
                scale = self._int_param(col_def, params[1])
        elif data_type == DataType.ENUM:
            enum_values = list(params)

        if col_def.check:
            compile_condition(col_def.check)

        column = Column(
            name=col_def.name,
            data_type=data_type,
            primary_key=col_def.primary_key,
            unique=col_def.unique,
            not_null=col_def.not_null,
            auto_increment=col_def.auto_increment,
            default_value=col_def.default,
            max_length=max_length,
            precision=precision,
            scale=scale,
            enum_values=enum_values,
            check_condition=col_def.check,
        )
        if col_def.references is not None:
            column.foreign_key_table = col_def.references.ref_table
            column.foreign_key_column = col_def.references.ref_columns[0]
        return column

    @staticmethod
    def _int_param(col_def: ast.ColumnDef, text: str) -> int:
        if not text.isdigit():
            raise SchemaError(f"Invalid type parameter '{text}' for column '{col_def.name}'")
        return int(text)

    def _add_foreign_key(self, schema: TableSchema, fk: ast.ForeignKeyDef) -> None:
        self_reference = fk.ref_table.lower() == schema.name.lower()
        if self_reference:
            ref_schema = schema
        else:
            ref_schema = self.table_manager.get_table(fk.ref_table)
            if ref_schema is None:
                raise TableNotFoundError(fk.ref_table)
        for ref_column in fk.ref_columns:
            if not ref_schema.has_column(ref_column):
                raise ColumnNotFoundError(ref_column, fk.ref_table)

        name = fk.name or f"fk_{schema.name}_{'_'.join(fk.columns)}"
        schema.add_foreign_key(
            name,
            fk.columns,
            ref_schema.name,
            fk.ref_columns,
            CascadeAction.from_string(fk.on_delete),
            CascadeAction.from_string(fk.on_update),
        )

    def _execute_drop_table(self, stmt: ast.DropTableStmt) -> QueryResult:
        if not self.table_manager.has_table(stmt.table_name):
            if stmt.if_exists:
                return QueryResult(success=True, message=f"Table '{stmt.table_name}' does not exist")
            raise TableNotFoundError(stmt.table_name)
        result = self.table_manager.remove_table(stmt.table_name)
        if not result:
            return QueryResult.failure(result.error_message)
        return QueryResult(success=True, message=f"Table '{stmt.table_name}' dropped")

    def _execute_create_index(self, stmt: ast.CreateIndexStmt) -> QueryResult:
        self._get_schema(stmt.table_name)
        result = self.table_manager.create_index(
            stmt.table_name, stmt.index_name, stmt.columns, stmt.unique
        )
        if not result:
            return QueryResult.failure(result.error_message)
        return QueryResult(success=True, message=f"Index '{stmt.index_name}' created")

    # ----- DML -----

    def _execute_insert(self, stmt: ast.InsertStmt) -> QueryResult:
        """
        Insert every value tuple in order.

        Stops at the first rejected tuple; earlier tuples stay inserted.
        """
        schema = self._get_schema(stmt.table_name)
        resolver = mapping_resolver({})
        inserted = 0

        for tuple_values in stmt.values:
            row = self._build_insert_row(schema, stmt.columns, tuple_values, resolver)
            result = self.table_manager.insert_row(schema.name, row)
            if not result:
                return QueryResult(
                    success=False,
                    affected_rows=inserted,
                    error_message=result.error_message
                )
            inserted += 1

        return QueryResult(success=True, affected_rows=inserted)

    def _build_insert_row(self, schema: TableSchema, columns: Optional[List[str]],
                          values: List[ast.Expr], resolver) -> List[str]:
        """
        Full-width row for one value tuple.

        With a column list, unnamed columns get their defaults first; without
        one, values must cover every column in schema order.
        """
        names = columns if columns is not None else schema.column_names
        if len(values) != len(names):
            raise ConstraintViolationError(
                f"Column count mismatch: expected {len(names)}, got {len(values)}"
            )

        row = [compute_default_value(col) for col in schema.columns]
        for name, expr in zip(names, values):
            idx = schema.get_column_index(name)
            if idx < 0:
                raise ColumnNotFoundError(name, schema.name)
            row[idx] = self._expression_text(expr, resolver, schema.columns[idx])

        for idx, col in enumerate(schema.columns):
            if col.auto_increment and row[idx].upper() == NULL_SENTINEL:
                row[idx] = str(self.table_manager.next_auto_increment(schema.name, col.name))
        return row

    def _expression_text(self, expr: ast.Expr, resolver, column: Optional[Column] = None) -> str:
        """
        Literals keep their source text; other expressions are evaluated.

        A fractional result bound for a DECIMAL column with a declared scale
        is rounded to that scale.
        """
        if isinstance(expr, ast.Literal):
            return NULL_SENTINEL if expr.value is None else str(expr.value)
        value = self.evaluator.evaluate_expression(expr, resolver)
        if (column is not None and column.data_type.is_decimal()
                and column.scale is not None and value.kind == ValueKind.FLOAT):
            return f"{value.data:.{column.scale}f}"
        return value.to_string()

    def _execute_select(self, stmt: ast.SelectStmt) -> QueryResult:
        """
        Filter, sort, limit, then project.
        """
        if stmt.join_clause:
            raise UnsupportedOperationError("JOIN")

        schema = self._get_schema(stmt.table_name)
        rows = self.table_manager.select_all(schema.name)
        where = compile_condition(stmt.where) if stmt.where else None
        selected = [rows[i] for i in self.planner.get_matching_row_ids(schema, rows, where)]

        selected = self._sort_rows(schema, selected, stmt.order_by)
        if stmt.limit is not None:
            selected = selected[:stmt.limit]

        if stmt.columns == ["*"]:
            columns = schema.column_names
        else:
            columns = list(stmt.columns)
        result_rows = [project_columns(schema.column_names, row, columns) for row in selected]

        return QueryResult(
            success=True,
            affected_rows=len(result_rows),
            columns=columns,
            rows=result_rows
        )

    def _sort_rows(self, schema: TableSchema, rows: List[List[str]],
                   order_by: Optional[str]) -> List[List[str]]:
        """Stable multi-key sort using typed comparison (NULL sorts first)."""
        items = parse_order_by(order_by)
        for item in reversed(items):
            idx = schema.get_column_index(item.column)
            if idx < 0:
                raise ColumnNotFoundError(item.column, schema.name)
            data_type = schema.columns[idx].data_type
            rows = sorted(
                rows,
                key=lambda row: Value.from_string(data_type, row[idx]),
                reverse=item.descending
            )
        return rows

    def _execute_update(self, stmt: ast.UpdateStmt) -> QueryResult:
        """
        Apply the assignments to every matching row.

        Assignment expressions see the row's values before the update.
        Stops at the first rejected row.
        """
        schema = self._get_schema(stmt.table_name)
        for name in stmt.columns:
            if not schema.has_column(name):
                raise ColumnNotFoundError(name, schema.name)

        rows = self.table_manager.select_all(schema.name)
        where = compile_condition(stmt.where) if stmt.where else None
        updated = 0

        for row_id in self.planner.get_matching_row_ids(schema, rows, where):
            resolver = mapping_resolver(schema.row_values(rows[row_id]))
            changes: Dict[str, str] = {}
            for name, expr in zip(stmt.columns, stmt.values):
                changes[name] = self._expression_text(expr, resolver, schema.get_column(name))
            result = self.table_manager.update_row(schema.name, row_id, changes)
            if not result:
                return QueryResult(
                    success=False,
                    affected_rows=updated,
                    error_message=result.error_message
                )
            updated += 1

        return QueryResult(success=True, affected_rows=updated)

    def _execute_delete(self, stmt: ast.DeleteStmt) -> QueryResult:
        """
        Delete matching rows, highest position first so positions of the
        rows still to delete do not shift.
        """
        schema = self._get_schema(stmt.table_name)
        rows = self.table_manager.select_all(schema.name)
        where = compile_condition(stmt.where) if stmt.where else None
        deleted = 0

        for row_id in reversed(self.planner.get_matching_row_ids(schema, rows, where)):
            result = self.table_manager.delete_row(schema.name, row_id)
            if not result:
                return QueryResult(
                    success=False,
                    affected_rows=deleted,
                    error_message=result.error_message
                )
            deleted += 1

        return QueryResult(success=True, affected_rows=deleted)

    # ----- Helpers -----

    def _get_schema(self, table_name: str) -> TableSchema:
        schema = self.table_manager.get_table(table_name)
        if schema is None:
            raise TableNotFoundError(table_name)
        return schema
