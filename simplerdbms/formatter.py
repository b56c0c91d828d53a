"""
Result formatter for displaying query results.

Separates presentation logic from execution logic.
"""

from typing import List

from tabulate import tabulate

from .executor.result import QueryResult
from .storage.constraints import ConstraintManager
from .storage.schema import TableSchema


def format_select_result(columns: List[str], rows: List[List[str]]) -> str:
    """
    Format SELECT query results as an ASCII table.

    Args:
        columns: Result column names
        rows: Rows of value strings in column order

    Returns:
        Formatted string with table
    """
    if not rows:
        return "(0 rows)"

    table = tabulate(rows, headers=columns, tablefmt='grid', disable_numparse=True)
    row_count = f"\n({len(rows)} row{'s' if len(rows) != 1 else ''})"

    return table + row_count


def format_modify_result(count: int, operation: str) -> str:
    """
    Format INSERT/UPDATE/DELETE result.

    Args:
        count: Number of affected rows
        operation: Operation name ("INSERT", "UPDATE", "DELETE")

    Returns:
        Formatted string
    """
    return f"{operation} OK, {count} row{'s' if count != 1 else ''} affected"


def format_result(result: QueryResult, operation: str) -> str:
    """
    Render any statement result for the terminal.

    Args:
        result: Result from QueryExecutor
        operation: Leading keyword of the statement ("SELECT", "INSERT", ...)
    """
    if not result.success:
        return f"Error: {result.error_message}"
    if operation == "SELECT":
        return format_select_result(result.columns, result.rows)
    if operation in ("INSERT", "UPDATE", "DELETE"):
        return format_modify_result(result.affected_rows, operation)
    return result.message or "OK"


def format_schema(schema: TableSchema) -> str:
    """
    Format a table's columns and constraints for ``.schema``.
    """
    rows = []
    for col in schema.columns:
        flags = []
        if col.primary_key:
            flags.append("PRIMARY KEY")
        if col.unique:
            flags.append("UNIQUE")
        if not col.nullable and not col.primary_key:
            flags.append("NOT NULL")
        if col.auto_increment:
            flags.append("AUTO_INCREMENT")
        if col.default_value is not None:
            flags.append(f"DEFAULT {col.default_value}")
        if col.check_condition:
            flags.append(f"CHECK ({col.check_condition})")
        rows.append([col.name, col.type_name, ", ".join(flags)])

    lines = [f"Table '{schema.name}':",
             tabulate(rows, headers=["Column", "Type", "Constraints"], tablefmt='grid')]
    for constraint in schema.all_constraints():
        lines.append("  " + ConstraintManager.describe(constraint))
    for definition in schema.indexes.values():
        kind = "UNIQUE INDEX" if definition.unique else "INDEX"
        lines.append(f"  {kind} {definition.name} ({', '.join(definition.columns)})")
    return "\n".join(lines)
