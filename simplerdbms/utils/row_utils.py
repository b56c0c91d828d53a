"""
Row manipulation utilities to avoid code duplication.

Rows are positional lists of canonical strings in schema column order.
These helpers convert between that form and column-keyed mappings and
are reused by the storage engine, table manager and executor.
"""

from typing import Dict, List, Mapping, Sequence

from ..config import NULL_SENTINEL


def row_to_map(column_names: Sequence[str], row: Sequence[str]) -> Dict[str, str]:
    """
    Pair each column name with the row value at the same position.

    Example:
        row_to_map(['id', 'name'], ['1', 'a']) -> {'id': '1', 'name': 'a'}
    """
    return {name: row[i] for i, name in enumerate(column_names)}


def map_to_row(column_names: Sequence[str], values: Mapping[str, str]) -> List[str]:
    """
    Build a positional row from a column-keyed mapping.

    Keys are matched case-insensitively. Columns missing from the mapping
    are filled with the NULL sentinel.

    Args:
        column_names: Columns in schema order
        values: Mapping of column name to value text

    Returns:
        Positional row list
    """
    lowered = {key.lower(): value for key, value in values.items()}
    return [lowered.get(name.lower(), NULL_SENTINEL) for name in column_names]


def project_columns(
    column_names: Sequence[str],
    row: Sequence[str],
    requested: Sequence[str]
) -> List[str]:
    """
    Extract requested columns from a row.

    Used by SELECT. A requested column the row does not have yields an
    empty string.

    Example:
        project_columns(['id', 'name'], ['1', 'a'], ['name', 'age']) -> ['a', '']
    """
    positions = {name.lower(): i for i, name in enumerate(column_names)}
    result = []
    for name in requested:
        idx = positions.get(name.lower())
        result.append(row[idx] if idx is not None and idx < len(row) else '')
    return result


def get_column_value(row: Mapping[str, str], column_name: str, table_name: str = None):
    """
    Get a column value from a row mapping, handling qualified names.

    Args:
        row: Row mapping (lower-case column names)
        column_name: Column name to retrieve
        table_name: Optional table name qualifier

    Returns:
        Column value

    Raises:
        KeyError: If column not found
    """
    if table_name:
        qualified = f"{table_name.lower()}.{column_name.lower()}"
        if qualified in row:
            return row[qualified]

    if column_name.lower() in row:
        return row[column_name.lower()]

    raise KeyError(f"Column '{column_name}' not found in row")
