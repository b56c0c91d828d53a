"""
TableManager: the authoritative registry of schemas and rows.

The TableManager is the top-level container for tables, providing:
- Table creation, lookup and removal
- Row insert/update/delete with full constraint enforcement
  (column and row validation, PRIMARY KEY/UNIQUE across rows,
  FOREIGN KEY across tables)
- Hash indexes for PRIMARY KEY, UNIQUE and CREATE INDEX definitions
- Persistence of every mutation through the StorageEngine

Rows are positional lists of canonical strings and a row's id is its
current position, so deleting a row shifts the ids of every later row.

All public methods take ``lock``, a re-entrant lock. The query executor
holds the same lock for a whole statement, so a statement's reads and
writes are not interleaved with another thread's.
"""

import functools
import logging
import threading
from typing import Dict, List, Mapping, Optional, Sequence, Union

from ..utils.exceptions import StorageError
from ..utils.row_utils import map_to_row
from ..utils.validators import is_null_text
from .index import HashIndex
from .results import ErrorKind, OperationResult
from .schema import TableSchema
from .storage_engine import StorageEngine

logger = logging.getLogger(__name__)

RowInput = Union[Sequence[str], Mapping[str, str]]

PRIMARY_KEY_INDEX = "__primary_key__"


def _locked(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.lock:
            return method(self, *args, **kwargs)
    return wrapper


class TableManager:
    """
    Owns all table schemas and row sets and keeps them in sync on disk.

    Responsibilities:
    - Enforce constraints that span rows and tables
    - Maintain per-table indexes
    - Persist each table after every change

    Does NOT:
    - Parse SQL
    - Evaluate WHERE clauses
    - Format results
    """

    def __init__(self, data_dir=None, storage_engine: Optional[StorageEngine] = None,
                 autoload: bool = True):
        """
        Initialize the manager.

        Args:
            data_dir: Directory for table files; None (with no engine) keeps
                everything in memory
            storage_engine: Engine to use instead of one built from data_dir
            autoload: Load every table found in storage on startup
        """
        if storage_engine is None and data_dir is not None:
            storage_engine = StorageEngine(data_dir)
        self.storage_engine = storage_engine
        self.lock = threading.RLock()
        self._tables: Dict[str, TableSchema] = {}
        self._table_data: Dict[str, List[List[str]]] = {}
        self._indexes: Dict[str, Dict[str, HashIndex]] = {}
        if autoload and self.storage_engine is not None:
            self.load_all_tables()

    # ----- Tables -----

    @_locked
    def add_table(self, schema: TableSchema) -> OperationResult:
        """
        Register a new, empty table and save its schema immediately.

        Args:
            schema: Fully built schema

        Returns:
            OperationResult; fails with TABLE_EXISTS for duplicate names
        """
        key = schema.name.lower()
        if key in self._tables:
            return OperationResult.failure(
                ErrorKind.TABLE_EXISTS, f"Table '{schema.name}' already exists"
            )
        self._tables[key] = schema
        self._table_data[key] = []
        self._build_indexes(key)
        try:
            self._persist(key)
        except StorageError:
            del self._tables[key]
            del self._table_data[key]
            del self._indexes[key]
            raise
        logger.info("Created table %s with %d columns", schema.name, schema.column_count)
        return OperationResult.ok()

    @_locked
    def remove_table(self, table_name: str) -> OperationResult:
        """
        Drop a table and delete its files.

        Refused while another table declares a foreign key to it.
        """
        key = table_name.lower()
        schema = self._tables.get(key)
        if schema is None:
            return self._table_not_found(table_name)

        for other_key, other in self._tables.items():
            if other_key == key:
                continue
            for fk in other.foreign_keys.values():
                if fk.ref_table.lower() == key:
                    return OperationResult.failure(
                        ErrorKind.FOREIGN_KEY,
                        f"Cannot drop table '{schema.name}': referenced by table '{other.name}'"
                    )

        if self.storage_engine is not None:
            self.storage_engine.delete_table_files(schema.name)
        del self._tables[key]
        del self._table_data[key]
        del self._indexes[key]
        logger.info("Dropped table %s", schema.name)
        return OperationResult.ok()

    @_locked
    def get_table(self, table_name: str) -> Optional[TableSchema]:
        return self._tables.get(table_name.lower())

    @_locked
    def has_table(self, table_name: str) -> bool:
        return table_name.lower() in self._tables

    @_locked
    def list_tables(self) -> List[str]:
        """Get the names of all tables, sorted."""
        return sorted(schema.name for schema in self._tables.values())

    @_locked
    def get_stats(self) -> Dict[str, int]:
        """Row count per table."""
        return {schema.name: len(self._table_data[key]) for key, schema in self._tables.items()}

    # ----- Rows -----

    @_locked
    def select_all(self, table_name: str) -> List[List[str]]:
        """Copy of every row, in row-id order. Unknown tables give []."""
        rows = self._table_data.get(table_name.lower())
        if rows is None:
            return []
        return [list(row) for row in rows]

    @_locked
    def select_all_as_map(self, table_name: str) -> List[Dict[str, str]]:
        """Every row as a column-name-keyed dict."""
        schema = self.get_table(table_name)
        if schema is None:
            return []
        names = schema.column_names
        return [dict(zip(names, row)) for row in self._table_data[table_name.lower()]]

    @_locked
    def row_count(self, table_name: str) -> int:
        return len(self._table_data.get(table_name.lower(), []))

    @_locked
    def insert_row(self, table_name: str, values: RowInput) -> OperationResult:
        """
        Validate and append a row.

        Args:
            table_name: Target table
            values: Positional values in schema order, or a column-keyed
                mapping (missing columns become NULL)

        Returns:
            OperationResult with the new row's positional id
        """
        key = table_name.lower()
        schema = self._tables.get(key)
        if schema is None:
            return self._table_not_found(table_name)

        row = self._as_row(schema, values)
        failure = self._validate(key, schema, row)
        if failure is not None:
            return failure
        canonical = schema.canonicalize_row(row)

        for failure in (
            self._check_unique(key, schema, canonical),
            self._check_foreign_keys(schema, canonical),
        ):
            if failure is not None:
                return self._reject(schema, failure)

        rows = self._table_data[key] + [canonical]
        row_id = len(rows) - 1
        self._commit_rows(key, rows)
        logger.debug("Inserted row %d into %s", row_id, schema.name)
        return OperationResult.ok(rows_affected=1, row_id=row_id)

    @_locked
    def update_row(self, table_name: str, row_id: int, values: RowInput) -> OperationResult:
        """
        Validate and replace a row in place.

        Args:
            table_name: Target table
            row_id: Positional id of the row
            values: Full positional row, or a mapping of the columns to
                change (other columns keep their current values)
        """
        key = table_name.lower()
        schema = self._tables.get(key)
        if schema is None:
            return self._table_not_found(table_name)
        rows = self._table_data[key]
        if not 0 <= row_id < len(rows):
            return OperationResult.failure(ErrorKind.ROW_OUT_OF_BOUNDS, "Row ID out of bounds")

        old_row = rows[row_id]
        if isinstance(values, Mapping):
            row = list(old_row)
            for name, value in values.items():
                idx = schema.get_column_index(name)
                if idx < 0:
                    return OperationResult.failure(
                        ErrorKind.COLUMN_NOT_FOUND,
                        f"Column '{name}' does not exist in table '{schema.name}'"
                    )
                row[idx] = value
        else:
            row = list(values)

        failure = self._validate(key, schema, row)
        if failure is not None:
            return failure
        canonical = schema.canonicalize_row(row)

        for failure in (
            self._check_unique(key, schema, canonical, exclude_row=row_id),
            self._check_foreign_keys(schema, canonical),
            self._check_not_referenced(key, old_row, row_id, new_row=canonical),
        ):
            if failure is not None:
                return self._reject(schema, failure)

        rows = list(rows)
        rows[row_id] = canonical
        self._commit_rows(key, rows)
        logger.debug("Updated row %d in %s", row_id, schema.name)
        return OperationResult.ok(rows_affected=1, row_id=row_id)

    @_locked
    def delete_row(self, table_name: str, row_id: int) -> OperationResult:
        """
        Remove a row by position.

        Rejected while a row of any table references it through a
        foreign key. Later rows move down one position.
        """
        key = table_name.lower()
        schema = self._tables.get(key)
        if schema is None:
            return self._table_not_found(table_name)
        rows = self._table_data[key]
        if not 0 <= row_id < len(rows):
            return OperationResult.failure(ErrorKind.ROW_OUT_OF_BOUNDS, "Row ID out of bounds")

        failure = self._check_not_referenced(key, rows[row_id], row_id)
        if failure is not None:
            return self._reject(schema, failure)

        self._commit_rows(key, rows[:row_id] + rows[row_id + 1:])
        logger.debug("Deleted row %d from %s", row_id, schema.name)
        return OperationResult.ok(rows_affected=1, row_id=row_id)

    @_locked
    def next_auto_increment(self, table_name: str, column_name: str) -> int:
        """One more than the largest integer currently stored in the column."""
        schema = self.get_table(table_name)
        idx = schema.get_column_index(column_name) if schema else -1
        if idx < 0:
            return 1
        highest = 0
        for row in self._table_data[table_name.lower()]:
            try:
                highest = max(highest, int(row[idx]))
            except ValueError:
                continue
        return highest + 1

    # ----- Indexes -----

    @_locked
    def create_index(self, table_name: str, index_name: str, columns: Sequence[str],
                     unique: bool = False) -> OperationResult:
        """
        Define and build a new index.

        A unique index also acts as a UNIQUE constraint, so it is refused
        when the existing rows already contain duplicates.
        """
        key = table_name.lower()
        schema = self._tables.get(key)
        if schema is None:
            return self._table_not_found(table_name)
        for name in columns:
            if not schema.has_column(name):
                return OperationResult.failure(
                    ErrorKind.COLUMN_NOT_FOUND,
                    f"Column '{name}' does not exist in table '{schema.name}'"
                )
        if index_name.lower() in self._indexes[key]:
            return OperationResult.failure(
                ErrorKind.INDEX, f"Index '{index_name}' already exists on table '{schema.name}'"
            )

        positions = [schema.get_column_index(name) for name in columns]
        index = HashIndex(index_name, [schema.columns[p].name for p in positions], unique)
        index.rebuild(self._table_data[key], positions)
        if unique:
            for idx_key in index.get_all_keys():
                if len(index.search(idx_key)) > 1:
                    return OperationResult.failure(
                        ErrorKind.UNIQUE,
                        f"Cannot create unique index '{index_name}': duplicate value ({', '.join(idx_key)})"
                    )

        schema.add_index(index_name, columns, unique)
        try:
            self._persist(key)
        except StorageError:
            schema.remove_index(index_name)
            raise
        self._indexes[key][index_name.lower()] = index
        logger.info("Created index %s on %s(%s)", index_name, schema.name, ", ".join(index.columns))
        return OperationResult.ok()

    @_locked
    def find_index(self, table_name: str, columns: Sequence[str]) -> Optional[HashIndex]:
        """An index whose key columns are exactly ``columns``, in order."""
        wanted = [c.lower() for c in columns]
        for index in self._indexes.get(table_name.lower(), {}).values():
            if [c.lower() for c in index.columns] == wanted:
                return index
        return None

    # ----- Persistence -----

    @_locked
    def load_all_tables(self) -> None:
        """Load every table found in storage, replacing in-memory state."""
        if self.storage_engine is None:
            return
        self._tables.clear()
        self._table_data.clear()
        self._indexes.clear()
        for name in self.storage_engine.list_all_tables():
            schema = self.storage_engine.load_table_schema(name)
            if schema is None:
                continue
            key = schema.name.lower()
            self._tables[key] = schema
            self._table_data[key] = self.storage_engine.load_table_data(schema)
            self._build_indexes(key)
            logger.info("Loaded table: %s with %d rows", schema.name, len(self._table_data[key]))

    @_locked
    def save_all_tables(self) -> None:
        for key in self._tables:
            self._persist(key)

    # ----- Helpers -----

    def _table_not_found(self, table_name: str) -> OperationResult:
        return OperationResult.failure(ErrorKind.TABLE_NOT_FOUND, f"Table '{table_name}' not found")

    def _reject(self, schema: TableSchema, failure: OperationResult) -> OperationResult:
        logger.warning("Rejected change to %s: %s", schema.name, failure.error_message)
        return failure

    def _as_row(self, schema: TableSchema, values: RowInput) -> List[str]:
        if isinstance(values, Mapping):
            return map_to_row(schema.column_names, values)
        return list(values)

    def _validate(self, key: str, schema: TableSchema, row: List[str]) -> Optional[OperationResult]:
        result = schema.validate_row(row)
        if not result:
            return self._reject(schema, OperationResult.from_validation(result))
        return None

    def _build_indexes(self, key: str) -> None:
        schema = self._tables[key]
        indexes: Dict[str, HashIndex] = {}
        if schema.primary_key:
            indexes[PRIMARY_KEY_INDEX] = HashIndex(PRIMARY_KEY_INDEX, schema.primary_key, unique=True)
        for name, columns in schema.unique_keys():
            indexes[name.lower()] = HashIndex(name, columns, unique=True)
        for name, definition in schema.indexes.items():
            indexes[name.lower()] = HashIndex(name, definition.columns, definition.unique)
        self._indexes[key] = indexes
        self._rebuild_indexes(key)

    def _rebuild_indexes(self, key: str) -> None:
        schema = self._tables[key]
        rows = self._table_data[key]
        for index in self._indexes[key].values():
            index.rebuild(rows, [schema.get_column_index(c) for c in index.columns])

    def _find_rows(self, key: str, columns: Sequence[str], values: Sequence[str]) -> List[int]:
        """Row ids whose ``columns`` equal ``values``, via an index when one exists."""
        index = self.find_index(key, columns)
        if index is not None:
            return index.search(tuple(values))
        schema = self._tables[key]
        positions = [schema.get_column_index(c) for c in columns]
        wanted = list(values)
        return [
            row_id for row_id, row in enumerate(self._table_data[key])
            if [row[p] for p in positions] == wanted
        ]

    def _check_unique(self, key: str, schema: TableSchema, row: List[str],
                      exclude_row: Optional[int] = None) -> Optional[OperationResult]:
        rules = []
        if schema.primary_key:
            rules.append((ErrorKind.PRIMARY_KEY, "PRIMARY KEY", schema.primary_key))
        for _, columns in schema.unique_keys():
            rules.append((ErrorKind.UNIQUE, "UNIQUE", columns))

        for kind, label, columns in rules:
            values = [row[schema.get_column_index(c)] for c in columns]
            if any(is_null_text(v) for v in values):
                continue
            clashes = [r for r in self._find_rows(key, columns, values) if r != exclude_row]
            if clashes:
                return OperationResult.failure(
                    kind, f"{label} constraint violation on column(s): {', '.join(columns)}"
                )
        return None

    def _check_foreign_keys(self, schema: TableSchema, row: List[str]) -> Optional[OperationResult]:
        for fk in schema.foreign_keys.values():
            parent_key = fk.ref_table.lower()
            parent = self._tables.get(parent_key)
            if parent is None:
                return OperationResult.failure(
                    ErrorKind.FOREIGN_KEY, f"Referenced table '{fk.ref_table}' does not exist"
                )
            values = [row[schema.get_column_index(c)] for c in fk.columns]
            if any(is_null_text(v) for v in values):
                continue
            if not all(parent.has_column(c) for c in fk.ref_columns):
                return OperationResult.failure(
                    ErrorKind.FOREIGN_KEY,
                    f"Referenced column(s) {fk.full_reference} do not exist"
                )
            if not self._find_rows(parent_key, fk.ref_columns, values):
                return OperationResult.failure(
                    ErrorKind.FOREIGN_KEY,
                    f"FOREIGN KEY constraint violation: value ({', '.join(values)}) "
                    f"not found in {fk.full_reference}"
                )
        return None

    def _check_not_referenced(self, key: str, row: List[str], row_id: int,
                              new_row: Optional[List[str]] = None) -> Optional[OperationResult]:
        """
        Fail if a child row references ``row``.

        With ``new_row`` (an update), only references whose key values
        actually change count.
        """
        schema = self._tables[key]
        for child_key, child in self._tables.items():
            for fk in child.foreign_keys.values():
                if fk.ref_table.lower() != key:
                    continue
                positions = [schema.get_column_index(c) for c in fk.ref_columns]
                if any(p < 0 for p in positions):
                    continue
                values = [row[p] for p in positions]
                if any(is_null_text(v) for v in values):
                    continue
                if new_row is not None and [new_row[p] for p in positions] == values:
                    continue
                referencing = self._find_rows(child_key, fk.columns, values)
                if child_key == key:
                    referencing = [r for r in referencing if r != row_id]
                if referencing:
                    return OperationResult.failure(
                        ErrorKind.FOREIGN_KEY,
                        f"FOREIGN KEY constraint violation: row referenced by table '{child.name}'"
                    )
        return None

    def _commit_rows(self, key: str, rows: List[List[str]]) -> None:
        """
        Make ``rows`` the table's contents and write them out.

        If the write fails the previous rows, row count and indexes stay
        in effect and the StorageError propagates.
        """
        schema = self._tables[key]
        previous = (self._table_data[key], schema.row_count, schema.modified_at)
        self._table_data[key] = rows
        try:
            self._persist(key)
        except StorageError:
            self._table_data[key], schema.row_count, schema.modified_at = previous
            raise
        self._rebuild_indexes(key)

    def _persist(self, key: str) -> None:
        schema = self._tables[key]
        rows = self._table_data[key]
        schema.row_count = len(rows)
        schema.touch()
        if self.storage_engine is None:
            return
        # Data first: a table only exists on disk once its schema file does
        self.storage_engine.save_table_data(schema, rows)
        self.storage_engine.save_table_schema(schema)

    def __repr__(self) -> str:
        return f"TableManager({len(self._tables)} tables)"
