"""
File-based storage engine.

Each table is stored as two JSON files in the data directory:
- ``<table>_schema.json``: the serialized TableSchema
- ``<table>.json``: ``{tableName, rowCount, rows: [{column: value}]}``

Rows are written as column-keyed objects so a data file can be read back
against its schema regardless of key order. Every write goes to a
temporary file that then replaces the target.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

from ..config import DEFAULT_DATA_DIR
from ..utils.exceptions import RDBMSError, StorageError
from ..utils.row_utils import map_to_row, row_to_map
from .schema import TableSchema

logger = logging.getLogger(__name__)

SCHEMA_SUFFIX = "_schema.json"
DATA_SUFFIX = ".json"


class StorageEngine:
    """Reads and writes table schemas and rows under one directory."""

    def __init__(self, data_dir=DEFAULT_DATA_DIR):
        """
        Initialize the engine, creating the data directory if needed.

        Args:
            data_dir: Directory holding the table files
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def schema_path(self, table_name: str) -> Path:
        return self.data_dir / f"{table_name}{SCHEMA_SUFFIX}"

    def data_path(self, table_name: str) -> Path:
        return self.data_dir / f"{table_name}{DATA_SUFFIX}"

    # ----- Schema -----

    def save_table_schema(self, schema: TableSchema) -> None:
        """
        Write a table's schema file.

        Raises:
            StorageError: If the file cannot be written
        """
        self._write_json(self.schema_path(schema.name), schema.to_dict())
        logger.debug("Saved schema for table %s", schema.name)

    def load_table_schema(self, table_name: str) -> Optional[TableSchema]:
        """
        Read a table's schema file.

        Returns:
            The schema, or None if the table has no schema file

        Raises:
            StorageError: If the file exists but cannot be parsed
        """
        path = self.schema_path(table_name)
        if not path.exists():
            return None
        data = self._read_json(path)
        try:
            return TableSchema.from_dict(data)
        except (KeyError, ValueError, RDBMSError) as e:
            raise StorageError(str(path), f"invalid schema: {e}")

    # ----- Data -----

    def save_table_data(self, schema: TableSchema, rows: Sequence[Sequence[str]]) -> None:
        """
        Rewrite a table's data file with every row.

        Raises:
            StorageError: If the file cannot be written
        """
        names = schema.column_names
        document = {
            'tableName': schema.name,
            'rowCount': len(rows),
            'rows': [row_to_map(names, row) for row in rows],
        }
        self._write_json(self.data_path(schema.name), document)
        logger.debug("Saved %d rows for table %s", len(rows), schema.name)

    def load_table_data(self, schema: TableSchema) -> List[List[str]]:
        """
        Read a table's rows in schema column order.

        A missing data file means the table is empty.

        Raises:
            StorageError: If the file exists but cannot be parsed
        """
        path = self.data_path(schema.name)
        if not path.exists():
            return []
        document = self._read_json(path)
        names = schema.column_names
        return [map_to_row(names, row) for row in document.get('rows', [])]

    # ----- Tables -----

    def list_all_tables(self) -> List[str]:
        """Names of all tables that have a schema file, sorted."""
        return sorted(
            path.name[:-len(SCHEMA_SUFFIX)]
            for path in self.data_dir.glob(f"*{SCHEMA_SUFFIX}")
        )

    def table_exists(self, table_name: str) -> bool:
        return self.schema_path(table_name).exists()

    def delete_table_files(self, table_name: str) -> None:
        """Remove a table's schema and data files if they exist."""
        for path in (self.schema_path(table_name), self.data_path(table_name)):
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                raise StorageError(str(path), str(e))
        logger.debug("Deleted files for table %s", table_name)

    # ----- Helpers -----

    def _write_json(self, path: Path, document: dict) -> None:
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(document, f, indent=2)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageError(str(path), str(e))

    def _read_json(self, path: Path) -> dict:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(str(path), str(e))
