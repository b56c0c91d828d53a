"""
Index implementations for equality lookups on table rows.

Index is an abstract base so TableManager can hold any index kind
behind one contract. HashIndex is the only implementation.

Keys are tuples of canonical column texts, one per indexed column, and
values are positional row ids. Because row ids shift on delete, the
owner rebuilds an index after every mutation.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from typing import List, Sequence, Tuple

from ..utils.validators import is_null_text

Key = Tuple[str, ...]


class Index(ABC):
    """
    Contract every index kind provides.

    An index maps a key built from ``columns`` to the ids of the rows
    holding that key.
    """

    def __init__(self, name: str, columns: Sequence[str], unique: bool = False):
        """
        Args:
            name: Index name
            columns: Names of the indexed columns, in key order
            unique: Whether the index backs a uniqueness rule
        """
        self.name = name
        self.columns = list(columns)
        self.unique = unique

    @abstractmethod
    def insert(self, key: Key, row_id: int) -> None:
        """Map ``key`` to ``row_id``."""
        pass

    @abstractmethod
    def search(self, key: Key) -> List[int]:
        """Row ids stored under ``key``; empty when there are none."""
        pass

    @abstractmethod
    def delete(self, key: Key, row_id: int) -> None:
        """Drop the ``key`` to ``row_id`` mapping if present."""
        pass

    @abstractmethod
    def get_all_keys(self) -> List[Key]:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    def rebuild(self, rows: Sequence[Sequence[str]], positions: Sequence[int]) -> None:
        """
        Re-index every row.

        Args:
            rows: All rows of the table, in row-id order
            positions: Column positions making up the key
        """
        self.clear()
        for row_id, row in enumerate(rows):
            self.insert(tuple(row[p] for p in positions), row_id)


class HashIndex(Index):
    """
    Dict-backed index for equality lookups.

    Serves PRIMARY KEY, UNIQUE and CREATE INDEX definitions. Range
    predicates are not served; the planner falls back to a scan for them.
    """

    def __init__(self, name: str, columns: Sequence[str], unique: bool = False):
        super().__init__(name, columns, unique)
        self._index: defaultdict[Key, List[int]] = defaultdict(list)

    def insert(self, key: Key, row_id: int) -> None:
        """
        Add key-to-row mapping.

        Keys containing a NULL are not indexed: NULLs never collide.
        """
        if not any(is_null_text(part) for part in key):
            self._index[key].append(row_id)

    def search(self, key: Key) -> List[int]:
        if any(is_null_text(part) for part in key):
            return []
        # Copy so callers cannot change the stored list
        return list(self._index.get(key, []))

    def delete(self, key: Key, row_id: int) -> None:
        """Remove one row id, dropping the key once no rows remain."""
        row_ids = self._index.get(key)
        if row_ids is None or row_id not in row_ids:
            return
        row_ids.remove(row_id)
        if not row_ids:
            del self._index[key]

    def get_all_keys(self) -> List[Key]:
        return list(self._index.keys())

    def clear(self) -> None:
        self._index.clear()

    def __len__(self) -> int:
        """Number of distinct keys."""
        return len(self._index)

    def __repr__(self) -> str:
        return f"HashIndex({self.name}, {self.columns}, {len(self)} keys)"
