"""
Query planner for row selection.

Single source of truth for deciding how to find the rows a WHERE clause
selects:
- Use a hash index for ``column = literal`` on an indexed column
- Fall back to a table scan

This logic is reused by SELECT, UPDATE, DELETE to avoid duplication.
"""

from typing import List, Optional, Sequence, Tuple

from ..parser.ast import Condition, Comparison, ComparisonOp, ColumnRef, Literal, LogicalCondition, LogicalOp
from ..storage.index import HashIndex
from ..storage.schema import TableSchema
from ..storage.table_manager import TableManager
from ..storage.types import validate_and_sanitize
from ..utils.exceptions import DataTypeError
from .evaluator import ConditionEvaluator, mapping_resolver


class QueryPlanner:
    """
    Plans row selection.

    Decides whether to use indexes or table scans based on:
    - Available indexes
    - WHERE clause structure
    """

    def __init__(self, table_manager: TableManager):
        self.table_manager = table_manager
        self.evaluator = ConditionEvaluator()

    def get_matching_row_ids(
        self,
        schema: TableSchema,
        rows: Sequence[Sequence[str]],
        where: Optional[Condition]
    ) -> List[int]:
        """
        Positional ids of the rows the condition selects, ascending.

        Args:
            schema: Table schema
            rows: Current rows of the table (from select_all)
            where: Compiled WHERE condition (None = all rows)

        Returns:
            Row ids whose condition evaluates to True
        """
        if where is None:
            return list(range(len(rows)))

        candidates = self._get_candidate_ids(schema, where)
        if candidates is None:
            candidates = range(len(rows))

        matching = []
        for row_id in sorted(candidates):
            if row_id >= len(rows):
                continue
            resolver = mapping_resolver(schema.row_values(rows[row_id]))
            if self.evaluator.matches(where, resolver):
                matching.append(row_id)
        return matching

    def _get_candidate_ids(self, schema: TableSchema, condition: Condition) -> Optional[List[int]]:
        """
        Candidate row ids from an index, or None to scan every row.

        Candidates are always re-checked against the full condition.
        """
        opportunity = self._find_index_opportunity(schema, condition)
        if opportunity is None:
            return None
        index, key = opportunity
        return index.search((key,))

    def _find_index_opportunity(
        self,
        schema: TableSchema,
        condition: Condition
    ) -> Optional[Tuple[HashIndex, str]]:
        """
        Look for ``column = literal`` on an indexed column, alone or on
        either side of an AND.

        Returns:
            (index, canonical key text) if found, None otherwise
        """
        if isinstance(condition, LogicalCondition) and condition.op == LogicalOp.AND:
            left = self._find_index_opportunity(schema, condition.left)
            if left is not None:
                return left
            return self._find_index_opportunity(schema, condition.right)

        if not isinstance(condition, Comparison) or condition.op != ComparisonOp.EQ:
            return None

        left, right = condition.left, condition.right
        if isinstance(left, Literal) and isinstance(right, ColumnRef):
            left, right = right, left
        if not (isinstance(left, ColumnRef) and isinstance(right, Literal)):
            return None
        if right.value is None:
            return None

        column = schema.get_column(left.column_name)
        if column is None:
            return None
        # Stored text must equal the canonical literal exactly for the lookup
        # to agree with a scan, which rules out float formatting and
        # cross-kind comparisons.
        if column.data_type.is_floating_point() or column.data_type.is_decimal():
            return None
        if column.data_type.is_string() != (right.type == "STRING"):
            return None
        index = self.table_manager.find_index(schema.name, [column.name])
        if index is None:
            return None
        try:
            key = validate_and_sanitize(column.data_type, str(right.value), column.enum_values)
        except DataTypeError:
            return None
        return (index, key)

    def can_use_index(self, schema: TableSchema, condition: Optional[Condition]) -> bool:
        """
        Check if an index can be used for this condition.

        Useful for query analysis and testing.
        """
        if condition is None:
            return False
        return self._find_index_opportunity(schema, condition) is not None
