"""
Uniform result of executing one statement.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class QueryResult:
    """
    What every statement returns, successful or not.

    ``rows`` holds canonical value strings in ``columns`` order and is
    only filled by SELECT.
    """
    success: bool
    affected_rows: int = 0
    columns: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)
    error_message: str = ""
    message: str = ""

    @classmethod
    def failure(cls, error_message: str) -> 'QueryResult':
        return cls(success=False, error_message=error_message)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready form used by the HTTP layer."""
        return {
            'success': self.success,
            'affectedRows': self.affected_rows,
            'columns': self.columns,
            'rows': self.rows,
            'errorMessage': self.error_message,
            'message': self.message,
        }
