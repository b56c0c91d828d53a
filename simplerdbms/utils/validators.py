"""
Reusable validation functions used across the RDBMS.

These validators provide single sources of truth for identifier rules
and the NULL sentinel, preventing duplication across storage, parser,
and executor modules.
"""

import re

from ..config import NULL_SENTINEL
from .exceptions import InvalidIdentifierError


# Words the lexer always treats as keywords, so they can never name a
# table or column.
RESERVED_WORDS = {
    'SELECT', 'FROM', 'WHERE', 'INSERT', 'UPDATE', 'DELETE',
    'CREATE', 'ALTER', 'DROP', 'TABLE', 'INDEX', 'INTO', 'VALUES',
    'SET', 'AND', 'OR', 'NOT', 'NULL', 'PRIMARY', 'KEY', 'FOREIGN',
    'REFERENCES', 'CHECK', 'DEFAULT', 'CONSTRAINT', 'UNIQUE', 'INNER',
    'JOIN', 'ON', 'ORDER', 'BY', 'LIMIT', 'TRUE', 'FALSE', 'IS', 'IN',
    'LIKE', 'BEGIN', 'COMMIT', 'ROLLBACK',
}

_IDENTIFIER_RE = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')


def validate_identifier(name: str) -> bool:
    """
    Validates table/column/index/constraint names.

    Rules:
    - Must start with a letter or underscore
    - Can contain letters, numbers, and underscores
    - Must be between 1 and 64 characters
    - Cannot be a SQL reserved word

    Args:
        name: The identifier to validate

    Returns:
        True if valid

    Raises:
        InvalidIdentifierError: If the identifier is invalid
    """
    if not name:
        raise InvalidIdentifierError(name, "Identifier cannot be empty")

    if len(name) > 64:
        raise InvalidIdentifierError(name, "Identifier too long (max 64 characters)")

    if name.upper() in RESERVED_WORDS:
        raise InvalidIdentifierError(name, "Cannot use SQL reserved word")

    if not _IDENTIFIER_RE.match(name):
        raise InvalidIdentifierError(
            name,
            "Must start with letter or underscore, and contain only letters, numbers, and underscores"
        )

    return True


def is_null_text(text) -> bool:
    """
    Check whether a stored or supplied text stands for SQL NULL.

    Both ``None``, the empty string and any casing of ``NULL`` count.
    """
    if text is None:
        return True
    stripped = text.strip()
    return stripped == '' or stripped.upper() == NULL_SENTINEL


def quote_string(text: str) -> str:
    """Render text as a single-quoted SQL string literal."""
    return "'" + text.replace("'", "\\'") + "'"
