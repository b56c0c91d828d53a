"""
Token kinds and the keyword table used by the lexer and parser.
"""

from dataclasses import dataclass
from enum import Enum, auto


class TokenType(Enum):
    """Every kind of token the lexer can produce."""
    # Statements and clauses
    SELECT = auto()
    FROM = auto()
    WHERE = auto()
    INSERT = auto()
    INTO = auto()
    VALUES = auto()
    UPDATE = auto()
    SET = auto()
    DELETE = auto()
    CREATE = auto()
    TABLE = auto()
    ALTER = auto()
    ADD = auto()
    MODIFY = auto()
    COLUMN = auto()
    DROP = auto()
    INDEX = auto()
    ON = auto()
    JOIN = auto()
    INNER = auto()
    LEFT = auto()
    RIGHT = auto()
    FULL = auto()
    OUTER = auto()
    CROSS = auto()
    ORDER = auto()
    BY = auto()
    ASC = auto()
    DESC = auto()
    LIMIT = auto()
    IF = auto()
    EXISTS = auto()
    BEGIN = auto()
    TRANSACTION = auto()
    COMMIT = auto()
    ROLLBACK = auto()

    # Constraints
    PRIMARY = auto()
    KEY = auto()
    FOREIGN = auto()
    REFERENCES = auto()
    UNIQUE = auto()
    CHECK = auto()
    DEFAULT = auto()
    CONSTRAINT = auto()
    AUTO_INCREMENT = auto()
    CASCADE = auto()
    RESTRICT = auto()

    # Logical
    AND = auto()
    OR = auto()
    NOT = auto()
    IS = auto()
    IN = auto()
    LIKE = auto()

    # Data types
    TINYINT = auto()
    SMALLINT = auto()
    INT = auto()
    INTEGER = auto()
    BIGINT = auto()
    DECIMAL = auto()
    NUMERIC = auto()
    FLOAT = auto()
    DOUBLE = auto()
    REAL = auto()
    CHAR = auto()
    VARCHAR = auto()
    TEXT = auto()
    NCHAR = auto()
    NVARCHAR = auto()
    TINYTEXT = auto()
    MEDIUMTEXT = auto()
    LONGTEXT = auto()
    ENUM = auto()
    BOOL = auto()
    BOOLEAN = auto()
    JSON = auto()
    DATE = auto()
    TIME = auto()
    DATETIME = auto()
    TIMESTAMP = auto()

    # Literals
    IDENTIFIER = auto()
    NUMBER = auto()
    STRING = auto()
    TRUE = auto()
    FALSE = auto()
    NULL = auto()

    # Operators and punctuation
    EQUALS = auto()
    NOT_EQUALS = auto()
    LESS = auto()
    LESS_EQUAL = auto()
    GREATER = auto()
    GREATER_EQUAL = auto()
    PLUS = auto()
    MINUS = auto()
    ASTERISK = auto()
    DIVIDE = auto()
    PERCENT = auto()
    LPAREN = auto()
    RPAREN = auto()
    COMMA = auto()
    SEMICOLON = auto()
    DOT = auto()

    END_OF_FILE = auto()
    UNKNOWN = auto()


TYPE_KEYWORDS = frozenset({
    TokenType.TINYINT, TokenType.SMALLINT, TokenType.INT, TokenType.INTEGER,
    TokenType.BIGINT, TokenType.DECIMAL, TokenType.NUMERIC, TokenType.FLOAT,
    TokenType.DOUBLE, TokenType.REAL, TokenType.CHAR, TokenType.VARCHAR,
    TokenType.TEXT, TokenType.NCHAR, TokenType.NVARCHAR, TokenType.TINYTEXT,
    TokenType.MEDIUMTEXT, TokenType.LONGTEXT, TokenType.ENUM, TokenType.BOOL,
    TokenType.BOOLEAN, TokenType.JSON, TokenType.DATE, TokenType.TIME,
    TokenType.DATETIME, TokenType.TIMESTAMP,
})

# Keywords that may still be used as table or column names
NON_RESERVED = TYPE_KEYWORDS | frozenset({
    TokenType.KEY, TokenType.ADD, TokenType.MODIFY, TokenType.COLUMN,
    TokenType.ASC, TokenType.DESC, TokenType.TRANSACTION, TokenType.CASCADE,
    TokenType.RESTRICT, TokenType.IF, TokenType.EXISTS, TokenType.FULL,
    TokenType.OUTER, TokenType.CROSS, TokenType.LEFT, TokenType.RIGHT,
})

KEYWORDS = {
    kind.name: kind for kind in TokenType
    if kind.value <= TokenType.TIMESTAMP.value
}
KEYWORDS.update({
    'TRUE': TokenType.TRUE,
    'FALSE': TokenType.FALSE,
    'NULL': TokenType.NULL,
    'AUTOINCREMENT': TokenType.AUTO_INCREMENT,
})


@dataclass(frozen=True)
class Token:
    """One lexical token with its 1-based source position."""
    kind: TokenType
    text: str
    line: int
    column: int

    def __repr__(self) -> str:
        return f"Token({self.kind.name}, {self.text!r}, {self.line}:{self.column})"
