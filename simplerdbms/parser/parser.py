"""
Recursive-descent SQL parser.

Consumes the lexer's token stream with one token of lookahead and
returns exactly one statement AST node. Any unexpected token aborts the
parse with a ParseError naming the expected kind, the actual token and
its position; there is no error recovery.

WHERE and ORDER BY clauses are captured as whitespace-joined token text
and compiled when the statement runs.
"""

from typing import List, Optional

from . import ast
from .lexer import Lexer
from .token import NON_RESERVED, TYPE_KEYWORDS, Token, TokenType
from ..utils.exceptions import ParseError
from ..utils.validators import quote_string


_JOIN_START = (
    TokenType.JOIN, TokenType.INNER, TokenType.LEFT, TokenType.RIGHT,
    TokenType.FULL, TokenType.CROSS,
)

_ARITHMETIC = {
    TokenType.PLUS: ast.ArithmeticOp.ADD,
    TokenType.MINUS: ast.ArithmeticOp.SUB,
    TokenType.ASTERISK: ast.ArithmeticOp.MUL,
    TokenType.DIVIDE: ast.ArithmeticOp.DIV,
    TokenType.PERCENT: ast.ArithmeticOp.MOD,
}

_CLAUSE_END = (TokenType.SEMICOLON, TokenType.END_OF_FILE)


class Parser:
    """
    Parses one SQL statement from a token list.

    Build a new Parser per statement.
    """

    def __init__(self, tokens: List[Token]):
        """
        Initialize the parser.

        Args:
            tokens: Output of Lexer.tokenize(); an END_OF_FILE token is
                appended if missing
        """
        self.tokens = list(tokens)
        if not self.tokens or self.tokens[-1].kind != TokenType.END_OF_FILE:
            last = self.tokens[-1] if self.tokens else None
            line = last.line if last else 1
            column = last.column + len(last.text) if last else 1
            self.tokens.append(Token(TokenType.END_OF_FILE, "", line, column))
        self.pos = 0

    def parse(self) -> ast.Statement:
        """
        Parse the statement.

        Returns:
            AST node representing the statement

        Raises:
            ParseError: If the tokens do not form a single valid statement
        """
        kind = self._current.kind
        if kind == TokenType.SELECT:
            statement = self._parse_select()
        elif kind == TokenType.INSERT:
            statement = self._parse_insert()
        elif kind == TokenType.UPDATE:
            statement = self._parse_update()
        elif kind == TokenType.DELETE:
            statement = self._parse_delete()
        elif kind == TokenType.CREATE:
            statement = self._parse_create()
        elif kind == TokenType.ALTER:
            statement = self._parse_alter()
        elif kind == TokenType.DROP:
            statement = self._parse_drop()
        elif kind == TokenType.BEGIN:
            self._advance()
            self._match(TokenType.TRANSACTION)
            statement = ast.BeginStmt()
        elif kind == TokenType.COMMIT:
            self._advance()
            self._match(TokenType.TRANSACTION)
            statement = ast.CommitStmt()
        elif kind == TokenType.ROLLBACK:
            self._advance()
            self._match(TokenType.TRANSACTION)
            statement = ast.RollbackStmt()
        else:
            raise self._error("statement")

        self._match(TokenType.SEMICOLON)
        self._expect(TokenType.END_OF_FILE)
        return statement

    # ----- Token helpers -----

    @property
    def _current(self) -> Token:
        return self.tokens[self.pos]

    def _peek(self, offset: int = 1) -> Token:
        idx = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[idx]

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.kind != TokenType.END_OF_FILE:
            self.pos += 1
        return token

    def _check(self, *kinds: TokenType) -> bool:
        return self._current.kind in kinds

    def _match(self, *kinds: TokenType) -> Optional[Token]:
        if self._check(*kinds):
            return self._advance()
        return None

    def _expect(self, kind: TokenType) -> Token:
        if self._current.kind != kind:
            raise self._error(kind.name)
        return self._advance()

    def _error(self, expected: str) -> ParseError:
        token = self._current
        return ParseError(expected, token.kind.name, token.text, token.line, token.column)

    def _parse_identifier(self) -> str:
        token = self._current
        if token.kind == TokenType.IDENTIFIER or token.kind in NON_RESERVED:
            self._advance()
            return token.text
        raise self._error(TokenType.IDENTIFIER.name)

    def _parse_identifier_list(self) -> List[str]:
        """Parse ``( name, name, ... )``."""
        self._expect(TokenType.LPAREN)
        names = [self._parse_identifier()]
        while self._match(TokenType.COMMA):
            names.append(self._parse_identifier())
        self._expect(TokenType.RPAREN)
        return names

    @staticmethod
    def _render(token: Token) -> str:
        if token.kind == TokenType.STRING:
            return quote_string(token.text)
        return token.text

    def _capture_clause(self, *stop_kinds: TokenType) -> str:
        """
        Collect tokens up to a stop kind (outside parentheses) as text.

        An unbalanced closing parenthesis also ends the clause.
        """
        parts = []
        depth = 0
        while not self._check(TokenType.END_OF_FILE):
            if depth == 0 and self._check(*stop_kinds):
                break
            if self._check(TokenType.UNKNOWN):
                raise self._error("expression")
            if self._check(TokenType.LPAREN):
                depth += 1
            elif self._check(TokenType.RPAREN):
                if depth == 0:
                    break
                depth -= 1
            parts.append(self._render(self._advance()))
        return " ".join(parts)

    def _capture_parenthesized(self, what: str) -> str:
        """Consume ``( ... )`` with balanced nesting and return the inner text."""
        self._expect(TokenType.LPAREN)
        parts = []
        depth = 0
        while True:
            if self._check(TokenType.END_OF_FILE):
                raise self._error(TokenType.RPAREN.name)
            if self._check(TokenType.UNKNOWN):
                raise self._error(what)
            if self._check(TokenType.RPAREN):
                if depth == 0:
                    break
                depth -= 1
            elif self._check(TokenType.LPAREN):
                depth += 1
            parts.append(self._render(self._advance()))
        if not parts:
            raise self._error(what)
        self._advance()
        return " ".join(parts)

    # ----- SELECT -----

    def _parse_select(self) -> ast.SelectStmt:
        self._expect(TokenType.SELECT)

        if self._match(TokenType.ASTERISK):
            columns = ["*"]
        else:
            columns = [self._parse_identifier()]
            while self._match(TokenType.COMMA):
                columns.append(self._parse_identifier())

        self._expect(TokenType.FROM)
        table_name = self._parse_identifier()

        join_clause = None
        if self._check(*_JOIN_START):
            join_clause = self._capture_clause(
                TokenType.WHERE, TokenType.ORDER, TokenType.LIMIT, *_CLAUSE_END
            )

        where = self._parse_where(TokenType.ORDER, TokenType.LIMIT)

        order_by = None
        if self._match(TokenType.ORDER):
            self._expect(TokenType.BY)
            order_by = self._parse_order_by()

        limit = None
        if self._match(TokenType.LIMIT):
            token = self._current
            if token.kind != TokenType.NUMBER or not token.text.isdigit():
                raise self._error("integer")
            self._advance()
            limit = int(token.text)

        return ast.SelectStmt(
            columns=columns,
            table_name=table_name,
            where=where,
            order_by=order_by,
            limit=limit,
            join_clause=join_clause
        )

    def _parse_where(self, *stop_kinds: TokenType) -> Optional[str]:
        if not self._match(TokenType.WHERE):
            return None
        text = self._capture_clause(*stop_kinds, *_CLAUSE_END)
        if not text:
            raise self._error("condition")
        return text

    def _parse_order_by(self) -> str:
        items = []
        while True:
            item = self._parse_identifier()
            direction = self._match(TokenType.ASC, TokenType.DESC)
            if direction:
                item += " " + direction.text.upper()
            items.append(item)
            if not self._match(TokenType.COMMA):
                return ", ".join(items)

    # ----- INSERT -----

    def _parse_insert(self) -> ast.InsertStmt:
        self._expect(TokenType.INSERT)
        self._expect(TokenType.INTO)
        table_name = self._parse_identifier()

        columns = None
        if self._check(TokenType.LPAREN):
            columns = self._parse_identifier_list()

        self._expect(TokenType.VALUES)
        rows = [self._parse_value_tuple()]
        while self._match(TokenType.COMMA):
            rows.append(self._parse_value_tuple())

        return ast.InsertStmt(table_name=table_name, columns=columns, values=rows)

    def _parse_value_tuple(self) -> List[ast.Expr]:
        self._expect(TokenType.LPAREN)
        values = [self._parse_expression()]
        while self._match(TokenType.COMMA):
            values.append(self._parse_expression())
        self._expect(TokenType.RPAREN)
        return values

    # ----- UPDATE -----

    def _parse_update(self) -> ast.UpdateStmt:
        self._expect(TokenType.UPDATE)
        table_name = self._parse_identifier()
        self._expect(TokenType.SET)

        columns, values = [], []
        while True:
            columns.append(self._parse_identifier())
            self._expect(TokenType.EQUALS)
            values.append(self._parse_expression())
            if not self._match(TokenType.COMMA):
                break

        where = self._parse_where()
        return ast.UpdateStmt(table_name=table_name, columns=columns, values=values, where=where)

    # ----- DELETE -----

    def _parse_delete(self) -> ast.DeleteStmt:
        self._expect(TokenType.DELETE)
        self._expect(TokenType.FROM)
        table_name = self._parse_identifier()
        where = self._parse_where()
        return ast.DeleteStmt(table_name=table_name, where=where)

    # ----- Expressions -----

    def _parse_expression(self) -> ast.Expr:
        """
        Parse a primary expression with at most one trailing operator.

        The right-hand side is parsed recursively, so ``a + b * c`` groups
        as ``a + (b * c)`` and ``a - b - c`` as ``a - (b - c)``; there is no
        operator precedence.
        """
        left = self._parse_primary()
        op = _ARITHMETIC.get(self._current.kind)
        if op is None:
            return left
        self._advance()
        right = self._parse_expression()
        return ast.BinaryOp(left=left, op=op, right=right)

    def _parse_primary(self) -> ast.Expr:
        token = self._current

        if token.kind == TokenType.STRING:
            self._advance()
            return ast.Literal(value=token.text, type="STRING")
        if token.kind == TokenType.NUMBER:
            self._advance()
            return ast.Literal(value=token.text, type="NUMBER")
        if token.kind == TokenType.MINUS and self._peek().kind == TokenType.NUMBER:
            self._advance()
            return ast.Literal(value="-" + self._advance().text, type="NUMBER")
        if token.kind == TokenType.NULL:
            self._advance()
            return ast.Literal(value=None, type="NULL")
        if token.kind in (TokenType.TRUE, TokenType.FALSE):
            self._advance()
            return ast.Literal(value=token.kind.name, type="BOOLEAN")
        if token.kind == TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            self._expect(TokenType.RPAREN)
            return expr

        if token.kind == TokenType.IDENTIFIER or token.kind in NON_RESERVED:
            name = self._parse_identifier()
            if self._match(TokenType.LPAREN):
                args = []
                if not self._check(TokenType.RPAREN):
                    args.append(self._parse_expression())
                    while self._match(TokenType.COMMA):
                        args.append(self._parse_expression())
                self._expect(TokenType.RPAREN)
                return ast.FunctionCall(name=name.upper(), args=args)
            if self._match(TokenType.DOT):
                return ast.ColumnRef(column_name=self._parse_identifier(), table_name=name)
            return ast.ColumnRef(column_name=name)

        raise self._error("expression")

    # ----- CREATE -----

    def _parse_create(self) -> ast.Statement:
        self._expect(TokenType.CREATE)
        if self._check(TokenType.UNIQUE, TokenType.INDEX):
            return self._parse_create_index()
        self._expect(TokenType.TABLE)

        if_not_exists = False
        if self._match(TokenType.IF):
            self._expect(TokenType.NOT)
            self._expect(TokenType.EXISTS)
            if_not_exists = True

        stmt = ast.CreateTableStmt(
            table_name=self._parse_identifier(),
            columns=[],
            if_not_exists=if_not_exists
        )

        self._expect(TokenType.LPAREN)
        while True:
            if self._check(TokenType.PRIMARY, TokenType.UNIQUE, TokenType.FOREIGN,
                           TokenType.CONSTRAINT, TokenType.CHECK):
                self._parse_table_constraint(stmt)
            else:
                column = self._parse_column_def()
                stmt.columns.append(column)
                if column.primary_key:
                    stmt.primary_key.append(column.name)
            if not self._match(TokenType.COMMA):
                break
        self._expect(TokenType.RPAREN)
        return stmt

    def _parse_create_index(self) -> ast.CreateIndexStmt:
        unique = self._match(TokenType.UNIQUE) is not None
        self._expect(TokenType.INDEX)
        index_name = self._parse_identifier()
        self._expect(TokenType.ON)
        table_name = self._parse_identifier()
        columns = self._parse_identifier_list()
        return ast.CreateIndexStmt(
            index_name=index_name,
            table_name=table_name,
            columns=columns,
            unique=unique
        )

    def _parse_column_def(self) -> ast.ColumnDef:
        name = self._parse_identifier()

        type_token = self._current
        if type_token.kind not in TYPE_KEYWORDS and type_token.kind != TokenType.IDENTIFIER:
            raise self._error("data type")
        self._advance()
        column = ast.ColumnDef(name=name, data_type=type_token.text.upper())

        if self._match(TokenType.LPAREN):
            column.type_params.append(self._parse_type_param())
            while self._match(TokenType.COMMA):
                column.type_params.append(self._parse_type_param())
            self._expect(TokenType.RPAREN)

        constraint_name = None
        while not self._check(TokenType.COMMA, TokenType.RPAREN, TokenType.END_OF_FILE):
            if self._match(TokenType.PRIMARY):
                self._expect(TokenType.KEY)
                column.primary_key = True
            elif self._match(TokenType.UNIQUE):
                self._match(TokenType.KEY)
                column.unique = True
            elif self._match(TokenType.NOT):
                self._expect(TokenType.NULL)
                column.not_null = True
            elif self._match(TokenType.NULL):
                pass
            elif self._match(TokenType.AUTO_INCREMENT):
                column.auto_increment = True
            elif self._match(TokenType.DEFAULT):
                column.default = self._parse_default()
            elif self._check(TokenType.CHECK):
                self._advance()
                column.check = self._capture_parenthesized("condition")
            elif self._match(TokenType.REFERENCES):
                fk = self._parse_references([name])
                fk.name = constraint_name
                column.references = fk
            elif self._match(TokenType.CONSTRAINT):
                constraint_name = self._parse_identifier()
            else:
                raise self._error("column constraint")
        return column

    def _parse_type_param(self) -> str:
        token = self._current
        if token.kind in (TokenType.NUMBER, TokenType.STRING):
            self._advance()
            return token.text
        raise self._error("type parameter")

    def _parse_default(self) -> Optional[str]:
        token = self._current
        if token.kind in (TokenType.STRING, TokenType.NUMBER):
            self._advance()
            return token.text
        if token.kind == TokenType.MINUS and self._peek().kind == TokenType.NUMBER:
            self._advance()
            return "-" + self._advance().text
        if token.kind == TokenType.NULL:
            self._advance()
            return None
        if token.kind in (TokenType.TRUE, TokenType.FALSE):
            self._advance()
            return token.kind.name
        if token.kind == TokenType.IDENTIFIER:
            self._advance()
            if self._check(TokenType.LPAREN):
                self._advance()
                args = self._capture_clause()
                self._expect(TokenType.RPAREN)
                return f"{token.text.upper()}({args})"
            return token.text.upper()
        raise self._error("default value")

    def _parse_table_constraint(self, stmt: ast.CreateTableStmt) -> None:
        name = None
        if self._match(TokenType.CONSTRAINT):
            name = self._parse_identifier()

        if self._match(TokenType.PRIMARY):
            self._expect(TokenType.KEY)
            for column in self._parse_identifier_list():
                if column.lower() not in (c.lower() for c in stmt.primary_key):
                    stmt.primary_key.append(column)
        elif self._match(TokenType.UNIQUE):
            self._match(TokenType.KEY)
            stmt.unique_constraints.append(ast.UniqueDef(columns=self._parse_identifier_list(), name=name))
        elif self._match(TokenType.FOREIGN):
            self._expect(TokenType.KEY)
            columns = self._parse_identifier_list()
            self._expect(TokenType.REFERENCES)
            fk = self._parse_references(columns)
            fk.name = name
            stmt.foreign_keys.append(fk)
        elif self._match(TokenType.CHECK):
            stmt.checks.append(ast.CheckDef(condition=self._capture_parenthesized("condition"), name=name))
        else:
            raise self._error("table constraint")

    def _parse_references(self, columns: List[str]) -> ast.ForeignKeyDef:
        """Parse ``table [(cols)] [ON DELETE action] [ON UPDATE action]`` after REFERENCES."""
        ref_table = self._parse_identifier()
        ref_columns = self._parse_identifier_list() if self._check(TokenType.LPAREN) else list(columns)
        fk = ast.ForeignKeyDef(columns=columns, ref_table=ref_table, ref_columns=ref_columns)

        while self._match(TokenType.ON):
            if self._match(TokenType.DELETE):
                fk.on_delete = self._parse_referential_action()
            elif self._match(TokenType.UPDATE):
                fk.on_update = self._parse_referential_action()
            else:
                raise self._error("DELETE or UPDATE")
        return fk

    def _parse_referential_action(self) -> str:
        if self._match(TokenType.CASCADE):
            return "CASCADE"
        if self._match(TokenType.RESTRICT):
            return "RESTRICT"
        if self._match(TokenType.SET):
            if self._match(TokenType.NULL):
                return "SET NULL"
            self._expect(TokenType.DEFAULT)
            return "SET DEFAULT"
        if self._current.kind == TokenType.IDENTIFIER and self._current.text.upper() == "NO":
            self._advance()
            token = self._current
            if token.kind == TokenType.IDENTIFIER and token.text.upper() == "ACTION":
                self._advance()
                return "NO ACTION"
        raise self._error("referential action")

    # ----- ALTER / DROP -----

    def _parse_alter(self) -> ast.AlterTableStmt:
        self._expect(TokenType.ALTER)
        self._expect(TokenType.TABLE)
        table_name = self._parse_identifier()

        action = self._match(TokenType.ADD, TokenType.DROP, TokenType.MODIFY)
        if action is None:
            raise self._error("ADD, DROP or MODIFY")
        self._match(TokenType.COLUMN)
        column_name = self._parse_identifier()
        definition = self._capture_clause(*_CLAUSE_END)

        return ast.AlterTableStmt(
            table_name=table_name,
            action=action.kind.name,
            column_name=column_name,
            definition=definition
        )

    def _parse_drop(self) -> ast.DropTableStmt:
        self._expect(TokenType.DROP)
        self._expect(TokenType.TABLE)
        if_exists = False
        if self._match(TokenType.IF):
            self._expect(TokenType.EXISTS)
            if_exists = True
        return ast.DropTableStmt(table_name=self._parse_identifier(), if_exists=if_exists)


def parse_order_by(text: Optional[str]) -> List[ast.OrderByItem]:
    """
    Split captured ORDER BY text into keys.

    Example:
        parse_order_by("age DESC, name") -> [OrderByItem('age', True), OrderByItem('name')]
    """
    if not text:
        return []
    items = []
    for part in text.split(','):
        words = part.split()
        if words:
            items.append(ast.OrderByItem(
                column=words[0],
                descending=len(words) > 1 and words[1].upper() == "DESC"
            ))
    return items


class SQLParser:
    """
    SQL Parser facade.

    Provides simple interface for parsing SQL strings into AST nodes.
    """

    def parse(self, sql: str) -> ast.Statement:
        """
        Parse SQL string into AST node.

        Args:
            sql: SQL statement string

        Returns:
            AST node representing the statement

        Raises:
            ParseError: If SQL syntax is invalid
        """
        return Parser(Lexer(sql).tokenize()).parse()
