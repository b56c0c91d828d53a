"""
Unit tests for the SQL lexer.
"""

from simplerdbms.parser.lexer import Lexer, tokenize
from simplerdbms.parser.token import TokenType


def kinds(text):
    return [t.kind for t in tokenize(text)]


class TestLexer:
    """Test tokenization."""

    def test_keywords_are_case_insensitive(self):
        """Test that keywords match regardless of case."""
        assert kinds("select FROM Where") == [
            TokenType.SELECT, TokenType.FROM, TokenType.WHERE, TokenType.END_OF_FILE
        ]

    def test_identifier_keeps_spelling(self):
        """Test that identifiers keep their original text."""
        tokens = tokenize("UserName")
        assert tokens[0].kind == TokenType.IDENTIFIER
        assert tokens[0].text == "UserName"

    def test_always_ends_with_eof(self):
        """Test that empty input yields only END_OF_FILE."""
        tokens = Lexer("").tokenize()
        assert len(tokens) == 1
        assert tokens[0].kind == TokenType.END_OF_FILE

    def test_numbers(self):
        """Test integer and decimal numbers."""
        tokens = tokenize("42 3.14")
        assert [(t.kind, t.text) for t in tokens[:2]] == [
            (TokenType.NUMBER, "42"), (TokenType.NUMBER, "3.14")
        ]

    def test_number_with_several_dots_is_one_token(self):
        """Test that a malformed number stays a single NUMBER token."""
        tokens = tokenize("1.2.3")
        assert tokens[0].kind == TokenType.NUMBER
        assert tokens[0].text == "1.2.3"
        assert tokens[1].kind == TokenType.END_OF_FILE

    def test_strings_are_unquoted(self):
        """Test single- and double-quoted strings."""
        tokens = tokenize("'hello' \"world\"")
        assert tokens[0].kind == TokenType.STRING
        assert tokens[0].text == "hello"
        assert tokens[1].text == "world"

    def test_escaped_quote(self):
        """Test that a backslash escapes the closing quote."""
        tokens = tokenize(r"'it\'s'")
        assert tokens[0].text == "it's"

    def test_unterminated_string_runs_to_end(self):
        """Test that an unterminated string consumes the rest of the input."""
        tokens = tokenize("'abc def")
        assert tokens[0].kind == TokenType.STRING
        assert tokens[0].text == "abc def"
        assert tokens[1].kind == TokenType.END_OF_FILE

    def test_operators(self):
        """Test one- and two-character operators."""
        assert kinds("= != <> < <= > >=")[:-1] == [
            TokenType.EQUALS, TokenType.NOT_EQUALS, TokenType.NOT_EQUALS,
            TokenType.LESS, TokenType.LESS_EQUAL, TokenType.GREATER,
            TokenType.GREATER_EQUAL,
        ]

    def test_punctuation(self):
        """Test punctuation and arithmetic symbols."""
        assert kinds("( ) , ; . * + - / %")[:-1] == [
            TokenType.LPAREN, TokenType.RPAREN, TokenType.COMMA,
            TokenType.SEMICOLON, TokenType.DOT, TokenType.ASTERISK,
            TokenType.PLUS, TokenType.MINUS, TokenType.DIVIDE, TokenType.PERCENT,
        ]

    def test_unknown_character(self):
        """Test that unrecognized characters become UNKNOWN tokens."""
        tokens = tokenize("@")
        assert tokens[0].kind == TokenType.UNKNOWN
        assert tokens[0].text == "@"

    def test_comments_are_skipped(self):
        """Test that -- comments run to end of line."""
        assert kinds("SELECT -- everything\n*")[:-1] == [TokenType.SELECT, TokenType.ASTERISK]

    def test_positions(self):
        """Test 1-based line and column tracking."""
        tokens = tokenize("SELECT\n  name")
        assert (tokens[0].line, tokens[0].column) == (1, 1)
        assert (tokens[1].line, tokens[1].column) == (2, 3)

    def test_literal_keywords(self):
        """Test TRUE, FALSE and NULL keywords."""
        assert kinds("true FALSE null")[:-1] == [TokenType.TRUE, TokenType.FALSE, TokenType.NULL]

    def test_type_keywords(self):
        """Test that type names lex as their own kinds."""
        assert kinds("INT VARCHAR DECIMAL")[:-1] == [
            TokenType.INT, TokenType.VARCHAR, TokenType.DECIMAL
        ]
