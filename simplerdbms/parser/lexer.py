"""
Hand-written SQL lexer.

Turns SQL text into a list of tokens in one pass. The lexer never fails:
characters it does not recognize become UNKNOWN tokens, which the parser
then rejects with a positioned error.
"""

from typing import List

from .token import KEYWORDS, Token, TokenType


_SINGLE_CHAR_TOKENS = {
    '=': TokenType.EQUALS,
    '+': TokenType.PLUS,
    '-': TokenType.MINUS,
    '*': TokenType.ASTERISK,
    '/': TokenType.DIVIDE,
    '%': TokenType.PERCENT,
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    ',': TokenType.COMMA,
    ';': TokenType.SEMICOLON,
    '.': TokenType.DOT,
}


class Lexer:
    """
    Tokenizes one SQL string.

    Build a new Lexer per input; ``tokenize`` consumes it.

    Rules:
    - Whitespace and ``--`` comments (to end of line) are skipped
    - Words are matched case-insensitively against the keyword table,
      anything else is an IDENTIFIER
    - A NUMBER is a digit followed by any run of digits and dots, so
      ``1.2.3`` is one token and is rejected later by type validation
    - Strings use single or double quotes; a backslash escapes the closing
      quote character only, and an unterminated string runs to the end
    """

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.line = 1
        self.column = 1

    def tokenize(self) -> List[Token]:
        """
        Produce every token, ending with END_OF_FILE.

        Returns:
            List of tokens in source order
        """
        tokens = []
        while True:
            self._skip_whitespace_and_comments()
            if self.pos >= len(self.text):
                tokens.append(Token(TokenType.END_OF_FILE, "", self.line, self.column))
                return tokens
            tokens.append(self._next_token())

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        return self.text[idx] if idx < len(self.text) else ''

    def _advance(self) -> str:
        ch = self.text[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _skip_whitespace_and_comments(self) -> None:
        while self.pos < len(self.text):
            ch = self._peek()
            if ch.isspace():
                self._advance()
            elif ch == '-' and self._peek(1) == '-':
                while self.pos < len(self.text) and self._peek() != '\n':
                    self._advance()
            else:
                return

    def _next_token(self) -> Token:
        line, column = self.line, self.column
        ch = self._peek()

        if ch.isalpha() or ch == '_':
            word = self._read_while(lambda c: c.isalnum() or c == '_')
            kind = KEYWORDS.get(word.upper(), TokenType.IDENTIFIER)
            return Token(kind, word, line, column)

        if ch.isdigit():
            number = self._read_while(lambda c: c.isdigit() or c == '.')
            return Token(TokenType.NUMBER, number, line, column)

        if ch in ("'", '"'):
            return Token(TokenType.STRING, self._read_string(), line, column)

        two = self.text[self.pos:self.pos + 2]
        if two in ('!=', '<>'):
            self._advance()
            self._advance()
            return Token(TokenType.NOT_EQUALS, two, line, column)
        if two == '<=':
            self._advance()
            self._advance()
            return Token(TokenType.LESS_EQUAL, two, line, column)
        if two == '>=':
            self._advance()
            self._advance()
            return Token(TokenType.GREATER_EQUAL, two, line, column)

        self._advance()
        if ch == '<':
            return Token(TokenType.LESS, ch, line, column)
        if ch == '>':
            return Token(TokenType.GREATER, ch, line, column)
        return Token(_SINGLE_CHAR_TOKENS.get(ch, TokenType.UNKNOWN), ch, line, column)

    def _read_while(self, predicate) -> str:
        start = self.pos
        while self.pos < len(self.text) and predicate(self._peek()):
            self._advance()
        return self.text[start:self.pos]

    def _read_string(self) -> str:
        quote = self._advance()
        chars = []
        while self.pos < len(self.text):
            ch = self._peek()
            if ch == '\\' and self._peek(1) == quote:
                self._advance()
                chars.append(self._advance())
            elif ch == quote:
                self._advance()
                break
            else:
                chars.append(self._advance())
        return ''.join(chars)


def tokenize(text: str) -> List[Token]:
    """Convenience wrapper: tokenize text with a fresh Lexer."""
    return Lexer(text).tokenize()
