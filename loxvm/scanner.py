"""On-demand lexical scanner for Lox source text."""

from __future__ import annotations

from collections.abc import Iterator

from loxvm.tokens import Token, TokenType

_SINGLE = {
    "(": TokenType.LEFT_PAREN,
    ")": TokenType.RIGHT_PAREN,
    "{": TokenType.LEFT_BRACE,
    "}": TokenType.RIGHT_BRACE,
    ";": TokenType.SEMICOLON,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    "-": TokenType.MINUS,
    "+": TokenType.PLUS,
    "/": TokenType.SLASH,
    "*": TokenType.STAR,
}

# Character -> (kind when followed by '=', kind otherwise).
_WITH_EQUALS = {
    "!": (TokenType.BANG_EQUAL, TokenType.BANG),
    "=": (TokenType.EQUAL, TokenType.ASSIGN),
    ">": (TokenType.GREATER_EQUAL, TokenType.GREATER),
    "<": (TokenType.LESS_EQUAL, TokenType.LESS),
}

_KEYWORDS = {
    "and": TokenType.AND,
    "class": TokenType.CLASS,
    "else": TokenType.ELSE,
    "false": TokenType.FALSE,
    "for": TokenType.FOR,
    "fun": TokenType.FUN,
    "if": TokenType.IF,
    "nil": TokenType.NIL,
    "or": TokenType.OR,
    "print": TokenType.PRINT,
    "return": TokenType.RETURN,
    "super": TokenType.SUPER,
    "this": TokenType.THIS,
    "true": TokenType.TRUE,
    "var": TokenType.VAR,
    "while": TokenType.WHILE,
}

_DIGITS = "0123456789"
_END = "\0"


class Scanner:
    """Turns source text into tokens one at a time."""

    def __init__(self, source: str) -> None:
        self._source = source
        self._start = 0
        self._current = 0
        self._line = 1

    def __iter__(self) -> Iterator[Token]:
        """Yield tokens up to and including the first ``EOF`` token."""
        while True:
            token = self.scan_token()
            yield token
            if token.kind is TokenType.EOF:
                return

    def scan_token(self) -> Token:
        """Scan and return the next token; ``EOF`` once the input is used up."""
        self._skip_whitespace()
        self._start = self._current

        if self._at_end():
            return self._make(TokenType.EOF)

        c = self._advance()
        if c in _SINGLE:
            return self._make(_SINGLE[c])
        if c in _WITH_EQUALS:
            with_eq, plain = _WITH_EQUALS[c]
            return self._make(with_eq if self._match("=") else plain)
        if c == '"':
            return self._string()
        if c in _DIGITS:
            return self._number()
        if c.isalpha() or c == "_":
            return self._identifier()
        return self._error("Unexpected charcter")

    def _at_end(self) -> bool:
        return self._current >= len(self._source)

    def _advance(self) -> str:
        c = self._source[self._current]
        self._current += 1
        return c

    def _peek(self) -> str:
        return _END if self._at_end() else self._source[self._current]

    def _peek_next(self) -> str:
        nxt = self._current + 1
        return self._source[nxt] if nxt < len(self._source) else _END

    def _match(self, expected: str) -> bool:
        if self._at_end() or self._source[self._current] != expected:
            return False
        self._current += 1
        return True

    def _make(self, kind: TokenType) -> Token:
        return Token(kind, self._source[self._start:self._current], self._line)

    def _error(self, message: str) -> Token:
        return Token(TokenType.ERROR, message, self._line)

    def _skip_whitespace(self) -> None:
        while True:
            c = self._peek()
            if c in (" ", "\r", "\t"):
                self._advance()
            elif c == "\n":
                self._line += 1
                self._advance()
            elif c == "/" and self._peek_next() == "/":
                while self._peek() != "\n" and not self._at_end():
                    self._advance()
            else:
                return

    def _identifier(self) -> Token:
        while self._peek().isalnum() or self._peek() == "_":
            self._advance()
        text = self._source[self._start:self._current]
        return self._make(_KEYWORDS.get(text, TokenType.IDENTIFIER))

    def _number(self) -> Token:
        while self._peek() in _DIGITS and self._peek() != _END:
            self._advance()
        if self._peek() == "." and self._peek_next() in _DIGITS and self._peek_next() != _END:
            self._advance()
            while self._peek() in _DIGITS and self._peek() != _END:
                self._advance()
        return self._make(TokenType.NUMBER)

    def _string(self) -> Token:
        while self._peek() != '"' and not self._at_end():
            if self._peek() == "\n":
                self._line += 1
            self._advance()
        if self._at_end():
            return self._error("Unterminated string.")
        self._advance()
        return self._make(TokenType.STRING)