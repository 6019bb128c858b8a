import pytest

from loxvm.scanner import Scanner
from loxvm.tokens import TokenType


def kinds(source):
    return [token.kind for token in Scanner(source)]


def test_single_character_tokens():
    assert kinds("(){};,.-+/*") == [
        TokenType.LEFT_PAREN,
        TokenType.RIGHT_PAREN,
        TokenType.LEFT_BRACE,
        TokenType.RIGHT_BRACE,
        TokenType.SEMICOLON,
        TokenType.COMMA,
        TokenType.DOT,
        TokenType.MINUS,
        TokenType.PLUS,
        TokenType.SLASH,
        TokenType.STAR,
        TokenType.EOF,
    ]


def test_one_or_two_character_tokens():
    assert kinds("! != = == > >= < <=") == [
        TokenType.BANG,
        TokenType.BANG_EQUAL,
        TokenType.ASSIGN,
        TokenType.EQUAL,
        TokenType.GREATER,
        TokenType.GREATER_EQUAL,
        TokenType.LESS,
        TokenType.LESS_EQUAL,
        TokenType.EOF,
    ]


@pytest.mark.parametrize(
    "word, kind",
    [
        ("and", TokenType.AND),
        ("class", TokenType.CLASS),
        ("else", TokenType.ELSE),
        ("false", TokenType.FALSE),
        ("for", TokenType.FOR),
        ("fun", TokenType.FUN),
        ("if", TokenType.IF),
        ("nil", TokenType.NIL),
        ("or", TokenType.OR),
        ("print", TokenType.PRINT),
        ("return", TokenType.RETURN),
        ("super", TokenType.SUPER),
        ("this", TokenType.THIS),
        ("true", TokenType.TRUE),
        ("var", TokenType.VAR),
        ("while", TokenType.WHILE),
    ],
)
def test_keywords(word, kind):
    token = Scanner(word).scan_token()
    assert token.kind is kind
    assert token.lexeme == word


@pytest.mark.parametrize("word", ["f", "t", "andy", "classy", "_foo1", "variable"])
def test_identifiers(word):
    token = Scanner(word).scan_token()
    assert token.kind is TokenType.IDENTIFIER
    assert token.lexeme == word


def test_number_with_fraction():
    token = Scanner("12.5").scan_token()
    assert token.kind is TokenType.NUMBER
    assert token.lexeme == "12.5"


def test_trailing_dot_is_not_part_of_number():
    tokens = list(Scanner("1."))
    assert [t.kind for t in tokens] == [TokenType.NUMBER, TokenType.DOT, TokenType.EOF]
    assert tokens[0].lexeme == "1"


def test_string_lexeme_keeps_quotes():
    token = Scanner('"hi there"').scan_token()
    assert token.kind is TokenType.STRING
    assert token.lexeme == '"hi there"'


def test_unterminated_string():
    token = Scanner('"oops').scan_token()
    assert token.kind is TokenType.ERROR
    assert token.lexeme == "Unterminated string."


def test_unexpected_character():
    token = Scanner("@").scan_token()
    assert token.kind is TokenType.ERROR
    assert token.lexeme == "Unexpected charcter"


def test_lines_are_counted():
    tokens = list(Scanner("a\nb\n\nc"))
    assert [t.line for t in tokens[:3]] == [1, 2, 4]


def test_multiline_string_reports_closing_line():
    token = Scanner('"a\nb"').scan_token()
    assert token.kind is TokenType.STRING
    assert token.line == 2


def test_comments_are_skipped():
    tokens = list(Scanner("// comment\nprint 1; // more"))
    assert [t.kind for t in tokens] == [
        TokenType.PRINT,
        TokenType.NUMBER,
        TokenType.SEMICOLON,
        TokenType.EOF,
    ]
    assert tokens[0].line == 2


def test_lone_slash_at_end():
    assert kinds("/") == [TokenType.SLASH, TokenType.EOF]


def test_iteration_stops_after_single_eof():
    tokens = list(Scanner("var x;"))
    assert tokens[-1].kind is TokenType.EOF
    assert sum(t.kind is TokenType.EOF for t in tokens) == 1


def test_scan_after_end_keeps_returning_eof():
    scanner = Scanner("")
    assert scanner.scan_token().kind is TokenType.EOF
    assert scanner.scan_token().kind is TokenType.EOF