"""Single-pass compiler from Lox source text to a bytecode chunk."""

from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, TextIO, Union

from loxvm.chunk import Chunk, OpCode
from loxvm.scanner import Scanner
from loxvm.tokens import Token, TokenType

MAX_LOCALS = 255
MAX_JUMP = 0xFFFF

PrintTarget = Union[bool, TextIO, None]


class CompileError(Exception):
    """Raised when the source has one or more compile errors.

    ``errors`` holds the reported messages in the order they were found.
    """

    def __init__(self, errors: list[str]) -> None:
        super().__init__("\n".join(errors))
        self.errors = errors


class _Precedence(IntEnum):
    NONE = 0
    ASSIGNMENT = 1  # =
    OR = 2  # or
    AND = 3  # and
    EQUALITY = 4  # == !=
    COMPARISON = 5  # < > <= >=
    TERM = 6  # + -
    FACTOR = 7  # * /
    UNARY = 8  # ! -
    CALL = 9  # . ()
    PRIMARY = 10

    def next(self) -> _Precedence:
        if self is _Precedence.PRIMARY:
            raise ValueError("no precedence above PRIMARY")
        return _Precedence(self + 1)


_ParseFn = Callable[["Compiler", bool], None]


@dataclass(frozen=True)
class _Rule:
    prefix: Optional[_ParseFn] = None
    infix: Optional[_ParseFn] = None
    precedence: _Precedence = _Precedence.NONE


@dataclass
class _Local:
    name: str
    depth: Optional[int]


_BINARY_OPS = {
    TokenType.PLUS: (OpCode.ADD,),
    TokenType.MINUS: (OpCode.SUBTRACT,),
    TokenType.STAR: (OpCode.MULTIPLY,),
    TokenType.SLASH: (OpCode.DIVIDE,),
    TokenType.BANG_EQUAL: (OpCode.EQUAL, OpCode.NOT),
    TokenType.EQUAL: (OpCode.EQUAL,),
    TokenType.GREATER: (OpCode.GREATER,),
    TokenType.GREATER_EQUAL: (OpCode.LESS, OpCode.NOT),
    TokenType.LESS: (OpCode.LESS,),
    TokenType.LESS_EQUAL: (OpCode.GREATER, OpCode.NOT),
}

_LITERAL_OPS = {
    TokenType.NIL: OpCode.NIL,
    TokenType.TRUE: OpCode.TRUE,
    TokenType.FALSE: OpCode.FALSE,
}

_STATEMENT_STARTS = frozenset({
    TokenType.CLASS, TokenType.FUN, TokenType.VAR, TokenType.FOR,
    TokenType.IF, TokenType.WHILE, TokenType.PRINT, TokenType.RETURN,
})


class Compiler:
    """Compiles one source text into the given chunk."""

    def __init__(self, chunk: Chunk, print_code: PrintTarget = None) -> None:
        self.chunk = chunk
        self._print_code = print_code
        self._scanner = Scanner("")
        self._current = Token()
        self._previous = Token()
        self._had_error = False
        self._panic_mode = False
        self._errors: list[str] = []
        self._locals: list[_Local] = []
        self._scope_depth = 0

    def compile(self, source: str) -> None:
        """Compile ``source`` into the chunk; raise CompileError on any error."""
        self._scanner = Scanner(source)
        self._advance()
        while not self._match(TokenType.EOF):
            self._declaration()
        self._end_compiler()
        if self._had_error:
            raise CompileError(list(self._errors))

    # Token handling.

    def _advance(self) -> None:
        self._previous = self._current
        while True:
            self._current = self._scanner.scan_token()
            if self._current.kind is not TokenType.ERROR:
                return
            self._error_at_current(self._current.lexeme)

    def _consume(self, kind: TokenType, message: str) -> None:
        if self._current.kind is kind:
            self._advance()
            return
        self._error_at_current(message)

    def _check(self, kind: TokenType) -> bool:
        return self._current.kind is kind

    def _match(self, kind: TokenType) -> bool:
        if not self._check(kind):
            return False
        self._advance()
        return True

    # Emitting bytecode.

    def _emit(self, *bytes_: int) -> None:
        for byte in bytes_:
            self.chunk.write(byte, self._previous.line)

    def _emit_jump(self, instruction: OpCode) -> int:
        self._emit(instruction, 0xFF, 0xFF)
        return len(self.chunk) - 2

    def _patch_jump(self, offset: int) -> None:
        jump = len(self.chunk) - offset - 2
        if jump > MAX_JUMP:
            self._error("Too mutch code to jump over.")
        self.chunk.write_at(offset, (jump >> 8) & 0xFF)
        self.chunk.write_at(offset + 1, jump & 0xFF)

    def _make_constant(self, value: object) -> int:
        index = self.chunk.add_constant(value)
        if index is None:
            self._error("Too many constants in one chunk")
            return 0
        return index

    def _emit_constant(self, value: object) -> None:
        self._emit(OpCode.CONSTANT, self._make_constant(value))

    def _end_compiler(self) -> None:
        self._emit(OpCode.RETURN)
        if self._print_code and not self._had_error:
            stream = sys.stdout if self._print_code is True else self._print_code
            print(self.chunk.disassemble("code"), file=stream)

    # Scopes and variables.

    def _begin_scope(self) -> None:
        self._scope_depth += 1

    def _end_scope(self) -> None:
        self._scope_depth -= 1
        while self._locals and (self._locals[-1].depth or 0) > self._scope_depth:
            self._emit(OpCode.POP)
            self._locals.pop()

    def _identifier_constant(self, name: Token) -> int:
        return self._make_constant(name.lexeme)

    def _resolve_local(self, name: Token) -> Optional[int]:
        count = len(self._locals)
        for index in reversed(range(count)):
            local = self._locals[index]
            if local.name == name.lexeme:
                if local.depth is None:
                    self._error("Cannot read local variable in its own initializer.")
                return count - 1 - index
        return None

    def _add_local(self, name: Token) -> None:
        if len(self._locals) >= MAX_LOCALS:
            self._error("Too many local variables in function.")
            return
        self._locals.append(_Local(name.lexeme, None))

    def _declare_variable(self) -> None:
        if self._scope_depth == 0:
            return
        name = self._previous
        for local in reversed(self._locals):
            if local.depth is not None and local.depth < self._scope_depth:
                return
            if local.name == name.lexeme:
                self._error("Already a variable with this name in this scope.")
        self._add_local(name)

    def _parse_variable(self, message: str) -> int:
        self._consume(TokenType.IDENTIFIER, message)
        self._declare_variable()
        if self._scope_depth == 0:
            return self._identifier_constant(self._previous)
        return 0

    def _mark_initialized(self) -> None:
        self._locals[-1].depth = self._scope_depth

    def _define_variable(self, global_index: int) -> None:
        if self._scope_depth == 0:
            self._emit(OpCode.DEFINE_GLOBAL, global_index)
        else:
            self._mark_initialized()

    def _named_variable(self, name: Token, can_assign: bool) -> None:
        slot = self._resolve_local(name)
        if slot is not None:
            arg, get_op, set_op = slot, OpCode.GET_LOCAL, OpCode.SET_LOCAL
        else:
            arg = self._identifier_constant(name)
            get_op, set_op = OpCode.GET_GLOBAL, OpCode.SET_GLOBAL

        if can_assign and self._match(TokenType.ASSIGN):
            self._expression()
            self._emit(set_op, arg)
        else:
            self._emit(get_op, arg)

    # Expressions.

    def _parse_precedence(self, precedence: _Precedence) -> None:
        self._advance()
        prefix = _rule(self._previous.kind).prefix
        if prefix is None:
            self._error("Expect Expression.")
            return
        can_assign = precedence <= _Precedence.ASSIGNMENT
        prefix(self, can_assign)
        while precedence <= _rule(self._current.kind).precedence:
            self._advance()
            infix = _rule(self._previous.kind).infix
            if infix is not None:
                infix(self, can_assign)
            if can_assign and self._match(TokenType.ASSIGN):
                self._error("Invalid assigment target")

    def _expression(self) -> None:
        self._parse_precedence(_Precedence.ASSIGNMENT)

    def _binary(self, _can_assign: bool) -> None:
        operator = self._previous.kind
        self._parse_precedence(_rule(operator).precedence.next())
        self._emit(*_BINARY_OPS[operator])

    def _unary(self, _can_assign: bool) -> None:
        operator = self._previous.kind
        self._parse_precedence(_Precedence.UNARY)
        self._emit(OpCode.NEGATE if operator is TokenType.MINUS else OpCode.NOT)

    def _literal(self, _can_assign: bool) -> None:
        self._emit(_LITERAL_OPS[self._previous.kind])

    def _grouping(self, _can_assign: bool) -> None:
        self._expression()
        self._consume(TokenType.RIGHT_PAREN, "Expect ')' after expresssion")

    def _number(self, _can_assign: bool) -> None:
        self._emit_constant(float(self._previous.lexeme))

    def _string(self, _can_assign: bool) -> None:
        self._emit_constant(self._previous.lexeme[1:-1])

    def _variable(self, can_assign: bool) -> None:
        self._named_variable(self._previous, can_assign)

    def _and(self, _can_assign: bool) -> None:
        end_jump = self._emit_jump(OpCode.JUMP_IF_FALSE)
        self._emit(OpCode.POP)
        self._parse_precedence(_Precedence.AND)
        self._patch_jump(end_jump)

    def _or(self, _can_assign: bool) -> None:
        else_jump = self._emit_jump(OpCode.JUMP_IF_FALSE)
        end_jump = self._emit_jump(OpCode.JUMP)
        self._patch_jump(else_jump)
        self._emit(OpCode.POP)
        self._parse_precedence(_Precedence.OR)
        self._patch_jump(end_jump)

    # Statements.

    def _declaration(self) -> None:
        if self._match(TokenType.VAR):
            self._var_declaration()
        else:
            self._statement()
        if self._panic_mode:
            self._synchronize()

    def _var_declaration(self) -> None:
        global_index = self._parse_variable("Expect variable name.")
        if self._match(TokenType.ASSIGN):
            self._expression()
        else:
            self._emit(OpCode.NIL)
        self._consume(TokenType.SEMICOLON, "Expect ';' after variable declaration.")
        self._define_variable(global_index)

    def _statement(self) -> None:
        if self._match(TokenType.PRINT):
            self._print_statement()
        elif self._match(TokenType.IF):
            self._if_statement()
        elif self._match(TokenType.LEFT_BRACE):
            self._begin_scope()
            self._block()
            self._end_scope()
        else:
            self._expression_statement()

    def _print_statement(self) -> None:
        self._expression()
        self._consume(TokenType.SEMICOLON, "Expect ';' after value.")
        self._emit(OpCode.PRINT)

    def _expression_statement(self) -> None:
        self._expression()
        self._consume(TokenType.SEMICOLON, "Expect ';' after expression.")
        self._emit(OpCode.POP)

    def _if_statement(self) -> None:
        self._consume(TokenType.LEFT_PAREN, "Expect '(' after 'if'.")
        self._expression()
        self._consume(TokenType.RIGHT_PAREN, "Expect ')' after condition.")

        then_jump = self._emit_jump(OpCode.JUMP_IF_FALSE)
        self._emit(OpCode.POP)
        self._statement()
        else_jump = self._emit_jump(OpCode.JUMP)

        self._patch_jump(then_jump)
        self._emit(OpCode.POP)
        if self._match(TokenType.ELSE):
            self._statement()
        self._patch_jump(else_jump)

    def _block(self) -> None:
        while not self._check(TokenType.RIGHT_BRACE) and not self._check(TokenType.EOF):
            self._declaration()
        self._consume(TokenType.RIGHT_BRACE, "Excpect '}' after block")

    def _synchronize(self) -> None:
        self._panic_mode = False
        while self._current.kind is not TokenType.EOF:
            if self._previous.kind is TokenType.SEMICOLON:
                return
            if self._current.kind in _STATEMENT_STARTS:
                return
            self._advance()

    # Error reporting.

    def _error_at_current(self, message: str) -> None:
        self._error_at(self._current, message)

    def _error(self, message: str) -> None:
        self._error_at(self._previous, message)

    def _error_at(self, token: Token, message: str) -> None:
        if self._panic_mode:
            return
        self._panic_mode = True
        if token.kind is TokenType.EOF:
            where = " at end"
        elif token.kind is TokenType.ERROR:
            where = ""
        else:
            where = f" at '{token.lexeme}'"
        self._errors.append(f"[line {token.line}] Error{where}: {message}")
        self._had_error = True


_NO_RULE = _Rule()

# The LESS_EQUAL entry is deliberately the last one assigned for that token:
# it parses as a short-circuiting 'or', and the 'and'/'or' keywords have no rule.
_RULES: dict[TokenType, _Rule] = {
    TokenType.LEFT_PAREN: _Rule(Compiler._grouping, None, _Precedence.NONE),
    TokenType.MINUS: _Rule(Compiler._unary, Compiler._binary, _Precedence.TERM),
    TokenType.PLUS: _Rule(None, Compiler._binary, _Precedence.TERM),
    TokenType.SLASH: _Rule(None, Compiler._binary, _Precedence.FACTOR),
    TokenType.STAR: _Rule(None, Compiler._binary, _Precedence.FACTOR),
    TokenType.NUMBER: _Rule(Compiler._number),
    TokenType.NIL: _Rule(Compiler._literal),
    TokenType.TRUE: _Rule(Compiler._literal),
    TokenType.FALSE: _Rule(Compiler._literal),
    TokenType.BANG: _Rule(Compiler._unary),
    TokenType.BANG_EQUAL: _Rule(None, Compiler._binary, _Precedence.EQUALITY),
    TokenType.EQUAL: _Rule(None, Compiler._binary, _Precedence.EQUALITY),
    TokenType.GREATER: _Rule(None, Compiler._binary, _Precedence.COMPARISON),
    TokenType.GREATER_EQUAL: _Rule(None, Compiler._binary, _Precedence.COMPARISON),
    TokenType.LESS: _Rule(None, Compiler._binary, _Precedence.COMPARISON),
    TokenType.LESS_EQUAL: _Rule(None, Compiler._or, _Precedence.OR),
    TokenType.STRING: _Rule(Compiler._string),
    TokenType.IDENTIFIER: _Rule(Compiler._variable),
}


def _rule(kind: TokenType) -> _Rule:
    return _RULES.get(kind, _NO_RULE)


def compile_source(source: str, print_code: PrintTarget = None) -> Chunk:
    """Compile ``source`` into a fresh chunk and return it."""
    chunk = Chunk()
    Compiler(chunk, print_code).compile(source)
    return chunk