"""Stack-based virtual machine that compiles and runs Lox source."""

from __future__ import annotations

import json
import math
import sys
from enum import Enum
from typing import Optional, TextIO

from loxvm.chunk import Chunk, OpCode
from loxvm.compiler import CompileError, Compiler
from loxvm.value import format_value, is_falsey, is_number, is_string, values_equal


class InterpretResult(Enum):
    """Outcome of running a program; the value is the process exit code."""

    OK = 0
    COMPILE_ERROR = 65
    RUNTIME_ERROR = 70


class LoxRuntimeError(Exception):
    """Raised when a running program hits an error."""

    result = InterpretResult.RUNTIME_ERROR

    def __init__(self, message: str, line: int) -> None:
        super().__init__(message)
        self.message = message
        self.line = line


def _divide(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def _apply(op: OpCode, a: object, b: object) -> object:
    if op is OpCode.GREATER:
        return a > b  # type: ignore[operator]
    if op is OpCode.LESS:
        return a < b  # type: ignore[operator]
    if op is OpCode.ADD:
        if is_number(a):
            return float(a) + float(b)  # type: ignore[arg-type]
        return a + b  # type: ignore[operator]
    if not (is_number(a) and is_number(b)):
        raise TypeError("Invalid operations")
    x, y = float(a), float(b)  # type: ignore[arg-type]
    if op is OpCode.SUBTRACT:
        return x - y
    if op is OpCode.MULTIPLY:
        return x * y
    return _divide(x, y)


class VM:
    """Runs compiled chunks; globals survive between ``interpret`` calls."""

    def __init__(
        self,
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
        trace_execution: bool = False,
        print_code: bool = False,
    ) -> None:
        self._out = out
        self._err = err
        self.trace_execution = trace_execution
        self.print_code = print_code
        self.stack: list[object] = []
        self.globals: dict[str, object] = {}
        self._chunk = Chunk()
        self._ip = 0

    @property
    def out(self) -> TextIO:
        return self._out if self._out is not None else sys.stdout

    @property
    def err(self) -> TextIO:
        return self._err if self._err is not None else sys.stderr

    def reset_stack(self) -> None:
        """Discard every value on the stack."""
        self.stack.clear()

    def interpret(self, source: str) -> None:
        """Compile and run ``source``.

        Raises CompileError or LoxRuntimeError after reporting the problem
        on the error stream.
        """
        chunk = Chunk()
        try:
            Compiler(chunk, self.out if self.print_code else None).compile(source)
        except CompileError as exc:
            for message in exc.errors:
                print(message, file=self.err)
            raise
        self._chunk = chunk
        self._ip = 0
        self._run()

    # Execution.

    def _run(self) -> None:
        while True:
            if self.trace_execution:
                self._trace()
            op = OpCode(self._read_byte())
            match op:
                case OpCode.PRINT:
                    print(format_value(self.stack.pop()), file=self.out)
                case OpCode.JUMP:
                    offset = self._read_short()
                    self._ip += offset
                case OpCode.JUMP_IF_FALSE:
                    offset = self._read_short()
                    if is_falsey(self._peek(0)):
                        self._ip += offset
                case OpCode.RETURN:
                    return
                case OpCode.CONSTANT:
                    self.stack.append(self._read_constant())
                case OpCode.NIL:
                    self.stack.append(None)
                case OpCode.TRUE:
                    self.stack.append(True)
                case OpCode.FALSE:
                    self.stack.append(False)
                case OpCode.POP:
                    self.stack.pop()
                case OpCode.NEGATE:
                    if not is_number(self._peek(0)):
                        self._runtime_error("Operand must be a number")
                    self.stack.append(-float(self.stack.pop()))  # type: ignore[arg-type]
                case OpCode.DEFINE_GLOBAL:
                    name = self._read_name("DefineGlobal")
                    self.globals[name] = self.stack.pop()
                case OpCode.GET_GLOBAL:
                    name = self._read_name("GetGlobal")
                    if name not in self.globals:
                        self._runtime_error(f"Undefined variable '{name}'")
                    self.stack.append(self.globals[name])
                case OpCode.SET_GLOBAL:
                    name = self._read_name("SetGlobal")
                    if name not in self.globals:
                        self._runtime_error(f"Undefined variable '{name}'")
                    self.globals[name] = self._peek(0)
                case OpCode.GET_LOCAL:
                    slot = self._read_byte()
                    self.stack.append(self.stack[slot])
                case OpCode.SET_LOCAL:
                    slot = self._read_byte()
                    self.stack[slot] = self._peek(0)
                case OpCode.EQUAL:
                    b = self.stack.pop()
                    a = self.stack.pop()
                    self.stack.append(values_equal(a, b))
                case OpCode.NOT:
                    self.stack.append(is_falsey(self.stack.pop()))
                case _:
                    self._binary(op)

    def _binary(self, op: OpCode) -> None:
        b, a = self._peek(0), self._peek(1)
        both_strings = is_string(a) and is_string(b)
        both_numbers = is_number(a) and is_number(b)
        if not (both_strings or both_numbers):
            self._runtime_error("Operands must be two numbers or two strings.")
        self.stack.pop()
        self.stack.pop()
        self.stack.append(_apply(op, a, b))

    def _trace(self) -> None:
        slots = "".join(
            f"[ {json.dumps(format_value(slot), ensure_ascii=False)} ] "
            for slot in self.stack
        )
        print(" " * 10 + slots, file=self.out)
        text, _ = self._chunk.disassemble_instruction(self._ip)
        print(text, file=self.out)

    def _peek(self, distance: int) -> object:
        return self.stack[len(self.stack) - distance - 1]

    def _read_byte(self) -> int:
        byte = self._chunk.read(self._ip)
        self._ip += 1
        return byte

    def _read_short(self) -> int:
        self._ip += 2
        return self._chunk.jump_offset(self._ip - 2)

    def _read_constant(self) -> object:
        return self._chunk.constant(self._read_byte())

    def _read_name(self, what: str) -> str:
        name = self._read_constant()
        if not isinstance(name, str):
            raise TypeError(f"{what}: constant is not a string")
        return name

    def _runtime_error(self, message: str) -> None:
        line = self._chunk.line_at(self._ip - 1)
        print(message, file=self.err)
        print(f"[Line {line}] in script", file=self.err)
        self.reset_stack()
        raise LoxRuntimeError(message, line)