"""Bytecode chunks: instructions, line table, constant pool and disassembly."""

from __future__ import annotations

from enum import IntEnum

from loxvm.value import format_value

MAX_CONSTANTS = 256


class OpCode(IntEnum):
    """Instruction opcodes; the numeric values are the encoded bytes."""

    CONSTANT = 0
    RETURN = 1
    NEGATE = 2
    ADD = 3
    SUBTRACT = 4
    MULTIPLY = 5
    DIVIDE = 6
    NIL = 7
    TRUE = 8
    FALSE = 9
    NOT = 10
    EQUAL = 11
    GREATER = 12
    LESS = 13
    PRINT = 14
    POP = 15
    DEFINE_GLOBAL = 16
    GET_GLOBAL = 17
    SET_GLOBAL = 18
    GET_LOCAL = 19
    SET_LOCAL = 20
    JUMP_IF_FALSE = 21
    JUMP = 22


_SIMPLE = {
    OpCode.RETURN, OpCode.NEGATE, OpCode.ADD, OpCode.SUBTRACT, OpCode.MULTIPLY,
    OpCode.DIVIDE, OpCode.NIL, OpCode.TRUE, OpCode.FALSE, OpCode.NOT,
    OpCode.EQUAL, OpCode.GREATER, OpCode.LESS, OpCode.PRINT, OpCode.POP,
}
_CONSTANT = {OpCode.CONSTANT, OpCode.DEFINE_GLOBAL, OpCode.GET_GLOBAL, OpCode.SET_GLOBAL}
_BYTE = {OpCode.GET_LOCAL, OpCode.SET_LOCAL}
_JUMP = {OpCode.JUMP_IF_FALSE, OpCode.JUMP}


def _op_name(op: OpCode) -> str:
    return f"OP_{op.name}"


class Chunk:
    """A sequence of bytecode with a source line for every byte."""

    def __init__(self) -> None:
        self.code = bytearray()
        self.lines: list[int] = []
        self.constants: list[object] = []

    def __len__(self) -> int:
        return len(self.lines)

    def __str__(self) -> str:
        return str(list(self.code))

    def write(self, byte: int, line: int) -> None:
        """Append one byte (or opcode) produced by source ``line``."""
        self.code.append(int(byte))
        self.lines.append(line)

    def write_at(self, offset: int, byte: int) -> None:
        """Overwrite the byte at ``offset``."""
        self.code[offset] = int(byte)

    def read(self, offset: int) -> int:
        return self.code[offset]

    def line_at(self, offset: int) -> int:
        return self.lines[offset]

    def add_constant(self, value: object) -> int | None:
        """Store ``value``; return its index, or None if it does not fit a byte."""
        self.constants.append(value)
        index = len(self.constants) - 1
        return index if index < MAX_CONSTANTS else None

    def constant(self, index: int) -> object:
        return self.constants[index]

    def jump_offset(self, offset: int) -> int:
        """Decode the big-endian 16-bit operand starting at ``offset``."""
        return (self.code[offset] << 8) | self.code[offset + 1]

    def disassemble(self, name: str) -> str:
        """Return a listing of every instruction under a ``== name ==`` header."""
        lines = [f"== {name} =="]
        offset = 0
        while offset < len(self.code):
            text, offset = self.disassemble_instruction(offset)
            lines.append(text)
        return "\n".join(lines)

    def disassemble_instruction(self, offset: int) -> tuple[str, int]:
        """Return the listing line for one instruction and the next offset.

        Raises ValueError for a byte that is not an opcode.
        """
        if offset > 0 and self.lines[offset] == self.lines[offset - 1]:
            prefix = f"{offset:04d}    | "
        else:
            prefix = f"{offset:04d} {self.lines[offset]:4d} "

        op = OpCode(self.code[offset])
        name = _op_name(op)
        if op in _SIMPLE:
            return prefix + name, offset + 1
        if op in _CONSTANT:
            index = self.code[offset + 1]
            shown = format_value(self.constants[index])
            return f"{prefix}{name:<16} {index:4d} '{shown}'", offset + 2
        if op in _BYTE:
            slot = self.code[offset + 1]
            return f"{prefix}{name:<16} {slot:4d}", offset + 2
        if op in _JUMP:
            target = offset + 3 + self.jump_offset(offset + 1)
            return f"{prefix}{name:<16} {offset:4d} -> {target}", offset + 3
        raise ValueError(f"unhandled opcode {op!r}")