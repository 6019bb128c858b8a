"""Scanner, bytecode compiler and virtual machine for a subset of Lox."""

__version__ = "0.1.0"
__all__ = ["tokens", "scanner", "value", "chunk", "compiler", "vm", "cli"]