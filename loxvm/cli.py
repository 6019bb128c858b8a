"""Command-line entry point: run a script file or an interactive prompt."""

from __future__ import annotations

import sys
from collections.abc import Iterable
from typing import Optional, Sequence

from loxvm.compiler import CompileError
from loxvm.vm import VM, InterpretResult, LoxRuntimeError

USAGE = "Usage: lox-bytecode [path]"
EX_USAGE = 64
EX_NOFILE = 1


def repl(vm: VM, lines: Iterable[str]) -> None:
    """Run each line in ``vm`` until an empty line or end of input."""
    vm.out.write("> ")
    vm.out.flush()
    for raw in lines:
        line = raw.removesuffix("\n").removesuffix("\r")
        if not line:
            break
        try:
            vm.interpret(line)
        except (CompileError, LoxRuntimeError):
            pass
        vm.out.write("> ")
        vm.out.flush()


def run_file(vm: VM, path: str) -> int:
    """Run the script at ``path`` and return the process exit code.

    Raises OSError if the file cannot be read.
    """
    with open(path, encoding="utf-8") as handle:
        source = handle.read()
    try:
        vm.interpret(source)
    except CompileError:
        return InterpretResult.COMPILE_ERROR.value
    except LoxRuntimeError as exc:
        return exc.result.value
    return InterpretResult.OK.value


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the prompt with no arguments, or run the one given script."""
    args = list(sys.argv[1:] if argv is None else argv)
    vm = VM()
    if not args:
        repl(vm, sys.stdin)
        return 0
    if len(args) == 1:
        try:
            return run_file(vm, args[0])
        except OSError as exc:
            print(f"Could not run the file: {exc}", file=sys.stderr)
            return EX_NOFILE
    print(USAGE)
    return EX_USAGE


if __name__ == "__main__":
    sys.exit(main())