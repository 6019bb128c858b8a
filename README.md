# loxvm

A small bytecode compiler and stack-based virtual machine for a subset of the
Lox scripting language. Source text is scanned into tokens, compiled in a
single pass into a chunk of bytecode, and run by the virtual machine.

## What the language covers

- Numbers (floating point), strings, `true`, `false` and `nil`
- Arithmetic: `+ - * /` (`+` also joins two strings), unary `-` and `!`
- Comparison and equality: `< > >= == !=` (`<` and `>` also compare two strings)
- `print` statements and expression statements
- Global variables with `var`, and block-scoped locals inside `{ ... }`
- `if` / `else`
- `//` line comments

```lox
var greeting = "hello";
{
  var name = "world";
  print greeting + " " + name;
}
if (1 < 2) print "yes"; else print "no";
```

Only `nil` and `false` are falsey. Numbers print without a trailing `.0`
(`print 3;` shows `3`, `print 1 / 0;` shows `inf`).

## What it does not do

- The keywords `fun`, `return`, `class`, `this`, `super`, `while` and `for`
  are recognised by the scanner but the compiler has no statements or
  expressions for them: there are no functions, classes or loops.
- The `and` and `or` keywords cannot be used in expressions.
- `<=` does not compare: the compiler treats it as a short-circuiting "or"
  of its two operands (the left value if it is truthy, otherwise the right).
- A chunk holds at most 256 constants and a scope at most 255 locals.

## Installation

```
pip install .
```

## Command line

Start an interactive prompt; each line is compiled and run on its own, with
global variables kept between lines. An empty line or end of input ends it:

```
loxvm
```

Run a script:

```
loxvm script.lox
```

Exit status: `0` on success, `65` for a compile error, `70` for a runtime
error, `64` when given more than one argument (after printing
`Usage: lox-bytecode [path]`), and `1` when the script file cannot be read.

Compile errors are reported on standard error as
`[line N] Error at 'x': message`; runtime errors as the message followed by
`[Line N] in script`.

## Library use

```python
import io

from loxvm.compiler import CompileError
from loxvm.vm import VM, LoxRuntimeError

out = io.StringIO()
vm = VM(out=out)
vm.interpret("var x = 2; print x * 21;")
assert out.getvalue() == "42\n"

try:
    vm.interpret("print -true;")
except LoxRuntimeError as exc:
    print(exc.message, exc.line, exc.result)
```

`VM.interpret` returns nothing on success. After writing its diagnostics to
the error stream it raises `loxvm.compiler.CompileError` (whose `errors`
attribute lists every reported message) or `loxvm.vm.LoxRuntimeError` (with
`message`, `line` and `result`, which is `InterpretResult.RUNTIME_ERROR`).
`InterpretResult` values are the exit codes `0`, `65` and `70`.
`VM.reset_stack` empties the value stack; `VM.globals` holds the global
variables.

`VM` takes optional `out` and `err` streams (standard output and standard
error by default), and two flags: `print_code` writes a disassembly of each
compiled chunk to `out`, and `trace_execution` writes the stack and the
current instruction before every step.

Lower-level pieces:

- `loxvm.scanner.Scanner(source)` produces `loxvm.tokens.Token` values via
  `scan_token()`, or by iterating over it up to and including the `EOF` token.
- `loxvm.compiler.compile_source(source, print_code=None)` returns a
  `loxvm.chunk.Chunk`; `print_code` may be `True` (standard output) or a stream.
- `Chunk.disassemble(name)` returns the listing as a string, and
  `Chunk.disassemble_instruction(offset)` returns one line and the next offset.
- `loxvm.value` has `format_value`, `is_falsey`, `is_number`, `is_string`
  and `values_equal`.

## Running the tests

```
pip install .[test]
pytest
```