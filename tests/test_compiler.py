import io

import pytest

from loxvm.chunk import Chunk, OpCode
from loxvm.compiler import CompileError, Compiler, compile_source


def code_of(source):
    return list(compile_source(source).code)


def errors_of(source):
    with pytest.raises(CompileError) as info:
        compile_source(source)
    return info.value.errors


def test_print_constant():
    chunk = compile_source("print 1;")
    assert list(chunk.code) == [OpCode.CONSTANT, 0, OpCode.PRINT, OpCode.RETURN]
    assert chunk.constants == [1.0]


def test_precedence_of_arithmetic():
    assert code_of("print 1 + 2 * 3;") == [
        OpCode.CONSTANT, 0, OpCode.CONSTANT, 1, OpCode.CONSTANT, 2,
        OpCode.MULTIPLY, OpCode.ADD, OpCode.PRINT, OpCode.RETURN,
    ]


def test_grouping_changes_order():
    assert code_of("print (1 + 2) * 3;") == [
        OpCode.CONSTANT, 0, OpCode.CONSTANT, 1, OpCode.ADD,
        OpCode.CONSTANT, 2, OpCode.MULTIPLY, OpCode.PRINT, OpCode.RETURN,
    ]


def test_negate_expression_statement():
    assert code_of("-1;") == [OpCode.CONSTANT, 0, OpCode.NEGATE, OpCode.POP, OpCode.RETURN]


def test_not_and_literals():
    assert code_of("!true;") == [OpCode.TRUE, OpCode.NOT, OpCode.POP, OpCode.RETURN]
    assert code_of("nil;") == [OpCode.NIL, OpCode.POP, OpCode.RETURN]
    assert code_of("false;") == [OpCode.FALSE, OpCode.POP, OpCode.RETURN]


@pytest.mark.parametrize(
    "operator, ops",
    [
        ("!=", [OpCode.EQUAL, OpCode.NOT]),
        ("==", [OpCode.EQUAL]),
        (">", [OpCode.GREATER]),
        (">=", [OpCode.LESS, OpCode.NOT]),
        ("<", [OpCode.LESS]),
        ("-", [OpCode.SUBTRACT]),
        ("/", [OpCode.DIVIDE]),
    ],
)
def test_binary_operators(operator, ops):
    code = code_of(f"1 {operator} 2;")
    assert code == [OpCode.CONSTANT, 0, OpCode.CONSTANT, 1, *ops, OpCode.POP, OpCode.RETURN]


def test_less_equal_compiles_as_short_circuit():
    code = code_of("1 <= 2;")
    assert OpCode.JUMP_IF_FALSE in code
    assert OpCode.JUMP in code
    assert OpCode.GREATER not in code


def test_string_constant_strips_quotes():
    chunk = compile_source('print "hi";')
    assert chunk.constants == ["hi"]


def test_global_definition():
    chunk = compile_source("var a = 1;")
    assert list(chunk.code) == [OpCode.CONSTANT, 1, OpCode.DEFINE_GLOBAL, 0, OpCode.RETURN]
    assert chunk.constants == ["a", 1.0]


def test_global_without_initializer_is_nil():
    assert code_of("var a;") == [OpCode.NIL, OpCode.DEFINE_GLOBAL, 0, OpCode.RETURN]


def test_global_assignment_and_read():
    chunk = compile_source("a = 2;")
    assert list(chunk.code) == [OpCode.CONSTANT, 1, OpCode.SET_GLOBAL, 0, OpCode.POP, OpCode.RETURN]
    assert code_of("print a;") == [OpCode.GET_GLOBAL, 0, OpCode.PRINT, OpCode.RETURN]


def test_local_slots_counted_from_top():
    assert code_of("{ var a = 1; var b = 2; print a; }") == [
        OpCode.CONSTANT, 0, OpCode.CONSTANT, 1, OpCode.GET_LOCAL, 1,
        OpCode.PRINT, OpCode.POP, OpCode.POP, OpCode.RETURN,
    ]


def test_local_assignment():
    assert code_of("{ var a; a = 3; }") == [
        OpCode.NIL, OpCode.CONSTANT, 0, OpCode.SET_LOCAL, 0, OpCode.POP,
        OpCode.POP, OpCode.RETURN,
    ]


def test_if_else_jumps_land_on_expected_instructions():
    chunk = compile_source("if (true) print 1; else print 2;")
    code = list(chunk.code)
    assert code[0] == OpCode.TRUE
    assert code[1] == OpCode.JUMP_IF_FALSE
    then_target = 1 + 3 + chunk.jump_offset(2)
    assert code[then_target] == OpCode.POP
    jump_at = code.index(OpCode.JUMP)
    assert code[then_target - 3] == OpCode.JUMP
    else_target = jump_at + 3 + chunk.jump_offset(jump_at + 1)
    assert else_target == len(chunk) - 1
    assert code[else_target] == OpCode.RETURN


def test_lines_follow_source():
    chunk = compile_source("print 1;\nprint 2;")
    assert chunk.line_at(0) == 1
    assert chunk.line_at(len(chunk) - 2) == 2
    assert len(chunk.lines) == len(chunk.code)


def test_every_chunk_ends_with_return():
    for source in ["", "print 1;", "{ var x = 1; }", "var y;"]:
        chunk = compile_source(source)
        assert chunk.read(len(chunk) - 1) == OpCode.RETURN


def test_missing_semicolon_at_end():
    assert errors_of("print 1") == ["[line 1] Error at end: Expect ';' after value."]


def test_missing_expression():
    assert errors_of("1 +;") == ["[line 1] Error at ';': Expect Expression."]


def test_unterminated_string():
    assert errors_of('"abc') == ["[line 1] Error: Unterminated string."]


def test_unexpected_character():
    errors = errors_of("print 1 # 2;")
    assert errors[0] == "[line 1] Error: Unexpected charcter"


def test_local_in_own_initializer():
    assert errors_of("{ var a = a; }") == [
        "[line 1] Error at 'a': Cannot read local variable in its own initializer."
    ]


def test_redeclared_local():
    assert errors_of("{ var a = 1; var a = 2; }") == [
        "[line 1] Error at 'a': Already a variable with this name in this scope."
    ]


def test_invalid_assignment_target():
    errors = errors_of("a + b = c;")
    assert errors[0] == "[line 1] Error at '=': Invalid assigment target"


def test_and_keyword_has_no_rule():
    assert errors_of("true and false;") == [
        "[line 1] Error at 'and': Expect ';' after expression."
    ]


def test_recovers_after_error_and_reports_each_statement():
    errors = errors_of("print ;\nprint ;")
    assert errors == [
        "[line 1] Error at ';': Expect Expression.",
        "[line 2] Error at ';': Expect Expression.",
    ]


def test_too_many_constants():
    source = " ".join(f"print {n};" for n in range(257))
    errors = errors_of(source)
    assert len(errors) == 1
    assert errors[0].endswith("Error at '256': Too many constants in one chunk")


def test_compile_error_message_joins_errors():
    with pytest.raises(CompileError) as info:
        compile_source("print ;\nprint ;")
    assert str(info.value) == "\n".join(info.value.errors)


def test_print_code_writes_listing():
    out = io.StringIO()
    compile_source("print 1;", print_code=out)
    text = out.getvalue()
    assert text.startswith("== code ==")
    assert "OP_PRINT" in text
    assert "OP_RETURN" in text


def test_print_code_silent_on_error():
    out = io.StringIO()
    with pytest.raises(CompileError):
        compile_source("print", print_code=out)
    assert out.getvalue() == ""


def test_compiler_writes_into_given_chunk():
    chunk = Chunk()
    Compiler(chunk).compile("print nil;")
    assert list(chunk.code) == [OpCode.NIL, OpCode.PRINT, OpCode.RETURN]