"""Tests for calculator error values and their kinds."""

from numcalc.errors import (
    CalcError,
    ErrorKind,
    conversion_error,
    division_by_zero,
    eval_error,
    function_error,
    parse_error,
    type_error,
    undefined_variable,
    unknown_function,
)


def test_helpers_set_kind_and_message():
    cases = [
        (parse_error("expected ')'", 4), ErrorKind.PARSE, "expected ')'"),
        (eval_error("invalid result"), ErrorKind.EVAL, "invalid result"),
        (conversion_error("unknown target: foo"), ErrorKind.CONVERSION, "unknown target: foo"),
        (division_by_zero(), ErrorKind.DIVISION, "division by zero"),
        (division_by_zero("modulo"), ErrorKind.DIVISION, "modulo by zero"),
        (undefined_variable("x"), ErrorKind.VARIABLE, "undefined variable: x"),
        (unknown_function("foo"), ErrorKind.FUNCTION, "unknown function: foo"),
        (function_error("pow expects 2 arguments, got 1"), ErrorKind.FUNCTION, "pow expects 2 arguments, got 1"),
        (type_error("cannot combine"), ErrorKind.TYPE, "cannot combine"),
    ]
    for err, kind, message in cases:
        assert isinstance(err, CalcError)
        assert err.kind == kind
        assert err.message == message


def test_str_includes_position_and_line():
    err = parse_error("unexpected character '@'", 2)
    assert str(err) == "parse error: unexpected character '@' (col 2)"
    placed = err.with_line(3)
    assert placed.line == 3
    assert placed.pos == 2
    assert err.line == -1
    assert str(placed) == "parse error: unexpected character '@' (line 3) (col 2)"
    assert str(eval_error("boom")) == "evaluation error: boom"
