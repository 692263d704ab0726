"""Error kinds shared by the parser and the evaluator."""

from enum import Enum


class ErrorKind(Enum):
    PARSE = "parse error"
    EVAL = "evaluation error"
    CONVERSION = "conversion error"
    DIVISION = "division error"
    VARIABLE = "variable error"
    FUNCTION = "function error"
    TYPE = "type error"
    UNKNOWN = "unknown error"

    def __str__(self):
        return self.value


class CalcError(Exception):
    """A positioned, non-fatal calculator error.

    The parser collects these in a list instead of raising them; the
    engine surfaces the first one as an Error value.
    """

    def __init__(self, kind: ErrorKind, message: str, pos: int = -1, line: int = -1):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.pos = pos
        self.line = line

    def __str__(self):
        text = f"{self.kind}: {self.message}"
        if self.line >= 0:
            text += f" (line {self.line})"
        if self.pos >= 0:
            text += f" (col {self.pos})"
        return text

    def __repr__(self):
        return f"CalcError({self.kind.name}, {self.message!r}, pos={self.pos})"

    def with_line(self, line: int) -> "CalcError":
        return CalcError(self.kind, self.message, self.pos, line)


def parse_error(message: str, pos: int = -1) -> CalcError:
    return CalcError(ErrorKind.PARSE, message, pos)


def eval_error(message: str) -> CalcError:
    return CalcError(ErrorKind.EVAL, message)


def conversion_error(message: str) -> CalcError:
    return CalcError(ErrorKind.CONVERSION, message)


def division_by_zero(operation: str = "division") -> CalcError:
    return CalcError(ErrorKind.DIVISION, f"{operation} by zero")


def undefined_variable(name: str) -> CalcError:
    return CalcError(ErrorKind.VARIABLE, f"undefined variable: {name}")


def unknown_function(name: str) -> CalcError:
    return CalcError(ErrorKind.FUNCTION, f"unknown function: {name}")


def function_error(message: str) -> CalcError:
    return CalcError(ErrorKind.FUNCTION, message)


def type_error(message: str) -> CalcError:
    return CalcError(ErrorKind.TYPE, message)
