"""Syntax tree for one calculator line.

Nodes are frozen dataclasses; the evaluator dispatches on their class.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from numcalc.crypto import Crypto
from numcalc.currency import Currency
from numcalc.metal import Metal
from numcalc.units import Unit


class BinaryOp(Enum):
    ADD = ("+", 1)
    SUB = ("-", 1)
    MUL = ("*", 2)
    DIV = ("/", 2)
    MOD = ("%", 2)
    POW = ("^", 3)

    def __init__(self, symbol, precedence):
        self.symbol = symbol
        self.precedence = precedence

    @property
    def right_assoc(self) -> bool:
        return self is BinaryOp.POW

    def __str__(self):
        return self.symbol


class UnaryOp(Enum):
    NEG = "-"
    POS = "+"

    def __str__(self):
        return self.value


def _num(n: float) -> str:
    return str(int(n)) if n == int(n) else repr(n)


# --- Literals ---


@dataclass(frozen=True)
class NumberLit:
    value: float
    raw: str = ""

    def __str__(self):
        return _num(self.value)


@dataclass(frozen=True)
class PercentLit:
    value: float  # decimal fraction, 15% -> 0.15
    raw: str = ""

    def __str__(self):
        return f"{_num(self.value * 100)}%"


@dataclass(frozen=True)
class CurrencyLit:
    value: float
    currency: Currency
    raw: str = ""

    def __str__(self):
        return f"{_num(self.value)} {self.currency.code}"


@dataclass(frozen=True)
class UnitLit:
    value: float
    unit: Unit
    raw: str = ""

    def __str__(self):
        return f"{_num(self.value)} {self.unit.code}"


@dataclass(frozen=True)
class MetalLit:
    value: float
    metal: Metal
    raw: str = ""

    def __str__(self):
        return f"{_num(self.value)} {self.metal.code}"


@dataclass(frozen=True)
class CryptoLit:
    value: float
    crypto: Crypto
    raw: str = ""

    def __str__(self):
        return f"{_num(self.value)} {self.crypto.code}"


# --- Compound expressions ---


@dataclass(frozen=True)
class Identifier:
    name: str

    def __str__(self):
        return self.name


@dataclass(frozen=True)
class BinaryExpr:
    left: "Expr"
    op: BinaryOp
    right: "Expr"

    def __str__(self):
        return f"({self.left} {self.op} {self.right})"


@dataclass(frozen=True)
class UnaryExpr:
    op: UnaryOp
    operand: "Expr"

    def __str__(self):
        return f"({self.op}{self.operand})"


@dataclass(frozen=True)
class PercentOfExpr:
    percent: PercentLit
    expr: "Expr"

    def __str__(self):
        return f"{self.percent} of {self.expr}"


@dataclass(frozen=True)
class ConversionExpr:
    expr: "Expr"
    target: str

    def __str__(self):
        return f"{self.expr} in {self.target}"


@dataclass(frozen=True)
class CallExpr:
    name: str
    args: Tuple["Expr", ...] = ()

    def __str__(self):
        return f"{self.name}({', '.join(str(a) for a in self.args)})"


@dataclass(frozen=True)
class GroupExpr:
    expr: "Expr"

    def __str__(self):
        return f"({self.expr})"


@dataclass(frozen=True)
class ContinuationExpr:
    """``+ 50`` applied to the previous result."""

    op: BinaryOp
    expr: "Expr"

    def __str__(self):
        return f"{self.op} {self.expr}"


@dataclass(frozen=True)
class ConversionContinuation:
    """``in EUR`` applied to the previous result."""

    target: str

    def __str__(self):
        return f"in {self.target}"


Literal = Union[NumberLit, PercentLit, CurrencyLit, UnitLit, MetalLit, CryptoLit]

Expr = Union[
    NumberLit,
    PercentLit,
    CurrencyLit,
    UnitLit,
    MetalLit,
    CryptoLit,
    Identifier,
    BinaryExpr,
    UnaryExpr,
    PercentOfExpr,
    ConversionExpr,
    CallExpr,
    GroupExpr,
    ContinuationExpr,
    ConversionContinuation,
]

LITERAL_TYPES = (NumberLit, PercentLit, CurrencyLit, UnitLit, MetalLit, CryptoLit)


# --- Statements ---


@dataclass(frozen=True)
class EmptyStmt:
    def __str__(self):
        return ""


@dataclass(frozen=True)
class CommentStmt:
    text: str

    def __str__(self):
        return self.text


@dataclass(frozen=True)
class ExprStmt:
    expr: Expr

    def __str__(self):
        return str(self.expr)


@dataclass(frozen=True)
class AssignStmt:
    name: str
    expr: Expr

    def __str__(self):
        return f"{self.name} = {self.expr}"


Stmt = Union[EmptyStmt, CommentStmt, ExprStmt, AssignStmt]


@dataclass(frozen=True)
class Line:
    stmt: Optional[Stmt] = None
    comment: Optional[str] = None
    raw: str = ""

    def __str__(self):
        text = str(self.stmt) if self.stmt is not None else ""
        if self.comment and not isinstance(self.stmt, CommentStmt):
            text = f"{text} {self.comment}".strip()
        return text


def is_literal(expr: Expr) -> bool:
    return isinstance(expr, LITERAL_TYPES)


def is_continuation(expr: Expr) -> bool:
    return isinstance(expr, (ContinuationExpr, ConversionContinuation))


def identifiers(expr: Expr) -> List[str]:
    """Names referenced by an expression, in source order, without duplicates."""
    found: List[str] = []

    def walk(node):
        if isinstance(node, Identifier):
            if node.name not in found:
                found.append(node.name)
        elif isinstance(node, BinaryExpr):
            walk(node.left)
            walk(node.right)
        elif isinstance(node, (UnaryExpr,)):
            walk(node.operand)
        elif isinstance(node, PercentOfExpr):
            walk(node.expr)
        elif isinstance(node, (ConversionExpr, GroupExpr, ContinuationExpr)):
            walk(node.expr)
        elif isinstance(node, CallExpr):
            for arg in node.args:
                walk(arg)

    walk(expr)
    return found
