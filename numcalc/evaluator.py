"""Evaluates parsed lines against a ``Context``.

Failures never raise: every problem becomes an Error value that
short-circuits through the rest of the expression.
"""

import logging
import math
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Callable, Dict, List, Optional, Sequence

from numcalc.context import Context, LineResult, is_reserved
from numcalc.crypto import lookup_crypto
from numcalc.currency import lookup_currency
from numcalc.errors import (
    CalcError,
    conversion_error,
    division_by_zero,
    eval_error,
    function_error,
    type_error,
    undefined_variable,
    unknown_function,
)
from numcalc.metal import lookup_metal
from numcalc.nodes import (
    AssignStmt,
    BinaryExpr,
    BinaryOp,
    CallExpr,
    CommentStmt,
    ContinuationExpr,
    ConversionContinuation,
    ConversionExpr,
    CryptoLit,
    CurrencyLit,
    EmptyStmt,
    Expr,
    ExprStmt,
    GroupExpr,
    Identifier,
    Line,
    MetalLit,
    NumberLit,
    PercentLit,
    PercentOfExpr,
    UnaryExpr,
    UnaryOp,
    UnitLit,
    is_continuation,
)
from numcalc.units import lookup_unit, convert as convert_unit
from numcalc.value import Value, ValueKind

logger = logging.getLogger(__name__)


def _error(err: CalcError) -> Value:
    return Value.of_error(err.message, err.kind)


def _checked(value: Value) -> Value:
    if value.is_valid() and not math.isfinite(value.number):
        return _error(eval_error("invalid result"))
    return value


def _round_half_away(x: float, digits: int = 0) -> float:
    try:
        quantum = Decimal(1).scaleb(-digits)
        return float(Decimal(repr(x)).quantize(quantum, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return x


UNARY_FUNCTIONS: Dict[str, Callable[[float], float]] = {
    "abs": abs,
    "sqrt": math.sqrt,
    "floor": math.floor,
    "ceil": math.ceil,
    "log": math.log10,
    "log10": math.log10,
    "ln": math.log,
    "exp": math.exp,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "asin": math.asin,
    "acos": math.acos,
    "atan": math.atan,
}

AGGREGATES = ("sum", "avg", "average", "mean", "min", "max", "count")

FUNCTION_NAMES = sorted(set(UNARY_FUNCTIONS) | set(AGGREGATES) | {"round", "pow"})


class Evaluator:
    def __init__(self, ctx: Context):
        self.ctx = ctx

    # ---------- lines ----------
    def eval_line(self, line: Line, raw: Optional[str] = None) -> Value:
        """Evaluate one line and record it in the context history."""
        raw = line.raw if raw is None else raw
        stmt = line.stmt
        assigned = None
        continuation = False

        if stmt is None or isinstance(stmt, (EmptyStmt, CommentStmt)):
            value = Value.empty()
        elif isinstance(stmt, AssignStmt):
            value = self.eval_assign(stmt)
            if value.is_valid():
                assigned = stmt.name
        elif isinstance(stmt, ExprStmt):
            value = self.eval_expr(stmt.expr)
            continuation = is_continuation(stmt.expr)
            if continuation and value.is_valid():
                self.ctx.mark_last_consumed()
        else:
            value = _error(eval_error(f"unsupported statement {type(stmt).__name__}"))

        self.ctx.add_line_result(LineResult(raw, value, continuation=continuation, assigned=assigned))
        self.ctx.set_previous(value)
        return value

    def eval_assign(self, stmt: AssignStmt) -> Value:
        if is_reserved(stmt.name):
            return _error(type_error(f"cannot assign to reserved name '{stmt.name}'"))
        value = self.eval_expr(stmt.expr)
        if value.is_valid():
            self.ctx.set_variable(stmt.name, value)
        return value

    # ---------- expressions ----------
    def eval_expr(self, expr: Expr) -> Value:
        if isinstance(expr, NumberLit):
            return Value.of_number(expr.value)
        if isinstance(expr, PercentLit):
            return Value.of_percentage(expr.value)
        if isinstance(expr, CurrencyLit):
            return Value.of_currency(expr.value, expr.currency)
        if isinstance(expr, UnitLit):
            return Value.of_unit(expr.value, expr.unit)
        if isinstance(expr, MetalLit):
            return Value.of_metal(expr.value, expr.metal)
        if isinstance(expr, CryptoLit):
            return Value.of_crypto(expr.value, expr.crypto)
        if isinstance(expr, Identifier):
            return self.eval_identifier(expr.name)
        if isinstance(expr, BinaryExpr):
            left = self.eval_expr(expr.left)
            if left.is_error():
                return left
            return apply_binary(expr.op, left, self.eval_expr(expr.right), self.ctx.rates)
        if isinstance(expr, UnaryExpr):
            operand = self.eval_expr(expr.operand)
            if expr.op == UnaryOp.NEG:
                return operand.negate()
            return operand
        if isinstance(expr, PercentOfExpr):
            return self.eval_percent_of(expr)
        if isinstance(expr, ConversionExpr):
            return self.convert(self.eval_expr(expr.expr), expr.target)
        if isinstance(expr, CallExpr):
            return self.eval_call(expr)
        if isinstance(expr, GroupExpr):
            return self.eval_expr(expr.expr)
        if isinstance(expr, ContinuationExpr):
            return self.eval_continuation(expr)
        if isinstance(expr, ConversionContinuation):
            previous = self.ctx.previous
            if previous.is_empty():
                return _error(eval_error("no previous value to convert"))
            return self.convert(previous, expr.target)
        return _error(eval_error(f"unsupported expression {type(expr).__name__}"))

    def eval_identifier(self, name: str) -> Value:
        value = self.ctx.get_variable(name)
        if value is not None:
            return value
        if self.ctx.strict:
            return _error(undefined_variable(name))
        return Value.of_number(0)

    def eval_percent_of(self, expr: PercentOfExpr) -> Value:
        pct = self.eval_expr(expr.percent)
        base = self.eval_expr(expr.expr)
        if base.is_error():
            return base
        if base.is_empty():
            base = Value.of_number(0)
        return _checked(base.with_amount(base.number * pct.number))

    def eval_continuation(self, expr: ContinuationExpr) -> Value:
        operand = self.eval_expr(expr.expr)
        previous = self.ctx.previous
        if previous.is_empty():
            # nothing to continue from: "-$5" is just a negative amount
            return operand.negate() if expr.op == BinaryOp.SUB else operand
        return apply_binary(expr.op, previous, operand, self.ctx.rates)

    # ---------- conversion ----------
    def convert(self, value: Value, target: str) -> Value:
        if value.is_error():
            return value
        if not target:
            return _error(conversion_error("missing conversion target"))
        if value.is_empty():
            value = Value.of_number(0)

        if value.kind == ValueKind.UNIT:
            unit = lookup_unit(target)
            if unit is not None:
                amount = convert_unit(value.number, value.unit, unit)
                if amount is None:
                    return _error(
                        conversion_error(f"cannot convert {value.unit.code} to {unit.code} (incompatible types)")
                    )
                return Value.of_unit(amount, unit)

        typed = resolve_target(target)
        if typed is None:
            return _error(conversion_error(f"unknown target: {target}"))

        if value.kind == ValueKind.NUMBER:
            return typed.with_amount(value.number)

        if value.is_rated() and typed.is_rated():
            converted = self.ctx.rates.convert_value(value, typed.code())
            if converted is None:
                logger.debug(f"No rate path from {value.code()} to {typed.code()}")
                return _error(conversion_error(f"no rate available for conversion to {typed.code()}"))
            return converted

        return _error(conversion_error(f"cannot convert to {target} (incompatible types)"))

    # ---------- functions ----------
    def eval_call(self, expr: CallExpr) -> Value:
        name = expr.name.lower()
        args: List[Value] = []
        for arg in expr.args:
            value = self.eval_expr(arg)
            if value.is_error():
                return value
            args.append(value if not value.is_empty() else Value.of_number(0))

        if name in AGGREGATES:
            return aggregate(name, args)
        if name in UNARY_FUNCTIONS:
            if len(args) != 1:
                return _error(function_error(f"{name} expects 1 argument, got {len(args)}"))
            return call_unary(UNARY_FUNCTIONS[name], args[0].number)
        if name == "round":
            if len(args) not in (1, 2):
                return _error(function_error(f"round expects 1 or 2 arguments, got {len(args)}"))
            digits = int(args[1].number) if len(args) == 2 else 0
            return _checked(Value.of_number(_round_half_away(args[0].number, digits)))
        if name == "pow":
            if len(args) != 2:
                return _error(function_error(f"pow expects 2 arguments, got {len(args)}"))
            return power(args[0].number, args[1].number)
        return _error(unknown_function(expr.name))


def resolve_target(target: str) -> Optional[Value]:
    """Zero-amount value of the type named by a conversion target."""
    currency = lookup_currency(target)
    if currency is not None:
        return Value.of_currency(0, currency)
    crypto = lookup_crypto(target)
    if crypto is not None:
        return Value.of_crypto(0, crypto)
    metal = lookup_metal(target)
    if metal is not None:
        return Value.of_metal(0, metal)
    unit = lookup_unit(target)
    if unit is not None:
        return Value.of_unit(0, unit)
    return None


def call_unary(fn: Callable[[float], float], x: float) -> Value:
    try:
        return _checked(Value.of_number(fn(x)))
    except (ValueError, OverflowError):
        return _error(function_error("invalid result"))


def power(base: float, exponent: float) -> Value:
    try:
        return _checked(Value.of_number(math.pow(base, exponent)))
    except OverflowError:
        return _error(eval_error("calculation resulted in overflow"))
    except ValueError:
        return _error(eval_error("invalid result"))


def aggregate(name: str, args: Sequence[Value]) -> Value:
    if name == "count":
        return Value.of_number(len(args))
    if name == "sum":
        if not args:
            return Value.of_number(0)
        return _checked(args[0].with_amount(math.fsum(a.number for a in args)))
    if not args:
        return _error(function_error(f"{name} requires at least one argument"))
    numbers = [a.number for a in args]
    if name in ("avg", "average", "mean"):
        return _checked(args[0].with_amount(math.fsum(numbers) / len(numbers)))
    if name == "min":
        return args[0].with_amount(min(numbers))
    return args[0].with_amount(max(numbers))


# ---------- operator laws ----------


def apply_binary(op: BinaryOp, left: Value, right: Value, rates) -> Value:
    if left.is_error():
        return left
    if right.is_error():
        return right
    if left.is_empty():
        left = Value.of_number(0)
    if right.is_empty():
        right = Value.of_number(0)

    if op == BinaryOp.POW:
        return power(left.number, right.number)

    if op in (BinaryOp.ADD, BinaryOp.SUB):
        if right.kind == ValueKind.PERCENTAGE:
            # $100 + 15% -> $115
            sign = 1 if op == BinaryOp.ADD else -1
            return _checked(left.with_amount(left.number * (1 + sign * right.number)))
        return _add_sub(op, left, right, rates)

    return _mul_div(op, left, right)


def _arith(op: BinaryOp, a: float, b: float) -> float:
    if op == BinaryOp.ADD:
        return a + b
    if op == BinaryOp.SUB:
        return a - b
    if op == BinaryOp.MUL:
        return a * b
    if op == BinaryOp.DIV:
        return a / b
    return math.fmod(a, b)


def _add_sub(op: BinaryOp, left: Value, right: Value, rates) -> Value:
    if left.is_number():
        return _checked(right.with_amount(_arith(op, left.number, right.number)))
    if right.is_number() or left.can_combine_with(right):
        return _checked(left.with_amount(_arith(op, left.number, right.number)))

    if left.kind == ValueKind.UNIT and right.kind == ValueKind.UNIT:
        amount = convert_unit(right.number, right.unit, left.unit)
        if amount is None:
            return _error(type_error(f"incompatible units: {left.unit.code} and {right.unit.code}"))
        return _checked(left.with_amount(_arith(op, left.number, amount)))

    if left.is_rated() and right.is_rated():
        # The higher-ranked type wins; ties keep the left operand's type
        if right.priority > left.priority:
            converted = rates.convert_value(left, right.code())
            if converted is None:
                return _error(conversion_error(f"no rate available for {left.code()} to {right.code()}"))
            return _checked(right.with_amount(_arith(op, converted.number, right.number)))
        converted = rates.convert_value(right, left.code())
        if converted is None:
            return _error(conversion_error(f"no rate available for {right.code()} to {left.code()}"))
        return _checked(left.with_amount(_arith(op, left.number, converted.number)))

    return _error(type_error(f"cannot combine {left.kind} and {right.kind}"))


def _mul_div(op: BinaryOp, left: Value, right: Value) -> Value:
    if op in (BinaryOp.DIV, BinaryOp.MOD) and right.number == 0:
        if op == BinaryOp.DIV:
            return _error(division_by_zero())
        return _error(division_by_zero("modulo"))

    try:
        amount = _arith(op, left.number, right.number)
    except OverflowError:
        return _error(eval_error("calculation resulted in overflow"))

    if left.is_number():
        result = right.with_amount(amount)
    elif right.is_number():
        result = left.with_amount(amount)
    else:
        # No compound units: two typed operands degrade to a plain number,
        # percentages included ($100 * 15% -> 15)
        result = Value.of_number(amount)
    return _checked(result)
