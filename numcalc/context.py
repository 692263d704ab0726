"""Mutable session state shared by successive line evaluations."""

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from numcalc import config
from numcalc.rates import BASE_CURRENCY, RateCache, RateLookup, value_for_code
from numcalc.units import UnitType, convert as convert_unit
from numcalc.value import Value, ValueKind

logger = logging.getLogger(__name__)

PREVIOUS_NAMES = ("_", "ans")
TOTAL_NAME = "total"
RESERVED_NAMES = PREVIOUS_NAMES + (TOTAL_NAME,)


def is_reserved(name: str) -> bool:
    return name.lower() in RESERVED_NAMES


@dataclass
class LineResult:
    raw: str
    value: Value
    consumed: bool = False  # folded into a later continuation line
    continuation: bool = False
    assigned: Optional[str] = None


@dataclass(frozen=True)
class ContextSnapshot:
    variables: Dict[str, Value]
    previous: Value
    lines: Tuple[LineResult, ...]
    precision: int
    strict: bool
    total: Value = field(default_factory=Value.empty)


class Context:
    def __init__(self, rates: Optional[RateLookup] = None):
        self._lock = threading.RLock()
        self.rates: RateLookup = rates if rates is not None else RateCache()
        self._variables: Dict[str, Value] = {}
        self._previous = Value.empty()
        self._lines: List[LineResult] = []
        self._precision = config.DEFAULT_PRECISION
        self._strict = False

    # --- Variables ---
    def get_variable(self, name: str) -> Optional[Value]:
        lower = name.lower()
        with self._lock:
            if lower in PREVIOUS_NAMES:
                return self._previous if not self._previous.is_empty() else None
            if lower == TOTAL_NAME:
                return self.total()
            if name in self._variables:
                return self._variables[name]
            for key, value in self._variables.items():
                if key.lower() == lower:
                    return value
            return None

    def set_variable(self, name: str, value: Value) -> bool:
        """Store under the exact name; reserved names and error values are refused."""
        if is_reserved(name) or value.is_error():
            return False
        with self._lock:
            self._variables[name] = value
        logger.debug(f"Variable {name} = {value}")
        return True

    def delete_variable(self, name: str) -> bool:
        with self._lock:
            return self._variables.pop(name, None) is not None

    def has_variable(self, name: str) -> bool:
        return self.get_variable(name) is not None

    def variables(self) -> Dict[str, Value]:
        with self._lock:
            return dict(self._variables)

    def variable_names(self) -> List[str]:
        with self._lock:
            return sorted(self._variables)

    # --- Previous result ---
    @property
    def previous(self) -> Value:
        with self._lock:
            return self._previous

    def set_previous(self, value: Value):
        if not value.is_valid():
            return
        with self._lock:
            self._previous = value

    # --- Line history ---
    def add_line_result(self, result: LineResult):
        with self._lock:
            self._lines.append(result)

    def mark_last_consumed(self) -> bool:
        """Flag the latest non-empty, non-error line as folded into a continuation."""
        with self._lock:
            for result in reversed(self._lines):
                if result.value.is_valid():
                    result.consumed = True
                    return True
            return False

    def lines(self) -> List[LineResult]:
        with self._lock:
            return [replace(r) for r in self._lines]

    def last_line(self) -> Optional[LineResult]:
        with self._lock:
            return replace(self._lines[-1]) if self._lines else None

    # --- Totals ---
    def total(self) -> Value:
        """Sum of every non-consumed line carrying an amount."""
        with self._lock:
            amount = 0.0
            for result in self._lines:
                value = result.value
                if result.consumed or not value.is_valid():
                    continue
                amount += value.number
            return Value.of_number(amount)

    def grouped_totals(self) -> List[Value]:
        """Totals per kind: money through USD, units per unit type, plain numbers."""
        with self._lock:
            values = [r.value for r in self._lines if not r.consumed and r.value.is_valid()]

        money_usd = 0.0
        has_money = False
        money_target = None
        stranded: Dict[str, Value] = {}
        unit_totals: Dict[UnitType, Value] = {}
        plain = 0.0

        for value in values:
            if value.is_rated():
                usd = self.rates.convert(value.number, value.code(), BASE_CURRENCY)
                if usd is None:
                    code = value.code()
                    prior = stranded.get(code)
                    stranded[code] = value if prior is None else prior.with_amount(prior.number + value.number)
                    continue
                money_usd += usd
                has_money = True
                if value.kind == ValueKind.CURRENCY or money_target is None:
                    money_target = value.code()
            elif value.kind == ValueKind.UNIT:
                prior = unit_totals.get(value.unit.type)
                if prior is None:
                    unit_totals[value.unit.type] = value
                    continue
                # Report in the most recently used unit of the type
                moved = convert_unit(prior.number, prior.unit, value.unit)
                if moved is None:
                    continue
                unit_totals[value.unit.type] = value.with_amount(moved + value.number)
            elif value.kind == ValueKind.NUMBER:
                plain += value.number

        totals: List[Value] = []
        if has_money:
            target = money_target or BASE_CURRENCY
            amount = self.rates.convert(money_usd, BASE_CURRENCY, target)
            if amount is None:
                target, amount = BASE_CURRENCY, money_usd
            totals.append(value_for_code(amount, target))
        totals.extend(stranded.values())
        totals.extend(unit_totals.values())
        if plain != 0:
            totals.append(Value.of_number(plain))
        return totals

    # --- Settings ---
    @property
    def precision(self) -> int:
        with self._lock:
            return self._precision

    def set_precision(self, precision: int):
        if not isinstance(precision, int) or not 0 <= precision <= config.MAX_PRECISION:
            raise ValueError(f"precision must be between 0 and {config.MAX_PRECISION}, got {precision!r}")
        with self._lock:
            self._precision = precision

    @property
    def strict(self) -> bool:
        with self._lock:
            return self._strict

    def set_strict(self, strict: bool):
        with self._lock:
            self._strict = bool(strict)

    # --- Lifecycle ---
    def clear(self):
        """Forget variables, previous result and history. Rates are untouched."""
        with self._lock:
            self._variables = {}
            self._previous = Value.empty()
            self._lines = []

    def clear_variables(self):
        with self._lock:
            self._variables = {}

    def clear_lines(self):
        with self._lock:
            self._lines = []
            self._previous = Value.empty()

    def clone(self) -> "Context":
        """Independent copy of the session that shares the same rate source."""
        with self._lock:
            other = Context(self.rates)
            other._variables = dict(self._variables)
            other._previous = self._previous
            other._lines = [replace(r) for r in self._lines]
            other._precision = self._precision
            other._strict = self._strict
        return other

    def snapshot(self) -> ContextSnapshot:
        with self._lock:
            return ContextSnapshot(
                variables=dict(self._variables),
                previous=self._previous,
                lines=tuple(replace(r) for r in self._lines),
                precision=self._precision,
                strict=self._strict,
                total=self.total(),
            )
