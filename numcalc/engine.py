"""Public entry point used by the CLI, the web API and library callers."""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from numcalc import config
from numcalc.context import Context, ContextSnapshot, LineResult
from numcalc.crypto import Crypto, lookup_crypto
from numcalc.currency import Currency, lookup_currency
from numcalc.errors import CalcError, ErrorKind
from numcalc.evaluator import FUNCTION_NAMES, Evaluator
from numcalc.metal import Metal, lookup_metal
from numcalc.nodes import Line
from numcalc.parser import parse_line
from numcalc.rates import RateCache
from numcalc.units import Unit, lookup_unit
from numcalc.value import Value

logger = logging.getLogger(__name__)


class Engine:
    def __init__(self, rates: Optional[RateCache] = None, ctx: Optional[Context] = None):
        if rates is None:
            rates = ctx.rates if ctx is not None else RateCache()
        self.rates = rates
        self.ctx = ctx if ctx is not None else Context(self.rates)

    # --- Evaluation ---
    def eval(self, text: str) -> Value:
        """Evaluate one line against the session."""
        line, errors = parse_line(text)
        if errors:
            logger.warning(f"Parse error in {text!r}: {errors[0]}")
            value = Value.of_error(errors[0].message, ErrorKind.PARSE)
            self.ctx.add_line_result(LineResult(text, value))
            return value
        return Evaluator(self.ctx).eval_line(line, text)

    def eval_lines(self, lines: List[str]) -> List[Value]:
        return [self.eval(line) for line in lines]

    def eval_document(self, text: str) -> List[Value]:
        return self.eval_lines(text.split("\n"))

    def eval_file(self, path: Union[str, Path]) -> List[Value]:
        with open(path, "r", encoding="utf-8") as f:
            return self.eval_document(f.read())

    def eval_preview(self, text: str) -> Value:
        """Evaluate on a throwaway copy of the session."""
        preview = Engine(self.rates, self.ctx.clone())
        value = preview.eval(text)
        logger.debug(f"Preview {text!r} -> {value}")
        return value

    def format(self, value: Value) -> str:
        return value.format(self.ctx.precision)

    # --- Parsing ---
    def parse(self, text: str) -> Tuple[Line, List[CalcError]]:
        return parse_line(text)

    def is_valid_expression(self, text: str) -> bool:
        _, errors = parse_line(text)
        return not errors

    # --- Session state ---
    def get_variable(self, name: str) -> Optional[Value]:
        return self.ctx.get_variable(name)

    def set_variable(self, name: str, value: Value) -> bool:
        return self.ctx.set_variable(name, value)

    def delete_variable(self, name: str) -> bool:
        return self.ctx.delete_variable(name)

    def variables(self) -> Dict[str, Value]:
        return self.ctx.variables()

    def lines(self) -> List[LineResult]:
        return self.ctx.lines()

    def total(self) -> Value:
        return self.ctx.total()

    def grouped_totals(self) -> List[Value]:
        return self.ctx.grouped_totals()

    def snapshot(self) -> ContextSnapshot:
        return self.ctx.snapshot()

    def set_precision(self, precision: int):
        self.ctx.set_precision(precision)

    @property
    def precision(self) -> int:
        return self.ctx.precision

    def set_strict(self, strict: bool):
        self.ctx.set_strict(strict)

    @property
    def strict(self) -> bool:
        return self.ctx.strict

    def clear(self):
        self.ctx.clear()

    def clear_variables(self):
        self.ctx.clear_variables()

    def clear_lines(self):
        self.ctx.clear_lines()

    def clone(self) -> "Engine":
        return Engine(self.rates, self.ctx.clone())

    # --- Rates ---
    def set_rate(self, from_code: str, to_code: str, rate: float):
        self.rates.set_rate(from_code, to_code, rate)

    def get_rate(self, from_code: str, to_code: str) -> Optional[float]:
        return self.rates.get_rate(from_code, to_code)

    def convert(self, amount: float, from_code: str, to_code: str) -> Optional[float]:
        return self.rates.convert(amount, from_code, to_code)

    def apply_raw_rates(self, raw: Dict[str, float]):
        self.rates.apply_raw_rates(raw)

    def save_rates(self, path: Union[str, Path, None] = None) -> Path:
        return self.rates.save_to_file(path)

    def load_rates(self, path: Union[str, Path, None] = None) -> bool:
        return self.rates.load_from_file(path)

    def rates_valid(self) -> bool:
        return self.rates.is_valid()

    # --- Registry lookups ---
    @staticmethod
    def lookup_currency(name: str) -> Optional[Currency]:
        return lookup_currency(name)

    @staticmethod
    def lookup_crypto(name: str) -> Optional[Crypto]:
        return lookup_crypto(name)

    @staticmethod
    def lookup_metal(name: str) -> Optional[Metal]:
        return lookup_metal(name)

    @staticmethod
    def lookup_unit(name: str) -> Optional[Unit]:
        return lookup_unit(name)

    @staticmethod
    def function_names() -> List[str]:
        return list(FUNCTION_NAMES)


def quick_eval(text: str, precision: int = config.DEFAULT_PRECISION) -> str:
    """One-shot evaluation with a fresh session, rendered for display."""
    engine = Engine()
    engine.set_precision(precision)
    return engine.format(engine.eval(text))
