"""Typed calculation results."""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional

from numcalc.crypto import Crypto
from numcalc.currency import Currency
from numcalc.errors import ErrorKind
from numcalc.metal import Metal
from numcalc.units import Unit


class ValueKind(Enum):
    EMPTY = "empty"
    NUMBER = "number"
    PERCENTAGE = "percentage"
    CURRENCY = "currency"
    UNIT = "unit"
    METAL = "metal"
    CRYPTO = "crypto"
    ERROR = "error"

    def __str__(self):
        return self.value


# Which type wins when two operands are combined
PRIORITY = {
    ValueKind.NUMBER: 1,
    ValueKind.PERCENTAGE: 2,
    ValueKind.UNIT: 3,
    ValueKind.METAL: 4,
    ValueKind.CRYPTO: 5,
    ValueKind.CURRENCY: 6,
}

# Kinds whose amounts are converted through the rate cache
RATED_KINDS = (ValueKind.CURRENCY, ValueKind.CRYPTO, ValueKind.METAL)


def format_number(n: float, precision: int = 2) -> str:
    """Render a float with minimal decimals.

    Integers show no decimals. Otherwise ``precision`` decimals are used for
    magnitudes >= 1, at least 4 below 1 and at least 6 below 0.01, with
    trailing zeros trimmed.
    """
    if math.isnan(n):
        return "NaN"
    if math.isinf(n):
        return "-Inf" if n < 0 else "Inf"
    if n == int(n) and abs(n) < 1e15:
        return str(int(n))
    magnitude = abs(n)
    if magnitude >= 1:
        decimals = precision
    elif magnitude >= 0.01:
        decimals = max(precision, 4)
    else:
        decimals = max(precision, 6)
    text = f"{n:.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return text


@dataclass(frozen=True)
class Value:
    kind: ValueKind
    number: float = 0.0
    currency: Optional[Currency] = None
    unit: Optional[Unit] = None
    metal: Optional[Metal] = None
    crypto: Optional[Crypto] = None
    error: str = ""
    error_kind: Optional[ErrorKind] = None

    # --- Constructors ---
    @classmethod
    def empty(cls) -> "Value":
        return cls(ValueKind.EMPTY)

    @classmethod
    def of_number(cls, n: float) -> "Value":
        return cls(ValueKind.NUMBER, float(n))

    @classmethod
    def of_percentage(cls, fraction: float) -> "Value":
        """``fraction`` is the decimal form: 15% is 0.15."""
        return cls(ValueKind.PERCENTAGE, float(fraction))

    @classmethod
    def of_currency(cls, n: float, currency: Currency) -> "Value":
        return cls(ValueKind.CURRENCY, float(n), currency=currency)

    @classmethod
    def of_unit(cls, n: float, unit: Unit) -> "Value":
        return cls(ValueKind.UNIT, float(n), unit=unit)

    @classmethod
    def of_metal(cls, n: float, metal: Metal) -> "Value":
        return cls(ValueKind.METAL, float(n), metal=metal)

    @classmethod
    def of_crypto(cls, n: float, crypto: Crypto) -> "Value":
        return cls(ValueKind.CRYPTO, float(n), crypto=crypto)

    @classmethod
    def of_error(cls, message: str, kind: ErrorKind = ErrorKind.EVAL) -> "Value":
        return cls(ValueKind.ERROR, error=message, error_kind=kind)

    # --- Predicates ---
    def is_empty(self) -> bool:
        return self.kind == ValueKind.EMPTY

    def is_error(self) -> bool:
        return self.kind == ValueKind.ERROR

    def is_valid(self) -> bool:
        """Non-empty and not an error."""
        return self.kind not in (ValueKind.EMPTY, ValueKind.ERROR)

    def is_number(self) -> bool:
        return self.kind == ValueKind.NUMBER

    def is_rated(self) -> bool:
        return self.kind in RATED_KINDS

    @property
    def priority(self) -> int:
        return PRIORITY.get(self.kind, 0)

    def code(self) -> str:
        """Currency/crypto/metal/unit code, or "" for untyped values."""
        if self.kind == ValueKind.CURRENCY:
            return self.currency.code
        if self.kind == ValueKind.CRYPTO:
            return self.crypto.code
        if self.kind == ValueKind.METAL:
            return self.metal.code
        if self.kind == ValueKind.UNIT:
            return self.unit.code
        return ""

    def can_combine_with(self, other: "Value") -> bool:
        """True when ``+``/``-`` needs no conversion between the two values."""
        if self.is_number() or other.is_number():
            return True
        return self.kind == other.kind and self.code() == other.code()

    def result_kind(self, other: "Value") -> ValueKind:
        return self.kind if self.priority >= other.priority else other.kind

    # --- Transformations ---
    def with_amount(self, n: float) -> "Value":
        """Same type metadata, new amount."""
        if self.kind in (ValueKind.EMPTY, ValueKind.ERROR):
            return self
        return replace(self, number=float(n))

    def negate(self) -> "Value":
        return self.with_amount(-self.number)

    # --- Rendering ---
    def format(self, precision: int = 2) -> str:
        kind = self.kind
        if kind == ValueKind.EMPTY:
            return ""
        if kind == ValueKind.ERROR:
            return f"Error: {self.error}"
        if kind == ValueKind.NUMBER:
            return format_number(self.number, precision)
        if kind == ValueKind.PERCENTAGE:
            return format_number(self.number * 100, precision) + "%"
        if kind == ValueKind.CURRENCY:
            sign = "-" if self.number < 0 else ""
            amount = f"{abs(self.number):.2f}"
            if self.currency.symbol_after:
                return f"{sign}{amount}{self.currency.symbol}"
            return f"{sign}{self.currency.symbol}{amount}"
        if kind == ValueKind.UNIT:
            return f"{format_number(self.number, precision)} {self.unit.code}"
        if kind == ValueKind.METAL:
            return f"{format_number(self.number, precision)} {self.metal.code}"
        if kind == ValueKind.CRYPTO:
            amount = format_number(self.number, max(precision, self.crypto.decimals))
            if self.crypto.symbol:
                return f"{self.crypto.symbol}{amount}"
            return f"{amount} {self.crypto.code}"
        raise ValueError(f"unknown value kind: {kind}")

    def __str__(self):
        return self.format()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind.value, "display": self.format()}
        if self.is_error():
            data["error"] = self.error
            if self.error_kind is not None:
                data["error_kind"] = self.error_kind.name.lower()
        elif not self.is_empty():
            data["value"] = self.number
            code = self.code()
            if code:
                data["code"] = code
        return data
