"""Physical unit registry backed by pint."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pint import UnitRegistry, DimensionalityError, OffsetUnitCalculusError, UndefinedUnitError

from numcalc.currency import normalize_name

logger = logging.getLogger(__name__)

ureg = UnitRegistry()
Q_ = ureg.Quantity


class UnitType(Enum):
    LENGTH = "length"
    WEIGHT = "weight"
    TIME = "time"
    TEMPERATURE = "temperature"
    DATA = "data"
    AREA = "area"
    VOLUME = "volume"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class Unit:
    code: str
    name: str
    type: UnitType
    pint_name: str
    aliases: Tuple[str, ...] = ()

    def __str__(self):
        return self.code


def _u(code, name, unit_type, pint_name, *aliases):
    return Unit(code, name, unit_type, pint_name, tuple(aliases))


L, W, T, TEMP, D, A, V = (
    UnitType.LENGTH,
    UnitType.WEIGHT,
    UnitType.TIME,
    UnitType.TEMPERATURE,
    UnitType.DATA,
    UnitType.AREA,
    UnitType.VOLUME,
)

UNITS: List[Unit] = [
    # Length
    _u("m", "meter", L, "meter", "meter", "meters", "metre", "metres"),
    _u("km", "kilometer", L, "kilometer", "kilometer", "kilometers", "kilometre", "kilometres"),
    _u("cm", "centimeter", L, "centimeter", "centimeter", "centimeters"),
    _u("mm", "millimeter", L, "millimeter", "millimeter", "millimeters"),
    _u("mi", "mile", L, "mile", "mile", "miles"),
    _u("yd", "yard", L, "yard", "yard", "yards"),
    _u("ft", "foot", L, "foot", "foot", "feet"),
    _u("inch", "inch", L, "inch", "inches"),
    _u("nmi", "nautical mile", L, "nautical_mile", "nautical mile", "nautical miles"),
    # Weight
    _u("g", "gram", W, "gram", "gram", "grams"),
    _u("kg", "kilogram", W, "kilogram", "kilogram", "kilograms", "kilo", "kilos"),
    _u("mg", "milligram", W, "milligram", "milligram", "milligrams"),
    _u("t", "tonne", W, "metric_ton", "ton", "tons", "tonne", "tonnes"),
    _u("lb", "pound", W, "pound", "lbs", "pound", "pounds"),
    _u("oz", "ounce", W, "ounce", "ounce", "ounces"),
    _u("st", "stone", W, "stone", "stone", "stones"),
    _u("ozt", "troy ounce", W, "troy_ounce", "troy ounce", "troy ounces"),
    # Time
    _u("s", "second", T, "second", "sec", "secs", "second", "seconds"),
    _u("ms", "millisecond", T, "millisecond", "millisecond", "milliseconds"),
    _u("min", "minute", T, "minute", "mins", "minute", "minutes"),
    _u("h", "hour", T, "hour", "hr", "hrs", "hour", "hours"),
    _u("d", "day", T, "day", "day", "days"),
    _u("wk", "week", T, "week", "week", "weeks"),
    _u("mo", "month", T, "month", "month", "months"),
    _u("y", "year", T, "year", "yr", "yrs", "year", "years"),
    # Temperature
    _u("K", "kelvin", TEMP, "kelvin", "kelvin"),
    _u("C", "celsius", TEMP, "degC", "celsius", "centigrade"),
    _u("F", "fahrenheit", TEMP, "degF", "fahrenheit"),
    # Data (binary prefixes)
    _u("B", "byte", D, "byte", "byte", "bytes"),
    _u("KB", "kilobyte", D, "kibibyte", "kilobyte", "kilobytes"),
    _u("MB", "megabyte", D, "mebibyte", "megabyte", "megabytes"),
    _u("GB", "gigabyte", D, "gibibyte", "gigabyte", "gigabytes"),
    _u("TB", "terabyte", D, "tebibyte", "terabyte", "terabytes"),
    _u("PB", "petabyte", D, "pebibyte", "petabyte", "petabytes"),
    _u("bit", "bit", D, "bit", "bits"),
    _u("Kbit", "kilobit", D, "kibibit", "kilobit", "kilobits"),
    _u("Mbit", "megabit", D, "mebibit", "megabit", "megabits"),
    _u("Gbit", "gigabit", D, "gibibit", "gigabit", "gigabits"),
    # Area
    _u("sqm", "square meter", A, "meter ** 2", "m2", "square meter", "square meters"),
    _u("sqkm", "square kilometer", A, "kilometer ** 2", "km2", "square kilometer", "square kilometers"),
    _u("sqft", "square foot", A, "foot ** 2", "ft2", "square foot", "square feet"),
    _u("sqmi", "square mile", A, "mile ** 2", "square mile", "square miles"),
    _u("acre", "acre", A, "acre", "acres"),
    _u("ha", "hectare", A, "hectare", "hectare", "hectares"),
    # Volume
    _u("L", "liter", V, "liter", "liter", "liters", "litre", "litres"),
    _u("mL", "milliliter", V, "milliliter", "milliliter", "milliliters"),
    _u("gal", "gallon", V, "gallon", "gallon", "gallons"),
    _u("qt", "quart", V, "quart", "quart", "quarts"),
    _u("pt", "pint", V, "pint", "pint", "pints"),
    _u("cup", "cup", V, "cup", "cups"),
    _u("floz", "fluid ounce", V, "fluid_ounce", "fl oz", "fluid ounce", "fluid ounces"),
    _u("tbsp", "tablespoon", V, "tablespoon", "tablespoon", "tablespoons"),
    _u("tsp", "teaspoon", V, "teaspoon", "teaspoon", "teaspoons"),
    _u("m3", "cubic meter", V, "meter ** 3", "cubic meter", "cubic meters"),
]

_BY_CODE: Dict[str, Unit] = {}
_BY_ALIAS: Dict[str, Unit] = {}
_BY_LOWER_CODE: Dict[str, Unit] = {}

for _unit in UNITS:
    _BY_CODE[_unit.code] = _unit
    _BY_LOWER_CODE.setdefault(_unit.code.lower(), _unit)
    for _alias in _unit.aliases:
        _BY_ALIAS.setdefault(normalize_name(_alias), _unit)


def lookup_unit(name: str) -> Optional[Unit]:
    """Resolve a unit by exact code, then alias, then case-insensitive code."""
    name = name.strip()
    if name in _BY_CODE:
        return _BY_CODE[name]
    key = normalize_name(name)
    if key in _BY_ALIAS:
        return _BY_ALIAS[key]
    return _BY_LOWER_CODE.get(key)


def convert(amount: float, from_unit: Unit, to_unit: Unit) -> Optional[float]:
    """Convert between two units of the same type; None when incompatible."""
    if from_unit.type != to_unit.type:
        return None
    if from_unit.code == to_unit.code:
        return amount
    try:
        return float(Q_(amount, from_unit.pint_name).to(to_unit.pint_name).magnitude)
    except (DimensionalityError, OffsetUnitCalculusError, UndefinedUnitError) as e:
        logger.warning(f"Unit conversion {from_unit.code} -> {to_unit.code} failed: {e}")
        return None


def all_units() -> List[Unit]:
    return list(UNITS)
