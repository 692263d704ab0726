"""Metal registry. Amounts are troy ounces priced in USD."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from numcalc.currency import normalize_name


@dataclass(frozen=True)
class Metal:
    code: str
    name: str
    aliases: Tuple[str, ...] = ()

    def __str__(self):
        return self.code


METALS: List[Metal] = [
    Metal("XAU", "Gold", ("gold", "au")),
    Metal("XAG", "Silver", ("silver", "ag")),
    Metal("XPT", "Platinum", ("platinum", "pt")),
    Metal("XPD", "Palladium", ("palladium", "pd")),
    Metal("XCU", "Copper", ("copper",)),
    Metal("XAL", "Aluminum", ("aluminum", "aluminium")),
    Metal("XNI", "Nickel", ("nickel",)),
    Metal("XZN", "Zinc", ("zinc",)),
    Metal("XPB", "Lead", ("lead",)),
    Metal("XSN", "Tin", ("tin",)),
]

_BY_CODE: Dict[str, Metal] = {m.code: m for m in METALS}
_BY_ALIAS: Dict[str, Metal] = {}
for _metal in METALS:
    for _alias in _metal.aliases:
        _BY_ALIAS[normalize_name(_alias)] = _metal


def lookup_metal(name: str) -> Optional[Metal]:
    key = normalize_name(name)
    if key in _BY_ALIAS:
        return _BY_ALIAS[key]
    return _BY_CODE.get(key.upper())


def is_metal_code(code: str) -> bool:
    return code.strip().upper() in _BY_CODE


def all_metals() -> List[Metal]:
    return list(METALS)
