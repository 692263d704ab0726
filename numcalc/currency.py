"""Fiat currency registry."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Currency:
    code: str
    symbol: str
    name: str
    aliases: Tuple[str, ...] = ()
    symbol_after: bool = False

    def __str__(self):
        return self.code


def _c(code, symbol, name, aliases=(), symbol_after=False):
    return Currency(code, symbol, name, tuple(aliases), symbol_after)


CURRENCIES: List[Currency] = [
    _c("USD", "$", "US Dollar", ["dollar", "dollars", "usd", "bucks", "buck", "us dollar", "us dollars"]),
    _c("EUR", "€", "Euro", ["euro", "euros"]),
    _c("GBP", "£", "British Pound", ["pound", "pounds", "quid", "sterling", "british pound", "british pounds"]),
    _c("JPY", "¥", "Japanese Yen", ["yen"]),
    _c("CHF", "CHF", "Swiss Franc", ["franc", "francs", "swiss franc", "swiss francs"]),
    _c("CAD", "C$", "Canadian Dollar", ["canadian dollar", "canadian dollars", "loonie"]),
    _c("MXN", "MX$", "Mexican Peso", ["peso", "pesos", "mexican peso"]),
    _c("BRL", "R$", "Brazilian Real", ["real", "reais", "brazilian real"]),
    _c("ARS", "AR$", "Argentine Peso", ["argentine peso"]),
    _c("CLP", "CL$", "Chilean Peso", ["chilean peso"]),
    _c("COP", "CO$", "Colombian Peso", ["colombian peso"]),
    _c("RUB", "₽", "Russian Ruble", ["ruble", "rubles", "rouble", "roubles"], True),
    _c("UAH", "₴", "Ukrainian Hryvnia", ["hryvnia"], True),
    _c("PLN", "zł", "Polish Zloty", ["zloty", "złoty"], True),
    _c("CZK", "Kč", "Czech Koruna", ["koruna"], True),
    _c("SEK", "kr", "Swedish Krona", ["krona", "swedish krona"], True),
    _c("NOK", "kr", "Norwegian Krone", ["norwegian krone"], True),
    _c("DKK", "kr", "Danish Krone", ["danish krone"], True),
    _c("HUF", "Ft", "Hungarian Forint", ["forint"], True),
    _c("RON", "lei", "Romanian Leu", ["leu", "lei"], True),
    _c("TRY", "₺", "Turkish Lira", ["try", "tl", "lira", "liras", "turkish lira", "turk lirasi"], True),
    _c("ILS", "₪", "Israeli Shekel", ["shekel", "shekels", "nis"]),
    _c("AED", "د.إ", "UAE Dirham", ["dirham", "dirhams"]),
    _c("SAR", "﷼", "Saudi Riyal", ["riyal", "saudi riyal"]),
    _c("QAR", "﷼", "Qatari Riyal", ["qatari riyal"]),
    _c("KWD", "د.ك", "Kuwaiti Dinar", ["kuwaiti dinar"]),
    _c("EGP", "E£", "Egyptian Pound", ["egyptian pound"]),
    _c("CNY", "¥", "Chinese Yuan", ["yuan", "rmb", "renminbi"]),
    _c("HKD", "HK$", "Hong Kong Dollar", ["hong kong dollar", "hong kong dollars"]),
    _c("TWD", "NT$", "New Taiwan Dollar", ["taiwan dollar"]),
    _c("KRW", "₩", "South Korean Won", ["won", "korean won", "south korean won"]),
    _c("INR", "₹", "Indian Rupee", ["rupee", "rupees", "indian rupee", "indian rupees"]),
    _c("PKR", "₨", "Pakistani Rupee", ["pakistani rupee"]),
    _c("BDT", "৳", "Bangladeshi Taka", ["taka"]),
    _c("SGD", "S$", "Singapore Dollar", ["singapore dollar"]),
    _c("MYR", "RM", "Malaysian Ringgit", ["ringgit"]),
    _c("THB", "฿", "Thai Baht", ["baht", "bath"]),
    _c("IDR", "Rp", "Indonesian Rupiah", ["rupiah"]),
    _c("VND", "₫", "Vietnamese Dong", ["dong"], True),
    _c("PHP", "₱", "Philippine Peso", ["philippine peso"]),
    _c("AUD", "A$", "Australian Dollar", ["australian dollar", "australian dollars", "aussie dollar"]),
    _c("NZD", "NZ$", "New Zealand Dollar", ["new zealand dollar", "new zealand dollars", "kiwi dollar"]),
    _c("ZAR", "R", "South African Rand", ["rand", "south african rand"]),
    _c("NGN", "₦", "Nigerian Naira", ["naira"]),
    _c("KES", "KSh", "Kenyan Shilling", ["shilling", "kenyan shilling"]),
]


def normalize_name(name: str) -> str:
    """Lower-case and collapse internal whitespace ("Turkish  Lira" -> "turkish lira")."""
    return " ".join(name.lower().split())


_BY_CODE: Dict[str, Currency] = {}
_BY_ALIAS: Dict[str, Currency] = {}
_BY_SYMBOL: Dict[str, Currency] = {}

for _cur in CURRENCIES:
    _BY_CODE[_cur.code] = _cur
    # First registration of a shared symbol wins (¥ is JPY, kr is SEK)
    _BY_SYMBOL.setdefault(_cur.symbol, _cur)
    for _alias in _cur.aliases:
        _BY_ALIAS.setdefault(normalize_name(_alias), _cur)


def lookup_currency(name: str) -> Optional[Currency]:
    """Resolve a currency by alias, ISO code (any case) or symbol."""
    key = normalize_name(name)
    if key in _BY_ALIAS:
        return _BY_ALIAS[key]
    if key.upper() in _BY_CODE:
        return _BY_CODE[key.upper()]
    return _BY_SYMBOL.get(name.strip())


def lookup_currency_by_code(code: str) -> Optional[Currency]:
    return _BY_CODE.get(code.strip().upper())


def lookup_currency_by_symbol(symbol: str) -> Optional[Currency]:
    return _BY_SYMBOL.get(symbol)


def currency_from_code(code: str) -> Optional[Currency]:
    """Return the registered currency, or synthesize one for an unknown 3-letter code."""
    code = code.strip().upper()
    if code in _BY_CODE:
        return _BY_CODE[code]
    if len(code) == 3 and code.isalpha():
        return Currency(code, code, code)
    return None


def currency_symbols() -> List[str]:
    return list(_BY_SYMBOL)


def all_currencies() -> List[Currency]:
    return list(CURRENCIES)
