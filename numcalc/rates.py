"""Exchange-rate cache for fiat, crypto and metal codes.

Rates are stored per ordered pair. Lookups that have no direct pair walk the
rate graph breadth-first, so the path with the fewest hops wins.
"""

import datetime
import json
import logging
import math
import os
import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from numcalc import config
from numcalc.crypto import is_crypto_code, lookup_crypto_by_code
from numcalc.currency import currency_from_code
from numcalc.metal import is_metal_code, lookup_metal
from numcalc.value import Value, ValueKind

logger = logging.getLogger(__name__)

BASE_CURRENCY = config.BASE_CURRENCY

# Offline snapshot used before any live fetch: 1 USD = rate CODE
FALLBACK_FIAT = {
    "EUR": 0.92, "GBP": 0.79, "JPY": 149.5, "CHF": 0.88, "CAD": 1.36,
    "AUD": 1.53, "CNY": 7.24, "INR": 83.12, "KRW": 1320.0, "MXN": 17.15,
    "BRL": 4.97, "RUB": 92.5, "TRY": 32.5, "ZAR": 18.65, "SGD": 1.34,
    "HKD": 7.82, "NOK": 10.65, "SEK": 10.42, "DKK": 6.87, "PLN": 3.98,
    "THB": 35.2, "IDR": 15650.0, "MYR": 4.72, "PHP": 55.8, "CZK": 22.85,
    "ILS": 3.72, "AED": 3.67, "SAR": 3.75, "TWD": 31.5, "HUF": 355.0,
    "UAH": 41.0, "VND": 24500.0, "EGP": 30.9, "PKR": 285.0, "BDT": 110.0,
    "NGN": 800.0, "ARS": 850.0, "CLP": 880.0, "COP": 3950.0, "KES": 155.0,
    "QAR": 3.64, "KWD": 0.31, "RON": 4.57, "NZD": 1.64,
}

# 1 TOKEN = rate USD
FALLBACK_CRYPTO = {
    "BTC": 95000.0, "ETH": 3500.0, "SOL": 180.0, "BNB": 650.0, "XRP": 2.2,
    "ADA": 0.95, "DOGE": 0.38, "DOT": 7.5, "MATIC": 0.55, "LTC": 105.0,
    "LINK": 22.0, "AVAX": 42.0, "ATOM": 9.5, "UNI": 12.0, "XLM": 0.42,
    "ALGO": 0.35, "TON": 6.5, "NEAR": 5.8, "APT": 12.5, "ARB": 1.1,
    "OP": 2.8, "AAVE": 350.0, "MKR": 3200.0, "CRV": 0.85, "SHIB": 0.000025,
    "PEPE": 0.000018, "WIF": 2.5, "BONK": 0.000032,
    "USDT": 1.0, "USDC": 1.0, "DAI": 1.0, "BUSD": 1.0,
}

# 1 oz = rate USD
FALLBACK_METALS = {"XAU": 2650.0, "XAG": 31.5, "XPT": 1020.0, "XPD": 1100.0}


def fallback_rates() -> Dict[str, float]:
    rates = dict(FALLBACK_FIAT)
    rates.update(FALLBACK_CRYPTO)
    rates.update(FALLBACK_METALS)
    return rates


def is_usd_priced(code: str) -> bool:
    """Crypto and metal quotes read "1 CODE = rate USD"; fiat reads "1 USD = rate CODE"."""
    return is_crypto_code(code) or is_metal_code(code)


class RateLookup(ABC):
    """What the evaluator needs from a rate source."""

    @abstractmethod
    def get_rate(self, from_code: str, to_code: str) -> Optional[float]:
        pass

    @abstractmethod
    def convert(self, amount: float, from_code: str, to_code: str) -> Optional[float]:
        pass

    @abstractmethod
    def convert_value(self, value: Value, to_code: str) -> Optional[Value]:
        pass


def value_for_code(amount: float, code: str) -> Optional[Value]:
    """Wrap ``amount`` in the value type that owns ``code``."""
    crypto = lookup_crypto_by_code(code)
    if crypto is not None:
        return Value.of_crypto(amount, crypto)
    if is_metal_code(code):
        return Value.of_metal(amount, lookup_metal(code))
    currency = currency_from_code(code)
    if currency is not None:
        return Value.of_currency(amount, currency)
    return None


class RateCache(RateLookup):
    def __init__(self, ttl: float = config.EXCHANGE_RATE_CACHE_TTL, with_defaults: bool = True):
        self.ttl = ttl
        self._lock = threading.RLock()
        self._rates: Dict[Tuple[str, str], float] = {}
        self._raw: Dict[str, float] = {}
        self._last_update: Optional[float] = None
        if with_defaults:
            # Seed rates never count as fresh
            self._ingest(fallback_rates())

    # --- Writes ---
    def set_rate(self, from_code: str, to_code: str, rate: float):
        """Store ``1 from = rate to`` and its inverse."""
        if not math.isfinite(rate) or rate < 0:
            raise ValueError(f"invalid rate {rate!r} for {from_code}/{to_code}")
        from_code, to_code = from_code.upper(), to_code.upper()
        if from_code == to_code:
            return
        with self._lock:
            self._store(from_code, to_code, rate)

    def _store(self, from_code: str, to_code: str, rate: float):
        _put_pair(self._rates, from_code, to_code, rate)

    def _ingest(self, raw: Dict[str, float]) -> Dict[str, float]:
        table: Dict[Tuple[str, str], float] = {}
        accepted = {}
        for code, rate in raw.items():
            if not isinstance(code, str):
                continue
            code = code.upper()
            try:
                rate = float(rate)
            except (TypeError, ValueError):
                logger.warning(f"Ignoring non-numeric rate for {code}: {rate!r}")
                continue
            if code == BASE_CURRENCY or not math.isfinite(rate) or rate <= 0:
                continue
            accepted[code] = rate
            if is_usd_priced(code):
                _put_pair(table, code, BASE_CURRENCY, rate)
            else:
                _put_pair(table, BASE_CURRENCY, code, rate)
        self._rates = table
        self._raw = accepted
        return accepted

    def apply_raw_rates(self, raw: Dict[str, float], timestamp: Optional[float] = None):
        """Replace the whole table with freshly fetched rates anchored on USD."""
        with self._lock:
            accepted = self._ingest(raw)
            self._last_update = time.time() if timestamp is None else timestamp
        logger.info(f"Applied {len(accepted)} raw rates ({len(raw) - len(accepted)} skipped)")

    def clear(self):
        with self._lock:
            self._rates = {}
            self._raw = {}
            self._last_update = None

    # --- Reads ---
    def has_rate(self, from_code: str, to_code: str) -> bool:
        return self.get_rate(from_code, to_code) is not None

    def get_rate(self, from_code: str, to_code: str) -> Optional[float]:
        """Multiplier for 1 ``from_code`` in ``to_code``; None when no path exists."""
        from_code, to_code = from_code.upper(), to_code.upper()
        if from_code == to_code:
            return 1.0
        with self._lock:
            direct = self._rates.get((from_code, to_code))
            if direct is not None:
                return direct
            return self._search(from_code, to_code)

    def _search(self, from_code: str, to_code: str) -> Optional[float]:
        graph: Dict[str, List[Tuple[str, float]]] = {}
        for (a, b), rate in self._rates.items():
            graph.setdefault(a, []).append((b, rate))
        if from_code not in graph:
            return None

        seen = {from_code}
        queue = deque([(from_code, 1.0)])
        while queue:
            code, acc = queue.popleft()
            for nxt, rate in graph.get(code, ()):
                if nxt in seen:
                    continue
                if nxt == to_code:
                    logger.debug(f"Rate {from_code}->{to_code} found via graph search")
                    return acc * rate
                seen.add(nxt)
                queue.append((nxt, acc * rate))
        return None

    def convert(self, amount: float, from_code: str, to_code: str) -> Optional[float]:
        rate = self.get_rate(from_code, to_code)
        if rate is None:
            return None
        return amount * rate

    def convert_value(self, value: Value, to_code: str) -> Optional[Value]:
        if value.kind not in (ValueKind.CURRENCY, ValueKind.CRYPTO, ValueKind.METAL):
            return None
        target = value_for_code(0, to_code)
        if target is None:
            return None
        amount = self.convert(value.number, value.code(), target.code())
        if amount is None:
            return None
        return target.with_amount(amount)

    def raw_rates(self) -> Dict[str, float]:
        with self._lock:
            return dict(self._raw)

    @property
    def last_update(self) -> Optional[float]:
        with self._lock:
            return self._last_update

    def age(self) -> Optional[float]:
        """Seconds since the last ingestion, or None if never refreshed."""
        last = self.last_update
        if last is None:
            return None
        return time.time() - last

    def is_expired(self) -> bool:
        age = self.age()
        return age is None or age > self.ttl

    def is_valid(self) -> bool:
        return not self.is_expired()

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            codes = {code for pair in self._rates for code in pair}
            last = self._last_update
            pairs = len(self._rates)
        return {
            "pairs": pairs,
            "codes": len(codes),
            "last_update": _iso(last) if last is not None else None,
            "expired": self.is_expired(),
        }

    # --- Persistence ---
    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            last = self._last_update
            raw = dict(self._raw)
        return {
            "timestamp": _iso(last if last is not None else 0),
            "rates": raw,
            "baseCurrency": BASE_CURRENCY,
        }

    def load_dict(self, data: Dict[str, Any]) -> bool:
        """Restore rates saved by ``to_dict``; refuses data older than the TTL."""
        try:
            timestamp = _parse_iso(data["timestamp"])
            rates = data["rates"]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed rate data: {e}")
            return False
        if not isinstance(rates, dict):
            logger.warning(f"Malformed rate data: rates is a {type(rates).__name__}")
            return False
        base = data.get("baseCurrency", data.get("base_currency", BASE_CURRENCY))
        if base != BASE_CURRENCY:
            logger.warning(f"Unsupported base currency in rate data: {base}")
            return False
        if time.time() - timestamp > self.ttl:
            logger.info("Stored rates are older than the cache TTL, ignoring them")
            return False
        self.apply_raw_rates(rates, timestamp=timestamp)
        return True

    def save_to_file(self, path: Union[str, Path, None] = None) -> Path:
        path = Path(path) if path is not None else config.rates_file()
        data = self.to_dict()
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        with open(tmp, "w") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, path)
        logger.info(f"Saved {len(data['rates'])} rates to {path}")
        return path

    def load_from_file(self, path: Union[str, Path, None] = None) -> bool:
        path = Path(path) if path is not None else config.rates_file()
        data = _read_json(path)
        if data is None:
            return False
        loaded = self.load_dict(data)
        if loaded:
            logger.info(f"Loaded rates from {path}")
        return loaded

    def is_cache_file_valid(self, path: Union[str, Path, None] = None) -> bool:
        path = Path(path) if path is not None else config.rates_file()
        data = _read_json(path)
        if data is None:
            return False
        try:
            return time.time() - _parse_iso(data["timestamp"]) <= self.ttl
        except (KeyError, TypeError, ValueError):
            return False


def _put_pair(table: Dict[Tuple[str, str], float], from_code: str, to_code: str, rate: float):
    table[(from_code, to_code)] = rate
    if rate != 0:
        table[(to_code, from_code)] = 1 / rate


def _iso(ts: float) -> str:
    return datetime.datetime.fromtimestamp(ts, tz=datetime.timezone.utc).isoformat()


def _parse_iso(text: str) -> float:
    parsed = datetime.datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.timestamp()


def _read_json(path: Path) -> Optional[Dict[str, Any]]:
    if not path.exists():
        return None
    try:
        with open(path, "r") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read rate file {path}: {e}")
        return None
