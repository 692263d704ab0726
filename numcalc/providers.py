"""HTTP rate fetchers feeding ``RateCache.apply_raw_rates``.

Each provider returns a ``{code: rate}`` map for one category, or None on
failure. There are no retries; a failed category keeps its previous rates.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import requests

from numcalc import config
from numcalc.crypto import all_cryptos
from numcalc.rates import RateCache, is_usd_priced

logger = logging.getLogger(__name__)

OPEN_ER_API_URL = "https://open.er-api.com/v6/latest/USD"
EXCHANGE_RATE_API_URL = "https://v6.exchangerate-api.com/v6/{key}/latest/USD"
COINGECKO_URL = "https://api.coingecko.com/api/v3/simple/price"


class RateProvider(ABC):
    name = "provider"

    @abstractmethod
    def fetch(self) -> Optional[Dict[str, float]]:
        pass


class FiatRateProvider(RateProvider):
    """Fiat quotes as "1 USD = rate CODE"."""

    name = "fiat"

    def __init__(self, api_key: Optional[str] = config.EXCHANGE_RATE_API_KEY, timeout: float = config.HTTP_TIMEOUT):
        self.api_key = api_key
        self.timeout = timeout

    def url(self) -> str:
        if self.api_key:
            return EXCHANGE_RATE_API_URL.format(key=self.api_key)
        return OPEN_ER_API_URL

    def fetch(self) -> Optional[Dict[str, float]]:
        try:
            response = requests.get(self.url(), timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Fiat rate fetch failed: {e}")
            return None

        if data.get("result") != "success":
            logger.warning(f"Fiat rate API returned an error: {data.get('error-type', 'unknown')}")
            return None
        rates = data.get("rates") or data.get("conversion_rates") or {}
        parsed = {}
        for code, rate in rates.items():
            code = code.upper()
            # crypto and metal quotes come from their own providers
            if is_usd_priced(code):
                continue
            if isinstance(rate, (int, float)) and rate > 0:
                parsed[code] = float(rate)
        logger.info(f"Fetched {len(parsed)} fiat rates")
        return parsed


class CryptoRateProvider(RateProvider):
    """Crypto prices from CoinGecko as "1 TOKEN = rate USD"."""

    name = "crypto"

    def __init__(self, api_key: Optional[str] = config.COINGECKO_API_KEY, timeout: float = config.HTTP_TIMEOUT):
        self.api_key = api_key
        self.timeout = timeout
        self.ids = {c.coingecko_id: c.code for c in all_cryptos() if c.coingecko_id}

    def fetch(self) -> Optional[Dict[str, float]]:
        params = {"ids": ",".join(sorted(self.ids)), "vs_currencies": "usd"}
        headers = {"x-cg-demo-api-key": self.api_key} if self.api_key else {}
        try:
            response = requests.get(COINGECKO_URL, params=params, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Crypto rate fetch failed: {e}")
            return None

        parsed = {}
        for coin_id, prices in data.items():
            code = self.ids.get(coin_id)
            price = prices.get("usd") if isinstance(prices, dict) else None
            if code and isinstance(price, (int, float)) and price > 0:
                parsed[code] = float(price)
        if not parsed:
            logger.warning("Crypto rate API returned no usable prices")
            return None
        logger.info(f"Fetched {len(parsed)} crypto prices")
        return parsed


def default_providers() -> List[RateProvider]:
    return [FiatRateProvider(), CryptoRateProvider()]


def refresh_rates(cache: RateCache, providers: Optional[List[RateProvider]] = None) -> bool:
    """Fetch every category and apply the merged result in one ingestion.

    Categories that fail keep the values already in the cache. Returns True
    when at least one provider succeeded.
    """
    providers = default_providers() if providers is None else providers
    merged = cache.raw_rates()
    succeeded = []
    for provider in providers:
        rates = provider.fetch()
        if rates:
            merged.update(rates)
            succeeded.append(provider.name)
    if not succeeded:
        logger.warning("No rate provider succeeded; keeping cached rates")
        return False
    cache.apply_raw_rates(merged)
    logger.info(f"Rates refreshed from: {', '.join(succeeded)}")
    return True
