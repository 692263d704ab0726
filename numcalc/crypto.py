"""Cryptocurrency registry.

Crypto amounts are priced in USD: one token is worth ``rate`` dollars.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from numcalc.currency import normalize_name


@dataclass(frozen=True)
class Crypto:
    code: str
    symbol: str
    name: str
    aliases: Tuple[str, ...] = ()
    decimals: int = 4
    coingecko_id: str = ""

    def __str__(self):
        return self.code


def _k(code, symbol, name, aliases, decimals, coingecko_id):
    return Crypto(code, symbol, name, tuple(aliases), decimals, coingecko_id)


CRYPTOS: List[Crypto] = [
    _k("BTC", "₿", "Bitcoin", ["bitcoin", "bitcoins", "btc", "xbt"], 8, "bitcoin"),
    _k("ETH", "Ξ", "Ethereum", ["ethereum", "ether", "eth"], 6, "ethereum"),
    _k("USDT", "₮", "Tether", ["tether", "usdt"], 2, "tether"),
    _k("USDC", "", "USD Coin", ["usd coin", "usdc"], 2, "usd-coin"),
    _k("DAI", "", "Dai", ["dai"], 2, "dai"),
    _k("BUSD", "", "Binance USD", ["busd"], 2, "binance-usd"),
    _k("BNB", "", "BNB", ["binance coin", "bnb"], 4, "binancecoin"),
    _k("SOL", "◎", "Solana", ["solana", "sol"], 4, "solana"),
    _k("XRP", "", "XRP", ["ripple", "xrp"], 4, "ripple"),
    _k("ADA", "₳", "Cardano", ["cardano", "ada"], 4, "cardano"),
    _k("DOGE", "Ð", "Dogecoin", ["dogecoin", "doge"], 4, "dogecoin"),
    _k("DOT", "", "Polkadot", ["polkadot", "dot"], 4, "polkadot"),
    _k("MATIC", "", "Polygon", ["polygon", "matic"], 4, "matic-network"),
    _k("AVAX", "", "Avalanche", ["avalanche", "avax"], 4, "avalanche-2"),
    _k("LTC", "Ł", "Litecoin", ["litecoin", "ltc"], 4, "litecoin"),
    _k("LINK", "", "Chainlink", ["chainlink"], 4, "chainlink"),
    _k("ATOM", "", "Cosmos", ["cosmos", "atom"], 4, "cosmos"),
    _k("UNI", "", "Uniswap", ["uniswap", "uni"], 4, "uniswap"),
    _k("XLM", "", "Stellar", ["stellar", "lumens", "xlm"], 4, "stellar"),
    _k("ALGO", "", "Algorand", ["algorand", "algo"], 4, "algorand"),
    _k("TON", "", "Toncoin", ["toncoin"], 4, "the-open-network"),
    _k("AAVE", "", "Aave", ["aave"], 4, "aave"),
    _k("MKR", "", "Maker", ["maker", "mkr"], 4, "maker"),
    _k("CRV", "", "Curve", ["curve", "crv"], 4, "curve-dao-token"),
    _k("NEAR", "", "NEAR Protocol", ["near protocol"], 4, "near"),
    _k("APT", "", "Aptos", ["aptos", "apt"], 4, "aptos"),
    _k("ARB", "", "Arbitrum", ["arbitrum", "arb"], 4, "arbitrum"),
    _k("OP", "", "Optimism", ["optimism"], 4, "optimism"),
    _k("SHIB", "", "Shiba Inu", ["shiba", "shiba inu", "shib"], 8, "shiba-inu"),
    _k("PEPE", "", "Pepe", ["pepe"], 8, "pepe"),
    _k("WIF", "", "dogwifhat", ["dogwifhat", "wif"], 4, "dogwifcoin"),
    _k("BONK", "", "Bonk", ["bonk"], 8, "bonk"),
]

_BY_CODE: Dict[str, Crypto] = {c.code: c for c in CRYPTOS}
_BY_ALIAS: Dict[str, Crypto] = {}
_BY_SYMBOL: Dict[str, Crypto] = {}

for _crypto in CRYPTOS:
    if _crypto.symbol:
        _BY_SYMBOL.setdefault(_crypto.symbol, _crypto)
    for _alias in _crypto.aliases:
        _BY_ALIAS.setdefault(normalize_name(_alias), _crypto)


def lookup_crypto(name: str) -> Optional[Crypto]:
    """Resolve by alias or exact upper-case code.

    Lower-case codes only match when listed as aliases, so common words
    such as "ton", "link" or "near" stay free for units and variables.
    """
    key = normalize_name(name)
    if key in _BY_ALIAS:
        return _BY_ALIAS[key]
    code = name.strip()
    if code in _BY_CODE:
        return _BY_CODE[code]
    return _BY_SYMBOL.get(code)


def lookup_crypto_by_code(code: str) -> Optional[Crypto]:
    return _BY_CODE.get(code.strip().upper())


def lookup_crypto_by_symbol(symbol: str) -> Optional[Crypto]:
    return _BY_SYMBOL.get(symbol)


def is_crypto_code(code: str) -> bool:
    return code.strip().upper() in _BY_CODE


def crypto_symbols() -> List[str]:
    return list(_BY_SYMBOL)


def all_cryptos() -> List[Crypto]:
    return list(CRYPTOS)
