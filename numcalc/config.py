import os
import logging
from pathlib import Path

# --- Configuration ---
DATABASE = os.environ.get("NUMCALC_DATABASE", "sessions.db")
DEBUG_MODE = os.environ.get("NUMCALC_DEBUG", "").lower() in ("1", "true", "yes")

# Optional API keys for the rate providers (both work without a key)
EXCHANGE_RATE_API_KEY = os.environ.get("NUMCALC_EXCHANGE_RATE_API_KEY")
COINGECKO_API_KEY = os.environ.get("NUMCALC_COINGECKO_API_KEY")
HTTP_TIMEOUT = float(os.environ.get("NUMCALC_HTTP_TIMEOUT", "10"))

EXCHANGE_RATE_CACHE_TTL = int(os.environ.get("NUMCALC_RATE_TTL", "3600"))  # 1 hour
RATES_FILE_NAME = "rates.json"
BASE_CURRENCY = "USD"

DEFAULT_PRECISION = 2
MAX_PRECISION = 15

WEB_HOST = "0.0.0.0"
WEB_PORT = 5200

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def cache_dir() -> Path:
    """Directory holding the persisted rate cache."""
    override = os.environ.get("NUMCALC_CACHE_DIR")
    if override:
        return Path(override)
    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg:
        return Path(xdg) / "numcalc"
    return Path(os.path.expanduser("~")) / ".numcalc" / "cache"


def rates_file() -> Path:
    return cache_dir() / RATES_FILE_NAME


# --- Logging Setup ---
def setup_logging(debug: bool = DEBUG_MODE):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO, format=LOG_FORMAT
    )
