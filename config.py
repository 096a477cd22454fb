import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _url_list(value, default):
    """Split a comma-separated env value into an ordered list of URLs."""
    if not value:
        return list(default)
    return [u.strip() for u in value.split(",") if u.strip()]


DATABASE_URL = os.getenv("DATABASE_URL") or "sqlite:///./local.db"

# Ordered fallback lists: the first endpoint that answers wins.
COUNTRIES_API_URLS = _url_list(
    os.getenv("COUNTRIES_API_URLS"),
    [
        "https://restcountries.com/v3.1/all?fields=name,capital,region,population,flags,currencies",
        "https://restcountries.com/v2/all?fields=name,capital,region,population,flag,currencies",
    ],
)
EXCHANGE_RATE_API_URLS = _url_list(
    os.getenv("EXCHANGE_RATE_API_URLS"),
    [
        "https://open.er-api.com/v6/latest/USD",
        "https://api.exchangerate-api.com/v4/latest/USD",
    ],
)

COUNTRIES_TIMEOUT = float(os.getenv("COUNTRIES_TIMEOUT", "30"))
EXCHANGE_RATE_TIMEOUT = float(os.getenv("EXCHANGE_RATE_TIMEOUT", "15"))

CACHE_DIR = Path(os.getenv("CACHE_DIR", "cache"))
SUMMARY_IMAGE_PATH = CACHE_DIR / "summary.png"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
