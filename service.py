import copy
import logging
from typing import Callable, Dict, List, Sequence, TypeVar

import requests

import config

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Served when every countries endpoint is down, in the v2 layout.
STATIC_COUNTRIES = [
    {
        "name": "Nigeria",
        "capital": "Abuja",
        "region": "Africa",
        "population": 206139587,
        "flag": "https://flagcdn.com/ng.svg",
        "currencies": [{"code": "NGN", "name": "Nigerian naira", "symbol": "₦"}],
    },
    {
        "name": "Ghana",
        "capital": "Accra",
        "region": "Africa",
        "population": 31072945,
        "flag": "https://flagcdn.com/gh.svg",
        "currencies": [{"code": "GHS", "name": "Ghanaian cedi", "symbol": "₵"}],
    },
    {
        "name": "United States of America",
        "capital": "Washington, D.C.",
        "region": "Americas",
        "population": 329484123,
        "flag": "https://flagcdn.com/us.svg",
        "currencies": [{"code": "USD", "name": "United States dollar", "symbol": "$"}],
    },
]

DEFAULT_RATES = {"USD": 1.0}


def fetch_first(
    candidates: Sequence[str],
    timeout: float,
    extract: Callable[[object], T],
    default: Callable[[], T],
    resource: str = "resource",
) -> T:
    """Try each endpoint in order and return the first usable payload.

    ``extract`` turns the decoded JSON into the result and raises
    ``ValueError`` when the payload is unusable. If no candidate succeeds
    the result of ``default()`` is returned; this never raises.
    """
    for url in candidates:
        try:
            r = requests.get(url, timeout=timeout)
            r.raise_for_status()
            payload = extract(r.json())
        except (requests.RequestException, ValueError) as e:
            logger.warning("Fetching %s from %s failed: %s", resource, url, e)
            continue
        logger.info("Fetched %s from %s", resource, url)
        return payload

    logger.warning("All %s endpoints failed, using built-in fallback", resource)
    return default()


def _country_list(payload) -> List[dict]:
    if not isinstance(payload, list):
        raise ValueError(f"expected a list of countries, got {type(payload).__name__}")
    return payload


def _rate_mapping(payload) -> Dict[str, float]:
    if not isinstance(payload, dict):
        raise ValueError("exchange rate payload is not an object")
    rates = payload.get("rates") or payload.get("conversion_rates")
    if not isinstance(rates, dict) or not rates:
        raise ValueError("exchange rate payload has no rates")
    return rates


def fetch_countries(timeout=None) -> List[dict]:
    """Raw country records from the first reachable directory endpoint."""
    countries = fetch_first(
        config.COUNTRIES_API_URLS,
        timeout or config.COUNTRIES_TIMEOUT,
        _country_list,
        lambda: copy.deepcopy(STATIC_COUNTRIES),
        resource="countries",
    )
    logger.info("Got %d raw country records", len(countries))
    return countries


def fetch_exchange_rates(timeout=None) -> Dict[str, float]:
    """USD-based exchange rates; degrades to ``{"USD": 1.0}``."""
    return fetch_first(
        config.EXCHANGE_RATE_API_URLS,
        timeout or config.EXCHANGE_RATE_TIMEOUT,
        _rate_mapping,
        lambda: dict(DEFAULT_RATES),
        resource="exchange rates",
    )
