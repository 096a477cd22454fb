import math
import random

MULTIPLIER_MIN = 1000
MULTIPLIER_MAX = 2000
DEFAULT_RATE = 1.0


def resolve_rate(currency_code, rates):
    """Look up the USD exchange rate for ``currency_code``.

    Unknown codes, and rates that are not usable divisors, resolve to 1.
    """
    value = (rates or {}).get(currency_code)
    try:
        rate = float(value)
    except (TypeError, ValueError):
        return DEFAULT_RATE
    if not math.isfinite(rate) or rate <= 0:
        return DEFAULT_RATE
    return rate


def estimate_gdp(population, rate):
    """Synthetic GDP: population times a random 1000..2000 multiplier over the rate.

    Not reproducible; every call draws a fresh multiplier.
    """
    if population < 0:
        raise ValueError(f"population must be non-negative, got {population}")
    if rate <= 0:
        raise ValueError(f"exchange rate must be positive, got {rate}")
    multiplier = random.randint(MULTIPLIER_MIN, MULTIPLIER_MAX)
    return population * multiplier / rate
