import pytest

from gdp import MULTIPLIER_MAX, MULTIPLIER_MIN, estimate_gdp, resolve_rate

RATES = {"USD": 1, "JPY": 149.5, "EUR": "0.92", "XXX": 0, "BAD": "n/a", "NEG": -3}


def test_known_rate():
    assert resolve_rate("JPY", RATES) == 149.5
    assert resolve_rate("EUR", RATES) == pytest.approx(0.92)


@pytest.mark.parametrize("code", ["GBP", "", None, "jpy"])
def test_unknown_code_resolves_to_one(code):
    assert resolve_rate(code, RATES) == 1.0


@pytest.mark.parametrize("code", ["XXX", "BAD", "NEG"])
def test_unusable_rate_resolves_to_one(code):
    assert resolve_rate(code, RATES) == 1.0


def test_missing_mapping_resolves_to_one():
    assert resolve_rate("JPY", None) == 1.0
    assert resolve_rate("JPY", {}) == 1.0


@pytest.mark.parametrize("population, rate", [(1, 1.0), (125836021, 149.5), (83240525, 0.92), (7, 3.0)])
def test_estimate_within_bounds(population, rate):
    for _ in range(50):
        value = estimate_gdp(population, rate)
        assert MULTIPLIER_MIN * population / rate <= value <= MULTIPLIER_MAX * population / rate


def test_zero_population_gives_zero():
    assert estimate_gdp(0, 2.5) == 0


def test_multiplier_is_an_integer_draw(monkeypatch):
    calls = []

    def fake_randint(a, b):
        calls.append((a, b))
        return 1500

    monkeypatch.setattr("gdp.random.randint", fake_randint)
    assert estimate_gdp(10, 2.0) == 7500
    assert calls == [(1000, 2000)]


def test_invalid_inputs_raise():
    with pytest.raises(ValueError):
        estimate_gdp(10, 0)
    with pytest.raises(ValueError):
        estimate_gdp(-1, 1.0)
