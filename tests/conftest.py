import os
import tempfile

# Must run before config/db are imported anywhere.
_TMP = tempfile.mkdtemp(prefix="country-cache-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_TMP, "test.db")
os.environ["CACHE_DIR"] = os.path.join(_TMP, "cache")
os.environ["COUNTRIES_API_URLS"] = "https://countries.test/v3.1/all,https://countries.test/v2/all"
os.environ["EXCHANGE_RATE_API_URLS"] = "https://rates.test/v6/latest/USD,https://rates.test/v4/latest/USD"

import pytest
import requests

import config
import db as database
import service
from schema import Base

COUNTRIES_V3_URL, COUNTRIES_V2_URL = config.COUNTRIES_API_URLS
RATES_PRIMARY_URL, RATES_SECONDARY_URL = config.EXCHANGE_RATE_API_URLS

V3_COUNTRIES = [
    {
        "name": {"common": "Japan", "official": "Japan"},
        "capital": ["Tokyo"],
        "region": "Asia",
        "population": 125836021,
        "currencies": {"JPY": {"name": "Japanese yen", "symbol": "¥"}},
        "flags": {"png": "https://flagcdn.com/w320/jp.png", "svg": "https://flagcdn.com/jp.svg"},
    },
    {
        "name": {"common": "Germany", "official": "Federal Republic of Germany"},
        "capital": ["Berlin"],
        "region": "Europe",
        "population": 83240525,
        "currencies": {"EUR": {"name": "Euro", "symbol": "€"}},
        "flags": {"png": "https://flagcdn.com/w320/de.png", "svg": "https://flagcdn.com/de.svg"},
    },
    {
        "name": {"common": "France", "official": "French Republic"},
        "capital": ["Paris"],
        "region": "Europe",
        "population": 67391582,
        "currencies": {"EUR": {"name": "Euro", "symbol": "€"}},
        "flags": {"png": "https://flagcdn.com/w320/fr.png"},
    },
    {
        "name": {"common": "Antarctica", "official": "Antarctica"},
        "capital": [],
        "region": "Antarctic",
        "population": 1000,
        "currencies": {},
        "flags": {"svg": "https://flagcdn.com/aq.svg"},
    },
]

RATES = {"result": "success", "base_code": "USD", "rates": {"USD": 1, "JPY": 149.5, "EUR": 0.92}}


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeUpstream:
    """Stands in for requests.get; unknown URLs behave like a dead host."""

    def __init__(self):
        self.responses = {}
        self.calls = []

    def serve(self, url, payload, status_code=200):
        self.responses[url] = FakeResponse(payload, status_code)

    def fail(self, url, exc):
        self.responses[url] = exc

    def __call__(self, url, timeout=None):
        self.calls.append((url, timeout))
        result = self.responses.get(url)
        if result is None:
            raise requests.ConnectionError(f"Failed to establish a connection to {url}")
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture()
def upstream(monkeypatch):
    fake = FakeUpstream()
    monkeypatch.setattr(service.requests, "get", fake)
    return fake


@pytest.fixture()
def image_path(tmp_path, monkeypatch):
    path = tmp_path / "cache" / "summary.png"
    monkeypatch.setattr(config, "SUMMARY_IMAGE_PATH", path)
    return path


@pytest.fixture()
def fresh_db():
    Base.metadata.drop_all(bind=database.engine)
    Base.metadata.create_all(bind=database.engine)
    yield database.engine


@pytest.fixture()
def db_session(fresh_db):
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(fresh_db, image_path):
    from fastapi.testclient import TestClient

    import main

    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()
