"""Shared test fixtures."""

import httpx
import pytest
from fastapi.testclient import TestClient

from country_cache import database
from country_cache.config import Config
from country_cache.core import logic
from country_cache.migrations import apply_schema
from country_cache.models import Country, normalize_name

COUNTRIES_HOST = "restcountries.com"

SAMPLE_COUNTRIES = [
    {
        "name": "Nigeria",
        "capital": "Abuja",
        "region": "Africa",
        "population": 206139589,
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
        "name": "Antarctica",
        "region": "Polar",
        "population": 1000,
        "flag": "https://flagcdn.com/aq.svg",
    },
    {
        "name": "Atlantis",
        "capital": "Poseidonia",
        "region": "Europe",
        "population": 5000,
        "flag": "https://example.com/atlantis.svg",
        "currencies": [{"code": "ATL"}],
    },
]

SAMPLE_RATES = {"USD": 1, "NGN": 1600.23, "GHS": 15.3, "EUR": 0.92}


@pytest.fixture(autouse=True)
def app_config(tmp_path, monkeypatch):
    """Point the app at a fresh SQLite file and cache directory for each test."""
    monkeypatch.setattr(Config, "database_url", f"sqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setattr(Config, "cache_dir", str(tmp_path / "cache"))
    database.close()
    yield Config
    database.close()


@pytest.fixture
def db_ready():
    apply_schema()


@pytest.fixture
def client():
    from main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def seed_countries(db_ready):
    """Insert rows directly, bypassing the refresh routine."""

    def _seed(rows):
        def _add(db_session):
            for row in rows:
                fields = {
                    "capital": None,
                    "region": None,
                    "currency_code": None,
                    "exchange_rate": None,
                    "estimated_gdp": None,
                    "flag_url": None,
                    "last_refreshed_at": "2025-01-01T00:00:00.000Z",
                }
                fields.update(row)
                db_session.add(Country(name_key=normalize_name(fields["name"]), **fields))

        database.run_in_transaction(_add)

    return _seed


def make_client(countries=None, rates=None, countries_status=200, rates_status=200,
                countries_error=None, rates_error=None, rates_payload=None):
    """httpx client whose transport plays both external sources."""
    countries = SAMPLE_COUNTRIES if countries is None else countries
    rates = SAMPLE_RATES if rates is None else rates

    def handler(request):
        if request.url.host == COUNTRIES_HOST:
            if countries_error is not None:
                raise countries_error(request)
            return httpx.Response(countries_status, json=countries)
        if rates_error is not None:
            raise rates_error(request)
        payload = rates_payload if rates_payload is not None else {"result": "success", "rates": rates}
        return httpx.Response(rates_status, json=payload)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def external_api(monkeypatch):
    """Route refresh() through a mocked transport configured per test."""

    def _configure(**kwargs):
        monkeypatch.setattr(logic, "build_client", lambda: make_client(**kwargs))

    _configure()
    return _configure


def timeout_error(request):
    return httpx.ReadTimeout("timed out", request=request)


def connect_error(request):
    return httpx.ConnectError("connection refused", request=request)
