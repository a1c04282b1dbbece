from pathlib import Path

import pytest

from fxconvert.core.config import Settings


def test_defaults(monkeypatch):
    for var in ("DEFAULT_CURRENCY", "RATE_SOURCE", "RATE_SOURCE_URI"):
        monkeypatch.delenv(var, raising=False)
    s = Settings(_env_file=None)
    s.init_post_load()

    assert s.default_currency == "USD"
    assert s.rate_source == "xml-feed"
    assert s.rate_source_uri == "http://toolserver.org/~kaldari/rates.xml"
    assert s.db_path == Path("data") / "rates.sqlite3"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DEFAULT_CURRENCY", "EUR")
    monkeypatch.setenv("RATE_SOURCE_URI", "http://rates.example/feed.xml")
    monkeypatch.setenv("RATES_MAX_AGE_SECONDS", "60")

    s = Settings(_env_file=None)

    assert s.default_currency == "EUR"
    assert s.rate_source_uri == "http://rates.example/feed.xml"
    assert s.rates_max_age_seconds == 60


def test_unknown_rate_source_rejected():
    s = Settings(rate_source="fax", _env_file=None)

    with pytest.raises(ValueError):
        s.init_post_load()


def test_bad_default_currency_rejected():
    s = Settings(default_currency="U S D", _env_file=None)

    with pytest.raises(ValueError):
        s.init_post_load()
