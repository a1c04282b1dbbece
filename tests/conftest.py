from decimal import Decimal
from typing import Dict, Optional

import pytest

from fxconvert.core.config import Settings
from fxconvert.core.errors import FetchError
from fxconvert.services.rates.base import RateSource
from fxconvert.services.rates.conversion import Converter

SAMPLE_RATES = {"AUD": "0.9165", "JPY": "0.00943", "CZK": "0.04412", "CHF": "1.1"}


class ScriptedSource(RateSource):
    """Rate source returning queued snapshots, or raising queued FetchErrors."""

    name = "scripted"

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = 0
        self.timeouts = []

    def fetch(self, timeout: Optional[float] = None) -> Dict[str, Decimal]:
        self.calls += 1
        self.timeouts.append(timeout)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return {code: Decimal(str(rate)) for code, rate in response.items()}


@pytest.fixture
def settings(tmp_path):
    s = Settings(
        rate_source="static",
        default_currency="USD",
        rates_max_age_seconds=3600,
        data_dir=tmp_path,
        persist_snapshots=False,
        _env_file=None,
    )
    s.init_post_load()
    return s


@pytest.fixture
def converter(settings):
    return Converter.from_rates(SAMPLE_RATES, settings=settings)


@pytest.fixture
def scripted():
    return ScriptedSource


@pytest.fixture
def fetch_error():
    return FetchError("feed unreachable")
