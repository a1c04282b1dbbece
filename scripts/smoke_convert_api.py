"""Smoke script for the HTTP surface with a static rate table.

Sequence:
 1. Single conversion of the sample AUD amount.
 2. Batch with a known, an unknown and a malformed item (same length back).
 3. Forced refresh and table listing.

NOTE: This is a lightweight diagnostic and not a formal test.
"""

import json
import os
import sys
import tempfile

from fastapi.testclient import TestClient

from fxconvert.core.config import Settings
from fxconvert.main import create_app
from fxconvert.services.rates.conversion import Converter

SAMPLE_RATES = {"AUD": "0.9165", "JPY": "0.00943", "CZK": "0.04412"}


def run():
    with tempfile.TemporaryDirectory() as d:
        settings = Settings(
            data_dir=d, persist_snapshots=True, rate_source="static"
        )
        settings.init_post_load()
        converter = Converter.from_rates(SAMPLE_RATES, settings=settings)
        client = TestClient(create_app(settings_override=settings, converter=converter))

        out = {
            "single": client.post("/convert", json={"transaction": "AUD 562.5"}).json(),
            "batch": client.post(
                "/convert/batch",
                json={"transactions": ["JPY 5000", "XXX 1", "CZK"]},
            ).json(),
            "refresh": client.post("/rates/refresh").json(),
            "rates": client.get("/rates").json(),
            "health": client.get("/health").json(),
        }
        print(json.dumps(out, indent=2))


if __name__ == "__main__":
    sys.path.append(os.getcwd())
    run()
