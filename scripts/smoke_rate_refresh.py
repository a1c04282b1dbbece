"""Smoke script for refresh and staleness against the configured feed.

Demonstrates:
 1. Initial load timestamp and size.
 2. A forced refresh replacing the table wholesale.
 3. Staleness after backdating the snapshot beyond rates_max_age_seconds.
 4. A refresh against an unreachable endpoint leaving the table untouched.
"""

from dataclasses import replace
from datetime import timedelta
from pprint import pprint

from fxconvert.core.config import get_settings
from fxconvert.core.errors import FetchError
from fxconvert.services.rates.conversion import Converter
from fxconvert.services.rates.providers import XmlFeedRateSource


def run():
    settings = get_settings()
    converter = Converter(settings=settings)
    out = {"initial": {}, "refreshed": {}, "stale": {}, "failed_refresh": {}}

    out["initial"] = {"count": len(converter.snapshot.rates), "loaded_at": converter.loaded_at}

    converter.refresh()
    out["refreshed"] = {"count": len(converter.snapshot.rates), "loaded_at": converter.loaded_at}

    table = converter._table  # type: ignore[attr-defined]
    table._snapshot = replace(  # type: ignore[attr-defined]
        table.snapshot,
        fetched_at=table.snapshot.fetched_at
        - timedelta(seconds=settings.rates_max_age_seconds + 5),
    )
    out["stale"] = {"is_stale": converter.is_stale()}

    before = dict(converter.snapshot.rates)
    converter._source = XmlFeedRateSource("http://127.0.0.1:9/rates.xml", timeout=1.0, retries=0)  # type: ignore[attr-defined]
    try:
        converter.refresh()
    except FetchError as e:
        out["failed_refresh"] = {"error": str(e), "unchanged": before == dict(converter.snapshot.rates)}

    pprint(out)


if __name__ == "__main__":
    run()
