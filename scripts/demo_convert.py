"""Demo entry point: build a Converter from the configured feed and print the
classic sample conversions.

Usage:
    python scripts/demo_convert.py [RATE_SOURCE_URI] [TRANSACTION ...]

Without transactions it converts "AUD 562.5" and the batch ["JPY 5000", "CZK 62.5"].
"""

import os
import sys
from pprint import pprint

from fxconvert.core.config import get_settings
from fxconvert.core.errors import InitializationError, ParseError
from fxconvert.core.logging import init_logging
from fxconvert.services.rates.conversion import Converter


def run(argv: list[str]) -> int:
    settings = get_settings()
    init_logging(
        debug=settings.debug,
        default_currency=settings.default_currency,
        rate_source=settings.rate_source,
    )
    uri = argv[0] if argv else None
    try:
        converter = Converter(settings=settings, rate_source_uri=uri)
    except InitializationError as e:
        print(f"cannot start: {e}", file=sys.stderr)
        return 1

    transactions = argv[1:]
    if not transactions:
        try:
            print(converter.convert_one("AUD 562.5"))
        except ParseError as e:
            print(e, file=sys.stderr)
        transactions = ["JPY 5000", "CZK 62.5"]
    pprint([str(r) for r in converter.convert_many(transactions)])
    return 0


if __name__ == "__main__":
    sys.path.append(os.getcwd())
    sys.exit(run(sys.argv[1:]))
