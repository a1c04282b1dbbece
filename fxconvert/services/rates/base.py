from __future__ import annotations

"""Rate source abstraction.

A rate source produces one complete snapshot of ``code -> rate`` pairs, where
``amount_in_code * rate`` is the amount in the default currency. Sources never
touch a RateTable; publishing a snapshot is the Converter's job.
"""
import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, Iterable, Mapping, Optional, Tuple

from pydantic import ValidationError

from fxconvert.core.errors import FetchError
from fxconvert.models.rates import RateRecord

logger = logging.getLogger("fxconvert.rates.source")


class RateSource(ABC):
    name: str = "abstract"

    @abstractmethod
    def fetch(self, timeout: Optional[float] = None) -> Dict[str, Decimal]:
        """Return the full snapshot or raise FetchError."""
        raise NotImplementedError


def _as_text(value: object) -> object:
    # Floats from JSON go through str() so Decimal sees the literal, not the binary value.
    if isinstance(value, float):
        return repr(value)
    return value


def build_snapshot(
    entries: Iterable[Tuple[object, object]], source: str
) -> Dict[str, Decimal]:
    """Validate raw (currency, rate) pairs and keep only the valid ones.

    Invalid entries are skipped with a warning. A document that yields no valid
    entry at all is treated as unusable and raises FetchError.
    """
    snapshot: Dict[str, Decimal] = {}
    skipped = 0
    for currency, rate in entries:
        try:
            record = RateRecord(currency=currency, rate=_as_text(rate))
        except ValidationError as e:
            skipped += 1
            logger.warning(
                "skipping invalid rate entry from %s: currency=%r rate=%r (%s)",
                source,
                currency,
                rate,
                e.errors()[0].get("msg", "invalid"),
            )
            continue
        if record.currency in snapshot:
            logger.warning("duplicate rate for %s from %s; keeping last", record.currency, source)
        snapshot[record.currency] = record.rate
    if not snapshot:
        raise FetchError(f"{source} returned no valid rates ({skipped} skipped)")
    logger.info("fetched %d rates from %s (%d skipped)", len(snapshot), source, skipped)
    return snapshot


def snapshot_from_mapping(rates: Mapping[str, object], source: str) -> Dict[str, Decimal]:
    return build_snapshot(rates.items(), source)
