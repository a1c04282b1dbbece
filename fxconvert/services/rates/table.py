from __future__ import annotations

"""In-memory rate table.

Design:
    - The table holds one immutable ``RateSnapshot`` (read-only mapping + fetch time).
    - ``load()`` validates and builds the next snapshot off to the side, then
      publishes it with a single attribute assignment. Readers that grabbed the
      previous snapshot keep a consistent view; nobody sees a half-built table.
    - Lookups take no lock and do no I/O.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import MappingProxyType
from typing import Dict, Mapping, Optional

logger = logging.getLogger("fxconvert.rates.table")


@dataclass(frozen=True)
class RateSnapshot:
    rates: Mapping[str, Decimal] = field(default_factory=lambda: MappingProxyType({}))
    fetched_at: Optional[datetime] = None
    source: Optional[str] = None

    def lookup(self, code: str) -> Optional[Decimal]:
        return self.rates.get(code)


_EMPTY = RateSnapshot()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RateTable:
    def __init__(self) -> None:
        self._snapshot: RateSnapshot = _EMPTY

    @property
    def snapshot(self) -> RateSnapshot:
        return self._snapshot

    @property
    def loaded_at(self) -> Optional[datetime]:
        return self._snapshot.fetched_at

    @property
    def source(self) -> Optional[str]:
        return self._snapshot.source

    def load(
        self,
        rates: Mapping[str, Decimal],
        fetched_at: Optional[datetime] = None,
        source: Optional[str] = None,
    ) -> RateSnapshot:
        """Replace the whole table.

        Raises ValueError without touching the current snapshot if any entry is
        not a strictly positive, finite Decimal keyed by a non-empty code.
        """
        staged: Dict[str, Decimal] = {}
        for code, rate in rates.items():
            if not isinstance(code, str) or not code:
                raise ValueError(f"invalid currency code {code!r}")
            if not isinstance(rate, Decimal):
                raise ValueError(f"rate for {code} must be a Decimal, got {type(rate).__name__}")
            if not rate.is_finite() or rate <= 0:
                raise ValueError(f"rate for {code} must be positive, got {rate}")
            staged[code] = rate
        snapshot = RateSnapshot(
            rates=MappingProxyType(staged),
            fetched_at=fetched_at or _utcnow(),
            source=source,
        )
        self._snapshot = snapshot
        logger.info(
            "rate table loaded: %d currencies from %s",
            len(staged),
            source or "-",
            extra={"count": len(staged)},
        )
        return snapshot

    def lookup(self, code: str) -> Optional[Decimal]:
        return self._snapshot.lookup(code)

    def age(self, now: Optional[datetime] = None) -> Optional[timedelta]:
        loaded_at = self._snapshot.fetched_at
        if loaded_at is None:
            return None
        return (now or _utcnow()) - loaded_at

    def as_dict(self) -> Dict[str, Decimal]:
        return dict(self._snapshot.rates)

    def __contains__(self, code: object) -> bool:
        return code in self._snapshot.rates

    def __len__(self) -> int:
        return len(self._snapshot.rates)
