from __future__ import annotations

"""Default-currency conversion over an in-memory rate table.

Responsibilities:
    - Load the rate table once at construction (and again on ``refresh()``).
    - Parse ``"<CODE> <amount>"`` transactions and convert them with pure lookups.
    - Apply rounding (ROUND_HALF_UP to cents) in a single place.
    - Return explicit result values: ``ConversionResult`` on success,
      ``UnknownCurrency`` when the feed has no rate for the code, and
      ``ParseFailure`` for malformed items inside a batch.
"""
import logging
import re
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import ClassVar, Iterable, List, Mapping, Optional, Tuple, Union

from fxconvert.core.config import Settings, get_settings
from fxconvert.core.errors import FetchError, InitializationError, ParseError
from fxconvert.db.store import RateSnapshotStore
from fxconvert.services.money import format_amount, multiply_round2, to_decimal
from .base import RateSource
from .providers import StaticRateSource, make_rate_source
from .table import RateSnapshot, RateTable

logger = logging.getLogger("fxconvert.rates.conversion")

_AMOUNT_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")


@dataclass(frozen=True)
class Transaction:
    code: str
    amount: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.code, str) or not self.code or " " in self.code:
            raise ParseError(repr(self.code), "currency code must be a non-empty token")
        if not isinstance(self.amount, Decimal):
            try:
                object.__setattr__(self, "amount", to_decimal(self.amount))
            except ValueError as e:
                raise ParseError(repr(self.amount), str(e)) from e
        elif not self.amount.is_finite():
            raise ParseError(str(self.amount), "amount must be finite")

    @classmethod
    def parse(cls, text: str) -> "Transaction":
        if not isinstance(text, str):
            raise ParseError(repr(text), "transaction must be text")
        parts = text.strip().split(" ")
        if len(parts) != 2:
            raise ParseError(text, "expected '<CODE> <amount>' separated by one space")
        code, amount = parts
        if not code:
            raise ParseError(text, "missing currency code")
        if not _AMOUNT_RE.fullmatch(amount):
            raise ParseError(text, f"amount {amount!r} is not a decimal number")
        return cls(code=code, amount=Decimal(amount))

    def __str__(self) -> str:
        return f"{self.code} {self.amount}"


@dataclass(frozen=True)
class ConversionResult:
    ok: ClassVar[bool] = True

    currency: str
    amount: Decimal
    rate: Decimal
    source: Transaction

    def __str__(self) -> str:
        return format_amount(self.currency, self.amount)


@dataclass(frozen=True)
class UnknownCurrency:
    ok: ClassVar[bool] = False

    code: str
    source: Transaction

    def __str__(self) -> str:
        return f"unknown currency {self.code}"


@dataclass(frozen=True)
class ParseFailure:
    ok: ClassVar[bool] = False

    text: str
    reason: str

    def __str__(self) -> str:
        return f"cannot parse {self.text!r}: {self.reason}"


Outcome = Union[ConversionResult, UnknownCurrency]
BatchOutcome = Union[ConversionResult, UnknownCurrency, ParseFailure]
TransactionLike = Union[str, Transaction, Tuple[str, object]]


class Converter:
    """Converts foreign-currency amounts into one default currency.

    Construction fetches the first snapshot; a converter never exists without
    rate data. ``convert_one``/``convert_many`` do no I/O.
    """

    def __init__(
        self,
        source: Optional[RateSource] = None,
        *,
        settings: Optional[Settings] = None,
        rate_source_uri: Optional[str] = None,
        default_currency: Optional[str] = None,
        store: Optional[RateSnapshotStore] = None,
        max_age: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        settings = settings or get_settings()
        if default_currency and default_currency != settings.default_currency:
            settings = settings.model_copy(update={"default_currency": default_currency})
        self._settings = settings
        self.default_currency = settings.default_currency
        if source is not None and rate_source_uri is not None:
            raise ValueError("pass either an explicit source or rate_source_uri, not both")
        if source is None:
            source = make_rate_source(settings.rate_source, settings, uri=rate_source_uri)
        self._source = source
        if store is None and settings.persist_snapshots:
            store = RateSnapshotStore(settings.db_path or settings.data_dir / settings.db_filename)
        self._store = store
        seconds = settings.rates_max_age_seconds if max_age is None else max_age
        self._max_age = timedelta(seconds=seconds)
        self._table = RateTable()
        self._refresh_lock = threading.Lock()
        try:
            self.refresh(timeout=timeout)
        except FetchError as e:
            raise InitializationError(
                f"could not load initial rates from {source.name}: {e}"
            ) from e

    @classmethod
    def from_rates(
        cls, rates: Mapping[str, object], default_currency: str = "USD", **kwargs
    ) -> "Converter":
        return cls(StaticRateSource(rates), default_currency=default_currency, **kwargs)

    # Rate data -------------------------------------------------
    @property
    def source(self) -> RateSource:
        return self._source

    @property
    def snapshot(self) -> RateSnapshot:
        return self._table.snapshot

    @property
    def loaded_at(self) -> Optional[datetime]:
        return self._table.loaded_at

    def lookup(self, code: str) -> Optional[Decimal]:
        return self._table.lookup(code)

    def refresh(self, timeout: Optional[float] = None) -> RateSnapshot:
        """Fetch a new snapshot and swap it in; the old one stays on any failure."""
        with self._refresh_lock:
            try:
                fetched = self._source.fetch(timeout=timeout)
                try:
                    snapshot = self._table.load(fetched, source=self._source.name)
                except ValueError as e:
                    raise FetchError(f"{self._source.name} snapshot rejected: {e}") from e
            except FetchError as e:
                logger.warning("rate refresh failed, keeping %d cached rates: %s", len(self._table), e)
                raise
            # Persist under the lock so stored order matches publication order.
            self._persist(snapshot)
        return snapshot

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        if self._max_age.total_seconds() <= 0:
            return False
        age = self._table.age(now)
        return age is None or age > self._max_age

    def refresh_if_stale(self, timeout: Optional[float] = None) -> bool:
        if not self.is_stale():
            return False
        self.refresh(timeout=timeout)
        return True

    def _persist(self, snapshot: RateSnapshot) -> None:
        if self._store is None or self._source.name == "stored":
            return
        try:
            snapshot_id = self._store.save_snapshot(
                snapshot.rates, snapshot.fetched_at, snapshot.source or self._source.name  # type: ignore[arg-type]
            )
            self._store.prune(self._settings.snapshot_keep)
            logger.debug("persisted rate snapshot %d", snapshot_id, extra={"snapshot_id": snapshot_id})
        except (sqlite3.Error, OSError):
            logger.exception("failed to persist rate snapshot")

    # Conversion ------------------------------------------------
    def convert_one(self, transaction: TransactionLike) -> Outcome:
        """Convert one transaction; raises ParseError for malformed text."""
        return self._convert(self._coerce(transaction), self._table.snapshot)

    def convert_many(self, transactions: Iterable[TransactionLike]) -> List[BatchOutcome]:
        """Convert a batch in order, one outcome per input item.

        All items are resolved against the same snapshot even if a refresh lands
        mid-batch. Malformed items become ParseFailure slots.
        """
        snapshot = self._table.snapshot
        results: List[BatchOutcome] = []
        for item in transactions:
            try:
                tx = self._coerce(item)
            except ParseError as e:
                logger.debug("batch item not parseable: %s", e)
                results.append(ParseFailure(text=str(item), reason=e.reason))
                continue
            results.append(self._convert(tx, snapshot))
        return results

    def _coerce(self, transaction: TransactionLike) -> Transaction:
        if isinstance(transaction, Transaction):
            return transaction
        if isinstance(transaction, str):
            return Transaction.parse(transaction)
        if isinstance(transaction, tuple) and len(transaction) == 2:
            return Transaction(code=transaction[0], amount=transaction[1])  # type: ignore[arg-type]
        raise ParseError(repr(transaction), "unsupported transaction type")

    def _convert(self, tx: Transaction, snapshot: RateSnapshot) -> Outcome:
        rate = snapshot.lookup(tx.code)
        if rate is None and tx.code == self.default_currency:
            rate = Decimal(1)
        if rate is None:
            logger.info("no rate for %s", tx.code, extra={"currency": tx.code})
            return UnknownCurrency(code=tx.code, source=tx)
        return ConversionResult(
            currency=self.default_currency,
            amount=multiply_round2(tx.amount, rate),
            rate=rate,
            source=tx,
        )
