from __future__ import annotations

"""Concrete rate sources and factory.

'xml-feed' reads the classic ``<conversion><currency/><rate/></conversion>`` feed,
'json-feed' reads JSON record lists or base-quoted rate maps, 'static' serves a
fixed mapping and 'stored' replays the last snapshot persisted to SQLite.
"""
import logging
import sqlite3
import xml.etree.ElementTree as ET
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, TYPE_CHECKING

from fxconvert.core.errors import FetchError
from fxconvert.db.store import RateSnapshotStore
from fxconvert.services.http_client import HttpError, get_bytes, get_json
from fxconvert.services.money import to_decimal
from .base import RateSource, build_snapshot, snapshot_from_mapping

if TYPE_CHECKING:  # pragma: no cover
    from fxconvert.core.config import Settings

logger = logging.getLogger("fxconvert.rates.providers")


class StaticRateSource(RateSource):
    name = "static"

    def __init__(self, rates: Mapping[str, object]):
        self._rates = dict(rates)

    def fetch(self, timeout: Optional[float] = None) -> Dict[str, Decimal]:  # type: ignore[override]
        return snapshot_from_mapping(self._rates, self.name)


class _HTTPFeedSource(RateSource):
    def __init__(self, uri: str, *, timeout: float = 10.0, retries: int = 2):
        self.uri = uri
        self.timeout = timeout
        self.retries = retries


class XmlFeedRateSource(_HTTPFeedSource):
    name = "xml-feed"

    def fetch(self, timeout: Optional[float] = None) -> Dict[str, Decimal]:  # type: ignore[override]
        logger.info("fetching XML rate feed %s", self.uri)
        try:
            body = get_bytes(
                self.uri,
                timeout=timeout if timeout is not None else self.timeout,
                retries=self.retries,
            )
        except HttpError as e:
            raise FetchError(str(e)) from e
        return parse_xml_feed(body, self.uri)


class JsonFeedRateSource(_HTTPFeedSource):
    name = "json-feed"

    def __init__(self, uri: str, *, default_currency: str = "USD", **kwargs: Any):
        super().__init__(uri, **kwargs)
        self.default_currency = default_currency

    def fetch(self, timeout: Optional[float] = None) -> Dict[str, Decimal]:  # type: ignore[override]
        logger.info("fetching JSON rate feed %s", self.uri)
        try:
            data = get_json(
                self.uri,
                timeout=timeout if timeout is not None else self.timeout,
                retries=self.retries,
            )
        except HttpError as e:
            raise FetchError(str(e)) from e
        return parse_json_feed(data, self.uri, self.default_currency)


class StoredRateSource(RateSource):
    name = "stored"

    def __init__(self, db_path: Path):
        self.db_path = db_path

    def fetch(self, timeout: Optional[float] = None) -> Dict[str, Decimal]:  # type: ignore[override]
        try:
            stored = RateSnapshotStore(self.db_path).latest_snapshot()
        except sqlite3.Error as e:
            raise FetchError(f"cannot read stored snapshot from {self.db_path}: {e}") from e
        if stored is None:
            raise FetchError(f"no stored snapshot in {self.db_path}")
        logger.info(
            "replaying stored snapshot %d from %s (fetched %s)",
            stored.id,
            stored.source,
            stored.fetched_at.isoformat(),
        )
        return snapshot_from_mapping(stored.rates, self.name)


def parse_xml_feed(body: bytes, source: str) -> Dict[str, Decimal]:
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise FetchError(f"unparseable XML from {source}: {e}") from e
    entries: List[Tuple[object, object]] = []
    for conversion in root.iter("conversion"):
        entries.append((conversion.findtext("currency"), conversion.findtext("rate")))
    return build_snapshot(entries, source)


def parse_json_feed(data: Any, source: str, default_currency: str) -> Dict[str, Decimal]:
    """Accept ``[{"currency", "rate"}]``, ``{"conversions": [...]}`` or
    ``{"base": <default>, "rates": {code: units_per_base}}``.

    Base-quoted rates give units of ``code`` per one default unit, so they are
    inverted into the default-currency direction.
    """
    if isinstance(data, dict) and isinstance(data.get("rates"), dict):
        base = data.get("base") or data.get("base_code")
        if base is not None and base != default_currency:
            raise FetchError(
                f"{source} quotes rates against {base}, expected {default_currency}"
            )
        return build_snapshot(_inverted(data["rates"]), source)
    if isinstance(data, dict) and isinstance(data.get("conversions"), list):
        data = data["conversions"]
    if not isinstance(data, list):
        raise FetchError(f"unrecognized JSON rate document from {source}")
    entries: List[Tuple[object, object]] = []
    for item in data:
        if isinstance(item, dict):
            entries.append((item.get("currency"), item.get("rate")))
        else:
            entries.append((None, item))
    return build_snapshot(entries, source)


def _inverted(rates: Mapping[str, Any]) -> List[Tuple[object, object]]:
    entries: List[Tuple[object, object]] = []
    for code, value in rates.items():
        try:
            units = to_decimal(value)
        except ValueError:
            entries.append((code, value))  # rejected by build_snapshot
            continue
        entries.append((code, Decimal(1) / units if units > 0 else units))
    return entries


_SOURCE_REGISTRY = {
    "xml-feed": XmlFeedRateSource,
    "json-feed": JsonFeedRateSource,
    "static": StaticRateSource,
    "stored": StoredRateSource,
}


def make_rate_source(
    kind: str, settings: "Settings", uri: Optional[str] = None
) -> RateSource:
    cls = _SOURCE_REGISTRY.get(kind)
    if not cls:
        raise ValueError(f"Unknown rate source kind '{kind}'")
    endpoint = uri or settings.rate_source_uri
    if cls is XmlFeedRateSource:
        return XmlFeedRateSource(
            endpoint,
            timeout=settings.http_timeout_seconds,
            retries=settings.http_retries,
        )
    if cls is JsonFeedRateSource:
        return JsonFeedRateSource(
            endpoint,
            default_currency=settings.default_currency,
            timeout=settings.http_timeout_seconds,
            retries=settings.http_retries,
        )
    if cls is StoredRateSource:
        return StoredRateSource(settings.db_path or settings.data_dir / settings.db_filename)
    # A configured static source serves only the default currency at parity.
    return StaticRateSource({settings.default_currency: "1"})
