"""SQLite schema for persisted rate snapshots.

Tables:
  - rate_snapshots: one row per successfully loaded snapshot (source, fetch time)
  - snapshot_rates: the (currency, rate) rows of a snapshot; rates kept as TEXT
    so Decimal precision survives the round trip
"""

from __future__ import annotations
import sqlite3
from typing import Sequence
from pathlib import Path

BASIC_UTC_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"

RATE_SNAPSHOTS_DDL = f"""
CREATE TABLE IF NOT EXISTS rate_snapshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    source TEXT NOT NULL,
    fetched_at TEXT NOT NULL, -- ISO timestamp (UTC)
    created_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

SNAPSHOT_RATES_DDL = """
CREATE TABLE IF NOT EXISTS snapshot_rates (
    snapshot_id INTEGER NOT NULL,
    currency TEXT NOT NULL,
    rate TEXT NOT NULL, -- Decimal literal
    PRIMARY KEY (snapshot_id, currency),
    FOREIGN KEY (snapshot_id) REFERENCES rate_snapshots(id) ON DELETE CASCADE
);
"""

DDL_ORDER: Sequence[str] = (
    RATE_SNAPSHOTS_DDL,
    SNAPSHOT_RATES_DDL,
)


def init_db(path: Path) -> None:
    """Create all tables idempotently.

    Parameters
    ----------
    path: Path to SQLite database file.
    """
    conn = sqlite3.connect(path)
    try:
        cur = conn.cursor()
        for ddl in DDL_ORDER:
            cur.execute(ddl)
        conn.commit()
    finally:
        conn.close()
