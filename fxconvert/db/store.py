"""Persistence for the last good rate snapshots.

The converter never reads from here per conversion; the store only records
each published snapshot and can replay the newest one through the 'stored'
rate source when the remote feed is unavailable at startup.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Dict, Mapping, Optional

from .schema import init_db


@dataclass(frozen=True)
class StoredSnapshot:
    id: int
    source: str
    fetched_at: datetime
    rates: Dict[str, Decimal]


class RateSnapshotStore:
    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._initialized = False

    # ------------------------------------------------------------------
    # Connection helpers
    def init(self) -> None:
        init_db(self.db_path)
        self._initialized = True

    def _connect(self) -> sqlite3.Connection:
        if not self._initialized:
            self.init()
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    # ------------------------------------------------------------------
    def save_snapshot(
        self, rates: Mapping[str, Decimal], fetched_at: datetime, source: str
    ) -> int:
        """Write a whole snapshot in one transaction and return its id."""
        conn = self._connect()
        try:
            with conn:
                cur = conn.cursor()
                cur.execute(
                    "INSERT INTO rate_snapshots (source, fetched_at) VALUES (?, ?)",
                    (source, fetched_at.isoformat()),
                )
                snapshot_id = int(cur.lastrowid)
                # Multi-row insert in one statement batch.
                cur.executemany(
                    "INSERT INTO snapshot_rates (snapshot_id, currency, rate) VALUES (?, ?, ?)",
                    [(snapshot_id, code, str(rate)) for code, rate in rates.items()],
                )
            return snapshot_id
        finally:
            conn.close()

    def latest_snapshot(self) -> Optional[StoredSnapshot]:
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT id, source, fetched_at FROM rate_snapshots ORDER BY id DESC LIMIT 1"
            )
            row = cur.fetchone()
            if not row:
                return None
            cur.execute(
                "SELECT currency, rate FROM snapshot_rates WHERE snapshot_id = ?",
                (row["id"],),
            )
            rates = {r["currency"]: Decimal(r["rate"]) for r in cur.fetchall()}
            return StoredSnapshot(
                id=int(row["id"]),
                source=row["source"],
                fetched_at=datetime.fromisoformat(row["fetched_at"]),
                rates=rates,
            )
        finally:
            conn.close()

    def count_snapshots(self) -> int:
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM rate_snapshots")
            return int(cur.fetchone()[0])
        finally:
            conn.close()

    def prune(self, keep: int) -> int:
        """Delete all but the newest ``keep`` snapshots; return how many were removed."""
        if keep < 1:
            raise ValueError("keep must be at least 1")
        conn = self._connect()
        try:
            with conn:
                cur = conn.cursor()
                cur.execute(
                    """
                    DELETE FROM rate_snapshots
                    WHERE id NOT IN (
                        SELECT id FROM rate_snapshots ORDER BY id DESC LIMIT ?
                    )
                    """,
                    (keep,),
                )
                return cur.rowcount
        finally:
            conn.close()
