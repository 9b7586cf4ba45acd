"""
SQLite storage for snapshot history. Flat schema -- one row per
(run, node, file). The JSON-lines log stays the source of record; this
is for querying a single file's history without re-reading the log.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Tuple

from cgar.metrics import Snapshot

log = logging.getLogger(__name__)

DEFAULT_DB_PATH = "cgar_history.db"

SCHEMA_VERSION = 1


class SnapshotStore:

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self._db_path = db_path
        self._conn = sqlite3.connect(db_path)
        # WAL mode lets `cgar show` read while a collection run writes
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._ensure_version_table()
        self._create_table()

    def _ensure_version_table(self):
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER NOT NULL
            )
        """)
        row = self._conn.execute("SELECT version FROM schema_version").fetchone()
        if row is None:
            self._conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            self._conn.commit()

    def _get_version(self) -> int:
        row = self._conn.execute("SELECT version FROM schema_version").fetchone()
        return row[0] if row else 0

    def _create_table(self):
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS readings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp TEXT NOT NULL,
                utc_timestamp TEXT NOT NULL,
                node TEXT NOT NULL,
                file TEXT NOT NULL,
                content TEXT NOT NULL
            )
        """)
        self._conn.execute(
            "CREATE INDEX IF NOT EXISTS readings_node_file ON readings (node, file)"
        )
        self._conn.execute(
            "CREATE INDEX IF NOT EXISTS readings_utc ON readings (utc_timestamp)"
        )
        self._conn.commit()
        if self._get_version() > SCHEMA_VERSION:
            log.warning("%s has schema v%d, newer than this cgar (v%d)",
                        self._db_path, self._get_version(), SCHEMA_VERSION)

    def save(self, snapshot: Snapshot):
        stamp = snapshot.timestamp.isoformat()
        utc = _to_utc(snapshot.timestamp).isoformat()
        rows = [(stamp, utc, node, name, content) for node, name, content in snapshot.iter_files()]
        self._conn.executemany(
            "INSERT INTO readings (timestamp, utc_timestamp, node, file, content) VALUES (?, ?, ?, ?, ?)",
            rows,
        )
        self._conn.commit()
        log.debug("Stored %d readings for %s", len(rows), stamp)

    def get_recent(self, minutes: int = 10) -> List[Snapshot]:
        """Rebuild the snapshots of the last N minutes, oldest first.

        Comparison happens on the UTC column, so runs recorded under
        different local offsets still order correctly.
        """
        cutoff = (datetime.now(timezone.utc) - timedelta(minutes=minutes)).isoformat()
        cursor = self._conn.execute(
            """
            SELECT timestamp, node, file, content
            FROM readings
            WHERE utc_timestamp >= ?
            ORDER BY utc_timestamp ASC, id ASC
            """,
            (cutoff,),
        )

        by_stamp: Dict[str, Snapshot] = {}
        for stamp, node, name, content in cursor.fetchall():
            snap = by_stamp.get(stamp)
            if snap is None:
                snap = by_stamp[stamp] = Snapshot(timestamp=datetime.fromisoformat(stamp))
            snap.nodes.setdefault(node, {})[name] = content
        return list(by_stamp.values())

    def history(self, node: str, file: str) -> List[Tuple[str, str]]:
        """(timestamp, content) of one file of one node across all runs."""
        cursor = self._conn.execute(
            "SELECT timestamp, content FROM readings WHERE node = ? AND file = ? "
            "ORDER BY utc_timestamp ASC, id ASC",
            (node, file),
        )
        return [(row[0], row[1]) for row in cursor.fetchall()]

    def count(self) -> int:
        """Number of distinct runs stored."""
        cursor = self._conn.execute("SELECT COUNT(DISTINCT timestamp) FROM readings")
        return cursor.fetchone()[0]

    def close(self):
        self._conn.close()


def _to_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        ts = ts.astimezone()
    return ts.astimezone(timezone.utc)
