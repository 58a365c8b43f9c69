"""SQLite-backed audio location cache.

Single WAL-mode database mapping track id -> resolved URL. Thread-safe via
per-thread connections and SQLite's built-in locking, so resolver worker
threads can read and write concurrently.
"""

from __future__ import annotations

import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from ..models import RequesterInfo

log = logger.bind(stage="db")

_SCHEMA = """\
PRAGMA journal_mode=WAL;
PRAGMA busy_timeout=5000;

CREATE TABLE IF NOT EXISTS audio_locations (
    track_id    TEXT PRIMARY KEY,
    url         TEXT NOT NULL,
    stored_by   TEXT,
    updated_at  TEXT NOT NULL
);
"""


def _utcnow() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class SQLiteLocationDB:
    """Database collaborator storing resolved audio locations.

    Thread-safe: each thread gets its own connection via threading.local().
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._local = threading.local()
        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create a per-thread SQLite connection."""
        conn = getattr(self._local, "conn", None)
        if conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), timeout=10.0)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA busy_timeout=5000")
            self._local.conn = conn
        return conn

    def _init_schema(self) -> None:
        conn = self._get_conn()
        conn.executescript(_SCHEMA)
        conn.commit()

    def close(self) -> None:
        """Close the current thread's connection."""
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None

    def store_audio_location(
        self, track_id: str, url: str, requester: RequesterInfo | None = None
    ) -> None:
        conn = self._get_conn()
        conn.execute(
            """INSERT INTO audio_locations (track_id, url, stored_by, updated_at)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(track_id) DO UPDATE SET
                   url = excluded.url,
                   stored_by = excluded.stored_by,
                   updated_at = excluded.updated_at""",
            (track_id, url, requester.user_uid if requester else None, _utcnow()),
        )
        conn.commit()
        log.debug(f"Stored location for {track_id}: {url}")

    def provide_audio_location(
        self, track_id: str, requester: RequesterInfo | None = None
    ) -> str | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT url FROM audio_locations WHERE track_id = ?", (track_id,)
        ).fetchone()
        if row is None:
            return None
        return row["url"]

    def forget_audio_location(self, track_id: str) -> bool:
        """Drop a cached location. Returns True if one existed."""
        conn = self._get_conn()
        cur = conn.execute(
            "DELETE FROM audio_locations WHERE track_id = ?", (track_id,)
        )
        conn.commit()
        return cur.rowcount > 0
