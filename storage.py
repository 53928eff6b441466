"""SQLite key/value persistence for session, journal and scenario records."""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

logger = logging.getLogger("sickday-storage")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_records (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

SESSION_KEY = "sick_day_session"
JOURNAL_KEY = "sick_day_journal"
SCENARIO_KEY = "scenario_state"


class KeyValueStore:
    """One JSON document per key. Writes replace the whole record."""

    def __init__(self, db_path: Path | str) -> None:
        """Create store and ensure schema exists."""
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    def get_json(self, key: str) -> Any | None:
        """Return the decoded value, or None when the key is absent."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM kv_records WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return None
        return json.loads(row["value"])

    def set_json(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO kv_records(key, value, updated_at)
                VALUES(?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value=excluded.value,
                    updated_at=excluded.updated_at
                """,
                (key, payload),
            )
            conn.commit()
        logger.debug("Stored %s (%d bytes)", key, len(payload))

    def delete(self, key: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM kv_records WHERE key = ?", (key,))
            conn.commit()
        return cur.rowcount > 0
