# pricewatch/storage/kv_store.py

"""SQLite-backed key/value document store for the ledger namespaces."""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from pricewatch.config.settings import Settings

logger = logging.getLogger("pricewatch.store")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS kv (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class SqliteKVStore:
    """Whole-document store: each key holds one JSON value.

    Callers read a full namespace, mutate it in memory and write it
    back.  A single :meth:`set` call with several keys commits them in
    one transaction.
    """

    def __init__(
        self, db_path: Path | None = None,
    ) -> None:
        path = db_path or Settings.LEDGER_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        logger.debug("SqliteKVStore opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def get(self, *keys: str) -> dict[str, Any]:
        """Return the stored values for *keys*; absent keys are omitted."""
        if not keys:
            return {}
        placeholders = ", ".join("?" for _ in keys)
        rows = self._conn.execute(
            f"SELECT key, value FROM kv WHERE key IN ({placeholders})",
            keys,
        ).fetchall()
        return {key: json.loads(value) for key, value in rows}

    def set(self, items: dict[str, Any]) -> None:
        """Write every key in *items* inside one transaction."""
        with self._conn:
            self._conn.executemany(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                [
                    (key, json.dumps(value, ensure_ascii=False))
                    for key, value in items.items()
                ],
            )
        logger.debug("Wrote keys %s", sorted(items))
