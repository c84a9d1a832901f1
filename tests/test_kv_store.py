# tests/test_kv_store.py

"""Tests for the SQLite key/value store."""

import tempfile
import unittest
from pathlib import Path

from pricewatch.storage.kv_store import SqliteKVStore


class TestSqliteKVStore(unittest.TestCase):
    """SqliteKVStore unit tests."""

    def setUp(self) -> None:
        self.tmp_dir = tempfile.mkdtemp()
        self.db_path = Path(self.tmp_dir) / "kv.db"
        self.store = SqliteKVStore(self.db_path)

    def tearDown(self) -> None:
        self.store.close()

    def test_missing_keys_omitted(self) -> None:
        self.assertEqual(self.store.get("trackedProducts"), {})

    def test_no_keys_returns_empty(self) -> None:
        self.assertEqual(self.store.get(), {})

    def test_set_and_get_multiple(self) -> None:
        """Several keys written in one call are all readable."""
        self.store.set({"a": {"x": 1}, "b": [1, 2, 3]})
        self.assertEqual(
            self.store.get("a", "b"), {"a": {"x": 1}, "b": [1, 2, 3]},
        )

    def test_overwrite(self) -> None:
        self.store.set({"a": 1})
        self.store.set({"a": 2})
        self.assertEqual(self.store.get("a"), {"a": 2})

    def test_unicode_values(self) -> None:
        self.store.set({"title": "ワイヤレスイヤホン ¥12,345"})
        self.assertEqual(
            self.store.get("title")["title"], "ワイヤレスイヤホン ¥12,345",
        )

    def test_persists_across_connections(self) -> None:
        """A second store on the same file sees committed writes."""
        self.store.set({"a": {"k": "v"}})
        other = SqliteKVStore(self.db_path)
        try:
            self.assertEqual(other.get("a"), {"a": {"k": "v"}})
        finally:
            other.close()

    def test_creates_parent_directory(self) -> None:
        nested = Path(self.tmp_dir) / "deep" / "er" / "kv.db"
        store = SqliteKVStore(nested)
        store.close()
        self.assertTrue(nested.exists())


if __name__ == "__main__":
    unittest.main()
