# tests/test_logging_config.py

"""Tests for the per-run logging configuration."""

import logging
import tempfile
import unittest
from pathlib import Path

from pricewatch.config.logging_config import setup_logging


class TestLoggingConfig(unittest.TestCase):
    """Verify logging setup behaviour."""

    def setUp(self) -> None:
        """Start each test with a bare pricewatch logger."""
        self.logs_dir = Path(tempfile.mkdtemp())
        self._reset()

    def tearDown(self) -> None:
        self._reset()

    def _reset(self) -> None:
        root_logger = logging.getLogger("pricewatch")
        for handler in list(root_logger.handlers):
            handler.close()
            root_logger.removeHandler(handler)

    def test_setup_creates_log_file(self) -> None:
        log_path = setup_logging(self.logs_dir)
        self.assertTrue(log_path.exists())
        self.assertEqual(log_path.parent, self.logs_dir)

    def test_log_file_naming_convention(self) -> None:
        """Log file name matches run_YYYYMMDD_HHMMSS.log format."""
        log_path = setup_logging(self.logs_dir)
        self.assertRegex(log_path.name, r"^run_\d{8}_\d{6}\.log$")

    def test_handler_levels(self) -> None:
        """DEBUG goes to the file, WARNING and above to the console."""
        setup_logging(self.logs_dir)
        root_logger = logging.getLogger("pricewatch")
        file_handlers = [
            h for h in root_logger.handlers
            if isinstance(h, logging.FileHandler)
        ]
        stream_handlers = [
            h for h in root_logger.handlers
            if isinstance(h, logging.StreamHandler)
            and not isinstance(h, logging.FileHandler)
        ]
        self.assertEqual(len(file_handlers), 1)
        self.assertEqual(file_handlers[0].level, logging.DEBUG)
        self.assertEqual(len(stream_handlers), 1)
        self.assertEqual(stream_handlers[0].level, logging.WARNING)

    def test_debug_runs_echo_info_to_console(self) -> None:
        """Debug visits echo INFO records to stderr as well."""
        setup_logging(self.logs_dir, console_level=logging.INFO)
        levels = [
            h.level for h in logging.getLogger("pricewatch").handlers
            if not isinstance(h, logging.FileHandler)
        ]
        self.assertEqual(levels, [logging.INFO])

    def test_repeated_setup_no_duplicate_handlers(self) -> None:
        setup_logging(self.logs_dir)
        setup_logging(self.logs_dir)
        self.assertEqual(len(logging.getLogger("pricewatch").handlers), 2)

    def test_child_logger_writes_to_file(self) -> None:
        log_path = setup_logging(self.logs_dir)
        logging.getLogger("pricewatch.ledger").info("ledger message")
        for handler in logging.getLogger("pricewatch").handlers:
            handler.flush()
        self.assertIn("ledger message", log_path.read_text(encoding="utf-8"))


if __name__ == "__main__":
    unittest.main()
