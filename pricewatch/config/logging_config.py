# pricewatch/config/logging_config.py

"""Logging for a pricewatch run.

Every launch writes one file, ``logs/run_<YYYYMMDD_HHMMSS>.log``, fed by
the whole ``pricewatch`` logger tree:

* ``pricewatch.detector``, ``.classifier``, ``.escalation``,
  ``.extractor`` and ``.affordance`` follow one page from classification
  through the tracking control, including each escalation tier.
* ``pricewatch.ledger``, ``.store`` and ``.cache`` record catalog and
  price-history writes, retention pruning and rejected imports.
* ``pricewatch.service`` and ``.channel`` log each request crossing the
  message boundary and every error response.
* ``pricewatch.fetcher``, ``.document``, ``.cli`` and ``.main`` cover
  page loading and the command line.

The file always gets DEBUG. The console only shows warnings unless the
caller asks for more, which ``visit --debug`` does.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from pricewatch.config.settings import Settings

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | %(module)s:%(funcName)s:%(lineno)d | "
    "%(message)s"
)
_CONSOLE_FORMAT = "%(levelname)-8s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    logs_dir: Path | None = None,
    console_level: int = logging.WARNING,
) -> Path:
    """Attach the run log and console handlers to ``pricewatch``.

    Args:
        logs_dir: Directory for the run log. Defaults to
            ``Settings.LOGS_DIR``.
        console_level: Threshold for records echoed to stderr.

    Returns:
        The path of this run's log file.
    """
    directory = logs_dir or Settings.LOGS_DIR
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / datetime.now().strftime("run_%Y%m%d_%H%M%S.log")

    project_logger = logging.getLogger("pricewatch")
    project_logger.setLevel(logging.DEBUG)

    # Repeated calls (e.g. tests) keep the first run's handlers
    if project_logger.handlers:
        return log_file

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, _DATE_FORMAT))

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))

    project_logger.addHandler(file_handler)
    project_logger.addHandler(console_handler)
    project_logger.debug(
        "Run log %s, console level %s",
        log_file,
        logging.getLevelName(console_level),
    )
    return log_file
