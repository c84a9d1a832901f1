# pricewatch/config/settings.py

"""Central configuration for the pricewatch tracker."""

import os
from dataclasses import dataclass
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the pricewatch tracker."""

    # --- Page detection ---
    PRODUCT_HOST_PATTERN: str = r"item\.[\w.-]+"
    DETECTION_RETRY_ATTEMPTS: int = 10     # Polling tier attempts
    DETECTION_RETRY_DELAY: float = 0.5     # Seconds before each poll
    MUTATION_WAIT_TIMEOUT: float = 5.0     # Change-driven tier budget (secs)
    STATUS_DISMISS_DELAY: float = 3.0      # Affordance status line lifetime
    MESSAGE_TIMEOUT: float = 10.0          # Detector → ledger response wait

    # --- Ledger ---
    PRICE_RETENTION_DAYS: int = 365
    EXPORT_FORMAT_VERSION: str = "1.0.0"
    DEFAULT_ALERT_THRESHOLD: float = 0.1
    DEFAULT_ALERT_TYPE: str = "both"
    PRODUCTS_KEY: str = "trackedProducts"
    HISTORY_KEY: str = "priceHistory"

    # --- Page fetching (user-initiated visits only) ---
    REQUEST_TIMEOUT: int = 15
    MAX_RETRIES: int = 3
    REQUEST_DELAY: float = 1.0
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "ja,en-US;q=0.8,en;q=0.6",
        "sec-fetch-dest": "document",
        "sec-fetch-mode": "navigate",
        "sec-fetch-site": "none",
        "sec-fetch-user": "?1",
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = (
        BASE_DIR / "pricewatch" / "config" / "selectors.json"
    )
    DATA_DIR: Path = BASE_DIR / "data"
    LEDGER_DB_PATH: Path = DATA_DIR / "ledger.db"
    LOGS_DIR: Path = BASE_DIR / "logs"


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean flag such as ``1``/``true``/``no`` from the env."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class TrackerPreferences:
    """User toggles that gate what the detector does on a page."""

    tracking_enabled: bool = True
    auto_track: bool = True
    debug_mode: bool = False

    @classmethod
    def from_env(cls) -> "TrackerPreferences":
        """Build preferences from ``PRICEWATCH_*`` environment variables."""
        return cls(
            tracking_enabled=_env_flag(
                "PRICEWATCH_TRACKING_ENABLED", True
            ),
            auto_track=_env_flag("PRICEWATCH_AUTO_TRACK", True),
            debug_mode=_env_flag("PRICEWATCH_DEBUG_MODE", False),
        )
