# pricewatch/pages/fetcher.py

"""Load a product page the user asked to visit."""

import logging
import time
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import cloudscraper  # type: ignore[import-untyped]
from curl_cffi import requests as curl_requests

from pricewatch.config.settings import Settings
from pricewatch.pages.document import SoupDocument

logger = logging.getLogger("pricewatch.fetcher")


def load_html_file(path: Path, url: str) -> SoupDocument:
    """Open a saved page from disk as if it had been loaded from *url*."""
    with open(path, encoding="utf-8") as f:
        html = f.read()
    logger.debug("Loaded %d bytes of HTML from %s", len(html), path)
    return SoupDocument(html, url)


class PageFetcher:
    """Fetches one page per user visit; there is no background polling."""

    def __init__(self) -> None:
        self.settings = Settings()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )

    def _headers(self, url: str) -> dict[str, str]:
        parsed = urlparse(url)
        return {
            **self.settings.DEFAULT_HEADERS,
            "Referer": f"{parsed.scheme}://{parsed.netloc}/",
        }

    def _fetch_get(self, url: str) -> curl_requests.Response | None:
        """GET with a bounded number of attempts."""
        headers = self._headers(url)
        for attempt in range(self.settings.MAX_RETRIES):
            try:
                resp = self.session.get(
                    url,
                    headers=headers,
                    timeout=self.settings.REQUEST_TIMEOUT,
                )
                if resp.status_code == 200:
                    return resp
                logger.warning(
                    "HTTP %d for %s on attempt %d",
                    resp.status_code,
                    url,
                    attempt + 1,
                )
            except Exception as exc:
                logger.warning(
                    "Request error for %s on attempt %d: %s",
                    url,
                    attempt + 1,
                    exc,
                    exc_info=True,
                )
            time.sleep(self.settings.REQUEST_DELAY * (attempt + 1))
        return None

    def fetch(self, url: str) -> SoupDocument | None:
        """Fetch *url*, falling back to cloudscraper when curl_cffi fails."""
        resp = self._fetch_get(url)
        if resp is not None:
            return SoupDocument(resp.text, url)

        logger.info(
            "curl_cffi exhausted for %s, falling back to cloudscraper", url,
        )
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            fallback_resp: Any = scraper.get(
                url,
                headers=self._headers(url),
                timeout=self.settings.REQUEST_TIMEOUT,
            )
            if fallback_resp.status_code == 200:
                return SoupDocument(str(fallback_resp.text), url)
            logger.warning(
                "cloudscraper returned HTTP %d for %s",
                fallback_resp.status_code,
                url,
            )
        except Exception as exc:
            logger.error(
                "cloudscraper fallback also failed for %s: %s",
                url,
                exc,
                exc_info=True,
            )
        return None
