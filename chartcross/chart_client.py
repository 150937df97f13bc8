"""
chart_client.py — Daily Chart Page Fetcher
============================================
Retrieves one day's regional chart page as raw HTML.

URL Shape
---------
One page per (region, date), formed from a fixed template::

    https://spotifycharts.com/regional/{region}/daily/{date}

with ``{date}`` rendered as ``YYYY-MM-DD`` and ``{region}`` as a lower-case
country code path segment.

Outcomes
--------
- **200**                → ``RawPage`` carrying the markup.
- **404**                → ``RawPage`` with ``markup=None`` (the source has no
                           page for that day; not an error).
- transport error / 5xx  → retried with exponential backoff, then
                           ``FetchError``.
- any other non-2xx      → ``FetchError`` immediately.

The ingester downgrades ``FetchError`` to "no rows for this day".
"""

from __future__ import annotations

import datetime
import threading
import time
from dataclasses import dataclass
from typing import List

import requests

from chartcross.config import Settings, load_settings
from chartcross.utils import get_logger

logger = get_logger("chartcross.chart_client")

_MAX_BACKOFF_SECONDS = 30


class FetchError(Exception):
    """Raised when a chart page cannot be retrieved."""


@dataclass(frozen=True)
class RawPage:
    """A single fetched chart page; ``markup is None`` means page absent."""

    region: str
    day: datetime.date
    markup: str | None

    @property
    def found(self) -> bool:
        return self.markup is not None


class ChartPageClient:
    """
    Synchronous HTTP client for daily chart pages.

    Each thread that fetches through the client gets its own
    ``requests.Session``, so one client can serve a worker pool.

    Parameters
    ----------
    settings : Settings, optional
        If not supplied, loaded from ``.env`` automatically.
    timeout : int, optional
        Per-request timeout in seconds (defaults to ``settings.request_timeout``).
    retries : int
        Extra attempts after a transport failure or 5xx response.
    session : requests.Session, optional
        Injected session shared by every thread (tests pass a mock).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        timeout: int | None = None,
        retries: int = 2,
        session: requests.Session | None = None,
        backoff_base: float = 2.0,
    ) -> None:
        self._settings = settings or load_settings()
        self._url_template = self._settings.chart_url_template
        self._timeout = timeout if timeout is not None else self._settings.request_timeout
        self._retries = retries
        self._backoff_base = backoff_base
        self._shared_session = session
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._sessions_lock = threading.Lock()
        if session is not None:
            self._apply_headers(session)

    @staticmethod
    def _apply_headers(session: requests.Session) -> None:
        session.headers.update({
            "User-Agent": (
                "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
                "AppleWebKit/537.36 (KHTML, like Gecko) "
                "Chrome/122.0.0.0 Safari/537.36 "
                "ChartCross/1.0"
            ),
            "Accept": "text/html,application/xhtml+xml",
        })

    def _session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._apply_headers(session)
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def build_url(self, region: str, day: datetime.date) -> str:
        """Canonical page URL for *region* on *day*."""
        return self._url_template.format(
            region=region.strip().lower(),
            date=day.strftime("%Y-%m-%d"),
        )

    def _sleep_before(self, attempt: int) -> None:
        if attempt == 0 or self._backoff_base <= 0:
            return
        backoff = min(self._backoff_base ** attempt, _MAX_BACKOFF_SECONDS)
        logger.info("Retry %d/%d — waiting %.1fs...", attempt, self._retries, backoff)
        time.sleep(backoff)

    def fetch_page(self, region: str, day: datetime.date) -> RawPage:
        """
        Fetch the chart page for *region* on *day*.

        Raises
        ------
        FetchError
            On transport failure, a persistent 5xx, or an unexpected status.
        """
        url = self.build_url(region, day)

        last_error = ""
        for attempt in range(1 + self._retries):
            self._sleep_before(attempt)

            try:
                resp = self._session().get(url, timeout=self._timeout)
            except requests.RequestException as exc:
                last_error = str(exc)[:500]
                logger.error(
                    "[FETCH ERROR] Network failure on %s (attempt %d/%d): %s",
                    url, attempt + 1, self._retries + 1, last_error,
                )
                continue

            if resp.status_code == 404:
                logger.info("No chart page for %s on %s (404)", region, day)
                return RawPage(region=region, day=day, markup=None)

            if resp.status_code >= 500:
                last_error = f"HTTP {resp.status_code}: {resp.text[:200]}"
                logger.error(
                    "[FETCH ERROR] Server %d on %s (attempt %d/%d)",
                    resp.status_code, url, attempt + 1, self._retries + 1,
                )
                continue

            if not resp.ok:
                raise FetchError(
                    f"Unexpected HTTP {resp.status_code} for {url}: "
                    f"{resp.text[:200]}"
                )

            logger.debug("Fetched %s (%d bytes)", url, len(resp.text))
            return RawPage(region=region, day=day, markup=resp.text)

        raise FetchError(
            f"Failed after {self._retries + 1} attempts for {url}: {last_error}"
        )

    def close(self) -> None:
        """Close the injected session, or every per-thread session opened so far."""
        if self._shared_session is not None:
            self._shared_session.close()
            return
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
            self._local = threading.local()
        for session in sessions:
            session.close()
