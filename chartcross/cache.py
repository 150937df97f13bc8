"""
cache.py — Local Parquet Cache for Extracted Chart Days
=========================================================
Stores each successfully extracted (region, day) row set so that reruns
over the same window do not re-fetch pages.

Layout::

    <cache_dir>/<region>/<YYYY-MM-DD>.parquet
    <cache_dir>/_manifest.json

The manifest records the row count, the extraction counters and the write
time for each entry.  Pages that legitimately carried no chart table are
cached as empty frames; fetch failures are never cached, so a rerun
retries them.
"""

from __future__ import annotations

import datetime
import json
import pathlib
import threading
from typing import Any, Dict, Tuple

import pandas as pd

from chartcross.extractor import CHART_COLUMNS, empty_chart_frame
from chartcross.utils import get_logger

logger = get_logger("chartcross.cache")


class ChartCacheError(Exception):
    """Raised when a cache entry exists but cannot be read."""


class ChartCache:
    """
    Per-(region, day) Parquet cache with a JSON manifest.

    Entries can be written from several threads.  The manifest is held in
    memory under a lock; ``put(..., flush=False)`` defers the disk write
    until ``flush()`` so a long sweep rewrites it once.
    """

    def __init__(self, cache_dir: pathlib.Path | str) -> None:
        self._cache_dir = pathlib.Path(cache_dir)
        self._lock = threading.Lock()
        self._entries: Dict[str, Any] | None = None
        self._dirty = False

    @property
    def cache_dir(self) -> pathlib.Path:
        return self._cache_dir

    def _entry_path(self, region: str, day: datetime.date) -> pathlib.Path:
        safe = region.strip().lower().replace("/", "_")
        return self._cache_dir / safe / f"{day.isoformat()}.parquet"

    def _manifest_path(self) -> pathlib.Path:
        return self._cache_dir / "_manifest.json"

    @staticmethod
    def _key(region: str, day: datetime.date) -> str:
        return f"{region.strip().lower()}/{day.isoformat()}"

    def _load_manifest(self) -> Dict[str, Any]:
        mp = self._manifest_path()
        if mp.exists():
            try:
                return json.loads(mp.read_text())
            except (json.JSONDecodeError, OSError):
                return {}
        return {}

    def _save_manifest(self, manifest: Dict[str, Any]) -> None:
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        self._manifest_path().write_text(
            json.dumps(manifest, indent=2, sort_keys=True, default=str),
        )

    def _manifest_entries(self) -> Dict[str, Any]:
        # caller holds self._lock
        if self._entries is None:
            self._entries = self._load_manifest()
        return self._entries

    def contains(self, region: str, day: datetime.date) -> bool:
        return self._entry_path(region, day).exists()

    def read(self, region: str, day: datetime.date) -> pd.DataFrame:
        """
        Return the cached rows for (*region*, *day*).

        Raises
        ------
        KeyError
            If no entry exists.
        ChartCacheError
            If the entry exists but cannot be decoded.
        """
        path = self._entry_path(region, day)
        if not path.exists():
            raise KeyError(self._key(region, day))

        try:
            df = pd.read_parquet(path)
        except Exception as exc:
            raise ChartCacheError(f"Cannot read cache entry {path}: {exc}") from exc

        if df.empty:
            return empty_chart_frame()

        missing = [c for c in CHART_COLUMNS if c not in df.columns]
        if missing:
            raise ChartCacheError(f"Cache entry {path} lacks columns {missing}")

        df = df[CHART_COLUMNS].copy()
        df["rank"] = df["rank"].astype("int64")
        df["streams"] = df["streams"].astype("int64")
        df["day"] = pd.to_datetime(df["day"]).dt.normalize().astype("datetime64[ns]")
        return df

    def get(self, region: str, day: datetime.date) -> pd.DataFrame | None:
        """Cached rows, or ``None`` on a miss or an unreadable entry."""
        try:
            return self.read(region, day)
        except KeyError:
            return None
        except ChartCacheError as exc:
            logger.warning("%s — treating as cache miss", exc)
            return None

    def put(
        self,
        region: str,
        day: datetime.date,
        rows: pd.DataFrame,
        *,
        malformed_rows: int = 0,
        skipped_rows: int = 0,
        flush: bool = True,
    ) -> pathlib.Path:
        """
        Persist *rows* for (*region*, *day*) and record them in the manifest.

        The extraction counters are stored alongside the row count so a
        cache hit reports the same ``malformed_rows`` / ``skipped_rows`` as
        the original fetch.  With ``flush=False`` the manifest is only
        written by a later ``flush()``.
        """
        path = self._entry_path(region, day)
        path.parent.mkdir(parents=True, exist_ok=True)

        save_df = rows[CHART_COLUMNS] if not rows.empty else empty_chart_frame()
        save_df.to_parquet(path, index=False)

        entry = {
            "rows": int(len(rows)),
            "malformed_rows": int(malformed_rows),
            "skipped_rows": int(skipped_rows),
            "written_utc": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        }
        with self._lock:
            self._manifest_entries()[self._key(region, day)] = entry
            self._dirty = True
        if flush:
            self.flush()
        logger.debug("Cached %d rows → %s", len(rows), path)
        return path

    def flush(self) -> None:
        """Write pending manifest updates to disk."""
        with self._lock:
            if not self._dirty:
                return
            self._save_manifest(self._manifest_entries())
            self._dirty = False

    def entry_counts(self, region: str, day: datetime.date) -> Tuple[int, int]:
        """
        ``(malformed_rows, skipped_rows)`` recorded for (*region*, *day*).

        Entries written before the counters were recorded report zeros.
        """
        with self._lock:
            entry = self._manifest_entries().get(self._key(region, day), {})
        return int(entry.get("malformed_rows", 0)), int(entry.get("skipped_rows", 0))

    def manifest(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._manifest_entries())
