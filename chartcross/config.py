"""
config.py — Runtime Configuration Loader
==========================================
Reads scrape and modelling parameters from a ``.env`` file (via
python-dotenv) so that the date window, region pair and cache location
never need to be hard-coded.

Usage
-----
>>> from chartcross.config import load_settings
>>> settings = load_settings(target_region="de")
>>> settings.source_region
'us'
>>> settings.target_region
'de'
"""

from __future__ import annotations

import datetime
import os
import pathlib
from dataclasses import dataclass, fields

from dotenv import load_dotenv

from chartcross.utils import parse_day


# ── locate .env relative to project root ────────────────────────────────────

_PROJECT_ROOT = pathlib.Path(__file__).resolve().parent.parent
_ENV_PATH = _PROJECT_ROOT / ".env"
_DEFAULT_CACHE_DIR = _PROJECT_ROOT / "cache" / "charts"

load_dotenv(dotenv_path=_ENV_PATH)

DEFAULT_URL_TEMPLATE = "https://spotifycharts.com/regional/{region}/daily/{date}"
DEFAULT_START_DATE = "2019-01-01"
DEFAULT_END_DATE = "2019-05-31"


# ── typed settings object ───────────────────────────────────────────────────

@dataclass(frozen=True)
class Settings:
    """Immutable container for all environment-sourced config."""

    # Chart source
    chart_url_template: str = DEFAULT_URL_TEMPLATE
    source_region: str = "us"
    target_region: str = "gb"

    # Inclusive scrape window
    start_date: datetime.date = datetime.date(2019, 1, 1)
    end_date: datetime.date = datetime.date(2019, 5, 31)

    # Modelling
    test_fraction: float = 0.2
    random_seed: int | None = 42

    # Fetching
    max_workers: int = 1
    request_timeout: int = 30

    # Paths
    project_root: pathlib.Path = _PROJECT_ROOT
    cache_dir: pathlib.Path = _DEFAULT_CACHE_DIR

    def __post_init__(self) -> None:
        if self.start_date > self.end_date:
            raise ValueError(
                f"start_date {self.start_date} is after end_date {self.end_date}"
            )
        if not 0.0 < self.test_fraction < 1.0:
            raise ValueError(
                f"test_fraction must be in (0, 1), got {self.test_fraction}"
            )
        if self.source_region == self.target_region:
            raise ValueError(
                f"source and target region must differ, both are "
                f"{self.source_region!r}"
            )
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")


def _optional_int(raw: str) -> int | None:
    raw = raw.strip()
    return int(raw) if raw else None


def load_settings(**overrides) -> Settings:
    """
    Build a ``Settings`` instance from the environment.

    Keyword *overrides* (e.g. CLI flags) replace the matching environment
    values before anything is validated; ``None`` means "not given".  An
    overridden variable is never parsed, so a bad ``START_DATE`` in ``.env``
    does not block ``load_settings(start_date=...)``.

    Raises
    ------
    ValueError
        If any variable is unparseable or the combination is invalid
        (start after end, identical regions, fraction outside (0, 1)).
    TypeError
        If an override names an unknown field.
    """
    given = {k: v for k, v in overrides.items() if v is not None}
    unknown = set(given) - {f.name for f in fields(Settings)}
    if unknown:
        raise TypeError(f"Unknown setting(s): {', '.join(sorted(unknown))}")

    readers = {
        "chart_url_template": lambda: os.getenv("CHART_URL_TEMPLATE", DEFAULT_URL_TEMPLATE),
        "source_region": lambda: os.getenv("SOURCE_REGION", "us"),
        "target_region": lambda: os.getenv("TARGET_REGION", "gb"),
        "start_date": lambda: parse_day(os.getenv("START_DATE", DEFAULT_START_DATE)),
        "end_date": lambda: parse_day(os.getenv("END_DATE", DEFAULT_END_DATE)),
        "test_fraction": lambda: float(os.getenv("TEST_FRACTION", "0.2")),
        "random_seed": lambda: _optional_int(os.getenv("RANDOM_SEED", "42")),
        "max_workers": lambda: int(os.getenv("MAX_WORKERS", "1")),
        "request_timeout": lambda: int(os.getenv("REQUEST_TIMEOUT", "30")),
        "cache_dir": lambda: pathlib.Path(os.getenv("CACHE_DIR", "") or _DEFAULT_CACHE_DIR),
    }

    values = {
        name: given[name] if name in given else read()
        for name, read in readers.items()
    }
    values.update({k: v for k, v in given.items() if k not in readers})
    values["source_region"] = values["source_region"].strip().lower()
    values["target_region"] = values["target_region"].strip().lower()
    return Settings(**values)
