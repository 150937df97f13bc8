"""
extractor.py — Chart Table Extraction & Normalisation
=======================================================
Turns one day's chart page markup into a tidy DataFrame.

Pipeline
--------
1.  **Locate** the element carrying the ``chart-table`` class.  Pages without
    one (e.g. the source pulled historical data for that day) yield no rows.
2.  **Parse** every ``<tr>`` holding at least three ``<td>`` cells.  Cells are
    resolved by class (``chart-table-position`` / ``chart-table-track`` /
    ``chart-table-streams``) when the page carries them, positionally
    (rank, track/artist, streams) otherwise.
3.  **Split** the combined track/artist cell on its first line break.
4.  **Strip** the literal ``"by "`` prefix from the artist.
5.  **Project** to ``rank, track, artist, streams`` and attach ``day``.

Malformed cells
---------------
A track/artist cell without a line break keeps the whole cell as ``track``
with an empty ``artist``.  The row is kept and counted in
``malformed_rows`` so row counts stay auditable.  The same counter records
stream cells that cannot be read as an integer (stored as 0).
"""

from __future__ import annotations

import datetime
import re
from dataclasses import asdict, dataclass
from typing import List, Tuple

import pandas as pd
from bs4 import BeautifulSoup, Tag

from chartcross.utils import get_logger

logger = get_logger("chartcross.extractor")

CHART_TABLE_CLASS = "chart-table"
ARTIST_PREFIX = "by "

CHART_COLUMNS = ["rank", "track", "artist", "streams", "day"]

_RANK_CLASS = "chart-table-position"
_TRACK_CLASS = "chart-table-track"
_STREAMS_CLASS = "chart-table-streams"

_NON_DIGIT = re.compile(r"[^\d]")


class MissingTableError(Exception):
    """Raised when a fetched page carries no recognisable chart table."""


class MalformedRowError(ValueError):
    """Raised when a combined track/artist cell has no line break."""


@dataclass(frozen=True)
class ChartRow:
    """One chart entry for one region on one day."""

    rank: int
    track: str
    artist: str
    streams: int
    day: datetime.date


@dataclass
class ExtractionResult:
    """Rows extracted from one page plus bookkeeping counters."""

    rows: pd.DataFrame
    malformed_rows: int = 0
    skipped_rows: int = 0


# ── helpers ─────────────────────────────────────────────────────────────────

def empty_chart_frame() -> pd.DataFrame:
    """An empty Dataset that still carries the chart schema."""
    return pd.DataFrame({
        "rank": pd.Series(dtype="int64"),
        "track": pd.Series(dtype="object"),
        "artist": pd.Series(dtype="object"),
        "streams": pd.Series(dtype="int64"),
        "day": pd.Series(dtype="datetime64[ns]"),
    })


def rows_to_frame(rows: List[ChartRow]) -> pd.DataFrame:
    """Convert a list of ``ChartRow`` into a typed chart DataFrame."""
    if not rows:
        return empty_chart_frame()
    df = pd.DataFrame([asdict(r) for r in rows], columns=CHART_COLUMNS)
    df["rank"] = df["rank"].astype("int64")
    df["streams"] = df["streams"].astype("int64")
    df["day"] = pd.to_datetime(df["day"]).dt.normalize().astype("datetime64[ns]")
    return df


def split_track_artist(text: str) -> Tuple[str, str]:
    """
    Split a combined ``"Track\\nby Artist"`` cell into ``(track, artist)``.

    Only the first line break separates the two; the ``"by "`` prefix is
    removed from the artist when present.

    Raises
    ------
    MalformedRowError
        If *text* contains no line break.
    """
    if "\n" not in text:
        raise MalformedRowError(f"No track/artist separator in {text!r}")
    track, artist = text.split("\n", 1)
    return track.strip(), strip_artist_prefix(artist)


def strip_artist_prefix(artist: str) -> str:
    """Remove a leading literal ``"by "`` from *artist*."""
    artist = artist.strip()
    if artist.startswith(ARTIST_PREFIX):
        artist = artist[len(ARTIST_PREFIX):]
    return artist.strip()


def _squash(text: str) -> str:
    return " ".join(text.split())


def _cell_text(cell: Tag) -> str:
    """
    Combined track/artist text with ``<br>`` as the only line break.

    The live site's tagged layout (``<strong>`` track, ``<span>`` artist) is
    read from those children directly.  Any other inline markup stays on the
    line it appears in.
    """
    strong = cell.find("strong")
    if strong is not None:
        span = strong.find_next_sibling("span")
        if span is not None:
            return f"{_squash(strong.get_text())}\n{_squash(span.get_text())}"

    for br in cell.find_all("br"):
        br.replace_with("\n")
    return cell.get_text().strip()


def _parse_int(text: str) -> int | None:
    digits = _NON_DIGIT.sub("", text)
    return int(digits) if digits else None


def _find_table(soup: BeautifulSoup) -> Tag:
    marker = soup.find(class_=CHART_TABLE_CLASS)
    if marker is None:
        raise MissingTableError(f"No element with class '{CHART_TABLE_CLASS}'")
    if marker.name == "table":
        return marker
    table = marker.find("table")
    if table is None:
        raise MissingTableError(
            f"Element '.{CHART_TABLE_CLASS}' holds no <table>"
        )
    return table


def _resolve_cells(tr: Tag) -> Tuple[Tag, Tag, Tag] | None:
    cells = tr.find_all("td")
    if len(cells) < 3:
        return None
    by_class = (
        tr.find("td", class_=_RANK_CLASS),
        tr.find("td", class_=_TRACK_CLASS),
        tr.find("td", class_=_STREAMS_CLASS),
    )
    if all(c is not None for c in by_class):
        return by_class
    return cells[0], cells[1], cells[2]


# ── public API ──────────────────────────────────────────────────────────────

def has_chart_table(markup: str) -> bool:
    """True if *markup* carries a ``chart-table`` marker element."""
    soup = BeautifulSoup(markup, "html.parser")
    return soup.find(class_=CHART_TABLE_CLASS) is not None


def parse_chart_table(markup: str, day: datetime.date) -> ExtractionResult:
    """
    Parse the chart table in *markup* into rows dated *day*.

    Raises
    ------
    MissingTableError
        If the page has no chart table.
    """
    soup = BeautifulSoup(markup, "html.parser")
    table = _find_table(soup)

    rows: List[ChartRow] = []
    malformed = 0
    skipped = 0

    for tr in table.find_all("tr"):
        if not tr.find_all("td"):
            continue  # header row

        cells = _resolve_cells(tr)
        if cells is None:
            skipped += 1
            continue
        rank_cell, track_cell, streams_cell = cells

        rank = _parse_int(rank_cell.get_text(strip=True))
        if rank is None or rank < 1:
            skipped += 1
            logger.debug("Skipping row with unreadable rank on %s", day)
            continue

        combined = _cell_text(track_cell)
        try:
            track, artist = split_track_artist(combined)
        except MalformedRowError:
            malformed += 1
            track, artist = combined.strip(), ""
            logger.warning(
                "Malformed track cell at rank %d on %s: %r — kept as track "
                "with empty artist", rank, day, combined[:80],
            )

        streams = _parse_int(streams_cell.get_text(strip=True))
        if streams is None:
            malformed += 1
            streams = 0
            logger.warning("Unreadable stream count at rank %d on %s", rank, day)

        rows.append(ChartRow(
            rank=rank, track=track, artist=artist, streams=streams, day=day,
        ))

    df = rows_to_frame(rows)
    if not df.empty:
        df = df.sort_values("rank", kind="mergesort").reset_index(drop=True)

    if skipped:
        logger.info("Skipped %d unparseable row(s) on %s", skipped, day)

    return ExtractionResult(rows=df, malformed_rows=malformed, skipped_rows=skipped)


def extract_chart_table(markup: str, day: datetime.date) -> pd.DataFrame:
    """
    Like ``parse_chart_table`` but a page without a chart table yields an
    empty Dataset instead of raising.
    """
    try:
        return parse_chart_table(markup, day).rows
    except MissingTableError:
        logger.info("No chart table on %s — 0 rows", day)
        return empty_chart_frame()
