"""
pipeline.py — End-to-End Crossover Pipeline
=============================================
Wires the stages together for one (source, target) region pair:

1.  **Ingest** both regions over the configured window.
2.  **Aggregate** artist and track summaries per region.
3.  **Join** source → target track summaries (source-first only).
4.  **Label & standardise** the source track summaries.
5.  **Split** stratified train / test.
6.  **Train & evaluate** the crossover classifier.
7.  **Output** CSVs when an output directory is given.
"""

from __future__ import annotations

import pathlib
from dataclasses import dataclass
from typing import Dict

import pandas as pd

from chartcross import aggregation, classifier
from chartcross.cache import ChartCache
from chartcross.chart_client import ChartPageClient
from chartcross.config import Settings, load_settings
from chartcross.crossover import JoinResult, join_cross_country
from chartcross.features import build_labeled_rows
from chartcross.ingest import IngestResult, ingest_regions
from chartcross.splitter import SplitResult, stratified_split
from chartcross.utils import format_run_report, format_top_list, get_logger

logger = get_logger("chartcross.pipeline")


@dataclass
class PipelineResult:
    ingests: Dict[str, IngestResult]
    artist_summaries: Dict[str, pd.DataFrame]
    track_summaries: Dict[str, pd.DataFrame]
    join: JoinResult
    labeled: pd.DataFrame
    split: SplitResult
    model: classifier.CrossoverModel | None
    evaluation: classifier.ClassifierReport | None
    report: str


def save_frame(
    df: pd.DataFrame,
    output_dir: pathlib.Path,
    filename: str,
) -> pathlib.Path:
    """Write *df* to CSV and return the output path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    out_path = output_dir / filename
    df.to_csv(out_path, index=False)
    logger.info("Saved %s (%d rows)", out_path, len(df))
    return out_path


def run_pipeline(
    settings: Settings | None = None,
    client: ChartPageClient | None = None,
    cache: ChartCache | None = None,
    output_dir: pathlib.Path | str | None = None,
    *,
    match_artist: bool = True,
) -> PipelineResult:
    """
    Execute the full pipeline.

    Parameters
    ----------
    settings : Settings, optional
        Region pair, window, split fraction and seed.  Loaded from ``.env``
        if not supplied.
    client : ChartPageClient, optional
        Page fetcher; built from *settings* if not supplied.
    cache : ChartCache, optional
        Extracted-day cache.  No caching when ``None``.
    output_dir : path, optional
        Where to write CSV outputs.  Nothing is written when ``None``.
    match_artist : bool
        Forwarded to ``features.build_labeled_rows``.
    """
    settings = settings or load_settings()
    client = client or ChartPageClient(settings)
    src, tgt = settings.source_region, settings.target_region

    # ── 1. ingest ────────────────────────────────────────────────────
    ingests = ingest_regions(
        client, (src, tgt), settings.start_date, settings.end_date,
        cache=cache, max_workers=settings.max_workers,
    )

    # ── 2. aggregate ─────────────────────────────────────────────────
    artist_summaries = {r: aggregation.artist_summary(i.dataset) for r, i in ingests.items()}
    track_summaries = {r: aggregation.track_summary(i.dataset) for r, i in ingests.items()}

    for region, summary in artist_summaries.items():
        top = aggregation.top_artists(summary, n=5)
        logger.info(
            "\n%s",
            format_top_list(
                f"Top artists by distinct songs — {region.upper()}",
                top["artist"].tolist(),
                top["distinct_song_count"].tolist(),
            ),
        )

    # ── 3. join ──────────────────────────────────────────────────────
    join = join_cross_country(track_summaries[src], track_summaries[tgt], src, tgt)

    # ── 4. features ──────────────────────────────────────────────────
    labeled = build_labeled_rows(
        track_summaries[src], ingests[tgt].dataset, match_artist=match_artist,
    )

    # ── 5. split ─────────────────────────────────────────────────────
    split = stratified_split(
        labeled, test_fraction=settings.test_fraction, seed=settings.random_seed,
    )

    # ── 6. train / evaluate ──────────────────────────────────────────
    model = None
    evaluation = None
    if split.train.empty:
        logger.warning("Training partition is empty — skipping classifier")
    else:
        model = classifier.train(split.train, seed=settings.random_seed)
        if not split.test.empty:
            evaluation = classifier.evaluate(model, split.test)

    report = format_run_report(
        source_region=src,
        target_region=tgt,
        source_rows=ingests[src].report.rows,
        target_rows=ingests[tgt].report.rows,
        source_empty_days=ingests[src].report.days_empty,
        target_empty_days=ingests[tgt].report.days_empty,
        crossover_tracks=len(join.merged),
        labeled_rows=len(labeled),
        positive_rate=float(labeled["label"].mean()) if len(labeled) else 0.0,
        accuracy=evaluation.accuracy if evaluation else None,
    )
    logger.info("\n%s", report)

    # ── 7. output ────────────────────────────────────────────────────
    if output_dir is not None:
        out = pathlib.Path(output_dir)
        for region in (src, tgt):
            save_frame(ingests[region].dataset, out, f"{region}_charts.csv")
            save_frame(artist_summaries[region], out, f"{region}_artists.csv")
            save_frame(track_summaries[region], out, f"{region}_tracks.csv")
        save_frame(join.merged, out, "crossover.csv")
        save_frame(labeled, out, "labeled.csv")

    return PipelineResult(
        ingests=ingests,
        artist_summaries=artist_summaries,
        track_summaries=track_summaries,
        join=join,
        labeled=labeled,
        split=split,
        model=model,
        evaluation=evaluation,
        report=report,
    )
