"""
Five-year aggregation of annual county AQI rows.

The work is split into accumulate -> combine -> finalize so that partial
sums from independent shards (one per year file) can be merged before the
averages are taken.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Sequence, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

KEY_COLS = ["state", "county"]
METRIC_COLS = ["median_aqi", "max_aqi"]
HIGH_DAY_COLS = [
    "unhealthy_sensitive_days",
    "unhealthy_days",
    "very_unhealthy_days",
    "hazardous_days",
]
PARTIAL_COLS = KEY_COLS + ["median_sum", "max_sum", "high_days_sum", "n"]
SUMMARY_COLS = KEY_COLS + ["median_aqi_avg", "max_aqi_avg", "high_aqi_days_total", "n_years"]

Rows = Union[pd.DataFrame, Sequence[Mapping]]


def _as_frame(rows: Rows) -> pd.DataFrame:
    if isinstance(rows, pd.DataFrame):
        return rows.copy()
    return pd.DataFrame(list(rows))


def clean_observations(rows: Rows) -> pd.DataFrame:
    """
    Normalize raw observation rows.

    Keys are trimmed; rows with an empty key or a non-finite median/max AQI
    are dropped. Missing or non-finite day counts become 0.
    """
    df = _as_frame(rows)
    for col in KEY_COLS + METRIC_COLS:
        if col not in df.columns:
            df[col] = np.nan
    for col in HIGH_DAY_COLS:
        if col not in df.columns:
            df[col] = 0.0

    for col in KEY_COLS:
        df[col] = df[col].where(df[col].notna(), "").astype(str).str.strip()
    for col in METRIC_COLS + HIGH_DAY_COLS:
        df[col] = pd.to_numeric(df[col], errors="coerce").astype(float)
    for col in HIGH_DAY_COLS:
        df.loc[~np.isfinite(df[col]), col] = 0.0

    keep = (
        (df["state"] != "")
        & (df["county"] != "")
        & np.isfinite(df["median_aqi"])
        & np.isfinite(df["max_aqi"])
    )
    dropped = int((~keep).sum())
    if dropped:
        logger.debug(f"Dropped {dropped} of {len(df)} observation rows (empty key or non-finite AQI)")

    return df.loc[keep].reset_index(drop=True)


def accumulate(rows: Rows) -> pd.DataFrame:
    """Per-county running sums and counts for one shard of observations."""
    df = clean_observations(rows)
    if df.empty:
        return pd.DataFrame(columns=PARTIAL_COLS)

    df["high_days"] = df[HIGH_DAY_COLS].sum(axis=1)
    partial = (
        df.groupby(KEY_COLS, sort=False)
          .agg(median_sum=("median_aqi", "sum"),
               max_sum=("max_aqi", "sum"),
               high_days_sum=("high_days", "sum"),
               n=("median_aqi", "size"))
          .reset_index()
    )
    return partial[PARTIAL_COLS]


def combine(partials: Iterable[pd.DataFrame]) -> pd.DataFrame:
    """Merge partial sums from independent shards. Order of shards is irrelevant."""
    frames: List[pd.DataFrame] = [p for p in partials if p is not None and not p.empty]
    if not frames:
        return pd.DataFrame(columns=PARTIAL_COLS)
    merged = (
        pd.concat(frames, ignore_index=True)
          .groupby(KEY_COLS, sort=False)[["median_sum", "max_sum", "high_days_sum", "n"]]
          .sum()
          .reset_index()
    )
    return merged[PARTIAL_COLS]


def finalize(partial: pd.DataFrame, include_high_days: bool = True) -> pd.DataFrame:
    """Turn accumulated sums into one summary row per county."""
    cols = SUMMARY_COLS if include_high_days else [c for c in SUMMARY_COLS if c != "high_aqi_days_total"]
    if partial.empty:
        return pd.DataFrame(columns=cols)

    out = partial[KEY_COLS].copy()
    n = partial["n"].astype(int)
    out["median_aqi_avg"] = partial["median_sum"].astype(float) / n
    out["max_aqi_avg"] = partial["max_sum"].astype(float) / n
    out["high_aqi_days_total"] = partial["high_days_sum"].astype(float)
    out["n_years"] = n
    return out[cols].reset_index(drop=True)


def aggregate(rows: Rows, include_high_days: bool = True) -> pd.DataFrame:
    """
    Aggregate annual observations into five-year county summaries.

    Args:
        rows: Observation frame or list of dicts with ``state``, ``county``,
            ``median_aqi``, ``max_aqi`` and optional high-AQI day counts.
        include_high_days: Whether to emit ``high_aqi_days_total``.

    Returns:
        One row per distinct (state, county). Row order is not meaningful.
    """
    summaries = finalize(accumulate(rows), include_high_days=include_high_days)
    logger.info(f"Aggregated observations into {len(summaries)} county summaries")
    return summaries
