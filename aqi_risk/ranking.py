"""Top-N selectors, Double Jeopardy ranking and display-only exclusions."""

from __future__ import annotations

import numbers
from typing import Iterable, Tuple

import pandas as pd

from .risk import RiskLabel

ALL_REGIONS = "ALL"

# Scatter-only data-quality patch; these still count toward thresholds and KPIs
DISPLAY_EXCLUSIONS: Tuple[Tuple[str, str], ...] = (("California", "Mono"),)


def _check_n(n: int, name: str = "n") -> None:
    if isinstance(n, bool) or not isinstance(n, numbers.Integral) or n < 1:
        raise ValueError(f"{name} must be a positive integer, got {n!r}")


def _top(df: pd.DataFrame, column: str, n: int, ascending: bool) -> pd.DataFrame:
    _check_n(n)
    # mergesort is stable: ties keep their input order
    return df.sort_values(column, ascending=ascending, kind="mergesort").head(n).reset_index(drop=True)


def top_chronic(classified: pd.DataFrame, n: int = 15) -> pd.DataFrame:
    """Counties with the highest average median AQI."""
    return _top(classified, "median_aqi_avg", n, ascending=False)


def top_acute(classified: pd.DataFrame, n: int = 15) -> pd.DataFrame:
    """Counties with the highest average max AQI."""
    return _top(classified, "max_aqi_avg", n, ascending=False)


def most_livable(classified: pd.DataFrame, n: int = 15) -> pd.DataFrame:
    """Counties with the lowest average median AQI."""
    return _top(classified, "median_aqi_avg", n, ascending=True)


def filter_region(df: pd.DataFrame, region: str = ALL_REGIONS) -> pd.DataFrame:
    if region == ALL_REGIONS:
        return df
    return df[df["state"] == region]


def top_double_jeopardy(
    classified: pd.DataFrame,
    chronic_threshold: float,
    acute_threshold: float,
    region: str = ALL_REGIONS,
    k: int = 5,
) -> pd.DataFrame:
    """
    Rank Double Jeopardy counties by how far they sit past both thresholds.

    ``dj_score = (median_aqi_avg - chronic) + (max_aqi_avg - acute)``. Ties
    keep their input order. An unknown region or a selection without Double
    Jeopardy counties gives an empty frame.
    """
    _check_n(k, "k")
    dj = classified[classified["risk"] == RiskLabel.DOUBLE_JEOPARDY.value]
    dj = filter_region(dj, region).copy()
    dj["dj_score"] = (
        (dj["median_aqi_avg"].astype(float) - chronic_threshold)
        + (dj["max_aqi_avg"].astype(float) - acute_threshold)
    )
    return dj.sort_values("dj_score", ascending=False, kind="mergesort").head(k).reset_index(drop=True)


def _norm(s: pd.Series) -> pd.Series:
    return s.astype(str).str.strip().str.lower()


def exclude_from_display(
    df: pd.DataFrame,
    exclusions: Iterable[Tuple[str, str]] = DISPLAY_EXCLUSIONS,
) -> pd.DataFrame:
    """Drop (state, county) pairs from a display frame, trimmed and case-insensitive."""
    pairs = {(str(s).strip().lower(), str(c).strip().lower()) for s, c in exclusions}
    if not pairs or df.empty:
        return df
    excluded = [key in pairs for key in zip(_norm(df["state"]), _norm(df["county"]))]
    return df[~pd.Series(excluded, index=df.index, dtype=bool)]
