"""
End-to-end dashboard pipeline.

Every call recomputes the full view from the county summaries and the
complete parameter set; nothing derived is cached between calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple

import pandas as pd

from .aggregate import Rows, aggregate
from .ranking import (
    ALL_REGIONS,
    DISPLAY_EXCLUSIONS,
    exclude_from_display,
    filter_region,
    most_livable,
    top_acute,
    top_chronic,
    top_double_jeopardy,
)
from .risk import DEFAULT_PERCENTILE, Thresholds, classify, compute_thresholds, count_double_jeopardy
from .scope import SCOPE_ALL, apply_scope
from .states import STATE_TO_ABBR

logger = logging.getLogger(__name__)

HEATMAP_COLS = ["state", "abbr", "high_aqi_days"]


@dataclass(frozen=True)
class DashboardView:
    thresholds: Thresholds
    classified: pd.DataFrame
    kpis: Dict[str, Any]
    chronic_top: pd.DataFrame
    acute_top: pd.DataFrame
    livable: pd.DataFrame
    scatter: pd.DataFrame
    dj_top: pd.DataFrame
    state_options: List[str] = field(default_factory=list)
    heatmap: pd.DataFrame = field(default_factory=lambda: pd.DataFrame(columns=HEATMAP_COLS))


def high_aqi_days_by_state(summaries: pd.DataFrame) -> pd.DataFrame:
    """Total high-AQI days per state, keyed by USPS abbreviation for the choropleth."""
    if summaries.empty or "high_aqi_days_total" not in summaries.columns:
        return pd.DataFrame(columns=HEATMAP_COLS)

    by_state = (
        summaries.groupby("state", sort=True)["high_aqi_days_total"]
                 .sum()
                 .reset_index()
                 .rename(columns={"high_aqi_days_total": "high_aqi_days"})
    )
    by_state["abbr"] = by_state["state"].map(STATE_TO_ABBR)
    # "District of Columbia" / "District Of Columbia" both map to DC
    by_state = (
        by_state.dropna(subset=["abbr"])
                .groupby("abbr", as_index=False, sort=True)
                .agg(state=("state", "first"), high_aqi_days=("high_aqi_days", "sum"))
    )
    return by_state[HEATMAP_COLS]


def run_pipeline(
    summaries: pd.DataFrame,
    scope: str = SCOPE_ALL,
    percentile: float = DEFAULT_PERCENTILE,
    region: str = ALL_REGIONS,
    top_n_chronic: int = 15,
    top_n_acute: int = 15,
    top_n_livable: int = 15,
    top_k_dj: int = 5,
    display_exclusions: Iterable[Tuple[str, str]] = DISPLAY_EXCLUSIONS,
) -> DashboardView:
    """
    Build a complete dashboard view.

    Scope is applied first, thresholds come from the scoped set, and display
    exclusions only touch the scatter rows afterwards.
    """
    scoped = apply_scope(summaries, scope)
    thresholds = compute_thresholds(scoped, percentile)
    classified = classify(scoped, thresholds.chronic, thresholds.acute)
    dj_count = count_double_jeopardy(classified)

    kpis = {
        "total_counties": int(len(classified)),
        "dj_count": dj_count,
        "chronic_threshold": thresholds.chronic,
        "acute_threshold": thresholds.acute,
    }
    logger.info(
        f"scope={scope} p={percentile:.2f} region={region}: {kpis['total_counties']} counties, "
        f"thresholds chronic={thresholds.chronic:.1f} acute={thresholds.acute:.1f}, {dj_count} Double Jeopardy"
    )

    scatter = exclude_from_display(filter_region(classified, region), display_exclusions)

    return DashboardView(
        thresholds=thresholds,
        classified=classified,
        kpis=kpis,
        chronic_top=top_chronic(classified, top_n_chronic),
        acute_top=top_acute(classified, top_n_acute),
        livable=most_livable(classified, top_n_livable),
        scatter=scatter.reset_index(drop=True),
        dj_top=top_double_jeopardy(classified, thresholds.chronic, thresholds.acute, region, top_k_dj),
        state_options=sorted(classified["state"].dropna().unique().tolist()) if not classified.empty else [],
        heatmap=high_aqi_days_by_state(scoped),
    )


def run_from_observations(rows: Rows, **params) -> DashboardView:
    """Aggregate raw annual rows, then run the pipeline with ``params``."""
    return run_pipeline(aggregate(rows), **params)
