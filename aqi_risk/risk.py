"""Percentile thresholds and the four-way county risk classification."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum

import numpy as np
import pandas as pd

from .stats import percentile

logger = logging.getLogger(__name__)

DEFAULT_PERCENTILE = 0.90


class RiskLabel(str, Enum):
    LOW_RISK = "Low Risk"
    HIGH_CHRONIC = "High Chronic"
    HIGH_ACUTE = "High Acute"
    DOUBLE_JEOPARDY = "Double Jeopardy"


# Legend / trace order for charts
RISK_ORDER = [
    RiskLabel.LOW_RISK.value,
    RiskLabel.HIGH_CHRONIC.value,
    RiskLabel.HIGH_ACUTE.value,
    RiskLabel.DOUBLE_JEOPARDY.value,
]


@dataclass(frozen=True)
class Thresholds:
    """Chronic (median) and acute (max) cut-offs for one scoped view."""
    chronic: float
    acute: float
    percentile: float = DEFAULT_PERCENTILE

    @property
    def is_defined(self) -> bool:
        return not (math.isnan(self.chronic) or math.isnan(self.acute))


def compute_thresholds(scoped: pd.DataFrame, p: float = DEFAULT_PERCENTILE) -> Thresholds:
    """p-th percentile of the averaged median and max AQI over the scoped set."""
    thr = Thresholds(
        chronic=percentile(scoped["median_aqi_avg"], p),
        acute=percentile(scoped["max_aqi_avg"], p),
        percentile=p,
    )
    if not thr.is_defined:
        logger.warning(f"Thresholds undefined for {len(scoped)} scoped counties; every county will be Low Risk")
    return thr


def classify(summaries: pd.DataFrame, chronic_threshold: float, acute_threshold: float) -> pd.DataFrame:
    """
    Label each county with a RiskLabel value in a new ``risk`` column.

    Both comparisons are inclusive (``>=``). A NaN threshold never compares
    true, so an undefined threshold yields Low Risk everywhere.
    """
    out = summaries.copy()
    med = pd.to_numeric(out["median_aqi_avg"], errors="coerce").to_numpy(dtype=float)
    mx = pd.to_numeric(out["max_aqi_avg"], errors="coerce").to_numpy(dtype=float)
    with np.errstate(invalid="ignore"):
        chronic = med >= chronic_threshold
        acute = mx >= acute_threshold

    out["risk"] = np.select(
        [chronic & acute, chronic, acute],
        [RiskLabel.DOUBLE_JEOPARDY.value, RiskLabel.HIGH_CHRONIC.value, RiskLabel.HIGH_ACUTE.value],
        default=RiskLabel.LOW_RISK.value,
    )
    return out


def count_double_jeopardy(classified: pd.DataFrame) -> int:
    if classified.empty:
        return 0
    return int((classified["risk"] == RiskLabel.DOUBLE_JEOPARDY.value).sum())
