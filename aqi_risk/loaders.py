"""
I/O adapters.

Both input formats are normalized here, once, into the county summary frame
the pipeline consumes:

- EPA ``annual_aqi_by_county_<year>.csv`` files (aggregated per year shard,
  then combined)
- the precomputed ``dashboard_data.json`` summary
"""

from __future__ import annotations

import json
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .aggregate import accumulate, combine, finalize
from .pipeline import DashboardView
from .ranking import top_double_jeopardy

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

CSV_COLUMNS = {
    "State": "state",
    "County": "county",
    "Year": "year",
    "Median AQI": "median_aqi",
    "Max AQI": "max_aqi",
    "Unhealthy for Sensitive Groups Days": "unhealthy_sensitive_days",
    "Unhealthy Days": "unhealthy_days",
    "Very Unhealthy Days": "very_unhealthy_days",
    "Hazardous Days": "hazardous_days",
}
REQUIRED_CSV_COLUMNS = {"State", "County", "Median AQI", "Max AQI"}

JSON_COLUMNS = {
    "State": "state",
    "County": "county",
    "Median AQI": "median_aqi_avg",
    "Max AQI": "max_aqi_avg",
    "High AQI Days": "high_aqi_days_total",
}

ANNUAL_CSV_TEMPLATE = "annual_aqi_by_county_{year}.csv"
DEFAULT_YEARS = (2021, 2022, 2023, 2024, 2025)


class SourceKind(str, Enum):
    ANNUAL_CSV = "annual_csv"
    SUMMARY_JSON = "summary_json"


@dataclass(frozen=True)
class DataSource:
    """Where the dashboard data comes from and in which format."""
    kind: SourceKind
    paths: Tuple[Path, ...]

    @classmethod
    def annual_csvs(cls, paths: Iterable[PathLike]) -> "DataSource":
        return cls(SourceKind.ANNUAL_CSV, tuple(Path(p) for p in paths))

    @classmethod
    def summary_json(cls, path: PathLike) -> "DataSource":
        return cls(SourceKind.SUMMARY_JSON, (Path(path),))

    @classmethod
    def from_path(cls, path: PathLike, years: Sequence[int] = DEFAULT_YEARS) -> "DataSource":
        """A ``.json`` file, a single CSV, or a directory of annual CSVs."""
        path = Path(path)
        if path.is_dir():
            return cls.annual_csvs(annual_csv_paths(path, years))
        if path.suffix.lower() == ".json":
            return cls.summary_json(path)
        return cls.annual_csvs([path])


def annual_csv_paths(data_dir: PathLike, years: Sequence[int] = DEFAULT_YEARS) -> List[Path]:
    return [Path(data_dir) / ANNUAL_CSV_TEMPLATE.format(year=y) for y in years]


# ======================
# Annual CSV
# ======================

def read_annual_csv(path: PathLike) -> pd.DataFrame:
    """
    Read one EPA annual-AQI-by-county CSV into the observation frame.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If a required column is missing.
    """
    df = pd.read_csv(path)
    df.rename(columns={c: c.strip() for c in df.columns}, inplace=True)

    missing = REQUIRED_CSV_COLUMNS.difference(set(df.columns))
    if missing:
        raise ValueError(f"{path}: CSV is missing required columns: {sorted(missing)}")

    df = df[[c for c in CSV_COLUMNS if c in df.columns]].rename(columns=CSV_COLUMNS)
    for col in ("median_aqi", "max_aqi", "unhealthy_sensitive_days", "unhealthy_days",
                "very_unhealthy_days", "hazardous_days"):
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")

    logger.debug(f"Read {len(df)} rows from {path}")
    return df


def _read_shard(path: Path) -> Optional[pd.DataFrame]:
    try:
        return accumulate(read_annual_csv(path))
    except FileNotFoundError:
        logger.warning(f"Annual CSV not found: {path}. Skipping.")
        return None


def load_annual_csvs(paths: Iterable[PathLike], max_workers: int = 4) -> pd.DataFrame:
    """
    Aggregate several annual CSVs into county summaries.

    Each file is read and accumulated as its own shard in a thread pool;
    shard sums are combined before averaging. Missing files are skipped.

    Raises:
        FileNotFoundError: If none of the files could be read.
    """
    paths = [Path(p) for p in paths]
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        shards = list(pool.map(_read_shard, paths))

    loaded = [s for s in shards if s is not None]
    if not loaded:
        raise FileNotFoundError(f"No annual CSVs could be loaded from {[str(p) for p in paths]}")

    logger.info(f"Loaded {len(loaded)}/{len(paths)} annual CSV files")
    return finalize(combine(loaded))


# ======================
# Dashboard JSON
# ======================

def read_dashboard_json(path: PathLike) -> pd.DataFrame:
    """
    Read ``scatter_data`` from a precomputed dashboard JSON as county summaries.

    Thresholds and risk labels in the file are ignored; they are recomputed
    for the current scope and percentile.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the payload is not an object with a ``scatter_data`` list.
    """
    with open(path, "r", encoding="utf-8") as f:
        payload = json.load(f)

    if not isinstance(payload, dict) or not isinstance(payload.get("scatter_data"), list):
        raise ValueError(f"{path}: expected an object with a 'scatter_data' list")

    df = pd.DataFrame(payload["scatter_data"])
    if df.empty:
        return pd.DataFrame(columns=["state", "county", "median_aqi_avg", "max_aqi_avg"])

    missing = {"State", "County", "Median AQI", "Max AQI"}.difference(df.columns)
    if missing:
        raise ValueError(f"{path}: scatter_data rows are missing fields: {sorted(missing)}")

    df = df[[c for c in JSON_COLUMNS if c in df.columns]].rename(columns=JSON_COLUMNS)
    for col in ("state", "county"):
        df[col] = df[col].where(df[col].notna(), "").astype(str).str.strip()
    for col in ("median_aqi_avg", "max_aqi_avg", "high_aqi_days_total"):
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce").astype(float)

    keep = (
        (df["state"] != "") & (df["county"] != "")
        & np.isfinite(df["median_aqi_avg"]) & np.isfinite(df["max_aqi_avg"])
    )
    if (~keep).any():
        logger.debug(f"Dropped {int((~keep).sum())} malformed scatter_data rows from {path}")

    logger.info(f"Read {int(keep.sum())} county summaries from {path}")
    return df.loc[keep].reset_index(drop=True)


def _num(v: Any) -> Optional[float]:
    """JSON-safe float: NaN/inf become null."""
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def _records(df: pd.DataFrame, extra: Dict[str, str]) -> List[Dict[str, Any]]:
    out = []
    for row in df.itertuples(index=False):
        rec = {
            "County": row.county,
            "State": row.state,
            "Median AQI": _num(row.median_aqi_avg),
            "Max AQI": _num(row.max_aqi_avg),
        }
        for key, col in extra.items():
            value = getattr(row, col)
            rec[key] = value if isinstance(value, str) else _num(value)
        out.append(rec)
    return out


def dashboard_payload(view: DashboardView) -> Dict[str, Any]:
    """Serialize a pipeline view into the ``dashboard_data.json`` shape."""
    scatter_extra = {"Risk": "risk"}
    if "high_aqi_days_total" in view.classified.columns:
        scatter_extra["High AQI Days"] = "high_aqi_days_total"

    # Every Double Jeopardy county in scope, regardless of the region filter
    dj_all = top_double_jeopardy(
        view.classified, view.thresholds.chronic, view.thresholds.acute, k=max(view.kpis["dj_count"], 1)
    )

    return {
        "metadata": {
            "total_counties": view.kpis["total_counties"],
            "dj_count": view.kpis["dj_count"],
            "chronic_threshold": _num(view.thresholds.chronic),
            "acute_threshold": _num(view.thresholds.acute),
            "percentile": view.thresholds.percentile,
        },
        "scatter_data": _records(view.classified, scatter_extra),
        "chronic_top": _records(view.chronic_top, {}),
        "acute_top": _records(view.acute_top, {}),
        "dj_counties": _records(dj_all, {"Risk": "risk", "DJ_Score": "dj_score"}),
    }


def write_dashboard_json(view: DashboardView, path: PathLike) -> Path:
    path = Path(path)
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(dashboard_payload(view), f, indent=2)
    logger.info(f"Wrote dashboard summary to {path}")
    return path


# ======================
# Dispatch
# ======================

def load_summaries(source: DataSource, max_workers: int = 4) -> pd.DataFrame:
    """Load any supported source as a county summary frame."""
    if source.kind is SourceKind.ANNUAL_CSV:
        return load_annual_csvs(source.paths, max_workers=max_workers)
    if source.kind is SourceKind.SUMMARY_JSON:
        return read_dashboard_json(source.paths[0])
    raise ValueError(f"Unsupported data source kind: {source.kind!r}")
