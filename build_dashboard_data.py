#!/usr/bin/env python3
"""
Build dashboard_data.json from the EPA annual AQI by county CSVs.
Aggregates the five-year county averages, classifies risk for the chosen
scope and percentile, and writes the precomputed summary the dashboard reads.
"""

import argparse
import logging
import sys
from pathlib import Path

from aqi_risk import __version__
from aqi_risk.config import load_config
from aqi_risk.loaders import DEFAULT_YEARS, annual_csv_paths, load_annual_csvs, write_dashboard_json
from aqi_risk.logging_config import setup_logging
from aqi_risk.pipeline import run_pipeline
from aqi_risk.scope import SCOPES
from aqi_risk.stats import percent_to_fraction

logger = logging.getLogger(__name__)


def _setup_arguments(argv=None):
    """Configures command-line arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Build the precomputed county AQI dashboard summary.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Default: data/annual_aqi_by_county_2021..2025.csv -> dashboard_data.json
  ./build_dashboard_data.py

  # US states + DC only, 95th percentile, INFO logging
  ./build_dashboard_data.py --scope us --percentile 95 -v
"""
    )
    parser.add_argument("--data-dir", type=Path, default=Path("data"),
                        help="Directory holding annual_aqi_by_county_<year>.csv files (default: data)")
    parser.add_argument("--years", type=int, nargs="+", default=list(DEFAULT_YEARS),
                        help="Years to aggregate (default: 2021-2025)")
    parser.add_argument("-o", "--output", type=Path, default=Path("dashboard_data.json"),
                        help="Output JSON path (default: dashboard_data.json)")
    parser.add_argument("-c", "--config", default="config.ini",
                        help="INI file with a [dashboard] section (default: config.ini)")
    parser.add_argument("--scope", choices=SCOPES, default=None,
                        help="Scope used for thresholds and labels (default: from config, else all)")
    parser.add_argument("--percentile", type=float, default=None,
                        help="Threshold percentile, 0-100 (default: from config, else 90)")
    parser.add_argument("-w", "--workers", type=int, default=4,
                        help="Threads used to read the annual files (default: 4)")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase logging verbosity (default: WARNING, -v: INFO, -vv: DEBUG)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _setup_arguments(argv)
    setup_logging(args.verbose)

    if args.percentile is not None and not 0.0 <= args.percentile <= 100.0:
        logger.error(f"--percentile must be within 0-100, got {args.percentile}")
        return 2

    try:
        config = load_config(args.config)
    except ValueError as e:
        logger.error(f"Invalid configuration in {args.config}: {e}")
        return 2

    params = config.pipeline_params()
    if args.scope is not None:
        params["scope"] = args.scope
    if args.percentile is not None:
        params["percentile"] = percent_to_fraction(args.percentile)

    paths = annual_csv_paths(args.data_dir, args.years)
    logger.info(f"Reading {len(paths)} annual CSVs from {args.data_dir}")
    try:
        summaries = load_annual_csvs(paths, max_workers=args.workers)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Could not load annual data: {e}")
        return 1

    view = run_pipeline(summaries, **params)
    write_dashboard_json(view, args.output)

    kpis = view.kpis
    print(f"Counties: {kpis['total_counties']}  Double Jeopardy: {kpis['dj_count']}  "
          f"chronic >= {kpis['chronic_threshold']:.1f}  acute >= {kpis['acute_threshold']:.1f}")
    print(f"Dashboard summary saved to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
