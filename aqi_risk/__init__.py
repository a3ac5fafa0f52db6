"""
Core pipeline for the county AQI risk dashboard.

Raw annual rows -> five-year county summaries -> scope -> thresholds ->
risk labels -> ranked lists. Everything here is a pure function over
pandas frames; I/O lives in ``aqi_risk.loaders``.
"""

__version__ = "0.1.0"
