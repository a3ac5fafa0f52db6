"""Order statistics used to derive risk thresholds."""

import math
import numbers
from typing import Iterable, Union

import numpy as np
import pandas as pd


def percent_to_fraction(value: Union[int, float]) -> float:
    """Convert a 0-100 slider value (e.g. 90) into a fraction (0.9)."""
    return float(value) / 100.0


def percentile(values: Union[Iterable[float], pd.Series, np.ndarray], p: float) -> float:
    """
    Linear-interpolation percentile over the finite entries of ``values``.

    The rank index is ``(n - 1) * p`` over the ascending sample; a fractional
    index interpolates between its two neighbours.

    Args:
        values: Numeric sample. Left untouched; a sorted copy is used.
            Non-numeric entries (strings, None, booleans) are ignored.
        p: Fraction in [0, 1].

    Returns:
        The interpolated order statistic, or NaN when no finite value remains.

    Raises:
        ValueError: If ``p`` lies outside [0, 1].
    """
    if not 0.0 <= p <= 1.0:
        raise ValueError(f"percentile fraction must be within [0, 1], got {p!r}")

    # Only real numbers count; strings, None and booleans are skipped
    arr = np.array([float(v) for v in values if isinstance(v, numbers.Real) and not isinstance(v, bool)], dtype=float)
    arr = np.sort(arr[np.isfinite(arr)])
    if arr.size == 0:
        return float("nan")

    idx = (arr.size - 1) * p
    lo = math.floor(idx)
    hi = math.ceil(idx)
    if lo == hi:
        return float(arr[lo])
    return float(arr[lo] + (arr[hi] - arr[lo]) * (idx - lo))
