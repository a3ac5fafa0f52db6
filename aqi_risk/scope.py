"""Geographic scope filter applied before thresholds are computed."""

import pandas as pd

from .states import US_STATES_PLUS_DC

SCOPE_ALL = "all"
SCOPE_US = "us"
SCOPES = (SCOPE_ALL, SCOPE_US)


def apply_scope(summaries: pd.DataFrame, scope: str) -> pd.DataFrame:
    """
    Restrict county summaries to a scope.

    ``"all"`` hands the frame back untouched. ``"us"`` keeps the 50 states
    plus DC (exact, case-sensitive match on ``state``), preserving row order.
    """
    if scope == SCOPE_ALL:
        return summaries
    if scope == SCOPE_US:
        return summaries[summaries["state"].isin(US_STATES_PLUS_DC)].copy()
    raise ValueError(f"Unknown scope {scope!r}; expected one of {SCOPES}")
