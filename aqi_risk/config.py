"""
Dashboard parameters.

Defaults live in ``DashboardConfig``; an optional ``config.ini`` with a
``[dashboard]`` section overrides them option by option.
"""

import logging
import os
from configparser import ConfigParser
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

from .ranking import ALL_REGIONS, DISPLAY_EXCLUSIONS
from .scope import SCOPE_ALL, SCOPES
from .stats import percent_to_fraction

logger = logging.getLogger(__name__)

SECTION = "dashboard"


@dataclass(frozen=True)
class DashboardConfig:
    scope: str = SCOPE_ALL
    percentile: float = 0.90
    region: str = ALL_REGIONS
    top_n_chronic: int = 15
    top_n_acute: int = 15
    top_n_livable: int = 15
    top_k_dj: int = 5
    data_path: str = "dashboard_data.json"
    display_exclusions: Tuple[Tuple[str, str], ...] = field(default=DISPLAY_EXCLUSIONS)

    def validate(self) -> "DashboardConfig":
        if self.scope not in SCOPES:
            raise ValueError(f"scope must be one of {SCOPES}, got {self.scope!r}")
        if not 0.0 <= self.percentile <= 1.0:
            raise ValueError(f"percentile must be within [0, 1], got {self.percentile!r}")
        for name in ("top_n_chronic", "top_n_acute", "top_n_livable", "top_k_dj"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be a positive integer, got {getattr(self, name)!r}")
        return self

    def pipeline_params(self) -> Dict[str, Any]:
        """Keyword arguments for ``run_pipeline``."""
        return {
            "scope": self.scope,
            "percentile": self.percentile,
            "region": self.region,
            "top_n_chronic": self.top_n_chronic,
            "top_n_acute": self.top_n_acute,
            "top_n_livable": self.top_n_livable,
            "top_k_dj": self.top_k_dj,
            "display_exclusions": self.display_exclusions,
        }


DEFAULT_CONFIG = DashboardConfig()


def parse_exclusions(value: str) -> Tuple[Tuple[str, str], ...]:
    """
    Parse ``State/County; State/County`` into pairs. Blank means no exclusions.
    """
    pairs = []
    for item in value.split(";"):
        item = item.strip()
        if not item:
            continue
        if "/" not in item:
            raise ValueError(f"Exclusion {item!r} is not of the form 'State/County'")
        state, county = item.split("/", 1)
        pairs.append((state.strip(), county.strip()))
    return tuple(pairs)


def load_config(path: Optional[str] = "config.ini") -> DashboardConfig:
    """
    Load dashboard parameters from an INI file.

    A missing file, a missing [dashboard] section or a missing option falls
    back to the default. Invalid values are logged and the default kept.

    Raises:
        ValueError: If the merged configuration is out of range.
    """
    if not path or not os.path.exists(path):
        logger.info(f"Config file not found at {path}, using default dashboard parameters")
        return DEFAULT_CONFIG

    parser = ConfigParser()
    parser.read(path)

    if not parser.has_section(SECTION):
        logger.debug(f"No [{SECTION}] section in {path}, using defaults")
        return DEFAULT_CONFIG

    kwargs: Dict[str, Any] = {}

    for param in ("scope", "region", "data_path"):
        if parser.has_option(SECTION, param):
            kwargs[param] = parser.get(SECTION, param).strip()

    if parser.has_option(SECTION, "percentile"):
        try:
            # Always 0-100, like the slider and --percentile: "1" means p1, not p100
            kwargs["percentile"] = percent_to_fraction(parser.getfloat(SECTION, "percentile"))
        except ValueError as e:
            logger.warning(f"Invalid float value for 'percentile': {e}. Using default.")

    for param in ("top_n_chronic", "top_n_acute", "top_n_livable", "top_k_dj"):
        if parser.has_option(SECTION, param):
            try:
                kwargs[param] = parser.getint(SECTION, param)
            except ValueError as e:
                logger.warning(f"Invalid integer value for '{param}': {e}. Using default.")

    if parser.has_option(SECTION, "display_exclusions"):
        try:
            kwargs["display_exclusions"] = parse_exclusions(parser.get(SECTION, "display_exclusions"))
        except ValueError as e:
            logger.warning(f"Invalid display_exclusions: {e}. Using default.")

    config = replace(DEFAULT_CONFIG, **kwargs).validate()
    logger.info(f"Loaded dashboard config from {path}: {kwargs}")
    return config
