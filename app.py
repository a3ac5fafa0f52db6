"""
County AQI Risk Dashboard
- Data: dashboard_data.json (precomputed 5-year county stats) or a directory
  of annual_aqi_by_county_<year>.csv files
- Chronic = 5-year avg Median AQI, Acute = 5-year avg Max AQI
- Thresholds are percentiles over the counties in the selected scope
"""

from __future__ import annotations

import logging
import math
import os
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd
import dash
from dash import dcc, html, Input, Output
import plotly.graph_objects as go

from aqi_risk.config import DEFAULT_CONFIG, DashboardConfig, load_config
from aqi_risk.loaders import DataSource, load_summaries
from aqi_risk.logging_config import setup_logging
from aqi_risk.pipeline import DashboardView, run_pipeline
from aqi_risk.ranking import ALL_REGIONS
from aqi_risk.risk import RISK_ORDER, RiskLabel, Thresholds
from aqi_risk.scope import SCOPE_ALL, SCOPE_US, apply_scope
from aqi_risk.stats import percent_to_fraction

logger = logging.getLogger(__name__)


# ======================
# Config / Paths
# ======================

CONFIG_INI   = Path(os.environ.get("AQI_DASHBOARD_CONFIG", "config.ini"))
DATA_PATH    = os.environ.get("AQI_DASHBOARD_DATA")  # overrides [dashboard] data_path

COLORS = {
    "low": "#b8c1cc",
    "chronic": "#ff8a3d",
    "acute": "#ff4d5e",
    "dj": "#b16cff",
    "livable": "#5dd6a7",
}

RISK_COLORS = {
    RiskLabel.LOW_RISK.value: COLORS["low"],
    RiskLabel.HIGH_CHRONIC.value: COLORS["chronic"],
    RiskLabel.HIGH_ACUTE.value: COLORS["acute"],
    RiskLabel.DOUBLE_JEOPARDY.value: COLORS["dj"],
}

HEATMAP_TITLE = "High AQI Days by State (2021–2025)"


# ======================
# Utilities
# ======================

def format_threshold(v: float) -> str:
    """One decimal, or an em dash when the threshold is undefined."""
    if v is None or (isinstance(v, float) and math.isnan(v)):
        return "—"
    return f"{v:.1f}"


def county_labels(df: pd.DataFrame) -> List[str]:
    return (df["county"].astype(str) + ", " + df["state"].astype(str)).tolist()


def common_layout(fig: go.Figure, title: str, height: int = 560, **extra) -> go.Figure:
    fig.update_layout(
        title=dict(text=title, font=dict(color="#e8ecf3")),
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(0,0,0,0)",
        font=dict(family="Inter, system-ui, sans-serif", color="#e8ecf3"),
        height=height,
        **extra,
    )
    return fig


# ======================
# Figure Builders
# ======================

def make_empty_figure(title: str, message: str, height: int = 680) -> go.Figure:
    """Placeholder chart with a centered note."""
    fig = go.Figure()
    return common_layout(
        fig, title, height=height,
        margin={"l": 20, "r": 20, "t": 70, "b": 40},
        annotations=[dict(text=message, x=0.5, y=0.5, xref="paper", yref="paper",
                          showarrow=False, font=dict(color="rgba(232,236,243,0.85)", size=14))],
    )


def make_hbar_figure(
    df: pd.DataFrame,
    value_col: str,
    title: str,
    x_title: str,
    color: str,
    labels: Optional[List[str]] = None,
    height: int = 560,
    left_margin: int = 190,
) -> go.Figure:
    """Horizontal bar chart, first row of ``df`` drawn at the top."""
    if df.empty:
        return make_empty_figure(title, "No counties for this selection.", height=height)

    labels = labels if labels is not None else county_labels(df)
    fig = go.Figure(go.Bar(
        x=df[value_col].tolist()[::-1],
        y=labels[::-1],
        orientation="h",
        marker=dict(color=color),
        hovertemplate="<b>%{y}</b><br>" + x_title + ": %{x:.1f}<extra></extra>",
    ))
    return common_layout(
        fig, title, height=height,
        xaxis=dict(title=x_title, gridcolor="rgba(255,255,255,0.10)"),
        yaxis=dict(gridcolor="rgba(255,255,255,0.10)"),
        margin={"l": left_margin, "r": 20, "t": 70, "b": 50},
    )


def make_scatter_figure(scatter: pd.DataFrame, thresholds: Thresholds, suffix: str = "") -> go.Figure:
    """Chronic vs acute scatter, one trace per risk label, dashed threshold lines."""
    fig = go.Figure()
    for risk in RISK_ORDER:
        pts = scatter[scatter["risk"] == risk] if not scatter.empty else scatter
        hover = (
            pts["county"].astype(str) + ", " + pts["state"].astype(str)
            + "<br>Avg Median AQI: " + pts["median_aqi_avg"].map(lambda v: f"{v:.1f}")
            + "<br>Avg Max AQI: " + pts["max_aqi_avg"].map(lambda v: f"{v:.1f}")
        ) if not pts.empty else pd.Series(dtype=str)
        fig.add_trace(go.Scatter(
            x=pts["median_aqi_avg"].tolist() if not pts.empty else [],
            y=pts["max_aqi_avg"].tolist() if not pts.empty else [],
            mode="markers",
            name=risk,
            text=hover.tolist(),
            hovertemplate="%{text}<extra></extra>",
            marker=dict(size=9, color=RISK_COLORS[risk], opacity=0.78),
        ))

    shapes = []
    line = dict(color="rgba(255,255,255,0.65)", dash="dash", width=2)
    if not math.isnan(thresholds.chronic):
        shapes.append(dict(type="line", x0=thresholds.chronic, x1=thresholds.chronic,
                           y0=0, y1=1, yref="paper", line=line))
    if not math.isnan(thresholds.acute):
        shapes.append(dict(type="line", y0=thresholds.acute, y1=thresholds.acute,
                           x0=0, x1=1, xref="paper", line=line))

    return common_layout(
        fig, f"Chronic vs Acute AQI (5-year avg){suffix}", height=680,
        xaxis=dict(title="5-year Avg Median AQI (Daily “Grind”)", gridcolor="rgba(255,255,255,0.10)"),
        yaxis=dict(title="5-year Avg Max AQI (Extreme Events)", gridcolor="rgba(255,255,255,0.10)"),
        shapes=shapes,
        margin={"l": 70, "r": 20, "t": 70, "b": 60},
        legend=dict(orientation="h", y=-0.18),
    )


def make_dj_figure(dj_top: pd.DataFrame, title: str) -> go.Figure:
    if dj_top.empty:
        return make_empty_figure(title, "No Double Jeopardy counties for this selection.")
    return make_hbar_figure(
        dj_top, "dj_score", title, "Double Jeopardy score", COLORS["dj"],
        labels=dj_top["county"].astype(str).tolist(), height=680, left_margin=110,
    )


def make_heatmap_figure(heatmap: pd.DataFrame) -> go.Figure:
    """State choropleth of summed high-AQI days."""
    if heatmap.empty:
        return make_empty_figure(HEATMAP_TITLE, "Heatmap data unavailable (no high-AQI day counts).")

    fig = go.Figure(go.Choropleth(
        locationmode="USA-states",
        locations=heatmap["abbr"],
        z=heatmap["high_aqi_days"],
        text=heatmap["state"],
        colorscale="OrRd",
        marker=dict(line=dict(color="rgba(255,255,255,0.35)", width=0.6)),
        colorbar=dict(title="High AQI days<br>(2021–2025)", tickcolor="#e8ecf3"),
        hovertemplate="<b>%{text}</b><br>High AQI days: %{z:,.0f}<extra></extra>",
    ))
    return common_layout(
        fig, HEATMAP_TITLE, height=680,
        geo=dict(scope="usa", bgcolor="rgba(0,0,0,0)"),
        margin={"l": 20, "r": 20, "t": 70, "b": 20},
    )


def build_outputs(
    summaries: pd.DataFrame,
    scope: str,
    percentile_pct: float,
    top_n_chronic: int,
    top_n_acute: int,
    state: Optional[str],
    config: DashboardConfig = DEFAULT_CONFIG,
) -> Tuple:
    """
    Recompute the whole view for one set of UI parameters and render it.

    Returns the callback outputs in order: four KPI strings, the state
    dropdown options and selected value, then six figures. A selected state
    that is not in the current scope is reset to "ALL".
    """
    scope = scope or SCOPE_ALL
    region = state or ALL_REGIONS
    if region != ALL_REGIONS and not (apply_scope(summaries, scope)["state"] == region).any():
        logger.info(f"State {region!r} is outside scope {scope!r}; resetting selection to {ALL_REGIONS}")
        region = ALL_REGIONS

    params = config.pipeline_params()
    params.update(
        scope=scope,
        percentile=percent_to_fraction(percentile_pct),
        region=region,
        top_n_chronic=int(top_n_chronic),
        top_n_acute=int(top_n_acute),
    )
    view: DashboardView = run_pipeline(summaries, **params)
    thr = view.thresholds
    pct = int(round(percentile_pct))
    suffix = "" if region == ALL_REGIONS else f" — {region}"

    state_options = [{"label": "All states", "value": ALL_REGIONS}] + [
        {"label": s, "value": s} for s in view.state_options
    ]

    chronic_fig = make_hbar_figure(
        view.chronic_top, "median_aqi_avg",
        f"Top {top_n_chronic} Counties by Chronic Burden (Avg Median AQI)",
        "Avg Median AQI", COLORS["chronic"],
    )
    acute_fig = make_hbar_figure(
        view.acute_top, "max_aqi_avg",
        f"Top {top_n_acute} Counties by Acute Severity (Avg Max AQI)",
        "Avg Max AQI", COLORS["acute"],
    )
    livable_fig = make_hbar_figure(
        view.livable, "median_aqi_avg",
        f"Top {config.top_n_livable} Most Livable Counties (Lowest Avg Median AQI)",
        "Avg Median AQI", COLORS["livable"],
    )
    scatter_fig = make_scatter_figure(view.scatter, thr, suffix)
    dj_title = (f"Top {config.top_k_dj} Double Jeopardy (Overall)" if region == ALL_REGIONS
                else f"Top {config.top_k_dj} Double Jeopardy — {region}")
    dj_fig = make_dj_figure(view.dj_top, dj_title)
    heatmap_fig = make_heatmap_figure(view.heatmap)

    return (
        str(view.kpis["total_counties"]),
        f"{format_threshold(thr.chronic)} (p{pct})",
        f"{format_threshold(thr.acute)} (p{pct})",
        str(view.kpis["dj_count"]),
        state_options,
        region,
        chronic_fig, acute_fig, livable_fig, scatter_fig, dj_fig, heatmap_fig,
    )


# ======================
# Layout
# ======================

def kpi_card(label: str, value_id: str) -> html.Div:
    return html.Div([
        html.Div(label, className="kpi-label"),
        html.Div("—", id=value_id, className="kpi-value"),
    ], className="kpi-card")


def build_layout(state_options: List[str], config: DashboardConfig) -> html.Div:
    """Construct the static Dash layout."""
    pct = int(round(config.percentile * 100))
    return html.Div([
        html.H1("County Air Quality: Chronic vs Acute Risk"),
        html.P("Five-year averages of county Median AQI (daily grind) and Max AQI (extreme events). "
               "Counties above both percentile thresholds are Double Jeopardy.",
               className="subtitle"),

        html.Div([
            html.Div([
                html.Label("Scope"),
                dcc.Dropdown(
                    id="scope",
                    options=[{"label": "All regions", "value": SCOPE_ALL},
                             {"label": "US states + DC", "value": SCOPE_US}],
                    value=config.scope,
                    clearable=False,
                ),
            ], className="control"),
            html.Div([
                html.Label("Threshold percentile"),
                dcc.Slider(id="percentile", min=50, max=99, step=1, value=pct,
                           marks={m: f"p{m}" for m in (50, 75, 90, 99)}),
            ], className="control"),
            html.Div([
                html.Label("Top N (chronic)"),
                dcc.Slider(id="topn-chronic", min=5, max=30, step=1, value=config.top_n_chronic,
                           marks={m: str(m) for m in (5, 15, 30)}),
            ], className="control"),
            html.Div([
                html.Label("Top N (acute)"),
                dcc.Slider(id="topn-acute", min=5, max=30, step=1, value=config.top_n_acute,
                           marks={m: str(m) for m in (5, 15, 30)}),
            ], className="control"),
            html.Div([
                html.Label("State"),
                dcc.Dropdown(
                    id="state-select",
                    options=[{"label": "All states", "value": ALL_REGIONS}]
                            + [{"label": s, "value": s} for s in state_options],
                    value=config.region,
                    clearable=False,
                ),
            ], className="control"),
        ], className="controls"),

        html.Div([
            kpi_card("Counties in scope", "kpi-total"),
            kpi_card("Chronic threshold (Median AQI)", "kpi-chronic"),
            kpi_card("Acute threshold (Max AQI)", "kpi-acute"),
            kpi_card("Double Jeopardy counties", "kpi-dj"),
        ], className="kpis"),

        html.Div([
            dcc.Graph(id="chart-chronic"),
            dcc.Graph(id="chart-acute"),
        ], className="row"),
        html.Div([
            dcc.Graph(id="chart-scatter"),
            dcc.Graph(id="chart-dj-top"),
        ], className="row"),
        html.Div([
            dcc.Graph(id="chart-livable"),
            dcc.Graph(id="chart-heatmap"),
        ], className="row"),
    ], className="container")


# ======================
# Callbacks
# ======================

def register_callbacks(app: dash.Dash, summaries: pd.DataFrame, config: DashboardConfig) -> None:
    """Wire all Dash callbacks."""

    @app.callback(
        Output("kpi-total", "children"),
        Output("kpi-chronic", "children"),
        Output("kpi-acute", "children"),
        Output("kpi-dj", "children"),
        Output("state-select", "options"),
        Output("state-select", "value"),
        Output("chart-chronic", "figure"),
        Output("chart-acute", "figure"),
        Output("chart-livable", "figure"),
        Output("chart-scatter", "figure"),
        Output("chart-dj-top", "figure"),
        Output("chart-heatmap", "figure"),
        Input("scope", "value"),
        Input("percentile", "value"),
        Input("topn-chronic", "value"),
        Input("topn-acute", "value"),
        Input("state-select", "value"),
    )
    def update_dashboard(scope, percentile_pct, top_n_chronic, top_n_acute, state):
        return build_outputs(
            summaries,
            scope=scope,
            percentile_pct=percentile_pct if percentile_pct is not None else config.percentile * 100,
            top_n_chronic=top_n_chronic or config.top_n_chronic,
            top_n_acute=top_n_acute or config.top_n_acute,
            state=state,
            config=config,
        )


def create_app(data_path: Optional[Path] = None,
               config_path: Path = CONFIG_INI,
               config: Optional[DashboardConfig] = None) -> dash.Dash:
    """
    App factory. Loads data once, builds layout, and registers callbacks.
    Returns a ready-to-run Dash app.
    """
    config = config or load_config(str(config_path))
    data_path = Path(data_path or DATA_PATH or config.data_path)
    summaries = load_summaries(DataSource.from_path(data_path))
    logger.info(f"Loaded {len(summaries)} county summaries from {data_path}")

    states = sorted(summaries["state"].dropna().unique().tolist()) if not summaries.empty else []

    app = dash.Dash(__name__)
    app.title = "County AQI Risk Dashboard"

    app.layout = build_layout(states, config)
    register_callbacks(app, summaries, config)
    return app


# ======================
# Main
# ======================

if __name__ == "__main__":
    setup_logging(int(os.environ.get("AQI_DASHBOARD_VERBOSITY", "1")))
    app = create_app()
    app.run(debug=False)
