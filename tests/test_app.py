# tests/test_app.py
import json

import plotly.graph_objects as go
import pytest

import app as dashboard
from aqi_risk.config import DEFAULT_CONFIG
from aqi_risk.loaders import write_dashboard_json
from aqi_risk.pipeline import run_pipeline


def test_build_outputs_shapes(summaries):
    outputs = dashboard.build_outputs(summaries, "all", 90, 15, 15, "ALL", DEFAULT_CONFIG)

    total, chronic, acute, dj, options, selected = outputs[:6]
    assert total == "5"
    assert chronic.endswith("(p90)")
    assert dj == "1"
    assert options[0] == {"label": "All states", "value": "ALL"}
    assert {"label": "Texas", "value": "Texas"} in options
    assert selected == "ALL"
    assert all(isinstance(f, go.Figure) for f in outputs[6:])
    assert len(outputs) == 12


def test_build_outputs_keeps_state_inside_scope(summaries):
    outputs = dashboard.build_outputs(summaries, "us", 90, 15, 15, "Texas")

    assert outputs[5] == "Texas"
    scatter_fig = outputs[9]
    assert sum(len(trace.x) for trace in scatter_fig.data if trace.x is not None) >= 1


def test_build_outputs_resets_state_outside_scope(summaries):
    outputs = dashboard.build_outputs(summaries, "us", 90, 15, 15, "Country Of Mexico")

    options, selected = outputs[4:6]
    assert selected == "ALL"
    assert {"label": "Country Of Mexico", "value": "Country Of Mexico"} not in options
    scatter_fig = outputs[9]
    # Falls back to every in-scope county instead of an empty scatter
    assert sum(len(trace.x) for trace in scatter_fig.data if trace.x is not None) >= 3


def test_build_outputs_empty_scope_shows_dash_for_thresholds(summaries):
    foreign_only = summaries[summaries["state"] == "Country Of Mexico"]
    total, chronic, acute, dj = dashboard.build_outputs(foreign_only, "us", 90, 15, 15, "ALL")[:4]

    assert total == "0"
    assert chronic.startswith("—")
    assert acute.startswith("—")
    assert dj == "0"


def test_scatter_figure_has_a_trace_per_risk_and_threshold_lines(summaries):
    view = run_pipeline(summaries, display_exclusions=())
    fig = dashboard.make_scatter_figure(view.scatter, view.thresholds)

    assert [t.name for t in fig.data] == ["Low Risk", "High Chronic", "High Acute", "Double Jeopardy"]
    assert len(fig.layout.shapes) == 2
    assert sum(len(t.x) for t in fig.data) == len(summaries)


def test_dj_figure_empty_state(summaries):
    view = run_pipeline(summaries, region="Texas")
    fig = dashboard.make_dj_figure(view.dj_top, "Top 5 Double Jeopardy — Texas")

    assert len(fig.data) == 0
    assert "No Double Jeopardy" in fig.layout.annotations[0].text


def test_hbar_keeps_first_row_on_top(summaries):
    view = run_pipeline(summaries, top_n_chronic=2)
    fig = dashboard.make_hbar_figure(view.chronic_top, "median_aqi_avg", "t", "x", "#000")

    assert list(fig.data[0].y) == ["BAJACALIFORNIA: MEXICALI, Country Of Mexico", "Mono, California"]


def test_heatmap_figure(summaries):
    view = run_pipeline(summaries)
    fig = dashboard.make_heatmap_figure(view.heatmap)
    assert fig.data[0].locationmode == "USA-states"
    assert "CA" in list(fig.data[0].locations)

    empty = dashboard.make_heatmap_figure(view.heatmap.iloc[0:0])
    assert len(empty.data) == 0


@pytest.mark.parametrize("value, expected", [(12.345, "12.3"), (float("nan"), "—"), (None, "—")])
def test_format_threshold(value, expected):
    assert dashboard.format_threshold(value) == expected


def test_create_app_from_json(summaries, tmp_path):
    data_path = write_dashboard_json(run_pipeline(summaries), tmp_path / "dashboard_data.json")
    app = dashboard.create_app(data_path=data_path, config=DEFAULT_CONFIG)

    assert app.title == "County AQI Risk Dashboard"
    assert app.layout is not None
    assert json.loads(data_path.read_text())["metadata"]["total_counties"] == 5
