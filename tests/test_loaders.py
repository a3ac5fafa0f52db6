# tests/test_loaders.py
import json

import pandas as pd
import pytest

from aqi_risk.loaders import (
    DataSource,
    SourceKind,
    annual_csv_paths,
    dashboard_payload,
    load_annual_csvs,
    load_summaries,
    read_annual_csv,
    read_dashboard_json,
    write_dashboard_json,
)
from aqi_risk.pipeline import run_pipeline

CSV_2021 = """State,County,Year,Days with AQI,Good Days,Unhealthy for Sensitive Groups Days,Unhealthy Days,Very Unhealthy Days,Hazardous Days,Max AQI,90th Percentile AQI,Median AQI
California,Mono,2021,365,100,20,10,5,2,600,200,300
California,Los Angeles,2021,365,200,30,4,0,0,80,70,40
Texas,Harris,2021,365,300,0,0,0,0,30,25,20
,Nowhere,2021,365,0,0,0,0,0,10,10,10
"""

CSV_2022 = """State,County,Year,Max AQI,Median AQI
California,Mono,2022,400,100
Texas,Harris,2022,50,
"""


@pytest.fixture
def data_dir(tmp_path):
    (tmp_path / "annual_aqi_by_county_2021.csv").write_text(CSV_2021)
    (tmp_path / "annual_aqi_by_county_2022.csv").write_text(CSV_2022)
    return tmp_path


def test_read_annual_csv_renames_columns(data_dir):
    df = read_annual_csv(data_dir / "annual_aqi_by_county_2021.csv")

    assert {"state", "county", "median_aqi", "max_aqi", "hazardous_days"}.issubset(df.columns)
    assert "Good Days" not in df.columns
    assert len(df) == 4


def test_read_annual_csv_missing_required_column(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("State,County,Max AQI\nOhio,Franklin,100\n")
    with pytest.raises(ValueError, match="Median AQI"):
        read_annual_csv(path)


def test_load_annual_csvs_combines_years_and_skips_missing(data_dir):
    paths = annual_csv_paths(data_dir, [2021, 2022, 2023])
    out = load_annual_csvs(paths).set_index(["state", "county"])

    assert len(out) == 3
    mono = out.loc[("California", "Mono")]
    assert mono["median_aqi_avg"] == pytest.approx(200.0)
    assert mono["max_aqi_avg"] == pytest.approx(500.0)
    assert mono["high_aqi_days_total"] == pytest.approx(37.0)
    assert mono["n_years"] == 2
    # Harris 2022 has no Median AQI and is dropped
    assert out.loc[("Texas", "Harris"), "n_years"] == 1


def test_load_annual_csvs_nothing_loaded(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_annual_csvs(annual_csv_paths(tmp_path, [2021]))


def test_data_source_from_path(data_dir, tmp_path):
    from_dir = DataSource.from_path(data_dir, years=[2021, 2022])
    assert from_dir.kind is SourceKind.ANNUAL_CSV
    assert len(from_dir.paths) == 2

    assert DataSource.from_path(tmp_path / "dashboard_data.json").kind is SourceKind.SUMMARY_JSON
    assert DataSource.from_path(data_dir / "annual_aqi_by_county_2021.csv").kind is SourceKind.ANNUAL_CSV


def test_json_written_by_pipeline_reads_back(data_dir, tmp_path):
    summaries = load_summaries(DataSource.from_path(data_dir, years=[2021, 2022]))
    view = run_pipeline(summaries, display_exclusions=())
    out_path = write_dashboard_json(view, tmp_path / "out" / "dashboard_data.json")

    payload = json.loads(out_path.read_text())
    assert set(payload) == {"metadata", "scatter_data", "chronic_top", "acute_top", "dj_counties"}
    assert payload["metadata"]["total_counties"] == 3
    assert payload["metadata"]["dj_count"] == len(payload["dj_counties"])
    assert {"County", "State", "Median AQI", "Max AQI", "Risk"}.issubset(payload["scatter_data"][0])

    back = load_summaries(DataSource.summary_json(out_path)).set_index(["state", "county"]).sort_index()
    orig = summaries.set_index(["state", "county"]).sort_index()
    pd.testing.assert_series_equal(back["median_aqi_avg"], orig["median_aqi_avg"], check_index_type=False)
    pd.testing.assert_series_equal(back["high_aqi_days_total"], orig["high_aqi_days_total"], check_index_type=False)


def test_payload_nulls_undefined_thresholds():
    empty = pd.DataFrame(columns=["state", "county", "median_aqi_avg", "max_aqi_avg"])
    payload = dashboard_payload(run_pipeline(empty))

    assert payload["metadata"]["chronic_threshold"] is None
    assert payload["metadata"]["acute_threshold"] is None
    assert payload["scatter_data"] == []
    assert payload["dj_counties"] == []


def test_read_dashboard_json_drops_malformed_rows(tmp_path):
    path = tmp_path / "d.json"
    path.write_text(json.dumps({
        "metadata": {"total_counties": 3},
        "scatter_data": [
            {"County": "Mono", "State": "California", "Median AQI": "300", "Max AQI": 600, "Risk": "Double Jeopardy"},
            {"County": "", "State": "California", "Median AQI": 1, "Max AQI": 1},
            {"County": "Harris", "State": "Texas", "Median AQI": None, "Max AQI": 30},
        ],
    }))
    df = read_dashboard_json(path)

    assert df[["state", "county"]].values.tolist() == [["California", "Mono"]]
    assert df.loc[0, "median_aqi_avg"] == 300.0
    assert "risk" not in df.columns


@pytest.mark.parametrize("payload", [[{"County": "a"}], {"metadata": {}}, {"scatter_data": {"a": 1}}])
def test_read_dashboard_json_rejects_unexpected_shape(tmp_path, payload):
    path = tmp_path / "d.json"
    path.write_text(json.dumps(payload))
    with pytest.raises(ValueError):
        read_dashboard_json(path)


def test_read_dashboard_json_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_summaries(DataSource.summary_json(tmp_path / "nope.json"))
