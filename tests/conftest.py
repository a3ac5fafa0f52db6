# tests/conftest.py
import pandas as pd
import pytest


@pytest.fixture
def raw_rows():
    """Two years of observations for three counties (Mono is the extreme one)."""
    rows = []
    for year in (2021, 2022):
        rows += [
            {"state": "California", "county": "Mono", "year": year,
             "median_aqi": 300, "max_aqi": 600, "unhealthy_days": 10, "hazardous_days": 2},
            {"state": "California", "county": "LA", "year": year,
             "median_aqi": 40, "max_aqi": 80, "unhealthy_sensitive_days": 5},
            {"state": "Texas", "county": "Harris", "year": year,
             "median_aqi": 20, "max_aqi": 30},
        ]
    return rows


@pytest.fixture
def summaries():
    """A small summary frame spanning US states, DC variants and a non-state region."""
    return pd.DataFrame([
        {"state": "California", "county": "Mono", "median_aqi_avg": 300.0, "max_aqi_avg": 600.0, "high_aqi_days_total": 24.0},
        {"state": "California", "county": "LA", "median_aqi_avg": 40.0, "max_aqi_avg": 80.0, "high_aqi_days_total": 10.0},
        {"state": "Texas", "county": "Harris", "median_aqi_avg": 20.0, "max_aqi_avg": 30.0, "high_aqi_days_total": 0.0},
        {"state": "District Of Columbia", "county": "District of Columbia", "median_aqi_avg": 45.0, "max_aqi_avg": 120.0, "high_aqi_days_total": 3.0},
        {"state": "Country Of Mexico", "county": "BAJACALIFORNIA: MEXICALI", "median_aqi_avg": 90.0, "max_aqi_avg": 400.0, "high_aqi_days_total": 50.0},
    ])
