"""Pytest fixtures for functional tests."""

from pathlib import Path

import pytest

from backlog_forecast.calculator import run_calculators
from backlog_forecast.config_main import CALCULATORS
from backlog_forecast.utils import extend_dict

OUTPUT_FILES = {
    "trials_data": ["trials.csv"],
    "percentiles_data": ["percentiles.csv", "percentiles.json"],
    "milestones_data": ["milestones.csv"],
    "cdf_data": ["cdf.csv"],
    "histogram_data": ["histogram.csv"],
    "burnup_data": ["burnup.csv"],
}


def pytest_collection_modifyitems(items):
    """Automatically mark all tests in the functional directory.

    This hook runs during test collection and adds the 'functional' marker to all
    test items found in this directory, so individual modules need no pytestmark.
    """
    functional_dir = Path(__file__).parent.resolve()
    for item in items:
        test_file_path = Path(item.path).resolve()
        if functional_dir in test_file_path.parents:
            item.add_marker(pytest.mark.functional)


@pytest.fixture(name="output_dir")
def fixture_output_dir(tmp_path, monkeypatch):
    """Run in an empty directory so output files land in it."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture(name="deterministic_settings")
def fixture_deterministic_settings(base_settings):
    """100 points at exactly 20 per sprint, forecast from 2024-01-01."""
    return extend_dict(
        base_settings,
        {
            "trials": 200,
            "backlog": 100.0,
            "forecast_mode": "subjective",
            "velocity_mean": 20.0,
            "velocity_stddev": 0.0,
            "sprint_cadence_weeks": 2,
        },
    )


def with_output_files(settings):
    """`settings` writing every output file to the working directory."""
    return extend_dict(settings, OUTPUT_FILES)


def run_pipeline(settings):
    """Run every calculator, returning the results keyed by calculator class."""
    return run_calculators(CALCULATORS, settings)
