"""Tests for histogram chart data."""

import datetime
from collections import OrderedDict

import numpy as np
import pytest

from ..utils import extend_dict
from .forecast import ForecastCalculator
from .forecast_models import DistributionKind
from .histogram import (
    HistogramCalculator,
    build_histogram_bins,
    count_in_range,
    histogram_bins_to_frame,
)

START = datetime.date(2024, 1, 1)


def test_count_in_range():
    """Test inclusive range counting."""
    values = [1, 2, 2, 3, 5, 8]
    assert count_in_range(values, 2, 3) == 3
    assert count_in_range(values, 4, 4) == 0
    assert count_in_range(values, 0, 100) == 6


def test_single_value_histogram():
    """Test identical trials give a single bin holding everything."""
    data = OrderedDict([(DistributionKind.TRUNCATED_NORMAL, np.array([5, 5, 5]))])
    bins = build_histogram_bins(data, START, 2)

    assert len(bins) == 1
    assert bins[0].range_start == 5
    assert bins[0].range_end == 5
    assert bins[0].label == "5"
    assert bins[0].date_label == "Mar 8"
    assert bins[0].percentages[DistributionKind.TRUNCATED_NORMAL] == 100


def test_bin_widths():
    """Test equal-width bins spanning the observed range."""
    data = OrderedDict([(DistributionKind.GAMMA, np.arange(1, 31))])
    bins = build_histogram_bins(data, START, 2, bin_count=10)

    # range 29, width 3, 10 bins
    assert len(bins) == 10
    assert [(b.range_start, b.range_end) for b in bins[:2]] == [(1, 3), (4, 6)]
    assert bins[-1].range_end == 30
    assert bins[0].label == "1-3"


def test_percentages_sum_to_100():
    """Test every distribution's bins add up to 100%."""
    rng = np.random.default_rng(3)
    data = OrderedDict(
        [
            (DistributionKind.TRUNCATED_NORMAL, np.sort(rng.integers(4, 19, 1000))),
            (DistributionKind.LOGNORMAL, np.sort(rng.integers(6, 45, 1000))),
            (DistributionKind.BOOTSTRAP, np.sort(rng.integers(5, 12, 999))),
        ]
    )
    for bin_count in (1, 4, 7, 15, 60):
        bins = build_histogram_bins(data, START, 2, bin_count=bin_count)
        for kind in data:
            assert sum(b.percentages[kind] for b in bins) == pytest.approx(100)


def test_labels_are_offset_by_completed_sprints():
    """Test bins are labelled with absolute sprint numbers."""
    data = OrderedDict([(DistributionKind.GAMMA, np.array([2, 3, 4]))])
    bins = build_histogram_bins(data, START, 2, bin_count=2, completed_sprint_count=6)
    assert [b.label for b in bins] == ["8", "9-10"]
    assert [b.range_start for b in bins] == [2, 3]


def test_empty_histogram():
    """Test no trials give no bins."""
    assert not build_histogram_bins(OrderedDict(), START, 2)
    assert not build_histogram_bins({DistributionKind.GAMMA: np.array([])}, START, 2)


def test_histogram_bins_to_frame():
    """Test the exported columns."""
    data = OrderedDict([(DistributionKind.UNIFORM, np.array([5, 6]))])
    frame = histogram_bins_to_frame(build_histogram_bins(data, START, 2), list(data.keys()))
    assert list(frame.columns) == ["Range start", "Range end", "Sprints", "Date", "Uniform"]


@pytest.fixture(name="settings")
def fixture_settings(base_settings, tmp_path):
    """Provide settings fixture for histogram tests."""
    return extend_dict(
        base_settings,
        {
            "backlog": 100.0,
            "velocity_mean": 20.0,
            "velocity_stddev": 6.0,
            "forecast_mode": "history",
            "histogram_bins": 5,
            "histogram_data": [str(tmp_path / "histogram.json")],
        },
    )


def test_calculator_run_and_write(settings, tmp_path):
    """Test the calculator builds and writes the histogram."""
    results = {}
    results[ForecastCalculator] = ForecastCalculator(settings, results).run()
    calculator = HistogramCalculator(settings, results)
    results[HistogramCalculator] = calculator.run()

    data = results[HistogramCalculator]
    assert 1 <= len(data) <= 5
    for label in ("T-Normal", "Lognorm", "Gamma"):
        assert data[label].sum() == pytest.approx(100)

    calculator.write()
    assert (tmp_path / "histogram.json").exists()


def test_calculator_skips_without_forecast(settings):
    """Test no forecast means no histogram."""
    assert HistogramCalculator(settings, {}).run() is None
