"""Histogram chart data: share of trials finishing in each sprint range."""

import logging
import math
from typing import Dict, List, Mapping, Sequence

import numpy as np
import pandas as pd

from ..calculator import Calculator
from ..common_constants import DEFAULT_HISTOGRAM_BINS
from ..dates import format_date_compact, sprint_finish_date_for
from ..utils import write_data_frame
from .forecast import ForecastCalculator
from .forecast_models import DistributionKind, HistogramBin

logger = logging.getLogger(__name__)


def count_in_range(sorted_iterations: Sequence[int], range_start: int, range_end: int) -> int:
    """Number of trials with range_start <= iterations <= range_end."""
    lower = np.searchsorted(sorted_iterations, range_start, side="left")
    upper = np.searchsorted(sorted_iterations, range_end, side="right")
    return int(upper - lower)


def build_histogram_bins(
    simulation_data: Mapping[DistributionKind, Sequence[int]],
    start_date,
    sprint_cadence_weeks: int,
    bin_count: int = DEFAULT_HISTOGRAM_BINS,
    completed_sprint_count: int = 0,
) -> List[HistogramBin]:
    """Equal-width bins spanning the observed range of every distribution.

    Bin width is `max(1, ceil(range / bin_count))` and there are
    `ceil(range / width)` bins (one when all trials agree). Bins cover whole
    sprint counts and the last bin is stretched to include the maximum, so
    each distribution's percentages add up to 100. Labels are absolute
    sprint numbers, offset by `completed_sprint_count`.
    """
    non_empty = [data for data in simulation_data.values() if len(data) > 0]
    if not non_empty:
        return []

    global_min = int(min(data[0] for data in non_empty))
    global_max = int(max(data[-1] for data in non_empty))
    value_range = global_max - global_min

    width = max(1, math.ceil(value_range / bin_count))
    actual_bins = math.ceil(value_range / width) if value_range > 0 else 1

    bins = []
    for idx in range(actual_bins):
        range_start = global_min + idx * width
        range_end = global_max if idx == actual_bins - 1 else range_start + width - 1

        percentages: Dict[DistributionKind, float] = {}
        for kind, sorted_iterations in simulation_data.items():
            n = len(sorted_iterations)
            count = count_in_range(sorted_iterations, range_start, range_end) if n else 0
            percentages[kind] = count / n * 100 if n else 0.0

        absolute_start = range_start + completed_sprint_count
        absolute_end = range_end + completed_sprint_count
        label = (
            str(absolute_start)
            if absolute_start == absolute_end
            else f"{absolute_start}-{absolute_end}"
        )
        finish_date = sprint_finish_date_for(start_date, range_end, sprint_cadence_weeks)
        bins.append(
            HistogramBin(
                range_start, range_end, label, format_date_compact(finish_date), percentages
            )
        )

    return bins


def histogram_bins_to_frame(
    bins: List[HistogramBin], kinds: Sequence[DistributionKind]
) -> pd.DataFrame:
    columns = ["Range start", "Range end", "Sprints", "Date"] + [kind.label for kind in kinds]
    return pd.DataFrame(
        [
            [b.range_start, b.range_end, b.label, b.date_label]
            + [b.percentages.get(kind) for kind in kinds]
            for b in bins
        ],
        columns=columns,
    )


class HistogramCalculator(Calculator):
    """Bucket the sprint counts of every distribution into equal-width bins."""

    def run(self):
        forecast_data = self.get_result(ForecastCalculator)
        if forecast_data is None:
            logger.warning("No forecast available; skipping histogram data")
            return None

        forecast = forecast_data["forecast"]
        simulation_data = forecast.simulation_data()
        bins = build_histogram_bins(
            simulation_data,
            forecast.start_date,
            forecast.sprint_cadence_weeks,
            self.settings["histogram_bins"],
            forecast_data["inputs"].completed_sprint_count,
        )
        return histogram_bins_to_frame(bins, list(simulation_data.keys()))

    def write(self):
        output_files = self.settings["histogram_data"]
        if not output_files:
            logger.debug("No output file specified for histogram data")
            return

        data = self.get_result()
        if data is None:
            return
        write_data_frame(data, output_files, "histogram")
