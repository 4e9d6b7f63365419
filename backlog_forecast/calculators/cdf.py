"""Cumulative distribution chart data.

For every sprint count that appears in any distribution's percentile grid,
the share of trials (per distribution) finishing within that many sprints.
"""

import logging
import math
from collections import OrderedDict
from typing import Dict, List, Mapping, Sequence

import numpy as np
import pandas as pd

from ..calculator import Calculator
from ..dates import format_date_compact, sprint_finish_date_for
from ..utils import write_data_frame
from .forecast import ForecastCalculator
from .forecast_models import CdfPoint, DistributionKind

logger = logging.getLogger(__name__)


def build_cdf_points(sorted_iterations: Sequence[int]) -> "OrderedDict[int, int]":
    """Map sprint counts to the highest percentile (1-100) they reach.

    Samples the sorted trials at every whole percentile, so at most 100
    points come back however many trials were run.
    """
    n = len(sorted_iterations)
    cdf: "OrderedDict[int, int]" = OrderedDict()
    if n == 0:
        return cdf

    for p in range(1, 101):
        index = math.floor((p / 100) * n) - 1
        cdf[int(sorted_iterations[max(0, index)])] = p
    return cdf


def calculate_cumulative_percentage(sorted_iterations: Sequence[int], iterations: float) -> float:
    """Percentage of trials finishing within `iterations` sprints."""
    n = len(sorted_iterations)
    if n == 0:
        return 0.0
    count = int(np.searchsorted(sorted_iterations, iterations, side="right"))
    return count / n * 100


def merge_distributions(
    simulation_data: Mapping[DistributionKind, Sequence[int]],
    start_date,
    sprint_cadence_weeks: int,
) -> List[CdfPoint]:
    """CDF points across all distributions, ascending by sprint count."""
    all_iterations = set()
    for sorted_iterations in simulation_data.values():
        all_iterations.update(build_cdf_points(sorted_iterations).keys())

    points = []
    for iterations in sorted(all_iterations):
        finish_date = sprint_finish_date_for(start_date, iterations, sprint_cadence_weeks)
        percentages: Dict[DistributionKind, float] = {
            kind: calculate_cumulative_percentage(sorted_iterations, iterations)
            for kind, sorted_iterations in simulation_data.items()
        }
        points.append(CdfPoint(iterations, format_date_compact(finish_date), percentages))
    return points


def cdf_points_to_frame(points: List[CdfPoint], kinds: Sequence[DistributionKind]) -> pd.DataFrame:
    columns = ["Sprints", "Date"] + [kind.label for kind in kinds]
    return pd.DataFrame(
        [
            [point.iterations, point.date_label]
            + [point.percentages.get(kind) for kind in kinds]
            for point in points
        ],
        columns=columns,
    )


class CDFCalculator(Calculator):
    """Cumulative probability of finishing within N sprints, per distribution."""

    def run(self):
        forecast_data = self.get_result(ForecastCalculator)
        if forecast_data is None:
            logger.warning("No forecast available; skipping CDF data")
            return None

        forecast = forecast_data["forecast"]
        simulation_data = forecast.simulation_data()
        points = merge_distributions(
            simulation_data, forecast.start_date, forecast.sprint_cadence_weeks
        )
        logger.debug("Built %d CDF points", len(points))
        return cdf_points_to_frame(points, list(simulation_data.keys()))

    def write(self):
        output_files = self.settings["cdf_data"]
        if not output_files:
            logger.debug("No output file specified for CDF data")
            return

        data = self.get_result()
        if data is None:
            return
        write_data_frame(data, output_files, "CDF")
