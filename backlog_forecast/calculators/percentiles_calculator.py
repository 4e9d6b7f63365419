"""Percentile tables for the forecast and its milestones."""

import logging
from typing import Iterable, List, Sequence

import pandas as pd

from ..calculator import Calculator
from ..common_constants import STANDARD_PERCENTILES
from ..utils import write_data_frame
from .forecast import ForecastCalculator
from .forecast_models import ForecastResult, Milestone, MilestoneForecastResult
from .percentiles import calculate_custom_percentiles, extract_percentile_results

logger = logging.getLogger(__name__)

PERCENTILE_COLUMNS = ["Distribution", "Percentile", "Sprints", "Finish date"]


def _row(kind, result):
    return [kind.label, result.percentile, result.iterations_required, result.finish_date]


def _table_percentiles(custom_percentiles: Iterable[float]) -> List[float]:
    return list(STANDARD_PERCENTILES) + [
        p for p in custom_percentiles if p not in STANDARD_PERCENTILES
    ]


def percentile_rows(forecast: ForecastResult, custom_percentiles: Sequence[float] = ()):
    """Standard results for every distribution, then each custom percentile."""
    rows = []
    for kind, distribution in forecast.distributions.items():
        for result in distribution.results:
            rows.append(_row(kind, result))

    for percentile in custom_percentiles:
        if percentile in STANDARD_PERCENTILES:
            continue
        for kind, result in calculate_custom_percentiles(forecast, percentile).items():
            rows.append(_row(kind, result))
    return rows


def percentile_table(
    forecast: ForecastResult, custom_percentiles: Sequence[float] = ()
) -> pd.DataFrame:
    data = pd.DataFrame(
        percentile_rows(forecast, custom_percentiles), columns=PERCENTILE_COLUMNS
    )
    data["Finish date"] = pd.to_datetime(data["Finish date"])
    return data


def milestone_table(
    milestone_forecast: MilestoneForecastResult,
    milestones: Sequence[Milestone],
    custom_percentiles: Sequence[float] = (),
) -> pd.DataFrame:
    """One row per milestone, distribution and percentile."""
    percentiles = _table_percentiles(custom_percentiles)
    rows = []
    for idx, threshold in enumerate(milestone_forecast.thresholds):
        name = milestones[idx].name if idx < len(milestones) else f"Milestone {idx + 1}"
        for kind, forecasts in milestone_forecast.distributions.items():
            results = extract_percentile_results(
                forecasts[idx].sorted_iterations,
                milestone_forecast.start_date,
                milestone_forecast.sprint_cadence_weeks,
                percentiles,
            )
            for result in results:
                rows.append([name, threshold] + _row(kind, result))

    data = pd.DataFrame(rows, columns=["Milestone", "Cumulative backlog"] + PERCENTILE_COLUMNS)
    data["Finish date"] = pd.to_datetime(data["Finish date"])
    return data


class PercentilesCalculator(Calculator):
    """Sprints needed and finish dates at the standard and custom percentiles."""

    def run(self):
        forecast_data = self.get_result(ForecastCalculator)
        if forecast_data is None:
            logger.warning("No forecast available; skipping percentile tables")
            return None

        custom_percentiles = self.settings["custom_percentiles"] or []
        logger.debug(
            "Calculating percentiles at %s",
            ", ".join(str(p) for p in _table_percentiles(custom_percentiles)),
        )

        milestones = None
        if forecast_data["milestones"] is not None:
            milestones = milestone_table(
                forecast_data["milestones"], self.settings["milestones"], custom_percentiles
            )

        return {
            "percentiles": percentile_table(forecast_data["forecast"], custom_percentiles),
            "milestones": milestones,
        }

    def write(self):
        data = self.get_result()
        if data is None:
            return

        if self.settings["percentiles_data"]:
            write_data_frame(data["percentiles"], self.settings["percentiles_data"], "percentiles")
        else:
            logger.debug("No output file specified for percentiles data")

        if self.settings["milestones_data"] and data["milestones"] is not None:
            write_data_frame(data["milestones"], self.settings["milestones_data"], "milestones")
        else:
            logger.debug("No milestone data to write")
