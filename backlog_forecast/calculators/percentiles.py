"""Percentile lookups over sorted trial results.

Percentiles are read from the already sorted trial arrays, so a new
percentile never needs the simulation to run again.
"""

import datetime
import logging
import math
from collections import OrderedDict
from typing import Iterable, List, Sequence

from ..common_constants import MAX_PERCENTILE, MIN_PERCENTILE, STANDARD_PERCENTILES
from ..config.exceptions import ForecastPreconditionError
from ..dates import sprint_finish_date_for
from ..sampling import percentile_from_sorted
from .forecast_models import DistributionKind, ForecastResult, PercentileResult

logger = logging.getLogger(__name__)


def calculate_percentile_result(
    sorted_iterations: Sequence[int],
    percentile: float,
    start_date: datetime.date,
    sprint_cadence_weeks: int,
) -> PercentileResult:
    """Sprints needed at `percentile` (rounded up) and the finish date of
    that sprint, counting the sprint starting on `start_date` as the first."""
    iterations_required = math.ceil(percentile_from_sorted(sorted_iterations, percentile))
    finish_date = sprint_finish_date_for(start_date, iterations_required, sprint_cadence_weeks)
    return PercentileResult(percentile, iterations_required, finish_date)


def extract_percentile_results(
    sorted_iterations: Sequence[int],
    start_date: datetime.date,
    sprint_cadence_weeks: int,
    percentiles: Iterable[float] = STANDARD_PERCENTILES,
) -> List[PercentileResult]:
    """Results for each of `percentiles`, the standard set by default."""
    return [
        calculate_percentile_result(sorted_iterations, p, start_date, sprint_cadence_weeks)
        for p in percentiles
    ]


def validate_percentile(percentile: float) -> None:
    """Raise ForecastPreconditionError unless MIN_PERCENTILE <= p <= MAX_PERCENTILE."""
    if not MIN_PERCENTILE <= percentile <= MAX_PERCENTILE:
        raise ForecastPreconditionError(
            f"Percentile must be between {MIN_PERCENTILE} and {MAX_PERCENTILE}, "
            f"got {percentile}"
        )


def calculate_custom_percentiles(
    forecast: ForecastResult, percentile: float
) -> "OrderedDict[DistributionKind, PercentileResult]":
    """Result at `percentile` for every distribution in `forecast`."""
    validate_percentile(percentile)
    logger.debug("Calculating custom percentile %s", percentile)
    return OrderedDict(
        (
            kind,
            calculate_percentile_result(
                distribution.sorted_iterations,
                percentile,
                forecast.start_date,
                forecast.sprint_cadence_weeks,
            ),
        )
        for kind, distribution in forecast.distributions.items()
    )
