"""Burn-up chart data: actual progress followed by projected forecast lines.

Historical sprints plot cumulative work done against scope. Each forecast
line then climbs from the total done so far at the velocity implied by its
percentile of one distribution's trials, until it crosses the final scope.
"""

import logging
import math
from typing import List, Mapping, Optional, Sequence

import pandas as pd

from ..calculator import Calculator
from ..common_constants import MAX_FORECAST_SPRINTS
from ..dates import format_date_compact, sprint_finish_date_for, to_date
from ..sampling import percentile_from_sorted
from ..utils import write_data_frame
from .forecast import ForecastCalculator
from .forecast_models import BurnUpPoint, DistributionKind, ForecastLine, Sprint

logger = logging.getLogger(__name__)

DEFAULT_BURNUP_DISTRIBUTION = DistributionKind.TRUNCATED_NORMAL

DEFAULT_BURNUP_LINES = (
    ForecastLine("Optimistic", 10),
    ForecastLine("Expected", 50),
    ForecastLine("Conservative", 90),
)


def crossing_sprint(sorted_iterations: Sequence[int], percentile: float, completed: int) -> int:
    """Absolute sprint number at which a line reaches the final scope."""
    if len(sorted_iterations) == 0:
        return completed + 1
    needed = percentile_from_sorted(sorted_iterations, percentile)
    if not math.isfinite(needed) or needed < 0:
        return completed + 1
    return completed + math.ceil(needed)


def implied_velocity(sorted_iterations: Sequence[int], percentile: float, backlog: float) -> float:
    """Work per sprint that finishes `backlog` in the percentile's sprint count."""
    needed = percentile_from_sorted(sorted_iterations, percentile)
    return backlog if needed <= 0 else backlog / needed


def select_distribution_data(
    simulation_data: Mapping[DistributionKind, Sequence[int]],
    distribution: DistributionKind,
) -> Sequence[int]:
    """Trials for `distribution`, falling back to truncated normal."""
    data = simulation_data.get(distribution)
    if data is None:
        if distribution is not DEFAULT_BURNUP_DISTRIBUTION:
            logger.info(
                "No %s trials for the burn-up chart; using %s",
                distribution.label,
                DEFAULT_BURNUP_DISTRIBUTION.label,
            )
        data = simulation_data.get(DEFAULT_BURNUP_DISTRIBUTION, [])
    return data


def calculate_burnup_data(
    sprints: Sequence[Sprint],
    forecast_backlog: float,
    simulation_data: Mapping[DistributionKind, Sequence[int]],
    first_sprint_start_date,
    sprint_cadence_weeks: int,
    completed_sprint_count: int,
    distribution: DistributionKind = DEFAULT_BURNUP_DISTRIBUTION,
    lines: Optional[Sequence[ForecastLine]] = None,
) -> List[BurnUpPoint]:
    """Build the burn-up points for the historical sprints and the forecast.

    Scope never rises above the final scope (work done plus the forecast
    backlog). Forecast points run from the first sprint after the completed
    ones up to the last line's crossing, capped at `MAX_FORECAST_SPRINTS`
    past the completed sprints. The last historical point carries every
    line at the total done so the lines join the actuals.
    """
    if lines is None:
        lines = DEFAULT_BURNUP_LINES

    sorted_sprints = sorted(sprints, key=lambda s: s.sprint_number)
    total_done = sum(s.done_value for s in sorted_sprints)
    has_backlog_history = any(s.backlog_at_sprint_end is not None for s in sorted_sprints)
    final_scope = total_done + forecast_backlog

    data = select_distribution_data(simulation_data, distribution)
    crossings = [
        crossing_sprint(data, line.percentile, completed_sprint_count) for line in lines
    ]
    velocities = [implied_velocity(data, line.percentile, forecast_backlog) for line in lines]
    max_sprint = (
        min(max(crossings), completed_sprint_count + MAX_FORECAST_SPRINTS)
        if crossings
        else completed_sprint_count
    )

    points: List[BurnUpPoint] = []

    cumulative_done = 0.0
    for sprint in sorted_sprints:
        cumulative_done += sprint.done_value
        finish_date = sprint_finish_date_for(
            first_sprint_start_date, sprint.sprint_number, sprint_cadence_weeks
        )
        if has_backlog_history and sprint.backlog_at_sprint_end is not None:
            scope = cumulative_done + sprint.backlog_at_sprint_end
        else:
            scope = final_scope
        points.append(
            BurnUpPoint(
                sprint.sprint_number,
                finish_date,
                format_date_compact(finish_date),
                min(scope, final_scope),
                cumulative_done,
                [None] * len(lines),
            )
        )

    for number in range(completed_sprint_count + 1, max_sprint + 1):
        sprints_in = number - completed_sprint_count
        finish_date = sprint_finish_date_for(first_sprint_start_date, number, sprint_cadence_weeks)
        values = [
            None if number > crossing else min(total_done + sprints_in * velocity, final_scope)
            for crossing, velocity in zip(crossings, velocities)
        ]
        points.append(
            BurnUpPoint(
                number, finish_date, format_date_compact(finish_date), final_scope, None, values
            )
        )

    if sorted_sprints and len(points) > len(sorted_sprints):
        points[len(sorted_sprints) - 1].lines = [total_done] * len(lines)

    if not sorted_sprints and not points:
        start = to_date(first_sprint_start_date)
        points.append(
            BurnUpPoint(0, start, format_date_compact(start), final_scope, 0.0, [0.0] * len(lines))
        )

    return points


def burnup_points_to_frame(
    points: List[BurnUpPoint], lines: Sequence[ForecastLine]
) -> pd.DataFrame:
    columns = ["Sprint", "Date", "Date label", "Scope", "Done"] + [line.label for line in lines]
    return pd.DataFrame(
        [
            [p.sprint_number, pd.Timestamp(p.date), p.date_label, p.scope, p.cumulative_done]
            + list(p.lines)
            for p in points
        ],
        columns=columns,
    )


class BurnupCalculator(Calculator):
    """Actual and projected burn-up per sprint."""

    def run(self):
        forecast_data = self.get_result(ForecastCalculator)
        if forecast_data is None:
            logger.warning("No forecast available; skipping burn-up data")
            return None

        inputs = forecast_data["inputs"]
        lines = self.settings["burnup_lines"] or list(DEFAULT_BURNUP_LINES)
        points = calculate_burnup_data(
            self.settings["sprints"],
            inputs.work_target,
            forecast_data["forecast"].simulation_data(),
            inputs.first_sprint_start_date,
            inputs.sprint_cadence_weeks,
            inputs.completed_sprint_count,
            DistributionKind.from_name(self.settings["burnup_distribution"]),
            lines,
        )
        return burnup_points_to_frame(points, lines)

    def write(self):
        output_files = self.settings["burnup_data"]
        if not output_files:
            logger.debug("No output file specified for burn-up data")
            return

        data = self.get_result()
        if data is None:
            return
        write_data_frame(data, output_files, "burn-up")
