"""Per-sprint productivity factors from adjustment periods.

An adjustment scales velocity on every working day between its start and
end dates. A sprint's factor is the mean over its working days, using the
lowest factor on days where adjustments overlap and 1.0 on days no
adjustment covers.
"""

import datetime
import logging
from typing import List, Sequence

from ..common_constants import MAX_TRIAL_SPRINTS
from ..dates import (
    DateLike,
    count_working_days,
    sprint_finish_date,
    sprint_start_date,
    to_date,
    working_days_in_range,
)
from .forecast_models import ProductivityAdjustment

logger = logging.getLogger(__name__)


def sprint_productivity_factor(
    sprint_start: DateLike,
    sprint_end: DateLike,
    adjustments: Sequence[ProductivityAdjustment],
) -> float:
    """Working-day weighted productivity factor for one sprint."""
    start = to_date(sprint_start)
    end = to_date(sprint_end)

    if count_working_days(start, end) == 0 or not adjustments:
        return 1.0

    relevant = [
        adj
        for adj in adjustments
        if to_date(adj.end_date) >= start and to_date(adj.start_date) <= end
    ]
    if not relevant:
        return 1.0

    working_days = working_days_in_range(start, end)
    total = 0.0
    for day in working_days:
        factors = [
            adj.factor
            for adj in relevant
            if to_date(adj.start_date) <= day <= to_date(adj.end_date)
        ]
        total += min(factors) if factors else 1.0

    return total / len(working_days)


def pre_calculate_sprint_factors(
    first_sprint_start_date: DateLike,
    sprint_cadence_weeks: int,
    starting_sprint_number: int,
    adjustments: Sequence[ProductivityAdjustment],
    max_sprints: int = MAX_TRIAL_SPRINTS,
) -> List[float]:
    """Factors for `max_sprints` sprints from `starting_sprint_number` on.

    Index 0 is the first forecast sprint. Disabled adjustments and ones that
    end before the first forecast sprint are ignored; sprints starting after
    the last adjustment ends get 1.0.
    """
    enabled = [adj for adj in adjustments or [] if adj.enabled]
    if not enabled:
        return [1.0] * max_sprints

    first_forecast_start = sprint_start_date(
        first_sprint_start_date, starting_sprint_number, sprint_cadence_weeks
    )
    relevant = [adj for adj in enabled if to_date(adj.end_date) >= first_forecast_start]
    if not relevant:
        return [1.0] * max_sprints

    last_adjustment_end: datetime.date = max(to_date(adj.end_date) for adj in relevant)

    factors: List[float] = []
    for offset in range(max_sprints):
        start = sprint_start_date(
            first_sprint_start_date, starting_sprint_number + offset, sprint_cadence_weeks
        )
        if start > last_adjustment_end:
            factors.extend([1.0] * (max_sprints - len(factors)))
            break
        end = sprint_finish_date(start, sprint_cadence_weeks)
        factors.append(sprint_productivity_factor(start, end, relevant))

    logger.debug(
        "Productivity factors for first sprints: %s",
        ", ".join(f"{f:.2f}" for f in factors[:10]),
    )
    return factors


def has_active_adjustments(factors: Sequence[float]) -> bool:
    """True if any factor differs from 1.0."""
    return any(factor != 1.0 for factor in factors)
