"""Trial engine for Monte Carlo backlog forecasts.

A trial burns down a backlog one sprint at a time using sampled velocities
and reports how many sprints it took. Each sprint, in order:

1. scope growth (if any) is added to the remaining work,
2. a velocity is sampled and floored at `MIN_SPRINT_VELOCITY`,
3. the velocity is scaled by that sprint's productivity factor (1.0 when the
   factor list is shorter than the trial),
4. the scaled velocity is subtracted and the sprint is counted.

A trial stops when the remaining work reaches zero or after
`MAX_TRIAL_SPRINTS` sprints.
"""

import logging
from typing import Iterable, List, Optional, Sequence

import numpy as np

from ..common_constants import MAX_TRIAL_SPRINTS, MIN_SPRINT_VELOCITY
from ..config.exceptions import ForecastPreconditionError
from .forecast_models import Milestone, VelocitySampler

logger = logging.getLogger(__name__)


def _normalise_factors(
    productivity_factors: Optional[Sequence[float]],
) -> Optional[Sequence[float]]:
    if productivity_factors is None or len(productivity_factors) == 0:
        return None
    return productivity_factors


def run_trial(
    remaining_work: float,
    sampler: VelocitySampler,
    productivity_factors: Optional[Sequence[float]] = None,
    scope_growth_per_sprint: Optional[float] = None,
) -> int:
    """Run one trial and return the number of sprints needed."""
    remaining = remaining_work
    factor_count = len(productivity_factors) if productivity_factors is not None else 0
    sprints = 0

    while remaining > 0 and sprints < MAX_TRIAL_SPRINTS:
        if scope_growth_per_sprint is not None:
            remaining += scope_growth_per_sprint
        velocity = max(MIN_SPRINT_VELOCITY, sampler())
        factor = productivity_factors[sprints] if sprints < factor_count else 1.0
        remaining -= velocity * factor
        sprints += 1

    return sprints


def run_trial_with_checkpoints(
    remaining_work: float,
    thresholds: Sequence[float],
    sampler: VelocitySampler,
    productivity_factors: Optional[Sequence[float]] = None,
    scope_growth_per_sprint: Optional[float] = None,
) -> List[int]:
    """Run one trial, recording when each cumulative threshold is reached.

    `thresholds` must be ascending. A threshold counts as reached once the
    work completed net of scope growth (`remaining_work - remaining`) is at
    least the threshold, so scope growth delays every milestone. Thresholds
    never reached (because the trial hit the sprint cap, or the threshold is
    beyond the work target) get the trial's final sprint count.
    """
    # remaining <= bound  <=>  remaining_work - remaining >= threshold
    bounds = [remaining_work - threshold for threshold in thresholds]
    results = [MAX_TRIAL_SPRINTS] * len(bounds)
    next_idx = 0

    remaining = remaining_work
    factor_count = len(productivity_factors) if productivity_factors is not None else 0
    sprints = 0

    while remaining > 0 and sprints < MAX_TRIAL_SPRINTS:
        if scope_growth_per_sprint is not None:
            remaining += scope_growth_per_sprint
        velocity = max(MIN_SPRINT_VELOCITY, sampler())
        factor = productivity_factors[sprints] if sprints < factor_count else 1.0
        remaining -= velocity * factor
        sprints += 1

        while next_idx < len(bounds) and remaining <= bounds[next_idx]:
            results[next_idx] = sprints
            next_idx += 1

    while next_idx < len(bounds):
        results[next_idx] = sprints
        next_idx += 1

    return results


def run_trials(
    remaining_work: float,
    sampler: VelocitySampler,
    trial_count: int,
    productivity_factors: Optional[Sequence[float]] = None,
    scope_growth_per_sprint: Optional[float] = None,
) -> np.ndarray:
    """Run `trial_count` trials and return the sprint counts, ascending."""
    factors = _normalise_factors(productivity_factors)
    iterations = np.fromiter(
        (
            run_trial(remaining_work, sampler, factors, scope_growth_per_sprint)
            for _ in range(trial_count)
        ),
        dtype=int,
        count=trial_count,
    )
    return np.sort(iterations)


def run_checkpoint_trials(
    remaining_work: float,
    thresholds: Sequence[float],
    sampler: VelocitySampler,
    trial_count: int,
    productivity_factors: Optional[Sequence[float]] = None,
    scope_growth_per_sprint: Optional[float] = None,
) -> List[np.ndarray]:
    """Run `trial_count` checkpoint trials.

    Returns one ascending array of sprint counts per threshold.
    """
    factors = _normalise_factors(productivity_factors)
    iterations = np.empty((trial_count, len(thresholds)), dtype=int)
    for trial in range(trial_count):
        iterations[trial] = run_trial_with_checkpoints(
            remaining_work, thresholds, sampler, factors, scope_growth_per_sprint
        )

    iterations.sort(axis=0)
    return [iterations[:, idx].copy() for idx in range(len(thresholds))]


def cumulative_thresholds(milestones: Iterable[Milestone]) -> List[float]:
    """Running totals of milestone backlog sizes, in milestone order."""
    sizes = [float(milestone.backlog_size) for milestone in milestones]
    return np.cumsum(sizes).tolist() if sizes else []


def validate_thresholds(thresholds: Sequence[float]) -> None:
    """Reject negative or decreasing milestone thresholds.

    Equal consecutive thresholds (a milestone with no work of its own) are
    allowed.
    """
    previous = None
    for idx, threshold in enumerate(thresholds):
        if threshold < 0:
            raise ForecastPreconditionError(
                f"Milestone threshold {idx + 1} is negative ({threshold})"
            )
        if previous is not None and threshold < previous:
            raise ForecastPreconditionError(
                f"Milestone thresholds must not decrease: "
                f"threshold {idx + 1} ({threshold}) is below {previous}"
            )
        previous = threshold
