"""Monte Carlo simulation driver for backlog forecasts."""

import dataclasses
import logging
from collections import OrderedDict
from typing import List, Optional, Sequence, Union

import numpy as np

from ..common_constants import TRIAL_COUNT
from ..config.exceptions import ForecastPreconditionError
from .distributions import SamplerParams, create_sampler, distributions_for_mode
from .forecast_models import (
    DistributionForecast,
    DistributionKind,
    ForecastRequest,
    ForecastResult,
    MilestoneForecastResult,
    SimulationOutput,
)
from .forecast_utils import run_checkpoint_trials, run_trials, validate_thresholds
from .percentiles import extract_percentile_results

logger = logging.getLogger(__name__)


def _validate_trial_count(trial_count) -> None:
    if (
        isinstance(trial_count, bool)
        or not isinstance(trial_count, (int, np.integer))
        or trial_count <= 0
    ):
        raise ForecastPreconditionError(
            f"trial_count must be a positive integer, got {trial_count} "
            f"(type: {type(trial_count).__name__})"
        )


def _sampler_params(request: ForecastRequest) -> SamplerParams:
    return SamplerParams(
        mean=request.velocity_mean,
        stddev=request.velocity_stddev,
        history=list(request.historical_velocities or []),
        triangular_range=request.triangular_range,
        uniform_range=request.uniform_range,
    )


def _distributions_for_request(request: ForecastRequest) -> List[DistributionKind]:
    has_history = bool(request.historical_velocities)
    return distributions_for_mode(request.mode, has_history)


def run_simulation(
    work_target: float,
    kind: DistributionKind,
    params: SamplerParams,
    trial_count: int,
    productivity_factors: Optional[Sequence[float]] = None,
    scope_growth_per_sprint: Optional[float] = None,
    rng: Optional[np.random.Generator] = None,
) -> SimulationOutput:
    """Run `trial_count` trials for one distribution."""
    _validate_trial_count(trial_count)
    sampler = create_sampler(kind, params, rng)
    sorted_iterations = run_trials(
        work_target, sampler, trial_count, productivity_factors, scope_growth_per_sprint
    )
    return SimulationOutput(sorted_iterations, kind)


def run_multi_distribution_forecast(
    request: ForecastRequest, rng: Optional[np.random.Generator] = None
) -> ForecastResult:
    """Forecast the whole backlog under every distribution for the request's mode.

    History mode runs truncated normal, lognormal and gamma, plus bootstrap
    when historical velocities are given. Subjective mode runs truncated
    normal, lognormal, gamma, triangular and uniform.
    """
    _validate_trial_count(request.trial_count)
    if rng is None:
        rng = np.random.default_rng()

    params = _sampler_params(request)
    # Build every sampler up front so bad inputs fail before any trial runs
    samplers = OrderedDict(
        (kind, create_sampler(kind, params, rng))
        for kind in _distributions_for_request(request)
    )

    distributions = OrderedDict()
    for kind, sampler in samplers.items():
        logger.debug(
            "Running %d %s trials for %s of work",
            request.trial_count,
            kind.label,
            request.work_target,
        )
        sorted_iterations = run_trials(
            request.work_target,
            sampler,
            request.trial_count,
            request.productivity_factors,
            request.scope_growth_per_sprint,
        )
        distributions[kind] = DistributionForecast(
            kind,
            sorted_iterations,
            extract_percentile_results(
                sorted_iterations, request.start_date, request.sprint_cadence_weeks
            ),
        )

    return ForecastResult(distributions, request.start_date, request.sprint_cadence_weeks)


def run_milestone_forecast(
    request: ForecastRequest,
    thresholds: Sequence[float],
    rng: Optional[np.random.Generator] = None,
) -> MilestoneForecastResult:
    """Forecast every milestone in one pass per trial.

    `thresholds` are cumulative and ascending; the work target is normally
    the last of them. Results per distribution are in threshold order.
    """
    _validate_trial_count(request.trial_count)
    validate_thresholds(thresholds)
    if rng is None:
        rng = np.random.default_rng()

    params = _sampler_params(request)
    samplers = OrderedDict(
        (kind, create_sampler(kind, params, rng))
        for kind in _distributions_for_request(request)
    )

    distributions = OrderedDict()
    for kind, sampler in samplers.items():
        logger.debug(
            "Running %d %s checkpoint trials for %d milestones",
            request.trial_count,
            kind.label,
            len(thresholds),
        )
        per_milestone = run_checkpoint_trials(
            request.work_target,
            thresholds,
            sampler,
            request.trial_count,
            request.productivity_factors,
            request.scope_growth_per_sprint,
        )
        distributions[kind] = [
            DistributionForecast(
                kind,
                sorted_iterations,
                extract_percentile_results(
                    sorted_iterations, request.start_date, request.sprint_cadence_weeks
                ),
            )
            for sorted_iterations in per_milestone
        ]

    return MilestoneForecastResult(
        distributions, list(thresholds), request.start_date, request.sprint_cadence_weeks
    )


class MonteCarloSimulator:
    """Runs forecasts with a fixed trial count and, optionally, a fixed seed."""

    def __init__(self, trials: int = TRIAL_COUNT, random_seed: Optional[int] = None):
        """Initialize the simulator.

        Args:
            trials: Number of trials per distribution. Must be a positive integer.
            random_seed: Seed for reproducible runs, or None for fresh randomness
                on every run.

        Raises:
            ValueError: If trials is not a positive integer or random_seed is
                neither None nor an integer.
        """
        if isinstance(trials, bool) or not isinstance(trials, int) or trials <= 0:
            raise ForecastPreconditionError(
                f"trials must be a positive integer, got {trials} "
                f"(type: {type(trials).__name__})"
            )

        if random_seed is not None and (
            isinstance(random_seed, bool) or not isinstance(random_seed, int)
        ):
            raise ValueError(
                f"random_seed must be None or an integer, got {random_seed} "
                f"(type: {type(random_seed).__name__})"
            )

        self.trials = trials
        self.random_seed = random_seed

    def _rng(self) -> np.random.Generator:
        # A fresh generator per run keeps seeded runs repeatable
        return np.random.default_rng(self.random_seed)

    def _with_trials(self, request: ForecastRequest) -> ForecastRequest:
        return dataclasses.replace(request, trial_count=self.trials)

    def run_simulation(
        self,
        work_target: float,
        kind: DistributionKind,
        params: SamplerParams,
        productivity_factors: Optional[Sequence[float]] = None,
        scope_growth_per_sprint: Optional[float] = None,
    ) -> SimulationOutput:
        """Run a single distribution."""
        return run_simulation(
            work_target,
            kind,
            params,
            self.trials,
            productivity_factors,
            scope_growth_per_sprint,
            self._rng(),
        )

    def run_forecast(
        self, request: ForecastRequest
    ) -> Union[ForecastResult, MilestoneForecastResult]:
        """Run a whole-backlog forecast, or a milestone forecast when the
        request carries thresholds."""
        request = self._with_trials(request)
        if request.thresholds:
            logger.info(
                "Running milestone forecast (%d milestones, %d trials)",
                len(request.thresholds),
                self.trials,
            )
            return run_milestone_forecast(request, request.thresholds, self._rng())

        logger.info("Running forecast (%d trials)", self.trials)
        return run_multi_distribution_forecast(request, self._rng())
