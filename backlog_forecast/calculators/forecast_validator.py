"""Resolution and validation of forecast inputs.

Turns the configured settings (sprint history, overrides, subjective
estimates, milestones, productivity adjustments and scope growth) into the
concrete numbers a simulation run needs.
"""

import datetime
import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from ..common_constants import (
    DEFAULT_CV,
    DEFAULT_VOLATILITY_MULTIPLIER,
    MIN_SPRINTS_FOR_BOOTSTRAP,
    MIN_SPRINTS_FOR_HISTORY,
    TRIAL_COUNT,
)
from ..dates import sprint_start_date, to_date
from ..sampling import mean, standard_deviation
from .distributions import triangular_range_for, uniform_range_for
from .forecast_models import ForecastRequest, Sprint, VelocityStats
from .forecast_utils import cumulative_thresholds
from .productivity import has_active_adjustments, pre_calculate_sprint_factors
from .scope_growth import (
    ScopeChangeStats,
    calculate_scope_change_stats,
    resolve_scope_growth_per_sprint,
)

logger = logging.getLogger(__name__)


def calculate_velocity_stats(sprints: Iterable[Sprint]) -> VelocityStats:
    """Count, mean and sample standard deviation of the included sprints."""
    velocities = [s.done_value for s in sprints if s.included_in_forecast]
    return VelocityStats(len(velocities), mean(velocities), standard_deviation(velocities))


@dataclass
class ResolvedForecastInputs:
    """Effective values for one forecast run."""

    mode: str
    work_target: float
    velocity_mean: float
    velocity_stddev: float
    start_date: datetime.date
    first_sprint_start_date: datetime.date
    sprint_cadence_weeks: int
    completed_sprint_count: int
    velocity_stats: VelocityStats
    scope_change_stats: ScopeChangeStats
    historical_velocities: List[float] = field(default_factory=list)
    productivity_factors: Optional[List[float]] = None
    scope_growth_per_sprint: Optional[float] = None
    thresholds: List[float] = field(default_factory=list)
    triangular_range: Optional[Tuple[float, float, float]] = None
    uniform_range: Optional[Tuple[float, float]] = None

    def to_request(self, trial_count: int = TRIAL_COUNT) -> ForecastRequest:
        return ForecastRequest(
            work_target=self.work_target,
            velocity_mean=self.velocity_mean,
            velocity_stddev=self.velocity_stddev,
            start_date=self.start_date,
            sprint_cadence_weeks=self.sprint_cadence_weeks,
            trial_count=trial_count,
            mode=self.mode,
            historical_velocities=list(self.historical_velocities),
            productivity_factors=self.productivity_factors,
            scope_growth_per_sprint=self.scope_growth_per_sprint,
            thresholds=list(self.thresholds),
            triangular_range=self.triangular_range,
            uniform_range=self.uniform_range,
        )


class ForecastInputValidator:
    """Resolves and validates forecast inputs from settings."""

    def __init__(self, settings, today: Optional[datetime.date] = None):
        self.settings = settings
        self._today = today

    @property
    def sprints(self) -> List[Sprint]:
        return list(self.settings.get("sprints") or [])

    @property
    def included_sprints(self) -> List[Sprint]:
        return [s for s in self.sprints if s.included_in_forecast]

    def completed_sprint_count(self) -> int:
        """Highest recorded sprint number, 0 without history."""
        sprints = self.sprints
        return max(s.sprint_number for s in sprints) if sprints else 0

    def resolve_mode(self) -> str:
        """The configured mode, or history when there is enough of it."""
        mode = self.settings.get("forecast_mode")
        if mode:
            return mode
        if len(self.included_sprints) >= MIN_SPRINTS_FOR_HISTORY:
            return "history"
        return "subjective"

    def resolve_velocity(self, mode: str, stats: VelocityStats) -> Tuple[float, float]:
        """Effective (mean, stddev).

        Explicit overrides win. Otherwise subjective mode uses the velocity
        estimate (or the historical mean when no estimate is given) with the
        chosen coefficient of variation, and history mode uses the sprint
        statistics with the standard deviation scaled by the volatility
        multiplier.
        """
        mean_override = self.settings.get("velocity_mean")
        stddev_override = self.settings.get("velocity_stddev")

        if mode == "subjective":
            estimate = self.settings.get("velocity_estimate") or 0
            subjective_mean = estimate if estimate > 0 else stats.mean
            cv = self.settings.get("velocity_cv")
            cv = DEFAULT_CV if cv is None else cv
            default_mean = subjective_mean
            default_stddev = subjective_mean * cv
        else:
            multiplier = self.settings.get("volatility_multiplier")
            multiplier = DEFAULT_VOLATILITY_MULTIPLIER if multiplier is None else multiplier
            default_mean = stats.mean
            default_stddev = stats.standard_deviation * multiplier

        velocity_mean = mean_override if mean_override is not None else default_mean
        velocity_stddev = stddev_override if stddev_override is not None else default_stddev
        return float(velocity_mean), float(velocity_stddev)

    def resolve_work_target(self, thresholds: List[float]) -> Optional[float]:
        """Remaining work to forecast.

        With milestones this is their total. Without, the configured backlog,
        or failing that the backlog recorded at the end of the last sprint.
        """
        backlog = self.settings.get("backlog")
        if thresholds:
            if backlog is not None and backlog != thresholds[-1]:
                logger.warning(
                    "Ignoring `Backlog` (%s): milestones add up to %s", backlog, thresholds[-1]
                )
            return thresholds[-1]

        if backlog is not None:
            return backlog

        sprints = sorted(self.sprints, key=lambda s: s.sprint_number)
        if sprints and sprints[-1].backlog_at_sprint_end is not None:
            logger.info(
                "Using backlog at end of sprint %d (%s) as the backlog",
                sprints[-1].sprint_number,
                sprints[-1].backlog_at_sprint_end,
            )
            return sprints[-1].backlog_at_sprint_end
        return None

    def resolve_dates(self, completed: int) -> Tuple[datetime.date, datetime.date]:
        """(forecast start, first sprint start).

        The forecast starts on the configured start date, else at the start
        of the sprint after the last completed one, else today.
        """
        cadence = self.settings["sprint_cadence_weeks"]
        first_start = self.settings.get("first_sprint_start_date")
        start = self.settings.get("start_date")

        if start is None:
            if first_start is not None:
                start = sprint_start_date(first_start, completed + 1, cadence)
            else:
                start = self._today or pd.Timestamp.today().date()
                logger.info("No start date configured; forecasting from %s", start)

        start = to_date(start)
        if first_start is None:
            first_start = sprint_start_date(start, 1 - completed, cadence)
        return start, to_date(first_start)

    def resolve_subjective_ranges(self, mode, velocity_mean, velocity_stddev):
        if mode != "subjective":
            return None, None
        triangular = self.settings.get("triangular_range")
        uniform = self.settings.get("uniform_range")
        if not triangular:
            triangular = triangular_range_for(velocity_mean, velocity_stddev)
        if not uniform:
            uniform = uniform_range_for(velocity_mean, velocity_stddev)
        return tuple(triangular), tuple(uniform)

    def validate_run_prerequisites(self) -> bool:
        """Check that a forecast can run, logging why not if it cannot."""
        cadence = self.settings.get("sprint_cadence_weeks")
        if not cadence or cadence <= 0:
            logger.warning("A positive `Sprint cadence` is required for a forecast")
            return False
        return True

    def validate_resolved(self, resolved: ResolvedForecastInputs) -> bool:
        """Check the resolved numbers, logging why a forecast cannot run."""
        if resolved.work_target is None or resolved.work_target <= 0:
            logger.warning("No positive backlog to forecast")
            return False

        if not math.isfinite(resolved.velocity_mean) or resolved.velocity_mean <= 0:
            logger.warning(
                "Velocity mean must be positive (got %s); add sprint history, "
                "a velocity estimate or a velocity mean",
                resolved.velocity_mean,
            )
            return False

        if not math.isfinite(resolved.velocity_stddev) or resolved.velocity_stddev < 0:
            logger.warning(
                "Velocity standard deviation must not be negative (got %s)",
                resolved.velocity_stddev,
            )
            return False

        return True

    def resolve(self) -> Optional[ResolvedForecastInputs]:
        """Resolve every input, or return None if a forecast cannot run."""
        if not self.validate_run_prerequisites():
            return None

        cadence = self.settings["sprint_cadence_weeks"]
        sprints = self.sprints
        included = self.included_sprints
        completed = self.completed_sprint_count()

        stats = calculate_velocity_stats(sprints)
        scope_stats = calculate_scope_change_stats(sprints)
        mode = self.resolve_mode()
        velocity_mean, velocity_stddev = self.resolve_velocity(mode, stats)
        start, first_start = self.resolve_dates(completed)

        thresholds = cumulative_thresholds(self.settings.get("milestones") or [])
        work_target = self.resolve_work_target(thresholds)

        historical_velocities: List[float] = []
        if mode == "history" and len(included) >= MIN_SPRINTS_FOR_BOOTSTRAP:
            historical_velocities = [s.done_value for s in included]

        productivity_factors = None
        adjustments = self.settings.get("productivity_adjustments") or []
        if any(adj.enabled for adj in adjustments):
            factors = pre_calculate_sprint_factors(first_start, cadence, completed + 1, adjustments)
            if has_active_adjustments(factors):
                productivity_factors = factors

        scope_growth = resolve_scope_growth_per_sprint(
            self.settings.get("model_scope_growth", False),
            self.settings.get("scope_growth_mode", "calculated"),
            self.settings.get("custom_scope_growth"),
            scope_stats.average_scope_injection,
        )

        triangular_range, uniform_range = self.resolve_subjective_ranges(
            mode, velocity_mean, velocity_stddev
        )

        resolved = ResolvedForecastInputs(
            mode=mode,
            work_target=work_target,
            velocity_mean=velocity_mean,
            velocity_stddev=velocity_stddev,
            start_date=start,
            first_sprint_start_date=first_start,
            sprint_cadence_weeks=cadence,
            completed_sprint_count=completed,
            velocity_stats=stats,
            scope_change_stats=scope_stats,
            historical_velocities=historical_velocities,
            productivity_factors=productivity_factors,
            scope_growth_per_sprint=scope_growth,
            thresholds=thresholds,
            triangular_range=triangular_range,
            uniform_range=uniform_range,
        )

        if not self.validate_resolved(resolved):
            return None

        logger.debug(
            "Resolved %s forecast: target=%s mean=%.2f stddev=%.2f start=%s",
            mode,
            work_target,
            velocity_mean,
            velocity_stddev,
            start,
        )
        return resolved
