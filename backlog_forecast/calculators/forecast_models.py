"""Data model for backlog forecasts.

Inputs (sprints, adjustments, milestones, the forecast request) and outputs
(sorted trial arrays, percentile results, chart data points) are plain
dataclasses. Nothing here is persisted; results live as long as the caller
holds them.
"""

import datetime
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..common_constants import TRIAL_COUNT

# Zero-argument callable returning one raw velocity sample
VelocitySampler = Callable[[], float]


class DistributionKind(Enum):
    """Velocity models the simulation can run."""

    TRUNCATED_NORMAL = "truncated_normal"
    LOGNORMAL = "lognormal"
    GAMMA = "gamma"
    BOOTSTRAP = "bootstrap"
    TRIANGULAR = "triangular"
    UNIFORM = "uniform"

    @property
    def label(self) -> str:
        """Short display name used in tables and exported data."""
        return DISTRIBUTION_LABELS[self]

    @classmethod
    def from_name(cls, name: str) -> "DistributionKind":
        """Look up a kind by value, member name or label, ignoring case
        and treating spaces, dashes and underscores alike."""
        wanted = _normalise_name(name)
        for kind in cls:
            if wanted in (
                _normalise_name(kind.value),
                _normalise_name(kind.name),
                _normalise_name(kind.label),
            ):
                return kind
        raise ValueError(f"Unknown distribution `{name}`")


def _normalise_name(name: str) -> str:
    return str(name).strip().lower().replace("-", "").replace("_", "").replace(" ", "")


DISTRIBUTION_LABELS: Dict[DistributionKind, str] = {
    DistributionKind.TRUNCATED_NORMAL: "T-Normal",
    DistributionKind.LOGNORMAL: "Lognorm",
    DistributionKind.GAMMA: "Gamma",
    DistributionKind.BOOTSTRAP: "Bootstrap",
    DistributionKind.TRIANGULAR: "Triangular",
    DistributionKind.UNIFORM: "Uniform",
}


@dataclass
class Sprint:
    """A completed sprint."""

    sprint_number: int
    done_value: float
    included_in_forecast: bool = True
    backlog_at_sprint_end: Optional[float] = None


@dataclass
class ProductivityAdjustment:
    """A period of reduced (or increased) team productivity, both ends inclusive."""

    name: str
    start_date: datetime.date
    end_date: datetime.date
    factor: float
    enabled: bool = True
    reason: Optional[str] = None


@dataclass
class Milestone:
    """An incremental chunk of backlog that ships as one release."""

    name: str
    backlog_size: float


@dataclass
class VelocityStats:
    """Summary of the sprints included in a forecast."""

    count: int
    mean: float
    standard_deviation: float


@dataclass
class ForecastLine:
    """A burn-up projection drawn at one percentile."""

    label: str
    percentile: float


@dataclass
class ForecastRequest:
    """Everything a simulation run needs.

    `velocity_mean` and `velocity_stddev` feed the parametric distributions,
    `historical_velocities` the bootstrap resampler (history mode only), and
    `triangular_range` / `uniform_range` the subjective-mode distributions.
    When `thresholds` is non-empty a milestone forecast is produced.
    """

    work_target: float
    velocity_mean: float
    velocity_stddev: float
    start_date: datetime.date
    sprint_cadence_weeks: int
    trial_count: int = TRIAL_COUNT
    mode: str = "history"
    historical_velocities: List[float] = field(default_factory=list)
    productivity_factors: Optional[List[float]] = None
    scope_growth_per_sprint: Optional[float] = None
    thresholds: List[float] = field(default_factory=list)
    triangular_range: Optional[Tuple[float, float, float]] = None
    uniform_range: Optional[Tuple[float, float]] = None


@dataclass
class SimulationOutput:
    """Trial results for one distribution, ascending."""

    sorted_iterations: np.ndarray
    distribution: DistributionKind


@dataclass
class PercentileResult:
    """Iterations needed, and the matching finish date, at one percentile."""

    percentile: float
    iterations_required: int
    finish_date: datetime.date


@dataclass
class DistributionForecast:
    """Standard percentile results for one distribution, with the trial data
    they were read from so further percentiles can be looked up later."""

    distribution: DistributionKind
    sorted_iterations: np.ndarray
    results: List[PercentileResult]

    def result_for(self, percentile: float) -> Optional[PercentileResult]:
        for result in self.results:
            if result.percentile == percentile:
                return result
        return None


@dataclass
class ForecastResult:
    """Per-distribution forecasts in run order."""

    distributions: "OrderedDict[DistributionKind, DistributionForecast]"
    start_date: datetime.date
    sprint_cadence_weeks: int

    def simulation_data(self) -> "OrderedDict[DistributionKind, np.ndarray]":
        """Sorted trial arrays keyed by distribution."""
        return OrderedDict(
            (kind, forecast.sorted_iterations)
            for kind, forecast in self.distributions.items()
        )


@dataclass
class MilestoneForecastResult:
    """Per-distribution forecasts, one entry per milestone in ascending
    threshold order."""

    distributions: "OrderedDict[DistributionKind, List[DistributionForecast]]"
    thresholds: Sequence[float]
    start_date: datetime.date
    sprint_cadence_weeks: int

    def for_milestone(self, index: int) -> ForecastResult:
        """View of a single milestone as a plain forecast result."""
        return ForecastResult(
            OrderedDict(
                (kind, forecasts[index]) for kind, forecasts in self.distributions.items()
            ),
            self.start_date,
            self.sprint_cadence_weeks,
        )


@dataclass
class CdfPoint:
    """Cumulative probability of finishing within `iterations`, per distribution."""

    iterations: int
    date_label: str
    percentages: Dict[DistributionKind, float]


@dataclass
class HistogramBin:
    """Share of trials finishing in [range_start, range_end], per distribution."""

    range_start: int
    range_end: int
    label: str
    date_label: str
    percentages: Dict[DistributionKind, float]


@dataclass
class BurnUpPoint:
    """One sprint on the burn-up chart.

    `cumulative_done` is None for projected sprints; a line value is None
    once the sprint is past that line's crossing point.
    """

    sprint_number: int
    date: datetime.date
    date_label: str
    scope: float
    cumulative_done: Optional[float]
    lines: List[Optional[float]] = field(default_factory=list)
