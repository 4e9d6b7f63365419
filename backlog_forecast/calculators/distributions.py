"""Velocity sampler factory.

A sampler is chosen once per distribution and then called once per
simulated sprint. Draws come from numpy in batches and are handed out one at
a time, so the per-sprint cost inside the trial loop is a list lookup.
"""

import logging
import math
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from ..config.exceptions import ForecastPreconditionError
from ..sampling import (
    draw_bounded_normal,
    draw_gamma,
    draw_lognormal,
    draw_triangular,
    draw_uniform,
)
from .forecast_models import DistributionKind, VelocitySampler

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_BUFFER_SIZE = 4096

PARAMETRIC_DISTRIBUTIONS = (
    DistributionKind.TRUNCATED_NORMAL,
    DistributionKind.LOGNORMAL,
    DistributionKind.GAMMA,
)

SUBJECTIVE_DISTRIBUTIONS = PARAMETRIC_DISTRIBUTIONS + (
    DistributionKind.TRIANGULAR,
    DistributionKind.UNIFORM,
)


@dataclass
class SamplerParams:
    """Parameters for every kind of sampler; each kind reads only its own."""

    mean: float = 0.0
    stddev: float = 0.0
    history: List[float] = field(default_factory=list)
    triangular_range: Optional[Tuple[float, float, float]] = None
    uniform_range: Optional[Tuple[float, float]] = None


def _create_buffered_sampler(
    draw: Callable[[int], np.ndarray], sample_buffer_size: int
) -> VelocitySampler:
    sample_buffer = {"buffer": [], "idx": 0}

    def get_sample():
        if sample_buffer["idx"] >= len(sample_buffer["buffer"]):
            sample_buffer["buffer"] = draw(sample_buffer_size).tolist()
            sample_buffer["idx"] = 0
        sample = sample_buffer["buffer"][sample_buffer["idx"]]
        sample_buffer["idx"] += 1
        return sample

    return get_sample


def triangular_range_for(mean: float, stddev: float) -> Tuple[float, float, float]:
    """Symmetric triangular range with the given mean and standard deviation.

    A symmetric triangle of half-width `a` has variance a^2 / 6. The lower
    bound is floored at zero.
    """
    half_width = math.sqrt(6) * max(stddev, 0.0)
    return max(0.0, mean - half_width), mean, mean + half_width


def uniform_range_for(mean: float, stddev: float) -> Tuple[float, float]:
    """Uniform range with the given mean and standard deviation.

    A uniform range of half-width `a` has variance a^2 / 3. The lower bound
    is floored at zero.
    """
    half_width = math.sqrt(3) * max(stddev, 0.0)
    return max(0.0, mean - half_width), mean + half_width


def create_bootstrap_sampler(
    history: Sequence[float],
    rng: np.random.Generator,
    sample_buffer_size: int = DEFAULT_SAMPLE_BUFFER_SIZE,
) -> VelocitySampler:
    """Sampler drawing observed velocities uniformly, with replacement."""
    if len(history) == 0:
        raise ForecastPreconditionError("Bootstrap requires historical velocity data")

    values = np.asarray(history, dtype=float)
    return _create_buffered_sampler(partial(rng.choice, values), sample_buffer_size)


def create_sampler(
    kind: DistributionKind,
    params: SamplerParams,
    rng: Optional[np.random.Generator] = None,
    sample_buffer_size: int = DEFAULT_SAMPLE_BUFFER_SIZE,
) -> VelocitySampler:
    """Build the zero-argument velocity sampler for `kind`.

    Raises ForecastPreconditionError for a bootstrap sampler without history.
    """
    if rng is None:
        rng = np.random.default_rng()

    if kind is DistributionKind.BOOTSTRAP:
        return create_bootstrap_sampler(params.history, rng, sample_buffer_size)

    mean, stddev = params.mean, params.stddev
    if kind is DistributionKind.LOGNORMAL:
        draw = partial(draw_lognormal, rng, mean, stddev)
    elif kind is DistributionKind.GAMMA:
        draw = partial(draw_gamma, rng, mean, stddev)
    elif kind is DistributionKind.TRIANGULAR:
        lower, mode, upper = params.triangular_range or triangular_range_for(mean, stddev)
        draw = partial(draw_triangular, rng, lower, mode, upper)
    elif kind is DistributionKind.UNIFORM:
        lower, upper = params.uniform_range or uniform_range_for(mean, stddev)
        draw = partial(draw_uniform, rng, lower, upper)
    else:
        draw = partial(draw_bounded_normal, rng, mean, stddev)

    logger.debug("Created %s sampler (mean=%s, stddev=%s)", kind.label, mean, stddev)
    return _create_buffered_sampler(draw, sample_buffer_size)


def distributions_for_mode(mode: str, has_history: bool) -> List[DistributionKind]:
    """Distributions run (and shown) for a forecast mode.

    Subjective forecasts never resample history; history forecasts add
    bootstrap when there is history to resample.
    """
    if mode == "subjective":
        return list(SUBJECTIVE_DISTRIBUTIONS)

    kinds = list(PARAMETRIC_DISTRIBUTIONS)
    if has_history:
        kinds.append(DistributionKind.BOOTSTRAP)
    return kinds
