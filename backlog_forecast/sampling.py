"""Random variates and order statistics for velocity forecasting.

Every distribution here is parameterised the way a team talks about its
velocity: by the arithmetic mean and standard deviation of sprint throughput
(or by a low/likely/high range for subjective estimates). The conversions to
each distribution's native parameters live next to the samplers.

Batch `draw_*` functions return numpy arrays and take an explicit
`numpy.random.Generator`; the scalar `sample_*` helpers wrap them for one-off
draws and fall back to a fresh generator when none is given.
"""

import math
from typing import Optional, Sequence, Tuple

import numpy as np

# Rejection sampling attempts before the bounded normal gives up
MAX_REJECTION_ATTEMPTS = 1000

# Returned above the floor when rejection sampling never succeeds
BOUNDED_NORMAL_FALLBACK_OFFSET = 0.1


def _generator(rng: Optional[np.random.Generator]) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


def lognormal_params_from_mean_stddev(mean: float, stddev: float) -> Tuple[float, float]:
    """Return (mu, sigma) of the underlying normal so that the lognormal
    distribution has the given arithmetic mean and standard deviation.

    sigma^2 = ln(1 + (stddev / mean)^2)
    mu = ln(mean) - sigma^2 / 2
    """
    if mean <= 0:
        # Lognormal needs a positive mean; use a small positive one instead
        return math.log(0.1), 0.1

    cv = stddev / mean
    sigma_squared = math.log(1 + cv * cv)
    return math.log(mean) - sigma_squared / 2, math.sqrt(sigma_squared)


def gamma_params_from_mean_stddev(mean: float, stddev: float) -> Tuple[float, float]:
    """Return (shape, scale) of the gamma distribution with the given
    arithmetic mean and standard deviation.

    shape = mean^2 / stddev^2
    scale = stddev^2 / mean

    Without spread this is a narrow gamma (shape 100) around the mean.
    """
    if mean <= 0:
        return 1.0, 0.1
    if stddev <= 0:
        return 100.0, mean / 100
    return (mean / stddev) ** 2, stddev**2 / mean


def draw_bounded_normal(
    rng: np.random.Generator,
    mean: float,
    stddev: float,
    size: int,
    floor: float = 0.0,
) -> np.ndarray:
    """Draw from a normal distribution truncated below at `floor`.

    Values under the floor are redrawn; any that still fall short after
    `MAX_REJECTION_ATTEMPTS` rounds (mean far below the floor) are replaced
    by `floor + 0.1`.
    """
    values = rng.normal(mean, max(stddev, 0.0), size)
    rejected = values < floor
    attempts = 1
    while rejected.any() and attempts < MAX_REJECTION_ATTEMPTS:
        values[rejected] = rng.normal(mean, max(stddev, 0.0), int(rejected.sum()))
        rejected = values < floor
        attempts += 1
    values[rejected] = floor + BOUNDED_NORMAL_FALLBACK_OFFSET
    return values


def draw_lognormal(
    rng: np.random.Generator, mean: float, stddev: float, size: int
) -> np.ndarray:
    """Draw lognormal values with the given arithmetic mean and stddev.

    A zero standard deviation yields the mean itself.
    """
    if mean > 0 and stddev <= 0:
        return np.full(size, float(mean))
    mu, sigma = lognormal_params_from_mean_stddev(mean, stddev)
    return rng.lognormal(mu, sigma, size)


def draw_gamma(rng: np.random.Generator, mean: float, stddev: float, size: int) -> np.ndarray:
    """Draw gamma values with the given arithmetic mean and stddev.

    A zero standard deviation yields the mean itself.
    """
    if mean > 0 and stddev <= 0:
        return np.full(size, float(mean))
    shape, scale = gamma_params_from_mean_stddev(mean, stddev)
    return rng.gamma(shape, scale, size)


def draw_triangular(
    rng: np.random.Generator, lower: float, mode: float, upper: float, size: int
) -> np.ndarray:
    """Draw from a triangular distribution over [lower, upper] peaking at mode."""
    if upper <= lower:
        return np.full(size, float(lower))
    mode = min(max(mode, lower), upper)
    return rng.triangular(lower, mode, upper, size)


def draw_uniform(
    rng: np.random.Generator, lower: float, upper: float, size: int
) -> np.ndarray:
    """Draw uniformly from [lower, upper)."""
    if upper <= lower:
        return np.full(size, float(lower))
    return rng.uniform(lower, upper, size)


def sample_bounded_normal(
    mean: float,
    stddev: float,
    floor: float = 0.0,
    rng: Optional[np.random.Generator] = None,
) -> float:
    """Single draw from a normal distribution truncated at `floor`."""
    return float(draw_bounded_normal(_generator(rng), mean, stddev, 1, floor)[0])


def sample_lognormal(
    mean: float, stddev: float, rng: Optional[np.random.Generator] = None
) -> float:
    """Single lognormal draw parameterised by arithmetic mean/stddev."""
    return float(draw_lognormal(_generator(rng), mean, stddev, 1)[0])


def sample_gamma(mean: float, stddev: float, rng: Optional[np.random.Generator] = None) -> float:
    """Single gamma draw parameterised by arithmetic mean/stddev."""
    return float(draw_gamma(_generator(rng), mean, stddev, 1)[0])


def sample_triangular(
    lower: float,
    mode: float,
    upper: float,
    rng: Optional[np.random.Generator] = None,
) -> float:
    """Single triangular draw."""
    return float(draw_triangular(_generator(rng), lower, mode, upper, 1)[0])


def sample_uniform(
    lower: float, upper: float, rng: Optional[np.random.Generator] = None
) -> float:
    """Single uniform draw."""
    return float(draw_uniform(_generator(rng), lower, upper, 1)[0])


def percentile_from_sorted(sorted_values: Sequence[float], percentile: float) -> float:
    """Linearly interpolated percentile (0-100) of an ascending sequence.

    Returns 0 for an empty sequence. Only two elements are read, so lookups
    against large sorted trial arrays are constant time.
    """
    n = len(sorted_values)
    if n == 0:
        return 0.0

    index = (percentile / 100) * (n - 1)
    lower = math.floor(index)
    upper = math.ceil(index)
    if lower == upper:
        return float(sorted_values[lower])

    weight = index - lower
    return float(sorted_values[lower]) * (1 - weight) + float(sorted_values[upper]) * weight


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0 for no values."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(values))


def standard_deviation(values: Sequence[float]) -> float:
    """Sample standard deviation (Bessel's correction), 0 for fewer than 2 values."""
    if len(values) < 2:
        return 0.0
    return float(np.std(values, ddof=1))
