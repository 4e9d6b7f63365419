"""Tests for the velocity sampler factory."""

import math

import numpy as np
import pytest

from ..config.exceptions import ForecastPreconditionError
from .distributions import (
    SamplerParams,
    create_bootstrap_sampler,
    create_sampler,
    distributions_for_mode,
    triangular_range_for,
    uniform_range_for,
)
from .forecast_models import DistributionKind
from .forecast_utils import run_trial


@pytest.mark.parametrize(
    "kind",
    [
        DistributionKind.TRUNCATED_NORMAL,
        DistributionKind.LOGNORMAL,
        DistributionKind.GAMMA,
        DistributionKind.TRIANGULAR,
        DistributionKind.UNIFORM,
    ],
)
def test_zero_stddev_samplers_return_mean(kind, rng):
    """Test each non-bootstrap sampler is constant without spread."""
    sampler = create_sampler(kind, SamplerParams(mean=20, stddev=0), rng)
    assert {sampler() for _ in range(50)} == {20}


@pytest.mark.parametrize("kind", [DistributionKind.LOGNORMAL, DistributionKind.GAMMA])
def test_small_stddev_stays_near_deterministic(kind, rng):
    """Test a tiny spread keeps every trial within a sprint of the exact answer."""
    sampler = create_sampler(kind, SamplerParams(mean=20, stddev=0.1), rng)
    results = {run_trial(100, sampler) for _ in range(2000)}
    assert results <= {4, 5, 6}


def test_samplers_return_floats(rng):
    """Test samplers hand out plain Python floats."""
    sampler = create_sampler(DistributionKind.GAMMA, SamplerParams(mean=20, stddev=4), rng)
    assert isinstance(sampler(), float)


def test_sampler_refills_buffer(rng):
    """Test samplers keep producing values past one buffer."""
    sampler = create_sampler(
        DistributionKind.TRUNCATED_NORMAL,
        SamplerParams(mean=10, stddev=2),
        rng,
        sample_buffer_size=8,
    )
    values = [sampler() for _ in range(50)]
    assert len(values) == 50
    assert len(set(values)) > 8


def test_bootstrap_only_returns_history(rng):
    """Test bootstrap resamples observed values."""
    history = [12, 18, 25]
    sampler = create_sampler(DistributionKind.BOOTSTRAP, SamplerParams(history=history), rng)
    values = {sampler() for _ in range(500)}
    assert values == {12, 18, 25}


def test_bootstrap_without_history_raises(rng):
    """Test bootstrap refuses to sample nothing."""
    with pytest.raises(ForecastPreconditionError):
        create_sampler(DistributionKind.BOOTSTRAP, SamplerParams(mean=20, stddev=5), rng)

    with pytest.raises(ForecastPreconditionError):
        create_bootstrap_sampler([], rng)


def test_explicit_ranges_are_used(rng):
    """Test configured triangular and uniform ranges win over the moments."""
    params = SamplerParams(
        mean=100, stddev=50, triangular_range=(10, 12, 14), uniform_range=(3, 4)
    )
    triangular = create_sampler(DistributionKind.TRIANGULAR, params, rng)
    uniform = create_sampler(DistributionKind.UNIFORM, params, rng)
    assert all(10 <= triangular() <= 14 for _ in range(200))
    assert all(3 <= uniform() <= 4 for _ in range(200))


def test_moment_matched_ranges():
    """Test ranges derived from mean and stddev."""
    lower, mode, upper = triangular_range_for(20, 2)
    assert mode == 20
    assert upper - 20 == pytest.approx(math.sqrt(6) * 2)
    assert 20 - lower == pytest.approx(math.sqrt(6) * 2)

    lower, upper = uniform_range_for(20, 2)
    assert (upper - lower) / 2 == pytest.approx(math.sqrt(3) * 2)

    # Lower bounds never go negative
    assert triangular_range_for(5, 10)[0] == 0
    assert uniform_range_for(5, 10)[0] == 0


def test_moment_matched_range_has_requested_stddev(rng):
    """Test the uniform range reproduces the standard deviation."""
    sampler = create_sampler(DistributionKind.UNIFORM, SamplerParams(mean=20, stddev=3), rng)
    values = np.array([sampler() for _ in range(20000)])
    assert values.mean() == pytest.approx(20, rel=0.02)
    assert values.std() == pytest.approx(3, rel=0.03)


def test_distributions_for_mode():
    """Test which distributions run in each mode."""
    assert distributions_for_mode("history", has_history=True) == [
        DistributionKind.TRUNCATED_NORMAL,
        DistributionKind.LOGNORMAL,
        DistributionKind.GAMMA,
        DistributionKind.BOOTSTRAP,
    ]
    assert DistributionKind.BOOTSTRAP not in distributions_for_mode("history", False)
    subjective = distributions_for_mode("subjective", has_history=True)
    assert DistributionKind.BOOTSTRAP not in subjective
    assert DistributionKind.TRIANGULAR in subjective
    assert DistributionKind.UNIFORM in subjective


def test_distribution_kind_from_name():
    """Test distribution names are matched loosely."""
    assert DistributionKind.from_name("truncated_normal") is DistributionKind.TRUNCATED_NORMAL
    assert DistributionKind.from_name("T-Normal") is DistributionKind.TRUNCATED_NORMAL
    assert DistributionKind.from_name("Lognorm") is DistributionKind.LOGNORMAL
    assert DistributionKind.from_name("GAMMA") is DistributionKind.GAMMA
    assert DistributionKind.from_name("bootstrap").label == "Bootstrap"
    with pytest.raises(ValueError):
        DistributionKind.from_name("poisson")
