"""Test configuration and fixtures for Backlog Forecast.

This module provides settings, sprint histories and forecast requests shared
by the calculator and engine tests.
"""

import datetime

import numpy as np
import pytest

from .calculators.forecast_models import ForecastRequest, Sprint
from .config.loader import _create_default_options
from .utils import extend_dict

# Fixtures


@pytest.fixture(name="base_settings")
def default_settings():
    """The settings `config_to_options` produces for an empty configuration,
    with a small, seeded trial count so tests run quickly and repeatably.
    """
    return extend_dict(
        _create_default_options()["settings"],
        {
            "trials": 500,
            "random_seed": 42,
            "start_date": datetime.date(2024, 1, 1),
        },
    )


@pytest.fixture(name="history_sprints")
def sprint_history():
    """Six completed sprints with a recorded backlog at the end of each."""
    return [
        Sprint(1, 18, backlog_at_sprint_end=102),
        Sprint(2, 22, backlog_at_sprint_end=85),
        Sprint(3, 20, backlog_at_sprint_end=70),
        Sprint(4, 17, backlog_at_sprint_end=58),
        Sprint(5, 23, backlog_at_sprint_end=40),
        Sprint(6, 20, backlog_at_sprint_end=25),
    ]


@pytest.fixture(name="history_settings")
def history_forecast_settings(base_settings, history_sprints):
    """A history-mode forecast of a fixed backlog, with a known first sprint."""
    return extend_dict(
        base_settings,
        {
            "backlog": 100.0,
            "start_date": None,
            "first_sprint_start_date": datetime.date(2024, 1, 1),
            "sprints": history_sprints,
        },
    )


@pytest.fixture(name="deterministic_request")
def deterministic_forecast_request():
    """100 points at exactly 20 per sprint: every trial takes 5 sprints."""
    return ForecastRequest(
        work_target=100,
        velocity_mean=20,
        velocity_stddev=0,
        start_date=datetime.date(2024, 1, 1),
        sprint_cadence_weeks=2,
        trial_count=200,
    )


@pytest.fixture(name="rng")
def seeded_rng():
    """A seeded random generator."""
    return np.random.default_rng(1234)


def constant_sampler(value):
    """A sampler that always returns `value`."""
    return lambda: value


def sequence_sampler(values):
    """A sampler that cycles through `values`."""
    state = {"idx": 0}

    def sample():
        value = values[state["idx"] % len(values)]
        state["idx"] += 1
        return value

    return sample
