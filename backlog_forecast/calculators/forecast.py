"""Forecast calculator: runs the Monte Carlo simulation for the configured backlog."""

import logging
from typing import Optional, TypedDict

import pandas as pd

from ..calculator import Calculator
from ..utils import write_data_frame
from .forecast_models import ForecastResult, MilestoneForecastResult
from .forecast_validator import ForecastInputValidator, ResolvedForecastInputs
from .monte_carlo_simulator import MonteCarloSimulator

logger = logging.getLogger(__name__)


class ForecastResults(TypedDict):
    """Result of `ForecastCalculator`.

    `forecast` always covers the whole backlog; with milestones it is the
    last milestone's view of `milestones`.
    """

    inputs: ResolvedForecastInputs
    forecast: ForecastResult
    milestones: Optional[MilestoneForecastResult]


def trials_to_frame(forecast: ForecastResult) -> pd.DataFrame:
    """Sorted sprint counts, one column per distribution."""
    frame = pd.DataFrame(
        {
            kind.label: distribution.sorted_iterations
            for kind, distribution in forecast.distributions.items()
        }
    )
    frame.insert(0, "Trial", range(1, len(frame) + 1))
    return frame


class ForecastCalculator(Calculator):
    """Simulate the remaining backlog under every distribution for the mode."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._validator = ForecastInputValidator(self.settings)
        self._monte_carlo_simulator = MonteCarloSimulator(
            trials=self.settings["trials"],
            random_seed=self.settings["random_seed"],
        )

    def run(self):
        inputs = self._validator.resolve()
        if inputs is None:
            logger.warning("Forecast inputs incomplete; skipping forecast")
            return None

        result = self._monte_carlo_simulator.run_forecast(inputs.to_request())

        if isinstance(result, MilestoneForecastResult):
            return ForecastResults(
                inputs=inputs,
                forecast=result.for_milestone(len(result.thresholds) - 1),
                milestones=result,
            )

        return ForecastResults(inputs=inputs, forecast=result, milestones=None)

    def write(self):
        output_files = self.settings["trials_data"]
        if not output_files:
            logger.debug("No output file specified for trials data")
            return

        result = self.get_result()
        if result is None:
            return
        write_data_frame(trials_to_frame(result["forecast"]), output_files, "trials")
