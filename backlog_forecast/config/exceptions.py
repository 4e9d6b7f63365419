"""Exceptions for Backlog Forecast.

This module provides the exception classes raised for configuration errors
and for forecast inputs that violate a precondition of the simulation.
"""


class ConfigError(Exception):
    """
    Exception raised for errors in the configuration.
    """


class ForecastPreconditionError(ValueError):
    """
    Exception raised when forecast inputs cannot produce a simulation.

    Raised once, while a simulation is being set up and before any trial
    runs (for example bootstrap resampling without history, or milestone
    thresholds that decrease), so callers never see partial results.
    """
