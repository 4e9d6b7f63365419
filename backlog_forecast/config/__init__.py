"""Configuration module for Backlog Forecast.

This module provides configuration loading and error handling utilities.
"""

from .exceptions import ConfigError, ForecastPreconditionError
from .loader import config_to_options

__all__ = ["config_to_options", "ConfigError", "ForecastPreconditionError"]
