"""Type utilities for configuration processing.

This module provides utilities for type conversion and validation in
configuration files.
"""

import datetime

import dateutil.parser

from .exceptions import ConfigError


def force_list(val) -> list:
    """
    Ensure the value is a list.
    """
    return list(val) if isinstance(val, (list, tuple)) else [val]


def force_int(key, value) -> int:
    """
    Convert value to int, raise ConfigError on failure.
    """
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(
            f"Could not convert value `{value}` for key `{expand_key(key)}` to integer"
        ) from None


def force_float(key, value) -> float:
    """
    Convert value to float, raise ConfigError on failure.
    """
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(
            f"Could not convert value `{value}` for key `{expand_key(key)}` to decimal"
        ) from None


def force_float_list(key, value) -> list:
    """
    Convert value to a list of floats, raise ConfigError on failure.
    """
    return [force_float(key, v) for v in force_list(value)]


def force_bool(value) -> bool:
    """
    Interpret yes/no style strings as well as real booleans.
    """
    if isinstance(value, str):
        return value.strip().lower() in ("yes", "true", "on", "1")
    return bool(value)


def force_date(key, value) -> datetime.date:
    """
    Ensure value is a datetime.date, parsing strings, raise ConfigError otherwise.

    YAML already turns unquoted ISO dates into `datetime.date`; quoted values
    and other formats go through dateutil.
    """
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        try:
            return dateutil.parser.parse(value).date()
        except (ValueError, OverflowError):
            pass
    raise ConfigError(f"Value `{value}` for key `{expand_key(key)}` is not a date")


def expand_key(key) -> str:
    """
    Expand config key for display.
    """
    return str(key).replace("_", " ").lower()
