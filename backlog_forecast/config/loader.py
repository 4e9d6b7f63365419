"""Configuration loader for Backlog Forecast."""

import logging
import math
import os.path

from ..calculators.forecast_models import (
    DistributionKind,
    ForecastLine,
    Milestone,
    ProductivityAdjustment,
    Sprint,
)
from ..calculators.scope_growth import SCOPE_GROWTH_MODES
from ..common_constants import (
    CV_OPTIONS,
    DATA_FILENAME_KEYS,
    DEFAULT_CV,
    DEFAULT_HISTOGRAM_BINS,
    DEFAULT_VOLATILITY_MULTIPLIER,
    FORECAST_MODES,
    TRIAL_COUNT,
)
from .exceptions import ConfigError
from .type_utils import (
    expand_key,
    force_bool,
    force_date,
    force_float,
    force_float_list,
    force_int,
    force_list,
)
from .yaml_utils import ordered_load

logger = logging.getLogger(__name__)


def _create_default_options():
    """Create default options dictionary."""
    settings = {
        # Forecast
        "backlog": None,
        "start_date": None,
        "first_sprint_start_date": None,
        "sprint_cadence_weeks": 2,
        "forecast_mode": None,
        "velocity_mean": None,
        "velocity_stddev": None,
        "velocity_estimate": None,
        "velocity_cv": DEFAULT_CV,
        "volatility_multiplier": DEFAULT_VOLATILITY_MULTIPLIER,
        "triangular_range": None,
        "uniform_range": None,
        # History and adjustments
        "sprints": [],
        "productivity_adjustments": [],
        "milestones": [],
        # Scope growth
        "model_scope_growth": False,
        "scope_growth_mode": "calculated",
        "custom_scope_growth": None,
        # Output
        "trials": TRIAL_COUNT,
        "random_seed": None,
        "custom_percentiles": [],
        "histogram_bins": DEFAULT_HISTOGRAM_BINS,
        "burnup_distribution": DistributionKind.TRUNCATED_NORMAL.value,
        "burnup_lines": None,
    }
    for key in DATA_FILENAME_KEYS:
        settings[key] = None

    return {"settings": settings}


def _get(section, key):
    """Value of `key` in `section`, accepting the spaced or underscored name."""
    if expand_key(key) in section:
        return section[expand_key(key)]
    return section.get(key)


def _has(section, key):
    return expand_key(key) in section or key in section


def _to_cv(value):
    """Coefficient of variation from a number or one of the named options."""
    if isinstance(value, str):
        for label, cv in CV_OPTIONS:
            if label.lower() == value.strip().lower():
                return cv
    cv = force_float("velocity_cv", value)
    if cv < 0:
        raise ConfigError(f"`Velocity cv` must not be negative, got `{value}`")
    return cv


def _to_range(key, value, size):
    values = force_float_list(key, value)
    if len(values) != size:
        raise ConfigError(f"`{expand_key(key)}` must have exactly {size} values, got `{value}`")
    if values != sorted(values):
        raise ConfigError(f"`{expand_key(key)}` values must be in ascending order, got `{value}`")
    if values[0] < 0:
        raise ConfigError(f"`{expand_key(key)}` must not be negative, got `{value}`")
    return tuple(values)


def _parse_forecast_config(config, options):
    """Parse the `Forecast` section."""
    if "forecast" not in config:
        return

    forecast_config = config["forecast"]
    settings = options["settings"]

    float_keys = [
        "backlog",
        "velocity_mean",
        "velocity_stddev",
        "velocity_estimate",
        "volatility_multiplier",
    ]
    for key in float_keys:
        if _has(forecast_config, key):
            value = _get(forecast_config, key)
            settings[key] = None if value is None else force_float(key, value)

    for key in ("start_date", "first_sprint_start_date"):
        if _has(forecast_config, key):
            value = _get(forecast_config, key)
            settings[key] = None if value is None else force_date(key, value)

    # `Sprint cadence` is the documented spelling
    for key in ("sprint_cadence", "sprint_cadence_weeks"):
        if _has(forecast_config, key):
            cadence = force_int(key, _get(forecast_config, key))
            if cadence <= 0:
                raise ConfigError(
                    f"`Sprint cadence` must be a positive number of weeks, got `{cadence}`"
                )
            settings["sprint_cadence_weeks"] = cadence

    if _has(forecast_config, "mode"):
        mode = _get(forecast_config, "mode")
        if mode is not None:
            mode = str(mode).strip().lower()
            if mode not in FORECAST_MODES:
                raise ConfigError(
                    f"`Mode` must be one of {', '.join(FORECAST_MODES)}, got `{mode}`"
                )
        settings["forecast_mode"] = mode

    if _has(forecast_config, "velocity_cv"):
        settings["velocity_cv"] = _to_cv(_get(forecast_config, "velocity_cv"))

    if _has(forecast_config, "triangular_range"):
        value = _get(forecast_config, "triangular_range")
        settings["triangular_range"] = (
            None if value is None else _to_range("triangular_range", value, 3)
        )

    if _has(forecast_config, "uniform_range"):
        value = _get(forecast_config, "uniform_range")
        settings["uniform_range"] = None if value is None else _to_range("uniform_range", value, 2)

    for key in ("backlog", "velocity_stddev", "volatility_multiplier"):
        if settings[key] is not None and settings[key] < 0:
            raise ConfigError(f"`{expand_key(key)}` must not be negative, got `{settings[key]}`")


def _parse_sprints_config(config, options):
    """Parse the `Sprints` section: a list of completed sprints."""
    if "sprints" not in config or config["sprints"] is None:
        return

    sprints = []
    for idx, entry in enumerate(force_list(config["sprints"])):
        if not hasattr(entry, "keys"):
            raise ConfigError(f"Sprint {idx + 1} must be a mapping with at least a `Done` value")
        if not _has(entry, "done"):
            raise ConfigError(f"Sprint {idx + 1} has no `Done` value")

        number = force_int("sprint", _get(entry, "sprint")) if _has(entry, "sprint") else idx + 1
        backlog = _get(entry, "backlog")
        sprints.append(
            Sprint(
                sprint_number=number,
                done_value=force_float("done", _get(entry, "done")),
                included_in_forecast=(
                    force_bool(_get(entry, "included")) if _has(entry, "included") else True
                ),
                backlog_at_sprint_end=None if backlog is None else force_float("backlog", backlog),
            )
        )

    numbers = [s.sprint_number for s in sprints]
    if len(set(numbers)) != len(numbers):
        raise ConfigError(f"Sprint numbers must be unique, got {numbers}")

    options["settings"]["sprints"] = sorted(sprints, key=lambda s: s.sprint_number)


def _parse_productivity_adjustments_config(config, options):
    """Parse the `Productivity adjustments` section."""
    if "productivity adjustments" not in config or config["productivity adjustments"] is None:
        return

    adjustments = []
    for idx, entry in enumerate(force_list(config["productivity adjustments"])):
        for key in ("start", "end", "factor"):
            if not _has(entry, key):
                raise ConfigError(f"Productivity adjustment {idx + 1} has no `{key.title()}`")

        start = force_date("start", _get(entry, "start"))
        end = force_date("end", _get(entry, "end"))
        if end < start:
            raise ConfigError(
                f"Productivity adjustment {idx + 1} ends ({end}) before it starts ({start})"
            )

        factor = force_float("factor", _get(entry, "factor"))
        if factor < 0:
            raise ConfigError(f"Productivity adjustment {idx + 1} has a negative `Factor`")

        adjustments.append(
            ProductivityAdjustment(
                name=str(_get(entry, "name") or f"Adjustment {idx + 1}"),
                start_date=start,
                end_date=end,
                factor=factor,
                enabled=force_bool(_get(entry, "enabled")) if _has(entry, "enabled") else True,
                reason=_get(entry, "reason"),
            )
        )

    options["settings"]["productivity_adjustments"] = adjustments


def _parse_milestones_config(config, options):
    """Parse the `Milestones` section.

    Either a list of `{Name, Backlog}` mappings or a mapping of milestone
    name to backlog size, in release order.
    """
    if "milestones" not in config or config["milestones"] is None:
        return

    raw = config["milestones"]
    if hasattr(raw, "items"):
        entries = [(name, size) for name, size in raw.items()]
    else:
        entries = []
        for idx, entry in enumerate(force_list(raw)):
            if not _has(entry, "backlog"):
                raise ConfigError(f"Milestone {idx + 1} has no `Backlog`")
            entries.append((_get(entry, "name") or f"Milestone {idx + 1}", _get(entry, "backlog")))

    milestones = []
    for name, size in entries:
        backlog_size = force_float("backlog", size)
        if backlog_size < 0:
            raise ConfigError(f"Milestone `{name}` has a negative backlog size")
        milestones.append(Milestone(str(name), backlog_size))

    options["settings"]["milestones"] = milestones


def _parse_scope_growth_config(config, options):
    """Parse the `Scope growth` section."""
    if "scope growth" not in config or config["scope growth"] is None:
        return

    scope_config = config["scope growth"]
    settings = options["settings"]

    if _has(scope_config, "model"):
        settings["model_scope_growth"] = force_bool(_get(scope_config, "model"))

    if _has(scope_config, "mode"):
        mode = str(_get(scope_config, "mode")).strip().lower()
        if mode not in SCOPE_GROWTH_MODES:
            raise ConfigError(
                f"Scope growth `Mode` must be one of {', '.join(SCOPE_GROWTH_MODES)}, got `{mode}`"
            )
        settings["scope_growth_mode"] = mode

    if _has(scope_config, "custom"):
        # Kept as given; invalid values are reported when the forecast runs
        settings["custom_scope_growth"] = _get(scope_config, "custom")


def _parse_percentiles(value):
    percentiles = force_float_list("custom_percentiles", value)
    for percentile in percentiles:
        if math.isnan(percentile) or not 1 <= percentile <= 99:
            raise ConfigError(
                f"Custom percentiles must be between 1 and 99, got `{percentile:g}`"
            )
    return [int(p) if p.is_integer() else p for p in percentiles]


def _parse_burnup_lines(value):
    """Forecast lines from a mapping of label to percentile."""
    if not hasattr(value, "items"):
        raise ConfigError("`Burnup lines` must map line labels to percentiles")
    lines = []
    for label, percentile in value.items():
        percentile = force_float("burnup_lines", percentile)
        if not 1 <= percentile <= 99:
            raise ConfigError(
                f"Burn-up line `{label}` percentile must be between 1 and 99, got `{percentile:g}`"
            )
        lines.append(ForecastLine(str(label), percentile))
    return lines


def _parse_output_config(config, options):
    """Parse the `Output` section."""
    if "output" not in config:
        return

    output_config = config["output"]
    settings = options["settings"]

    # Output directory support
    if _has(output_config, "output_directory"):
        options["output_directory"] = _get(output_config, "output_directory")

    if _has(output_config, "trials"):
        trials = force_int("trials", _get(output_config, "trials"))
        if trials <= 0:
            raise ConfigError(f"`Trials` must be a positive number, got `{trials}`")
        settings["trials"] = trials

    if _has(output_config, "random_seed"):
        # None means a fresh seed on every run
        seed = _get(output_config, "random_seed")
        settings["random_seed"] = None if seed is None else force_int("random_seed", seed)

    if _has(output_config, "histogram_bins"):
        bins = force_int("histogram_bins", _get(output_config, "histogram_bins"))
        if bins <= 0:
            raise ConfigError(f"`Histogram bins` must be a positive number, got `{bins}`")
        settings["histogram_bins"] = bins

    if _has(output_config, "custom_percentiles"):
        settings["custom_percentiles"] = _parse_percentiles(
            _get(output_config, "custom_percentiles")
        )

    if _has(output_config, "burnup_distribution"):
        name = _get(output_config, "burnup_distribution")
        try:
            settings["burnup_distribution"] = DistributionKind.from_name(name).value
        except ValueError as e:
            raise ConfigError(str(e)) from e

    if _has(output_config, "burnup_lines"):
        settings["burnup_lines"] = _parse_burnup_lines(_get(output_config, "burnup_lines"))

    _parse_filename_list_values(output_config, settings)


def _parse_filename_list_values(output_config, settings):
    """Parse filename list values from output config."""
    for key in DATA_FILENAME_KEYS:
        if _has(output_config, key):
            settings[key] = list(map(os.path.basename, force_list(_get(output_config, key))))


def config_to_options(data, cwd=None, extended=False, _visited_files=None):
    """
    Parse YAML config data and return options dict.
    """
    if _visited_files is None:
        _visited_files = set()

    try:
        config = ordered_load(data)
    except Exception as e:
        raise ConfigError("Unable to parse YAML configuration file.") from e

    if config is None:
        raise ConfigError("Configuration file is empty") from None

    if not hasattr(config, "items"):
        raise ConfigError("Configuration file must contain a mapping of sections") from None

    options = _create_default_options()

    # Handle extends configuration
    if "extends" in config:
        if cwd is None:
            raise ConfigError("`extends` is not supported here.")

        extends_filename = os.path.abspath(
            os.path.normpath(os.path.join(cwd, config["extends"].replace("/", os.path.sep)))
        )

        if not os.path.exists(extends_filename):
            raise ConfigError(
                f"File `{extends_filename}` referenced in `extends` not found."
            ) from None

        if extends_filename in _visited_files:
            raise ConfigError(f"Circular extends reference detected: {extends_filename}") from None

        _visited_files.add(extends_filename)

        logger.debug("Extending file %s", extends_filename)
        with open(extends_filename, encoding="utf-8") as extends_file:
            options = config_to_options(
                extends_file.read(),
                cwd=os.path.dirname(extends_filename),
                extended=True,
                _visited_files=_visited_files,
            )

    # Parse configuration sections
    _parse_forecast_config(config, options)
    _parse_sprints_config(config, options)
    _parse_productivity_adjustments_config(config, options)
    _parse_milestones_config(config, options)
    _parse_scope_growth_config(config, options)
    _parse_output_config(config, options)

    settings = options["settings"]
    if not extended and settings["backlog"] is None and not settings["milestones"]:
        if not any(s.backlog_at_sprint_end is not None for s in settings["sprints"]):
            logger.warning(
                "No `Backlog`, `Milestones` or sprint backlog found. "
                "There is nothing to forecast."
            )

    return options
