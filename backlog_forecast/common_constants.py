"""Common constants used across Backlog Forecast modules."""

from typing import Final, Tuple

# Default number of Monte Carlo trials per distribution
TRIAL_COUNT: Final[int] = 50000

# Percentiles reported for every distribution
STANDARD_PERCENTILES: Final[Tuple[int, ...]] = (50, 60, 70, 80, 90)
MIN_PERCENTILE: Final[int] = 1
MAX_PERCENTILE: Final[int] = 99

# Minimum number of included sprints before bootstrap resampling is offered
MIN_SPRINTS_FOR_BOOTSTRAP: Final[int] = 5

# Included sprints needed before history mode is picked automatically
MIN_SPRINTS_FOR_HISTORY: Final[int] = 2

# Safety limit for the number of sprints in a single trial.
# Prevents infinite loops when velocity is near zero or scope outgrows it.
MAX_TRIAL_SPRINTS: Final[int] = 1000

# Smallest velocity a trial will consume in one sprint
MIN_SPRINT_VELOCITY: Final[float] = 0.1

# Burn-up projections stop this many sprints after the last completed sprint
MAX_FORECAST_SPRINTS: Final[int] = 200

DEFAULT_HISTOGRAM_BINS: Final[int] = 15

# Subjective mode: coefficient of variation choices, steadiest first
CV_OPTIONS: Final[Tuple[Tuple[str, float], ...]] = (
    ("Very steady", 0.15),
    ("Steady", 0.25),
    ("Somewhat variable", 0.35),
    ("Variable", 0.5),
    ("Highly variable", 0.65),
    ("Wildly uncertain", 0.8),
)
DEFAULT_CV: Final[float] = 0.35
DEFAULT_VOLATILITY_MULTIPLIER: Final[float] = 1.0

FORECAST_MODES: Final[Tuple[str, ...]] = ("history", "subjective")

# Data filename keys used in config parsing
DATA_FILENAME_KEYS: Final[Tuple[str, ...]] = (
    "trials_data",
    "percentiles_data",
    "milestones_data",
    "cdf_data",
    "histogram_data",
    "burnup_data",
)
