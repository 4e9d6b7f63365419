import logging

from .calculators.burnup import BurnupCalculator
from .calculators.cdf import CDFCalculator
from .calculators.forecast import ForecastCalculator
from .calculators.histogram import HistogramCalculator
from .calculators.percentiles_calculator import PercentilesCalculator

CALCULATORS = (
    ForecastCalculator,  # should come first
    # -- others depend on results from this one
    PercentilesCalculator,
    CDFCalculator,
    HistogramCalculator,
    BurnupCalculator,
)

logger = logging.getLogger(__name__)
