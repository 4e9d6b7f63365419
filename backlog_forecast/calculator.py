import logging

logger = logging.getLogger(__name__)


class Calculator:
    """Base class for calculators."""

    def __init__(self, settings, results):
        """Initialise with the settings dict and a shared `results` dict,
        keyed by calculator class, holding the output of calculators that
        have already run.
        """
        self.settings = settings
        self.results = results

    def get_result(self, calculator=None, default=None):
        """Return the result of `calculator` (this calculator by default),
        or `default` if it has not run.
        """
        return self.results.get(calculator or self.__class__, default)

    def run(self):
        """Calculate and return a result; it is stored in `results` under
        this calculator's class.
        """

    def write(self):
        """Write output files, if any are configured."""


def run_calculators(calculators, settings):
    """Run each calculator in order, then let each write its output.

    Returns a dict mapping calculator classes to their results.
    """
    results = {}
    calculator_instances = []

    for calculator_class in calculators:
        calculator = calculator_class(settings, results)
        calculator_instances.append(calculator)
        logger.info("%s running", calculator_class.__name__)
        results[calculator_class] = calculator.run()
        logger.info("%s completed\n", calculator_class.__name__)

    for calculator in calculator_instances:
        logger.info("Writing file for %s...", calculator.__class__.__name__)
        calculator.write()

    return results
