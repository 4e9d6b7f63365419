import argparse
import logging
import os

from dotenv import load_dotenv

from .calculator import run_calculators
from .config import ConfigError, config_to_options
from .config_main import CALCULATORS

load_dotenv()

logger = logging.getLogger(__name__)


def _env_int(name):
    """Integer value of environment variable `name`, or None if unset."""
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise ConfigError(
            f"Environment variable {name} must be an integer, got `{value}`"
        ) from None


def configure_argument_parser():
    """Configure an ArgumentParser that manages command line options."""

    parser = argparse.ArgumentParser(
        description=(
            "Forecast when a backlog will be done from sprint velocity, "
            "using Monte Carlo simulation, and write percentile and chart data."
        )
    )

    # Basic options
    parser.add_argument("config", metavar="config.yml", nargs="?", help="Configuration file")
    parser.add_argument("-v", dest="verbose", action="store_true", help="Verbose output")
    parser.add_argument(
        "-vv",
        dest="very_verbose",
        action="store_true",
        help="Even more verbose output",
    )

    # Simulation options
    parser.add_argument(
        "--trials",
        metavar="N",
        dest="trials",
        type=int,
        help="Number of Monte Carlo trials per distribution (default: $BACKLOG_FORECAST_TRIALS)",
    )
    parser.add_argument(
        "--random-seed",
        metavar="N",
        dest="random_seed",
        type=int,
        help="Seed for reproducible runs (default: $BACKLOG_FORECAST_RANDOM_SEED)",
    )

    # Output directory
    parser.add_argument(
        "--output-directory",
        "-o",
        metavar="forecast",
        help="Write output files to this directory, rather than the current working directory.",
    )

    return parser


def main():
    parser = configure_argument_parser()
    args = parser.parse_args()
    run_command_line(parser, args)


def run_command_line(parser, args):
    if not args.config:
        parser.print_usage()
        return

    logging.basicConfig(
        format="[%(asctime)s %(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        level=(
            logging.DEBUG
            if args.very_verbose
            else logging.INFO if args.verbose else logging.WARNING
        ),
    )

    # Configuration and settings
    # (environment variables, then command line arguments, override config file options)

    logger.debug("Parsing options from %s", args.config)
    try:
        with open(args.config, encoding="utf-8") as config:
            options = config_to_options(
                config.read(), cwd=os.path.dirname(os.path.abspath(args.config))
            )
    except FileNotFoundError:
        print(
            f"Error: Configuration file '{args.config}' not found. "
            "Please provide a valid config file."
        )
        return

    override_options(
        options["settings"],
        argparse.Namespace(
            trials=_env_int("BACKLOG_FORECAST_TRIALS"),
            random_seed=_env_int("BACKLOG_FORECAST_RANDOM_SEED"),
        ),
    )
    override_options(options["settings"], args)

    if options["settings"]["trials"] <= 0:
        raise ConfigError(f"Trials must be a positive number, got {options['settings']['trials']}")

    # Set output directory if required
    output_dir = None
    if "output_directory" in options:
        output_dir = options["output_directory"]
    if args.output_directory:
        output_dir = args.output_directory
    if output_dir:
        logger.info("Changing working directory to %s", output_dir)
        os.makedirs(output_dir, exist_ok=True)
        os.chdir(output_dir)

    logger.info("Running calculators")
    run_calculators(CALCULATORS, options["settings"])


def override_options(options, arguments):
    """Update `options` dict with settings from `arguments`
    with the same key.
    """
    for key in options.keys():
        if getattr(arguments, key, None) is not None:
            options[key] = getattr(arguments, key)


if __name__ == "__main__":
    main()
