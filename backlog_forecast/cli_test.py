"""Tests for CLI functionality in Backlog Forecast.

This module contains unit tests for the command line interface.
"""

import json

import pandas as pd
import pytest

from .cli import configure_argument_parser, override_options, run_command_line
from .config import ConfigError

CONFIG = """\
Forecast:
    Backlog: 100
    Mode: subjective
    Velocity mean: 20
    Velocity stddev: 0
    Start date: 2024-01-01
    Sprint cadence: 2

Output:
    Trials: 200
    Random seed: 1
    Trials data: trials.csv
    Percentiles data:
        - percentiles.csv
        - percentiles.json
"""


@pytest.fixture(name="config_file")
def fixture_config_file(tmp_path):
    """A config file in its own directory."""
    path = tmp_path / "config" / "forecast.yml"
    path.parent.mkdir()
    path.write_text(CONFIG)
    return path


def test_override_options():
    """Test override_options functionality."""

    class FauxArgs:
        """Mock arguments class for testing."""

        def __init__(self, opts):
            self.__dict__.update(opts)

    options = {"one": 1, "two": 2}
    override_options(options, FauxArgs({}))
    assert json.dumps(options) == json.dumps({"one": 1, "two": 2})

    options = {"one": 1, "two": 2}
    override_options(options, FauxArgs({"one": 11}))
    assert json.dumps(options) == json.dumps({"one": 11, "two": 2})

    options = {"one": 1, "two": 2}
    override_options(options, FauxArgs({"three": 3}))
    assert json.dumps(options) == json.dumps({"one": 1, "two": 2})

    options = {"one": 1, "two": 2}
    override_options(options, FauxArgs({"one": None}))
    assert json.dumps(options) == json.dumps({"one": 1, "two": 2})


def test_run_command_line_writes_output(config_file, tmp_path, monkeypatch):
    """Test a full run writes the configured files to the output directory."""
    monkeypatch.chdir(tmp_path)
    outdir = tmp_path / "out"

    parser = configure_argument_parser()
    args = parser.parse_args([str(config_file), "--output-directory", str(outdir)])
    run_command_line(parser, args)

    trials = pd.read_csv(outdir / "trials.csv")
    assert len(trials) == 200
    assert (trials["T-Normal"] == 5).all()

    percentiles = pd.read_csv(outdir / "percentiles.csv")
    assert list(percentiles.columns) == ["Distribution", "Percentile", "Sprints", "Finish date"]
    assert (percentiles["Sprints"] == 5).all()
    assert (percentiles["Finish date"] == "2024-03-08").all()

    records = json.loads((outdir / "percentiles.json").read_text())
    assert records[0]["Distribution"] == "T-Normal"
    assert records[0]["Percentile"] == 50


def test_run_command_line_overrides(config_file, tmp_path, monkeypatch, mocker):
    """Test command line arguments override the config file."""
    monkeypatch.chdir(tmp_path)
    mock_run = mocker.patch("backlog_forecast.cli.run_calculators")

    parser = configure_argument_parser()
    args = parser.parse_args(
        [str(config_file), "--trials", "50", "--random-seed", "9", "-o", str(tmp_path / "o")]
    )
    run_command_line(parser, args)

    settings = mock_run.call_args[0][1]
    assert settings["trials"] == 50
    assert settings["random_seed"] == 9
    assert settings["backlog"] == 100


def test_run_command_line_environment(config_file, tmp_path, monkeypatch, mocker):
    """Test environment variables override the config, and arguments override both."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BACKLOG_FORECAST_TRIALS", "70")
    monkeypatch.setenv("BACKLOG_FORECAST_RANDOM_SEED", "3")
    mock_run = mocker.patch("backlog_forecast.cli.run_calculators")

    parser = configure_argument_parser()
    args = parser.parse_args([str(config_file), "--random-seed", "4"])
    run_command_line(parser, args)

    settings = mock_run.call_args[0][1]
    assert settings["trials"] == 70
    assert settings["random_seed"] == 4


def test_run_command_line_bad_environment(config_file, tmp_path, monkeypatch):
    """Test a non-numeric environment override is a configuration error."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BACKLOG_FORECAST_TRIALS", "lots")

    parser = configure_argument_parser()
    args = parser.parse_args([str(config_file)])
    with pytest.raises(ConfigError, match="BACKLOG_FORECAST_TRIALS"):
        run_command_line(parser, args)


def test_run_command_line_non_positive_trials(config_file, tmp_path, monkeypatch):
    """Test a zero trial count from the command line is rejected."""
    monkeypatch.chdir(tmp_path)
    parser = configure_argument_parser()
    args = parser.parse_args([str(config_file), "--trials", "0"])
    with pytest.raises(ConfigError, match="Trials"):
        run_command_line(parser, args)


class TestErrorHandling:
    """Test error handling in CLI."""

    def test_run_command_line_without_config(self, mocker):
        """Test run_command_line prints usage without a config file."""
        mock_run = mocker.patch("backlog_forecast.cli.run_calculators")
        parser = configure_argument_parser()
        args = parser.parse_args([])
        run_command_line(parser, args)
        mock_run.assert_not_called()

    def test_run_command_line_with_missing_config_file(self, tmp_path, mocker):
        """Test run_command_line handles FileNotFoundError gracefully."""
        mock_run = mocker.patch("backlog_forecast.cli.run_calculators")
        parser = configure_argument_parser()
        args = parser.parse_args([str(tmp_path / "nonexistent.yml")])

        # Should not raise exception, but return early
        run_command_line(parser, args)
        mock_run.assert_not_called()

    def test_run_command_line_with_config_error(self, tmp_path):
        """Test run_command_line propagates ConfigError."""
        config_file = tmp_path / "broken.yml"
        config_file.write_text("Forecast:\n  Mode: guesswork\n")
        parser = configure_argument_parser()
        args = parser.parse_args([str(config_file)])

        with pytest.raises(ConfigError):
            run_command_line(parser, args)


class TestCommandLineArguments:
    """Test command line argument parsing and handling."""

    def test_parser_accepts_config_file(self):
        """Test parser accepts config file argument."""
        parser = configure_argument_parser()
        args = parser.parse_args(["config.yml"])
        assert args.config == "config.yml"
        assert args.trials is None
        assert args.random_seed is None

    def test_parser_accepts_verbose_flags(self):
        """Test parser accepts verbose flags."""
        parser = configure_argument_parser()
        args = parser.parse_args(["-v", "config.yml"])
        assert args.verbose is True
        assert args.very_verbose is False

        args = parser.parse_args(["-vv", "config.yml"])
        assert args.very_verbose is True

    def test_parser_accepts_simulation_options(self):
        """Test parser accepts trial count and seed."""
        parser = configure_argument_parser()
        args = parser.parse_args(["--trials", "1000", "--random-seed", "5", "config.yml"])
        assert args.trials == 1000
        assert args.random_seed == 5

    def test_parser_accepts_output_directory(self):
        """Test parser accepts output directory option."""
        parser = configure_argument_parser()
        args = parser.parse_args(["--output-directory", "/tmp/output", "config.yml"])
        assert args.output_directory == "/tmp/output"
