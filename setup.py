"""Package configuration for backlog-forecast.

This file defines installation metadata and console entry points.
"""

import os

import setuptools

# Defer reading README/requirements until setup is actually executed, so
# importing this file has no side effects.


def _read_requirements(here, filename):
    """Requirement lines from `filename`, without comments or `-r` includes."""
    try:
        with open(os.path.join(here, filename), encoding="utf-8") as f:
            return [
                line.strip()
                for line in f.read().splitlines()
                if line.strip()
                and not line.strip().startswith("#")
                and not line.strip().startswith("-r ")
            ]
    except OSError:
        return []


def main():
    """Entrypoint for invoking setuptools.setup with package metadata."""

    here = os.path.abspath(os.path.dirname(__file__))

    try:
        with open(os.path.join(here, "README.md"), encoding="utf-8") as f:
            long_description = f.read()
    except OSError:
        long_description = ""

    setuptools.setup(
        name="backlog-forecast",
        version="0.1",
        description="Monte Carlo forecasts of when a backlog will be done, from sprint velocity",
        long_description=long_description,
        long_description_content_type="text/markdown",
        license="MIT",
        keywords="agile forecast monte carlo velocity sprint backlog",
        packages=setuptools.find_packages(exclude=["contrib", "docs", "tests*"]),
        # Reading requirements.txt directly would include the `-r` lines,
        # which are invalid inside install_requires
        install_requires=_read_requirements(here, "requirements-prod.txt"),
        extras_require={"test": _read_requirements(here, "requirements-dev.txt")},
        python_requires=">=3.9",
        entry_points={
            "console_scripts": [
                "backlog-forecast=backlog_forecast.cli:main",
            ],
        },
    )


if __name__ == "__main__":
    main()
